"""
Environment variable resolution for deployments.

Workloads store their environment as a JSON object of string keys to string
values. Anything that does not parse as such is treated as "no environment"
so a bad value never blocks a deploy.
"""
import json
import logging
from typing import List, Optional
from uuid import UUID

logger = logging.getLogger(__name__)


def resolve_environment(raw: Optional[str], workload_id: Optional[UUID] = None) -> List[str]:
    """
    Convert a serialized environment mapping into ``KEY=value`` assignments.

    Entries whose key or value is an empty string are skipped.

    Args:
        raw: Stored JSON text, or None
        workload_id: Used only for logging

    Returns:
        List of assignments, empty on absent or malformed input
    """
    if not raw:
        return []

    try:
        mapping = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Failed to parse environment variables for workload {workload_id}: {e}")
        return []

    if not isinstance(mapping, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in mapping.items()
    ):
        logger.warning(
            f"Environment variables for workload {workload_id} are not a flat string mapping, ignoring"
        )
        return []

    return [f"{key}={value}" for key, value in mapping.items() if key and value]
