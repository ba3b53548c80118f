"""
Security utilities for API key authentication.
"""
import bcrypt
import time
from typing import Optional, Dict, Tuple
from datetime import datetime
from uuid import UUID
from fastapi import Security, Depends
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationError
from app.models.api_key import ApiKey


# API Key header
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

# Cache for verified API keys: {api_key: (api_key_id, expiry_time)}
_api_key_cache: Dict[str, Tuple[str, float]] = {}
_CACHE_TTL = 300  # 5 minutes
_CACHE_MAX_SIZE = 10000


def invalidate_api_key_cache(api_key_id: Optional[str] = None) -> int:
    """
    Invalidate cached API keys.

    Args:
        api_key_id: If provided, invalidate only entries for this key ID.
                   If None, invalidate all cached entries.

    Returns:
        Number of cache entries invalidated.
    """
    global _api_key_cache

    if api_key_id is None:
        count = len(_api_key_cache)
        _api_key_cache = {}
        return count

    keys_to_remove = [
        key for key, (cached_id, _) in _api_key_cache.items()
        if cached_id == api_key_id
    ]

    for key in keys_to_remove:
        del _api_key_cache[key]

    return len(keys_to_remove)


def hash_api_key(api_key: str, salt: str) -> str:
    """Hash an API key using bcrypt."""
    combined = f"{api_key}{salt}".encode()
    return bcrypt.hashpw(combined, bcrypt.gensalt()).decode()


def verify_api_key_hash(api_key: str, key_hash: str, salt: str) -> bool:
    """Verify an API key against its hash."""
    combined = f"{api_key}{salt}".encode()
    return bcrypt.checkpw(combined, key_hash.encode())


def _remember(api_key: str, api_key_id: UUID) -> None:
    if len(_api_key_cache) >= _CACHE_MAX_SIZE:
        oldest_keys = sorted(
            _api_key_cache.items(),
            key=lambda x: x[1][1]
        )[:_CACHE_MAX_SIZE // 10]
        for old_key, _ in oldest_keys:
            del _api_key_cache[old_key]

    _api_key_cache[api_key] = (str(api_key_id), time.time() + _CACHE_TTL)


async def get_api_key_from_db(
    api_key: str,
    db: AsyncSession
) -> Optional[ApiKey]:
    """
    Validate an API key and return the corresponding ApiKey object.

    Keys have the form ``<prefix>.<secret>``; the prefix selects the row and
    bcrypt verifies the whole key.

    Args:
        api_key: The API key to validate
        db: Database session

    Returns:
        ApiKey object if valid, None otherwise
    """
    if api_key in _api_key_cache:
        cached_id, expiry = _api_key_cache[api_key]
        if time.time() < expiry:
            result = await db.execute(
                select(ApiKey).where(ApiKey.id == UUID(cached_id)).where(ApiKey.is_active.is_(True))
            )
            db_key = result.scalar_one_or_none()
            if db_key and not db_key.is_expired:
                return db_key
        del _api_key_cache[api_key]

    if "." not in api_key:
        return None

    prefix = api_key.split(".", 1)[0]
    result = await db.execute(
        select(ApiKey).where(ApiKey.prefix == prefix).where(ApiKey.is_active.is_(True))
    )
    db_key = result.scalar_one_or_none()
    if not db_key:
        return None

    if not verify_api_key_hash(api_key, db_key.key_hash, settings.API_KEY_SALT):
        return None
    if db_key.is_expired:
        return None

    _remember(api_key, db_key.id)
    db_key.last_used_at = datetime.utcnow()
    await db.commit()
    return db_key


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
    session: AsyncSession = Depends(get_db),
) -> ApiKey:
    """
    Dependency for verifying API keys.

    Raises:
        AuthenticationError: If the key is missing, unknown, inactive or expired (401)
    """
    if not api_key:
        raise AuthenticationError("Missing API key")

    db_key = await get_api_key_from_db(api_key, session)
    if not db_key:
        raise AuthenticationError()
    return db_key


async def get_current_owner_id(api_key: ApiKey = Depends(verify_api_key)) -> UUID:
    """Owner id that scopes every workload query of the request."""
    return api_key.id
