#!/usr/bin/env python3
"""
Create a console API key. Each key is one console user: workloads created
with it are owned by the key's id.

Usage: python scripts/create_api_key.py --name "alice"
"""
import argparse
import asyncio
import secrets
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Tuple

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from app.core.config import settings
from app.core.database import async_session_maker
from app.core.security import hash_api_key
from app.models.api_key import ApiKey


def generate_key() -> Tuple[str, str]:
    """Return (prefix, plaintext) for a new `<prefix>.<secret>` key."""
    prefix = secrets.token_hex(4)
    return prefix, f"{prefix}.{secrets.token_urlsafe(40)}"


async def create_api_key(
    name: str,
    expires_in_days: Optional[int] = None,
    rotate: bool = False,
) -> Tuple[str, str]:
    """
    Create (or rotate) the API key called `name`.

    Returns:
        Tuple of (owner_id, plaintext_key)
    """
    prefix, plaintext_key = generate_key()
    key_hash = hash_api_key(plaintext_key, settings.API_KEY_SALT)
    expires_at = datetime.utcnow() + timedelta(days=expires_in_days) if expires_in_days else None

    async with async_session_maker() as session:
        result = await session.execute(select(ApiKey).where(ApiKey.name == name))
        api_key = result.scalar_one_or_none()

        if api_key is not None:
            if not rotate:
                raise ValueError(f"API key '{name}' already exists. Use --rotate to issue a new secret.")
            # Rotating keeps the id, so existing workloads stay owned by it
            api_key.key_hash = key_hash
            api_key.prefix = prefix
            api_key.is_active = True
            api_key.expires_at = expires_at
        else:
            api_key = ApiKey(
                name=name,
                key_hash=key_hash,
                prefix=prefix,
                is_active=True,
                expires_at=expires_at,
            )
            session.add(api_key)

        await session.commit()
        await session.refresh(api_key)

        return str(api_key.id), plaintext_key


async def main():
    parser = argparse.ArgumentParser(description="Create a Workload Console API key")
    parser.add_argument("--name", required=True, help="Name of the key owner")
    parser.add_argument("--expires-in-days", type=int, help="Expire the key after N days")
    parser.add_argument("--rotate", action="store_true", help="Issue a new secret for an existing key")

    args = parser.parse_args()

    try:
        owner_id, plaintext_key = await create_api_key(args.name, args.expires_in_days, args.rotate)
    except Exception as e:
        print(f"Error creating API key: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Name:      {args.name}")
    print(f"Owner ID:  {owner_id}")
    print(f"Key:       {plaintext_key}")
    print("Save this key now, it will not be shown again.")


if __name__ == "__main__":
    asyncio.run(main())
