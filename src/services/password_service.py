"""Password hashing with bcrypt (random salt per record)."""
import asyncio
import base64
import hashlib
import logging

import bcrypt

from core.config import get_settings

logger = logging.getLogger(__name__)


def _prehash(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; passwords may be up to 100 characters
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def _hash_password_sync(password: str, rounds: int) -> str:
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_prehash(password), salt).decode("utf-8")


def _verify_password_sync(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_prehash(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        logger.warning("password_hash_malformed")
        return False


async def hash_password(password: str) -> str:
    """
    Hash a plaintext password.

    bcrypt is CPU-bound, so it runs in a worker thread to keep the event loop free.
    """
    rounds = get_settings().bcrypt_rounds
    return await asyncio.to_thread(_hash_password_sync, password, rounds)


async def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison of a candidate password against a stored hash."""
    return await asyncio.to_thread(_verify_password_sync, password, password_hash)
