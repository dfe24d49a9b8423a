"""
Task API — Password Hasher
===========================

What:  Salted one-way hashing of passwords at registration, checking at login.
How:   passlib CryptContext with pbkdf2_sha256. Each hash string carries its
       own algorithm, rounds and salt, so parameters can be raised later and
       old hashes still verify (deprecated="auto").

Why pbkdf2_sha256 (not bcrypt):
    Pure hashlib-backed, no native backend to initialize, and no 72-byte
    password truncation.

Event loop:
    Hashing is deliberately slow CPU work. The async helpers push it onto
    Starlette's threadpool so one login does not stall other requests.
"""

import logging

from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Thin wrapper around a passlib CryptContext."""

    def __init__(self, context: CryptContext | None = None):
        self._context = context or CryptContext(
            schemes=["pbkdf2_sha256"], deprecated="auto"
        )
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """
        True if `password` matches `password_hash`.

        An unrecognizable stored hash counts as a mismatch; it is logged
        because it means the row was written by something other than us.
        """
        if not password_hash:
            return False
        try:
            return self._context.verify(password, password_hash)
        except (ValueError, TypeError):
            logger.error("Stored password hash could not be identified")
            return False

    def burn(self, password: str) -> None:
        """
        Spend one verification's worth of time without a real hash.

        Called when a login names an unknown user, so the response time does
        not reveal whether the username exists.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self._context.hash("not-a-real-password")
        self._context.verify(password, self._dummy_hash)

    async def hash_async(self, password: str) -> str:
        return await run_in_threadpool(self.hash, password)

    async def verify_async(self, password: str, password_hash: str) -> bool:
        return await run_in_threadpool(self.verify, password, password_hash)

    async def burn_async(self, password: str) -> None:
        await run_in_threadpool(self.burn, password)


password_hasher = PasswordHasher()
