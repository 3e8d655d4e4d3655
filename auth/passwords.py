"""
auth/passwords.py -- One-way password hashing with bcrypt.

Bcrypt is the right choice for low-entropy secrets (passwords) because its
cost factor makes brute-force expensive. Using bcrypt directly rather than
passlib[bcrypt]: passlib's wrap-bug detection trips bcrypt 4.x's 72-byte
check, and direct usage has no compatibility shim.

Comparison is delegated to bcrypt.checkpw, which is constant-time.

The dummy hash enables timing equalization at login [C1]: when the email is
unknown, verify_dummy() spends the same bcrypt work as a real compare so
response time does not reveal whether an account exists.

Layer rule: no imports from api/, services/, store/, or audit/.
"""

from __future__ import annotations

import logging

import bcrypt

from core.errors import Internal

logger = logging.getLogger("edutech.auth")

# bcrypt ignores everything past 72 bytes; flows reject longer passwords.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Salted, adaptive bcrypt hashing at a fixed cost.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("secret1")
        hasher.verify("secret1", stored)   # True
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        # Computed once so the first unknown-email login is not measurably
        # slower than later ones.
        self._dummy_hash: str = self.hash("edutech_timing_dummy")

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt hash of plaintext. Any failure raises Internal."""
        try:
            return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")
        except (ValueError, TypeError) as exc:
            logger.exception("Password hashing failed")
            raise Internal() from exc

    def verify(self, plaintext: str, hash_value: str) -> bool:
        """Return True if plaintext matches hash_value. Malformed hashes give False."""
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hash_value.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False

    def verify_dummy(self, plaintext: str) -> None:
        """Spend one bcrypt compare against the dummy hash; the result is discarded."""
        self.verify(plaintext, self._dummy_hash)
