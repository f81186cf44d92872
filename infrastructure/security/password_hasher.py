"""Password hashing on passlib.

Hashes use passlib's ``pbkdf2_sha256`` scheme (modular crypt format,
``$pbkdf2-sha256$<rounds>$<salt>$<checksum>``). Rounds come from
PASSWORD_HASH_ITERATIONS.
"""

import logging
from typing import Optional

from passlib.context import CryptContext

from infrastructure.config import get_password_hash_iterations

logger = logging.getLogger(__name__)

SCHEME = "pbkdf2_sha256"


class PasswordHasher:
    """Hash and verify secrets.

    Examples:
        >>> hasher = PasswordHasher(iterations=1000)
        >>> encoded = hasher.hash("Sup3rSecure!")
        >>> hasher.verify("Sup3rSecure!", encoded)
        True
        >>> hasher.verify("wrong", encoded)
        False
    """

    def __init__(self, iterations: Optional[int] = None):
        self.iterations = iterations or get_password_hash_iterations()
        self._context = CryptContext(
            schemes=[SCHEME],
            deprecated="auto",
            pbkdf2_sha256__rounds=self.iterations,
        )

    def hash(self, secret: str) -> str:
        return self._context.hash(secret)

    def verify(self, secret: str, encoded: Optional[str]) -> bool:
        """Verify a secret against an encoded hash.

        Missing, malformed or unrecognized hashes never verify.
        """
        if not encoded:
            return False
        try:
            return self._context.verify(secret, encoded)
        except ValueError:
            logger.warning("Unrecognized password hash encountered")
            return False

    def needs_rehash(self, encoded: str) -> bool:
        """Whether ``encoded`` was produced with other settings than the current ones."""
        return self._context.needs_update(encoded)
