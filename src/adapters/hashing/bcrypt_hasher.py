"""
bcrypt password hasher adapter - Implements PasswordHasher protocol.

Security Design - Timing Oracle Prevention:
------------------------------------------
verify() always runs a full bcrypt comparison. When the caller has no
stored hash (unknown account), the password is compared against a
pre-computed dummy hash so the response time does not reveal whether the
account exists.
"""

import bcrypt

# Pre-computed bcrypt hash for timing oracle prevention.
# Hash of "dummy_password_for_timing_safety" with cost factor 10.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


class BcryptPasswordHasher:
    """
    Implements PasswordHasher protocol via bcrypt.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, rounds: int = 10) -> None:
        """
        Args:
            rounds: bcrypt cost factor (4-31)
        """
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """Hash password with a fresh salt at the configured cost."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self._rounds)).decode()

    def verify(self, password: str, password_hash: str | None) -> bool:
        """
        Constant-time password check.

        A None hash is compared against the dummy hash and always fails.
        """
        if password_hash is None:
            bcrypt.checkpw(password.encode(), _DUMMY_BCRYPT_HASH.encode())
            return False
        try:
            return bcrypt.checkpw(password.encode(), password_hash.encode())
        except ValueError:
            # Stored value is not a bcrypt hash
            return False
