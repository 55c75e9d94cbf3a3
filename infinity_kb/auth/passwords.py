"""
Password hashing with bcrypt.

bcrypt only considers the first 72 bytes of a password; longer inputs are
rejected at registration time rather than silently truncated.
"""
import secrets

import bcrypt

MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """bcrypt hasher with a configurable cost factor."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Check ``password`` against a stored hash; malformed input is a mismatch."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False


def generate_temporary_password() -> str:
    """Random password for invited members who have not set one yet."""
    return "tmp_" + secrets.token_urlsafe(18)
