import bcrypt


class PasswordService:
    """bcrypt hashing for account passwords"""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash_password(self, password: str) -> str:
        """
        Hash a plain-text password

        Args:
            password: Plain-text password

        Returns:
            bcrypt hash as a string
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        """
        Check a plain-text password against a stored hash

        Args:
            password: Plain-text password
            password_hash: Stored bcrypt hash

        Returns:
            True if the password matches
        """
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
