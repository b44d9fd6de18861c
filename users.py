import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from database import DatabaseManager
from exceptions import DocumentConflict, DuplicateError, Exceptions
from security import SecurityManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class User:
    username: str
    salt: str
    password_hash: str
    type: str = "user"

    def __str__(self) -> str:
        return f"User {self.username}"

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "User":
        return cls(doc["_id"], doc["salt"], doc["password_hash"])

    def to_document(self) -> Dict[str, Any]:
        return {
            "_id": self.username,
            "type": self.type,
            "salt": self.salt,
            "password_hash": self.password_hash,
        }


class UserManager:
    def __init__(self, database: DatabaseManager, security: SecurityManager) -> None:
        self.database = database
        self.security = security

    async def get(self, username: str) -> Optional[User]:
        doc = await self.database.get(username)
        # ids are shared with forums and messages
        if doc is None or doc.get("type") != "user":
            return None
        return User.from_document(doc)

    async def exists(self, username: str) -> bool:
        return await self.get(username) is not None

    async def create(self, username: str, password: str) -> User:
        """Create a new user; raises DuplicateError if the username is taken."""
        salt = self.security.generate_salt(username, password)
        user = User(username, salt, self.security.derive_hash(password, salt))

        try:
            await self.database.create(user.to_document())
        except DocumentConflict:
            raise DuplicateError(Exceptions.USER_EXISTS)

        logger.info("Created user %s", username)
        return user

    async def authenticate(self, username: str, password: str) -> User:
        """Return the user if the password matches, otherwise raise AuthError."""
        user = await self.get(username)
        if user is None:
            logger.info("Login failed for unknown user %s", username)
            raise Exceptions.invalid_credentials()

        if not self.security.verify_password(password, user.salt, user.password_hash):
            logger.info("Login failed for %s: password mismatch", username)
            raise Exceptions.invalid_credentials()

        return user
