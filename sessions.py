import logging
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from config import SESSION_TOKEN_BYTES
from database import DatabaseManager
from security import SecurityManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    session_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    persisted: bool = False
    destroyed: bool = False

    def get(self, key: str) -> Optional[Any]:
        return self.data.get(key)


class SessionManager:
    """Server-side sessions keyed by an opaque token.

    A session is only written to the store once something is stored in it,
    so anonymous visitors never create rows.
    """

    def __init__(self, database: DatabaseManager, security: SecurityManager) -> None:
        self.database = database
        self.security = security

    @staticmethod
    def new_session() -> Session:
        return Session(secrets.token_urlsafe(SESSION_TOKEN_BYTES))

    async def load(self, token: Optional[str]) -> Session:
        """Resolve a cookie token to its session, or a fresh anonymous one"""
        session_id = self.security.read_session_token(token) if token else None
        if session_id is None:
            return self.new_session()

        record = await self.database.get_session(session_id)
        if record is None:
            return self.new_session()

        data = {"username": record["username"]} if record["username"] else {}
        return Session(session_id, data, persisted=True)

    @staticmethod
    def current_user(session: Session) -> Optional[str]:
        return session.get("username")

    async def login(self, session: Session, username: str):
        """Bind the session to a user under a freshly issued id.

        The id a visitor held before logging in is dropped, so a token planted
        in a browser beforehand never becomes an authenticated one.
        """
        if session.persisted:
            await self.database.delete_session(session.session_id)
        session.session_id = self.new_session().session_id
        session.data["username"] = username
        session.destroyed = False
        await self.database.save_session(session.session_id, username)
        session.persisted = True
        logger.debug("Session logged in as %s", username)

    async def logout(self, session: Session):
        """Destroy the whole session; raises StoreError if the record cannot be removed."""
        session.data.clear()
        session.destroyed = True
        await self.database.delete_session(session.session_id)
        session.persisted = False

    def cookie_value(self, session: Session) -> str:
        return self.security.create_session_token(session.session_id)
