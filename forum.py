import logging
from typing import Any, Dict, List, Optional

from config import DEFAULT_FORUMS, PASSWORD_HASH_ROUNDS, SECRET_KEY
from database import DatabaseManager
from exceptions import Exceptions, NotFoundError
from security import SecurityManager
from sessions import Session, SessionManager
from threads import ForumInfo, Message, ThreadManager
from users import User, UserManager

logger = logging.getLogger(__name__)


class Forum:
    """Main Forum class that orchestrates all components.

    One DatabaseManager is created here and handed to every manager; nothing
    else opens its own connection.
    """

    def __init__(self, db_path: str, secret_key: str = SECRET_KEY,
                 password_rounds: int = PASSWORD_HASH_ROUNDS,
                 default_forums: Optional[List[str]] = None):
        self.database = DatabaseManager(db_path)
        self.security = SecurityManager(secret_key, rounds=password_rounds)
        self.user_manager = UserManager(self.database, self.security)
        self.thread_manager = ThreadManager(self.database)
        self.session_manager = SessionManager(self.database, self.security)
        self.default_forums = DEFAULT_FORUMS if default_forums is None else default_forums

    async def start(self):
        await self.database.connect()
        forums = await self.thread_manager.seed_forums(self.default_forums)
        logger.info("Forum started with %d forums", len(forums))

    async def stop(self):
        await self.database.close()

    def build_context(self, session: Session) -> Dict[str, Any]:
        """Base context every page is rendered with"""
        return {"username": self.session_manager.current_user(session)}

    # High-level forum operations
    async def sign_up(self, session: Session, username: str, password: str) -> User:
        """Create a new user account and log the caller in as that user."""
        user = await self.user_manager.create(username, password)
        await self.session_manager.login(session, user.username)
        return user

    async def log_in(self, session: Session, username: str, password: str) -> User:
        user = await self.user_manager.authenticate(username, password)
        await self.session_manager.login(session, user.username)
        return user

    async def log_out(self, session: Session):
        await self.session_manager.logout(session)

    async def require_forum(self, forum_id: str) -> ForumInfo:
        forum = await self.thread_manager.get_forum(forum_id)
        if forum is None:
            raise NotFoundError(Exceptions.FORUM_NOT_FOUND)
        return forum

    async def require_message(self, forum_id: str, message_id: str) -> Message:
        message = await self.thread_manager.get_message(message_id)
        if message is None or message.forum_id != forum_id:
            raise NotFoundError(Exceptions.MESSAGE_NOT_FOUND)
        return message

    async def post_message(self, session: Session, forum_id: str, title: str, body: str,
                           parent_id: str = "") -> Message:
        """Create a top-level post, or a reply when parent_id is given."""
        username = self.session_manager.current_user(session)
        if username is None:
            raise Exceptions.not_logged_in()

        await self.require_forum(forum_id)
        if not parent_id:
            return await self.thread_manager.create_post(forum_id, title, body, username)

        await self.require_message(forum_id, parent_id)
        return await self.thread_manager.create_reply(forum_id, parent_id, title, body, username)
