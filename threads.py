from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from config import DATE_FORMAT
from database import DatabaseManager


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime(DATE_FORMAT)


@dataclass(slots=True)
class ForumInfo:
    forum_id: str
    name: str

    def __str__(self) -> str:
        return f"Forum '{self.name}'"

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ForumInfo":
        return cls(doc["_id"], doc.get("name", ""))


@dataclass(slots=True)
class Message:
    message_id: str
    forum_id: str
    parent_id: str
    title: str
    body: str
    author: str
    created_at: str
    type: str = "message"

    def __str__(self) -> str:
        kind = "Reply" if self.is_reply else "Post"
        return f"{kind} {self.message_id}: {self.title}"

    @property
    def is_reply(self) -> bool:
        return self.parent_id != ""

    @property
    def thread_id(self) -> str:
        """Id of the page this message is shown on; replies live under their parent."""
        return self.parent_id or self.message_id

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Message":
        return cls(
            message_id=doc["_id"],
            forum_id=doc.get("forum_id", ""),
            parent_id=doc.get("parent_id", ""),
            title=doc.get("title", ""),
            body=doc.get("body", ""),
            author=doc.get("author", ""),
            created_at=doc.get("created_at", ""),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "forum_id": self.forum_id,
            "parent_id": self.parent_id,
            "title": self.title,
            "body": self.body,
            "author": self.author,
            "created_at": self.created_at,
        }


@dataclass(slots=True)
class ThreadEntry:
    """A reply within a flattened thread; depth 1 answers the thread root directly"""
    message: Message
    depth: int


class ThreadManager:
    def __init__(self, database: DatabaseManager, clock: Callable[[], datetime] = utcnow) -> None:
        self.database = database
        self.clock = clock

    async def seed_forums(self, names: List[str]) -> List[ForumInfo]:
        """Create the given forums unless some forum already exists."""
        existing = await self.list_forums()
        if existing:
            return existing
        for name in names:
            await self.database.create({"type": "forum", "name": name})
        return await self.list_forums()

    async def list_forums(self) -> List[ForumInfo]:
        rows = await self.database.query_view("forums")
        return [ForumInfo.from_document(row["value"]) for row in rows]

    async def get_forum(self, forum_id: str) -> Optional[ForumInfo]:
        doc = await self.database.get(forum_id)
        if doc is None or doc.get("type") != "forum":
            return None
        return ForumInfo.from_document(doc)

    async def get_message(self, message_id: str) -> Optional[Message]:
        doc = await self.database.get(message_id)
        if doc is None or doc.get("type") != "message":
            return None
        return Message.from_document(doc)

    async def list_top_level_posts(self, forum_id: str) -> List[Message]:
        """Top-level posts of a forum, newest first"""
        rows = await self.database.query_view("forum_posts", keys=[forum_id], descending=True)
        return [Message.from_document(row["value"]) for row in rows]

    async def list_replies(self, message_id: str) -> List[Message]:
        """Direct replies to a message, oldest first"""
        rows = await self.database.query_view("forum_replies", keys=[message_id])
        return [Message.from_document(row["value"]) for row in rows]

    async def get_thread(self, forum_id: str, message_id: str) -> List[ThreadEntry]:
        """All replies below a message, depth-first with siblings oldest first.

        Every reply in the forum is fetched with one view query and linked by
        parent id, so the depth of a reply chain never costs more queries.
        """
        rows = await self.database.query_view("forum_thread_replies", keys=[forum_id])
        children: Dict[str, List[Message]] = {}
        for row in rows:
            reply = Message.from_document(row["value"])
            children.setdefault(reply.parent_id, []).append(reply)

        entries = []
        stack = [(reply, 1) for reply in reversed(children.get(message_id, []))]
        while stack:
            reply, depth = stack.pop()
            entries.append(ThreadEntry(reply, depth))
            stack.extend((child, depth + 1) for child in reversed(children.get(reply.message_id, [])))
        return entries

    async def create_post(self, forum_id: str, title: str, body: str, author: str) -> Message:
        return await self._create_message(forum_id, "", title, body, author)

    async def create_reply(self, forum_id: str, parent_id: str, title: str, body: str, author: str) -> Message:
        return await self._create_message(forum_id, parent_id, title, body, author)

    async def _create_message(self, forum_id: str, parent_id: str, title: str, body: str, author: str) -> Message:
        message = Message(
            message_id="",
            forum_id=forum_id,
            parent_id=parent_id,
            title=title,
            body=body,
            author=author,
            created_at=format_timestamp(self.clock()),
        )
        message_id, _, _ = await self.database.create(message.to_document())
        message.message_id = message_id
        return message

    @staticmethod
    def thread_root_id(message: Message) -> str:
        return message.thread_id
