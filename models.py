from pydantic import BaseModel
from typing import Optional, Dict, Any, List

from threads import ForumInfo, Message, ThreadEntry


class ForumResponse(BaseModel):
    forum_id: str
    name: str

    @classmethod
    def from_forum(cls, forum: ForumInfo) -> "ForumResponse":
        return cls(forum_id=forum.forum_id, name=forum.name)


class MessageResponse(BaseModel):
    message_id: str
    forum_id: str
    parent_id: str
    title: str
    body: str
    author: str
    created_at: str
    is_reply: bool

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            message_id=message.message_id,
            forum_id=message.forum_id,
            parent_id=message.parent_id,
            title=message.title,
            body=message.body,
            author=message.author,
            created_at=message.created_at,
            is_reply=message.is_reply,
        )


class ThreadEntryResponse(BaseModel):
    message: MessageResponse
    depth: int

    @classmethod
    def from_entry(cls, entry: ThreadEntry) -> "ThreadEntryResponse":
        return cls(message=MessageResponse.from_message(entry.message), depth=entry.depth)


class PageResponse(BaseModel):
    """What the rendering layer receives: a template name and its context"""
    template: str
    context: Dict[str, Any]


class ErrorResponse(BaseModel):
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
