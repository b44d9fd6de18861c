"""
Tests for forums, posts and replies
"""
from datetime import datetime, timezone

import pytest

from threads import ThreadManager


@pytest.mark.asyncio
async def test_create_post_is_top_level(threads, forum_id):
    post = await threads.create_post(forum_id, "Hi", "hello", "alice")

    assert post.message_id
    assert post.parent_id == ""
    assert not post.is_reply
    assert post.created_at == "2024-01-01T12:00:00+0000"

    stored = await threads.get_message(post.message_id)
    assert stored == post


@pytest.mark.asyncio
async def test_reply_navigates_to_thread_root(threads, forum_id):
    post = await threads.create_post(forum_id, "Hi", "hello", "alice")
    reply = await threads.create_reply(forum_id, post.message_id, "Reply", "hey", "bob")

    assert reply.is_reply
    assert reply.parent_id == post.message_id
    assert ThreadManager.thread_root_id(reply) == post.message_id
    assert ThreadManager.thread_root_id(post) == post.message_id


@pytest.mark.asyncio
async def test_top_level_posts_are_newest_first(threads, forum_id):
    first = await threads.create_post(forum_id, "t1", "body", "alice")
    second = await threads.create_post(forum_id, "t2", "body", "alice")
    third = await threads.create_post(forum_id, "t3", "body", "alice")

    posts = await threads.list_top_level_posts(forum_id)
    assert [p.message_id for p in posts] == [third.message_id, second.message_id, first.message_id]


@pytest.mark.asyncio
async def test_top_level_posts_order_by_creation_not_insertion(database, forum_id):
    times = iter([
        datetime(2024, 1, 3, tzinfo=timezone.utc),
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        datetime(2024, 1, 2, tzinfo=timezone.utc),
    ])
    threads = ThreadManager(database, clock=lambda: next(times))

    newest = await threads.create_post(forum_id, "newest", "body", "alice")
    oldest = await threads.create_post(forum_id, "oldest", "body", "alice")
    middle = await threads.create_post(forum_id, "middle", "body", "alice")

    posts = await threads.list_top_level_posts(forum_id)
    assert [p.title for p in posts] == [newest.title, middle.title, oldest.title]


@pytest.mark.asyncio
async def test_posts_created_in_same_second_keep_newest_first(database, forum_id):
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    threads = ThreadManager(database, clock=lambda: moment)

    titles = ["a", "b", "c"]
    for title in titles:
        await threads.create_post(forum_id, title, "body", "alice")

    posts = await threads.list_top_level_posts(forum_id)
    assert [p.title for p in posts] == ["c", "b", "a"]


@pytest.mark.asyncio
async def test_top_level_posts_exclude_replies_and_other_forums(threads, database, forum_id):
    await database.create({"_id": "f2", "type": "forum", "name": "Other"})
    post = await threads.create_post(forum_id, "Hi", "hello", "alice")
    await threads.create_reply(forum_id, post.message_id, "Reply", "hey", "bob")
    await threads.create_post("f2", "Elsewhere", "hello", "alice")

    posts = await threads.list_top_level_posts(forum_id)
    assert [p.message_id for p in posts] == [post.message_id]


@pytest.mark.asyncio
async def test_list_replies_returns_direct_replies_oldest_first(threads, forum_id):
    post = await threads.create_post(forum_id, "Hi", "hello", "alice")
    other = await threads.create_post(forum_id, "Other", "hello", "alice")
    first = await threads.create_reply(forum_id, post.message_id, "r1", "body", "bob")
    await threads.create_reply(forum_id, other.message_id, "elsewhere", "body", "bob")
    second = await threads.create_reply(forum_id, post.message_id, "r2", "body", "carol")
    await threads.create_reply(forum_id, first.message_id, "nested", "body", "alice")

    replies = await threads.list_replies(post.message_id)
    assert [r.message_id for r in replies] == [first.message_id, second.message_id]


@pytest.mark.asyncio
async def test_list_replies_of_message_without_replies(threads, forum_id):
    post = await threads.create_post(forum_id, "Hi", "hello", "alice")
    assert await threads.list_replies(post.message_id) == []


@pytest.mark.asyncio
async def test_thread_is_depth_first(threads, forum_id):
    post = await threads.create_post(forum_id, "Hi", "hello", "alice")
    first = await threads.create_reply(forum_id, post.message_id, "r1", "body", "bob")
    second = await threads.create_reply(forum_id, post.message_id, "r2", "body", "carol")
    nested = await threads.create_reply(forum_id, first.message_id, "r1.1", "body", "alice")
    other = await threads.create_post(forum_id, "Other", "elsewhere", "bob")
    await threads.create_reply(forum_id, other.message_id, "unrelated", "body", "carol")

    thread = await threads.get_thread(forum_id, post.message_id)

    assert [(entry.message.message_id, entry.depth) for entry in thread] == [
        (first.message_id, 1),
        (nested.message_id, 2),
        (second.message_id, 1),
    ]
    assert await threads.get_thread(forum_id, nested.message_id) == []


@pytest.mark.asyncio
async def test_thread_of_deep_reply_chain(threads, forum_id):
    post = await threads.create_post(forum_id, "Hi", "hello", "alice")
    parent_id = post.message_id
    for i in range(1100):
        reply = await threads.create_reply(forum_id, parent_id, f"r{i}", "body", "bob")
        if i == 0:
            first = reply
        parent_id = reply.message_id

    thread = await threads.get_thread(forum_id, post.message_id)

    assert len(thread) == 1100
    assert thread[0].message.message_id == first.message_id
    assert thread[-1].message.message_id == parent_id
    assert thread[-1].depth == 1100
    assert [r.message_id for r in await threads.list_replies(post.message_id)] == [first.message_id]


@pytest.mark.asyncio
async def test_lookups_are_typed(threads, forum_id):
    post = await threads.create_post(forum_id, "Hi", "hello", "alice")

    assert (await threads.get_forum(forum_id)).name == "General"
    assert await threads.get_forum(post.message_id) is None
    assert await threads.get_message(forum_id) is None
    assert await threads.get_forum("missing") is None
    assert await threads.get_message("missing") is None


@pytest.mark.asyncio
async def test_seed_forums_is_idempotent(threads):
    seeded = await threads.seed_forums(["Off Topic", "Announcements"])
    assert [f.name for f in seeded] == ["Announcements", "Off Topic"]

    again = await threads.seed_forums(["Something Else"])
    assert [f.forum_id for f in again] == [f.forum_id for f in seeded]
