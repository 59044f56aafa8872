"""Tests for likes, comment likes and follows."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from photofeed.models import Follow, Like
from photofeed.services.engagement import EngagementLedger


@pytest.mark.asyncio
async def test_like_is_idempotent(client, make_user, create_post):
    author = await make_user("author")
    fan = await make_user("fan")
    post = await create_post(author)

    first = await client.post(f"/posts/{post['id']}/like", headers=fan.headers)
    second = await client.post(f"/posts/{post['id']}/like", headers=fan.headers)

    assert first.status_code == 201
    assert first.json() == {"active": True, "changed": True}
    assert second.status_code == 200
    assert second.json() == {"active": True, "changed": False}

    view = (await client.get(f"/posts/{post['id']}", headers=fan.headers)).json()
    assert view["likes_count"] == 1
    assert view["is_liked"] is True


@pytest.mark.asyncio
async def test_unlike_when_absent_is_a_no_op(client, make_user, create_post):
    author = await make_user("author")
    fan = await make_user("fan")
    post = await create_post(author)

    resp = await client.delete(f"/posts/{post['id']}/like", headers=fan.headers)
    assert resp.status_code == 200
    assert resp.json() == {"active": False, "changed": False}

    await client.post(f"/posts/{post['id']}/like", headers=fan.headers)
    resp = await client.delete(f"/posts/{post['id']}/like", headers=fan.headers)
    assert resp.json() == {"active": False, "changed": True}


@pytest.mark.asyncio
async def test_like_missing_post_is_not_found(client, make_user):
    fan = await make_user("fan")
    resp = await client.post("/posts/ghost/like", headers=fan.headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "POST_NOT_FOUND"


@pytest.mark.asyncio
async def test_duplicate_like_rows_are_rejected_by_the_store(session_factory, make_user, create_post):
    author = await make_user("author")
    post = await create_post(author)

    async with session_factory() as session:
        session.add(Like(post_id=post["id"], user_id=author.id))
        await session.commit()

        session.add(Like(post_id=post["id"], user_id=author.id))
        with pytest.raises(IntegrityError):
            await session.commit()


@pytest.mark.asyncio
async def test_concurrent_duplicate_like_is_absorbed(session_factory, make_user, create_post, monkeypatch):
    author = await make_user("author")
    fan = await make_user("fan")
    post = await create_post(author)

    async with session_factory() as session:
        session.add(Like(post_id=post["id"], user_id=fan.id))
        await session.commit()

    async with session_factory() as session:
        ledger = EngagementLedger(session)
        real_exists = ledger._edge_exists
        calls = []

        # The first existence check misses the row, as if another request
        # inserted it between our check and our insert.
        async def stale_exists(model, keys):
            calls.append(keys)
            if len(calls) == 1:
                return False
            return await real_exists(model, keys)

        monkeypatch.setattr(ledger, "_edge_exists", stale_exists)
        state = await ledger.set_post_like(fan.id, post["id"], True)

    assert state.active is True
    assert state.changed is False
    assert len(calls) == 2

    async with session_factory() as session:
        count = await session.scalar(select(func.count()).select_from(Like))
    assert count == 1


@pytest.mark.asyncio
async def test_comment_like_lifecycle(client, make_user, create_post):
    author = await make_user("author")
    fan = await make_user("fan")
    post = await create_post(author)
    comment = (
        await client.post(
            f"/posts/{post['id']}/comments", json={"content": "great light"}, headers=fan.headers
        )
    ).json()

    resp = await client.post(f"/comments/{comment['id']}/like", headers=author.headers)
    assert resp.status_code == 201
    resp = await client.post(f"/comments/{comment['id']}/like", headers=author.headers)
    assert resp.status_code == 200

    listing = (await client.get(f"/posts/{post['id']}/comments", headers=author.headers)).json()
    assert listing["comments"][0]["likes_count"] == 1
    assert listing["comments"][0]["is_liked"] is True

    listing = (await client.get(f"/posts/{post['id']}/comments", headers=fan.headers)).json()
    assert listing["comments"][0]["is_liked"] is False

    resp = await client.delete(f"/comments/{comment['id']}/like", headers=author.headers)
    assert resp.json() == {"active": False, "changed": True}

    resp = await client.post("/comments/ghost/like", headers=author.headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "COMMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_follow_and_unfollow(client, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")

    resp = await client.post(f"/users/{bob.id}/follow", headers=alice.headers)
    assert resp.status_code == 201
    resp = await client.post(f"/users/{bob.id}/follow", headers=alice.headers)
    assert resp.status_code == 200
    assert resp.json() == {"active": True, "changed": False}

    profile = (await client.get(f"/users/{bob.id}", headers=alice.headers)).json()
    assert profile["is_following"] is True
    assert profile["stats"]["followers_count"] == 1

    resp = await client.delete(f"/users/{bob.id}/follow", headers=alice.headers)
    assert resp.json() == {"active": False, "changed": True}
    resp = await client.delete(f"/users/{bob.id}/follow", headers=alice.headers)
    assert resp.json() == {"active": False, "changed": False}


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["post", "delete"])
async def test_self_follow_is_rejected(client, make_user, session_factory, method):
    alice = await make_user("alice")

    resp = await getattr(client, method)(f"/users/{alice.id}/follow", headers=alice.headers)

    assert resp.status_code == 400
    assert resp.json()["code"] == "SELF_FOLLOW_NOT_ALLOWED"
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(Follow)) == 0


@pytest.mark.asyncio
async def test_database_failure_is_reported_as_upstream_failure(client, make_user, create_post, monkeypatch):
    author = await make_user("author")
    post = await create_post(author)

    async def broken_remove(self, model, keys):
        raise OperationalError("DELETE FROM likes", {}, Exception("connection lost"))

    monkeypatch.setattr(EngagementLedger, "_remove_edge", broken_remove)
    resp = await client.delete(f"/posts/{post['id']}/like", headers=author.headers)

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "error": "A storage operation failed, please retry",
        "code": "UPSTREAM_FAILURE",
    }


@pytest.mark.asyncio
async def test_follow_unknown_user_is_not_found(client, make_user):
    alice = await make_user("alice")
    resp = await client.post("/users/nobody/follow", headers=alice.headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "USER_NOT_FOUND"
