"""Tests for the API client and the optimistic UI controller."""

import asyncio

import httpx
import pytest
from httpx import ASGITransport

from photofeed.sdk.api_client import ApiRequestError, FeedApiClient
from photofeed.sdk.messages import describe_failure
from photofeed.sdk.optimistic import (
    OptimisticRemoval,
    OptimisticToggle,
    ToggleState,
    follow_toggle,
    post_like_toggle,
)


def _failing_transport(status=500, code="INSERT_FAILED"):
    def handler(request):
        return httpx.Response(status, json={"success": False, "error": "boom", "code": code})

    return httpx.MockTransport(handler)


def _unreachable_transport():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)


@pytest.mark.asyncio
async def test_like_rolls_back_on_server_error():
    seen = []
    post = {"id": "p1", "is_liked": False, "likes_count": 5}

    async with FeedApiClient("t", base_url="http://api.test", transport=_failing_transport()) as api:
        toggle = post_like_toggle(api, post, on_change=seen.append)
        accepted = await toggle.toggle()

    assert accepted is False
    assert seen == [ToggleState(True, 6), ToggleState(False, 5)]
    assert toggle.state == ToggleState(False, 5)
    assert toggle.last_error.status == 500
    assert toggle.last_error.code == "INSERT_FAILED"
    assert toggle.in_flight is False


@pytest.mark.asyncio
async def test_timed_out_toggle_rolls_back():
    async def slow(active):
        await asyncio.sleep(10)

    toggle = OptimisticToggle(False, 5, slow)
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(toggle.toggle(), 0.05)

    assert toggle.state == ToggleState(False, 5)
    assert toggle.in_flight is False


@pytest.mark.asyncio
async def test_unexpected_error_rolls_back_and_propagates():
    async def broken(active):
        raise RuntimeError("client bug")

    seen = []
    toggle = OptimisticToggle(True, 2, broken, on_change=seen.append)
    with pytest.raises(RuntimeError):
        await toggle.toggle()

    assert toggle.state == ToggleState(True, 2)
    assert seen == [ToggleState(False, 1), ToggleState(True, 2)]


@pytest.mark.asyncio
async def test_timed_out_removal_restores_item():
    removal = OptimisticRemoval([{"id": "a"}, {"id": "b"}], key=lambda item: item["id"])

    async def slow_delete(item_id):
        await asyncio.sleep(10)

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(removal.remove("a", slow_delete), 0.05)

    assert [i["id"] for i in removal.items] == ["a", "b"]
    assert removal.is_pending("a") is False


@pytest.mark.asyncio
async def test_network_failure_rolls_back_like_http_errors():
    profile = {"user": {"id": "u2"}, "is_following": True, "stats": {"followers_count": 3}}

    async with FeedApiClient("t", base_url="http://api.test", transport=_unreachable_transport()) as api:
        toggle = follow_toggle(api, profile)
        accepted = await toggle.toggle()

    assert accepted is False
    assert toggle.state == ToggleState(True, 3)
    assert toggle.last_error.network is True
    assert toggle.last_error.status is None


@pytest.mark.asyncio
async def test_like_confirmed_by_the_api(override_app, make_user, create_post):
    author = await make_user("author")
    fan = await make_user("fan")
    post = await create_post(author)

    transport = ASGITransport(app=override_app)
    async with FeedApiClient(fan.token, base_url="http://test", transport=transport) as api:
        toggle = post_like_toggle(api, post)
        assert await toggle.toggle() is True
        assert toggle.state == ToggleState(True, 1)

        fresh = await api.get_post(post["id"])
        assert fresh["likes_count"] == 1
        assert fresh["is_liked"] is True

        toggle.reconcile(fresh["is_liked"], fresh["likes_count"])
        assert await toggle.toggle() is True
        assert toggle.state == ToggleState(False, 0)
        assert (await api.get_post(post["id"]))["likes_count"] == 0


@pytest.mark.asyncio
async def test_api_client_raises_structured_errors(override_app, make_user):
    fan = await make_user("fan")
    transport = ASGITransport(app=override_app)

    async with FeedApiClient(fan.token, base_url="http://test", transport=transport) as api:
        with pytest.raises(ApiRequestError) as excinfo:
            await api.get_post("missing")

    assert excinfo.value.status == 404
    assert excinfo.value.code == "POST_NOT_FOUND"
    assert excinfo.value.network is False


@pytest.mark.asyncio
async def test_toggle_ignored_while_in_flight():
    release = asyncio.Event()
    calls = []

    async def mutate(active):
        calls.append(active)
        await release.wait()

    toggle = OptimisticToggle(False, 0, mutate)
    first = asyncio.create_task(toggle.toggle())
    await asyncio.sleep(0)

    assert toggle.in_flight is True
    assert await toggle.toggle() is False
    toggle.reconcile(False, 0)
    assert toggle.state == ToggleState(True, 1)

    release.set()
    assert await first is True
    assert calls == [True]
    assert toggle.in_flight is False


@pytest.mark.asyncio
async def test_count_never_goes_negative():
    async def mutate(active):
        return None

    toggle = OptimisticToggle(True, 0, mutate)
    await toggle.toggle()
    assert toggle.state == ToggleState(False, 0)


@pytest.mark.asyncio
async def test_removal_restores_item_at_its_index():
    items = [{"id": "a"}, {"id": "b"}, {"id": "c"}]
    removal = OptimisticRemoval(items, key=lambda item: item["id"])

    async def failing_delete(item_id):
        assert [i["id"] for i in removal.items] == ["a", "c"]
        assert removal.is_pending(item_id)
        raise ApiRequestError("Forbidden", status=403, code="FORBIDDEN")

    assert await removal.remove("b", failing_delete) is False
    assert [i["id"] for i in removal.items] == ["a", "b", "c"]
    assert removal.last_error.status == 403
    assert removal.is_pending("b") is False

    async def ok_delete(item_id):
        return {"success": True}

    assert await removal.remove("b", ok_delete) is True
    assert [i["id"] for i in removal.items] == ["a", "c"]
    assert await removal.remove("zzz", ok_delete) is False


@pytest.mark.parametrize(
    "error, locale, expected",
    [
        (ApiRequestError("x", status=401), "en", "Please sign in to continue"),
        (ApiRequestError("x", status=403), "ko", "권한이 없습니다"),
        (ApiRequestError("x", status=422), "en", "Something about that request wasn't right"),
        (ApiRequestError("x", status=503), "en", "Something went wrong on our side. Please try again shortly"),
        (ApiRequestError("x", network=True), "ko", "네트워크 연결을 확인해주세요"),
        (ApiRequestError("x", status=404), "fr", "We couldn't find what you were looking for"),
    ],
)
def test_describe_failure(error, locale, expected):
    assert describe_failure(error, locale) == expected
