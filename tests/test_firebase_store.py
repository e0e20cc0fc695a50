# tests/test_firebase_store.py

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from flow_mentor.core.errors import StoreUnavailable
from flow_mentor.store.firebase import FirebaseStore, StreamRevoked, apply_stream_event

DB = "https://flow-test.firebaseio.example"


def make_store(handler, **kw) -> tuple[FirebaseStore, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kw.setdefault("reconnect_delay", 60.0)
    return FirebaseStore(DB, auth_token="tok", client=client, **kw), client


async def eventually(pred, timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not pred():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)


def sse(*events: tuple[str, object]) -> bytes:
    chunks = [f"event: {name}\ndata: {json.dumps(data)}\n\n" for name, data in events]
    return "".join(chunks).encode()


# ---- stream event application ----


def test_apply_put_and_patch_events() -> None:
    holder: dict = {}
    assert apply_stream_event(holder, "put", json.dumps({"path": "/", "data": {"k1": {"title": "a"}}}))
    assert apply_stream_event(holder, "patch", json.dumps({"path": "/k1", "data": {"completed": True}}))
    assert apply_stream_event(holder, "put", json.dumps({"path": "/k2", "data": {"title": "b"}}))
    assert holder["v"] == {"k1": {"title": "a", "completed": True}, "k2": {"title": "b"}}

    assert apply_stream_event(holder, "put", json.dumps({"path": "/k1", "data": None}))
    assert holder["v"] == {"k2": {"title": "b"}}


def test_apply_keep_alive_is_ignored() -> None:
    holder: dict = {"v": {"k": 1}}
    assert not apply_stream_event(holder, "keep-alive", "null")
    assert holder == {"v": {"k": 1}}


def test_apply_cancel_and_auth_revoked_end_the_stream() -> None:
    with pytest.raises(StreamRevoked):
        apply_stream_event({}, "cancel", "null")
    with pytest.raises(StreamRevoked):
        apply_stream_event({}, "auth_revoked", '"credential is no longer valid"')


def test_apply_malformed_payload_raises() -> None:
    with pytest.raises(StoreUnavailable):
        apply_stream_event({}, "put", "{not json")


# ---- REST mutations ----


def test_missing_database_url_is_a_config_error() -> None:
    with pytest.raises(ValueError, match="database URL is not set"):
        FirebaseStore("  ")


@pytest.mark.asyncio
async def test_write_is_patch_with_auth_param() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"title": "x"})

    store, client = make_store(handler)
    async with client:
        await store.write("tasks/u1/k1", {"title": "x", "completedAt": None})

    req = seen[0]
    assert req.method == "PATCH"
    assert req.url.path == "/tasks/u1/k1.json"
    assert req.url.params["auth"] == "tok"
    assert json.loads(req.content) == {"title": "x", "completedAt": None}


@pytest.mark.asyncio
async def test_append_puts_a_generated_key_without_null_fields() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=request.content)

    store, client = make_store(handler)
    async with client:
        k1 = await store.append("chats/u1", {"role": "user", "text": "hi", "extra": None})
        k2 = await store.append("chats/u1", {"role": "assistant", "text": "hello"})

    assert k1 < k2
    assert [r.method for r in seen] == ["PUT", "PUT"]
    assert seen[0].url.path == f"/chats/u1/{k1}.json"
    assert json.loads(seen[0].content) == {"role": "user", "text": "hi"}


@pytest.mark.asyncio
async def test_remove_is_delete() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=None)

    store, client = make_store(handler)
    async with client:
        await store.remove("tasks/u1/k1")

    assert seen[0].method == "DELETE"
    assert seen[0].url.path == "/tasks/u1/k1.json"


@pytest.mark.asyncio
async def test_http_error_becomes_store_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "Permission denied"})

    store, client = make_store(handler)
    async with client:
        with pytest.raises(StoreUnavailable, match="401"):
            await store.write("tasks/u1/k1", {"title": "x"})


@pytest.mark.asyncio
async def test_transport_error_becomes_store_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store, client = make_store(handler)
    async with client:
        with pytest.raises(StoreUnavailable) as ei:
            await store.append("tasks/u1", {"title": "x"})
    assert isinstance(ei.value.__cause__, httpx.ConnectError)


# ---- streaming subscriptions ----


@pytest.mark.asyncio
async def test_subscribe_delivers_full_snapshots_from_stream() -> None:
    body = sse(
        ("put", {"path": "/", "data": {"k1": {"title": "a"}}}),
        ("keep-alive", None),
        ("patch", {"path": "/k1", "data": {"completed": True}}),
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["accept"] == "text/event-stream"
        assert request.url.path == "/tasks/u1.json"
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body)

    received: list = []
    store, client = make_store(handler)
    async with client:
        sub = await store.subscribe("tasks/u1", received.append)
        await eventually(lambda: len(received) >= 2)
        await store.close()

    assert received[0] == {"k1": {"title": "a"}}
    assert received[1] == {"k1": {"title": "a", "completed": True}}
    assert not sub.active


@pytest.mark.asyncio
async def test_subscribe_fails_when_stream_is_refused() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "Permission denied"})

    store, client = make_store(handler)
    async with client:
        with pytest.raises(StoreUnavailable, match="401"):
            await store.subscribe("tasks/u1", lambda _snap: None)
        await store.close()


@pytest.mark.asyncio
async def test_server_cancel_ends_subscription() -> None:
    body = sse(
        ("put", {"path": "/", "data": None}),
        ("cancel", None),
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body)

    received: list = []
    store, client = make_store(handler)
    async with client:
        sub = await store.subscribe("chats/u1", received.append)
        await eventually(lambda: not sub.active)
        await store.close()

    assert received == [None]
