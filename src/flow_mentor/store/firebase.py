# src/flow_mentor/store/firebase.py

"""
Realtime Database adapter over the REST API.

- read   -> GET    {db}/{path}.json
- write  -> PATCH  {db}/{path}.json   (null values delete fields)
- append -> PUT    {db}/{path}/{push_id}.json  (key generated client-side)
- remove -> DELETE {db}/{path}.json   (deleting a missing path is a no-op server-side)
- subscribe -> GET with "Accept: text/event-stream"; the server sends one
  "put" with the full value, then "put"/"patch" events relative to the path.
  We keep a local copy of the subscribed value, apply each event to it and
  deliver the whole copy, so consumers always get full snapshots.

The auth token (an ID token or database secret) is passed as ?auth=...;
obtaining it is the caller's business.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from ..core.errors import StoreUnavailable, ValidationError
from ..core.ports import ChangeCallback, Fields
from ..net import describe_http_error, error_detail, make_timeout
from .base import check_fields
from .hub import StoreSubscription, SubscriptionHub
from .push_ids import PushIdGenerator
from .tree import get_node, join_path, set_node, snapshot_copy, split_path

logger = logging.getLogger(__name__)

_ROOT = "v"


class StreamRevoked(StoreUnavailable):
    """The server ended the stream for good (rules changed or token revoked)."""


def apply_stream_event(holder: dict[str, Any], event: str | None, payload: str) -> bool:
    """
    Apply one server-sent event to holder[_ROOT] (the value at the subscribed path).

    Returns True when the local copy changed and a delivery is due.
    Raises StreamRevoked for "cancel" / "auth_revoked", StoreUnavailable for bad payloads.
    """
    if event in (None, "keep-alive"):
        return False
    if event == "cancel":
        raise StreamRevoked("Stream cancelled by the server (permission denied)")
    if event == "auth_revoked":
        raise StreamRevoked("Stream auth token revoked or expired")
    if event not in ("put", "patch"):
        logger.debug("Ignoring stream event %r", event)
        return False

    try:
        body = json.loads(payload)
    except ValueError as e:
        raise StoreUnavailable(f"Malformed stream payload for {event}") from e
    if not isinstance(body, dict):
        raise StoreUnavailable(f"Malformed stream payload for {event}")

    rel = tuple(p for p in str(body.get("path") or "/").split("/") if p)
    data = body.get("data")

    if event == "put":
        set_node(holder, (_ROOT, *rel), data)
        return True

    if not isinstance(data, dict):
        return False
    for child, value in data.items():
        child_segs = tuple(p for p in str(child).split("/") if p)
        set_node(holder, (_ROOT, *rel, *child_segs), value)
    return True


class FirebaseStore:
    def __init__(
        self,
        database_url: str,
        *,
        auth_token: str | None = None,
        key_gen: PushIdGenerator | None = None,
        client: httpx.AsyncClient | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 20.0,
        reconnect_delay: float = 3.0,
    ) -> None:
        base = (database_url or "").strip().rstrip("/")
        if not base:
            raise ValueError("Firebase database URL is not set. Set FLOW_FIREBASE_DATABASE_URL in your .env.")
        self._base = base
        self._auth = (auth_token or "").strip() or None
        self._keys = key_gen or PushIdGenerator()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=make_timeout(connect_timeout, read_timeout),
            follow_redirects=True,
        )
        self._connect_timeout = float(connect_timeout)
        self._reconnect_delay = max(0.0, float(reconnect_delay))
        self._hub = SubscriptionHub()
        self._streams: dict[StoreSubscription, asyncio.Task[None]] = {}
        self._closed = False

    # ---- low-level helpers ----

    def _url(self, path: str) -> str:
        return f"{self._base}/{join_path(*split_path(path))}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth} if self._auth else {}

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        if self._closed:
            raise StoreUnavailable("Store is closed", path=path)
        try:
            resp = await self._client.request(
                method,
                self._url(path),
                params=self._params(),
                json=body,
            )
        except httpx.HTTPError as e:
            raise StoreUnavailable(f"{method} {path} failed: {describe_http_error(e)}", path=path) from e

        if resp.status_code >= 400:
            raise StoreUnavailable(
                f"{method} {path} failed: HTTP {resp.status_code} {error_detail(resp)}".strip(),
                path=path,
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise StoreUnavailable(f"{method} {path} returned a malformed body", path=path) from e

    @staticmethod
    def _record_path(path: str) -> str:
        segs = split_path(path)
        if not segs:
            raise ValidationError("Refusing to address the store root", field="path")
        return "/".join(segs)

    # ---- RemoteStore ----

    async def read(self, path: str) -> Any:
        return snapshot_copy(await self._request("GET", path))

    async def write(self, path: str, fields: Fields) -> None:
        check_fields(fields)
        await self._request("PATCH", self._record_path(path), fields)

    async def append(self, collection_path: str, fields: Fields) -> str:
        check_fields(fields)
        key = self._keys.next_id()
        path = join_path(self._record_path(collection_path), key)
        await self._request("PUT", path, {k: v for k, v in fields.items() if v is not None})
        return key

    async def remove(self, path: str) -> None:
        await self._request("DELETE", self._record_path(path))

    async def subscribe(self, path: str, on_change: ChangeCallback) -> StoreSubscription:
        if self._closed:
            raise StoreUnavailable("Store is closed", path=path)

        first: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        holder: dict[str, Any] = {}

        def _stop_stream() -> None:
            task = self._streams.pop(sub, None)
            if task is not None and not task.done():
                task.cancel()

        sub = self._hub.add(path, on_change, on_cancel=_stop_stream)
        self._streams[sub] = asyncio.create_task(self._run_stream(sub, holder, first))

        try:
            await asyncio.wait_for(asyncio.shield(first), timeout=self._connect_timeout + 5.0)
        except asyncio.TimeoutError as e:
            sub.cancel()
            raise StoreUnavailable(f"No initial snapshot for {path}", path=path) from e
        except StoreUnavailable:
            sub.cancel()
            raise
        return sub

    async def close(self) -> None:
        self._closed = True
        self._hub.cancel_all()
        tasks = list(self._streams.values())
        self._streams.clear()
        for t in tasks:
            t.cancel()
        for t in tasks:
            try:
                await t
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.debug("Stream task ended with error on close", exc_info=True)
        if self._owns_client:
            await self._client.aclose()

    # ---- streaming ----

    async def _run_stream(
        self,
        sub: StoreSubscription,
        holder: dict[str, Any],
        first: asyncio.Future[None],
    ) -> None:
        """
        Keep one event stream open for sub, reconnecting after transport errors.

        Errors before the first snapshot are reported to subscribe() instead.
        "cancel"/"auth_revoked" end the subscription; reconnecting would not help.
        """
        url = self._url(sub.path)
        headers = {"Accept": "text/event-stream"}
        timeout = make_timeout(self._connect_timeout, None)

        while sub.active:
            try:
                async with self._client.stream(
                    "GET",
                    url,
                    params=self._params(),
                    headers=headers,
                    timeout=timeout,
                    follow_redirects=True,
                ) as resp:
                    if resp.status_code >= 400:
                        await resp.aread()
                        raise StoreUnavailable(
                            f"Stream {sub.path} failed: HTTP {resp.status_code} {error_detail(resp)}".strip(),
                            path=sub.path,
                        )

                    event: str | None = None
                    async for line in resp.aiter_lines():
                        if not sub.active:
                            return
                        if line.startswith("event:"):
                            event = line[len("event:") :].strip()
                        elif line.startswith("data:"):
                            if apply_stream_event(holder, event, line[len("data:") :].strip()):
                                await sub.deliver(snapshot_copy(get_node(holder, (_ROOT,))))
                                if not first.done():
                                    first.set_result(None)
                        elif not line:
                            event = None

                logger.info("Stream closed by server path=%s", sub.path)

            except asyncio.CancelledError:
                raise
            except StoreUnavailable as e:
                if not first.done():
                    first.set_exception(e)
                    return
                if isinstance(e, StreamRevoked):
                    logger.error("Stream ended path=%s: %s", sub.path, e)
                    sub.cancel()
                    return
                logger.warning("Stream error path=%s: %s", sub.path, e)
            except httpx.HTTPError as e:
                if not first.done():
                    first.set_exception(
                        StoreUnavailable(f"Stream {sub.path} failed: {describe_http_error(e)}", path=sub.path)
                    )
                    return
                logger.warning("Stream transport error path=%s: %s", sub.path, describe_http_error(e))

            if not sub.active:
                return
            await asyncio.sleep(self._reconnect_delay)
