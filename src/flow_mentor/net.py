# src/flow_mentor/net.py

"""Shared httpx helpers for the HTTP-backed store and generation backends."""

from __future__ import annotations

import httpx


def make_timeout(connect_s: float, read_s: float | None) -> httpx.Timeout:
    """read_s=None disables the read timeout (long-lived event streams)."""
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def describe_http_error(exc: Exception) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return "timeout"
    if isinstance(exc, httpx.ConnectError):
        return "connection failed"
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    return exc.__class__.__name__


def error_detail(resp: httpx.Response) -> str:
    """Short error text from a non-2xx response ({"error": "..."} bodies included)."""
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or "").strip()[:200]
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict):
            return str(err.get("message") or err)[:200]
        if err:
            return str(err)[:200]
    return str(body)[:200]
