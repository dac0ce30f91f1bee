from __future__ import annotations

import asyncio

import httpx


DEFAULT_TIMEOUT_SECONDS = 15.0


class FetchError(Exception):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason


class FetchTimeoutError(FetchError):
    def __init__(self, url: str, timeout_seconds: float) -> None:
        super().__init__(url, f"timeout after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds


class HttpStatusError(FetchError):
    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, f"http_{status_code}")
        self.status_code = status_code


async def fetch(
    client: httpx.AsyncClient,
    *,
    url: str,
    user_agent: str,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    extra_headers: dict[str, str] | None = None,
) -> bytes:
    headers = {
        "User-Agent": user_agent,
        "Accept": "application/json, application/geo+json, application/xml, application/rss+xml, application/atom+xml, text/xml, */*",
    }
    if extra_headers:
        headers.update(extra_headers)

    timeout = httpx.Timeout(
        connect=5.0, read=timeout_seconds, write=5.0, pool=5.0
    )
    try:
        # Cancelling the request closes its stream and returns the
        # connection to the pool.
        async with asyncio.timeout(timeout_seconds):
            response = await client.get(url, headers=headers, timeout=timeout)
    except (TimeoutError, httpx.TimeoutException) as e:
        raise FetchTimeoutError(url, timeout_seconds) from e
    except httpx.RequestError as e:
        raise FetchError(url, f"request_error:{e.__class__.__name__}") from e

    if not response.is_success:
        raise HttpStatusError(url, response.status_code)
    return response.content
