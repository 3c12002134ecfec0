from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Mapping, Protocol

from playwright.async_api import APIRequestContext, async_playwright

from ge_sync.dms.endpoints import FORM_HEADERS, HEADERS
from ge_sync.errors import UpstreamHttpError


@dataclass
class DmsResponse:
    url: str
    status: int
    status_text: str = ""
    content_type: str = ""
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def raise_for_status(self) -> "DmsResponse":
        if not self.ok:
            raise UpstreamHttpError(url=self.url, status=self.status, status_text=self.status_text, body=self.body)
        return self


class DmsTransport(Protocol):
    async def get(self, url: str, *, referer: str | None = None, xhr: bool = False) -> DmsResponse: ...

    async def post_form(
        self,
        url: str,
        form: Mapping[str, str],
        *,
        referer: str | None = None,
        xhr: bool = False,
    ) -> DmsResponse: ...


def _headers(referer: str | None, xhr: bool, extra: Mapping[str, str] | None = None) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if extra:
        headers.update(extra)
    if referer:
        headers["Referer"] = referer
    if xhr:
        headers["X-Requested-With"] = "XMLHttpRequest"
    return headers


class DmsClient:
    """Issue DMS requests with one cookie header through a Playwright request context."""

    def __init__(self, request: APIRequestContext) -> None:
        self.request = request

    @staticmethod
    async def _wrap(url: str, response) -> DmsResponse:
        return DmsResponse(
            url=url,
            status=response.status,
            status_text=response.status_text,
            content_type=response.headers.get("content-type", ""),
            body=await response.body(),
        )

    async def get(self, url: str, *, referer: str | None = None, xhr: bool = False) -> DmsResponse:
        response = await self.request.get(url, headers=_headers(referer, xhr), fail_on_status_code=False)
        return await self._wrap(url, response)

    async def post_form(
        self,
        url: str,
        form: Mapping[str, str],
        *,
        referer: str | None = None,
        xhr: bool = False,
    ) -> DmsResponse:
        response = await self.request.post(
            url,
            form=dict(form),
            headers=_headers(referer, xhr, FORM_HEADERS),
            fail_on_status_code=False,
        )
        return await self._wrap(url, response)


@asynccontextmanager
async def open_dms_client(cookie_header: str, *, timeout_ms: int = 60_000) -> AsyncIterator[DmsClient]:
    async with async_playwright() as playwright:
        request = await playwright.request.new_context(
            extra_http_headers={**HEADERS, "Cookie": cookie_header},
            timeout=timeout_ms,
        )
        try:
            yield DmsClient(request)
        finally:
            await request.dispose()
