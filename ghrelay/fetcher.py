import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple

import httpx

from ghrelay.errors import UpstreamError

logger = logging.getLogger("uvicorn.error")

BODYLESS_METHODS = ("GET", "HEAD")


@dataclass(frozen=True)
class OutboundRequest:
    """What gets sent upstream; identical on every redirect hop"""

    method: str
    headers: Sequence[Tuple[str, str]]
    body: Optional[bytes] = None

    @classmethod
    def build(cls, method: str, headers: Sequence[Tuple[str, str]], body: Optional[bytes]) -> "OutboundRequest":
        method = method.upper()
        if method in BODYLESS_METHODS:
            body = None
        return cls(method=method, headers=tuple(headers), body=body)


class Fetcher(Protocol):
    async def fetch(self, url: str, outbound: OutboundRequest) -> httpx.Response:
        """Send outbound to url without following redirects; body left unread"""
        ...


class HttpxFetcher:
    def __init__(self, timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport or httpx.AsyncHTTPTransport()
        # client 只用来组装请求（默认头、超时），发送直接走 transport
        self.client = httpx.AsyncClient(follow_redirects=False, timeout=timeout, transport=self.transport)

    async def fetch(self, url: str, outbound: OutboundRequest) -> httpx.Response:
        req = self.client.build_request(
            method=outbound.method,
            url=url,
            headers=list(outbound.headers),
            content=outbound.body,
        )
        logger.debug("%s %s", outbound.method, url)
        # client.send 会提前解析 location，坏的跳转地址会被当成传输错误；
        # 跳转由 resolver 自己检查
        try:
            resp = await self.transport.handle_async_request(req)
        except httpx.RequestError as e:
            raise UpstreamError(f"Upstream request failed: {e}") from e
        resp.request = req
        return resp

    async def aclose(self):
        await self.client.aclose()
