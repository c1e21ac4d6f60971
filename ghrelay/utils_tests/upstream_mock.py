from typing import Callable, List, Optional

import httpx


def reply(status: int = 200, body: bytes = b"", headers: Optional[dict] = None) -> httpx.Response:
    """Upstream response with an unread body, like the ones a real transport hands back"""
    headers = dict(headers or {})
    if body:
        headers.setdefault("content-length", str(len(body)))
    return httpx.Response(status, headers=headers, stream=httpx.ByteStream(body))


class Upstream:
    """Fake upstream: records every request and answers from a handler"""

    def __init__(self, handler: Optional[Callable[[httpx.Request], httpx.Response]] = None):
        self.handler = handler or (lambda request: reply(200, b"ok"))
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def urls(self):
        return [str(r.url) for r in self.requests]
