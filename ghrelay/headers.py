from typing import Iterable, Iterator, List, Tuple

import httpx

PREFLIGHT_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-allow-methods": "GET,POST,PUT,PATCH,TRACE,DELETE,HEAD,OPTIONS",
    "access-control-max-age": "1728000",
}

# 源站给自己页面用的安全头，经代理转发后只会造成破坏
STRIPPED_RESPONSE_HEADERS = (
    "content-security-policy",
    "content-security-policy-report-only",
    "clear-site-data",
)

HOP_BY_HOP = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
})


def outbound_headers(client_headers: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Client headers minus host; httpx fills in the upstream host itself"""
    out = []
    for k, v in client_headers:
        name = k.lower()
        if name == "host" or name in HOP_BY_HOP:
            continue
        out.append((k, v))
    return out


def sanitize_response_headers(headers: httpx.Headers) -> httpx.Headers:
    headers["access-control-expose-headers"] = "*"
    headers["access-control-allow-origin"] = "*"
    for name in STRIPPED_RESPONSE_HEADERS:
        headers.pop(name, None)
    return headers


def relay_header_items(headers: httpx.Headers) -> Iterator[Tuple[str, str]]:
    """Every header occurrence except the ones tied to the upstream connection"""
    for k, v in headers.multi_items():
        if k.lower() not in HOP_BY_HOP:
            yield k, v
