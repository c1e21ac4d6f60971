"""
GitHub proxy (ghproxy style)
----------------------------
Usage:
  /<github url>            →  proxy releases, archives, raw files, gists and git clones

Examples:
  http://127.0.0.1:8000/https://github.com/python/cpython/archive/refs/heads/main.zip
  http://127.0.0.1:8000/github.com/python/cpython/blob/main/README.rst
  http://127.0.0.1:8000/?q=https://raw.githubusercontent.com/python/cpython/main/README.rst
  git clone http://127.0.0.1:8000/https://github.com/python/cpython
"""

import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse, RedirectResponse, StreamingResponse

from ghrelay.config import Settings
from ghrelay.errors import InputRejected, ParseFailure, PolicyBlocked, ProxyError
from ghrelay.fetcher import BODYLESS_METHODS, Fetcher, HttpxFetcher, OutboundRequest
from ghrelay.headers import PREFLIGHT_HEADERS, outbound_headers, relay_header_items
from ghrelay.normalize import ensure_https, extract_raw_path, normalize_target, safe_url
from ghrelay.patterns import Classification, classify
from ghrelay.resolver import RedirectResolver
from ghrelay.rewrite import to_jsdelivr_url, to_raw_github

logger = logging.getLogger("uvicorn.error")

MAX_STREAM_CHUNK = 64 * 1024  # 64KB 流式块大小
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS", "TRACE"]


# ===========================
# Helper Functions
# ===========================
def make_response(body: str, status: int = 200) -> Response:
    """Plain text response that cross-origin callers can still read"""
    return PlainTextResponse(body, status_code=status, headers={"access-control-allow-origin": "*"})


def inbound_path(request: Request) -> str:
    # raw_path 保留百分号编码，目标 URL 原样转发
    raw = request.scope.get("raw_path")
    if raw:
        return raw.decode("latin-1").split("?", 1)[0]
    return request.url.path


async def stream_response(resp: httpx.Response):
    """Stream upstream bytes as received, closing the upstream when done or cancelled"""
    try:
        async for chunk in resp.aiter_raw(MAX_STREAM_CHUNK):
            yield chunk
    finally:
        await resp.aclose()


def relay(resp: httpx.Response) -> StreamingResponse:
    response = StreamingResponse(stream_response(resp), status_code=resp.status_code)
    for k, v in relay_header_items(resp.headers):
        response.headers.append(k, v)
    return response


# ===========================
# Proxy Core Logic
# ===========================
async def proxy_request(request: Request, target: str, settings: Settings, resolver: RedirectResolver) -> Response:
    url = ensure_https(target)
    if not settings.is_whitelisted(url):
        logger.warning("blocked by white list: %s", url)
        raise PolicyBlocked()

    if safe_url(url) is None:
        raise ParseFailure()

    body = None
    if request.method.upper() not in BODYLESS_METHODS:
        # 读入内存，内部跳转时需要重发同一个 body
        body = await request.body()
    outbound = OutboundRequest.build(request.method, outbound_headers(request.headers.items()), body)

    resp = await resolver.resolve(url, outbound)
    return relay(resp)


def query_redirect(request: Request, settings: Settings) -> Optional[Response]:
    """?q=<url> is the same request as <prefix><url>; send the client there"""
    query = request.query_params.get("q")
    if not query:
        return None
    return RedirectResponse(f"https://{request.url.netloc}{settings.prefix_path}{query}", status_code=301)


async def dispatch(request: Request, settings: Settings, resolver: RedirectResolver) -> Response:
    redirect = query_redirect(request, settings)
    if redirect is not None:
        return redirect

    raw_path = extract_raw_path(inbound_path(request), request.url.query, settings.prefix_path)
    target = normalize_target(raw_path)
    if not target:
        raise InputRejected()

    kind = classify(target)
    logger.debug("%s %s classified as %s", request.method, target, kind.value or "unclassified")
    if kind is Classification.UNCLASSIFIED:
        raise InputRejected()

    if request.method.upper() == "OPTIONS" and "access-control-request-headers" in request.headers:
        return Response(status_code=204, headers=PREFLIGHT_HEADERS)

    if kind in (Classification.BLOB, Classification.RAW) and settings.use_jsdelivr:
        mirror = to_jsdelivr_url(target)
        if mirror:
            logger.info("redirecting %s to mirror %s", target, mirror)
            return RedirectResponse(mirror, status_code=302)

    if kind is Classification.BLOB:
        target = to_raw_github(target) or target

    return await proxy_request(request, target, settings, resolver)


# ===========================
# App
# ===========================
def create_app(settings: Optional[Settings] = None, fetcher: Optional[Fetcher] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    fetcher = fetcher or HttpxFetcher(timeout=settings.timeout)
    resolver = RedirectResolver(fetcher, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # 关闭阶段（释放连接）
        aclose = getattr(fetcher, "aclose", None)
        if aclose is not None:
            await aclose()

    app = FastAPI(title="ghrelay", lifespan=lifespan)
    app.state.settings = settings
    app.state.resolver = resolver

    @app.api_route(settings.prefix_path + "{url:path}", methods=ALL_METHODS)
    async def proxy_path(url: str, request: Request):
        """Proxy a GitHub URL given in the path"""
        try:
            return await dispatch(request, settings, resolver)
        except ProxyError as e:
            return make_response(e.detail, e.status_code)
        except Exception:
            logger.exception("unhandled error proxying %s", request.url)
            return make_response(f"proxy error:\n{traceback.format_exc()}", 502)

    if settings.prefix_path != "/":
        @app.api_route("/{path:path}", methods=ALL_METHODS)
        async def outside_prefix(path: str, request: Request):
            return query_redirect(request, settings) or make_response("Not Found", 404)

    return app


app = create_app()


if __name__ == "__main__":
    _settings = app.state.settings
    uvicorn.run(app, host=_settings.host, port=_settings.port, log_level=_settings.log_level.lower())
