import logging
from urllib.parse import urljoin

import httpx

from ghrelay.config import MAX_REDIRECTS, Settings
from ghrelay.errors import LoopBound, ParseFailure
from ghrelay.fetcher import Fetcher, OutboundRequest
from ghrelay.headers import sanitize_response_headers
from ghrelay.normalize import safe_url
from ghrelay.patterns import is_allowed

logger = logging.getLogger("uvicorn.error")


def resolve_location(location: str, base: str) -> str:
    try:
        resolved = urljoin(base, location)
    except ValueError as e:
        raise ParseFailure() from e
    if safe_url(resolved) is None:
        raise ParseFailure()
    return resolved


class RedirectResolver:
    """Fetch a target, exposing in-grammar redirects and following the rest.

    A redirect to a URL the proxy would accept directly is handed back to the
    client with its location pointed at this proxy. Anything else (CDN or
    storage hops the client shouldn't see) is followed here, at most
    MAX_REDIRECTS times.
    """

    def __init__(self, fetcher: Fetcher, settings: Settings):
        self.fetcher = fetcher
        self.settings = settings

    async def resolve(self, url: str, outbound: OutboundRequest, hops: int = 0) -> httpx.Response:
        resp = await self.fetcher.fetch(url, outbound)
        location = resp.headers.get("location")

        if location is not None:
            try:
                resolved = resolve_location(location, url)
            except ParseFailure:
                await resp.aclose()
                raise

            if is_allowed(resolved):
                logger.info("exposing redirect %s -> %s", url, resolved)
                resp.headers["location"] = self.settings.prefix_path + resolved
            else:
                await resp.aclose()
                if hops >= MAX_REDIRECTS:
                    logger.warning("redirect limit reached at %s", resolved)
                    raise LoopBound()
                logger.debug("following redirect #%d %s -> %s", hops + 1, url, resolved)
                return await self.resolve(resolved, outbound, hops + 1)

        sanitize_response_headers(resp.headers)
        return resp
