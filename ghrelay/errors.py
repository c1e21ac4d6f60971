class ProxyError(Exception):
    """A request-terminating failure with the status it maps to."""

    status_code = 502
    default_detail = "Bad Gateway"

    def __init__(self, detail: str = None):
        self.detail = detail if detail is not None else self.default_detail
        super().__init__(self.detail)


class InputRejected(ProxyError):
    status_code = 404
    default_detail = "Not Found"


class ParseFailure(ProxyError):
    status_code = 400
    default_detail = "Bad Request"


class PolicyBlocked(ProxyError):
    status_code = 403
    default_detail = "blocked"


class LoopBound(ProxyError):
    status_code = 508
    default_detail = "Too many redirects"


class UpstreamError(ProxyError):
    status_code = 502
