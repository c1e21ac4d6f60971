import httpx

from ghrelay.patterns import is_allowed
from ghrelay.utils_tests.upstream_mock import reply


def test_blob_is_rewritten_and_forwarded(client, upstream):
    resp = client.get("/github.com/a/b/blob/main/f.go")

    assert resp.status_code == 200
    assert resp.text == "ok"
    assert upstream.urls == ["https://github.com/a/b/raw/main/f.go"]


def test_raw_host_is_forwarded_unchanged(client, upstream):
    resp = client.get("/raw.githubusercontent.com/a/b/main/f.go")

    assert resp.status_code == 200
    assert upstream.urls == ["https://raw.githubusercontent.com/a/b/main/f.go"]


def test_scheme_in_path_is_repaired(client, upstream):
    client.get("/https:/github.com/a/b/releases/download/v1/x.tar.gz")
    client.get("/http://github.com/a/b/tags")

    assert upstream.urls == [
        "https://github.com/a/b/releases/download/v1/x.tar.gz",
        "https://github.com/a/b/tags",
    ]


def test_target_query_string_is_forwarded(client, upstream):
    client.get("/github.com/a/b.git/info/refs?service=git-upload-pack")

    assert upstream.urls == ["https://github.com/a/b.git/info/refs?service=git-upload-pack"]


def test_unknown_target_is_not_found(client, upstream):
    resp = client.get("/unknown.example.com/x")

    assert resp.status_code == 404
    assert resp.text == "Not Found"
    assert resp.headers["access-control-allow-origin"] == "*"
    assert upstream.requests == []


def test_empty_target_is_not_found(client, upstream):
    resp = client.get("/")

    assert resp.status_code == 404
    assert upstream.requests == []


def test_q_parameter_redirects_to_path_form(client, upstream):
    resp = client.get("/", params={"q": "https://github.com/a/b/releases/latest"})

    assert resp.status_code == 301
    assert resp.headers["location"] == "https://testserver/https://github.com/a/b/releases/latest"
    assert upstream.requests == []


def test_preflight_is_answered_locally(client, upstream):
    resp = client.options(
        "/github.com/a/b/releases/download/v1/x",
        headers={"access-control-request-headers": "range", "origin": "https://example.com"},
    )

    assert resp.status_code == 204
    assert resp.content == b""
    assert resp.headers["access-control-allow-origin"] == "*"
    assert resp.headers["access-control-allow-methods"] == "GET,POST,PUT,PATCH,TRACE,DELETE,HEAD,OPTIONS"
    assert resp.headers["access-control-max-age"] == "1728000"
    assert upstream.requests == []


def test_preflight_still_needs_a_valid_target(client):
    resp = client.options("/example.com/x", headers={"access-control-request-headers": "range"})
    assert resp.status_code == 404


def test_mirror_redirect_when_enabled(make_client, upstream):
    client = make_client(use_jsdelivr=True)

    blob = client.get("/github.com/a/b/blob/main/dir/f.go")
    raw = client.get("/raw.githubusercontent.com/a/b/v2/f.go")

    assert blob.status_code == 302
    assert blob.headers["location"] == "https://cdn.jsdelivr.net/gh/a/b@main/dir/f.go"
    assert raw.status_code == 302
    assert raw.headers["location"] == "https://cdn.jsdelivr.net/gh/a/b@v2/f.go"
    assert upstream.requests == []


def test_mirror_does_not_apply_to_direct_targets(make_client, upstream):
    client = make_client(use_jsdelivr=True)
    resp = client.get("/github.com/a/b/releases/download/v1/x")

    assert resp.status_code == 200
    assert len(upstream.requests) == 1


def test_white_list_blocks_other_urls(make_client, upstream):
    client = make_client(white_list=("github.com/allowed/",))

    blocked = client.get("/github.com/other/b/releases/download/v1/x")
    allowed = client.get("/github.com/allowed/b/releases/download/v1/x")

    assert blocked.status_code == 403
    assert blocked.text == "blocked"
    assert blocked.headers["access-control-allow-origin"] == "*"
    assert allowed.status_code == 200
    assert upstream.urls == ["https://github.com/allowed/b/releases/download/v1/x"]


def test_host_header_is_not_forwarded(client, upstream):
    client.get("/github.com/a/b/tags", headers={"x-custom": "1"})

    sent = upstream.requests[0]
    assert sent.headers["host"] == "github.com"
    assert sent.headers["x-custom"] == "1"


def test_post_body_reaches_upstream(client, upstream):
    resp = client.post("/github.com/a/b.git/git-upload-pack", content=b"0032want")

    assert resp.status_code == 200
    assert upstream.requests[0].method == "POST"
    assert upstream.requests[0].content == b"0032want"


def test_response_headers_are_sanitized(client, upstream):
    upstream.handler = lambda r: reply(
        200,
        headers={
            "content-security-policy": "default-src 'self'",
            "clear-site-data": '"*"',
            "content-type": "application/octet-stream",
            "etag": '"v1"',
        },
        body=b"bytes",
    )
    resp = client.get("/github.com/a/b/archive/main.zip")

    assert resp.content == b"bytes"
    assert "content-security-policy" not in resp.headers
    assert "clear-site-data" not in resp.headers
    assert resp.headers["etag"] == '"v1"'
    assert resp.headers["content-type"] == "application/octet-stream"
    assert resp.headers["access-control-expose-headers"] == "*"


def test_exposed_redirect_points_back_at_proxy(make_client, upstream):
    client = make_client(prefix="/gh")
    upstream.handler = lambda r: reply(
        302, headers={"location": "https://raw.githubusercontent.com/a/b/main/f.go"})

    resp = client.get("/gh/github.com/a/b/blob/main/f.go")

    assert resp.status_code == 302
    location = resp.headers["location"]
    assert location == "/gh/https://raw.githubusercontent.com/a/b/main/f.go"
    assert is_allowed(location[len("/gh/"):])


def test_redirect_loop_is_508(client, upstream):
    upstream.handler = lambda r: reply(302, headers={"location": "/internal-redirect"})

    resp = client.get("/github.com/a/b/releases/download/v1/x")

    assert resp.status_code == 508
    assert resp.text == "Too many redirects"
    assert resp.headers["access-control-allow-origin"] == "*"
    assert len(upstream.requests) == 6


def test_bad_redirect_location_is_400(client, upstream):
    upstream.handler = lambda r: reply(302, headers={"location": "http://[::1"})

    resp = client.get("/github.com/a/b/archive/main.zip")

    assert resp.status_code == 400
    assert resp.headers["access-control-allow-origin"] == "*"


def test_upstream_connect_error_is_502(client, upstream):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    upstream.handler = handler
    resp = client.get("/github.com/a/b/archive/main.zip")

    assert resp.status_code == 502
    assert resp.text.startswith("Upstream request failed")
    assert resp.headers["access-control-allow-origin"] == "*"


def test_unexpected_failure_is_502_with_diagnostic(client, upstream):
    def handler(request):
        raise RuntimeError("boom")

    upstream.handler = handler
    resp = client.get("/github.com/a/b/archive/main.zip")

    assert resp.status_code == 502
    assert resp.text.startswith("proxy error:")
    assert "RuntimeError: boom" in resp.text
    assert resp.headers["access-control-allow-origin"] == "*"


def test_mirror_falls_back_to_direct_fetch(make_client, upstream):
    client = make_client(use_jsdelivr=True)
    resp = client.get("/github.com/a/b/blob/")

    assert resp.status_code == 200
    assert upstream.urls == ["https://github.com/a/b/blob/"]


def test_paths_outside_prefix_are_plain_404(make_client, upstream):
    client = make_client(prefix="/gh")
    resp = client.get("/github.com/a/b/releases/download/v1/x")

    assert resp.status_code == 404
    assert resp.text == "Not Found"
    assert resp.headers["access-control-allow-origin"] == "*"
    assert upstream.requests == []


def test_q_parameter_works_outside_prefix(make_client, upstream):
    client = make_client(prefix="/gh")
    resp = client.get("/", params={"q": "github.com/a/b/tags"})

    assert resp.status_code == 301
    assert resp.headers["location"] == "https://testserver/gh/github.com/a/b/tags"
    assert upstream.requests == []
