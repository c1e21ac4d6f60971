import os
import sys

import httpx
import pytest
from fastapi.testclient import TestClient

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from ghrelay.config import Settings  # noqa: E402
from ghrelay.fetcher import HttpxFetcher  # noqa: E402
from ghrelay.main import create_app  # noqa: E402
from ghrelay.utils_tests.upstream_mock import Upstream  # noqa: E402


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def make_client(upstream):
    def _make(**overrides):
        settings = Settings(**overrides)
        fetcher = HttpxFetcher(transport=httpx.MockTransport(upstream))
        return TestClient(create_app(settings, fetcher), follow_redirects=False)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
