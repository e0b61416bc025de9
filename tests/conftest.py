"""Shared fixtures: an isolated ~/.delve and a fake Delve API server."""

import asyncio
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

# Ensure project root is importable
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def isolated_delve_home(tmp_path, monkeypatch):
    """Point DELVE_HOME at a temp dir and clear Delve variables from the environment."""
    home = tmp_path / "delve-home"
    monkeypatch.setenv("DELVE_HOME", str(home))
    monkeypatch.delenv("DELVE_TOKEN", raising=False)
    monkeypatch.delenv("DELVE_BASE_URL", raising=False)
    return home


class FakeDelve:
    """Records every request and answers with a configurable response."""

    def __init__(self):
        self.calls = []
        self.status = 200
        self.json_body = {"ok": True}
        self.text_body = None
        self.delay = 0.0
        self.server = None

    @property
    def base_url(self) -> str:
        return f"http://{self.server.host}:{self.server.port}"

    def respond(self, status=200, json_body=None, text_body=None, delay=0.0):
        self.status = status
        self.json_body = json_body
        self.text_body = text_body
        self.delay = delay

    async def handle(self, request: web.Request) -> web.Response:
        raw = await request.text()
        self.calls.append({
            "method": request.method,
            "path": request.path,
            "raw_path": request.raw_path,
            "headers": dict(request.headers),
            "body": raw,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.text_body is not None:
            return web.Response(status=self.status, text=self.text_body, content_type="text/plain")
        if self.json_body is not None:
            return web.json_response(self.json_body, status=self.status)
        return web.Response(status=self.status)


@pytest_asyncio.fixture
async def fake_delve():
    fake = FakeDelve()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", fake.handle)
    server = TestServer(app)
    await server.start_server()
    fake.server = server
    yield fake
    await server.close()
