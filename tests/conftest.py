"""Shared pytest fixtures for the site-forge test suite.

Provides:
- An isolated project directory for the app module (set before import)
- In-memory blob store and scripted chat client fakes
- A TestClient with collaborators overridden through FastAPI dependencies
"""

import hashlib
import os
import tempfile

import pytest

# app.py reads its configuration at import time
os.environ["PROJECT_DIR"] = tempfile.mkdtemp(prefix="site-forge-test-")
os.environ["FRONTEND_DIR"] = os.path.join(os.environ["PROJECT_DIR"], "no-frontend")
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("AZURE_STORAGE_CONNECTION_STRING", None)

from deploy_ops import BlobStore, RemoteBlob, SiteDeployer  # noqa: E402
from errors import DeploymentError, UpstreamModelError  # noqa: E402
from project_store import MemoryProjectStore  # noqa: E402


SAMPLE_OUTPUT = """Here is your website:

--- index.html ---
```html
<!doctype html>
<html><body><h1>Kovil Cafe</h1></body></html>
```
--- style.css ---
```css
body { margin: 0; }
```
--- script.js ---
console.log('ready');
"""


class FakeBlobStore(BlobStore):
    def __init__(self, blobs=None, fail_on=None, headers=None):
        self.blobs = dict(blobs or {})
        self.headers = dict(headers or {})
        self.container_created = False
        self.uploads = []
        self.deletes = []
        self.fail_on = fail_on

    def _maybe_fail(self, op):
        if self.fail_on == op:
            raise DeploymentError(f"{op} rejected")

    def ensure_container(self):
        self._maybe_fail("ensure_container")
        self.container_created = True

    def list_blobs(self):
        self._maybe_fail("list_blobs")
        listing = {}
        for name, data in self.blobs.items():
            h = self.headers.get(name, {})
            listing[name] = RemoteBlob(hashlib.md5(data).digest(), h.get("content_type"), h.get("cache_control"))
        return listing

    def delete(self, name):
        self._maybe_fail("delete")
        self.deletes.append(name)
        del self.blobs[name]
        self.headers.pop(name, None)

    def upload(self, name, data, content_type, cache_control):
        self._maybe_fail("upload")
        self.uploads.append(name)
        self.blobs[name] = data
        self.headers[name] = {"content_type": content_type, "cache_control": cache_control}


class FakeChatClient:
    def __init__(self, intent="A portfolio site", site_output=SAMPLE_OUTPUT, error=None):
        self.intent = intent
        self.site_output = site_output
        self.error = error
        self.calls = []

    def detect_intent(self, tamil_text):
        self.calls.append(("intent", tamil_text))
        if self.error:
            raise self.error
        return self.intent

    def generate_site(self, intent):
        self.calls.append(("generate", intent))
        if self.error:
            raise self.error
        return self.site_output


@pytest.fixture
def sample_output():
    return SAMPLE_OUTPUT


@pytest.fixture
def memory_store():
    return MemoryProjectStore()


@pytest.fixture
def make_blob_store():
    return FakeBlobStore


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def chat_client():
    return FakeChatClient()


@pytest.fixture
def failing_chat_client():
    return FakeChatClient(error=UpstreamModelError("Model request timed out"))


@pytest.fixture
def deployer(blob_store):
    return SiteDeployer(blob_store, live_url="https://example.z13.web.core.windows.net/")


@pytest.fixture
def client(memory_store, chat_client, deployer):
    from fastapi.testclient import TestClient

    import app as app_module

    app_module.app.dependency_overrides[app_module.get_store] = lambda: memory_store
    app_module.app.dependency_overrides[app_module.get_chat_client] = lambda: chat_client
    app_module.app.dependency_overrides[app_module.get_deployer] = lambda: deployer
    try:
        yield TestClient(app_module.app)
    finally:
        app_module.app.dependency_overrides.clear()
