"""Shared fixtures: a copied curl command and an in-memory docs API."""
import json
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from docuploader.models import UploadConfig
from docuploader.services.api_client import DocsAPIClient
from docuploader.utils.curl_parser import parse_curl

CURL_TEXT = "\n".join(
    [
        "curl 'https://claude.ai/api/organizations/org-123/projects/proj-456/docs' \\",
        "  -H 'accept: */*' \\",
        "  -H 'Cookie: sessionKey=sk-ant-abc; lastActiveOrg=org-123' \\",
        "  -H 'User-Agent: TestAgent/1.0' \\",
        "  -H 'content-type: text/plain' \\",
        "  --data-raw '{\"file_name\":\"x.md\",\"content\":\"x\"}'",
    ]
)


class FakeDocsAPI:
    """
    In-memory stand-in for the remote docs endpoints.

    ``responder`` may override the answer to any POST; it receives the file
    name and content and returns a Response or None for the default 201.
    """

    def __init__(self, responder: Optional[Callable[[str, str], Optional[httpx.Response]]] = None):
        self.responder = responder
        self.requests: List[httpx.Request] = []
        self.docs: Dict[str, str] = {}
        self.delete_status: Dict[str, int] = {}
        self._counter = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST":
            payload = json.loads(request.content)
            if self.responder is not None:
                response = self.responder(payload["file_name"], payload["content"])
                if response is not None:
                    return response
            self._counter += 1
            uuid = f"uuid-{self._counter}"
            self.docs[uuid] = payload["file_name"]
            return httpx.Response(201, json={"uuid": uuid, "file_name": payload["file_name"]})

        if request.method == "DELETE":
            uuid = request.url.path.rsplit("/", 1)[-1]
            status = self.delete_status.get(uuid)
            if status is not None:
                return httpx.Response(status, text="nope")
            if self.docs.pop(uuid, None) is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(204)

        return httpx.Response(405)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client_factory(self, auth, config: UploadConfig) -> DocsAPIClient:
        return DocsAPIClient(auth, base_url=config.base_url, transport=self.transport)

    def methods(self) -> List[str]:
        return [request.method for request in self.requests]


@pytest.fixture
def curl_text():
    return CURL_TEXT


@pytest.fixture
def auth():
    return parse_curl(CURL_TEXT)


@pytest.fixture
def fake_api():
    return FakeDocsAPI()


@pytest.fixture
def project_dir(tmp_path):
    """A small project tree: two uploadable files and one unsupported."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "README.md").write_text("# Hello\n", encoding="utf-8")
    (root / "src").mkdir()
    (root / "src" / "main.rs").write_text("fn main() {}\n", encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n")
    return root


@pytest.fixture
def make_fake_api():
    return FakeDocsAPI
