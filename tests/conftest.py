"""
Pytest configuration and fixtures for Upstage node tests.
"""

import json
from email.parser import BytesParser
from email.policy import HTTP
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from upstage_nodes.runtime import BinaryData, ExecutionContext, ExecutionItem


class UpstageStub:
    """Records requests and answers them with a fixed or computed response."""

    def __init__(self, response: Any = None, status_code: int = 200, handler: Optional[Callable] = None):
        self.requests: List[httpx.Request] = []
        self.response = {} if response is None else response
        self.status_code = status_code
        self.handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.handler is not None:
            return self.handler(request)
        return httpx.Response(self.status_code, json=self.response)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def json_body(self, index: int = 0) -> Dict[str, Any]:
        return json.loads(self.requests[index].content)


def parse_multipart(request: httpx.Request):
    """Parse a captured multipart request into (fields, file_part)."""
    raw = b"Content-Type: " + request.headers["content-type"].encode() + b"\r\n\r\n" + request.content
    message = BytesParser(policy=HTTP).parsebytes(raw)
    fields = {}
    file_part = None
    for part in message.iter_parts():
        if part.get_filename() is not None:
            file_part = {
                "name": part.get_param("name", header="content-disposition"),
                "filename": part.get_filename(),
                "content_type": part.get_content_type(),
                "data": part.get_payload(decode=True),
            }
        else:
            fields[part.get_param("name", header="content-disposition")] = part.get_payload(decode=True).decode()
    return fields, file_part


@pytest.fixture(autouse=True)
def upstage_api_key(monkeypatch):
    """Configure a test API key for every test."""
    monkeypatch.setenv("UPSTAGE_API_KEY", "up_test_key")
    return "up_test_key"


@pytest.fixture
def pdf_item():
    """Input item carrying a small PDF in the "data" binary property."""
    return ExecutionItem(
        json={"source": "mailbox"},
        binary={
            "data": BinaryData(
                data=b"%PDF-1.4 sample\x00 payload",
                file_name="invoice.pdf",
                mime_type="application/pdf",
                file_size=24,
            )
        },
    )


@pytest.fixture
def make_context():
    """Build an ExecutionContext for a node wired to an UpstageStub."""
    def _make(node, items, parameters=None, stub=None, continue_on_fail=False):
        stub = stub or UpstageStub()
        return ExecutionContext(
            node.description,
            items,
            parameters=parameters or {},
            continue_on_fail=continue_on_fail,
            http_client=stub.client(),
        )
    return _make
