"""Pytest fixtures and configuration."""
import json
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pytest

from cypher_sdk import Cypher, HttpResponse, RequestExecutor

BASE = "http://localhost:7474/db/data/transaction"
TX = f"{BASE}/9"
EXPIRES = "Tue, 17 Oct 2026 10:30:00 +0000"


@dataclass
class SentRequest:
    method: str
    url: str
    body: Optional[Dict[str, Any]]
    headers: Dict[str, str]

    @property
    def statements(self) -> List[Dict[str, Any]]:
        return (self.body or {}).get("statements", [])


class FakeTransport:
    """Transport that records requests and replays scripted responses."""

    def __init__(self):
        self.sent: List[SentRequest] = []
        self.closed = False
        self._replies = deque()

    @staticmethod
    def result(columns, *rows) -> Dict[str, Any]:
        """One entry of a response ``results`` list."""
        return {"columns": list(columns), "data": [{"row": list(r)} for r in rows]}

    def reply(self, results=(), errors=(), status=200, commit=None, location=None,
              expires=None, transaction=True):
        """Queue a JSON response."""
        payload: Dict[str, Any] = {"results": list(results), "errors": list(errors)}
        if commit:
            payload["commit"] = commit
        if transaction and expires:
            payload["transaction"] = {"expires": expires}
        headers = {"Content-Type": "application/json"}
        if location:
            headers["Location"] = location
        self._replies.append(HttpResponse(status, json.dumps(payload).encode("utf-8"), headers))

    def reply_raw(self, status=200, body=b"", headers=None):
        self._replies.append(HttpResponse(status, body, dict(headers or {})))

    def fail(self, error: Exception):
        """Queue an exception raised instead of a response."""
        self._replies.append(error)

    def reply_begin(self, results=(), location=TX, expires=EXPIRES):
        self.reply(results, status=201, commit=f"{location}/commit",
                   location=location, expires=expires)

    def request(self, method, url, body=None, headers=None):
        decoded = json.loads(body.decode("utf-8")) if body else None
        self.sent.append(SentRequest(method, url, decoded, dict(headers or {})))
        if not self._replies:
            raise AssertionError(f"unexpected {method} {url}")
        reply = self._replies.popleft()
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self):
        self.closed = True


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def executor(transport):
    return RequestExecutor(transport, {"Authorization": "Basic bmVvNGo6bmVvNGo="})


@pytest.fixture
def session(executor):
    return Cypher(BASE, executor)
