"""Pytest fixtures for SaveBackup tests."""
import asyncio
import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple, Union

import pytest

from savebackup.core.config import AuthMode, BackendKind, UploadTarget
from savebackup.core.retry import ExponentialBackoffStrategy


class FakeResponse:
    """Minimal aiohttp response stand-in, usable as an async context manager."""

    def __init__(
        self,
        status: int = 200,
        body: Any = '',
        headers: Dict[str, str] = None,
        delay: float = 0.0
    ):
        self.status = status
        self._body = body if isinstance(body, str) else json.dumps(body)
        self.headers = headers or {}
        self._delay = delay

    async def text(self) -> str:
        return self._body

    async def __aenter__(self) -> 'FakeResponse':
        if self._delay:
            await asyncio.sleep(self._delay)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


@dataclass
class RecordedCall:
    method: str
    url: str
    kwargs: Dict[str, Any] = field(default_factory=dict)

    @property
    def json(self) -> Any:
        return self.kwargs.get('json')

    @property
    def headers(self) -> Dict[str, str]:
        return self.kwargs.get('headers') or {}


Scripted = Union[FakeResponse, BaseException, Callable[[RecordedCall], Any]]


class FakeSession:
    """
    Scripted stand-in for aiohttp.ClientSession.

    Responses are queued per (method, url). The last queued item is
    reused once the queue is down to one. Items may be a FakeResponse,
    an exception to raise, or a callable receiving the RecordedCall.
    """

    def __init__(self):
        self.calls: List[RecordedCall] = []
        self.closed = False
        self._routes: Dict[Tuple[str, str], List[Scripted]] = {}

    def add(self, method: str, url: str, *responses: Scripted) -> 'FakeSession':
        self._routes.setdefault((method.upper(), url), []).extend(responses)
        return self

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        call = RecordedCall(method.upper(), str(url), kwargs)
        self.calls.append(call)

        queue = self._routes.get((call.method, call.url))
        if not queue:
            raise AssertionError(f"Unexpected request: {call.method} {call.url}")
        item = queue[0] if len(queue) == 1 else queue.pop(0)

        if callable(item) and not isinstance(item, FakeResponse):
            item = item(call)
        if isinstance(item, BaseException):
            raise item
        return item

    def calls_to(self, method: str, url: str) -> List[RecordedCall]:
        return [c for c in self.calls if c.method == method.upper() and c.url == url]

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    """Scripted HTTP session."""
    return FakeSession()


@pytest.fixture
def no_wait_retry():
    """Backoff strategy that never sleeps."""
    return ExponentialBackoffStrategy(base_delay=0)


@pytest.fixture
def rootz_target():
    """Multipart object store target."""
    return UploadTarget(
        kind=BackendKind.MULTIPART_OBJECT_STORE,
        endpoint='https://rootz.test',
        multipart_threshold=4 * 1024 * 1024,
    )


@pytest.fixture
def buzzheavier_target():
    """Anonymous simple object store target."""
    return UploadTarget(
        kind=BackendKind.SIMPLE_OBJECT_STORE,
        endpoint='https://w.bh.test',
        auth_mode=AuthMode.ANONYMOUS,
        public_base_url='https://bh.test/f',
    )


@pytest.fixture
def make_file(tmp_path):
    """Create a file with given content and optional mtime."""
    def _make(name: str, content: bytes = b'save', mtime: float = None):
        path = tmp_path / name
        path.write_bytes(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path
    return _make


@pytest.fixture
def make_response():
    """Factory for scripted responses."""
    return FakeResponse
