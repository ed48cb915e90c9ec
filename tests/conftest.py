"""Shared fixtures: a scriptable fake HTTP transport and DoH response builders."""
import asyncio
import json
import os
import tempfile
from typing import Callable, List, Optional, Union

import pytest

os.environ.setdefault("NETSCOPE_LOG_FILE", os.path.join(tempfile.mkdtemp(), "netscope-test.jsonl"))
os.environ.setdefault("NETSCOPE_LOG_LEVEL", "DEBUG")

from netScope import intel  # noqa: E402
from netScope.lookup.transport import HTTPRequest, HTTPResponse  # noqa: E402

Handler = Callable[[HTTPRequest], Union[HTTPResponse, BaseException]]


def json_response(payload, status: int = 200) -> HTTPResponse:
    return HTTPResponse(status=status, body=json.dumps(payload).encode())


def doh_response(answers: Optional[list] = None, status: int = 200) -> HTTPResponse:
    payload = {"Status": 0, "TC": False, "RD": True, "RA": True}
    if answers is not None:
        payload["Answer"] = answers
    return json_response(payload, status=status)


def answer(name: str, rtype: int, data: str, ttl: int = 300) -> dict:
    return {"name": name, "type": rtype, "TTL": ttl, "data": data}


class FakeTransport:
    """Records every request and answers it through a handler function."""

    def __init__(self, handler: Optional[Handler] = None, delay: float = 0.0) -> None:
        self.handler = handler or (lambda request: doh_response([]))
        self.delay = delay
        self.requests: List[HTTPRequest] = []
        self.start_times: List[float] = []
        self.completed = 0
        self.started_at_first_completion: Optional[int] = None

    async def perform(self, request: HTTPRequest) -> HTTPResponse:
        self.requests.append(request)
        self.start_times.append(asyncio.get_running_loop().time())
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.completed == 0:
            self.started_at_first_completion = len(self.requests)
        self.completed += 1

        result = self.handler(request)
        if isinstance(result, BaseException):
            raise result
        return result

    def params_for(self, record_type: str) -> List[dict]:
        return [r.params for r in self.requests if r.params.get("type") == record_type]


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture(autouse=True)
def reset_intel_state():
    """Circuit breakers and rate limiters are process-wide; start each test clean."""
    for breaker in intel._circuit_breakers.values():
        breaker.reset()
    intel._rate_limiters.clear()
    yield
