import json

import pytest
from fastapi.testclient import TestClient

from app import create_app
from relay import SignalingRelay


class FakeWebSocket:
    """Stand-in for a live connection; records every frame sent to it."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_text(self, data: str):
        if self.fail:
            raise RuntimeError("connection lost")
        self.sent.append(json.loads(data))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def relay():
    return SignalingRelay()


@pytest.fixture
def connect(relay):
    def _connect(fail: bool = False):
        ws = FakeWebSocket(fail=fail)
        return relay.register(ws), ws
    return _connect


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client
