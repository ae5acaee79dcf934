from __future__ import annotations

import fakeredis
import pytest
from fakeredis.aioredis import FakeRedis

from tests.helpers import FakeSubClient


@pytest.fixture
def fake_redis() -> FakeRedis:
    # Fresh server per test so keys never leak between tests.
    return FakeRedis(server=fakeredis.FakeServer())


@pytest.fixture
def sub_client() -> FakeSubClient:
    return FakeSubClient()


@pytest.fixture
def pubsub(sub_client):
    return sub_client.pubsub_obj
