import pathlib
import sys

import fakeredis
import pytest


PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from redis_oauth_storage import RedisStorage  # noqa: E402


@pytest.fixture()
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture()
def redis_client(redis_server):
    return fakeredis.FakeRedis(server=redis_server, decode_responses=True)


@pytest.fixture()
def storage(redis_client):
    return RedisStorage(redis_client.connection_pool)
