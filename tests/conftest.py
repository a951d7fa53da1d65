import sys
import threading
from pathlib import Path

import pytest

# Ensure project root is on sys.path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from watchrec.engine import Recommender
from watchrec.server import WatchServer
from watchrec.store import WatchStore


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    return WatchStore()


@pytest.fixture
def recommender(store):
    return Recommender(store)


@pytest.fixture
def server_factory(recommender):
    started = []

    def start(**kwargs) -> WatchServer:
        server = WatchServer(("127.0.0.1", 0), recommender, **kwargs)
        threading.Thread(target=server.serve_forever, daemon=True).start()
        started.append(server)
        return server

    yield start
    for server in started:
        server.shutdown()
        server.server_close()


@pytest.fixture
def tcp_server(server_factory):
    return server_factory()
