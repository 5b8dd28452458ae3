import os
import socket
import sys
import urllib.request
from datetime import date
from pathlib import Path

import pytest


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC = REPO_ROOT / "src"
FIXTURES = Path(__file__).resolve().parent / "fixtures"

# Prefer repo sources over any installed package.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


FIXED_TODAY = date(2025, 1, 15)


@pytest.fixture(autouse=True)
def block_network(monkeypatch):
    if os.getenv("LIVE") == "1":
        return

    real_connect = socket.socket.connect

    def guarded_connect(sock, address):
        host = address[0]
        if host not in ("127.0.0.1", "localhost"):
            raise RuntimeError("Network access blocked in tests")
        return real_connect(sock, address)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda *args, **kwargs: (_ for _ in ()).throw(
            RuntimeError("Network access blocked in tests")
        ),
    )


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    from cma_comps.config import reset_settings_cache

    for name in [k for k in os.environ if k.startswith("CMA_")] + ["IDX_GRID_API_KEY"]:
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture()
def listings_fixture_path():
    return FIXTURES / "listings" / "austin_listings.json"


@pytest.fixture()
def fixture_client(listings_fixture_path):
    from cma_comps.providers.fixture import FixtureListingsClient

    return FixtureListingsClient(listings_fixture_path, today_fn=lambda: FIXED_TODAY)
