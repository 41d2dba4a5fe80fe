"""Shared fixtures: keys, settings and a fake requests session."""

import json
import threading

import pytest
import requests
from coincurve import PrivateKey

from brokerage_oracle.bundle import SecretBundle
from brokerage_oracle.config import Settings
from brokerage_oracle.encryption import Signer

ENV_VARS = (
    "ALPACA_API_KEY", "ALPACA_SECRET_KEY", "ALPACA_API_URL", "PRIVATE_KEY",
    "SEPOLIA_RPC_URL", "DON_ID", "DON_PUBLIC_KEY", "DON_PRIVATE_KEY",
    "GATEWAY_URLS", "SECRETS_SLOT_ID", "SECRETS_TTL_MINUTES", "GATEWAY_QUORUM",
    "GATEWAY_TIMEOUT", "FETCH_TIMEOUT", "ORACLE_DATA_DIR",
)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None):
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(body)

    def json(self, **kwargs):
        return json.loads(self.text, **kwargs)


class FakeSession:
    """
    Stands in for the requests module. `routes` maps a URL to a FakeResponse,
    an exception instance (raised) or a callable taking the request kwargs.
    """

    def __init__(self, routes=None, default=None):
        self.routes = dict(routes or {})
        self.default = default
        self.calls = []
        self._lock = threading.Lock()

    def _dispatch(self, method, url, **kwargs):
        with self._lock:
            self.calls.append((method, url, kwargs))
        handler = self.routes.get(url, self.default)
        if handler is None:
            raise requests.ConnectionError(f"no route for {url}")
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(**kwargs)
        return handler

    def get(self, url, **kwargs):
        return self._dispatch("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._dispatch("POST", url, **kwargs)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def don_key():
    return PrivateKey()


@pytest.fixture
def signer():
    return Signer(PrivateKey().to_hex())


@pytest.fixture
def bundle():
    return SecretBundle(
        api_key="PKTESTKEY",
        api_secret="test-secret",
        api_url="https://paper-api.alpaca.markets/v2/positions/TSLA",
    )


@pytest.fixture
def settings(don_key, tmp_path):
    return Settings(
        api_key="PKTESTKEY",
        api_secret="test-secret",
        api_url="https://paper-api.alpaca.markets/v2",
        private_key=PrivateKey().to_hex(),
        don_public_key=don_key.public_key.format().hex(),
        gateway_urls=("https://gw1.example/", "https://gw2.example/"),
        data_dir=tmp_path / "data",
    )
