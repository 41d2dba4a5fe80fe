"""Tests for credential bundle assembly and settings parsing."""

import json
from pathlib import Path

import pytest

from brokerage_oracle.bundle import POSITION_PATH, SecretBundle, build_secret_bundle, position_url
from brokerage_oracle.cli import simulate
from brokerage_oracle.config import DEFAULT_DON_ID, DEFAULT_GATEWAY_URLS, Settings
from brokerage_oracle.errors import ConfigError, MissingCredential

from conftest import FakeSession


class TestBuildSecretBundle:
    def test_builds_position_url(self):
        s = Settings(api_key="k", api_secret="s", api_url="https://paper-api.alpaca.markets/v2")
        bundle = build_secret_bundle(s)
        assert bundle.api_url == "https://paper-api.alpaca.markets/v2/positions/TSLA"
        assert bundle.as_dict() == {
            "apiKey": "k",
            "apiSecret": "s",
            "apiUrl": "https://paper-api.alpaca.markets/v2" + POSITION_PATH,
        }

    def test_trailing_slash_not_doubled(self):
        s = Settings(api_key="k", api_secret="s", api_url="https://api.example/v2/")
        assert build_secret_bundle(s).api_url == "https://api.example/v2/positions/TSLA"

    @pytest.mark.parametrize("base,expected", [
        ("https://api.example/v2", "https://api.example/v2/positions/TSLA"),
        ("https://api.example/v2//", "https://api.example/v2/positions/TSLA"),
        ("", ""),
    ])
    def test_position_url(self, base, expected):
        assert position_url(base) == expected

    def test_simulate_fetches_bundle_url(self):
        s = Settings(api_key="k", api_secret="s", api_url="https://api.example/v2/")
        session = FakeSession()
        simulate(s, session=session)
        assert [url for _, url, _ in session.calls] == [build_secret_bundle(s).api_url]

    @pytest.mark.parametrize("field,env_name", [
        ("api_key", "ALPACA_API_KEY"),
        ("api_secret", "ALPACA_SECRET_KEY"),
        ("api_url", "ALPACA_API_URL"),
    ])
    def test_blank_field_fails(self, field, env_name):
        values = {"api_key": "k", "api_secret": "s", "api_url": "https://api.example"}
        values[field] = ""
        with pytest.raises(MissingCredential, match=env_name):
            build_secret_bundle(Settings(**values))

    def test_repr_masks_credentials(self, bundle):
        text = repr(bundle)
        assert "PKTESTKEY" not in text
        assert "test-secret" not in text

    def test_canonical_is_sorted_compact_json(self, bundle):
        assert bundle.canonical() == json.dumps(bundle.as_dict(), sort_keys=True, separators=(",", ":"))

    def test_from_mapping_tolerates_missing_names(self):
        b = SecretBundle.from_mapping({"apiKey": "k"})
        assert (b.api_key, b.api_secret, b.api_url) == ("k", "", "")


class TestSettings:
    def test_defaults(self, clean_env):
        s = Settings.from_env({})
        assert s.don_id == DEFAULT_DON_ID
        assert s.gateway_urls == DEFAULT_GATEWAY_URLS
        assert s.slot_id == 0
        assert s.ttl_minutes == 1440
        assert s.quorum is None
        assert s.data_dir == Path("data")

    def test_reads_environment(self):
        env = {
            "ALPACA_API_KEY": " key ",
            "ALPACA_SECRET_KEY": "secret",
            "ALPACA_API_URL": "https://paper-api.alpaca.markets/v2",
            "GATEWAY_URLS": "https://a.example/, https://b.example/,",
            "SECRETS_SLOT_ID": "3",
            "SECRETS_TTL_MINUTES": "60",
            "GATEWAY_QUORUM": "2",
            "GATEWAY_TIMEOUT": "2.5",
        }
        s = Settings.from_env(env)
        assert s.api_key == "key"
        assert s.gateway_urls == ("https://a.example/", "https://b.example/")
        assert (s.slot_id, s.ttl_minutes, s.quorum) == (3, 60, 2)
        assert s.gateway_timeout == 2.5

    def test_bad_integer(self):
        with pytest.raises(ConfigError, match="SECRETS_SLOT_ID"):
            Settings.from_env({"SECRETS_SLOT_ID": "zero"})

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigError, match="FETCH_TIMEOUT"):
            Settings.from_env({"FETCH_TIMEOUT": "0"})

    def test_repr_hides_keys(self):
        s = Settings(api_secret="hunter2", private_key="abcd", don_private_key="ef01")
        text = repr(s)
        assert "hunter2" not in text and "abcd" not in text and "ef01" not in text
