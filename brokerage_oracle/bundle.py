# brokerage_oracle/bundle.py
"""
Credential bundle provisioned to the oracle network.

Three named values: the brokerage API key, the API secret and the fully
resolved position endpoint URL. Built fresh per provisioning run from
Settings and discarded after encryption.
"""

import json
from dataclasses import dataclass, field

from .errors import MissingCredential

POSITION_PATH = "/positions/TSLA"

# wire names, as the job reads them
KEY_FIELD = "apiKey"
SECRET_FIELD = "apiSecret"
URL_FIELD = "apiUrl"


@dataclass(frozen=True)
class SecretBundle:
    api_key: str = field(repr=False)
    api_secret: str = field(repr=False)
    api_url: str

    def as_dict(self) -> dict:
        return {
            KEY_FIELD: self.api_key,
            SECRET_FIELD: self.api_secret,
            URL_FIELD: self.api_url,
        }

    def canonical(self) -> str:
        return json.dumps(self.as_dict(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_mapping(cls, data) -> "SecretBundle":
        """Rebuild a bundle from decrypted wire values. Missing names become empty."""
        return cls(
            api_key=str(data.get(KEY_FIELD) or ""),
            api_secret=str(data.get(SECRET_FIELD) or ""),
            api_url=str(data.get(URL_FIELD) or ""),
        )


def position_url(base_url: str) -> str:
    """Position endpoint under the API base URL; empty base gives empty URL."""
    if not base_url:
        return ""
    return base_url.rstrip("/") + POSITION_PATH


def build_secret_bundle(settings) -> SecretBundle:
    """Assemble the bundle, failing fast on any blank credential."""
    missing = [
        name
        for name, value in (
            ("ALPACA_API_KEY", settings.api_key),
            ("ALPACA_SECRET_KEY", settings.api_secret),
            ("ALPACA_API_URL", settings.api_url),
        )
        if not value
    ]
    if missing:
        raise MissingCredential(f"missing credential(s): {', '.join(missing)}")

    return SecretBundle(
        api_key=settings.api_key,
        api_secret=settings.api_secret,
        api_url=position_url(settings.api_url),
    )
