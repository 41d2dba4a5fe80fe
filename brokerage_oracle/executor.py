# brokerage_oracle/executor.py
"""
Position job: the script the oracle network runs once per request.

    Start -> ValidateSecrets -> Fetch -> ValidateResponse -> Encode -> Done
                   |               |            |               |
                   +---------------+------------+---------------+--> Failed(reason)

Takes the decrypted secrets explicitly and no positional arguments. Issues
exactly one authenticated GET, never retries, and returns either the
32-byte uint256 encoding of round(market_value * 100) or an error string.
"""

import json
import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import requests

from . import codec
from .bundle import SecretBundle
from .errors import EncodingError, FetchError, MissingCredential, OracleError, ValidationError

log = logging.getLogger("brokerage-oracle.job")

TIMEOUT = 9
KEY_HEADER = "APCA-API-KEY-ID"
SECRET_HEADER = "APCA-API-SECRET-KEY"

CREDENTIALS_NOT_PROVIDED = "credentials not provided"
INVALID_RESPONSE_SHAPE = "invalid response shape"


@dataclass(frozen=True)
class JobResult:
    result: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def hexstring(self) -> Optional[str]:
        return codec.to_hexstring(self.result) if self.result is not None else None


def parse_market_value(body) -> Decimal:
    """Validate {"data": {"market_value": <number>}} and return the value."""
    data = body.get("data") if isinstance(body, dict) else None
    value = data.get("market_value") if isinstance(data, dict) else None

    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValidationError(INVALID_RESPONSE_SHAPE)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(INVALID_RESPONSE_SHAPE)
        value = Decimal(str(value))
    value = Decimal(value)
    if not value.is_finite():
        raise ValidationError(INVALID_RESPONSE_SHAPE)
    return value


class RequestExecutor:
    def __init__(self, secrets, session=None, timeout=TIMEOUT):
        if not isinstance(secrets, SecretBundle):
            secrets = SecretBundle.from_mapping(secrets)
        self.secrets = secrets
        self.session = session if session is not None else requests
        self.timeout = timeout

    def run(self, args=()) -> JobResult:
        try:
            return JobResult(result=self.execute(args))
        except OracleError as e:
            log.error(f"Job failed: {e}")
            return JobResult(error=str(e))

    def execute(self, args=()) -> bytes:
        self._validate_secrets(args)
        body = self._fetch()
        value = parse_market_value(body)
        log.info(f"TSLA position market value: {value}")
        try:
            return codec.encode(value)
        except EncodingError as e:
            raise EncodingError(f"cannot encode market value: {e}") from None

    def _validate_secrets(self, args):
        if not self.secrets.api_key or not self.secrets.api_secret:
            raise MissingCredential(CREDENTIALS_NOT_PROVIDED)
        if not self.secrets.api_url:
            raise MissingCredential("position URL not provided")
        if args:
            raise ValidationError(f"job takes no arguments, got {len(args)}")

    def _fetch(self):
        headers = {
            "Accept": "application/json",
            KEY_HEADER: self.secrets.api_key,
            SECRET_HEADER: self.secrets.api_secret,
        }
        try:
            r = self.session.get(self.secrets.api_url, headers=headers, timeout=self.timeout)
        except requests.Timeout:
            raise FetchError(f"request timed out after {self.timeout}s") from None
        except requests.RequestException as e:
            raise FetchError(f"request failed: {e.__class__.__name__}") from None

        if not 200 <= r.status_code < 300:
            raise FetchError(f"HTTP {r.status_code} from position endpoint")

        try:
            return json.loads(r.text, parse_float=Decimal)
        except ValueError:
            raise ValidationError(INVALID_RESPONSE_SHAPE) from None
