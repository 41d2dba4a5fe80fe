# brokerage_oracle/distribution.py
"""
Upload encrypted secrets to the DON gateways.

- Fans out to every configured gateway concurrently
- Each request carries an explicit timeout
- Enforces an acknowledgement quorum (default: strict majority)
- Reads the slot version back from the gateways, never assumes it
- Never retries; a failed quorum is reported to the caller

Gateway request (POST <gateway_url>):
    {"method": "secrets_set", "don_id", "slot_id", "expiration", "ttl_minutes",
     "payload", "signer", "signature"}
Gateway response:
    {"success": bool, "version": int, "expiration": int, "error_message": str}
"""

import base64
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import requests

from .errors import DistributionError

log = logging.getLogger("brokerage-oracle.distribution")

METHOD = "secrets_set"
TIMEOUT = 10


@dataclass
class GatewayResult:
    url: str
    success: bool
    version: Optional[int] = None
    expiration: Optional[int] = None
    error: Optional[str] = None


@dataclass
class DistributionRecord:
    slot_id: int
    version: int
    expires_at: datetime
    don_id: str = ""
    gateway_results: list = field(default_factory=list)

    def is_expired(self, now=None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "slot_id": self.slot_id,
            "version": self.version,
            "expires_at": self.expires_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "don_id": self.don_id,
            "gateways": [
                {"url": r.url, "success": r.success, "error": r.error}
                for r in self.gateway_results
            ],
        }

    @classmethod
    def from_dict(cls, data) -> "DistributionRecord":
        expires_at = datetime.strptime(data["expires_at"], "%Y-%m-%dT%H:%M:%SZ")
        return cls(
            slot_id=int(data["slot_id"]),
            version=int(data["version"]),
            expires_at=expires_at.replace(tzinfo=timezone.utc),
            don_id=data.get("don_id", ""),
            gateway_results=[
                GatewayResult(url=g["url"], success=g["success"], error=g.get("error"))
                for g in data.get("gateways", [])
            ],
        )


def canonical_request(body: dict) -> str:
    unsigned = {k: v for k, v in body.items() if k != "signature"}
    return json.dumps(unsigned, sort_keys=True, separators=(",", ":"))


class SecretDistributor:
    def __init__(self, signer, gateways, quorum=None, timeout=TIMEOUT, session=None):
        self.signer = signer
        self.gateways = list(dict.fromkeys(gateways))
        if not self.gateways:
            raise ValueError("at least one gateway URL is required")
        if quorum is None:
            quorum = len(self.gateways) // 2 + 1
        if not 1 <= quorum <= len(self.gateways):
            raise ValueError(
                f"quorum must be between 1 and {len(self.gateways)}, got {quorum}"
            )
        self.quorum = quorum
        self.timeout = timeout
        self.session = session if session is not None else requests

    def build_request(self, blob, slot_id: int, ttl_minutes: int, now=None) -> dict:
        now = now if now is not None else time.time()
        body = {
            "method": METHOD,
            "don_id": blob.don_id,
            "slot_id": slot_id,
            "expiration": int((now + ttl_minutes * 60) * 1000),
            "ttl_minutes": ttl_minutes,
            "payload": base64.b64encode(blob.ciphertext).decode(),
            "signer": blob.signer,
        }
        body["signature"] = self.signer.sign(canonical_request(body))
        return body

    def _upload(self, url: str, body: dict) -> GatewayResult:
        try:
            r = self.session.post(url, json=body, timeout=self.timeout)
        except requests.Timeout:
            return GatewayResult(url, False, error=f"timed out after {self.timeout}s")
        except requests.RequestException as e:
            return GatewayResult(url, False, error=f"request failed: {e}")

        if not 200 <= r.status_code < 300:
            return GatewayResult(url, False, error=f"HTTP {r.status_code}")
        try:
            data = r.json()
        except ValueError:
            return GatewayResult(url, False, error="response is not JSON")
        if not isinstance(data, dict):
            return GatewayResult(url, False, error="response is not a JSON object")

        if not data.get("success"):
            return GatewayResult(url, False, error=data.get("error_message") or "upload rejected")

        version = data.get("version")
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            return GatewayResult(url, False, error=f"invalid version in response: {version!r}")

        expiration = data.get("expiration")
        if isinstance(expiration, bool) or not isinstance(expiration, int):
            expiration = None
        return GatewayResult(url, True, version=version, expiration=expiration)

    def distribute(self, blob, slot_id: int, ttl_minutes: int) -> DistributionRecord:
        if isinstance(slot_id, bool) or not isinstance(slot_id, int) or slot_id < 0:
            raise ValueError(f"slot id must be a non-negative integer, got {slot_id!r}")
        if isinstance(ttl_minutes, bool) or not isinstance(ttl_minutes, int) or ttl_minutes <= 0:
            raise ValueError(f"ttl must be a positive number of minutes, got {ttl_minutes!r}")

        body = self.build_request(blob, slot_id, ttl_minutes)
        total = len(self.gateways)
        log.info(f"Uploading secrets to slot {slot_id} on {total} gateway(s), quorum {self.quorum}")

        results = []
        pool = ThreadPoolExecutor(max_workers=total)
        futures = {pool.submit(self._upload, url, body): url for url in self.gateways}
        try:
            # each request is bounded by its own timeout; this bounds the whole fan-out
            for fut in as_completed(futures, timeout=self.timeout * 2 + 1):
                res = fut.result()
                results.append(res)
                if res.success:
                    log.info(f"  ✓ {res.url} accepted (version {res.version})")
                else:
                    log.warning(f"  ✗ {res.url} failed: {res.error}")

                if sum(1 for r in results if r.success) >= self.quorum:
                    break
        except FuturesTimeout:
            done = {r.url for r in results}
            for url in self.gateways:
                if url not in done:
                    results.append(GatewayResult(url, False, error="no response before deadline"))
                    log.warning(f"  ✗ {url} failed: no response before deadline")
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        acks = [r for r in results if r.success]
        if len(acks) < self.quorum:
            errors = "; ".join(f"{r.url}: {r.error}" for r in results if not r.success)
            raise DistributionError(
                f"quorum not met: {len(acks)}/{total} acknowledged, need {self.quorum} ({errors})",
                results,
            )

        versions = sorted({r.version for r in acks})
        if len(versions) > 1:
            raise DistributionError(
                f"gateways disagree on slot version: {versions}", results
            )

        expirations = [r.expiration for r in acks if r.expiration is not None]
        expiration_ms = min(expirations) if expirations else body["expiration"]
        expires_at = datetime.fromtimestamp(expiration_ms / 1000, tz=timezone.utc)

        return DistributionRecord(
            slot_id=slot_id,
            version=versions[0],
            expires_at=expires_at,
            don_id=blob.don_id,
            gateway_results=results,
        )


class SlotLedger:
    """Last successful distribution per slot, one JSON file each. Saves overwrite."""

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)

    def _path(self, slot_id: int) -> Path:
        return self.data_dir / f"secrets_slot_{slot_id}.json"

    def save(self, record: DistributionRecord) -> Path:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(record.slot_id)
        with open(path, "w") as f:
            json.dump(record.to_dict(), f, indent=2)
        return path

    def load(self, slot_id: int) -> Optional[DistributionRecord]:
        path = self._path(slot_id)
        if not path.exists():
            return None
        with open(path) as f:
            return DistributionRecord.from_dict(json.load(f))

    def active(self, slot_id: int, now=None) -> Optional[DistributionRecord]:
        record = self.load(slot_id)
        if record is None or record.is_expired(now):
            return None
        return record
