# brokerage_oracle/gateway.py
"""
Local DON gateway for development and simulation.

Implements the receiving side of the secrets upload protocol:
  1. Verifies the request signature against the declared signer
  2. Optionally opens the blob with the DON private key (signer check)
  3. Stores the blob in the addressed slot, replacing any earlier record
  4. Assigns the slot version (monotonically increasing per slot)

Usage:
    brokerage-oracle gateway --port 9200
"""

import base64
import binascii
import logging
import threading
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .distribution import METHOD, canonical_request
from .encryption import EncryptedSecrets, decrypt_secrets, verify_signature
from .errors import EncryptionError

log = logging.getLogger("brokerage-oracle.gateway")


class SlotStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._slots = {}

    def put(self, don_id, slot_id, blob, signer, expiration) -> int:
        with self._lock:
            prev = self._slots.get((don_id, slot_id))
            version = prev["version"] + 1 if prev else 1
            self._slots[(don_id, slot_id)] = {
                "version": version,
                "payload": blob,
                "signer": signer,
                "expiration": expiration,
            }
            return version

    def get(self, don_id, slot_id):
        with self._lock:
            return self._slots.get((don_id, slot_id))


def _reject(message, status=400):
    return JSONResponse({"success": False, "error_message": message}, status_code=status)


def create_app(don_id, don_private_key=None, store=None) -> FastAPI:
    store = store if store is not None else SlotStore()
    app = FastAPI(
        title="Brokerage Oracle Dev Gateway",
        description="Local stand-in for a DON secrets gateway",
    )
    app.state.store = store

    @app.post("/")
    async def secrets_set(request: Request):
        try:
            body = await request.json()
        except ValueError:
            return _reject("request body is not JSON")
        if not isinstance(body, dict) or body.get("method") != METHOD:
            return _reject(f"unsupported method, expected {METHOD}")

        try:
            slot_id = body["slot_id"]
            expiration = body["expiration"]
            signer = body["signer"]
            signature = body["signature"]
            payload = base64.b64decode(body["payload"], validate=True)
        except KeyError as e:
            return _reject(f"missing field: {e.args[0]}")
        except (binascii.Error, TypeError):
            return _reject("payload is not base64")

        if body.get("don_id") != don_id:
            return _reject(f"unknown DON id: {body.get('don_id')}")
        if isinstance(slot_id, bool) or not isinstance(slot_id, int) or slot_id < 0:
            return _reject("slot_id must be a non-negative integer")
        if not isinstance(expiration, int) or expiration <= int(time.time() * 1000):
            return _reject("expiration must be in the future")
        if not verify_signature(signer, canonical_request(body), signature):
            return _reject("invalid request signature", status=401)

        if don_private_key:
            blob = EncryptedSecrets(ciphertext=payload, signer=signer, don_id=don_id)
            try:
                decrypt_secrets(blob, don_private_key)
            except EncryptionError as e:
                return _reject(f"secrets rejected: {e}")

        version = store.put(don_id, slot_id, payload, signer, expiration)
        log.info(f"Slot {slot_id} stored: version {version}, signer {signer[:16]}...")
        return JSONResponse({"success": True, "version": version, "expiration": expiration})

    @app.get("/health")
    def health():
        return {"status": "ok", "don_id": don_id}

    return app
