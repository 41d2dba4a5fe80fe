# brokerage_oracle/encryption.py
"""
Secret encryption for DON-hosted secrets.

The bundle is signed by the provisioning key (secp256k1, so the network can
verify who uploaded it) and then sealed to the network's public key with
ECIES:

    ephemeral secp256k1 key  --ECDH-->  shared secret
    HKDF-SHA256(shared, salt=ephemeral pubkey)  -->  AES-256-GCM key
    AAD = "<don_id>|<signer>"

Blob layout:
    0x01 | ephemeral pubkey (33) | nonce (12) | ciphertext + tag

A fresh ephemeral key and nonce are drawn per call, so two encryptions of
the same bundle never produce the same blob.
"""

import base64
import hashlib
import json
import os
from dataclasses import dataclass

from coincurve import PrivateKey, PublicKey
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from ecdsa import BadSignatureError, SECP256k1, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError

from .errors import ConfigError, EncryptionError

BLOB_VERSION = 1
PUBKEY_LEN = 33
NONCE_LEN = 12
HKDF_INFO = b"brokerage-oracle secrets v1"


def _strip_hex(text: str) -> str:
    text = text.strip()
    return text[2:] if text[:2].lower() == "0x" else text


class Signer:
    """secp256k1 provisioning key. Identity is the compressed public key hex."""

    def __init__(self, private_key_hex: str):
        try:
            raw = bytes.fromhex(_strip_hex(private_key_hex))
            self._sk = SigningKey.from_string(raw, curve=SECP256k1)
        except (ValueError, MalformedPointError) as e:
            raise ConfigError(f"invalid signer private key: {e}") from None
        self.identity = self._sk.get_verifying_key().to_string("compressed").hex()

    def sign(self, message: str) -> str:
        h = hashlib.sha256(message.encode("utf-8")).digest()
        return base64.b64encode(self._sk.sign_digest(h)).decode()

    def __repr__(self):
        return f"Signer({self.identity[:16]}...)"


def verify_signature(identity: str, message: str, signature_b64: str) -> bool:
    try:
        vk = VerifyingKey.from_string(bytes.fromhex(identity), curve=SECP256k1)
        h = hashlib.sha256(message.encode("utf-8")).digest()
        return vk.verify_digest(base64.b64decode(signature_b64), h)
    except (BadSignatureError, MalformedPointError, ValueError):
        return False


@dataclass(frozen=True)
class EncryptedSecrets:
    ciphertext: bytes
    signer: str
    don_id: str

    @property
    def hexstring(self) -> str:
        return "0x" + self.ciphertext.hex()


def _derive_key(shared: bytes, salt: bytes) -> bytes:
    return HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        info=HKDF_INFO,
    ).derive(shared)


def _aad(don_id: str, signer: str) -> bytes:
    return f"{don_id}|{signer}".encode("utf-8")


class SecretEncryptor:
    def __init__(self, signer: Signer, don_public_key: str):
        self.signer = signer
        self.don_public_key = don_public_key

    def encrypt(self, bundle, don_id: str) -> EncryptedSecrets:
        """Sign and seal the bundle. No network I/O; the plaintext is not kept."""
        if not don_id:
            raise EncryptionError("DON id is required")
        try:
            don_pub = PublicKey(bytes.fromhex(_strip_hex(self.don_public_key)))
        except ValueError as e:
            raise EncryptionError(f"invalid DON public key: {e}") from None

        message = bundle.canonical()
        envelope = json.dumps({
            "message": message,
            "signature": self.signer.sign(message),
            "signer": self.signer.identity,
        }, sort_keys=True, separators=(",", ":")).encode("utf-8")

        ephemeral = PrivateKey()
        eph_pub = ephemeral.public_key.format(compressed=True)
        try:
            shared = ephemeral.ecdh(don_pub.format(compressed=True))
        except ValueError as e:
            raise EncryptionError(f"key agreement failed: {e}") from None

        nonce = os.urandom(NONCE_LEN)
        key = _derive_key(shared, eph_pub)
        sealed = AESGCM(key).encrypt(nonce, envelope, _aad(don_id, self.signer.identity))

        return EncryptedSecrets(
            ciphertext=bytes([BLOB_VERSION]) + eph_pub + nonce + sealed,
            signer=self.signer.identity,
            don_id=don_id,
        )


def decrypt_secrets(blob: EncryptedSecrets, don_private_key: str) -> dict:
    """Network side: open the blob and check the signer. Returns the wire mapping."""
    data = blob.ciphertext
    header = 1 + PUBKEY_LEN + NONCE_LEN
    if len(data) <= header or data[0] != BLOB_VERSION:
        raise EncryptionError("malformed secrets blob")

    eph_pub = data[1:1 + PUBKEY_LEN]
    nonce = data[1 + PUBKEY_LEN:header]
    try:
        sk = PrivateKey(bytes.fromhex(_strip_hex(don_private_key)))
        shared = sk.ecdh(eph_pub)
        envelope = AESGCM(_derive_key(shared, eph_pub)).decrypt(
            nonce, data[header:], _aad(blob.don_id, blob.signer)
        )
    except (InvalidTag, ValueError):
        raise EncryptionError("secrets blob could not be decrypted") from None

    try:
        doc = json.loads(envelope)
        message, signature = doc["message"], doc["signature"]
    except (KeyError, TypeError, ValueError):
        raise EncryptionError("malformed secrets envelope") from None
    if doc.get("signer") != blob.signer:
        raise EncryptionError("signer mismatch")
    if not verify_signature(blob.signer, message, signature):
        raise EncryptionError("invalid signer signature")
    return json.loads(message)
