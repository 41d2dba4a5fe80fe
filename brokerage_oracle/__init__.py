# brokerage_oracle/__init__.py
"""
Brokerage position oracle adapter.

Provisions encrypted brokerage API credentials to a decentralized oracle
network and runs the job that turns a TSLA position's market value into a
uint256 fixed-point result (two decimals).
"""

from .bundle import POSITION_PATH, SecretBundle, build_secret_bundle, position_url
from .codec import decode, encode
from .distribution import DistributionRecord, SecretDistributor, SlotLedger
from .encryption import EncryptedSecrets, SecretEncryptor, Signer, decrypt_secrets
from .errors import (
    ConfigError,
    DistributionError,
    EncodingError,
    EncryptionError,
    FetchError,
    MissingCredential,
    OracleError,
    ValidationError,
)
from .executor import JobResult, RequestExecutor

__version__ = "0.1.0"
