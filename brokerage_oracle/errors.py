# brokerage_oracle/errors.py
"""
Failure taxonomy for provisioning and job execution.
Every error carries a human-readable reason; job failures are reported as
the error string of the job result, provisioning failures reach the CLI.
"""


class OracleError(Exception):
    """Base class for all brokerage oracle failures."""


class ConfigError(OracleError):
    pass


class MissingCredential(OracleError):
    pass


class EncryptionError(OracleError):
    pass


class DistributionError(OracleError):
    def __init__(self, reason, results=None):
        super().__init__(reason)
        self.reason = reason
        self.results = list(results or [])


class FetchError(OracleError):
    pass


class ValidationError(OracleError):
    pass


class EncodingError(OracleError):
    pass
