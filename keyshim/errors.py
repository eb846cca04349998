"""Error taxonomy for key provider operations.

Every failure the shim can surface is a distinct subclass of
``KeyProviderError`` so callers can decide their own retry policy.
Messages name keys and versions, never key material.
"""


class KeyProviderError(Exception):
    """Base exception for all key provider failures"""


class UnsupportedAlgorithm(KeyProviderError, ValueError):
    """Raised when a master key's cipher or bit length is not supported"""


class UnknownKey(KeyProviderError, LookupError):
    """Raised when a key name is not present in the KMS catalogue"""


class VersionMismatch(KeyProviderError):
    """Raised when the requested master key version does not exist"""


class KeyServiceUnavailable(KeyProviderError):
    """Raised when the KMS cannot be reached or the call was cancelled"""


class DecryptionFailed(KeyProviderError):
    """Raised when the KMS rejects a wrapped key (tampered or wrong version)"""


class AuditUnavailable(KeyProviderError):
    """Raised when an operation succeeded but its audit entry could not be written"""


__all__ = [
    "KeyProviderError",
    "UnsupportedAlgorithm",
    "UnknownKey",
    "VersionMismatch",
    "KeyServiceUnavailable",
    "DecryptionFailed",
    "AuditUnavailable",
]
