"""
Key provider shim between column encryption and a KMS.

The shim resolves the algorithm for a master key version and performs
envelope encryption of data keys through a KMSClient. It keeps no state of
its own, so one instance can be shared by any number of threads.
"""

import logging
from concurrent.futures import CancelledError
from typing import Callable, TypeVar

from keyshim.audit.logger import AuditLogger, EventType
from keyshim.config import Settings
from keyshim.crypto.algorithm import find_algorithm
from keyshim.crypto.keys import KeyMetadata, LocalKey
from keyshim.crypto.random_source import SystemRandomSource
from keyshim.errors import (
    AuditUnavailable,
    DecryptionFailed,
    KeyProviderError,
    KeyServiceUnavailable,
    UnknownKey,
)
from keyshim.kms.factory import get_kms_client
from keyshim.kms.provider import KMSClient, KeyProviderKind

logger = logging.getLogger(__name__)

T = TypeVar('T')


class KeyProviderShim:

    def __init__(self, client: KMSClient, random_source=None, audit: AuditLogger | None = None):
        """
        Args:
            client: KMS backend that owns the master keys.
            random_source: Object with random_bytes(n). Defaults to the OS CSPRNG.
            audit: Optional audit logger recording each operation.
        """
        self.client = client
        self.random = random_source or SystemRandomSource()
        self.audit = audit

    @property
    def kind(self) -> KeyProviderKind:
        return self.client.kind

    def _call(self, operation: str, target: str, fn: Callable[..., T], *args) -> T:
        try:
            return fn(*args)
        except KeyProviderError as e:
            self._audit_failure(operation, target, e)
            raise
        except (OSError, CancelledError) as e:
            self._audit_failure(operation, target, e)
            raise KeyServiceUnavailable(f"KMS {operation} failed for {target}: {e!r}") from e

    def _audit(self, event_type: str, details: dict, severity: str = "INFO"):
        if self.audit is None:
            return
        try:
            self.audit.log_event(event_type, details, severity=severity)
        except OSError as e:
            raise AuditUnavailable(f"Could not record {event_type} in audit log: {e!r}") from e

    def _audit_failure(self, operation: str, target: str, error: BaseException):
        logger.warning("KMS %s failed for %s: %s", operation, target, type(error).__name__,
                       extra={"key_name": target, "provider": self.kind.name})
        event = (EventType.LOCAL_KEY_DECRYPT_FAILURE if isinstance(error, DecryptionFailed)
                 else EventType.OPERATION_FAILURE)
        try:
            self._audit(event, {"operation": operation, "target": target,
                                "error": type(error).__name__}, severity="ERROR")
        except AuditUnavailable:
            # The caller gets the KMS error, not the audit one
            logger.exception("Audit write failed while reporting %s of %s", operation, target)

    def get_key_names(self) -> set[str]:
        """Names of every master key in the KMS catalogue."""
        names = set(self._call('list_keys', '*', self.client.list_keys))
        self._audit(EventType.KEY_LIST, {"count": len(names)})
        return names

    def get_current_key_version(self, name: str) -> KeyMetadata:
        """Metadata for the newest version of `name`."""
        info = self._call('get_key_info', name, self.client.get_key_info, name)
        if info.versions < 1:
            error = UnknownKey(f"Key {name} has no versions")
            self._audit_failure('get_key_info', name, error)
            raise error
        try:
            algorithm = find_algorithm(info.cipher, info.bit_length)
        except KeyProviderError as e:
            self._audit_failure('find_algorithm', name, e)
            raise
        key = KeyMetadata(name, info.versions - 1, algorithm)
        logger.debug("Current version of %s is %s", name, key,
                     extra={"key_name": name, "key_version": key.version,
                            "algorithm": algorithm.name})
        self._audit(EventType.KEY_METADATA, {"key": name, "version": key.version,
                                             "algorithm": algorithm.name})
        return key

    def create_local_key(self, key: KeyMetadata) -> LocalKey:
        """
        Generate a random data key and have the KMS wrap it under `key`.

        Returns:
            LocalKey: plaintext for immediate use, wrapped bytes for storage.
        """
        algorithm = key.algorithm
        plaintext = self.random.random_bytes(algorithm.key_length)
        encrypted = self._call('wrap_key', str(key), self.client.wrap_key,
                               key.name, key.version, plaintext)
        logger.debug("Created local key under %s", key,
                     extra={"key_name": key.name, "key_version": key.version,
                            "algorithm": algorithm.name})
        self._audit(EventType.LOCAL_KEY_CREATE, {"key": key.name, "version": key.version,
                                                 "algorithm": algorithm.name})
        return LocalKey(algorithm, plaintext, encrypted)

    def decrypt_local_key(self, key: KeyMetadata, encrypted_key: bytes) -> bytes:
        """Recover the plaintext of a data key wrapped under `key`."""
        plaintext = self._call('unwrap_key', str(key), self.client.unwrap_key,
                               key.name, key.version, encrypted_key)
        if len(plaintext) != key.algorithm.key_length:
            error = DecryptionFailed(
                f"Unwrapped key for {key} is {len(plaintext)} bytes, "
                f"{key.algorithm.name} needs {key.algorithm.key_length}"
            )
            self._audit_failure('unwrap_key', str(key), error)
            raise error
        self._audit(EventType.LOCAL_KEY_DECRYPT, {"key": key.name, "version": key.version,
                                                  "algorithm": key.algorithm.name})
        return plaintext


def get_key_provider(settings: Settings | None = None, random_source=None) -> KeyProviderShim:
    """Build a shim over the KMS configured in `settings` (or the environment)."""
    settings = settings or Settings.from_env()
    audit = AuditLogger(settings.audit_log_path) if settings.audit_log_path else None
    return KeyProviderShim(get_kms_client(settings), random_source=random_source, audit=audit)
