"""
Audit trail for key provider operations.

Append-only JSON lines, each entry chained to the previous one by hash and
signed with Ed25519 so removal or edits are detectable. Entries record key
names, versions and algorithms. Key material never enters the log.
"""

import os
import json
import hashlib
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Optional
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives import serialization

GENESIS_HASH = "0" * 64


class EventType:
    """Event types for key provider auditing"""
    KEY_LIST = "kms.key.list"
    KEY_METADATA = "kms.key.metadata"
    LOCAL_KEY_CREATE = "kms.local_key.create"
    LOCAL_KEY_DECRYPT = "kms.local_key.decrypt"
    LOCAL_KEY_DECRYPT_FAILURE = "kms.local_key.decrypt.failure"
    OPERATION_FAILURE = "kms.operation.failure"


class AuditLogger:
    """
    Signed, hash-chained audit logger.

    Safe to share between threads; appends are serialized.
    """

    def __init__(self, log_path: str, signing_key_path: Optional[str] = None):
        """
        Args:
            log_path: Path to audit log file
            signing_key_path: Path to Ed25519 private key (generated if missing)
        """
        self.log_path = log_path
        self.signing_key_path = signing_key_path or os.path.join(
            os.path.dirname(os.path.abspath(log_path)),
            '.audit_signing_key'
        )
        self._lock = Lock()
        self.signing_key = self._load_or_generate_signing_key()

        if not os.path.exists(log_path):
            self._initialize_log_file()

        self.last_hash = self._get_last_entry_hash()

    def _load_or_generate_signing_key(self) -> ed25519.Ed25519PrivateKey:
        if os.path.exists(self.signing_key_path):
            with open(self.signing_key_path, 'rb') as f:
                return serialization.load_pem_private_key(f.read(), password=None)

        private_key = ed25519.Ed25519PrivateKey.generate()
        pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption()
        )
        with open(self.signing_key_path, 'wb') as f:
            f.write(pem)
        os.chmod(self.signing_key_path, 0o600)
        return private_key

    def _initialize_log_file(self):
        """Create new audit log file with metadata header"""
        header = {
            "version": "1.0",
            "created_at": datetime.now(timezone.utc).isoformat(),
            "public_key": self._get_public_key_hex(),
            "description": "keyshim audit log"
        }
        with open(self.log_path, 'w') as f:
            f.write("# " + json.dumps(header) + "\n")

    def _get_public_key_hex(self) -> str:
        public_bytes = self.signing_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )
        return public_bytes.hex()

    def _get_last_entry_hash(self) -> str:
        with open(self.log_path, 'r') as f:
            lines = f.readlines()
        for line in reversed(lines):
            if line.startswith('#'):
                continue
            try:
                return json.loads(line.strip()).get('entry_hash', GENESIS_HASH)
            except json.JSONDecodeError:
                continue
        return GENESIS_HASH

    def log_event(self, event_type: str, details: Dict[str, Any], severity: str = "INFO"):
        """
        Append a signed event.

        Args:
            event_type: One of the EventType constants
            details: Key name, version, algorithm and similar. No key bytes.
            severity: INFO, WARNING or ERROR
        """
        with self._lock:
            entry = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "event_type": event_type,
                "severity": severity,
                "details": details,
                "previous_hash": self.last_hash
            }
            entry_json = json.dumps(entry, sort_keys=True)
            entry_hash = hashlib.sha256(entry_json.encode()).hexdigest()
            entry["entry_hash"] = entry_hash
            entry["signature"] = self.signing_key.sign(entry_json.encode()).hex()

            with open(self.log_path, 'a') as f:
                f.write(json.dumps(entry) + "\n")
                f.flush()
                os.fsync(f.fileno())

            self.last_hash = entry_hash

    def verify_log_integrity(self) -> tuple[bool, list]:
        """
        Verify the hash chain and every signature.

        Returns:
            (is_valid, errors)
        """
        errors = []
        if not os.path.exists(self.log_path):
            return False, ["Log file does not exist"]

        with open(self.log_path, 'r') as f:
            lines = f.readlines()

        header_line = lines[0] if lines else None
        if not header_line or not header_line.startswith('#'):
            return False, ["Invalid log header"]

        header = json.loads(header_line[1:].strip())
        public_key_hex = header.get('public_key')
        if not public_key_hex:
            return False, ["Missing public key in header"]
        public_key = ed25519.Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))

        previous_hash = GENESIS_HASH
        for idx, line in enumerate(lines[1:], start=1):
            if line.startswith('#'):
                continue
            try:
                entry = json.loads(line.strip())
            except json.JSONDecodeError:
                errors.append(f"Line {idx}: Invalid JSON")
                continue

            if entry.get('previous_hash') != previous_hash:
                errors.append(f"Line {idx}: Broken hash chain")

            signature_hex = entry.pop('signature', None)
            entry_hash = entry.pop('entry_hash', None)
            if not signature_hex:
                errors.append(f"Line {idx}: Missing signature")
                continue

            entry_json = json.dumps(entry, sort_keys=True)
            try:
                public_key.verify(bytes.fromhex(signature_hex), entry_json.encode())
            except InvalidSignature:
                errors.append(f"Line {idx}: Invalid signature")

            if hashlib.sha256(entry_json.encode()).hexdigest() != entry_hash:
                errors.append(f"Line {idx}: Hash mismatch")

            previous_hash = entry_hash or GENESIS_HASH

        return len(errors) == 0, errors

    def get_events(self, event_type: Optional[str] = None, limit: int = 100) -> list:
        """Return logged entries, optionally filtered by event type."""
        results = []
        with open(self.log_path, 'r') as f:
            for line in f:
                if line.startswith('#'):
                    continue
                try:
                    entry = json.loads(line.strip())
                except json.JSONDecodeError:
                    continue
                if event_type and entry.get('event_type') != event_type:
                    continue
                results.append(entry)
                if len(results) >= limit:
                    break
        return results
