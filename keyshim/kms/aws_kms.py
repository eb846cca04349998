import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from keyshim.crypto.algorithm import SUPPORTED_CIPHER
from keyshim.errors import (
    DecryptionFailed,
    KeyServiceUnavailable,
    UnknownKey,
    VersionMismatch,
)
from keyshim.kms.provider import KMSClient, KeyInfo, KeyProviderKind

logger = logging.getLogger(__name__)

ALIAS_PREFIX = 'alias/'
# AWS rotates backing material behind a stable key id
CURRENT_VERSION = 0


class AWSKMSClient(KMSClient):
    """AWS KMS client using Encrypt/Decrypt to wrap data keys.

    Master keys are addressed by alias. Expects AWS credentials available in
    environment or instance role.
    """

    kind = KeyProviderKind.AWS

    def __init__(self, region_name: str | None = None, endpoint_url: str | None = None,
                 max_attempts: int = 3):
        self.client = boto3.client(
            'kms',
            region_name=region_name,
            endpoint_url=endpoint_url,
            config=Config(retries={'max_attempts': max_attempts, 'mode': 'standard'})
        )

    @staticmethod
    def _context(name: str, version: int) -> dict[str, str]:
        return {'keyshim:key': name, 'keyshim:version': str(version)}

    @staticmethod
    def _translate(e: Exception, name: str, operation: str) -> Exception:
        if isinstance(e, ClientError):
            code = e.response.get('Error', {}).get('Code', '')
            if code == 'NotFoundException':
                return UnknownKey(f"Unknown key {name}")
            if code in ('InvalidCiphertextException', 'IncorrectKeyException'):
                return DecryptionFailed(f"Wrapped key rejected by {name}: {code}")
        logger.error("KMS %s failed for %s: %s", operation, name, e)
        return KeyServiceUnavailable(f"KMS {operation} failed for {name}: {e}")

    def _check_version(self, name: str, version: int):
        if version != CURRENT_VERSION:
            raise VersionMismatch(f"{name} only exposes version {CURRENT_VERSION}, not {version}")

    def list_keys(self) -> list[str]:
        names = []
        kwargs = {}
        try:
            while True:
                resp = self.client.list_aliases(**kwargs)
                for alias in resp.get('Aliases', []):
                    alias_name = alias['AliasName']
                    # aws/ aliases belong to AWS managed keys
                    if 'TargetKeyId' not in alias or alias_name.startswith(ALIAS_PREFIX + 'aws/'):
                        continue
                    names.append(alias_name[len(ALIAS_PREFIX):])
                if not resp.get('Truncated'):
                    return names
                kwargs = {'Marker': resp['NextMarker']}
        except (BotoCoreError, ClientError) as e:
            raise self._translate(e, '*', 'list_aliases') from e

    def get_key_info(self, name: str) -> KeyInfo:
        try:
            resp = self.client.describe_key(KeyId=ALIAS_PREFIX + name)
        except (BotoCoreError, ClientError) as e:
            raise self._translate(e, name, 'describe_key') from e
        meta = resp['KeyMetadata']
        spec = meta.get('KeySpec', 'SYMMETRIC_DEFAULT')
        if spec != 'SYMMETRIC_DEFAULT':
            # Not an AES key, let the algorithm resolver reject it
            return KeyInfo(spec, 0, 1)
        return KeyInfo(SUPPORTED_CIPHER, 256, 1)

    def wrap_key(self, name: str, version: int, plaintext: bytes) -> bytes:
        self._check_version(name, version)
        try:
            resp = self.client.encrypt(
                KeyId=ALIAS_PREFIX + name,
                Plaintext=plaintext,
                EncryptionContext=self._context(name, version),
            )
        except (BotoCoreError, ClientError) as e:
            raise self._translate(e, name, 'encrypt') from e
        return resp['CiphertextBlob']

    def unwrap_key(self, name: str, version: int, wrapped: bytes) -> bytes:
        self._check_version(name, version)
        try:
            resp = self.client.decrypt(
                CiphertextBlob=wrapped,
                KeyId=ALIAS_PREFIX + name,
                EncryptionContext=self._context(name, version),
            )
        except (BotoCoreError, ClientError) as e:
            raise self._translate(e, name, 'decrypt') from e
        return resp['Plaintext']
