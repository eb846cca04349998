import logging

from keyshim.config import Settings
from keyshim.kms.aws_kms import AWSKMSClient
from keyshim.kms.file_kms import FileKMS
from keyshim.kms.memory_kms import InMemoryKMS
from keyshim.kms.provider import KMSClient

logger = logging.getLogger(__name__)


def get_kms_client(settings: Settings) -> KMSClient:
    """Build the KMS client selected by `settings.kms_provider`."""
    provider = settings.kms_provider
    if provider == 'memory':
        logger.warning("Using in-memory KMS; master keys are lost when the process exits")
        return InMemoryKMS()
    if provider == 'file':
        logger.info("Using file KMS at %s", settings.kms_file_path)
        return FileKMS(settings.kms_file_path)
    if provider == 'aws':
        logger.info("Using AWS KMS in region %s", settings.aws_region or '<default>')
        return AWSKMSClient(
            region_name=settings.aws_region,
            endpoint_url=settings.aws_kms_endpoint_url,
            max_attempts=settings.aws_kms_max_attempts,
        )
    raise ValueError(f"Unknown KMS provider {provider!r}, expected memory, file or aws")
