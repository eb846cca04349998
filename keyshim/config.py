import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass
class Settings:
    """Runtime configuration, read from the environment (and a .env file)."""
    kms_provider: str = 'memory'
    kms_file_path: str = 'kms.json'
    aws_region: str | None = None
    aws_kms_endpoint_url: str | None = None
    aws_kms_max_attempts: int = 3
    log_level: str = 'INFO'
    siem_endpoint: str | None = None
    audit_log_path: str | None = None

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            kms_provider=os.getenv('KMS_PROVIDER', 'memory').lower(),
            kms_file_path=os.getenv('KMS_FILE_PATH', os.path.join(os.getcwd(), 'kms.json')),
            aws_region=os.getenv('AWS_REGION'),
            aws_kms_endpoint_url=os.getenv('AWS_KMS_ENDPOINT_URL'),
            aws_kms_max_attempts=int(os.getenv('AWS_KMS_MAX_ATTEMPTS', 3)),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            siem_endpoint=os.getenv('SIEM_ENDPOINT'),
            audit_log_path=os.getenv('AUDIT_LOG_PATH'),
        )
