import json
import logging

import pytest

from keyshim.config import Settings
from keyshim.kms.aws_kms import AWSKMSClient
from keyshim.kms.factory import get_kms_client
from keyshim.kms.file_kms import FileKMS
from keyshim.kms.memory_kms import InMemoryKMS
from keyshim.logging.json_logger import JSONFormatter, configure_from_settings


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv('KMS_PROVIDER', 'FILE')
    monkeypatch.setenv('KMS_FILE_PATH', str(tmp_path / 'keys.json'))
    monkeypatch.setenv('AWS_KMS_MAX_ATTEMPTS', '5')
    monkeypatch.setenv('LOG_LEVEL', 'debug')
    monkeypatch.delenv('AUDIT_LOG_PATH', raising=False)

    settings = Settings.from_env()
    assert settings.kms_provider == 'file'
    assert settings.kms_file_path == str(tmp_path / 'keys.json')
    assert settings.aws_kms_max_attempts == 5
    assert settings.log_level == 'DEBUG'
    assert settings.audit_log_path is None


def test_factory_selects_backend(tmp_path, monkeypatch):
    assert isinstance(get_kms_client(Settings()), InMemoryKMS)
    assert isinstance(get_kms_client(Settings(kms_provider='file',
                                              kms_file_path=str(tmp_path / 'k.json'))), FileKMS)
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    assert isinstance(get_kms_client(Settings(kms_provider='aws', aws_region='us-east-1')),
                      AWSKMSClient)
    with pytest.raises(ValueError):
        get_kms_client(Settings(kms_provider='vault'))


def test_json_formatter_includes_key_context():
    record = logging.LogRecord('keyshim', logging.INFO, __file__, 1, 'created %s', ('pii@1',), None)
    record.key_name = 'pii'
    record.key_version = 1
    payload = json.loads(JSONFormatter().format(record))
    assert payload['message'] == 'created pii@1'
    assert payload['key_name'] == 'pii'
    assert payload['key_version'] == '1'
    assert 'algorithm' not in payload


def test_configure_from_settings():
    root = logging.getLogger()
    previous_level = root.level
    previous_handlers = list(root.handlers)
    try:
        configure_from_settings(Settings(log_level='DEBUG'))
        assert root.level == logging.DEBUG
        added = [h for h in root.handlers if h not in previous_handlers]
        assert len(added) == 1
        assert isinstance(added[0].formatter, JSONFormatter)

        configure_from_settings(Settings(log_level='NOPE'))
        assert root.level == logging.INFO
    finally:
        for handler in [h for h in root.handlers if h not in previous_handlers]:
            root.removeHandler(handler)
        root.setLevel(previous_level)
