import json
import logging
from logging.handlers import HTTPHandler

# Extra attributes copied into the payload when a log call supplies them
CONTEXT_FIELDS = ("key_name", "key_version", "algorithm", "provider")


class JSONFormatter(logging.Formatter):
    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = str(value)
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_json_logging(siem_endpoint: str | None = None, level=logging.INFO):
    logger = logging.getLogger()
    logger.setLevel(level)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)

    if siem_endpoint:
        # siem_endpoint format: host:port
        host, port = siem_endpoint.split(':')
        http = HTTPHandler(f"{host}:{port}", '/ingest', method='POST')
        http.setFormatter(JSONFormatter())
        logger.addHandler(http)

    return logger


def configure_from_settings(settings):
    """Apply LOG_LEVEL and SIEM_ENDPOINT from a keyshim Settings object."""
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO
    return configure_json_logging(siem_endpoint=settings.siem_endpoint, level=level)
