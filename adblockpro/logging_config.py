import logging
import json
import re
import sys
from datetime import datetime, timezone
from adblockpro.config import LOG_LEVEL

SECRET_RE = re.compile(r"(authorization|api[_-]?key|password|token|secret)[\"':= ]+([^,\s]+)", re.I)

EXTRA_FIELDS = (
    "request_id",
    "path",
    "method",
    "status",
    "latency_ms",
    "user_id",
    "event_type",
    "stripe_event_id",
    "outcome",
)

def redact_secrets(msg):
    return SECRET_RE.sub(r"\1=***", msg)

class JsonLogFormatter(logging.Formatter):
    def format(self, record):
        log = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": redact_secrets(str(record.getMessage())),
        }
        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log[field] = getattr(record, field)
        if record.exc_info:
            log["exc_info"] = redact_secrets(self.formatException(record.exc_info))
        return json.dumps(log, default=str)

def setup_logging(level=LOG_LEVEL):
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonLogFormatter())
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

def get_logger(name="adblockpro"):
    return logging.getLogger(name)
