import logging
import sys

from pythonjsonlogger import jsonlogger

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AssessmentJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = record.created
        log_record["level"] = record.levelname
        log_record["module"] = record.module


def setup_logging(log_level_str: str = "INFO", log_format: str = "text") -> None:
    """
    Configure the root logger once at startup.

    ``log_format="json"`` emits one JSON object per line; anything else
    falls back to the plain text format.
    """
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if any(getattr(h, "_underwriting", False) for h in root_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(AssessmentJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handler._underwriting = True
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    root_logger.info("Logging configured at %s level (%s)", logging.getLevelName(log_level), log_format)
