import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

from chainxchange.core.config import settings

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def build_logging_config(level: str = "INFO", log_dir: Optional[str] = None) -> Dict[str, Any]:
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "detailed",
            "stream": "ext://sys.stdout"
        }
    }
    app_handlers = ["console"]

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "detailed",
            "filename": str(Path(log_dir) / "app.log"),
            "maxBytes": 10485760,
            "backupCount": 5
        }
        handlers["error_file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "ERROR",
            "formatter": "detailed",
            "filename": str(Path(log_dir) / "error.log"),
            "maxBytes": 10485760,
            "backupCount": 5
        }
        app_handlers = ["console", "file", "error_file"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": FORMAT
            }
        },
        "handlers": handlers,
        "root": {
            "level": level,
            "handlers": app_handlers
        },
        "loggers": {
            "chainxchange": {
                "level": level,
                "handlers": app_handlers,
                "propagate": False
            },
            "httpx": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            },
            "apscheduler": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            },
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False
            }
        }
    }


def configure_logging():
    logging.config.dictConfig(build_logging_config(settings.LOG_LEVEL.upper(), settings.LOG_DIR))
