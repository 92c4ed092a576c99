"""
Logging configuration for the kubedev command line
"""

import logging
import logging.config
from typing import Any, Dict


def get_logging_config(level: str = "WARNING") -> Dict[str, Any]:
    """Get logging configuration that writes through rich."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(name)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "rich.logging.RichHandler",
                "formatter": "default",
                "show_time": False,
                "show_path": False,
            }
        },
        "loggers": {
            "kubedev": {
                "handlers": ["default"],
                "level": level.upper(),
                "propagate": False
            },
            # The kubernetes client is chatty at DEBUG
            "kubernetes": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False
            },
        },
    }


def setup_logging(level: str = "WARNING") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
