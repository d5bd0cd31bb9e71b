"""
Logging configuration for Dirac.

Records go to a file inside the config directory so they never interleave
with the interactive prompt.
"""

import logging
import logging.config
from pathlib import Path
from typing import Optional, Union


def setup_logging(
    default_level: Union[int, str] = logging.WARNING,
    log_file: Optional[Path] = None,
) -> None:
    """Configure logging for the whole package.

    Example:
        ```python
        from dirac.log import setup_logging

        setup_logging("INFO")
        log = logging.getLogger(__name__)
        log.info("Logging initialized.")
        ```

    Args:
        default_level: Root log level, as a ``logging`` constant or a level
            name such as ``"DEBUG"``.
        log_file: Destination file. Defaults to ``dirac.log`` in the config
            directory.
    """
    if log_file is None:
        from dirac.config import cfg
        log_file = cfg.home() / "dirac.log"
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "[%(asctime)s] - [%(levelname)s] - %(name)s: %(message)s",
            },
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "standard",
                "filename": str(log_file),
                "maxBytes": 1_000_000,
                "backupCount": 2,
                "encoding": "utf-8",
            },
        },
        "root": {
            "handlers": ["file"],
            "level": default_level,
        },
    }

    logging.config.dictConfig(logging_config)
