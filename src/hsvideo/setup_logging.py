"""Root logger configuration for hsvideo sessions."""

import logging
from pathlib import Path
from typing import Optional, Union

__all__ = ['setup_logging']

logger = logging.getLogger(__name__)


def setup_logging(config=None, log_path: Optional[Union[str, Path]] = None,
                  level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger with a console and an optional file handler.

    Parameters
    ----------
    config : InternalConfig, optional
        Runtime configuration; ``config.logging.level`` sets the level.
    log_path : str or Path, optional
        Log file. Parent directories are created.
    level : str, optional
        Explicit level name, overrides ``config``.

    Returns
    -------
    logging.Logger
        The configured root logger.
    """
    if level is None:
        level = config.logging.level if config is not None else "INFO"
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Clear existing handlers and add new ones
    root = logging.getLogger()
    root.setLevel(log_level)
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    root.addHandler(ch)

    logger.info("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_path)
    return root
