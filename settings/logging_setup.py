"""Process-wide logging setup for the CLI and web shell."""

import logging
from typing import Union

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_HANDLER_NAME = "sentinel-stream"


def configure_logging(level: Union[int, str] = "INFO") -> logging.Logger:
    """Attach one stream handler to the root logger; repeated calls only adjust the level."""

    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root.setLevel(level)

    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            return root

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    return root
