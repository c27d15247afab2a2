from __future__ import annotations

import logging
import sys
from typing import Union

_HANDLER_NAME = "task_api.console"


# PUBLIC_INTERFACE
def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure the root logger with one stderr handler.

    Safe to call more than once (e.g. once per application created in tests):
    the handler installed by a previous call is replaced, not duplicated.
    """
    root = logging.getLogger()
    root.setLevel(level if isinstance(level, int) else level.upper())

    for h in list(root.handlers):
        if h.get_name() == _HANDLER_NAME:
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
