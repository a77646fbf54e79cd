"""
Diagnostics channels for codequery.

Queries report through an injected sink with two channels: the main flow
(scan progress, match counts) and tool stderr (per-operation failures).
``LoggingDiagnostics`` routes both channels to standard library loggers.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from .models.config import LoggingConfig


MAIN_FLOW_LOGGER = "codequery.main_flow"
TOOL_STDERR_LOGGER = "codequery.tool_stderr"

logger = logging.getLogger(__name__)


@runtime_checkable
class Diagnostics(Protocol):
    """Sink receiving progress and failure messages from queries."""

    def log_main_flow(self, message: str) -> None:
        ...

    def log_tool_stderr(self, message: str) -> None:
        ...


class LoggingDiagnostics:
    """
    Diagnostics sink backed by the ``logging`` module.

    Main-flow messages are emitted at INFO on ``codequery.main_flow`` and
    tool-stderr messages at WARNING on ``codequery.tool_stderr``.
    """

    def __init__(self, main_flow: Optional[logging.Logger] = None,
                 tool_stderr: Optional[logging.Logger] = None):
        self.main_flow = main_flow or logging.getLogger(MAIN_FLOW_LOGGER)
        self.tool_stderr = tool_stderr or logging.getLogger(TOOL_STDERR_LOGGER)

    def log_main_flow(self, message: str) -> None:
        self.main_flow.info(message)

    def log_tool_stderr(self, message: str) -> None:
        self.tool_stderr.warning(message)


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Apply a logging configuration to the ``codequery`` logger hierarchy.

    A stream handler is installed once; later calls only update the level
    and the handler's format.

    Args:
        config: Logging settings, defaults are used when omitted

    Returns:
        The configured ``codequery`` logger
    """
    config = config or LoggingConfig()
    root = logging.getLogger("codequery")
    root.setLevel(config.get_level_number())

    handler = next(
        (h for h in root.handlers if getattr(h, '_codequery_handler', False)),
        None
    )
    if handler is None:
        handler = logging.StreamHandler()
        handler._codequery_handler = True
        root.addHandler(handler)
    handler.setFormatter(logging.Formatter(config.format))

    logger.debug(f"Logging configured at level {config.level}")
    return root
