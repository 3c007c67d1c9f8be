# Purpose: Capture the diagnostic output an operation emits while it runs:
#          log records (verbose / warning / error) and Python warnings.
# Relationships: Used by core/invoker.py around each operation call.
#
# [INVARIANT] The capture handler is removed and the warnings filter state is
# restored when the block exits, including when the operation raises. A handler
# left attached would leak diagnostics of later calls into this outcome.

import logging
import warnings
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator


@dataclass
class Diagnostics:
    verbose: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class _CaptureHandler(logging.Handler):
    def __init__(self, diagnostics: Diagnostics) -> None:
        super().__init__(level=logging.DEBUG)
        self._diagnostics = diagnostics

    def emit(self, record: logging.LogRecord) -> None:
        message = record.getMessage()
        if record.levelno >= logging.ERROR:
            self._diagnostics.errors.append(message)
        elif record.levelno >= logging.WARNING:
            self._diagnostics.warnings.append(message)
        else:
            self._diagnostics.verbose.append(message)


@contextmanager
def capture_diagnostics(
    diagnostics: Diagnostics | None = None,
    logger_name: str | None = None,
) -> Iterator[Diagnostics]:
    """
    Collect log records and warnings emitted inside the block.

    Records are collected from logger_name (the root logger by default), so
    anything that propagates there is seen. Records below the effective level
    of the emitting logger never reach the handler.
    """
    if diagnostics is None:
        diagnostics = Diagnostics()
    handler = _CaptureHandler(diagnostics)
    target = logging.getLogger(logger_name)
    target.addHandler(handler)
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                yield diagnostics
            finally:
                diagnostics.warnings.extend(str(w.message) for w in caught)
    finally:
        target.removeHandler(handler)
