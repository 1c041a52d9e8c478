# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Logging interface for proxygen.

Library modules report progress through this interface instead of printing
directly, so they stay usable without the CLI. The CLI installs a global
logger when a command runs; library code picks it up with
get_global_logger().

The logger supports four output levels:

- Step: Always printed (pipeline progress, e.g. "[2/4] Rendering...")
- Info: Always printed (outcomes such as "import ok" or "deployment failed")
- Verbose: Only printed when verbose mode is enabled
- Debug: Only printed when debug mode is enabled (implies verbose)

Example:
    Configure global logger:
        ```python
        from proxygen.logging import get_logger, set_global_logger

        set_global_logger(get_logger(verbose=True))
        ```

    Use in library code:
        ```python
        from proxygen.logging import get_global_logger

        logger = get_global_logger()
        logger.step(1, 4, "Loading configuration...")
        logger.verbose("RENDER", "apiproxy/policies/AM-Response.xml")
        ```

Note:
    The default global logger is silent, so library functions print nothing
    unless the caller configures one.
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO


class Logger(Protocol):
    """Protocol for logger implementations."""

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator.

        Args:
            step: Current step number (1-based).
            total: Total number of steps.
            message: Step description.
        """
        ...

    def info(self, prefix: str, message: str) -> None:
        """Print an outcome message regardless of verbosity."""
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message.

        Args:
            prefix: Message prefix (e.g., "CONFIG", "DEPLOY").
            message: Log message.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message."""
        ...


class DefaultLogger:
    """Logger that writes to a text stream (stdout unless told otherwise).

    Respects the verbose and debug flags and keeps the "[PREFIX] message"
    format used throughout the CLI output.
    """

    def __init__(
        self, verbose: bool = False, debug: bool = False, stream: TextIO | None = None
    ) -> None:
        """Initialize logger with verbosity settings.

        Args:
            verbose: If True, print verbose messages.
            debug: If True, print debug messages (implies verbose).
            stream: Where to write. Default is sys.stdout at call time.
        """
        self._verbose = verbose or debug
        self._debug = debug
        self._stream = stream

    def _write(self, line: str) -> None:
        print(line, file=self._stream or sys.stdout)

    def step(self, step: int, total: int, message: str) -> None:
        self._write(f"[{step}/{total}] {message}")

    def info(self, prefix: str, message: str) -> None:
        self._write(f"[{prefix}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        if self._verbose:
            self._write(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        if self._debug:
            self._write(f"[{prefix}] {message}")


class SilentLogger:
    """Logger that suppresses all output."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def info(self, prefix: str, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass


# Global logger instance (defaults to silent)
_global_logger: Logger = SilentLogger()


def get_logger(verbose: bool = False, debug: bool = False) -> Logger:
    """Get a stdout logger with the specified verbosity.

    Args:
        verbose: If True, logger will print verbose messages.
        debug: If True, logger will print debug messages (implies verbose).

    Returns:
        A logger instance configured with the specified verbosity.
    """
    return DefaultLogger(verbose=verbose, debug=debug)


def get_global_logger() -> Logger:
    """Get the global logger instance (silent until the CLI sets one)."""
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Set the global logger instance.

    Args:
        logger: Logger instance to use as the global logger.

    Note:
        This affects every library function that calls get_global_logger().
    """
    global _global_logger
    _global_logger = logger
