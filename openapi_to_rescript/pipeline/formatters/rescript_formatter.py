"""
ReScript formatter using the compiler's `rescript format`.
"""

from __future__ import annotations

import logging
import shutil
import subprocess

from ..config import FormatterConfig
from .base import Formatter

logger = logging.getLogger(__name__)


class RescriptFormatter(Formatter):
    """Pipes generated code through `rescript format -stdin .res`."""

    def __init__(self):
        self._available: dict[str, bool] = {}

    def is_available(self, config: FormatterConfig) -> bool:
        """Check if the formatter executable is on PATH."""
        executable = config.command[0] if config.command else ""
        if executable not in self._available:
            self._available[executable] = bool(executable) and shutil.which(executable) is not None
        return self._available[executable]

    def format(self, code: str, config: FormatterConfig) -> str:
        """
        Format ReScript code.

        The original code is returned when the formatter is missing, fails,
        or times out.
        """
        if not self.is_available(config):
            logger.warning("Formatter '%s' not found, output left unformatted", " ".join(config.command))
            return code

        try:
            result = subprocess.run(
                config.command,
                input=code,
                capture_output=True,
                text=True,
                timeout=config.timeout,
            )
        except subprocess.SubprocessError as e:
            logger.warning("Formatter failed: %s", e)
            return code

        if result.returncode != 0:
            logger.warning("Formatter exited with %d: %s", result.returncode, result.stderr.strip())
            return code
        return result.stdout
