"""
Atomic file writer for generated modules.

Ensures that file writes are atomic so an interrupted run never leaves a
half-written module next to complete ones.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from pathlib import Path

from ..errors import OutputError

logger = logging.getLogger(__name__)

_CLOSING = {")": "(", "]": "[", "}": "{"}


class AtomicWriter:
    """Handles atomic file writes with validation.

    Uses a two-phase commit approach:
    1. Write to a temporary file in the same directory
    2. Validate the content
    3. Atomically replace the target file
    """

    def __init__(self, validate_rescript: Callable[[str], None] | None = None):
        """Initialize the atomic writer.

        Args:
            validate_rescript: Optional validation function for ReScript code
        """
        self._validate_rescript = validate_rescript or validate_brackets

    def write(self, path: Path, content: str, validate: bool = True) -> None:
        """Write content to file atomically.

        Args:
            path: Target file path
            content: Content to write
            validate: Whether to validate before finalizing

        Raises:
            OutputError: If validation fails
            OSError: If file operations fail
        """
        path.parent.mkdir(parents=True, exist_ok=True)

        # Same directory so the rename stays on one filesystem
        temp_fd, temp_path_str = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            text=True,
        )
        temp_path = Path(temp_path_str)

        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)

            if validate:
                self._validate_rescript(content)

            temp_path.replace(path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s (%d bytes)", path, len(content.encode("utf-8")))


def validate_brackets(content: str) -> None:
    """Check that brackets balance outside string literals and comments.

    Raises:
        OutputError: If the code is empty or brackets do not balance
    """
    if not content.strip():
        raise OutputError("Generated ReScript code is empty")

    stack: list[tuple[str, int]] = []
    line = 1
    i = 0
    n = len(content)
    while i < n:
        c = content[i]
        if c == "\n":
            line += 1
        elif c == '"':
            i += 1
            while i < n and content[i] != '"':
                if content[i] == "\\":
                    i += 1
                elif content[i] == "\n":
                    line += 1
                i += 1
        elif content.startswith("//", i):
            end = content.find("\n", i)
            i = n if end == -1 else end
            continue
        elif content.startswith("/*", i):
            end = content.find("*/", i + 2)
            if end == -1:
                raise OutputError("Unterminated comment in generated ReScript code", f"line {line}")
            line += content.count("\n", i, end)
            i = end + 2
            continue
        elif c in "([{":
            stack.append((c, line))
        elif c in _CLOSING:
            if not stack or stack[-1][0] != _CLOSING[c]:
                raise OutputError(f"Unbalanced '{c}' in generated ReScript code", f"line {line}")
            stack.pop()
        i += 1

    if stack:
        opener, opened_at = stack[-1]
        raise OutputError(f"Unclosed '{opener}' in generated ReScript code", f"line {opened_at}")
