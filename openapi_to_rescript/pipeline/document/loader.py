"""
Loading of raw OpenAPI documents.

Turns bytes or text into a plain mapping. JSON and YAML are both accepted;
without a format hint JSON is tried first, then YAML.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from ..errors import ParseError

logger = logging.getLogger(__name__)

FORMAT_BY_SUFFIX = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def detect_format(path: Path) -> str | None:
    """Guess the document format from a file name."""
    return FORMAT_BY_SUFFIX.get(path.suffix.lower())


def load_document(content: bytes | str, format_hint: str | None = None, source: str = "<input>") -> dict[str, Any]:
    """
    Decode an OpenAPI document.

    Args:
        content: Raw document bytes or text
        format_hint: "json", "yaml", or None to try both
        source: Name used in error messages

    Returns:
        The decoded document mapping

    Raises:
        ParseError: If the content is not valid in the requested syntax
    """
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Document is not valid UTF-8: {e}", source) from e
    else:
        text = content

    if format_hint == "json":
        data = _load_json(text, source)
    elif format_hint == "yaml":
        data = _load_yaml(text, source)
    elif format_hint is None:
        try:
            data = _load_json(text, source)
        except ParseError:
            logger.debug("%s is not JSON, trying YAML", source)
            data = _load_yaml(text, source)
    else:
        raise ParseError(f"Unknown document format '{format_hint}'", source)

    if not isinstance(data, dict):
        raise ParseError("Document root must be a mapping", source)
    return data


def load_document_file(path: Path) -> dict[str, Any]:
    """Read and decode an OpenAPI document from disk."""
    return load_document(path.read_bytes(), detect_format(path), str(path))


def _load_json(text: str, source: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}", source) from e


def _load_yaml(text: str, source: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid YAML: {e}", source) from e
