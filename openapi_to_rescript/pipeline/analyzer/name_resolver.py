"""
Name resolver for case conversion, reserved-word escaping and collisions.

Converts document names (snake_case, kebab-case, PascalCase, ...) into
ReScript identifiers. Escaping is idempotent: an identifier that is already
valid and not reserved is returned unchanged, so escaping an escaped name is
a no-op. Within one run a NameRegistry hands out names and disambiguates
collisions with a numeric suffix in traversal order.
"""

from __future__ import annotations

import re

# ReScript keywords plus built-in type names that generated declarations would shadow
RESERVED_WORDS = {
    "and",
    "as",
    "asr",
    "assert",
    "async",
    "await",
    "catch",
    "constraint",
    "downto",
    "else",
    "exception",
    "external",
    "false",
    "for",
    "if",
    "in",
    "include",
    "land",
    "lazy",
    "let",
    "lor",
    "lsl",
    "lsr",
    "lxor",
    "mod",
    "module",
    "mutable",
    "not",
    "of",
    "open",
    "or",
    "private",
    "rec",
    "switch",
    "to",
    "true",
    "try",
    "type",
    "when",
    "while",
    # Built-in types
    "array",
    "bool",
    "dict",
    "float",
    "int",
    "list",
    "option",
    "promise",
    "result",
    "string",
    "unit",
}

ESCAPE_SUFFIX = "_"

_IDENTIFIER = re.compile(r"^[a-z_][A-Za-z0-9_']*$")
_CONSTRUCTOR = re.compile(r"^[A-Z][A-Za-z0-9_']*$")

# Splits "HTTPServer_id2" into HTTP, Server, id, 2
_WORD_PATTERN = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")


def split_words(text: str) -> list[str]:
    return _WORD_PATTERN.findall(text)


def to_pascal_case(text: str) -> str:
    """Convert text to PascalCase."""
    return "".join(word[:1].upper() + word[1:].lower() for word in split_words(text))


def to_camel_case(text: str) -> str:
    """Convert text to camelCase."""
    pascal = to_pascal_case(text)
    return pascal[:1].lower() + pascal[1:]


def is_valid_identifier(name: str) -> bool:
    return bool(_IDENTIFIER.match(name)) and name not in RESERVED_WORDS


def escape_identifier(name: str) -> str:
    """
    Turn a name into a valid lowercase ReScript identifier.

    Valid, non-reserved names are returned unchanged. Reserved words get
    ESCAPE_SUFFIX appended. Anything else is camel-cased first.
    """
    if is_valid_identifier(name):
        return name
    if name in RESERVED_WORDS:
        return name + ESCAPE_SUFFIX

    candidate = to_camel_case(name)
    if not candidate:
        candidate = "value"
    if candidate[0].isdigit():
        candidate = "_" + candidate
    if candidate in RESERVED_WORDS:
        candidate += ESCAPE_SUFFIX
    return candidate


def escape_constructor(name: str) -> str:
    """Turn a name into a valid variant constructor (capitalized identifier)."""
    if _CONSTRUCTOR.match(name):
        return name
    candidate = to_pascal_case(name)
    if not candidate or not candidate[0].isalpha():
        candidate = "V" + candidate
    return candidate


class NameRegistry:
    """Hands out unique names within one namespace.

    Each claim is recorded with the source it was made for, so a second
    claim for the same source returns the same name while a claim from a
    different source is disambiguated.
    """

    def __init__(self, escape=escape_identifier):
        self._escape = escape
        self._owners: dict[str, str] = {}  # name -> source
        self._by_source: dict[str, str] = {}  # source -> name

    def claim(self, base: str, source: str) -> str:
        """
        Reserve a name for a source.

        Args:
            base: Preferred name (escaped before use)
            source: Identity of the entity (e.g. its schema path)

        Returns:
            The canonical name for this source
        """
        if source in self._by_source:
            return self._by_source[source]

        name = self._escape(base)
        counter = 2
        while name in self._owners:
            name = self._escape(f"{self._escape(base)}{counter}")
            counter += 1

        self._owners[name] = source
        self._by_source[source] = name
        return name

    def reserve(self, name: str, source: str) -> None:
        """Claim an exact name, e.g. for runtime helpers of the generated module."""
        self._owners[name] = source
        self._by_source[source] = name

    def __contains__(self, name: str) -> bool:
        return name in self._owners
