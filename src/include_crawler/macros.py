# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Object-like macro tracking for macro-expanded includes.

Only the subset of the preprocessor needed to turn ``#include NAME`` into a
literal path is supported:

    #define CONFIG_HEADER "generated/autogen.h"
    #include CONFIG_HEADER

Each file starts with an empty table; macros are never visible across files.
Function-like macros, token pasting and arithmetic are out of scope.
"""

import logging
import re
from typing import Dict, Optional, Tuple

from include_crawler.models import IncludeKind

logger = logging.getLogger(__name__)

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# NAME followed by whitespace and a replacement, or NAME alone.
# A "(" directly after the name makes the macro function-like.
_DEFINE_RE = re.compile(r"^(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?P<paren>\()?(?:\s+(?P<value>.*))?$")

_QUOTED_RE = re.compile(r'^"(?P<path>[^"]+)"$')
_ANGLE_RE = re.compile(r"^<(?P<path>[^>]+)>$")


def parse_include_literal(text: str) -> Optional[Tuple[str, str]]:
    """Parse ``"path"`` or ``<path>`` into (kind, path).

    Returns:
        (IncludeKind value, path), or None if ``text`` is not a literal.
    """
    text = text.strip()
    match = _QUOTED_RE.match(text)
    if match:
        return IncludeKind.QUOTED, match.group("path")
    match = _ANGLE_RE.match(text)
    if match:
        return IncludeKind.ANGLE, match.group("path")
    return None


class MacroTable:
    """Per-file mapping of macro name to replacement text.

    Populated in textual order. Later definitions replace earlier ones;
    conditions around a #define are not evaluated, so the last definition
    seen in the file wins.
    """

    # Limit for NAME -> OTHER_NAME -> "literal" chains
    MAX_EXPANSION_DEPTH = 8

    def __init__(self) -> None:
        self._macros: Dict[str, str] = {}

    def define(self, args: str) -> bool:
        """Record a ``#define`` from its argument text.

        Args:
            args: Everything after ``#define``.

        Returns:
            True if an object-like macro was recorded, False if the text was
            a function-like macro or could not be parsed.
        """
        match = _DEFINE_RE.match(args.strip())
        if not match:
            return False
        if match.group("paren"):
            logger.debug(f"Ignoring function-like macro {match.group('name')}")
            return False

        value = (match.group("value") or "").strip()
        self._macros[match.group("name")] = value
        return True

    def undefine(self, name: str) -> None:
        self._macros.pop(name.strip(), None)

    def is_defined(self, name: str) -> bool:
        return name in self._macros

    def get(self, name: str) -> Optional[str]:
        return self._macros.get(name)

    def expand(self, name: str) -> Optional[Tuple[str, str]]:
        """Expand an identifier used as an include target.

        Follows identifier-to-identifier definitions until a quoted or
        angle literal is reached.

        Args:
            name: Bare identifier from ``#include NAME``.

        Returns:
            (IncludeKind value, path) if the macro expands to a literal,
            None if it is unknown or expands to something else.
        """
        current = name
        seen = set()
        for _ in range(self.MAX_EXPANSION_DEPTH):
            if current in seen:
                logger.debug(f"Recursive macro chain while expanding {name}")
                return None
            seen.add(current)

            value = self._macros.get(current)
            if value is None:
                return None

            literal = parse_include_literal(value)
            if literal is not None:
                return literal

            if not IDENTIFIER_RE.match(value):
                return None
            current = value

        logger.debug(f"Macro expansion depth exceeded while expanding {name}")
        return None

    def __len__(self) -> int:
        return len(self._macros)

    def __contains__(self, name: object) -> bool:
        return name in self._macros
