# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Conditional block tracking for guard metadata.

Conditions are recorded, never evaluated: every branch of an
``#if``/``#elif``/``#else`` chain is scanned and the directives inside are
tagged with the text of the branch they sit in. For

    #if defined(_WIN32) || defined(_WIN64)
      #include "platform/win.h"
    #else
      #include "platform/posix.h"
    #endif

the two includes carry the guards ``defined(_WIN32) || defined(_WIN64)``
and ``!(defined(_WIN32) || defined(_WIN64))``.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)


class ConditionalError(Exception):
    """Raised for #elif/#else/#endif without a matching opening block."""

    pass


def negate(condition: str) -> str:
    return f"!({condition})"


def conjoin(parts: List[str]) -> str:
    """Join conditions with ``&&``, parenthesizing any part that uses ``||``."""
    if len(parts) == 1:
        return parts[0]
    wrapped = []
    for part in parts:
        if "||" in part and not _is_parenthesized(part):
            wrapped.append(f"({part})")
        else:
            wrapped.append(part)
    return " && ".join(wrapped)


def _is_parenthesized(text: str) -> bool:
    """True if ``text`` is a single ``(...)`` or ``!(...)`` group."""
    body = text[1:] if text.startswith("!") else text
    if not (body.startswith("(") and body.endswith(")")):
        return False
    depth = 0
    for index, char in enumerate(body):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and index != len(body) - 1:
                return False
    return True


@dataclass
class ConditionalFrame:
    """One open #if block."""

    keyword: str  # "if", "ifdef" or "ifndef"
    line_number: int
    previous: List[str] = field(default_factory=list)  # Conditions of earlier branches
    current: Optional[str] = None  # Condition of the active branch, None after #else
    seen_else: bool = False

    def branch_text(self) -> str:
        parts = [negate(c) for c in self.previous]
        if self.current is not None:
            parts.append(self.current)
        return conjoin(parts)


class ConditionalStack:
    """Stack of open conditional blocks while scanning one file."""

    def __init__(self) -> None:
        self._frames: List[ConditionalFrame] = []

    @property
    def depth(self) -> int:
        return len(self._frames)

    def push_if(self, condition: str, line_number: int) -> None:
        self._frames.append(ConditionalFrame("if", line_number, current=condition.strip()))

    def push_ifdef(self, name: str, line_number: int) -> None:
        self._frames.append(
            ConditionalFrame("ifdef", line_number, current=f"defined({name.strip()})")
        )

    def push_ifndef(self, name: str, line_number: int) -> None:
        self._frames.append(
            ConditionalFrame("ifndef", line_number, current=f"!defined({name.strip()})")
        )

    def elif_(self, condition: str) -> None:
        """Switch to an ``#elif`` branch.

        Raises:
            ConditionalError: No open block, or the block already saw #else.
        """
        frame = self._top("#elif")
        if frame.seen_else:
            raise ConditionalError("#elif after #else")
        if frame.current is not None:
            frame.previous.append(frame.current)
        frame.current = condition.strip()

    def else_(self) -> None:
        """Switch to the ``#else`` branch.

        Raises:
            ConditionalError: No open block, or the block already saw #else.
        """
        frame = self._top("#else")
        if frame.seen_else:
            raise ConditionalError("duplicate #else")
        if frame.current is not None:
            frame.previous.append(frame.current)
        frame.current = None
        frame.seen_else = True

    def pop(self) -> ConditionalFrame:
        """Close the innermost block on ``#endif``.

        Raises:
            ConditionalError: No open block.
        """
        self._top("#endif")
        return self._frames.pop()

    def guard(self) -> Optional[str]:
        """Concatenated condition text of all enclosing blocks.

        Returns:
            None when no block is open.
        """
        if not self._frames:
            return None
        return conjoin([frame.branch_text() for frame in self._frames])

    def open_frames(self) -> List[ConditionalFrame]:
        return list(self._frames)

    def _top(self, directive: str) -> ConditionalFrame:
        if not self._frames:
            raise ConditionalError(f"{directive} without matching #if")
        return self._frames[-1]
