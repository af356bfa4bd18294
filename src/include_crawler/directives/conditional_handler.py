# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Conditional block handler plugin.

Maintains the file's ConditionalStack for:
- #if, #ifdef, #ifndef (push)
- #elif, #elifdef, #elifndef, #else (switch branch)
- #endif (pop)

Conditions are recorded as guard text and never evaluated, so every branch
of a block is scanned.
"""

import logging
from typing import FrozenSet, Optional

from include_crawler.conditionals import ConditionalError
from include_crawler.models import IncludeDirective

from .base import DirectiveHandler, PreprocessorLine, ScanState

logger = logging.getLogger(__name__)

# Placeholder recorded when a condition is missing, so #endif still balances
MISSING_CONDITION = "?"


class ConditionalHandler(DirectiveHandler):
    """Handler that tracks #if nesting and branch conditions.

    Priority: 110 (state handler, runs first)
    """

    NAMES = frozenset(
        {"if", "ifdef", "ifndef", "elif", "elifdef", "elifndef", "else", "endif"}
    )

    def directive_names(self) -> FrozenSet[str]:
        return self.NAMES

    def handle(self, line: PreprocessorLine, state: ScanState) -> Optional[IncludeDirective]:
        stack = state.conditionals
        condition = line.args

        if line.name in ("if", "ifdef", "ifndef", "elif", "elifdef", "elifndef") and not condition:
            state.malformed(line, f"#{line.name} without a condition")
            condition = MISSING_CONDITION

        try:
            if line.name == "if":
                stack.push_if(condition, line.line_number)
            elif line.name == "ifdef":
                stack.push_ifdef(condition, line.line_number)
            elif line.name == "ifndef":
                stack.push_ifndef(condition, line.line_number)
            elif line.name == "elif":
                stack.elif_(condition)
            elif line.name == "elifdef":
                stack.elif_(f"defined({condition})")
            elif line.name == "elifndef":
                stack.elif_(f"!defined({condition})")
            elif line.name == "else":
                stack.else_()
            elif line.name == "endif":
                stack.pop()
        except ConditionalError as e:
            state.malformed(line, str(e))

        return None

    def priority(self) -> int:
        return 110

    def name(self) -> str:
        return "ConditionalHandler"
