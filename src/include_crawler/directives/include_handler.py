# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Include directive handler plugin.

Supports:
- #include "path"   (quoted)
- #include <path>   (angle)
- #include NAME     (macro-expanded through the file's MacroTable)
- #include_next and #import, recorded like #include

The target is extracted verbatim; resolution to a file happens later in the
PathResolver.
"""

import logging
from typing import FrozenSet, Optional

from include_crawler.macros import IDENTIFIER_RE
from include_crawler.models import IncludeDirective, IncludeKind

from .base import DirectiveHandler, PreprocessorLine, ScanState

logger = logging.getLogger(__name__)


class IncludeHandler(DirectiveHandler):
    """Handler that turns include lines into IncludeDirective records.

    Each directive is tagged with the current guard from the file's
    ConditionalStack. Malformed targets are recorded and skipped.

    Priority: 50 (runs after state handlers on the same line)
    """

    NAMES = frozenset({"include", "include_next", "import"})

    def directive_names(self) -> FrozenSet[str]:
        return self.NAMES

    def handle(self, line: PreprocessorLine, state: ScanState) -> Optional[IncludeDirective]:
        args = line.args
        if not args:
            state.malformed(line, f"#{line.name} without a target")
            return None

        guard = state.conditionals.guard()

        if args[0] in ('"', "<"):
            closing = '"' if args[0] == '"' else ">"
            end = args.find(closing, 1)
            if end == -1:
                state.malformed(line, f"unterminated include target {args}")
                return None
            target = args[1:end].strip()
            if not target:
                state.malformed(line, "empty include target")
                return None
            kind = IncludeKind.QUOTED if closing == '"' else IncludeKind.ANGLE
            directive = IncludeDirective(
                target=target,
                kind=kind,
                line_number=line.line_number,
                guard=guard,
                raw=line.raw,
            )
            state.directives.append(directive)
            return directive

        macro_name = args.split()[0]
        if not IDENTIFIER_RE.match(macro_name) or macro_name != args:
            state.malformed(line, f"unsupported include target {args}")
            return None

        expansion = state.macros.expand(macro_name)
        if expansion is None:
            logger.debug(
                f"{state.filepath}:{line.line_number}: macro {macro_name} has no literal expansion"
            )
            directive = IncludeDirective(
                target=macro_name,
                kind=IncludeKind.MACRO,
                line_number=line.line_number,
                guard=guard,
                macro_name=macro_name,
                raw=line.raw,
            )
        else:
            kind, target = expansion
            directive = IncludeDirective(
                target=target,
                kind=kind,
                line_number=line.line_number,
                guard=guard,
                macro_expanded=True,
                macro_name=macro_name,
                raw=line.raw,
            )

        state.directives.append(directive)
        return directive

    def priority(self) -> int:
        return 50

    def name(self) -> str:
        return "IncludeHandler"
