# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Macro definition handler plugin (#define / #undef)."""

import logging
import re
from typing import FrozenSet, Optional

from include_crawler.models import IncludeDirective

from .base import DirectiveHandler, PreprocessorLine, ScanState

logger = logging.getLogger(__name__)

_NAME_START_RE = re.compile(r"^[A-Za-z_]")


class DefineHandler(DirectiveHandler):
    """Handler that maintains the file's MacroTable.

    Never emits directives. Priority: 100 (state handler)
    """

    NAMES = frozenset({"define", "undef"})

    def directive_names(self) -> FrozenSet[str]:
        return self.NAMES

    def handle(self, line: PreprocessorLine, state: ScanState) -> Optional[IncludeDirective]:
        if not _NAME_START_RE.match(line.args):
            state.malformed(line, f"#{line.name} without a macro name")
            return None

        if line.name == "undef":
            state.macros.undefine(line.args.split()[0])
        else:
            state.macros.define(line.args)
        return None

    def priority(self) -> int:
        return 100

    def name(self) -> str:
        return "DefineHandler"
