# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Base interface for preprocessor directive handler plugins.

The scanner splits every ``#`` line into a PreprocessorLine and dispatches it
to the handlers that claim its directive name (modular handler plugin
pattern). Handlers are stateless; everything a file accumulates while it is
scanned lives in the ScanState passed to each call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

from include_crawler.conditionals import ConditionalStack
from include_crawler.diagnostics import CrawlDiagnostic, DiagnosticType
from include_crawler.macros import MacroTable
from include_crawler.models import IncludeDirective


@dataclass(frozen=True)
class PreprocessorLine:
    """A logical preprocessor line (continuations joined, comments blanked)."""

    name: str  # Directive keyword, e.g. "include", "ifdef"
    args: str  # Text after the keyword, stripped
    line_number: int  # Line where the directive starts
    raw: str  # Full directive text


@dataclass
class ScanState:
    """Per-file state shared by handlers during one scan.

    A fresh state is created for every file, so macro tables and
    conditional stacks never leak between files.
    """

    filepath: str
    macros: MacroTable = field(default_factory=MacroTable)
    conditionals: ConditionalStack = field(default_factory=ConditionalStack)
    directives: List[IncludeDirective] = field(default_factory=list)
    diagnostics: List[CrawlDiagnostic] = field(default_factory=list)

    def malformed(self, line: PreprocessorLine, message: str) -> None:
        """Record a malformed directive; the line is skipped."""
        self.diagnostics.append(
            CrawlDiagnostic.create(
                DiagnosticType.MALFORMED_DIRECTIVE,
                file=self.filepath,
                line=line.line_number,
                message=message,
                metadata={"directive": line.raw},
            )
        )


class DirectiveHandler(ABC):
    """Abstract base class for directive handler plugins.

    Design Pattern:
    - Each handler is independent and stateless
    - Handlers are registered with priority values
    - Higher priority handlers execute first
    - New directives can be supported without modifying existing handlers

    Lifecycle:
    1. Handler is registered in DirectiveRegistry
    2. Scanner finds a ``#name args`` line
    3. Every handler whose directive_names() contains ``name`` is invoked
    4. Handlers update the ScanState (directives, macros, conditionals, diagnostics)
    """

    @abstractmethod
    def directive_names(self) -> FrozenSet[str]:
        """Directive keywords this handler processes (without the ``#``)."""
        pass

    @abstractmethod
    def handle(self, line: PreprocessorLine, state: ScanState) -> Optional[IncludeDirective]:
        """Process one directive line.

        Design Notes:
        - Handlers MUST NOT raise for malformed input; record it with
          state.malformed() and return None
        - Handlers that emit an include also append it to state.directives

        Args:
            line: The parsed preprocessor line.
            state: Per-file scan state.

        Returns:
            The emitted IncludeDirective, or None if the line emits nothing.
        """
        pass

    @abstractmethod
    def priority(self) -> int:
        """Return handler priority for execution order.

        Priority Guidelines:
        - 100+: State handlers (conditionals, macros) that later lines depend on
        - 50-99: Emitting handlers (includes)
        - Below 50: Observers

        Returns:
            Integer priority value. Higher values execute first.
        """
        pass

    @abstractmethod
    def name(self) -> str:
        """Return handler name for logging and debugging."""
        pass
