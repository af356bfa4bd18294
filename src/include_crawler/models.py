# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for the include-graph crawler.

This module defines the data structures shared by every crawl stage:
- IncludeKind: Enum-like class for include directive kinds
- EdgeCategory: Enum-like class for edge buckets (first-party, plugin, third-party)
- IncludeDirective: A single #include found in a source file
- SourceFile: A scanned (or leaf) file and its directives
- SearchPathList: Ordered search directories (-I flags)
- ResolvedEdge: A directive resolved to a target file
- UnresolvedInclude: A directive that matched no file
- CycleEdge: An edge lying on a detected include cycle
- DependencyGraph: The finished, read-only include graph

All models use JSON-compatible primitives for serialization.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)


class IncludeKind:
    """Kinds of include directives.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    ANGLE = "angle"  # #include <x.h>
    QUOTED = "quoted"  # #include "x.h"
    MACRO = "macro"  # #include NAME where NAME has no literal expansion


class EdgeCategory:
    """Buckets an include target can fall into.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    FIRST_PARTY = "first_party"
    PLUGIN = "plugin"
    THIRD_PARTY = "third_party"


class UnresolvedReason:
    """Why an include directive did not resolve to a file."""

    NOT_FOUND = "not_found"
    MACRO_UNRESOLVED = "macro_unresolved"


def normalize_path(path: str) -> str:
    """Return the identity form of a path: absolute, symlink-free, normalized."""
    return os.path.realpath(os.path.abspath(path))


@dataclass(frozen=True)
class IncludeDirective:
    """A single include directive, extracted verbatim by the scanner.

    The directive is recorded exactly as written; resolution to a file
    happens later in the PathResolver.
    """

    target: str  # Path string after macro expansion, or the bare identifier
    kind: str  # IncludeKind value
    line_number: int  # 1-based line of the directive in its file
    guard: Optional[str] = None  # Enclosing #if conditions, None at top level
    macro_expanded: bool = False  # True when target came from a #define
    macro_name: Optional[str] = None  # Identifier used in the directive, if any
    raw: str = ""  # Directive text as written (comments stripped)

    @property
    def is_conditional(self) -> bool:
        return self.guard is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {
            "target": self.target,
            "kind": self.kind,
            "line": self.line_number,
        }
        if self.guard is not None:
            result["guard"] = self.guard
        if self.macro_expanded:
            result["macro_expanded"] = True
        if self.macro_name is not None:
            result["macro_name"] = self.macro_name
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IncludeDirective":
        """Deserialize from JSON-compatible dict."""
        return cls(
            target=data["target"],
            kind=data["kind"],
            line_number=data["line"],
            guard=data.get("guard"),
            macro_expanded=data.get("macro_expanded", False),
            macro_name=data.get("macro_name"),
        )


@dataclass(frozen=True)
class SourceFile:
    """A file in the include graph.

    Identity is the normalized absolute path. Files that were referenced
    but never scanned (outside the root, binary, missing) are leaf nodes
    with ``scanned=False`` and no directives.
    """

    path: str
    text: str = ""
    directives: Tuple[IncludeDirective, ...] = ()
    scanned: bool = True

    @classmethod
    def leaf(cls, path: str) -> "SourceFile":
        return cls(path=path, scanned=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "scanned": self.scanned,
            "directives": [d.to_dict() for d in self.directives],
        }


class SearchPathList:
    """Ordered list of include search directories.

    Order determines resolution precedence. Duplicate entries (after
    normalization) keep their first position only.
    """

    def __init__(self, directories: Iterable[str] = ()) -> None:
        seen: Set[str] = set()
        ordered: List[str] = []
        for directory in directories:
            normalized = normalize_path(directory)
            if normalized in seen:
                continue
            seen.add(normalized)
            ordered.append(normalized)
        self._directories: Tuple[str, ...] = tuple(ordered)

    @property
    def directories(self) -> Tuple[str, ...]:
        return self._directories

    def missing(self) -> List[str]:
        """Directories that do not exist on disk."""
        return [d for d in self._directories if not os.path.isdir(d)]

    def __iter__(self):
        return iter(self._directories)

    def __len__(self) -> int:
        return len(self._directories)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SearchPathList):
            return NotImplemented
        return self._directories == other._directories

    def __repr__(self) -> str:
        return f"SearchPathList({list(self._directories)!r})"


@dataclass(frozen=True)
class ResolvedEdge:
    """A directive resolved to a target file.

    Several edges may connect the same pair of files (for example both
    branches of a conditional). DependencyGraph.edge_pairs() collapses
    them for reporting; the directive detail stays here.
    """

    source: str
    target: str
    directive: IncludeDirective
    category: str = EdgeCategory.FIRST_PARTY  # EdgeCategory value
    ambiguous: bool = False  # More than one search location matched

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.source, self.target)


@dataclass(frozen=True)
class UnresolvedInclude:
    """A directive that matched no file in any searched location."""

    source: str
    directive: IncludeDirective
    reason: str = UnresolvedReason.NOT_FOUND  # UnresolvedReason value


@dataclass(frozen=True)
class CycleEdge:
    """An edge that lies on a detected include cycle."""

    source: str
    target: str


@dataclass
class EdgeSummary:
    """All directives between one (source, target) pair, collapsed."""

    source: str
    target: str
    category: str
    lines: List[int] = field(default_factory=list)
    guards: List[str] = field(default_factory=list)
    conditional: bool = True  # False if any directive is unguarded
    ambiguous: bool = False


class DependencyGraph:
    """The include graph produced by one crawl.

    Invariant: every edge endpoint is a node. Unresolved includes are kept
    apart in ``unresolved`` instead of pointing at non-existent nodes.
    Cycles are permitted and recorded, never rejected.

    The graph is assembled by GraphBuilder and treated as read-only once
    returned from GraphBuilder.build().
    """

    def __init__(
        self,
        root: str,
        nodes: Dict[str, SourceFile],
        edges: List[ResolvedEdge],
        unresolved: List[UnresolvedInclude],
        cycles: List[List[str]],
        cycle_edges: Set[CycleEdge],
        diagnostics: Optional[List[Any]] = None,
        categories: Optional[Dict[str, str]] = None,
    ) -> None:
        self.root = root
        self.nodes = nodes
        self.edges = edges
        self.unresolved = unresolved
        self.cycles = cycles
        self.cycle_edges = cycle_edges
        self.diagnostics = diagnostics or []
        self.categories = categories or {}

    def edge_pairs(self) -> List[EdgeSummary]:
        """Edges deduplicated by (source, target), sorted.

        Returns:
            One EdgeSummary per distinct pair, carrying every line and
            guard from the underlying directives.
        """
        summaries: Dict[Tuple[str, str], EdgeSummary] = {}
        for edge in self.edges:
            summary = summaries.get(edge.pair)
            if summary is None:
                summary = EdgeSummary(
                    source=edge.source, target=edge.target, category=edge.category
                )
                summaries[edge.pair] = summary
            summary.lines.append(edge.directive.line_number)
            if edge.directive.guard is None:
                summary.conditional = False
            elif edge.directive.guard not in summary.guards:
                summary.guards.append(edge.directive.guard)
            summary.ambiguous = summary.ambiguous or edge.ambiguous

        result = [summaries[key] for key in sorted(summaries)]
        for summary in result:
            summary.lines.sort()
            summary.guards.sort()
        return result

    def successors(self, path: str) -> List[str]:
        """Distinct targets included by ``path``, sorted."""
        return sorted({e.target for e in self.edges if e.source == path})

    def predecessors(self, path: str) -> List[str]:
        """Distinct files that include ``path``, sorted."""
        return sorted({e.source for e in self.edges if e.target == path})

    def category_of(self, path: str) -> str:
        return self.categories.get(path, EdgeCategory.FIRST_PARTY)

    def validate_graph(self) -> Tuple[bool, List[str]]:
        """Validate graph structure for consistency.

        Checks for:
        - Dangling edges: an edge endpoint that is not a node
        - Cycle edges that are not edges of the graph

        Returns:
            Tuple of (is_valid, error_messages).
        """
        errors: List[str] = []

        for edge in self.edges:
            if edge.source not in self.nodes:
                errors.append(f"Dangling edge: source {edge.source} is not a node")
            if edge.target not in self.nodes:
                errors.append(f"Dangling edge: target {edge.target} is not a node")

        pairs = {edge.pair for edge in self.edges}
        for cycle_edge in self.cycle_edges:
            if (cycle_edge.source, cycle_edge.target) not in pairs:
                errors.append(
                    f"Cycle edge {cycle_edge.source} → {cycle_edge.target} is not a graph edge"
                )

        return len(errors) == 0, errors
