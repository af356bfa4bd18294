# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Graph builder for the include graph.

The GraphBuilder accumulates nodes, resolved edges, unresolved includes and
diagnostics during the build phase of a crawl, detects cycles, and hands out
the finished DependencyGraph.

Flow: ScanResults -> PathResolver -> GraphBuilder -> DependencyGraph
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from include_crawler.classifier import EdgeClassifier
from include_crawler.diagnostics import CrawlDiagnostic, DiagnosticType
from include_crawler.models import (
    CycleEdge,
    DependencyGraph,
    IncludeDirective,
    ResolvedEdge,
    SourceFile,
    UnresolvedInclude,
    UnresolvedReason,
)

logger = logging.getLogger(__name__)


class GraphBuilder:
    """Builds a DependencyGraph from scanned files and resolved directives.

    Node identity is the normalized absolute path. A node is inserted the
    first time a file is scanned or referenced; referenced files that cannot
    be scanned are leaf nodes with no outgoing edges.

    Thread Safety:
    - NOT thread-safe: a crawl feeds one builder from a single thread

    Usage:
        builder = GraphBuilder(root, EdgeClassifier(root))
        builder.add_source_file(scan_result.source_file)
        builder.add_edge(source, target, directive)
        graph = builder.build()
    """

    def __init__(self, root: str, classifier: Optional[EdgeClassifier] = None) -> None:
        self.root = root
        self.classifier = classifier or EdgeClassifier(root)

        self._nodes: Dict[str, SourceFile] = {}
        self._edges: List[ResolvedEdge] = []
        self._unresolved: List[UnresolvedInclude] = []
        self._diagnostics: List[CrawlDiagnostic] = []

    def has_node(self, path: str) -> bool:
        return path in self._nodes

    def is_scanned(self, path: str) -> bool:
        node = self._nodes.get(path)
        return node is not None and node.scanned

    def add_source_file(self, source_file: SourceFile) -> None:
        """Insert a scanned file.

        A scanned file replaces a leaf node for the same path; a second
        scan result for an already-scanned path is ignored.
        """
        existing = self._nodes.get(source_file.path)
        if existing is not None and existing.scanned:
            logger.debug(f"Node {source_file.path} already scanned, keeping first result")
            return
        self._nodes[source_file.path] = source_file

    def add_leaf(self, path: str) -> None:
        """Insert a referenced-but-unscanned file, unless the node exists."""
        if path not in self._nodes:
            self._nodes[path] = SourceFile.leaf(path)

    def add_edge(
        self,
        source: str,
        target: str,
        directive: IncludeDirective,
        ambiguous: bool = False,
    ) -> ResolvedEdge:
        """Insert an edge for a resolved directive.

        The target is inserted as a leaf node if it is not yet a node.

        Raises:
            ValueError: If the source is not a node.
        """
        if source not in self._nodes:
            raise ValueError(f"Edge source {source} is not a node")
        self.add_leaf(target)

        edge = ResolvedEdge(
            source=source,
            target=target,
            directive=directive,
            category=self.classifier.classify(target),
            ambiguous=ambiguous,
        )
        self._edges.append(edge)
        return edge

    def add_unresolved(self, source: str, directive: IncludeDirective, reason: str) -> None:
        """Record a directive that matched no file."""
        self._unresolved.append(
            UnresolvedInclude(source=source, directive=directive, reason=reason)
        )

        if reason == UnresolvedReason.MACRO_UNRESOLVED:
            message = f"macro {directive.target} has no literal expansion in this file"
        else:
            message = f"{_display_target(directive)} not found"
        self.add_diagnostic(
            CrawlDiagnostic.create(
                DiagnosticType.UNRESOLVED_INCLUDE,
                file=source,
                line=directive.line_number,
                message=message,
                metadata={"reason": reason, "target": directive.target},
            )
        )

    def add_diagnostic(self, diagnostic: CrawlDiagnostic) -> None:
        self._diagnostics.append(diagnostic)

    def add_diagnostics(self, diagnostics: List[CrawlDiagnostic]) -> None:
        self._diagnostics.extend(diagnostics)

    def adjacency(self) -> Dict[str, List[str]]:
        """Distinct successors per node, sorted for deterministic traversal."""
        adjacency: Dict[str, Set[str]] = {path: set() for path in self._nodes}
        for edge in self._edges:
            adjacency[edge.source].add(edge.target)
        return {path: sorted(targets) for path, targets in adjacency.items()}

    def detect_cycles(self) -> Tuple[List[List[str]], Set[CycleEdge]]:
        """Find include cycles with a depth-first traversal.

        Nodes are visited in sorted order. An edge to a node that is still on
        the traversal stack closes a cycle: the stack segment from that node
        to the current one, plus the closing edge. Every edge of such a cycle
        goes into the cycle edge set. Traversal continues past cycles.

        Returns:
            Tuple of (cycles, cycle_edges). Each cycle is a node path whose
            first and last entries are the same node.
        """
        adjacency = self.adjacency()
        done: Set[str] = set()
        cycles: List[List[str]] = []
        cycle_edges: Set[CycleEdge] = set()

        for start in sorted(adjacency):
            if start in done:
                continue

            path: List[str] = [start]
            position: Dict[str, int] = {start: 0}
            stack = [(start, iter(adjacency[start]))]

            while stack:
                node, successors = stack[-1]
                successor = next(successors, None)

                if successor is None:
                    stack.pop()
                    path.pop()
                    del position[node]
                    done.add(node)
                    continue

                if successor in position:
                    cycle = path[position[successor] :] + [successor]
                    cycles.append(cycle)
                    for a, b in zip(cycle, cycle[1:]):
                        cycle_edges.add(CycleEdge(source=a, target=b))
                elif successor not in done:
                    position[successor] = len(path)
                    path.append(successor)
                    stack.append((successor, iter(adjacency[successor])))

        return cycles, cycle_edges

    def build(self) -> DependencyGraph:
        """Detect cycles and return the finished graph."""
        cycles, cycle_edges = self.detect_cycles()

        for cycle in cycles:
            logger.info(f"Include cycle: {' -> '.join(cycle)}")
            self.add_diagnostic(
                CrawlDiagnostic.create(
                    DiagnosticType.CYCLE_DETECTED,
                    file=cycle[0],
                    message=f"cycle of {len(cycle) - 1} file(s)",
                    metadata={"cycle": " -> ".join(cycle)},
                )
            )

        categories = {path: self.classifier.classify(path) for path in self._nodes}

        return DependencyGraph(
            root=self.root,
            nodes=dict(self._nodes),
            edges=list(self._edges),
            unresolved=list(self._unresolved),
            cycles=cycles,
            cycle_edges=cycle_edges,
            diagnostics=sorted(self._diagnostics, key=lambda d: d.sort_key()),
            categories=categories,
        )


def _display_target(directive: IncludeDirective) -> str:
    if directive.kind == "angle":
        return f"<{directive.target}>"
    return f'"{directive.target}"'
