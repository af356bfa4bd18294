# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Report rendering for a finished include graph.

Output Formats:
- json: Machine-readable document (nodes, edges, unresolved, cycles, diagnostics)
- dot: Graphviz digraph, left to right, for visual inspection
- text: Adjacency listing followed by unresolved/cycle/diagnostic sections

Rendering is deterministic: every collection is sorted, paths are shown
relative to the root with ``/`` separators, and no timestamps are emitted,
so re-running on an unchanged tree yields byte-identical output.
"""

import json
import logging
import os
from typing import Any, Dict, List

from include_crawler.classifier import is_within
from include_crawler.diagnostics import format_human_readable
from include_crawler.models import DependencyGraph, EdgeCategory, normalize_path

logger = logging.getLogger(__name__)


class OutputFormat:
    """Supported report formats."""

    JSON = "json"
    DOT = "dot"
    TEXT = "text"

    ALL = (JSON, DOT, TEXT)


# Graphviz fill colours by category
CATEGORY_COLORS: Dict[str, str] = {
    EdgeCategory.FIRST_PARTY: "#e8f0fe",
    EdgeCategory.PLUGIN: "#e6f4ea",
    EdgeCategory.THIRD_PARTY: "#fff7e6",
}

SOURCE_EXTENSIONS = (".c", ".cc", ".cpp", ".cxx", ".m", ".mm")

# Diagnostic metadata keys holding joined paths, with their separator
PATH_METADATA_SEPARATORS: Dict[str, str] = {
    "cycle": " -> ",
    "candidates": ", ",
}


def display_path(path: str, root: str) -> str:
    """Path relative to ``root`` with forward slashes, absolute if outside."""
    if not is_within(path, root):
        return path.replace(os.sep, "/")
    return os.path.relpath(path, root).replace(os.sep, "/")


def display_metadata(metadata: Dict[str, str], root: str) -> Dict[str, str]:
    """Rewrite path-valued diagnostic metadata relative to ``root``."""
    result = dict(metadata)
    for key, separator in PATH_METADATA_SEPARATORS.items():
        if key in result:
            paths = result[key].split(separator)
            result[key] = separator.join(display_path(p, root) for p in paths)
    return result


def render(graph: DependencyGraph, root: str, fmt: str = OutputFormat.TEXT) -> str:
    """Render a graph in the requested format.

    Args:
        graph: Finished graph from GraphBuilder.build().
        root: Project root used to shorten paths.
        fmt: One of OutputFormat.ALL.

    Returns:
        The report as a string ending with a newline.

    Raises:
        ValueError: If ``fmt`` is not a supported format.
    """
    root = normalize_path(root)
    if fmt == OutputFormat.JSON:
        return render_json(graph, root)
    if fmt == OutputFormat.DOT:
        return render_dot(graph, root)
    if fmt == OutputFormat.TEXT:
        return render_text(graph, root)
    expected = ", ".join(OutputFormat.ALL)
    raise ValueError(f"Unsupported output format: {fmt} (expected one of {expected})")


def build_report(graph: DependencyGraph, root: str) -> Dict[str, Any]:
    """Build the JSON-compatible report document."""

    def rel(path: str) -> str:
        return display_path(path, root)

    include_counts: Dict[str, int] = {}
    for edge in graph.edges:
        include_counts[edge.source] = include_counts.get(edge.source, 0) + 1

    nodes = [
        {
            "path": rel(path),
            "category": graph.category_of(path),
            "scanned": node.scanned,
            "include_count": include_counts.get(path, 0),
        }
        for path, node in graph.nodes.items()
    ]
    nodes.sort(key=lambda n: n["path"])

    edges = [
        {
            "source": rel(summary.source),
            "target": rel(summary.target),
            "category": summary.category,
            "guards": summary.guards,
            "conditional": summary.conditional,
            "lines": summary.lines,
            "ambiguous": summary.ambiguous,
        }
        for summary in graph.edge_pairs()
    ]
    edges.sort(key=lambda e: (e["source"], e["target"]))

    unresolved = [
        {
            "source": rel(item.source),
            "target": item.directive.target,
            "kind": item.directive.kind,
            "line": item.directive.line_number,
            "guard": item.directive.guard,
            "reason": item.reason,
        }
        for item in graph.unresolved
    ]
    unresolved.sort(key=lambda u: (u["source"], u["line"], u["target"]))

    cycles = sorted([rel(p) for p in cycle] for cycle in graph.cycles)
    cycle_edges = sorted(
        ({"source": rel(e.source), "target": rel(e.target)} for e in graph.cycle_edges),
        key=lambda e: (e["source"], e["target"]),
    )

    diagnostics = []
    for diagnostic in graph.diagnostics:
        entry = diagnostic.to_dict()
        entry["file"] = rel(diagnostic.file)
        if "metadata" in entry:
            entry["metadata"] = display_metadata(entry["metadata"], root)
        diagnostics.append(entry)
    diagnostics.sort(key=lambda d: (d["file"], d["line"], d["type"], d["message"]))

    return {
        "root": root.replace(os.sep, "/"),
        "nodes": nodes,
        "edges": edges,
        "unresolved": unresolved,
        "cycles": cycles,
        "cycle_edges": cycle_edges,
        "diagnostics": diagnostics,
        "summary": {
            "nodes": len(nodes),
            "scanned": sum(1 for n in nodes if n["scanned"]),
            "edges": len(edges),
            "unresolved": len(unresolved),
            "cycles": len(cycles),
            "diagnostics": len(diagnostics),
        },
    }


def render_json(graph: DependencyGraph, root: str) -> str:
    return json.dumps(build_report(graph, root), indent=2, sort_keys=True) + "\n"


def render_dot(graph: DependencyGraph, root: str) -> str:
    """Render a left-to-right Graphviz digraph.

    Sources are ellipses, headers are boxes, fill colour follows the node's
    category. Guarded edges are dashed and labelled with their guard; edges
    on a cycle are red.
    """

    def node_id(path: str) -> str:
        return _dot_escape(display_path(path, root))

    lines = ["digraph Includes {"]
    lines.append("  rankdir=LR;")
    lines.append("  graph [splines=true];")
    lines.append('  node  [fontname="Helvetica", fontsize=10, style=filled];')
    lines.append("  edge  [arrowhead=vee];")

    for path in sorted(graph.nodes, key=lambda p: display_path(p, root)):
        shape = "ellipse" if path.endswith(SOURCE_EXTENSIONS) else "box"
        fill = CATEGORY_COLORS.get(
            graph.category_of(path), CATEGORY_COLORS[EdgeCategory.FIRST_PARTY]
        )
        attributes = [f"shape={shape}", f'fillcolor="{fill}"']
        if not graph.nodes[path].scanned:
            attributes.append("peripheries=2")
        lines.append(f'  "{node_id(path)}" [{", ".join(attributes)}];')

    cycle_pairs = {(e.source, e.target) for e in graph.cycle_edges}
    summaries = sorted(
        graph.edge_pairs(),
        key=lambda s: (display_path(s.source, root), display_path(s.target, root)),
    )
    for summary in summaries:
        attributes = []
        if summary.conditional:
            attributes.append("style=dashed")
            attributes.append(f'label="{_dot_escape(" | ".join(summary.guards))}"')
        if (summary.source, summary.target) in cycle_pairs:
            attributes.append("color=red")
        suffix = f" [{', '.join(attributes)}]" if attributes else ""
        lines.append(f'  "{node_id(summary.source)}" -> "{node_id(summary.target)}"{suffix};')

    lines.append("}")
    return "\n".join(lines) + "\n"


def render_text(graph: DependencyGraph, root: str) -> str:
    """Render a human-readable adjacency listing."""

    def rel(path: str) -> str:
        return display_path(path, root)

    report = build_report(graph, root)
    outgoing: Dict[str, List[Dict[str, Any]]] = {}
    for edge in report["edges"]:
        outgoing.setdefault(edge["source"], []).append(edge)

    lines: List[str] = [f"Include graph for {report['root']}", ""]

    for node in report["nodes"]:
        marker = "" if node["scanned"] else " (not scanned)"
        lines.append(f"{node['path']} [{node['category']}]{marker}")
        for edge in outgoing.get(node["path"], []):
            detail = ", ".join(str(n) for n in edge["lines"])
            line = f"  -> {edge['target']} (line {detail})"
            if edge["conditional"]:
                line += f" if {' | '.join(edge['guards'])}"
            if edge["ambiguous"]:
                line += " [ambiguous]"
            lines.append(line)

    if report["unresolved"]:
        lines.append("")
        lines.append("Unresolved:")
        for item in report["unresolved"]:
            line = f"  {item['source']}:{item['line']} {item['target']} ({item['reason']})"
            if item["guard"]:
                line += f" if {item['guard']}"
            lines.append(line)

    if report["cycles"]:
        lines.append("")
        lines.append("Cycles:")
        for cycle in report["cycles"]:
            lines.append(f"  {' -> '.join(cycle)}")

    diagnostics = sorted(graph.diagnostics, key=lambda d: (rel(d.file), d.line, d.type, d.message))
    if diagnostics:
        lines.append("")
        lines.append("Diagnostics:")
        for diagnostic in diagnostics:
            formatted = format_human_readable(diagnostic, display_path=rel(diagnostic.file))
            lines.append(f"  {formatted}")

    summary = report["summary"]
    lines.append("")
    lines.append(
        f"{summary['nodes']} files ({summary['scanned']} scanned), {summary['edges']} edges, "
        f"{summary['unresolved']} unresolved, {summary['cycles']} cycles"
    )
    return "\n".join(lines) + "\n"


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')
