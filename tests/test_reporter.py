# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for report rendering (json, dot, text)."""

import json

import pytest

from include_crawler.classifier import EdgeClassifier
from include_crawler.graph_builder import GraphBuilder
from include_crawler.models import IncludeDirective, IncludeKind, SourceFile, UnresolvedReason
from include_crawler.reporter import OutputFormat, display_metadata, display_path, render

ROOT = "/proj"


@pytest.fixture
def graph():
    """main.c -> config.h (guarded twice), node.h <-> edge.h, <stdio.h> unresolved."""
    builder = GraphBuilder(ROOT, EdgeClassifier(ROOT))
    for path in (
        "/proj/src/main.c",
        "/proj/include/config.h",
        "/proj/include/model/node.h",
        "/proj/include/model/edge.h",
    ):
        builder.add_source_file(SourceFile(path=path))

    builder.add_edge(
        "/proj/src/main.c",
        "/proj/include/config.h",
        IncludeDirective(target="config.h", kind=IncludeKind.QUOTED, line_number=1),
    )
    builder.add_edge(
        "/proj/include/config.h",
        "/proj/include/platform/win.h",
        IncludeDirective(
            target="platform/win.h", kind=IncludeKind.QUOTED, line_number=6, guard="defined(_WIN32)"
        ),
    )
    builder.add_edge(
        "/proj/src/main.c",
        "/proj/include/model/node.h",
        IncludeDirective(target="model/node.h", kind=IncludeKind.QUOTED, line_number=2),
    )
    builder.add_edge(
        "/proj/include/model/node.h",
        "/proj/include/model/edge.h",
        IncludeDirective(target="model/edge.h", kind=IncludeKind.QUOTED, line_number=2),
    )
    builder.add_edge(
        "/proj/include/model/edge.h",
        "/proj/include/model/node.h",
        IncludeDirective(target="model/node.h", kind=IncludeKind.QUOTED, line_number=2),
    )
    builder.add_edge(
        "/proj/src/main.c",
        "/usr/include/zlib.h",
        IncludeDirective(target="zlib.h", kind=IncludeKind.ANGLE, line_number=4),
    )
    builder.add_unresolved(
        "/proj/src/main.c",
        IncludeDirective(target="stdio.h", kind=IncludeKind.ANGLE, line_number=3),
        UnresolvedReason.NOT_FOUND,
    )
    return builder.build()


class TestDisplayPath:
    def test_relative_inside_root(self):
        assert display_path("/proj/include/a.h", "/proj") == "include/a.h"

    def test_absolute_outside_root(self):
        assert display_path("/usr/include/zlib.h", "/proj") == "/usr/include/zlib.h"

    def test_metadata_paths(self):
        metadata = {
            "candidates": "/proj/src/v.h, /proj/include/v.h, /opt/sdk/v.h",
            "target": "v.h",
        }

        assert display_metadata(metadata, ROOT) == {
            "candidates": "src/v.h, include/v.h, /opt/sdk/v.h",
            "target": "v.h",
        }


class TestRenderJson:
    """Tests for the JSON report."""

    def test_structure(self, graph):
        report = json.loads(render(graph, ROOT, OutputFormat.JSON))

        assert set(report) == {
            "root",
            "nodes",
            "edges",
            "unresolved",
            "cycles",
            "cycle_edges",
            "diagnostics",
            "summary",
        }
        assert report["summary"]["nodes"] == 6
        assert report["summary"]["edges"] == 6
        assert report["summary"]["unresolved"] == 1
        assert report["summary"]["cycles"] == 1

    def test_nodes_sorted_and_relative(self, graph):
        report = json.loads(render(graph, ROOT, OutputFormat.JSON))
        paths = [n["path"] for n in report["nodes"]]

        assert paths == sorted(paths)
        assert "src/main.c" in paths
        assert "/usr/include/zlib.h" in paths

    def test_edge_fields(self, graph):
        report = json.loads(render(graph, ROOT, OutputFormat.JSON))
        edge = next(e for e in report["edges"] if e["target"] == "include/platform/win.h")

        assert edge == {
            "source": "include/config.h",
            "target": "include/platform/win.h",
            "category": "first_party",
            "guards": ["defined(_WIN32)"],
            "conditional": True,
            "lines": [6],
            "ambiguous": False,
        }

    def test_third_party_node(self, graph):
        report = json.loads(render(graph, ROOT, OutputFormat.JSON))
        zlib = next(n for n in report["nodes"] if n["path"] == "/usr/include/zlib.h")
        assert zlib["category"] == "third_party"
        assert zlib["scanned"] is False

    def test_unresolved_and_cycles(self, graph):
        report = json.loads(render(graph, ROOT, OutputFormat.JSON))

        assert report["unresolved"] == [
            {
                "source": "src/main.c",
                "target": "stdio.h",
                "kind": "angle",
                "line": 3,
                "guard": None,
                "reason": "not_found",
            }
        ]
        assert report["cycle_edges"] == [
            {"source": "include/model/edge.h", "target": "include/model/node.h"},
            {"source": "include/model/node.h", "target": "include/model/edge.h"},
        ]

    def test_diagnostic_metadata_paths_relative(self, graph):
        report = json.loads(render(graph, ROOT, OutputFormat.JSON))

        cycle = next(d for d in report["diagnostics"] if d["type"] == "cycle_detected")
        paths = cycle["metadata"]["cycle"].split(" -> ")
        assert len(paths) == 3
        assert all(p.startswith("include/model/") for p in paths)

    def test_byte_identical_on_rerender(self, graph):
        assert render(graph, ROOT, OutputFormat.JSON) == render(graph, ROOT, OutputFormat.JSON)


class TestRenderDot:
    """Tests for the Graphviz report."""

    def test_header_and_shapes(self, graph):
        dot = render(graph, ROOT, OutputFormat.DOT)

        assert dot.startswith("digraph Includes {\n  rankdir=LR;")
        assert dot.rstrip().endswith("}")
        assert '"src/main.c" [shape=ellipse' in dot
        assert '"include/config.h" [shape=box' in dot

    def test_guarded_edge_dashed(self, graph):
        dot = render(graph, ROOT, OutputFormat.DOT)
        assert (
            '"include/config.h" -> "include/platform/win.h" '
            '[style=dashed, label="defined(_WIN32)"];' in dot
        )

    def test_cycle_edges_red(self, graph):
        dot = render(graph, ROOT, OutputFormat.DOT)
        assert '"include/model/node.h" -> "include/model/edge.h" [color=red];' in dot
        assert '"include/model/edge.h" -> "include/model/node.h" [color=red];' in dot
        assert '"src/main.c" -> "include/config.h";' in dot


class TestRenderText:
    """Tests for the text report."""

    def test_sections(self, graph):
        text = render(graph, ROOT, OutputFormat.TEXT)

        assert "src/main.c [first_party]" in text
        assert "  -> include/config.h (line 1)" in text
        assert "  -> include/platform/win.h (line 6) if defined(_WIN32)" in text
        assert "Unresolved:\n  src/main.c:3 stdio.h (not_found)" in text
        assert "Cycles:" in text
        assert "Diagnostics:" in text
        assert "warning src/main.c:3 - Unresolved include: <stdio.h> not found" in text

    def test_unscanned_marker(self, graph):
        assert "/usr/include/zlib.h [third_party] (not scanned)" in render(graph, ROOT, "text")


def test_unknown_format(graph):
    with pytest.raises(ValueError):
        render(graph, ROOT, "yaml")
