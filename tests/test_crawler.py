# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for IncludeCrawler orchestration.

Tests cover:
- Root validation (fatal errors)
- Search path assembly and missing search path diagnostics
- On-demand scanning of undiscovered in-root targets
- Unreadable files becoming leaf nodes
- report_unresolved_macros
"""

import os

import pytest

from include_crawler.config import Config
from include_crawler.crawler import CrawlFatalError, IncludeCrawler
from include_crawler.models import UnresolvedReason, normalize_path


def write_tree(root, files):
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
    return root


def _p(root, rel):
    return normalize_path(os.path.join(str(root), rel))


class TestRootValidation:
    """Tests for fatal root errors."""

    def test_missing_root(self, tmp_path):
        with pytest.raises(CrawlFatalError, match="does not exist"):
            IncludeCrawler().crawl(str(tmp_path / "missing"))

    def test_root_is_a_file(self, tmp_path):
        target = tmp_path / "main.c"
        target.write_text("")
        with pytest.raises(CrawlFatalError, match="not a directory"):
            IncludeCrawler().crawl(str(target))

    def test_empty_root(self, tmp_path):
        result = IncludeCrawler().crawl(str(tmp_path))
        assert result.graph.nodes == {}
        assert result.stats["discovered"] == 0


class TestSearchPaths:
    """Tests for search path assembly."""

    def test_explicit_paths_first_then_config_paths(self, tmp_path):
        write_tree(tmp_path, {"include/a.h": "", "vendor/b.h": ""})
        crawler = IncludeCrawler(Config(overrides={"search_paths": ["vendor"]}))

        search = crawler.build_search_paths(str(tmp_path), [str(tmp_path / "include")])

        assert list(search) == [_p(tmp_path, "include"), _p(tmp_path, "vendor")]

    def test_missing_search_path_diagnostic(self, tmp_path):
        write_tree(tmp_path, {"main.c": ""})

        result = IncludeCrawler().crawl(str(tmp_path), search_paths=[str(tmp_path / "nope")])

        diagnostics = [d for d in result.graph.diagnostics if d.type == "missing_search_path"]
        assert len(diagnostics) == 1
        assert diagnostics[0].file == _p(tmp_path, "nope")


class TestBuild:
    """Tests for the build phase."""

    def test_on_demand_scan_of_undiscovered_target(self, tmp_path):
        """Test an in-root target with another extension is scanned and followed."""
        write_tree(
            tmp_path,
            {
                "main.c": '#include "table.def"\n',
                "table.def": '#include "row.h"\n',
                "row.h": "",
            },
        )

        result = IncludeCrawler().crawl(str(tmp_path))
        graph = result.graph

        table = _p(tmp_path, "table.def")
        assert graph.nodes[table].scanned is True
        assert graph.successors(table) == [_p(tmp_path, "row.h")]
        assert result.stats["scanned_on_demand"] == 1

    def test_binary_file_becomes_leaf(self, tmp_path):
        write_tree(tmp_path, {"main.c": '#include "blob.h"\n', "blob.h": b"\x00\x01\x02"})

        graph = IncludeCrawler().crawl(str(tmp_path)).graph

        blob = _p(tmp_path, "blob.h")
        assert graph.nodes[blob].scanned is False
        assert graph.successors(_p(tmp_path, "main.c")) == [blob]
        errors = [d for d in graph.diagnostics if d.type == "file_read_error"]
        assert [(d.file, d.message) for d in errors] == [(blob, "binary file")]

    def test_target_outside_root_is_leaf(self, tmp_path):
        write_tree(tmp_path / "sdk", {"sdk.h": '#include "never_followed.h"\n'})
        write_tree(tmp_path / "proj", {"main.c": "#include <sdk.h>\n"})

        graph = IncludeCrawler().crawl(
            str(tmp_path / "proj"), search_paths=[str(tmp_path / "sdk")]
        ).graph

        sdk = _p(tmp_path, "sdk/sdk.h")
        assert graph.nodes[sdk].scanned is False
        assert graph.category_of(sdk) == "third_party"
        assert graph.unresolved == []

    def test_unresolved_macro_reported_by_default(self, tmp_path):
        write_tree(tmp_path, {"main.c": "#include PLATFORM_HEADER\n"})

        graph = IncludeCrawler().crawl(str(tmp_path)).graph

        assert [u.reason for u in graph.unresolved] == [UnresolvedReason.MACRO_UNRESOLVED]

    def test_unresolved_macro_suppressed(self, tmp_path):
        write_tree(tmp_path, {"main.c": "#include PLATFORM_HEADER\n"})
        config = Config(overrides={"report_unresolved_macros": False})

        graph = IncludeCrawler(config).crawl(str(tmp_path)).graph

        assert graph.unresolved == []
        assert graph.diagnostics == []

    def test_ambiguous_include_diagnostic(self, tmp_path):
        write_tree(tmp_path, {"src/main.c": '#include "v.h"\n', "src/v.h": "", "include/v.h": ""})

        graph = IncludeCrawler().crawl(
            str(tmp_path), search_paths=[str(tmp_path / "include")]
        ).graph

        assert graph.successors(_p(tmp_path, "src/main.c")) == [_p(tmp_path, "src/v.h")]
        ambiguous = [d for d in graph.diagnostics if d.type == "ambiguous_include"]
        assert len(ambiguous) == 1
        assert ambiguous[0].severity == "info"

    def test_single_worker_matches_many_workers(self, mock_c_project):
        include = str(mock_c_project / "include")
        one = IncludeCrawler(Config(overrides={"max_workers": 1})).crawl(
            str(mock_c_project), search_paths=[include]
        )
        many = IncludeCrawler(Config(overrides={"max_workers": 16})).crawl(
            str(mock_c_project), search_paths=[include]
        )

        assert [(s.source, s.target) for s in one.graph.edge_pairs()] == [
            (s.source, s.target) for s in many.graph.edge_pairs()
        ]
        assert one.graph.cycle_edges == many.graph.cycle_edges
