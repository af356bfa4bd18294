# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for IncludeScanner.

Tests cover:
- Comment blanking and line continuation joining
- Directive extraction order, kinds and guards
- Macro-expanded includes
- Malformed directives and unclosed conditionals
- File reading limits (binary, size, missing, encoding)
- Scan deadline
- Concurrent scans sharing one registry
"""

import concurrent.futures
import time
from typing import FrozenSet, Optional

import pytest

from include_crawler.directives import (
    DirectiveHandler,
    PreprocessorLine,
    ScanState,
    default_registry,
)

from include_crawler.models import IncludeDirective, IncludeKind, normalize_path
from include_crawler.scanner import (
    FileReadError,
    IncludeScanner,
    ScanTimeoutError,
    logical_lines,
    strip_comments,
)


class TestTextPreprocessing:
    """Tests for strip_comments() and logical_lines()."""

    def test_block_comment_keeps_line_count(self):
        text = '/*\n#include "hidden.h"\n*/\n#include "real.h"\n'
        cleaned = strip_comments(text)
        assert "hidden.h" not in cleaned
        assert cleaned.count("\n") == text.count("\n")

    def test_line_comment_removed(self):
        assert strip_comments('#include "a.h" // "b.h"\n') == '#include "a.h" \n'

    def test_comment_markers_inside_literals_kept(self):
        text = '#include "dir//file.h"\n'
        assert strip_comments(text) == text

    def test_unterminated_block_comment(self):
        assert "x.h" not in strip_comments('/* open\n#include "x.h"\n')

    def test_continuations_joined(self):
        lines = list(logical_lines('#include \\\n  "long.h"\nint x;\n'))
        assert lines[0] == (1, '#include  "long.h"')
        assert lines[1] == (3, "int x;")


class TestScanText:
    """Tests for IncludeScanner.scan_text()."""

    def test_directives_in_textual_order(self):
        scanner = IncludeScanner()
        result = scanner.scan_text(
            "/p/main.c",
            '#include "common.h"\n#include <stdio.h>\n  #  include "spaced.h"\n',
        )

        directives = result.source_file.directives
        assert [d.target for d in directives] == ["common.h", "stdio.h", "spaced.h"]
        assert [d.kind for d in directives] == [
            IncludeKind.QUOTED,
            IncludeKind.ANGLE,
            IncludeKind.QUOTED,
        ]
        assert [d.line_number for d in directives] == [1, 2, 3]
        assert result.source_file.scanned is True
        assert result.diagnostics == []

    def test_commented_include_ignored(self):
        """Test an include inside a block comment is not a directive."""
        result = IncludeScanner().scan_text(
            "/p/config.h",
            '/*\n * #include "not/a/real/include.h"\n */\n#include "real.h"\n',
        )
        assert [d.target for d in result.source_file.directives] == ["real.h"]
        assert result.source_file.directives[0].line_number == 4

    def test_both_branches_tagged(self):
        text = (
            "#if defined(_WIN32) || defined(_WIN64)\n"
            '  #include "platform/win.h"\n'
            "#else\n"
            '  #include "platform/posix.h"\n'
            "#endif\n"
            '#include "after.h"\n'
        )
        directives = IncludeScanner().scan_text("/p/config.h", text).source_file.directives

        assert [(d.target, d.guard) for d in directives] == [
            ("platform/win.h", "defined(_WIN32) || defined(_WIN64)"),
            ("platform/posix.h", "!(defined(_WIN32) || defined(_WIN64))"),
            ("after.h", None),
        ]

    def test_macro_include(self):
        text = '#define CONFIG_HEADER "generated/autogen.h"\n#include CONFIG_HEADER\n'
        directive = IncludeScanner().scan_text("/p/common.h", text).source_file.directives[0]

        assert directive.target == "generated/autogen.h"
        assert directive.kind == IncludeKind.QUOTED
        assert directive.macro_expanded is True
        assert directive.line_number == 2

    def test_macro_defined_after_use_not_expanded(self):
        text = '#include CONFIG_HEADER\n#define CONFIG_HEADER "late.h"\n'
        directive = IncludeScanner().scan_text("/p/a.h", text).source_file.directives[0]
        assert directive.kind == IncludeKind.MACRO

    def test_continued_define(self):
        text = '#define HEADER \\\n  "split.h"\n#include HEADER\n'
        directive = IncludeScanner().scan_text("/p/a.h", text).source_file.directives[0]
        assert directive.target == "split.h"
        assert directive.line_number == 3

    def test_malformed_directive_does_not_stop_scan(self):
        result = IncludeScanner().scan_text(
            "/p/a.c", '#include "broken.h\n#include "ok.h"\n'
        )
        assert [d.target for d in result.source_file.directives] == ["ok.h"]
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].type == "malformed_directive"
        assert result.diagnostics[0].line == 1

    def test_unclosed_conditional_reported(self):
        result = IncludeScanner().scan_text("/p/a.h", '#ifndef A_H\n#define A_H\n#include "b.h"\n')
        assert result.source_file.directives[0].guard == "!defined(A_H)"
        assert len(result.diagnostics) == 1
        assert "never closed" in result.diagnostics[0].message

    def test_other_directives_ignored(self):
        result = IncludeScanner().scan_text("/p/a.h", "#pragma once\n#error nope\n#line 4\n")
        assert result.source_file.directives == ()
        assert result.diagnostics == []

    def test_handler_exception_does_not_abort_scan(self, monkeypatch):
        scanner = IncludeScanner()
        define_handler = scanner.registry.handlers_for("define")[0]

        def _boom(line, state):
            raise RuntimeError("boom")

        monkeypatch.setattr(define_handler, "handle", _boom)
        result = scanner.scan_text("/p/a.h", '#define X 1\n#include "b.h"\n')
        assert [d.target for d in result.source_file.directives] == ["b.h"]

    def test_deadline_exceeded(self):
        scanner = IncludeScanner(timeout_seconds=0.01)
        with pytest.raises(ScanTimeoutError):
            scanner.scan_text("/p/a.h", '#include "a.h"\n', deadline=0.0)


class TestScanFile:
    """Tests for IncludeScanner.scan_file() and file reading."""

    def test_scan_file_normalizes_path(self, tmp_path):
        (tmp_path / "src").mkdir()
        header = tmp_path / "a.h"
        header.write_text('#include "b.h"\n')

        result = IncludeScanner().scan_file(str(tmp_path / "src" / ".." / "a.h"))

        assert result.path == normalize_path(str(header))
        assert result.source_file.text == '#include "b.h"\n'

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileReadError) as exc_info:
            IncludeScanner().scan_file(str(tmp_path / "missing.h"))
        assert exc_info.value.reason == "file not found"

    def test_binary_file(self, tmp_path):
        blob = tmp_path / "blob.h"
        blob.write_bytes(b"\x7fELF\x00\x00\x01")
        with pytest.raises(FileReadError) as exc_info:
            IncludeScanner().scan_file(str(blob))
        assert exc_info.value.reason == "binary file"

    def test_file_too_large(self, tmp_path):
        big = tmp_path / "big.h"
        big.write_text("x" * 100)
        with pytest.raises(FileReadError) as exc_info:
            IncludeScanner(max_file_size_bytes=10).scan_file(str(big))
        assert "exceeds limit" in exc_info.value.reason

    def test_latin1_fallback(self, tmp_path):
        header = tmp_path / "legacy.h"
        header.write_bytes(b'/* caf\xe9 */\n#include "a.h"\n')
        result = IncludeScanner().scan_file(str(header))
        assert [d.target for d in result.source_file.directives] == ["a.h"]

    def test_timeout_is_a_file_read_error(self):
        assert issubclass(ScanTimeoutError, FileReadError)


class _SlowIncludeHandler(DirectiveHandler):
    """Runs before IncludeHandler and stalls, so concurrent scans overlap."""

    def directive_names(self) -> FrozenSet[str]:
        return frozenset({"include"})

    def handle(self, line: PreprocessorLine, state: ScanState) -> Optional[IncludeDirective]:
        time.sleep(0.01)
        return None

    def priority(self) -> int:
        return 1000

    def name(self) -> str:
        return "SlowIncludeHandler"


class TestConcurrentScans:
    """Tests for one scanner shared by the crawler's worker threads."""

    def test_shared_registry_emits_each_include_once(self):
        registry = default_registry()
        registry.register(_SlowIncludeHandler())
        scanner = IncludeScanner(registry=registry)
        text = '#include "a.h"\n#include "b.h"\n'

        def scan(index):
            result = scanner.scan_text(f"/p/file{index}.c", text)
            return [d.target for d in result.source_file.directives]

        with concurrent.futures.ThreadPoolExecutor(max_workers=8) as executor:
            targets = list(executor.map(scan, range(16)))

        assert targets == [["a.h", "b.h"]] * 16

    def test_lookup_does_not_rebuild_index(self):
        registry = default_registry()

        first = registry.handlers_for("include")
        second = registry.handlers_for("include")

        assert first is second
        assert [h.name() for h in registry.handlers_for("if")] == ["ConditionalHandler"]
