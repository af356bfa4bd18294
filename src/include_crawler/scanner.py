# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Include scanner for C/C++ source files.

This module implements the scanning pipeline for a single file:
- File reading with UTF-8/latin-1 fallback encoding
- File size limits and binary file detection
- Comment blanking and backslash line-continuation joining
- Directive dispatch to handler plugins (conditionals, macros, includes)
- Cooperative per-file deadline

Scanning never resolves paths. It produces the ordered IncludeDirective
records of a file plus any malformed-directive diagnostics.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from include_crawler.diagnostics import CrawlDiagnostic
from include_crawler.directives import DirectiveRegistry, PreprocessorLine, ScanState
from include_crawler.directives import default_registry
from include_crawler.models import SourceFile, normalize_path

logger = logging.getLogger(__name__)


class FileReadError(Exception):
    """Raised when a file cannot be scanned (missing, unreadable, binary, too large)."""

    def __init__(self, filepath: str, reason: str) -> None:
        super().__init__(f"{filepath}: {reason}")
        self.filepath = filepath
        self.reason = reason


class ScanTimeoutError(FileReadError):
    """Raised when scanning a file exceeds its deadline."""

    pass


# Comments are blanked; string and character literals are kept so that
# "//" inside a quoted include is not mistaken for a comment.
_COMMENT_OR_LITERAL_RE = re.compile(
    r"//[^\n]*|/\*.*?(?:\*/|\Z)|\"(?:\\.|[^\"\\\n])*\"|'(?:\\.|[^'\\\n])*'",
    re.DOTALL,
)

_DIRECTIVE_RE = re.compile(r"^\s*#\s*(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?P<args>.*)$")


@dataclass
class ScanResult:
    """Outcome of scanning one file."""

    source_file: SourceFile
    diagnostics: List[CrawlDiagnostic] = field(default_factory=list)

    @property
    def path(self) -> str:
        return self.source_file.path


def strip_comments(text: str) -> str:
    """Blank out C and C++ comments, preserving line breaks."""

    def _replace(match: "re.Match[str]") -> str:
        token = match.group(0)
        if token.startswith("//"):
            return ""
        if token.startswith("/*"):
            return " " + "\n" * token.count("\n")
        return token

    return _COMMENT_OR_LITERAL_RE.sub(_replace, text)


def logical_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield (line_number, text) with backslash continuations joined.

    The line number is that of the first physical line.
    """
    pending: List[str] = []
    start = 0
    for index, physical in enumerate(text.splitlines(), start=1):
        if not pending:
            start = index
        if physical.endswith("\\"):
            pending.append(physical[:-1])
            continue
        pending.append(physical)
        yield start, " ".join(part.strip() if i else part for i, part in enumerate(pending))
        pending = []
    if pending:
        yield start, " ".join(part.strip() if i else part for i, part in enumerate(pending))


class IncludeScanner:
    """Scanner that extracts include directives from one file at a time.

    Pipeline:
    1. File Reading: size limit, binary check, UTF-8 with latin-1 fallback
    2. Preprocessing: comments blanked, continuations joined
    3. Handler Dispatch: each ``#name`` line goes to the registered handlers
    4. Finalization: unterminated conditionals are reported

    Error Recovery:
    - Malformed directives: recorded, line skipped, scan continues
    - Unreadable files: FileReadError raised for the caller to record
    - Deadline exceeded: ScanTimeoutError raised for the caller to record

    The scanner holds no per-file state, so one instance can scan many files
    concurrently.
    """

    MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024
    SCAN_TIMEOUT_SECONDS = 5.0
    BINARY_SNIFF_BYTES = 8192
    DEADLINE_CHECK_INTERVAL = 256  # Lines between deadline checks

    def __init__(
        self,
        registry: Optional[DirectiveRegistry] = None,
        max_file_size_bytes: int = MAX_FILE_SIZE_BYTES,
        timeout_seconds: float = SCAN_TIMEOUT_SECONDS,
    ):
        """Initialize scanner.

        Args:
            registry: Handler registry. If None, uses the built-in handlers.
            max_file_size_bytes: Files larger than this are not scanned.
            timeout_seconds: Deadline for scanning a single file.
        """
        self.registry = registry or default_registry()
        self.max_file_size_bytes = max_file_size_bytes
        self.timeout_seconds = timeout_seconds

    def scan_file(self, filepath: str) -> ScanResult:
        """Read and scan a file.

        Args:
            filepath: Path to the file. Normalized before use.

        Returns:
            ScanResult with the file's SourceFile and diagnostics.

        Raises:
            FileReadError: File missing, unreadable, binary or too large.
            ScanTimeoutError: Scanning exceeded the deadline.
        """
        path = normalize_path(filepath)
        deadline = time.monotonic() + self.timeout_seconds
        text = self._read_file(path)
        return self.scan_text(path, text, deadline=deadline)

    def scan_text(self, filepath: str, text: str, deadline: Optional[float] = None) -> ScanResult:
        """Scan already-loaded source text.

        Args:
            filepath: Path the text belongs to (used as-is as node identity).
            text: Source text.
            deadline: time.monotonic() value after which scanning aborts.

        Returns:
            ScanResult with directives in textual order.

        Raises:
            ScanTimeoutError: Scanning exceeded the deadline.
        """
        state = ScanState(filepath=filepath)
        cleaned = strip_comments(text)

        for count, (line_number, line_text) in enumerate(logical_lines(cleaned)):
            if (
                deadline is not None
                and count % self.DEADLINE_CHECK_INTERVAL == 0
                and time.monotonic() > deadline
            ):
                raise ScanTimeoutError(
                    filepath, f"scan exceeded timeout ({self.timeout_seconds}s)"
                )

            match = _DIRECTIVE_RE.match(line_text)
            if not match:
                continue

            line = PreprocessorLine(
                name=match.group("name"),
                args=match.group("args").strip(),
                line_number=line_number,
                raw=line_text.strip(),
            )
            self._dispatch(line, state)

        for frame in state.conditionals.open_frames():
            state.malformed(
                PreprocessorLine(
                    name=frame.keyword,
                    args="",
                    line_number=frame.line_number,
                    raw=f"#{frame.keyword}",
                ),
                f"#{frame.keyword} opened at line {frame.line_number} is never closed",
            )

        source_file = SourceFile(
            path=filepath,
            text=text,
            directives=tuple(state.directives),
            scanned=True,
        )
        logger.debug(f"Scanned {filepath}: {len(state.directives)} include directives")
        return ScanResult(source_file=source_file, diagnostics=state.diagnostics)

    def _dispatch(self, line: PreprocessorLine, state: ScanState) -> None:
        """Invoke every handler registered for the line's directive name.

        Error Recovery:
        - Handler exceptions: Log error, continue with other handlers
        """
        for handler in self.registry.handlers_for(line.name):
            try:
                handler.handle(line, state)
            except Exception as e:
                logger.error(
                    f"Error in handler '{handler.name()}' for {state.filepath}:"
                    f"{line.line_number}: {e}"
                )

    def _read_file(self, filepath: str) -> str:
        """Read file with size limit, binary check and UTF-8/latin-1 fallback.

        Raises:
            FileReadError: If the file should not or cannot be scanned.
        """
        path = Path(filepath)
        try:
            if not path.is_file():
                raise FileReadError(filepath, "file not found")

            file_size = path.stat().st_size
            if file_size > self.max_file_size_bytes:
                raise FileReadError(
                    filepath,
                    f"{file_size} bytes exceeds limit ({self.max_file_size_bytes})",
                )

            data = path.read_bytes()
        except PermissionError as e:
            raise FileReadError(filepath, "permission denied") from e
        except OSError as e:
            raise FileReadError(filepath, f"read failed: {e.strerror or e}") from e

        if b"\0" in data[: self.BINARY_SNIFF_BYTES]:
            raise FileReadError(filepath, "binary file")

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning(f"File {filepath} is not UTF-8, using latin-1 fallback encoding")
            return data.decode("latin-1")
