# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Structured diagnostics collected during a crawl.

Per-file and per-directive problems never abort a crawl. They are recorded
as CrawlDiagnostic entries and reported next to the graph.

Diagnostic Types:
- unresolved_include: Directive matched no file in any searched location
- malformed_directive: Directive syntax could not be parsed, line skipped
- file_read_error: File could not be scanned (missing, binary, too large, timeout)
- ambiguous_include: More than one search location matched, first one used
- missing_search_path: Configured search directory does not exist
- cycle_detected: Include cycle found (informational, not an error)
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class DiagnosticType(Enum):
    """Kinds of non-fatal problems recorded during a crawl."""

    UNRESOLVED_INCLUDE = "unresolved_include"
    MALFORMED_DIRECTIVE = "malformed_directive"
    FILE_READ_ERROR = "file_read_error"
    AMBIGUOUS_INCLUDE = "ambiguous_include"
    MISSING_SEARCH_PATH = "missing_search_path"
    CYCLE_DETECTED = "cycle_detected"


class DiagnosticSeverity(Enum):
    """Severity level for diagnostics.

    - Warning: Something the crawl could not determine
    - Info: Worth knowing, nothing is missing from the graph
    """

    WARNING = "warning"
    INFO = "info"


DEFAULT_SEVERITY: Dict[DiagnosticType, DiagnosticSeverity] = {
    DiagnosticType.UNRESOLVED_INCLUDE: DiagnosticSeverity.WARNING,
    DiagnosticType.MALFORMED_DIRECTIVE: DiagnosticSeverity.WARNING,
    DiagnosticType.FILE_READ_ERROR: DiagnosticSeverity.WARNING,
    DiagnosticType.AMBIGUOUS_INCLUDE: DiagnosticSeverity.INFO,
    DiagnosticType.MISSING_SEARCH_PATH: DiagnosticSeverity.WARNING,
    DiagnosticType.CYCLE_DETECTED: DiagnosticSeverity.INFO,
}

# Human-readable diagnostic names
DISPLAY_NAMES: Dict[DiagnosticType, str] = {
    DiagnosticType.UNRESOLVED_INCLUDE: "Unresolved include",
    DiagnosticType.MALFORMED_DIRECTIVE: "Malformed directive",
    DiagnosticType.FILE_READ_ERROR: "File not scanned",
    DiagnosticType.AMBIGUOUS_INCLUDE: "Ambiguous include",
    DiagnosticType.MISSING_SEARCH_PATH: "Missing search path",
    DiagnosticType.CYCLE_DETECTED: "Include cycle",
}


@dataclass
class CrawlDiagnostic:
    """A single recorded problem.

    Attributes:
        type: DiagnosticType value string
        file: Absolute path of the file concerned (or directory for search paths)
        line: Line number, 0 when the diagnostic concerns a whole file
        severity: "warning" or "info"
        message: Human-readable summary
        metadata: Additional type-specific fields
    """

    type: str
    file: str
    line: int
    severity: str
    message: str
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        diagnostic_type: DiagnosticType,
        file: str,
        message: str,
        line: int = 0,
        severity: Optional[DiagnosticSeverity] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> "CrawlDiagnostic":
        """Build a diagnostic with the default severity for its type."""
        if severity is None:
            severity = DEFAULT_SEVERITY[diagnostic_type]
        return cls(
            type=diagnostic_type.value,
            file=file,
            line=line,
            severity=severity.value,
            message=message,
            metadata=metadata or {},
        )

    def sort_key(self):
        return (self.file, self.line, self.type, self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        result: Dict[str, Any] = {
            "type": self.type,
            "file": self.file,
            "line": self.line,
            "severity": self.severity,
            "message": self.message,
        }
        if self.metadata:
            result["metadata"] = dict(sorted(self.metadata.items()))
        return result

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrawlDiagnostic":
        """Create CrawlDiagnostic from dictionary.

        Raises:
            KeyError: If required fields are missing.
        """
        return cls(
            type=data["type"],
            file=data["file"],
            line=data["line"],
            severity=data["severity"],
            message=data["message"],
            metadata=data.get("metadata", {}),
        )


def format_human_readable(diagnostic: CrawlDiagnostic, display_path: Optional[str] = None) -> str:
    """Format a diagnostic for terminal display.

    Format:
        warning src/main.c:4 - Unresolved include: <stdio.h> not found

    Args:
        diagnostic: Diagnostic to format.
        display_path: Path to show instead of the absolute file path.

    Returns:
        One-line human-readable representation.
    """
    location = display_path if display_path is not None else diagnostic.file
    if diagnostic.line:
        location += f":{diagnostic.line}"

    try:
        display_name = DISPLAY_NAMES[DiagnosticType(diagnostic.type)]
    except ValueError:
        display_name = diagnostic.type

    return f"{diagnostic.severity} {location} - {display_name}: {diagnostic.message}"
