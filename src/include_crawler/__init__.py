# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Include-graph crawler for C/C++ source trees."""

__version__ = "0.1.0"

from .config import Config, ConfigurationError  # noqa: E402
from .crawler import CrawlFatalError, CrawlResult, IncludeCrawler  # noqa: E402
from .diagnostics import CrawlDiagnostic, DiagnosticSeverity, DiagnosticType  # noqa: E402
from .graph_builder import GraphBuilder  # noqa: E402
from .models import (  # noqa: E402
    DependencyGraph,
    EdgeCategory,
    IncludeDirective,
    IncludeKind,
    ResolvedEdge,
    SearchPathList,
    SourceFile,
    UnresolvedInclude,
)
from .reporter import OutputFormat, render  # noqa: E402
from .resolver import PathResolver, Resolution  # noqa: E402
from .scanner import FileReadError, IncludeScanner, ScanResult, ScanTimeoutError  # noqa: E402

__all__ = [
    "Config",
    "ConfigurationError",
    "CrawlFatalError",
    "CrawlResult",
    "IncludeCrawler",
    "CrawlDiagnostic",
    "DiagnosticSeverity",
    "DiagnosticType",
    "GraphBuilder",
    "DependencyGraph",
    "EdgeCategory",
    "IncludeDirective",
    "IncludeKind",
    "ResolvedEdge",
    "SearchPathList",
    "SourceFile",
    "UnresolvedInclude",
    "OutputFormat",
    "render",
    "PathResolver",
    "Resolution",
    "FileReadError",
    "IncludeScanner",
    "ScanResult",
    "ScanTimeoutError",
]
