# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Crawl orchestration: discovery, parallel scanning, graph building.

Pipeline:
1. Validation: the root must be a readable directory (else CrawlFatalError)
2. Discovery: candidate files under the root
3. Scan phase: files scanned in parallel on a bounded thread pool
4. Build phase: directives resolved serially, in sorted order, into one
   GraphBuilder; in-root targets that were not discovered are scanned on demand
5. Cycle detection and statistics

Per-file problems never abort a crawl; they become diagnostics and the file
becomes a leaf node. An IncludeCrawler keeps no state between crawls, so
several crawls may run concurrently in one process.
"""

import concurrent.futures
import logging
import os
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

from include_crawler.classifier import EdgeClassifier
from include_crawler.config import Config
from include_crawler.diagnostics import CrawlDiagnostic, DiagnosticType
from include_crawler.discovery import discover_files
from include_crawler.graph_builder import GraphBuilder
from include_crawler.models import (
    DependencyGraph,
    SearchPathList,
    UnresolvedReason,
    normalize_path,
)
from include_crawler.resolver import PathResolver
from include_crawler.scanner import FileReadError, IncludeScanner, ScanResult

logger = logging.getLogger(__name__)


class CrawlFatalError(Exception):
    """Raised when a crawl cannot start (root missing, not a directory, unreadable)."""

    pass


@dataclass
class CrawlResult:
    """Outcome of one crawl.

    Attributes:
        root: Normalized crawl root.
        graph: The finished include graph.
        search_paths: Effective search path list.
        stats: Counters and timing (elapsed_ms) for the crawl.
    """

    root: str
    graph: DependencyGraph
    search_paths: SearchPathList
    stats: Dict[str, Any] = field(default_factory=dict)


class IncludeCrawler:
    """Builds the include graph of a C/C++ source tree.

    Usage:
        crawler = IncludeCrawler(Config())
        result = crawler.crawl("/proj", search_paths=["/proj/include"])
        print(render(result.graph, result.root, "json"))
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config()

    def crawl(self, root: str, search_paths: Optional[Iterable[str]] = None) -> CrawlResult:
        """Crawl ``root`` and build its include graph.

        Args:
            root: Directory to crawl.
            search_paths: Ordered -I directories, absolute or relative to the
                working directory. Config ``search_paths`` (relative to the
                root) are appended after them.

        Returns:
            CrawlResult with the graph and statistics.

        Raises:
            CrawlFatalError: If the root is missing, not a directory, or unreadable.
        """
        start_time = time.time()
        root_path = self._validate_root(root)

        search_list = self.build_search_paths(root_path, search_paths)
        classifier = EdgeClassifier(
            root_path,
            plugin_dirs=self.config.plugin_dirs,
            third_party_dirs=self.config.third_party_dirs,
        )
        scanner = IncludeScanner(
            max_file_size_bytes=self.config.max_file_size_bytes,
            timeout_seconds=self.config.scan_timeout_seconds,
        )
        builder = GraphBuilder(root_path, classifier)

        for directory in search_list.missing():
            logger.warning(f"Search path does not exist: {directory}")
            builder.add_diagnostic(
                CrawlDiagnostic.create(
                    DiagnosticType.MISSING_SEARCH_PATH,
                    file=directory,
                    message="search directory does not exist",
                )
            )

        files = discover_files(
            root_path,
            extensions=self.config.extensions,
            ignore_patterns=self.config.ignore_patterns,
            follow_symlinks=self.config.follow_symlinks,
        )
        logger.info(f"Discovered {len(files)} files under {root_path}")

        results, failures = self._scan_all(scanner, files)

        stats: Dict[str, Any] = {
            "discovered": len(files),
            "scanned": len(results),
            "failed": len(failures),
            "scanned_on_demand": 0,
            "elapsed_ms": 0.0,
        }

        resolver = PathResolver(search_list)
        self._build(builder, classifier, resolver, scanner, files, results, failures, stats)

        graph = builder.build()
        is_valid, errors = graph.validate_graph()
        if not is_valid:
            for error in errors:
                logger.error(error)

        stats["nodes"] = len(graph.nodes)
        stats["edges"] = len(graph.edge_pairs())
        stats["unresolved"] = len(graph.unresolved)
        stats["cycles"] = len(graph.cycles)
        stats["elapsed_ms"] = (time.time() - start_time) * 1000

        logger.info(
            f"Crawled {stats['discovered']} files in {stats['elapsed_ms']:.1f}ms: "
            f"{stats['nodes']} nodes, {stats['edges']} edges, "
            f"{stats['unresolved']} unresolved, {stats['cycles']} cycles",
            extra={"extra_fields": {"root": root_path, **stats}},
        )

        return CrawlResult(root=root_path, graph=graph, search_paths=search_list, stats=stats)

    def build_search_paths(
        self, root: str, search_paths: Optional[Iterable[str]] = None
    ) -> SearchPathList:
        """Combine explicit -I directories with configured ones.

        Explicit directories keep their order and come first; configured
        directories are interpreted relative to the root.
        """
        directories: List[str] = [os.path.abspath(d) for d in (search_paths or ())]
        directories.extend(os.path.join(root, d) for d in self.config.search_paths)
        return SearchPathList(directories)

    def _validate_root(self, root: str) -> str:
        """Check the root and return its normalized form.

        Raises:
            CrawlFatalError: If the root cannot be crawled.
        """
        if not os.path.exists(root):
            raise CrawlFatalError(f"Root directory does not exist: {root}")
        if not os.path.isdir(root):
            raise CrawlFatalError(f"Root is not a directory: {root}")
        try:
            os.listdir(root)
        except OSError as e:
            raise CrawlFatalError(f"Root directory is not readable: {root}: {e}") from e
        return normalize_path(root)

    def _scan_all(
        self, scanner: IncludeScanner, files: List[str]
    ) -> Tuple[Dict[str, ScanResult], Dict[str, FileReadError]]:
        """Scan files on a bounded thread pool.

        Returns:
            Tuple of (results by path, FileReadError by path).
        """
        results: Dict[str, ScanResult] = {}
        failures: Dict[str, FileReadError] = {}
        lock = threading.Lock()

        def _scan(path: str) -> None:
            try:
                result = scanner.scan_file(path)
            except FileReadError as e:
                logger.warning(f"Skipping {path}: {e.reason}")
                with lock:
                    failures[path] = e
                return
            except Exception as e:
                logger.error(f"Unexpected error scanning {path}: {e}", exc_info=True)
                with lock:
                    failures[path] = FileReadError(path, f"scan failed: {e}")
                return
            with lock:
                results[result.path] = result

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            list(executor.map(_scan, files))

        return results, failures

    def _build(
        self,
        builder: GraphBuilder,
        classifier: EdgeClassifier,
        resolver: PathResolver,
        scanner: IncludeScanner,
        files: List[str],
        results: Dict[str, ScanResult],
        failures: Dict[str, FileReadError],
        stats: Dict[str, Any],
    ) -> None:
        """Feed scan results into the builder, serially and in sorted order."""
        for path in files:
            self._add_node(builder, path, results, failures)

        pending: Deque[str] = deque(path for path in files if path in results)
        while pending:
            source = pending.popleft()
            for directive in results[source].source_file.directives:
                resolution = resolver.resolve(source, directive)

                if not resolution.resolved:
                    if (
                        resolution.reason == UnresolvedReason.MACRO_UNRESOLVED
                        and not self.config.report_unresolved_macros
                    ):
                        logger.debug(
                            f"{source}:{directive.line_number}: skipping unexpanded macro "
                            f"include {directive.target}"
                        )
                        continue
                    reason = resolution.reason or UnresolvedReason.NOT_FOUND
                    builder.add_unresolved(source, directive, reason)
                    continue

                target = resolution.target
                assert target is not None

                if not builder.has_node(target):
                    if classifier.is_in_root(target):
                        # Referenced but not discovered (other extension, ignored dir)
                        self._scan_on_demand(scanner, target, results, failures)
                        stats["scanned_on_demand"] += 1
                        self._add_node(builder, target, results, failures)
                        if target in results:
                            pending.append(target)
                    else:
                        builder.add_leaf(target)

                if resolution.ambiguous:
                    builder.add_diagnostic(
                        CrawlDiagnostic.create(
                            DiagnosticType.AMBIGUOUS_INCLUDE,
                            file=source,
                            line=directive.line_number,
                            message=(
                                f"{directive.target} matches {len(resolution.candidates)} files, "
                                "using the first"
                            ),
                            metadata={"candidates": ", ".join(resolution.candidates)},
                        )
                    )

                builder.add_edge(source, target, directive, ambiguous=resolution.ambiguous)

        stats["scanned"] = len(results)
        stats["failed"] = len(failures)

    def _scan_on_demand(
        self,
        scanner: IncludeScanner,
        path: str,
        results: Dict[str, ScanResult],
        failures: Dict[str, FileReadError],
    ) -> None:
        try:
            results[path] = scanner.scan_file(path)
            logger.debug(f"Scanned undiscovered include target {path}")
        except FileReadError as e:
            logger.warning(f"Skipping {path}: {e.reason}")
            failures[path] = e

    def _add_node(
        self,
        builder: GraphBuilder,
        path: str,
        results: Dict[str, ScanResult],
        failures: Dict[str, FileReadError],
    ) -> None:
        if path in results:
            result = results[path]
            builder.add_source_file(result.source_file)
            builder.add_diagnostics(result.diagnostics)
            return

        builder.add_leaf(path)
        failure = failures.get(path)
        if failure is not None:
            builder.add_diagnostic(
                CrawlDiagnostic.create(
                    DiagnosticType.FILE_READ_ERROR,
                    file=path,
                    message=failure.reason,
                )
            )
