# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Path resolution for include directives.

Resolution order:
1. Quoted includes: the including file's own directory, then the search paths
2. Angle includes: the search paths only, never the including file's directory
3. Unexpanded macro includes: never resolvable

The first existing regular file in that order wins (first match, not best
match). ``..`` segments are collapsed against the candidate directory before
the file is checked, so ``plugins/../include/common.h`` and
``include/common.h`` resolve to the same node.

Resolution is a pure function of (including file, directive, search paths);
it touches the filesystem only to test for file existence.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from include_crawler.models import (
    IncludeDirective,
    IncludeKind,
    SearchPathList,
    UnresolvedReason,
    normalize_path,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Result of resolving one directive.

    Attributes:
        target: Normalized path of the winning file, None if unresolved.
        candidates: Every matching file in search order (winner first).
        searched: Directories consulted, in order.
        reason: UnresolvedReason value when target is None.
    """

    target: Optional[str]
    candidates: List[str] = field(default_factory=list)
    searched: List[str] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.target is not None

    @property
    def ambiguous(self) -> bool:
        return len(self.candidates) > 1


class PathResolver:
    """Resolves include directives to files.

    Usage:
        resolver = PathResolver(SearchPathList(["/proj/include"]))
        resolution = resolver.resolve("/proj/src/main.c", directive)
    """

    def __init__(self, search_paths: SearchPathList) -> None:
        self.search_paths = search_paths

    def candidate_directories(self, source_path: str, directive: IncludeDirective) -> List[str]:
        """Directories to consult for a directive, in precedence order."""
        if directive.kind == IncludeKind.MACRO:
            return []

        directories: List[str] = []
        if directive.kind == IncludeKind.QUOTED:
            directories.append(os.path.dirname(source_path))
        directories.extend(d for d in self.search_paths if d not in directories)
        return directories

    def resolve(self, source_path: str, directive: IncludeDirective) -> Resolution:
        """Resolve a directive found in ``source_path``.

        Args:
            source_path: Normalized path of the including file.
            directive: Directive to resolve.

        Returns:
            Resolution with the first match, or with a reason if none matched.
        """
        if directive.kind == IncludeKind.MACRO:
            return Resolution(target=None, reason=UnresolvedReason.MACRO_UNRESOLVED)

        if os.path.isabs(directive.target):
            return self._resolve_absolute(directive.target)

        directories = self.candidate_directories(source_path, directive)
        candidates: List[str] = []
        for directory in directories:
            candidate = os.path.normpath(os.path.join(directory, directive.target))
            if not os.path.isfile(candidate):
                continue
            normalized = normalize_path(candidate)
            if normalized not in candidates:
                candidates.append(normalized)

        if not candidates:
            return Resolution(
                target=None,
                searched=directories,
                reason=UnresolvedReason.NOT_FOUND,
            )

        if len(candidates) > 1:
            logger.debug(
                f"{source_path}:{directive.line_number}: {directive.target} matches "
                f"{len(candidates)} files, using {candidates[0]}"
            )
        return Resolution(target=candidates[0], candidates=candidates, searched=directories)

    def _resolve_absolute(self, target: str) -> Resolution:
        if os.path.isfile(target):
            normalized = normalize_path(target)
            return Resolution(target=normalized, candidates=[normalized])
        return Resolution(target=None, reason=UnresolvedReason.NOT_FOUND)
