# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Edge classification into first-party, plugin and third-party buckets.

A target file is classified by where it lives:
- under one of the plugin directories of the root -> plugin
- outside the root, or under a third-party directory of the root -> third_party
- anywhere else under the root -> first_party
"""

import logging
import os
from typing import Iterable, List

from include_crawler.models import EdgeCategory, normalize_path

logger = logging.getLogger(__name__)


def is_within(path: str, directory: str) -> bool:
    """True if ``path`` is ``directory`` or lies below it (both normalized)."""
    try:
        return os.path.commonpath([path, directory]) == directory
    except ValueError:
        # Different drives on Windows
        return False


class EdgeClassifier:
    """Classifies files by their location relative to the project root."""

    DEFAULT_PLUGIN_DIRS = ("plugins",)
    DEFAULT_THIRD_PARTY_DIRS = ("third_party", "vendor", "external")

    def __init__(
        self,
        root: str,
        plugin_dirs: Iterable[str] = DEFAULT_PLUGIN_DIRS,
        third_party_dirs: Iterable[str] = DEFAULT_THIRD_PARTY_DIRS,
    ) -> None:
        """Initialize classifier.

        Args:
            root: Project root directory.
            plugin_dirs: Plugin directories, relative to the root.
            third_party_dirs: Vendored third-party directories, relative to the root.
        """
        self.root = normalize_path(root)
        self.plugin_dirs = self._anchor(plugin_dirs)
        self.third_party_dirs = self._anchor(third_party_dirs)

    def classify(self, path: str) -> str:
        """Return the EdgeCategory value for a normalized file path."""
        if not is_within(path, self.root):
            return EdgeCategory.THIRD_PARTY
        if any(is_within(path, d) for d in self.third_party_dirs):
            return EdgeCategory.THIRD_PARTY
        if any(is_within(path, d) for d in self.plugin_dirs):
            return EdgeCategory.PLUGIN
        return EdgeCategory.FIRST_PARTY

    def is_in_root(self, path: str) -> bool:
        return is_within(path, self.root)

    def _anchor(self, directories: Iterable[str]) -> List[str]:
        return [normalize_path(os.path.join(self.root, d)) for d in directories]
