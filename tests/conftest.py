# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for include crawler tests.

Provides a representative C project tree for unit and integration testing.
"""

from pathlib import Path
from typing import Dict

import pytest

MOCK_PROJECT_FILES: Dict[str, str] = {
    "include/common.h": (
        "#pragma once\n"
        '#include "config.h"\n'
        '#include "util/math.h"\n'
        "/* comment */\n"
        '#define CONFIG_HEADER "generated/autogen.h"\n'
        "#include CONFIG_HEADER\n"
        "const char* orchard_version(void);\n"
    ),
    "include/config.h": (
        "/*\n"
        " * Build configuration.\n"
        ' * #include "not/a/real/include.h"\n'
        " */\n"
        "#if defined(_WIN32) || defined(_WIN64)\n"
        '  #include "platform/win.h"\n'
        "#else\n"
        '  #include "platform/posix.h"\n'
        "#endif\n"
    ),
    "include/graph.h": '#pragma once\n#include "model/node.h"\n',
    "include/model/node.h": '#pragma once\n#include "model/edge.h"\n',
    "include/model/edge.h": '#pragma once\n#include "model/node.h"\n',
    "include/util/math.h": '#pragma once\n#include "util/number.h"\nint add(int a, int b);\n',
    "include/util/number.h": "#pragma once\n#include <stdint.h>\n",
    "include/platform/win.h": "#pragma once\n#define ORCHARD_WINDOWS 1\n",
    "include/platform/posix.h": "#pragma once\n#define ORCHARD_POSIX 1\n",
    "include/generated/autogen.h": "#pragma once\n#define ORCHARD_BUILD 42\n",
    "include/version.h": '#pragma once\n#define ORCHARD_VERSION "1.0"\n',
    "src/version.h": '#pragma once\n#define ORCHARD_LOCAL_VERSION "1.0-dev"\n',
    "src/main.c": (
        '#include "common.h"\n'
        '#include "graph.h"\n'
        "#include <stdio.h>\n"
        '#include "../plugins/plugin.h"\n'
        '#include "version.h"\n'
        "\n"
        "int main(void) { return 0; }\n"
    ),
    "src/graph.c": '#include "graph.h"\n#include "util/math.h"\n',
    "plugins/plugin.h": '#pragma once\n#include "../include/common.h"\n',
}


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    """Write ``{relative path: content}`` under ``root`` and return ``root``."""
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def mock_c_project(tmp_path: Path) -> Path:
    """Create the mock C project.

    Contains:
    - A node.h <-> edge.h include cycle
    - Platform includes guarded by #if/#else
    - A plugin header reaching back with ``../include/common.h``
    - A macro-expanded include (CONFIG_HEADER)
    - Angle includes with no system search path (<stdio.h>, <stdint.h>)
    - version.h in both src/ and include/ (quoted-relative-first, ambiguous)

    The include search path is ``<root>/include``.

    Returns:
        Path to the project root directory
    """
    return write_tree(tmp_path / "orchard", MOCK_PROJECT_FILES)
