# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Directive handler plugins for the include scanner.

This package implements the handler plugin pattern for preprocessor lines.

Components:
- DirectiveHandler: Abstract base class for handler plugins
- DirectiveRegistry: Priority-based registry for handler plugins
- ConditionalHandler: #if/#ifdef/#ifndef/#elif/#else/#endif tracking
- DefineHandler: #define/#undef tracking
- IncludeHandler: #include/#include_next/#import extraction
"""

from include_crawler.directives.base import DirectiveHandler, PreprocessorLine, ScanState
from include_crawler.directives.conditional_handler import ConditionalHandler
from include_crawler.directives.define_handler import DefineHandler
from include_crawler.directives.include_handler import IncludeHandler
from include_crawler.directives.registry import DirectiveRegistry


def default_registry() -> DirectiveRegistry:
    """Create a registry with the built-in handlers registered."""
    registry = DirectiveRegistry()
    registry.register(ConditionalHandler())
    registry.register(DefineHandler())
    registry.register(IncludeHandler())
    return registry


__all__ = [
    # Base classes
    "DirectiveHandler",
    "DirectiveRegistry",
    "PreprocessorLine",
    "ScanState",
    # Handlers
    "ConditionalHandler",
    "DefineHandler",
    "IncludeHandler",
    "default_registry",
]
