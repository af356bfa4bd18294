# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Registry for directive handler plugins.

This module implements the handler registry that manages directive handlers
with priority-based dispatch.
"""

import logging
from typing import Dict, List

from .base import DirectiveHandler

logger = logging.getLogger(__name__)


class DirectiveRegistry:
    """Registry for directive handler plugins with priority-based dispatch.

    The registry keeps handlers sorted by priority (highest first) and
    indexes them by directive name for dispatch.

    Thread Safety:
    - The dispatch index is rebuilt inside register(), never on lookup
    - Lookups only read, so one registry can be shared by concurrent scans
    """

    def __init__(self) -> None:
        """Initialize empty handler registry."""
        self._handlers: List[DirectiveHandler] = []
        self._by_name: Dict[str, List[DirectiveHandler]] = {}

    def register(self, handler: DirectiveHandler) -> None:
        """Register a handler plugin.

        Args:
            handler: Handler to register.

        Raises:
            TypeError: If handler is not a DirectiveHandler instance.
        """
        if not isinstance(handler, DirectiveHandler):
            raise TypeError(
                f"Handler must be a DirectiveHandler instance, got {type(handler)}"
            )

        self._reindex(self._handlers + [handler])

        logger.debug(
            f"Registered handler '{handler.name()}' for {sorted(handler.directive_names())} "
            f"with priority {handler.priority()}"
        )

    def get_handlers(self) -> List[DirectiveHandler]:
        """Get all registered handlers in priority order.

        Returns:
            List of handlers sorted by priority (highest first), then name.
        """
        return self._handlers

    def handlers_for(self, directive_name: str) -> List[DirectiveHandler]:
        """Get handlers that claim a directive name, in priority order.

        Args:
            directive_name: Directive keyword without the ``#``.

        Returns:
            Matching handlers; empty list for unknown directives.
        """
        return self._by_name.get(directive_name, [])

    def clear(self) -> None:
        """Remove all registered handlers."""
        self._reindex([])

    def count(self) -> int:
        return len(self._handlers)

    def _reindex(self, handlers: List[DirectiveHandler]) -> None:
        # Build both structures before publishing them; scans read them unlocked.
        ordered = sorted(handlers, key=lambda h: (-h.priority(), h.name()))
        by_name: Dict[str, List[DirectiveHandler]] = {}
        for handler in ordered:
            for directive_name in handler.directive_names():
                by_name.setdefault(directive_name, []).append(handler)
        self._handlers = ordered
        self._by_name = by_name
