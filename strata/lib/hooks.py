"""Action/filter hooks fired around page lifecycle events.

Actions run callbacks for their side effects; filters thread a value through
each callback and return the result. Callbacks may be sync or async and run
in priority order (lower first).

Usage:
    from strata.lib.hooks import hooks, action, filter, AFTER_PAGE_SAVE

    @action(AFTER_PAGE_SAVE)
    async def purge_cache(page, version, is_new):
        ...

    @filter(PAGE_PENDING_STATE)
    def lowercase_slug(pending, page):
        return pending.replace(slug=pending.slug.lower())
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Callable, TypeVar

from strata.lib.observability import span

T = TypeVar("T")


@dataclass(order=True)
class HookHandler:
    """A registered hook handler with priority."""

    priority: int
    callback: Callable = field(compare=False)

    async def call(self, *args: Any, **kwargs: Any) -> Any:
        """Call the handler, awaiting the result of async callbacks."""
        result = self.callback(*args, **kwargs)
        if asyncio.iscoroutine(result):
            return await result
        return result


class HookRegistry:
    """Registry of action and filter handlers keyed by hook name."""

    def __init__(self) -> None:
        self._actions: dict[str, list[HookHandler]] = defaultdict(list)
        self._filters: dict[str, list[HookHandler]] = defaultdict(list)

    def add_action(self, hook_name: str, callback: Callable[..., Any], priority: int = 10) -> None:
        self._actions[hook_name].append(HookHandler(priority=priority, callback=callback))
        self._actions[hook_name].sort()

    def add_filter(self, hook_name: str, callback: Callable[..., T], priority: int = 10) -> None:
        self._filters[hook_name].append(HookHandler(priority=priority, callback=callback))
        self._filters[hook_name].sort()

    def remove_action(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove an action callback. Returns True if it was registered."""
        return _remove(self._actions.get(hook_name, []), callback)

    def remove_filter(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove a filter callback. Returns True if it was registered."""
        return _remove(self._filters.get(hook_name, []), callback)

    def has_action(self, hook_name: str) -> bool:
        return bool(self._actions.get(hook_name))

    def has_filter(self, hook_name: str) -> bool:
        return bool(self._filters.get(hook_name))

    async def do_action(self, hook_name: str, *args: Any, **kwargs: Any) -> None:
        """Run every action registered for ``hook_name``."""
        with span(f"hook.action:{hook_name}", hook_name=hook_name):
            for handler in list(self._actions.get(hook_name, [])):
                await handler.call(*args, **kwargs)

    async def apply_filters(self, hook_name: str, value: T, *args: Any, **kwargs: Any) -> T:
        """Pass ``value`` through every filter registered for ``hook_name``.

        Extra arguments are handed to each callback after the value.
        """
        with span(f"hook.filter:{hook_name}", hook_name=hook_name):
            for handler in list(self._filters.get(hook_name, [])):
                value = await handler.call(value, *args, **kwargs)
            return value

    def clear(self) -> None:
        """Clear all registered hooks. Useful for testing."""
        self._actions.clear()
        self._filters.clear()


def _remove(handlers: list[HookHandler], callback: Callable[..., Any]) -> bool:
    for i, handler in enumerate(handlers):
        if handler.callback is callback:
            handlers.pop(i)
            return True
    return False


# Global singleton registry
hooks = HookRegistry()


def action(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator registering a function as an action handler on the global registry."""

    def decorator(func: Callable) -> Callable:
        hooks.add_action(hook_name, func, priority)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(*args, **kwargs)

        return wrapper

    return decorator


def filter(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator registering a function as a filter handler on the global registry."""

    def decorator(func: Callable) -> Callable:
        hooks.add_filter(hook_name, func, priority)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return func(*args, **kwargs)

        return wrapper

    return decorator


# Actions
BEFORE_PAGE_SAVE = "before_page_save"
AFTER_PAGE_SAVE = "after_page_save"
BEFORE_PAGE_DELETE = "before_page_delete"
AFTER_PAGE_DELETE = "after_page_delete"
PAGE_MOVED = "page_moved"
PAGE_NOT_FOUND = "page_not_found"

# Filters
PAGE_PENDING_STATE = "page_pending_state"
