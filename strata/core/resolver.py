"""Map URL paths onto the page tree under live or dev semantics.

Slugs are versioned, so the same path can land on different pages depending
on the mode. Every segment is matched against ``child.current(mode).slug``
and the children are reloaded at each step; there is no precomputed path
index to go stale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from strata.core.page import Page
from strata.core.status import Mode
from strata.core.storage import PageStorage
from strata.core.version import FILE_NOT_FOUND_KIND, PageState
from strata.lib.observability import span

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a path.

    ``found`` is False when the fallback page was served instead. ``page``
    and ``state`` are both None only when the tree has no visible fallback.
    """

    page: Page | None
    state: PageState | None
    found: bool


def split_path(path: str) -> list[str]:
    """Split a URL path into slug segments, dropping empty ones."""
    if not isinstance(path, str):
        raise TypeError(f"path must be a string, not {type(path).__name__}")
    return [segment for segment in path.split("/") if segment]


async def find_child(storage: PageStorage, page: Page, segment: str, mode: Mode | str) -> Page | None:
    """The first child whose current slug in ``mode`` equals ``segment``.

    Children without a saved version are never matched. In live mode the
    child must also be visible; dev mode descends into drafts.
    """
    mode = Mode(mode)
    for child in await storage.load_children(page.id):
        if not child.has_versions:
            continue
        state = child.current(mode)
        if state.slug != segment:
            continue
        if mode is Mode.LIVE and not state.is_visible(mode):
            continue
        return child
    return None


async def find_fallback(
    storage: PageStorage,
    root: Page,
    mode: Mode | str,
    fallback_kind: str = FILE_NOT_FOUND_KIND,
    fallback_id: UUID | None = None,
) -> Page | None:
    """Locate the "not found" page by identity or kind, never by slug.

    Without an explicit id, the most recently saved visible child of the
    root with the fallback kind wins, so dev mode serves a newer draft of
    the not-found page.
    """
    if fallback_id is not None:
        page = await storage.load_page(fallback_id)
        if page is not None and page.current(mode).is_visible(mode):
            return page
        return None

    candidates = [
        child
        for child in await storage.load_children(root.id)
        if child.kind == fallback_kind and child.current(mode).is_visible(mode)
    ]
    if not candidates:
        return None
    return max(candidates, key=_saved_at_key(mode))


async def resolve(
    storage: PageStorage,
    root: Page,
    path: str,
    mode: Mode | str = Mode.LIVE,
    *,
    fallback_kind: str = FILE_NOT_FOUND_KIND,
    fallback_id: UUID | None = None,
) -> Resolution:
    """Walk ``path`` from ``root`` and return the page state to serve."""
    mode = Mode(mode)
    segments = split_path(path)

    with span("page.resolve", path=path, mode=mode.value):
        page = root
        for depth, segment in enumerate(segments):
            child = await find_child(storage, page, segment, mode)
            if child is None:
                logger.debug("No %s child %r below %s (depth %d)", mode.value, segment, page.id, depth)
                return await _fall_back(storage, root, path, mode, fallback_kind, fallback_id)
            page = child

        state = page.current(mode)
        if not state.is_visible(mode):
            logger.debug("Page %s matched %r but is not visible in %s mode", page.id, path, mode.value)
            return await _fall_back(storage, root, path, mode, fallback_kind, fallback_id)
        return Resolution(page=page, state=state, found=True)


async def find_by_url(
    storage: PageStorage,
    root: Page,
    path: str,
    mode: Mode | str = Mode.LIVE,
    *,
    fallback_kind: str = FILE_NOT_FOUND_KIND,
    fallback_id: UUID | None = None,
) -> PageState | None:
    resolution = await resolve(
        storage, root, path, mode, fallback_kind=fallback_kind, fallback_id=fallback_id
    )
    return resolution.state


async def _fall_back(
    storage: PageStorage,
    root: Page,
    path: str,
    mode: Mode,
    fallback_kind: str,
    fallback_id: UUID | None,
) -> Resolution:
    fallback = await find_fallback(storage, root, mode, fallback_kind, fallback_id)
    if fallback is None:
        logger.debug("No visible %s page for %r in %s mode", fallback_kind, path, mode.value)
        return Resolution(page=None, state=None, found=False)
    return Resolution(page=fallback, state=fallback.current(mode), found=False)


def _saved_at_key(mode: Mode):
    def key(page: Page):
        saved_at = page.current(mode).saved_at
        return (saved_at is not None, saved_at.timestamp() if saved_at else 0.0)

    return key
