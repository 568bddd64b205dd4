"""Page service: the caller-facing API for saving, moving and resolving pages."""

import logging
from typing import Any
from uuid import UUID

from strata.core.errors import StorageError, ValidationError
from strata.core.page import Page
from strata.core.resolver import Resolution, resolve
from strata.core.status import Mode, Status
from strata.core.storage import PageStorage
from strata.core.version import FILE_NOT_FOUND_KIND, PAGE_KIND, PageState, PendingState
from strata.lib import observability
from strata.lib.hooks import (
    AFTER_PAGE_DELETE,
    AFTER_PAGE_SAVE,
    BEFORE_PAGE_DELETE,
    BEFORE_PAGE_SAVE,
    PAGE_MOVED,
    PAGE_NOT_FOUND,
    PAGE_PENDING_STATE,
    hooks,
)

logger = logging.getLogger(__name__)


async def get_page_by_id(storage: PageStorage, page_id: UUID) -> Page | None:
    return await storage.load_page(page_id)


async def create_page(
    storage: PageStorage,
    slug: str,
    title: str = "",
    *,
    parent_id: UUID | None = None,
    status: Status | int | str = Status.DRAFT,
    parts: Any = (),
    kind: str = PAGE_KIND,
    position: int = 0,
) -> Page:
    """Create a page and save its first version.

    Args:
        storage: Page storage
        slug: URL slug (``/`` is accepted for a tree root)
        title: Page title
        parent_id: Parent page id; None creates a new tree root
        status: Status of the first version
        parts: Initial parts, in any shape ``PartSet.coerce`` accepts
        kind: Page kind, e.g. ``file_not_found`` for a tree's fallback page
        position: Sort position among siblings

    Returns:
        The saved Page

    Raises:
        ValidationError: invalid fields or missing parent
        StorageError: the storage failed to commit
    """
    if parent_id is not None and await storage.load_page(parent_id) is None:
        raise ValidationError(f"Parent page {parent_id} does not exist", field="parent_id")

    page = Page(parent_id=parent_id, kind=kind, position=position)
    pending = PendingState(slug=slug, title=title, status=status, parts=parts)
    await _save(storage, page, pending, is_new=True)
    return page


async def save_page(storage: PageStorage, page_id: UUID, pending: PendingState) -> Page | None:
    """Save ``pending`` as a new version of the page.

    Returns:
        The updated Page, or None if the page does not exist
    """
    page = await storage.load_page(page_id)
    if page is None:
        return None
    await _save(storage, page, pending, is_new=False)
    return page


async def update_page(
    storage: PageStorage,
    page_id: UUID,
    *,
    slug: str | None = None,
    title: str | None = None,
    status: Status | int | str | None = None,
    parts: Any = None,
) -> Page | None:
    """Save a new version changing only the given fields of the latest (dev) state."""
    page = await storage.load_page(page_id)
    if page is None:
        return None
    pending = page.pending().replace(slug=slug, title=title, status=status, parts=parts)
    await _save(storage, page, pending, is_new=False)
    return page


async def publish_page(storage: PageStorage, page_id: UUID) -> Page | None:
    """Promote the latest state, drafts included, to the live state."""
    return await update_page(storage, page_id, status=Status.PUBLISHED)


async def move_page(storage: PageStorage, page_id: UUID, new_parent_id: UUID | None) -> Page | None:
    """Re-parent a page.

    Raises:
        ValidationError: missing parent, or the page would become its own ancestor
    """
    page = await storage.load_page(page_id)
    if page is None:
        return None
    if new_parent_id is None:
        raise ValidationError("Pages cannot be detached from their tree", field="parent_id")
    if page.is_root:
        raise ValidationError("A tree root cannot be moved", field="parent_id")

    # Walk up from the new parent; meeting the page itself means a cycle
    ancestor_id: UUID | None = new_parent_id
    seen: set[UUID] = set()
    while ancestor_id is not None:
        if ancestor_id == page_id:
            raise ValidationError("A page cannot be moved below itself", field="parent_id")
        if ancestor_id in seen:
            raise ValidationError(f"Ancestors of page {new_parent_id} form a cycle", field="parent_id")
        seen.add(ancestor_id)
        ancestor = await storage.load_page(ancestor_id)
        if ancestor is None:
            raise ValidationError(f"Parent page {ancestor_id} does not exist", field="parent_id")
        ancestor_id = ancestor.parent_id

    old_parent_id = page.parent_id
    await storage.set_parent(page_id, new_parent_id)
    page.parent_id = new_parent_id
    logger.info("Moved page %s from %s to %s", page_id, old_parent_id, new_parent_id)

    await hooks.do_action(PAGE_MOVED, page, old_parent_id=old_parent_id)
    return page


async def delete_page(storage: PageStorage, page_id: UUID) -> bool:
    """Delete a page with its versions and descendants.

    Returns:
        True if deleted, False if not found
    """
    page = await storage.load_page(page_id)
    if page is None:
        return False

    await hooks.do_action(BEFORE_PAGE_DELETE, page)
    deleted = await storage.delete_page(page_id)
    if deleted:
        logger.info("Deleted page %s", page_id)
        await hooks.do_action(AFTER_PAGE_DELETE, page)
    return deleted


async def resolve_url(
    storage: PageStorage,
    root_id: UUID,
    path: str,
    mode: Mode | str = Mode.LIVE,
    *,
    fallback_kind: str = FILE_NOT_FOUND_KIND,
    fallback_id: UUID | None = None,
) -> Resolution:
    """Resolve ``path`` below the root page, falling back to the not-found page."""
    root = await storage.load_page(root_id)
    if root is None:
        logger.debug("Root page %s does not exist", root_id)
        return Resolution(page=None, state=None, found=False)

    resolution = await resolve(
        storage, root, path, mode, fallback_kind=fallback_kind, fallback_id=fallback_id
    )
    if not resolution.found:
        await hooks.do_action(PAGE_NOT_FOUND, path, Mode(mode), resolution)
    return resolution


async def find_by_url(
    storage: PageStorage,
    root_id: UUID,
    path: str,
    mode: Mode | str = Mode.LIVE,
    *,
    fallback_kind: str = FILE_NOT_FOUND_KIND,
    fallback_id: UUID | None = None,
) -> PageState | None:
    resolution = await resolve_url(
        storage, root_id, path, mode, fallback_kind=fallback_kind, fallback_id=fallback_id
    )
    return resolution.state


async def current_children(storage: PageStorage, page_id: UUID, mode: Mode | str) -> list[PageState]:
    """States of the direct children visible in ``mode``."""
    page = await storage.load_page(page_id)
    if page is None:
        return []
    return [child.current(mode) for child in await page.current_children(storage, mode)]


async def page_url(storage: PageStorage, page_id: UUID, mode: Mode | str) -> str | None:
    """The path a page is served at in ``mode``, e.g. ``/parent/child/``.

    Returns None when the page, or one of its ancestors, has no slug in
    ``mode`` (never published, when asking for live mode), or when the
    ancestors never reach a root.
    """
    slugs: list[str] = []
    seen: set[UUID] = set()
    page = await storage.load_page(page_id)
    while page is not None and not page.is_root:
        if page.id in seen:
            logger.warning("Ancestors of page %s form a cycle", page_id)
            return None
        seen.add(page.id)
        slug = page.current(mode).slug
        if not slug:
            return None
        slugs.append(slug)
        page = await storage.load_page(page.parent_id)
    if page is None:
        return None
    if not slugs:
        return "/"
    return "/" + "/".join(reversed(slugs)) + "/"


async def _save(storage: PageStorage, page: Page, pending: PendingState, is_new: bool) -> None:
    pending = await hooks.apply_filters(PAGE_PENDING_STATE, pending, page)
    # Validate before any before-save side effects run
    page.plan_save(pending)

    await hooks.do_action(BEFORE_PAGE_SAVE, page, pending, is_new=is_new)
    try:
        version = await page.save(pending, storage)
    except StorageError:
        observability.warning("page save failed", page_id=str(page.id))
        raise

    logger.info(
        "Saved page %s as version %d (%s)", page.id, version.sequence_number, version.status.name.lower()
    )
    await hooks.do_action(AFTER_PAGE_SAVE, page, version, is_new=is_new)
