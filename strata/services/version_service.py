"""Version service for page history management."""

from uuid import UUID

from strata.core.page import Page
from strata.core.status import Status
from strata.core.storage import PageStorage
from strata.core.version import Version
from strata.services.page_service import save_page


async def list_versions(
    storage: PageStorage,
    page_id: UUID,
    limit: int | None = None,
) -> list[Version]:
    """List versions for a page, newest first.

    Args:
        storage: Page storage
        page_id: The page ID to get versions for
        limit: Maximum number of versions to return (None for all)

    Returns:
        List of Version objects ordered by sequence number descending
    """
    versions = list(reversed(await storage.load_versions(page_id)))
    if limit:
        versions = versions[:limit]
    return versions


async def get_version(
    storage: PageStorage,
    page_id: UUID,
    sequence_number: int,
) -> Version | None:
    """Get one version of a page by its sequence number."""
    for version in await storage.load_versions(page_id):
        if version.sequence_number == sequence_number:
            return version
    return None


async def get_version_count(storage: PageStorage, page_id: UUID) -> int:
    return len(await storage.load_versions(page_id))


async def restore_version(
    storage: PageStorage,
    page_id: UUID,
    sequence_number: int,
    status: Status | None = None,
) -> Page | None:
    """Bring back an earlier version's content as a new version.

    History is never rewritten: the restored content is appended with the
    next sequence number. ``status`` overrides the old version's status, so
    restoring as a draft leaves the live state alone.

    Returns:
        The updated Page, or None if the page or version does not exist
    """
    version = await get_version(storage, page_id, sequence_number)
    if version is None:
        return None

    pending = version.to_pending()
    if status is not None:
        pending = pending.replace(status=status)
    return await save_page(storage, page_id, pending)
