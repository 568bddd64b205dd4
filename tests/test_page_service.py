"""Tests for the page service module."""

import asyncio
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio

from strata.core.errors import StorageError, ValidationError
from strata.core.status import Mode, Status
from strata.core.storage import MemoryPageStorage
from strata.core.version import PendingState
from strata.lib.hooks import (
    AFTER_PAGE_DELETE,
    AFTER_PAGE_SAVE,
    BEFORE_PAGE_DELETE,
    BEFORE_PAGE_SAVE,
    PAGE_MOVED,
    PAGE_NOT_FOUND,
    PAGE_PENDING_STATE,
)
from strata.services import page_service


class TestCreatePage:
    @pytest.mark.asyncio
    async def test_creates_root_with_one_version(self, storage):
        home = await page_service.create_page(storage, "/", "Home", status=Status.PUBLISHED)

        loaded = await page_service.get_page_by_id(storage, home.id)
        assert loaded.is_root
        assert len(loaded.versions) == 1
        assert loaded.current(Mode.LIVE).title == "Home"

    @pytest.mark.asyncio
    async def test_missing_parent_rejected(self, storage):
        with pytest.raises(ValidationError) as exc_info:
            await page_service.create_page(storage, "orphan", parent_id=uuid4())
        assert exc_info.value.field == "parent_id"

    @pytest.mark.asyncio
    async def test_invalid_slug_writes_nothing(self, storage, site):
        with pytest.raises(ValidationError):
            await page_service.create_page(storage, "bad slug", parent_id=site.home.id)

        children = await storage.load_children(site.home.id)
        assert all(child.slug != "bad slug" for child in children)

    @pytest.mark.asyncio
    async def test_parts_are_saved(self, storage, site):
        page = await page_service.create_page(
            storage,
            "with-parts",
            parent_id=site.home.id,
            status=Status.PUBLISHED,
            parts=[{"name": "body", "filter_id": "markdown", "content": "# Hi"}],
        )
        loaded = await storage.load_page(page.id)
        assert loaded.live_parts["body"].filter_id == "markdown"


class TestSavePage:
    @pytest.mark.asyncio
    async def test_missing_page_returns_none(self, storage):
        assert await page_service.save_page(storage, uuid4(), PendingState(slug="x")) is None

    @pytest.mark.asyncio
    async def test_save_grows_history_by_one(self, storage, site):
        before = len(await storage.load_versions(site.first.id))
        await page_service.save_page(storage, site.first.id, PendingState(slug="first", status=Status.DRAFT))
        assert len(await storage.load_versions(site.first.id)) == before + 1

    @pytest.mark.asyncio
    async def test_published_save_updates_both_modes(self, storage, site):
        pending = PendingState(slug="first", title="Renamed", status=Status.PUBLISHED, parts={"body": "New"})
        await page_service.save_page(storage, site.first.id, pending)

        loaded = await storage.load_page(site.first.id)
        assert loaded.current(Mode.LIVE) == loaded.current(Mode.DEV)
        assert loaded.current(Mode.LIVE).content_equals(pending)

    @pytest.mark.asyncio
    async def test_draft_save_survives_reload(self, storage, site):
        live_before = (await storage.load_page(site.first.id)).current(Mode.LIVE)
        pending = PendingState(slug="first", title="Draft Title", status=Status.DRAFT)

        await page_service.save_page(storage, site.first.id, pending)

        loaded = await storage.load_page(site.first.id)
        assert loaded.current(Mode.LIVE) == live_before
        assert loaded.current(Mode.DEV).content_equals(pending)
        assert loaded.versions[-1].slug == loaded.current(Mode.DEV).slug

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, site):
        storage = MemoryPageStorage()
        storage.load_page = AsyncMock(return_value=site.first)
        storage.persist_page = AsyncMock(side_effect=StorageError("disk full"))
        versions_before = list(site.first.versions)

        with pytest.raises(StorageError):
            await page_service.save_page(storage, site.first.id, PendingState(slug="first", title="X"))

        assert site.first.versions == versions_before


class TestUpdateAndPublish:
    @pytest.mark.asyncio
    async def test_update_changes_only_given_fields(self, storage, site):
        page = await page_service.update_page(storage, site.first.id, title="New Title")

        dev = page.current(Mode.DEV)
        assert dev.title == "New Title"
        assert dev.slug == "first"
        assert dev.status is Status.PUBLISHED
        assert dev.parts["body"].content == "First body"

    @pytest.mark.asyncio
    async def test_update_starts_from_latest_draft(self, storage, site):
        await page_service.update_page(storage, site.first.id, title="Drafted", status=Status.DRAFT)
        page = await page_service.update_page(storage, site.first.id, parts={"body": "Edited"})

        assert page.current(Mode.DEV).title == "Drafted"
        assert page.current(Mode.DEV).status is Status.DRAFT
        assert page.live_title == "First"

    @pytest.mark.asyncio
    async def test_update_missing_page(self, storage):
        assert await page_service.update_page(storage, uuid4(), title="x") is None

    @pytest.mark.asyncio
    async def test_publish_promotes_draft(self, storage, site):
        await page_service.update_page(storage, site.first.id, title="Next", status=Status.DRAFT)

        page = await page_service.publish_page(storage, site.first.id)

        assert page.live_title == "Next"
        assert page.live_status is Status.PUBLISHED
        state = await page_service.find_by_url(storage, site.home.id, "/first/", Mode.LIVE)
        assert state.title == "Next"

    @pytest.mark.asyncio
    async def test_publish_first_version_draft(self, storage, site):
        await page_service.publish_page(storage, site.draft.id)
        state = await page_service.find_by_url(storage, site.home.id, "/draft/", Mode.LIVE)
        assert state.page_id == site.draft.id


class TestMovePage:
    @pytest.mark.asyncio
    async def test_move_changes_url(self, storage, site):
        await page_service.move_page(storage, site.child.id, site.first.id)

        state = await page_service.find_by_url(storage, site.home.id, "/first/child/")
        assert state.page_id == site.child.id
        assert await page_service.page_url(storage, site.child.id, Mode.LIVE) == "/first/child/"

    @pytest.mark.asyncio
    async def test_cannot_move_below_itself(self, storage, site):
        with pytest.raises(ValidationError, match="below itself"):
            await page_service.move_page(storage, site.parent.id, site.parent.id)

    @pytest.mark.asyncio
    async def test_cannot_move_below_descendant(self, storage, site):
        with pytest.raises(ValidationError, match="below itself"):
            await page_service.move_page(storage, site.parent.id, site.child.id)

        loaded = await storage.load_page(site.parent.id)
        assert loaded.parent_id == site.home.id

    @pytest.mark.asyncio
    async def test_cannot_detach(self, storage, site):
        with pytest.raises(ValidationError):
            await page_service.move_page(storage, site.child.id, None)

    @pytest.mark.asyncio
    async def test_cannot_move_root(self, storage, site):
        with pytest.raises(ValidationError):
            await page_service.move_page(storage, site.home.id, site.first.id)

    @pytest.mark.asyncio
    async def test_missing_new_parent(self, storage, site):
        with pytest.raises(ValidationError, match="does not exist"):
            await page_service.move_page(storage, site.child.id, uuid4())

    @pytest.mark.asyncio
    async def test_missing_page(self, storage, site):
        assert await page_service.move_page(storage, uuid4(), site.home.id) is None


class TestDeletePage:
    @pytest.mark.asyncio
    async def test_delete_cascades_to_descendants(self, storage, site):
        assert await page_service.delete_page(storage, site.parent.id) is True

        assert await storage.load_page(site.parent.id) is None
        assert await storage.load_page(site.child.id) is None
        assert await storage.load_versions(site.child.id) == []
        assert await storage.load_page(site.first.id) is not None

    @pytest.mark.asyncio
    async def test_delete_missing(self, storage):
        assert await page_service.delete_page(storage, uuid4()) is False

    @pytest.mark.asyncio
    async def test_deleted_page_no_longer_resolves(self, storage, site):
        await page_service.delete_page(storage, site.first.id)
        resolution = await page_service.resolve_url(storage, site.home.id, "/first/")
        assert not resolution.found


class TestResolveUrl:
    @pytest.mark.asyncio
    async def test_missing_root(self, storage):
        resolution = await page_service.resolve_url(storage, uuid4(), "/")
        assert resolution.state is None
        assert not resolution.found

    @pytest.mark.asyncio
    async def test_find_by_url_with_mode_string(self, storage, site):
        state = await page_service.find_by_url(storage, site.home.id, "/draft/", "dev")
        assert state.page_id == site.draft.id

    @pytest.mark.asyncio
    async def test_find_by_url_falls_back(self, storage, site):
        state = await page_service.find_by_url(storage, site.home.id, "/draft/")
        assert state.title == "File Not Found"


class TestCurrentChildren:
    @pytest.mark.asyncio
    async def test_dev_listing_includes_draft_children(self, storage, site):
        await page_service.save_page(
            storage, site.another.id, PendingState(slug="another", status=Status.DRAFT)
        )

        dev_ids = [state.page_id for state in await page_service.current_children(storage, site.home.id, Mode.DEV)]
        live_ids = [state.page_id for state in await page_service.current_children(storage, site.home.id, Mode.LIVE)]

        assert site.draft.id in dev_ids
        assert site.draft_file_not_found.id in dev_ids
        assert site.draft.id not in live_ids
        assert site.draft_file_not_found.id not in live_ids
        # A second-version draft keeps its published state in live listings
        assert site.another.id in live_ids
        assert site.another.id in dev_ids

    @pytest.mark.asyncio
    async def test_children_keep_storage_order(self, storage, site):
        states = await page_service.current_children(storage, site.home.id, Mode.LIVE)
        assert [state.slug for state in states] == ["first", "another", "parent", "missing"]

    @pytest.mark.asyncio
    async def test_missing_page_has_no_children(self, storage):
        assert await page_service.current_children(storage, uuid4(), Mode.DEV) == []


class TestPageUrl:
    @pytest.mark.asyncio
    async def test_root_url(self, storage, site):
        assert await page_service.page_url(storage, site.home.id, Mode.LIVE) == "/"

    @pytest.mark.asyncio
    async def test_urls_follow_the_mode(self, storage, site):
        await page_service.update_page(storage, site.parent.id, slug="parent-draft", status=Status.DRAFT)

        assert await page_service.page_url(storage, site.child.id, Mode.LIVE) == "/parent/child/"
        assert await page_service.page_url(storage, site.child.id, Mode.DEV) == "/parent-draft/child/"

    @pytest.mark.asyncio
    async def test_never_published_page_has_no_live_url(self, storage, site):
        assert await page_service.page_url(storage, site.draft.id, Mode.LIVE) is None
        assert await page_service.page_url(storage, site.draft.id, Mode.DEV) == "/draft/"

    @pytest.mark.asyncio
    async def test_missing_page(self, storage):
        assert await page_service.page_url(storage, uuid4(), Mode.DEV) is None


class TestHooks:
    @pytest.mark.asyncio
    async def test_save_hooks_fire_in_order(self, clean_hooks):
        calls = []
        clean_hooks.add_action(BEFORE_PAGE_SAVE, lambda page, pending, is_new: calls.append(("before", is_new)))
        clean_hooks.add_action(
            AFTER_PAGE_SAVE,
            lambda page, version, is_new: calls.append(("after", is_new, version.sequence_number)),
        )
        storage = MemoryPageStorage()

        home = await page_service.create_page(storage, "/", "Home")
        await page_service.update_page(storage, home.id, title="Home again")

        assert calls == [("before", True), ("after", True, 1), ("before", False), ("after", False, 2)]

    @pytest.mark.asyncio
    async def test_invalid_save_fires_no_hooks(self, clean_hooks):
        calls = []
        clean_hooks.add_action(BEFORE_PAGE_SAVE, lambda *args, **kwargs: calls.append("before"))
        storage = MemoryPageStorage()

        with pytest.raises(ValidationError):
            await page_service.create_page(storage, "")

        assert calls == []

    @pytest.mark.asyncio
    async def test_failed_save_skips_after_hook(self, clean_hooks, site):
        calls = []
        clean_hooks.add_action(AFTER_PAGE_SAVE, lambda *args, **kwargs: calls.append("after"))
        storage = MemoryPageStorage()
        storage.load_page = AsyncMock(return_value=site.first)
        storage.persist_page = AsyncMock(side_effect=StorageError("boom"))

        with pytest.raises(StorageError):
            await page_service.update_page(storage, site.first.id, title="x")

        assert calls == []

    @pytest.mark.asyncio
    async def test_pending_state_filter(self, clean_hooks):
        clean_hooks.add_filter(PAGE_PENDING_STATE, lambda pending, page: pending.replace(slug=pending.slug.lower()))
        storage = MemoryPageStorage()
        home = await page_service.create_page(storage, "/", "Home", status=Status.PUBLISHED)

        page = await page_service.create_page(storage, "About", parent_id=home.id, status=Status.PUBLISHED)

        assert page.live_slug == "about"

    @pytest.mark.asyncio
    async def test_delete_hooks(self, clean_hooks, storage, site):
        calls = []
        clean_hooks.add_action(BEFORE_PAGE_DELETE, lambda page: calls.append(("before", page.id)))
        clean_hooks.add_action(AFTER_PAGE_DELETE, lambda page: calls.append(("after", page.id)))

        await page_service.delete_page(storage, site.first.id)

        assert calls == [("before", site.first.id), ("after", site.first.id)]

    @pytest.mark.asyncio
    async def test_move_hook(self, clean_hooks, storage, site):
        moves = []
        clean_hooks.add_action(
            PAGE_MOVED, lambda page, old_parent_id: moves.append((page.id, old_parent_id, page.parent_id))
        )

        await page_service.move_page(storage, site.child.id, site.first.id)

        assert moves == [(site.child.id, site.parent.id, site.first.id)]

    @pytest.mark.asyncio
    async def test_not_found_hook(self, clean_hooks, storage, site):
        misses = []
        clean_hooks.add_action(
            PAGE_NOT_FOUND, lambda path, mode, resolution: misses.append((path, mode, resolution.found))
        )

        await page_service.resolve_url(storage, site.home.id, "/nowhere/", Mode.DEV)
        await page_service.resolve_url(storage, site.home.id, "/first/", Mode.DEV)

        assert misses == [("/nowhere/", Mode.DEV, False)]


class TestCyclicParents:
    @pytest_asyncio.fixture
    async def looped(self, storage, site):
        """``parent`` and ``child`` pointing at each other through raw parent writes."""
        await storage.set_parent(site.parent.id, site.child.id)
        return site

    @pytest.mark.asyncio
    async def test_page_url_gives_up(self, storage, looped):
        url = await asyncio.wait_for(page_service.page_url(storage, looped.child.id, Mode.LIVE), 1)
        assert url is None

    @pytest.mark.asyncio
    async def test_move_below_cycle_rejected(self, storage, looped):
        with pytest.raises(ValidationError, match="cycle"):
            await asyncio.wait_for(page_service.move_page(storage, looped.first.id, looped.child.id), 1)

        assert (await storage.load_page(looped.first.id)).parent_id == looped.home.id

    @pytest.mark.asyncio
    async def test_delete_removes_the_whole_loop(self, storage, looped):
        assert await asyncio.wait_for(page_service.delete_page(storage, looped.parent.id), 1) is True

        assert await storage.load_page(looped.parent.id) is None
        assert await storage.load_page(looped.child.id) is None
        assert await storage.load_page(looped.first.id) is not None
