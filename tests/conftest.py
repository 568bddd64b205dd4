"""Shared pytest fixtures."""

from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from strata.core.status import Status
from strata.core.storage import MemoryPageStorage
from strata.core.version import FILE_NOT_FOUND_KIND
from strata.db.base import Base
from strata.db.storage import SQLAlchemyPageStorage
from strata.lib.hooks import hooks
from strata.services import page_service


async def create_engine_with_schema(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'strata.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


async def build_site(storage) -> SimpleNamespace:
    """A small published tree with one first-version draft and two not-found pages.

    /                 Home (published)
      first/          First (published, body part)
      another/        Another (published)
      parent/         Parent (published)
        child/        Child (published)
      draft/          Draft (draft, never published)
      missing/        File Not Found (published, not-found kind)
      missing-draft/  Draft File Not Found (draft, not-found kind)
    """
    home = await page_service.create_page(storage, "/", "Home", status=Status.PUBLISHED)
    first = await page_service.create_page(
        storage,
        "first",
        "First",
        parent_id=home.id,
        status=Status.PUBLISHED,
        parts={"body": "First body"},
    )
    another = await page_service.create_page(
        storage, "another", "Another", parent_id=home.id, status=Status.PUBLISHED
    )
    parent = await page_service.create_page(
        storage, "parent", "Parent", parent_id=home.id, status=Status.PUBLISHED
    )
    child = await page_service.create_page(
        storage, "child", "Child", parent_id=parent.id, status=Status.PUBLISHED
    )
    draft = await page_service.create_page(
        storage, "draft", "Draft", parent_id=home.id, status=Status.DRAFT
    )
    file_not_found = await page_service.create_page(
        storage,
        "missing",
        "File Not Found",
        parent_id=home.id,
        status=Status.PUBLISHED,
        kind=FILE_NOT_FOUND_KIND,
    )
    draft_file_not_found = await page_service.create_page(
        storage,
        "missing-draft",
        "Draft File Not Found",
        parent_id=home.id,
        status=Status.DRAFT,
        kind=FILE_NOT_FOUND_KIND,
    )
    return SimpleNamespace(
        home=home,
        first=first,
        another=another,
        parent=parent,
        child=child,
        draft=draft,
        file_not_found=file_not_found,
        draft_file_not_found=draft_file_not_found,
    )


@pytest_asyncio.fixture(params=["memory", "sqlalchemy"])
async def storage(request, tmp_path):
    """Each storage backend in turn."""
    if request.param == "memory":
        yield MemoryPageStorage()
        return

    engine = await create_engine_with_schema(tmp_path)
    try:
        async with async_sessionmaker(engine)() as session:
            yield SQLAlchemyPageStorage(session)
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def site(storage):
    return await build_site(storage)


@pytest_asyncio.fixture
async def sql_engine(tmp_path):
    engine = await create_engine_with_schema(tmp_path)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_storage(sql_engine):
    async with async_sessionmaker(sql_engine)() as session:
        yield SQLAlchemyPageStorage(session)


@pytest.fixture
def clean_hooks():
    """Save and restore hooks state around a test."""
    original_filters = hooks._filters.copy()
    original_actions = hooks._actions.copy()
    hooks.clear()
    yield hooks
    hooks._filters = original_filters
    hooks._actions = original_actions
