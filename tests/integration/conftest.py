"""Shared fixtures for integration tests requiring a live PostgreSQL."""

from __future__ import annotations

import random
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ocw_pipeline.config import get_settings
from ocw_pipeline.storage.database import create_engine, create_session_factory
from ocw_pipeline.storage.orm import Course

# ── Engine ─────────────────────────────────────────────────────────


@pytest.fixture()
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    engine = create_engine(get_settings())
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(
    async_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(async_engine)


# ── Committed seeds (real commit + DELETE cleanup) ─────────────────


@pytest.fixture()
async def committed_course(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[Course]:
    """Commit a Course row with a random high id; sections, resources and
    problems are removed with it by ON DELETE CASCADE.
    """
    course_id = random.randint(10**12, 10**13)
    slug = f"it-{course_id}-linear-algebra"
    async with session_factory() as session:
        course = Course(
            id=course_id,
            readable_id=f"course-v1:ocw+{slug}",
            title="Integration Test Course",
            url=f"https://ocw.example.edu/courses/{slug}/",
        )
        session.add(course)
        await session.commit()

    yield course

    async with session_factory() as session:
        await session.execute(delete(Course).where(Course.id == course_id))
        await session.commit()
