"""Repositories for courses, sections/resources and problems.

All repositories use flush() instead of commit() -- the caller
controls the transaction, so a delete-then-insert replace is
committed (or rolled back) as one unit.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ocw_pipeline.models.content import PROBLEM_RESOURCE_TYPES
from ocw_pipeline.storage.orm import Course, Problem, Resource, Section

if TYPE_CHECKING:
    from ocw_pipeline.builder import SectionPlan
    from ocw_pipeline.models.problems import ExtractedProblem

# Columns owned by the content pipeline; a catalog upsert never overwrites them.
_UPSERT_PRESERVED: frozenset[str] = frozenset(
    {"id", "content_downloaded", "content_downloaded_at", "created_at"}
)


async def acquire_course_lock(session: AsyncSession, course_id: int) -> None:
    """Take a transaction-scoped PostgreSQL advisory lock keyed by course id.

    Concurrent runs touching the same course block here until the
    holder's transaction ends.
    """
    await session.execute(select(func.pg_advisory_xact_lock(course_id)))


class CourseRepository:
    """Repository for Course lookup, catalog upsert and download flags."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_slug(self, slug: str) -> list[Course]:
        """Courses whose URL contains ``slug`` (case-insensitive), by id.

        Args:
            slug: Course slug, e.g. ``6-006-introduction-to-algorithms-spring-2020``.

        Returns:
            Matching courses ordered by primary key (possibly empty).
        """
        stmt = (
            select(Course)
            .where(Course.url.ilike(f"%{slug}%"))
            .order_by(Course.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def mark_content_downloaded(
        self,
        course_id: int,
        *,
        at: datetime | None = None,
    ) -> None:
        """Flag the course content as downloaded with a timestamp."""
        stmt = (
            update(Course)
            .where(Course.id == course_id)
            .values(
                content_downloaded=True,
                content_downloaded_at=at or datetime.now(UTC),
            )
        )
        await self._session.execute(stmt)
        await self._session.flush()

    async def upsert_many(self, rows: Sequence[dict[str, Any]]) -> int:
        """Insert or update catalog rows keyed by course id.

        Returns:
            Number of rows submitted.
        """
        if not rows:
            return 0
        stmt = pg_insert(Course).values(list(rows))
        update_columns = {
            col.name: stmt.excluded[col.name]
            for col in Course.__table__.columns
            if col.name not in _UPSERT_PRESERVED and col.name != "updated_at"
        }
        update_columns["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=[Course.id],
            set_=update_columns,
        )
        await self._session.execute(stmt)
        await self._session.flush()
        return len(rows)


class CourseContentRepository:
    """Replace-strategy persistence for a course's Sections and Resources.

    Existing rows of the course are deleted before the new plan is
    inserted; there is no incremental update path.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def delete_for_course(self, course_id: int) -> None:
        """Delete all Resource and Section rows of a course."""
        await self._session.execute(
            delete(Resource).where(Resource.course_id == course_id)
        )
        await self._session.execute(
            delete(Section).where(Section.course_id == course_id)
        )
        await self._session.flush()

    async def replace_content(
        self,
        course_id: int,
        plans: Sequence[SectionPlan],
    ) -> list[Section]:
        """Replace the course's sections and resources with ``plans``.

        Args:
            course_id: Target course.
            plans: Section plans in timeline order; ``plan.ordering``
                becomes ``Section.ordering``.

        Returns:
            The newly created Section ORM instances (resources attached).
        """
        await self.delete_for_course(course_id)

        sections: list[Section] = []
        for plan in plans:
            section = Section(
                course_id=course_id,
                title=plan.title,
                slug=plan.slug,
                section_type=str(plan.section_type),
                ordering=plan.ordering,
            )
            for res in plan.resources:
                section.resources.append(
                    Resource(
                        course_id=course_id,
                        title=res.title,
                        resource_type=str(res.resource_type),
                        pdf_path=res.pdf_path,
                        video_url=res.video_url,
                        youtube_id=res.youtube_id,
                        archive_url=res.archive_url,
                        ordering=res.ordering,
                    )
                )
            sections.append(section)

        self._session.add_all(sections)
        await self._session.flush()
        return sections

    async def list_sections(self, course_id: int) -> list[Section]:
        """Sections of a course in timeline order."""
        stmt = (
            select(Section)
            .where(Section.course_id == course_id)
            .order_by(Section.ordering)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_resources(self, course_id: int) -> list[Resource]:
        """Resources of a course ordered by section position, then local order."""
        stmt = (
            select(Resource)
            .outerjoin(Section, Resource.section_id == Section.id)
            .where(Resource.course_id == course_id)
            .order_by(Section.ordering, Resource.ordering)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class ProblemRepository:
    """Repository for problem-set resources and their extracted problems."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_problem_resources(self, course_id: int) -> list[Resource]:
        """problem_set / exam / solution resources of a course.

        Ordered by owning section position, then local resource order,
        so grouping by section preserves timeline order.
        """
        stmt = (
            select(Resource)
            .outerjoin(Section, Resource.section_id == Section.id)
            .where(
                Resource.course_id == course_id,
                Resource.resource_type.in_(sorted(PROBLEM_RESOURCE_TYPES)),
            )
            .order_by(Section.ordering, Resource.ordering)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def replace_for_resource(
        self,
        resource_id: uuid.UUID,
        course_id: int,
        problems: Sequence[ExtractedProblem],
    ) -> list[Problem]:
        """Delete all problems of ``resource_id`` and insert ``problems``.

        Returns:
            The newly created Problem ORM instances.
        """
        await self._session.execute(
            delete(Problem).where(Problem.resource_id == resource_id)
        )
        await self._session.flush()

        rows = [
            Problem(
                resource_id=resource_id,
                course_id=course_id,
                problem_label=p.problem_label,
                question_text=p.question_text,
                solution_text=p.solution_text,
                ordering=p.ordering,
            )
            for p in problems
        ]
        self._session.add_all(rows)
        await self._session.flush()
        return rows

    async def list_for_resource(self, resource_id: uuid.UUID) -> list[Problem]:
        """Problems of a questions resource in document order."""
        stmt = (
            select(Problem)
            .where(Problem.resource_id == resource_id)
            .order_by(Problem.ordering)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
