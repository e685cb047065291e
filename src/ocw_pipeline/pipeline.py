"""CourseContentPipeline: download, classify, order and persist one course.

Stages run strictly in sequence, each feeding the next:
acquire archive -> discover lectures -> classify PDFs -> order -> build.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ocw_pipeline.archive.acquirer import (
    ArchiveAcquirer,
    normalize_course_url,
    resolve_course,
)
from ocw_pipeline.archive.classifier import ResourceClassifier
from ocw_pipeline.archive.digest import build_digest
from ocw_pipeline.archive.lectures import LectureDiscoverer
from ocw_pipeline.builder import ContentBuilder, SectionPlan, plan_content
from ocw_pipeline.config import Settings
from ocw_pipeline.errors import ArchiveFetchError, PersistenceError
from ocw_pipeline.ordering.base import OrderingInput, OrderingStrategy
from ocw_pipeline.storage.repositories import (
    CourseContentRepository,
    CourseRepository,
    acquire_course_lock,
)

logger = structlog.get_logger()

LECTURE_CACHE_FILENAME = "lectures.json"


@dataclass(frozen=True, slots=True)
class ContentRunSummary:
    course_id: int
    course_title: str
    lecture_count: int
    pdf_count: int
    section_count: int
    resource_count: int
    ordering_strategy: str


class CourseContentPipeline:
    """Run the content stages for one course slug.

    All Section/Resource writes happen in a single transaction taken
    under the course advisory lock. The slug's scratch files are
    removed when the run ends, successfully or not.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        acquirer: ArchiveAcquirer,
        discoverer: LectureDiscoverer,
        ordering: OrderingStrategy,
        settings: Settings,
    ) -> None:
        self._session_factory = session_factory
        self._acquirer = acquirer
        self._discoverer = discoverer
        self._ordering = ordering
        self._settings = settings

    async def run(self, slug: str) -> ContentRunSummary:
        """Process the course matching ``slug``.

        Raises:
            CourseNotFoundError: No course matches the slug.
            ZipLinkNotFoundError: Download page has no zip link.
            ArchiveFetchError: Archive could not be fetched or extracted.
            PersistenceError: Sections/resources could not be written.
        """
        async with self._session_factory() as session:
            course = await resolve_course(CourseRepository(session), slug)
        if not course.url:
            raise ArchiveFetchError(f"Course {course.id} has no URL")

        course_url = normalize_course_url(course.url)
        try:
            archive = await self._acquirer.acquire(course_url, slug)
            course_dir = self._settings.course_dir(slug)

            lectures = await self._discoverer.discover(
                course_url,
                archive.content_root,
                course_dir / LECTURE_CACHE_FILENAME,
            )
            logger.info("lectures_discovered", lecture_count=len(lectures))

            classifier = ResourceClassifier(course_dir)
            classification = classifier.classify(archive.content_root)
            digest = build_digest(
                archive.content_root,
                page_chars=self._settings.digest_page_chars,
                total_chars=self._settings.digest_total_chars,
            )
        finally:
            self.cleanup_scratch(slug)

        items = await self._ordering.order(
            OrderingInput(
                course_title=course.title,
                lectures=lectures,
                pdfs=classification.entries,
                digest=digest,
            )
        )
        logger.info(
            "content_ordered",
            item_count=len(items),
            strategy=self._ordering.name,
        )

        plans = plan_content(
            items,
            lectures,
            classification.entries,
            classification.lecture_notes_index(),
            pdf_path=lambda filename: self._settings.public_pdf_path(slug, filename),
        )
        resource_count = await self._persist(course.id, plans)

        return ContentRunSummary(
            course_id=course.id,
            course_title=course.title,
            lecture_count=len(lectures),
            pdf_count=len(classification.entries),
            section_count=len(plans),
            resource_count=resource_count,
            ordering_strategy=self._ordering.name,
        )

    async def _persist(self, course_id: int, plans: list[SectionPlan]) -> int:
        try:
            async with self._session_factory() as session:
                await acquire_course_lock(session, course_id)
                builder = ContentBuilder(
                    CourseContentRepository(session),
                    CourseRepository(session),
                )
                resource_count = await builder.build(course_id, plans)
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to persist content for course {course_id}: {exc}"
            ) from exc
        return resource_count

    def cleanup_scratch(self, slug: str) -> None:
        """Remove the slug's zip and extraction directory."""
        scratch: Path = self._settings.scratch_dir
        shutil.rmtree(scratch / slug, ignore_errors=True)
        (scratch / f"{slug}.zip").unlink(missing_ok=True)
        logger.info("scratch_cleaned", scratch_dir=str(scratch), slug=slug)
