"""Section/Resource builder: ordered items -> persisted course timeline.

Planning is a pure function of its inputs (``plan_content``); the
``ContentBuilder`` only hands the plan to the repositories, so reruns
on identical input write identical rows.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ocw_pipeline.archive.classifier import humanize_filename
from ocw_pipeline.errors import PersistenceError
from ocw_pipeline.models.content import (
    ItemType,
    LectureCandidate,
    OrderedItem,
    PdfEntry,
    ResourceType,
)
from ocw_pipeline.storage.repositories import CourseContentRepository, CourseRepository

logger = structlog.get_logger()

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

PdfPathFunc = Callable[[str], str]

# A lecture item without a usable lecture index keeps its files as "other".
_MATERIAL_RESOURCE_TYPES: dict[ItemType, ResourceType] = {
    ItemType.LECTURE: ResourceType.OTHER,
    ItemType.PROBLEM_SET: ResourceType.PROBLEM_SET,
    ItemType.EXAM: ResourceType.EXAM,
    ItemType.RECITATION: ResourceType.RECITATION,
    ItemType.OTHER: ResourceType.OTHER,
}


@dataclass(frozen=True, slots=True)
class ResourcePlan:
    """One Resource row to insert under a section."""

    title: str
    resource_type: ResourceType
    ordering: int
    pdf_path: str | None = None
    video_url: str | None = None
    youtube_id: str | None = None
    archive_url: str | None = None


@dataclass(frozen=True, slots=True)
class SectionPlan:
    """One Section row and its resources, in timeline position ``ordering``."""

    title: str
    slug: str
    section_type: str
    ordering: int
    resources: tuple[ResourcePlan, ...] = ()


def is_solution_filename(filename: str) -> bool:
    return "sol" in filename.lower()


def _lecture_resources(
    lecture: LectureCandidate,
    lecture_notes: Mapping[int, Sequence[str]],
    pdf_titles: Mapping[str, str],
    pdf_path: PdfPathFunc,
) -> list[ResourcePlan]:
    resources: list[ResourcePlan] = []
    if lecture.youtube_id or lecture.archive_url:
        resources.append(
            ResourcePlan(
                title=lecture.title,
                resource_type=ResourceType.VIDEO,
                ordering=0,
                video_url=(
                    YOUTUBE_WATCH_URL.format(video_id=lecture.youtube_id)
                    if lecture.youtube_id
                    else None
                ),
                youtube_id=lecture.youtube_id,
                archive_url=lecture.archive_url,
            )
        )

    if lecture.lecture_number is not None:
        for filename in lecture_notes.get(lecture.lecture_number, ()):
            resources.append(
                ResourcePlan(
                    title=pdf_titles.get(filename) or humanize_filename(filename),
                    resource_type=ResourceType.LECTURE_NOTES,
                    ordering=len(resources),
                    pdf_path=pdf_path(filename),
                )
            )
    return resources


def _material_resources(
    item: OrderedItem,
    pdf_titles: Mapping[str, str],
    pdf_path: PdfPathFunc,
) -> list[ResourcePlan]:
    item_type = _MATERIAL_RESOURCE_TYPES[item.type]
    return [
        ResourcePlan(
            title=pdf_titles.get(filename) or humanize_filename(filename),
            resource_type=(
                ResourceType.SOLUTION if is_solution_filename(filename) else item_type
            ),
            ordering=j,
            pdf_path=pdf_path(filename),
        )
        for j, filename in enumerate(item.pdf_filenames)
    ]


def plan_content(
    items: Sequence[OrderedItem],
    lectures: Sequence[LectureCandidate],
    pdfs: Sequence[PdfEntry],
    lecture_notes: Mapping[int, Sequence[str]],
    *,
    pdf_path: PdfPathFunc,
) -> list[SectionPlan]:
    """Turn ordered items into section plans.

    Args:
        items: Ordered items; position becomes ``Section.ordering``.
        lectures: Lecture list the items' ``lecture_index`` refers to.
        pdfs: Classified PDFs, used for resource titles.
        lecture_notes: Lecture number -> lecture-notes filenames.
        pdf_path: Maps an on-disk filename to its public path.

    Returns:
        One SectionPlan per item, in order.
    """
    pdf_titles = {pdf.filename: pdf.title for pdf in pdfs}
    plans: list[SectionPlan] = []

    for position, item in enumerate(items):
        idx = item.lecture_index
        lecture = None
        if item.type == ItemType.LECTURE and idx is not None:
            lecture = lectures[idx] if 0 <= idx < len(lectures) else None
        if lecture is not None:
            slug = lecture.slug
            resources = _lecture_resources(lecture, lecture_notes, pdf_titles, pdf_path)
        else:
            slug = f"{item.type}-{position}"
            resources = _material_resources(item, pdf_titles, pdf_path)

        plans.append(
            SectionPlan(
                title=item.title,
                slug=slug,
                section_type=str(item.type),
                ordering=position,
                resources=tuple(resources),
            )
        )
    return plans


class ContentBuilder:
    """Persist section plans with the replace strategy.

    Runs inside the caller's transaction: existing sections/resources
    of the course are deleted, the plan is inserted and the course is
    flagged as downloaded. Nothing is committed here.
    """

    def __init__(
        self,
        content_repo: CourseContentRepository,
        course_repo: CourseRepository,
    ) -> None:
        self._content_repo = content_repo
        self._course_repo = course_repo

    async def build(self, course_id: int, plans: Sequence[SectionPlan]) -> int:
        """Replace the course timeline with ``plans``.

        Returns:
            Number of resources written.

        Raises:
            PersistenceError: If any database statement fails.
        """
        resource_count = sum(len(plan.resources) for plan in plans)
        try:
            await self._content_repo.replace_content(course_id, plans)
            await self._course_repo.mark_content_downloaded(course_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to write sections for course {course_id}: {exc}"
            ) from exc

        logger.info(
            "course_content_built",
            course_id=course_id,
            section_count=len(plans),
            resource_count=resource_count,
            video_count=sum(
                1
                for plan in plans
                for res in plan.resources
                if res.resource_type == ResourceType.VIDEO
            ),
        )
        return resource_count
