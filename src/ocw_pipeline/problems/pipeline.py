"""Problem extraction pipeline: problem-set PDFs -> Problem rows.

Resources of a course are grouped by owning section; each group pairs
one questions resource (problem set or exam) with an optional solution
resource. Groups are processed one at a time and every per-group
failure is logged and skipped.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ocw_pipeline.conversion.llamaparse import DocumentConverter
from ocw_pipeline.errors import ConversionError, PdfFetchError
from ocw_pipeline.llm.router import AllModelsFailedError
from ocw_pipeline.models.content import QUESTION_RESOURCE_TYPES, ResourceType
from ocw_pipeline.problems.extractor import ProblemExtractor
from ocw_pipeline.storage.orm import Course, Resource
from ocw_pipeline.storage.repositories import ProblemRepository, acquire_course_lock

logger = structlog.get_logger()


@dataclass
class ResourceGroup:
    """Problem-related resources sharing one section."""

    section_id: uuid.UUID | None
    resources: list[Resource] = field(default_factory=list)

    @property
    def questions(self) -> Resource | None:
        return next(
            (r for r in self.resources if r.resource_type in QUESTION_RESOURCE_TYPES),
            None,
        )

    @property
    def solution(self) -> Resource | None:
        return next(
            (r for r in self.resources if r.resource_type == ResourceType.SOLUTION),
            None,
        )


def group_by_section(resources: list[Resource]) -> list[ResourceGroup]:
    """Group resources by ``section_id`` in order of first appearance.

    Resources without a section share a single group.
    """
    groups: dict[uuid.UUID | None, ResourceGroup] = {}
    for resource in resources:
        group = groups.get(resource.section_id)
        if group is None:
            group = groups[resource.section_id] = ResourceGroup(resource.section_id)
        group.resources.append(resource)
    return list(groups.values())


@dataclass
class ProblemRunSummary:
    groups_total: int = 0
    groups_processed: int = 0
    groups_skipped: int = 0
    problems_written: int = 0


class PdfFetcher:
    """Load a stored PDF by its public ``pdf_path``.

    Resolution order: absolute http(s) URL, the local course storage
    directory, then ``pdf_base_url`` + path when configured.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        content_root: Path,
        public_path_prefix: str = "/content/courses",
        pdf_base_url: str | None = None,
    ) -> None:
        self._client = client
        self._content_root = content_root
        self._prefix = public_path_prefix.rstrip("/") + "/"
        self._pdf_base_url = pdf_base_url.rstrip("/") if pdf_base_url else None

    def local_path(self, pdf_path: str) -> Path | None:
        if not pdf_path.startswith(self._prefix):
            return None
        return self._content_root / pdf_path[len(self._prefix) :]

    async def fetch(self, pdf_path: str) -> bytes:
        """Return the PDF bytes.

        Raises:
            PdfFetchError: If the PDF is neither on disk nor downloadable.
        """
        if pdf_path.startswith(("http://", "https://")):
            return await self._download(pdf_path)

        local = self.local_path(pdf_path)
        if local is not None and local.is_file():
            return local.read_bytes()

        if self._pdf_base_url:
            return await self._download(f"{self._pdf_base_url}{pdf_path}")

        raise PdfFetchError(f"PDF not found locally and no remote origin: {pdf_path}")

    async def _download(self, url: str) -> bytes:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise PdfFetchError(f"Failed to download PDF {url}: {exc}") from exc
        if not response.is_success:
            raise PdfFetchError(
                f"Failed to download PDF ({response.status_code}): {url}"
            )
        return response.content


class ProblemExtractionPipeline:
    """Extract and store problems for every problem group of a course.

    Each group's replacement runs in its own transaction under the
    course advisory lock; a group that yields zero problems leaves its
    existing rows untouched.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        fetcher: PdfFetcher,
        converter: DocumentConverter,
        extractor: ProblemExtractor,
    ) -> None:
        self._session_factory = session_factory
        self._fetcher = fetcher
        self._converter = converter
        self._extractor = extractor

    async def load_groups(self, course_id: int) -> list[ResourceGroup]:
        async with self._session_factory() as session:
            repo = ProblemRepository(session)
            resources = await repo.list_problem_resources(course_id)
        logger.info("problem_resources_found", resource_count=len(resources))
        return group_by_section(resources)

    async def run(self, course: Course) -> ProblemRunSummary:
        """Process all groups of ``course`` sequentially."""
        groups = await self.load_groups(course.id)
        summary = ProblemRunSummary(groups_total=len(groups))

        for group in groups:
            written = await self._process_group(course.id, group)
            if written is None:
                summary.groups_skipped += 1
            else:
                summary.groups_processed += 1
                summary.problems_written += written

        logger.info(
            "problem_extraction_done",
            course_id=course.id,
            groups_total=summary.groups_total,
            groups_processed=summary.groups_processed,
            groups_skipped=summary.groups_skipped,
            problems_written=summary.problems_written,
        )
        return summary

    async def _process_group(self, course_id: int, group: ResourceGroup) -> int | None:
        """Problems written for the group, or None if it was skipped."""
        section_id = str(group.section_id) if group.section_id else None
        log = logger.bind(section_id=section_id)

        questions = group.questions
        if questions is None:
            if group.solution is not None:
                log.warning(
                    "problem_group_solution_unpaired",
                    resource_id=str(group.solution.id),
                )
            log.info("problem_group_skipped", reason="no_questions_resource")
            return None
        if not questions.pdf_path:
            log.info("problem_group_skipped", reason="questions_without_pdf")
            return None

        log = log.bind(resource_id=str(questions.id), title=questions.title)
        solution = group.solution

        try:
            questions_md = await self._convert(questions.pdf_path, questions.title)
            if not questions_md.strip():
                log.info("problem_group_skipped", reason="empty_questions_text")
                return None

            solutions_md = await self._convert_solution(solution, log)
            problems = await self._extractor.extract(questions_md, solutions_md)
        except (PdfFetchError, ConversionError, AllModelsFailedError) as exc:
            log.warning(
                "problem_group_skipped", reason=type(exc).__name__, error=str(exc)
            )
            return None

        if not problems:
            log.info("problem_group_no_problems")
            return 0

        try:
            async with self._session_factory() as session:
                await acquire_course_lock(session, course_id)
                await ProblemRepository(session).replace_for_resource(
                    questions.id, course_id, problems
                )
                await session.commit()
        except SQLAlchemyError as exc:
            log.error("problem_persist_failed", error=str(exc))
            return None

        log.info("problems_stored", problem_count=len(problems))
        return len(problems)

    async def _convert_solution(
        self,
        solution: Resource | None,
        log: structlog.stdlib.BoundLogger,
    ) -> str | None:
        """Solutions text, or None when absent or unconvertible."""
        if solution is None or not solution.pdf_path:
            log.info("problem_group_without_solutions")
            return None
        try:
            text = await self._convert(solution.pdf_path, solution.title)
        except (PdfFetchError, ConversionError) as exc:
            log.warning(
                "solution_conversion_failed",
                solution_id=str(solution.id),
                error=str(exc),
            )
            return None
        return text or None

    async def _convert(self, pdf_path: str, title: str) -> str:
        pdf_bytes = await self._fetcher.fetch(pdf_path)
        return await self._converter.convert(pdf_bytes, f"{title}.pdf")
