"""Tests for section/resource planning and the replace-strategy builder."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from ocw_pipeline.builder import (
    ContentBuilder,
    ResourcePlan,
    SectionPlan,
    is_solution_filename,
    plan_content,
)
from ocw_pipeline.errors import PersistenceError
from ocw_pipeline.models.content import (
    ItemType,
    LectureCandidate,
    OrderedItem,
    PdfEntry,
    PdfType,
    ResourceType,
)
from ocw_pipeline.ordering.deterministic import fallback_ordering


def _pdf_path(filename: str) -> str:
    return f"/content/courses/18-06/{filename}"


@pytest.fixture()
def lectures() -> list[LectureCandidate]:
    return [
        LectureCandidate(
            title="Lecture 1",
            slug="lec1",
            youtube_id="ZK3O402wf1c",
            archive_url="https://archive.org/download/MIT18.06/01.mp4",
            lecture_number=1,
        ),
        LectureCandidate(title="Lecture 2", slug="lec2", lecture_number=2),
    ]


class TestPlanContent:
    def test_end_to_end_example(self) -> None:
        """One lecture plus one problem set, ordered without an oracle."""
        lectures = [
            LectureCandidate(
                title="Lecture 1",
                slug="lec1",
                youtube_id="ZK3O402wf1c",
                lecture_number=1,
            )
        ]
        pdfs = [
            PdfEntry(
                filename="ps1.pdf",
                title="Problem Set 1",
                guessed_type=PdfType.PROBLEM_SET,
            )
        ]

        plans = plan_content(
            fallback_ordering(lectures, pdfs), lectures, pdfs, {}, pdf_path=_pdf_path
        )

        assert [(p.title, p.section_type, p.ordering) for p in plans] == [
            ("Lecture 1", "lecture", 0),
            ("Problem Set 1", "problem_set", 1),
        ]
        video = plans[0].resources[0]
        assert (video.title, video.resource_type, video.ordering) == (
            "Lecture 1",
            ResourceType.VIDEO,
            0,
        )
        pset = plans[1].resources[0]
        assert pset == ResourcePlan(
            title="Problem Set 1",
            resource_type=ResourceType.PROBLEM_SET,
            ordering=0,
            pdf_path="/content/courses/18-06/ps1.pdf",
        )

    def test_video_resource_fields(self, lectures: list[LectureCandidate]) -> None:
        items = [OrderedItem(type=ItemType.LECTURE, title="Lecture 1", lecture_index=0)]
        plans = plan_content(items, lectures, [], {}, pdf_path=_pdf_path)
        video = plans[0].resources[0]
        assert video.video_url == "https://www.youtube.com/watch?v=ZK3O402wf1c"
        assert video.youtube_id == "ZK3O402wf1c"
        assert video.archive_url == "https://archive.org/download/MIT18.06/01.mp4"
        assert video.pdf_path is None

    def test_lecture_without_video(self, lectures: list[LectureCandidate]) -> None:
        items = [OrderedItem(type=ItemType.LECTURE, title="Lecture 2", lecture_index=1)]
        plans = plan_content(items, lectures, [], {}, pdf_path=_pdf_path)
        assert plans[0].slug == "lec2"
        assert plans[0].resources == ()

    def test_archive_only_video(self) -> None:
        lectures = [
            LectureCandidate(
                title="Lecture 1", slug="lec1", archive_url="https://archive.org/x.mp4"
            )
        ]
        items = [OrderedItem(type=ItemType.LECTURE, title="Lecture 1", lecture_index=0)]
        plans = plan_content(items, lectures, [], {}, pdf_path=_pdf_path)
        video = plans[0].resources[0]
        assert video.resource_type == ResourceType.VIDEO
        assert video.video_url is None
        assert video.archive_url == "https://archive.org/x.mp4"

    def test_lecture_notes_attached(self, lectures: list[LectureCandidate]) -> None:
        pdfs = [
            PdfEntry(
                filename="lecture-1-geometry.pdf",
                title="Lecture 1: Geometry",
                guessed_type=PdfType.LECTURE_NOTES,
            )
        ]
        items = [OrderedItem(type=ItemType.LECTURE, title="Lecture 1", lecture_index=0)]
        plans = plan_content(
            items,
            lectures,
            pdfs,
            {1: ["lecture-1-geometry.pdf"]},
            pdf_path=_pdf_path,
        )
        notes = plans[0].resources[1]
        assert notes.resource_type == ResourceType.LECTURE_NOTES
        assert notes.ordering == 1
        assert notes.title == "Lecture 1: Geometry"
        assert notes.pdf_path == "/content/courses/18-06/lecture-1-geometry.pdf"

    def test_solution_detected_by_filename(self) -> None:
        items = [
            OrderedItem(
                type=ItemType.PROBLEM_SET,
                title="Problem Set 1",
                pdf_filenames=["problem-set-1.pdf", "problem-set-1-SOLUTIONS.pdf"],
            )
        ]
        resources = plan_content(items, [], [], {}, pdf_path=_pdf_path)[0].resources
        assert [r.resource_type for r in resources] == [
            ResourceType.PROBLEM_SET,
            ResourceType.SOLUTION,
        ]
        assert [r.ordering for r in resources] == [0, 1]
        assert resources[1].title == "problem set 1 SOLUTIONS"

    def test_material_slug_uses_position(
        self, lectures: list[LectureCandidate]
    ) -> None:
        items = [
            OrderedItem(type=ItemType.LECTURE, title="Lecture 1", lecture_index=0),
            OrderedItem(type=ItemType.EXAM, title="Quiz 1", pdf_filenames=["q1.pdf"]),
        ]
        plans = plan_content(items, lectures, [], {}, pdf_path=_pdf_path)
        assert [p.slug for p in plans] == ["lec1", "exam-1"]
        assert plans[1].resources[0].resource_type == ResourceType.EXAM

    def test_orderings_contiguous(self, lectures: list[LectureCandidate]) -> None:
        pdfs = [
            PdfEntry(filename=f"ps{n}.pdf", title=f"PS {n}", guessed_type="problem_set")
            for n in range(1, 4)
        ]
        plans = plan_content(
            fallback_ordering(lectures, pdfs), lectures, pdfs, {}, pdf_path=_pdf_path
        )
        assert [p.ordering for p in plans] == list(range(5))

    def test_identical_input_identical_plan(
        self, lectures: list[LectureCandidate]
    ) -> None:
        pdfs = [PdfEntry(filename="q.pdf", title="Quiz", guessed_type=PdfType.EXAM)]
        items = fallback_ordering(lectures, pdfs)
        first = plan_content(items, lectures, pdfs, {}, pdf_path=_pdf_path)
        second = plan_content(items, lectures, pdfs, {}, pdf_path=_pdf_path)
        assert first == second

    def test_is_solution_filename(self) -> None:
        assert is_solution_filename("ps1-Sol.pdf") is True
        assert is_solution_filename("ps1.pdf") is False


class TestContentBuilder:
    @pytest.fixture()
    def plans(self) -> list[SectionPlan]:
        return [
            SectionPlan(
                title="Lecture 1",
                slug="lec1",
                section_type="lecture",
                ordering=0,
                resources=(
                    ResourcePlan(
                        title="Lecture 1",
                        resource_type=ResourceType.VIDEO,
                        ordering=0,
                        youtube_id="ZK3O402wf1c",
                    ),
                ),
            ),
            SectionPlan(
                title="Problem Set 1",
                slug="problem_set-1",
                section_type="problem_set",
                ordering=1,
                resources=(
                    ResourcePlan(
                        title="Problem Set 1",
                        resource_type=ResourceType.PROBLEM_SET,
                        ordering=0,
                        pdf_path="/content/courses/18-06/ps1.pdf",
                    ),
                ),
            ),
        ]

    async def test_build_replaces_and_flags(self, plans: list[SectionPlan]) -> None:
        content_repo = AsyncMock()
        course_repo = AsyncMock()
        count = await ContentBuilder(content_repo, course_repo).build(42, plans)

        assert count == 2
        content_repo.replace_content.assert_awaited_once_with(42, plans)
        course_repo.mark_content_downloaded.assert_awaited_once_with(42)

    async def test_database_error_wrapped(self, plans: list[SectionPlan]) -> None:
        content_repo = AsyncMock()
        content_repo.replace_content.side_effect = OperationalError(
            "DELETE", {}, Exception("connection lost")
        )
        course_repo = AsyncMock()

        with pytest.raises(PersistenceError, match="course 42"):
            await ContentBuilder(content_repo, course_repo).build(42, plans)
        course_repo.mark_content_downloaded.assert_not_awaited()
