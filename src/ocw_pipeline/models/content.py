"""Ephemeral content schemas passed between pipeline stages.

Field names are snake_case in Python and camelCase on the wire
(lecture cache file, ordering oracle responses).
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PdfType(StrEnum):
    """Classified type of a course PDF."""

    LECTURE_NOTES = "lecture_notes"
    PROBLEM_SET = "problem_set"
    EXAM = "exam"
    SOLUTION = "solution"
    RECITATION = "recitation"
    OTHER = "other"


class ItemType(StrEnum):
    """Type of an ordered item. Mirrors Section.section_type."""

    LECTURE = "lecture"
    PROBLEM_SET = "problem_set"
    EXAM = "exam"
    RECITATION = "recitation"
    OTHER = "other"


class ResourceType(StrEnum):
    """Values stored in Resource.resource_type."""

    VIDEO = "video"
    LECTURE_NOTES = "lecture_notes"
    PROBLEM_SET = "problem_set"
    EXAM = "exam"
    SOLUTION = "solution"
    RECITATION = "recitation"
    OTHER = "other"


QUESTION_RESOURCE_TYPES: frozenset[str] = frozenset(
    {ResourceType.PROBLEM_SET, ResourceType.EXAM}
)
PROBLEM_RESOURCE_TYPES: frozenset[str] = QUESTION_RESOURCE_TYPES | {
    ResourceType.SOLUTION
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LectureCandidate(_CamelModel):
    """One discovered lecture video."""

    title: str
    slug: str
    youtube_id: str | None = None
    archive_url: str | None = None
    lecture_number: int | None = None


class PdfEntry(_CamelModel):
    """A course PDF after renaming and classification."""

    filename: str
    title: str
    guessed_type: PdfType = PdfType.OTHER


class OrderedItem(_CamelModel):
    """Pre-persistence representation of one future Section."""

    type: ItemType
    title: str
    lecture_index: int | None = None
    pdf_filenames: list[str] = Field(default_factory=list)
