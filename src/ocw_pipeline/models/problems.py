"""Schemas for problems extracted from problem-set PDFs."""

from pydantic import BaseModel, Field


class ExtractedProblem(BaseModel):
    """Single problem returned by the extraction oracle."""

    problem_label: str
    question_text: str
    solution_text: str | None = None
    ordering: int = Field(ge=0)
