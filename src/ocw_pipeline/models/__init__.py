"""Pydantic schemas shared across pipeline stages."""

from ocw_pipeline.models.content import (
    ItemType,
    LectureCandidate,
    OrderedItem,
    PdfEntry,
    PdfType,
    ResourceType,
)
from ocw_pipeline.models.problems import ExtractedProblem

__all__ = [
    "ExtractedProblem",
    "ItemType",
    "LectureCandidate",
    "OrderedItem",
    "PdfEntry",
    "PdfType",
    "ResourceType",
]
