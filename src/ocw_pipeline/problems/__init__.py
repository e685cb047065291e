"""Problem extraction from problem-set and exam PDFs."""

from ocw_pipeline.problems.extractor import ProblemExtractor
from ocw_pipeline.problems.pipeline import (
    PdfFetcher,
    ProblemExtractionPipeline,
    ProblemRunSummary,
    group_by_section,
)

__all__ = [
    "PdfFetcher",
    "ProblemExtractionPipeline",
    "ProblemExtractor",
    "ProblemRunSummary",
    "group_by_section",
]
