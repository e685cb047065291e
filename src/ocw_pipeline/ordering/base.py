"""OrderingStrategy abstract base class and shared input bundle."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field

from ocw_pipeline.models.content import LectureCandidate, OrderedItem, PdfEntry


@dataclass(frozen=True, slots=True)
class OrderingInput:
    """Everything an ordering strategy may look at for one course.

    ``digest`` is the plain-text summary of the archive's HTML pages;
    it is empty when the archive has no pages directory.
    """

    course_title: str
    lectures: list[LectureCandidate]
    pdfs: list[PdfEntry]
    digest: str = field(default="")


class OrderingStrategy(abc.ABC):
    """Produces the chronological OrderedItem sequence for a course.

    Implementations must reference every lecture index
    ``0..len(lectures)-1`` exactly once and never emit lecture_notes
    PDFs, which attach to their lecture downstream.
    """

    name: str = "base"

    @abc.abstractmethod
    async def order(self, data: OrderingInput) -> list[OrderedItem]:
        """Return ordered items for ``data``."""
        ...
