"""Deterministic lectures-first ordering used when no oracle is usable."""

from __future__ import annotations

from ocw_pipeline.models.content import (
    ItemType,
    LectureCandidate,
    OrderedItem,
    PdfEntry,
    PdfType,
)
from ocw_pipeline.ordering.base import OrderingInput, OrderingStrategy

# Solutions collapse into problem sets; every other PDF type has an
# ItemType of the same name.
_FALLBACK_ITEM_TYPES: dict[PdfType, ItemType] = {
    PdfType.PROBLEM_SET: ItemType.PROBLEM_SET,
    PdfType.SOLUTION: ItemType.PROBLEM_SET,
    PdfType.EXAM: ItemType.EXAM,
    PdfType.RECITATION: ItemType.RECITATION,
    PdfType.OTHER: ItemType.OTHER,
}


def fallback_ordering(
    lectures: list[LectureCandidate],
    pdfs: list[PdfEntry],
) -> list[OrderedItem]:
    """All lectures in input order, then every non-lecture-notes PDF.

    Pure function of its inputs: each PDF becomes its own item, in input
    order, titled with the PDF's display title.
    """
    items = [
        OrderedItem(type=ItemType.LECTURE, title=lecture.title, lecture_index=i)
        for i, lecture in enumerate(lectures)
    ]
    for pdf in pdfs:
        if pdf.guessed_type == PdfType.LECTURE_NOTES:
            continue
        items.append(
            OrderedItem(
                type=_FALLBACK_ITEM_TYPES[pdf.guessed_type],
                title=pdf.title,
                pdf_filenames=[pdf.filename],
            )
        )
    return items


class DeterministicOrdering(OrderingStrategy):
    """Lectures first, then PDFs; never touches the network."""

    name = "deterministic"

    async def order(self, data: OrderingInput) -> list[OrderedItem]:
        return fallback_ordering(data.lectures, data.pdfs)
