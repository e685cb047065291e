"""OracleOrdering: chronological interleaving via the LLM ordering oracle."""

from __future__ import annotations

from typing import NamedTuple

import structlog

from ocw_pipeline.errors import OracleResponseError
from ocw_pipeline.llm.json_array import parse_json_array
from ocw_pipeline.llm.prompts import format_prompt, load_prompt
from ocw_pipeline.llm.router import AllModelsFailedError, ModelRouter
from ocw_pipeline.models.content import (
    ItemType,
    LectureCandidate,
    OrderedItem,
    PdfEntry,
    PdfType,
)
from ocw_pipeline.ordering.base import OrderingInput, OrderingStrategy
from ocw_pipeline.ordering.deterministic import DeterministicOrdering

logger = structlog.get_logger()

ORDERING_ACTION = "content_ordering"
DEFAULT_PROMPT_PATH = "ordering/v1.yaml"


class PreparedPrompt(NamedTuple):
    """Formatted prompts ready for the router."""

    system_prompt: str | None
    user_prompt: str
    prompt_version: str


def format_lectures(lectures: list[LectureCandidate]) -> str:
    return "\n".join(f"  [L{i}] {lec.title}" for i, lec in enumerate(lectures))


def format_pdfs(pdfs: list[PdfEntry]) -> str:
    return "\n".join(
        f'  [{pdf.guessed_type}] {pdf.filename} - "{pdf.title}"' for pdf in pdfs
    )


def repair_items(
    items: list[OrderedItem],
    lectures: list[LectureCandidate],
    pdfs: list[PdfEntry],
) -> list[OrderedItem]:
    """Force an oracle answer back onto the ordering invariants.

    Lecture items with a missing, out-of-range or repeated index are
    dropped and lectures the oracle left out are appended in input
    order. Lecture-notes and unknown filenames are removed from file
    lists; non-lecture items left with no files are dropped. Returns an
    empty list when nothing usable survives.
    """
    allowed_files = {
        pdf.filename for pdf in pdfs if pdf.guessed_type != PdfType.LECTURE_NOTES
    }
    seen_lectures: set[int] = set()
    repaired: list[OrderedItem] = []
    dropped = 0

    for item in items:
        if item.type == ItemType.LECTURE:
            idx = item.lecture_index
            if idx is None or not 0 <= idx < len(lectures) or idx in seen_lectures:
                dropped += 1
                continue
            seen_lectures.add(idx)
            repaired.append(item.model_copy(update={"pdf_filenames": []}))
            continue

        filenames = [name for name in item.pdf_filenames if name in allowed_files]
        if not filenames:
            dropped += 1
            continue
        repaired.append(
            item.model_copy(update={"lecture_index": None, "pdf_filenames": filenames})
        )

    if not repaired:
        return []

    missing = [i for i in range(len(lectures)) if i not in seen_lectures]
    repaired.extend(
        OrderedItem(type=ItemType.LECTURE, title=lectures[i].title, lecture_index=i)
        for i in missing
    )
    if dropped or missing:
        logger.warning(
            "ordering_oracle_items_repaired",
            dropped_items=dropped,
            appended_lectures=missing,
        )
    return repaired


class OracleOrdering(OrderingStrategy):
    """Ask the ordering oracle for an interleaved timeline.

    Transport failures (all models exhausted) and unparseable answers
    degrade to ``fallback``; the run always gets an ordering.

    Args:
        router: ModelRouter used for the ``content_ordering`` action.
        fallback: Strategy used when the oracle cannot be used.
        prompt_path: Prompt YAML, relative to the bundled prompts dir.
        strategy: Routing strategy name.
    """

    name = "oracle"

    def __init__(
        self,
        router: ModelRouter,
        *,
        fallback: OrderingStrategy | None = None,
        prompt_path: str = DEFAULT_PROMPT_PATH,
        strategy: str = "default",
        temperature: float = 0.0,
    ) -> None:
        self._router = router
        self._fallback = fallback or DeterministicOrdering()
        self._prompt_path = prompt_path
        self._strategy = strategy
        self._temperature = temperature

    async def order(self, data: OrderingInput) -> list[OrderedItem]:
        prepared = self._prepare_prompts(data)
        logger.info(
            "ordering_oracle_requested",
            prompt_version=prepared.prompt_version,
            lecture_count=len(data.lectures),
            pdf_count=len(data.pdfs),
            has_digest=bool(data.digest),
            prompt_chars=len(prepared.user_prompt),
        )

        try:
            response = await self._router.complete(
                ORDERING_ACTION,
                prepared.user_prompt,
                system_prompt=prepared.system_prompt,
                temperature=self._temperature,
                strategy=self._strategy,
            )
            raw_items = parse_json_array(response.content, OrderedItem)
        except (AllModelsFailedError, OracleResponseError) as exc:
            logger.warning(
                "ordering_oracle_failed",
                error=str(exc),
                fallback=self._fallback.name,
            )
            return await self._fallback.order(data)

        items = repair_items(raw_items, data.lectures, data.pdfs)
        if not items:
            logger.warning("ordering_oracle_empty", fallback=self._fallback.name)
            return await self._fallback.order(data)

        logger.info(
            "ordering_oracle_done",
            item_count=len(items),
            model=response.model_id,
            tokens_in=response.tokens_in,
            tokens_out=response.tokens_out,
        )
        return items

    def _prepare_prompts(self, data: OrderingInput) -> PreparedPrompt:
        prompt_data = load_prompt(self._prompt_path)

        if data.digest:
            context_block = (
                "\n## Course pages (from the OCW zip archive)\n\n"
                "These are the AUTHORITATIVE source for ordering. The "
                "calendar/syllabus pages explicitly say which lectures come "
                "before which problem sets. "
                f"Use them.\n\n{data.digest}\n\n---\n"
            )
            context_hint = (
                " The calendar/syllabus pages above are your primary source: they tell "
                "you exactly which problem set is due after which lectures."
            )
        else:
            context_block = ""
            context_hint = ""

        user_prompt = format_prompt(
            prompt_data.user_prompt_template,
            course_title=data.course_title,
            context_block=context_block,
            lectures=format_lectures(data.lectures),
            pdfs=format_pdfs(data.pdfs),
            context_hint=context_hint,
            last_lecture_index=str(max(len(data.lectures) - 1, 0)),
        )
        return PreparedPrompt(
            system_prompt=prompt_data.system_prompt,
            user_prompt=user_prompt,
            prompt_version=prompt_data.version,
        )

