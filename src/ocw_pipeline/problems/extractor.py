"""ProblemExtractor: structured problems from converted problem-set text."""

from __future__ import annotations

import structlog

from ocw_pipeline.errors import OracleResponseError
from ocw_pipeline.llm.json_array import parse_json_array
from ocw_pipeline.llm.prompts import format_prompt, load_prompt
from ocw_pipeline.llm.router import ModelRouter
from ocw_pipeline.models.problems import ExtractedProblem

logger = structlog.get_logger()

EXTRACTION_ACTION = "problem_extraction"
DEFAULT_PROMPT_PATH = "problems/v1.yaml"
NO_SOLUTIONS_NOTE = "(No separate solutions document available.)"


def solutions_block(solutions_markdown: str | None) -> str:
    if solutions_markdown:
        return f"## Solutions document\n\n{solutions_markdown}"
    return NO_SOLUTIONS_NOTE


class ProblemExtractor:
    """Ask the extraction oracle to split a problem set into problems.

    An unparseable answer yields an empty list (logged). Transport
    failures propagate as ``AllModelsFailedError``.

    Args:
        router: ModelRouter used for the ``problem_extraction`` action.
        prompt_path: Prompt YAML, relative to the bundled prompts dir.
        strategy: Routing strategy name.
    """

    def __init__(
        self,
        router: ModelRouter,
        *,
        prompt_path: str = DEFAULT_PROMPT_PATH,
        strategy: str = "default",
        temperature: float = 0.0,
    ) -> None:
        self._router = router
        self._prompt_path = prompt_path
        self._strategy = strategy
        self._temperature = temperature

    async def extract(
        self,
        questions_markdown: str,
        solutions_markdown: str | None = None,
    ) -> list[ExtractedProblem]:
        """Extract problems; ``solution_text`` is None throughout when
        there is no solutions document.

        Raises:
            AllModelsFailedError: If no model could answer.
        """
        prompt_data = load_prompt(self._prompt_path)
        user_prompt = format_prompt(
            prompt_data.user_prompt_template,
            questions=questions_markdown,
            solutions_block=solutions_block(solutions_markdown),
        )

        response = await self._router.complete(
            EXTRACTION_ACTION,
            user_prompt,
            system_prompt=prompt_data.system_prompt,
            temperature=self._temperature,
            strategy=self._strategy,
        )

        try:
            problems = parse_json_array(response.content, ExtractedProblem)
        except OracleResponseError as exc:
            logger.warning(
                "problem_extraction_unparseable",
                error=str(exc),
                raw_preview=exc.raw_content[:500],
                model=response.model_id,
            )
            return []

        if not solutions_markdown:
            problems = [p.model_copy(update={"solution_text": None}) for p in problems]

        logger.info(
            "problems_extracted",
            problem_count=len(problems),
            has_solutions=bool(solutions_markdown),
            model=response.model_id,
            tokens_in=response.tokens_in,
            tokens_out=response.tokens_out,
        )
        return problems
