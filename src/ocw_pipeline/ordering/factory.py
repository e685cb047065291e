"""Single decision point between oracle and deterministic ordering."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from ocw_pipeline.ordering.deterministic import DeterministicOrdering
from ocw_pipeline.ordering.oracle import ORDERING_ACTION, OracleOrdering

if TYPE_CHECKING:
    from ocw_pipeline.llm.router import ModelRouter
    from ocw_pipeline.ordering.base import OrderingStrategy

logger = structlog.get_logger()


def select_ordering_strategy(router: ModelRouter | None) -> OrderingStrategy:
    """Oracle ordering when any configured model can serve the action.

    Args:
        router: ModelRouter, or None when LLM access is not set up.

    Returns:
        OracleOrdering (which itself degrades to the deterministic
        ordering on failure) or DeterministicOrdering.
    """
    if router is not None and router.is_available(ORDERING_ACTION):
        strategy: OrderingStrategy = OracleOrdering(router)
    else:
        strategy = DeterministicOrdering()
    logger.info("ordering_strategy_selected", strategy=strategy.name)
    return strategy
