"""Content ordering strategies: LLM oracle with deterministic fallback."""

from ocw_pipeline.ordering.base import OrderingInput, OrderingStrategy
from ocw_pipeline.ordering.deterministic import DeterministicOrdering, fallback_ordering
from ocw_pipeline.ordering.factory import select_ordering_strategy
from ocw_pipeline.ordering.oracle import OracleOrdering, repair_items

__all__ = [
    "DeterministicOrdering",
    "OracleOrdering",
    "OrderingInput",
    "OrderingStrategy",
    "fallback_ordering",
    "repair_items",
    "select_ordering_strategy",
]
