"""LLM infrastructure: providers, registry, router, prompt and JSON helpers.

Quick start::

    from ocw_pipeline.config import get_settings
    from ocw_pipeline.llm import create_model_router

    router = create_model_router(get_settings())
    response = await router.complete("content_ordering", prompt)
"""

from ocw_pipeline.llm.factory import create_model_router
from ocw_pipeline.llm.router import AllModelsFailedError, ModelRouter
from ocw_pipeline.llm.schemas import LLMRequest, LLMResponse

__all__ = [
    "AllModelsFailedError",
    "LLMRequest",
    "LLMResponse",
    "ModelRouter",
    "create_model_router",
]
