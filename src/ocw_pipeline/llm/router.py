"""ModelRouter -- central entry point for all LLM calls.

Two-level fallback:
1. Within chain: model 1 -> model 2 -> model 3
2. Between strategies: requested chain failed -> fallback to default chain
"""

import structlog

from ocw_pipeline.llm.providers.base import LLMProvider
from ocw_pipeline.llm.registry import ModelConfig, ModelRegistryConfig
from ocw_pipeline.llm.schemas import LLMRequest, LLMResponse

logger = structlog.get_logger()


class AllModelsFailedError(Exception):
    """All models in all attempted strategies failed."""

    def __init__(
        self,
        action: str,
        strategies_tried: list[str],
        errors: list[tuple[str, str]],
    ) -> None:
        self.action = action
        self.strategies_tried = strategies_tried
        self.errors = errors
        details = "; ".join(f"{m}: {e}" for m, e in errors)
        super().__init__(
            f"All models failed for action '{action}' "
            f"(strategies: {strategies_tried}): {details}"
        )


class ModelRouter:
    """Routes LLM requests with strategy-based fallback and retries.

    Fallback order:
    1. Try each model in the requested strategy's chain
    2. If all fail AND strategy != "default" -> try default chain
    3. If all fail -> AllModelsFailedError
    """

    def __init__(
        self,
        providers: dict[str, LLMProvider],
        registry: ModelRegistryConfig,
        max_attempts: int = 2,
    ) -> None:
        self._providers = providers
        self._registry = registry
        self._max_attempts = max_attempts

    def is_available(self, action: str, strategy: str = "default") -> bool:
        """Whether at least one model in the action's chain can be called."""
        try:
            chain = self._registry.get_chain(action, strategy)
        except KeyError:
            return False
        for model_cfg in chain:
            provider = self._providers.get(model_cfg.provider)
            if provider is not None and provider.enabled:
                return True
        return False

    async def complete(
        self,
        action: str,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float = 0.0,
        max_tokens: int = 16384,
        strategy: str = "default",
    ) -> LLMResponse:
        """Generate text completion with strategy-based fallback."""
        request = LLMRequest(
            prompt=prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            action=action,
            strategy=strategy,
        )
        errors: list[tuple[str, str]] = []
        strategies_tried: list[str] = []

        response = await self._try_chain(action, strategy, request, errors)
        strategies_tried.append(strategy)
        if response is not None:
            return response

        if strategy != "default":
            logger.info(
                "strategy_chain_exhausted_falling_back",
                action=action,
                failed_strategy=strategy,
                fallback_strategy="default",
            )
            response = await self._try_chain(action, "default", request, errors)
            strategies_tried.append("default")
            if response is not None:
                response.strategy = f"{strategy}->default"
                return response

        raise AllModelsFailedError(action, strategies_tried, errors)

    # -- internal: chain iteration --------------------------------------

    async def _try_chain(
        self,
        action: str,
        strategy: str,
        request: LLMRequest,
        errors: list[tuple[str, str]],
    ) -> LLMResponse | None:
        """Walk the model chain, calling each active provider."""
        try:
            chain = self._registry.get_chain(action, strategy)
        except KeyError as exc:
            errors.append((action, str(exc)))
            return None

        for model_cfg in chain:
            provider = self._get_active_provider(model_cfg, errors)
            if provider is None:
                continue

            request_for_model = request.model_copy(
                update={"model": model_cfg.model_id},
            )
            response = await self._try_with_retries(
                provider, request_for_model, model_cfg, errors
            )
            if response is not None:
                return response
        return None

    def _get_active_provider(
        self,
        model_cfg: ModelConfig,
        errors: list[tuple[str, str]],
    ) -> LLMProvider | None:
        """Get provider if it exists and is enabled."""
        provider = self._providers.get(model_cfg.provider)
        if provider is None:
            errors.append((model_cfg.model_id, "provider not configured"))
            return None
        if not provider.enabled:
            errors.append((model_cfg.model_id, "provider disabled"))
            return None
        return provider

    # -- internal: retry loop -------------------------------------------

    async def _try_with_retries(
        self,
        provider: LLMProvider,
        request: LLMRequest,
        model_cfg: ModelConfig,
        errors: list[tuple[str, str]],
    ) -> LLMResponse | None:
        """Retry the call up to max_attempts on transient errors."""
        for attempt in range(1, self._max_attempts + 1):
            try:
                response = await provider.complete(request)
            except Exception as exc:
                if not self._is_retryable(exc):
                    logger.warning(
                        "llm_call_permanent_error",
                        provider=model_cfg.provider,
                        model=model_cfg.model_id,
                        error=str(exc),
                    )
                    errors.append((model_cfg.model_id, str(exc)))
                    break

                logger.warning(
                    "llm_call_failed",
                    provider=model_cfg.provider,
                    model=model_cfg.model_id,
                    attempt=attempt,
                    max_attempts=self._max_attempts,
                    error=str(exc),
                )
                if attempt == self._max_attempts:
                    errors.append((model_cfg.model_id, str(exc)))
                continue

            self._enrich_response(response, model_cfg, request)
            logger.info(
                "llm_call_completed",
                provider=response.provider,
                model=response.model_id,
                action=response.action,
                tokens_in=response.tokens_in,
                tokens_out=response.tokens_out,
                latency_ms=response.latency_ms,
                cost_usd=response.cost_usd,
            )
            return response
        return None

    # -- helpers --------------------------------------------------------

    @staticmethod
    def _is_retryable(exc: Exception) -> bool:
        """Classify exception as transient (retry) or permanent (skip).

        Permanent errors (skip model immediately, no retries):
            HTTP 400 (bad request), 401 (auth), 403 (forbidden), 404

        Transient errors (retry up to max_attempts):
            HTTP 429 (rate limit), 500+, network errors, timeouts

        Uses duck typing (getattr) to avoid importing SDK-specific
        exception classes -- works with anthropic, openai, google-genai.
        """
        status_code = getattr(exc, "status_code", None)
        if isinstance(status_code, int):
            return status_code not in (400, 401, 403, 404)

        code = getattr(exc, "code", None)
        if isinstance(code, int):
            return code not in (400, 401, 403, 404)

        return True

    @staticmethod
    def _enrich_response(
        response: LLMResponse,
        model_cfg: ModelConfig,
        request: LLMRequest,
    ) -> None:
        """Stamp action, strategy and estimated cost on the response."""
        response.action = request.action
        response.strategy = request.strategy
        if response.tokens_in is not None and response.tokens_out is not None:
            response.cost_usd = model_cfg.estimate_cost(
                response.tokens_in,
                response.tokens_out,
            )
