"""Google Gemini provider via google-genai SDK."""

from google import genai
from google.genai import types

from ocw_pipeline.llm.providers.base import LLMProvider
from ocw_pipeline.llm.schemas import LLMRequest, LLMResponse


class GeminiProvider(LLMProvider):
    """Gemini provider using google-genai SDK.

    Long-context models make it a good fit for ordering prompts that
    carry the full course-page digest.
    """

    provider_name = "gemini"

    def __init__(
        self,
        api_key: str,
        default_model: str,
        timeout: float = 120.0,
    ) -> None:
        super().__init__()
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )
        self._default_model = default_model

    async def complete(self, request: LLMRequest) -> LLMResponse:
        """Generate text completion via Gemini."""
        model = request.model or self._default_model
        config = types.GenerateContentConfig(
            temperature=request.temperature,
            max_output_tokens=request.max_tokens,
            system_instruction=request.system_prompt,
        )

        with self._measure_latency() as timer:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=request.prompt,
                config=config,
            )

        usage = response.usage_metadata
        return LLMResponse(
            content=response.text or "",
            provider=self.provider_name,
            model_id=model,
            tokens_in=usage.prompt_token_count if usage else None,
            tokens_out=usage.candidates_token_count if usage else None,
            latency_ms=timer.elapsed_ms,
        )
