"""Generation client for the OpenAI-compatible drafting endpoint."""

from collections.abc import AsyncIterator

from openai import APIError, AsyncOpenAI

from specter.core.config import get_settings
from specter.core.exceptions import GenerationError
from specter.core.logging import get_logger

logger = get_logger(__name__)


class GenerationClient:
    """Thin wrapper around ``AsyncOpenAI`` chat completions.

    Exposes generation as an async sequence of text fragments in both
    streaming and non-streaming mode, so callers have a single code path.
    """

    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        stream: bool | None = None,
        temperature: float | None = None,
    ):
        settings = get_settings()
        self.client = client or AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY or "not-set",
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.GENERATION_TIMEOUT,
        )
        self.model = model or settings.GENERATION_MODEL
        self.stream = settings.GENERATION_STREAM if stream is None else stream
        self.temperature = (
            settings.GENERATION_TEMPERATURE if temperature is None else temperature
        )

    async def stream_text(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        """
        Generate a completion as incremental text fragments.

        Args:
            messages: Chat messages ({role, content})

        Yields:
            Text deltas in emission order. Non-streaming mode yields the
            whole message content once.

        Raises:
            GenerationError: If the endpoint returns an error
        """
        logger.info(f"Generation request: model={self.model}, stream={self.stream}")
        try:
            if not self.stream:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                    stream=False,
                )
                content = response.choices[0].message.content if response.choices else None
                if content:
                    yield content
                return

            stream = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except APIError as e:
            logger.warning(f"Generation endpoint error: {e}")
            raise GenerationError(f"Generation endpoint error: {e}") from e
