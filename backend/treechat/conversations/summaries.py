"""Short per-node summaries, used as conversation titles.

Summaries are optional. Without an API key no generator is built and nodes
are stored with summary=None.
"""

import logging
import time
from functools import lru_cache

from openai import AsyncOpenAI, OpenAIError

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_MODEL = "gpt-4.1-mini"
DEFAULT_SUMMARY_MAX_TOKENS = 128
SUMMARY_PROMPT = (
    "Give a title for the message passed to you! Only a title is needed! "
    'DO NOT INCLUDE "Title:"! You\'re not supposed to answer any of the questions.'
)


@lru_cache(maxsize=4)
def get_summary_client(api_key: str) -> AsyncOpenAI:
    """One client per API key. At most four are kept; least recently used goes first."""
    return AsyncOpenAI(api_key=api_key)


class SummaryGenerator:
    """Asks a chat model for a title-length summary of one exchange."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = DEFAULT_SUMMARY_MODEL,
        max_tokens: int = DEFAULT_SUMMARY_MAX_TOKENS,
        prompt: str = SUMMARY_PROMPT,
    ) -> None:
        self._client = client
        self.model = model
        self.max_tokens = max_tokens
        self.prompt = prompt

    async def generate(self, user_message: str, assistant_message: str) -> str | None:
        """Return the summary text, or None if the model returned nothing.

        API errors are logged and reported as None; a missing summary only
        means the conversation keeps its fallback title.
        """
        start = time.monotonic()
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.prompt},
                    {"role": "user", "content": user_message},
                    {"role": "assistant", "content": assistant_message},
                ],
                max_completion_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            logger.warning("Summary generation failed (%s): %s", self.model, e)
            return None

        content = response.choices[0].message.content if response.choices else None
        summary = (content or "").strip()
        tokens_used = response.usage.total_tokens if response.usage else 0
        logger.debug(
            "Summary generated in %dms, %d tokens",
            int((time.monotonic() - start) * 1000), tokens_used,
        )
        return summary or None
