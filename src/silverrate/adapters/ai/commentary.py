"""
AI Commentary Service - One-line Market Commentary

Sends the formatted price card to an OpenAI-compatible chat completions API
and returns a short, plain-English comment for the daily channel post.
Disabled (returns None) when AI_API_KEY is not configured. Failures never
propagate: commentary is optional decoration on top of real prices.

Files that USE this module:
- silverrate.adapters.telegram.jobs (daily morning post)
- silverrate.application.health (configured or not)

Files that this module USES:
- silverrate.config (settings for API key, base URL and model)
"""
import asyncio
import logging
from typing import Optional

from openai import OpenAI

from silverrate.config import settings

log = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a precious-metals market analyst writing for Indian retail buyers. "
    "Reply with one sentence, no more than 30 words, no emojis, no price predictions."
)


class CommentaryService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
    ):
        """
        Initialize commentary service.

        Args:
            api_key: Optional API key (defaults to settings.ai_api_key)
            base_url: API base URL (defaults to settings.ai_base_url)
            model: Chat model name (defaults to settings.ai_model)
        """
        self.api_key = api_key or settings.ai_api_key
        self.base_url = base_url or settings.ai_base_url
        self.model = model or settings.ai_model

        if not self.api_key:
            log.info("AI_API_KEY not configured - commentary disabled")
            self.client = None
        else:
            self.client = OpenAI(api_key=self.api_key, base_url=self.base_url)
            log.info("Commentary service initialized with base_url=%s model=%s", self.base_url, self.model)

    async def generate(self, price_message: str, timeout: float = 30.0) -> Optional[str]:
        """
        Generate a one-line commentary for a price card.

        Returns:
            The commentary text, or None if disabled, timed out or failed
        """
        if not self.client:
            return None

        prompt = f"Write a one-line comment on today's silver market based on this data:\n\n{price_message}"
        try:
            completion = await asyncio.wait_for(
                asyncio.to_thread(
                    self.client.chat.completions.create,
                    model=self.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            log.warning("Commentary request timed out after %ss", timeout)
            return None
        except Exception as e:
            log.error("Failed to generate commentary: %s", e, exc_info=True)
            return None

        text = completion.choices[0].message.content if completion.choices else None
        if not text:
            log.warning("Commentary API returned empty content")
            return None
        return text.strip()
