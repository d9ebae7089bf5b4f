"""
Groq API Client: wrapper for bill extraction calls.

This client sends a bill (image or text) to Groq and returns the raw model
response. It does NOT parse, validate, or persist anything; callers validate
the response against ai.bill_schema before using it.

Models:
- Vision model for bill photos (image sent inline as a base64 data URL)
- Text model for bills available as text (PDF text layer, OCR output)
"""

import base64
import logging
import time
from typing import List, Optional
from groq import Groq, APIError, APITimeoutError, RateLimitError

from shopdesk.core.config import settings

# Configure logging (NEVER log API keys)
logger = logging.getLogger(__name__)


class GroqClient:
    """
    Minimal wrapper for the Groq chat completions API.

    - Temperature: 0 (same bill in = same JSON out)
    - Max tokens: 2048 (bills with many lines need room)
    - Retries: transient timeouts and rate limits, with exponential backoff

    Returns the raw response text, or None on any error so the caller can
    decide how to fail.
    """

    TEMPERATURE = 0
    MAX_TOKENS = 2048
    TIMEOUT_SECONDS = 30

    def __init__(
        self,
        api_key: Optional[str] = None,
        vision_model: Optional[str] = None,
        text_model: Optional[str] = None,
    ):
        api_key = api_key if api_key is not None else settings.GROQ_API_KEY
        self.vision_model = vision_model or settings.GROQ_VISION_MODEL
        self.text_model = text_model or settings.GROQ_TEXT_MODEL

        if not api_key:
            logger.warning(
                "GROQ_API_KEY not found in environment. "
                "LLM bill extraction is DISABLED; OCR fallback will be used."
            )
            self.client = None
        else:
            self.client = Groq(api_key=api_key, timeout=self.TIMEOUT_SECONDS)
            logger.info("Groq client initialized")

    def is_available(self) -> bool:
        """Check if Groq client is ready to use."""
        return self.client is not None

    def complete_image(self, prompt: str, image_bytes: bytes, mime_type: str) -> Optional[str]:
        """Ask the vision model about one image."""
        data_url = f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            }
        ]
        return self._complete(messages, self.vision_model)

    def complete_text(self, prompt: str) -> Optional[str]:
        return self._complete([{"role": "user", "content": prompt}], self.text_model)

    def _complete(self, messages: List[dict], model: str, max_retries: int = 2) -> Optional[str]:
        """
        Call Groq with retry logic.

        Returns:
            Raw response string from the model, or None if the call failed
        """
        if not self.is_available():
            logger.debug("Groq client not available - skipping LLM call")
            return None

        for attempt in range(max_retries + 1):
            try:
                response = self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    temperature=self.TEMPERATURE,
                    max_tokens=self.MAX_TOKENS,
                    stream=False,  # No streaming - we need complete JSON
                )

                if response.choices:
                    content = response.choices[0].message.content or ""
                    logger.debug(f"LLM response received: {len(content)} chars (attempt {attempt+1})")
                    return content
                logger.warning("LLM returned empty response")
                return None

            except APITimeoutError:
                if attempt < max_retries:
                    wait_time = 0.5 * (2 ** attempt)  # Exponential backoff: 0.5s, 1s
                    logger.warning(f"Groq timeout, retry {attempt+1}/{max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning(f"Groq API timeout after {max_retries} retries")
                    return None

            except RateLimitError:
                if attempt < max_retries:
                    wait_time = 1.0 * (2 ** attempt)  # Exponential backoff: 1s, 2s
                    logger.warning(f"Groq rate limit, retry {attempt+1}/{max_retries} after {wait_time}s")
                    time.sleep(wait_time)
                else:
                    logger.warning("Groq API rate limit exceeded after retries")
                    return None

            except APIError as e:
                logger.error(f"Groq API error (permanent): {e}")
                return None  # Don't retry permanent errors

        return None
