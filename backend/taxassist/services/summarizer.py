"""
Conversation Summary Service

Uses the OpenAI Chat Completions API to turn a tax-assistant call transcript
into a short summary: key points, tax questions asked, advice given.
"""
import logging

import httpx

from ..config import settings
from ..core.errors import UpstreamError, UpstreamTimeout

logger = logging.getLogger("uvicorn.error")

SUMMARY_FAILED = "Failed to generate summary. Please try again later."
EMPTY_TRANSCRIPT = "No transcript available to summarize"
NO_SUMMARY_GENERATED = "No summary generated"

SYSTEM_PROMPT = (
    "You are a helpful assistant that summarizes tax-related conversations. "
    "Create a concise summary highlighting the key points, tax-related questions, "
    "and any important advice given. Focus on actionable insights and tax implications."
)


class SummarizerService:
    """Summary Service"""

    def __init__(self):
        self.api_key = settings.openai_api_key
        self.model = settings.summary_model
        self.api_url = settings.summary_api_url
        self.timeout = settings.summary_timeout_seconds

    def is_available(self) -> bool:
        """Check if API key is configured"""
        return bool(self.api_key)

    async def summarize(self, transcript: str) -> str:
        """
        Summarize a transcript.

        Raises:
            UpstreamTimeout: the API did not answer within `timeout` seconds
            UpstreamError: not configured, HTTP error or malformed response
        """
        if not self.is_available():
            raise UpstreamError("OPENAI_API_KEY not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"Please summarize this tax-related conversation:\n\n{transcript}"},
            ],
            "temperature": 0.7,
            "max_tokens": 500,
        }

        logger.info("[summarizer] calling %s (%d chars)", self.model, len(transcript))
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.api_url, headers=headers, json=payload)
                resp.raise_for_status()
                result = resp.json()
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"summary request timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"summary request failed: {e!r}") from e

        try:
            content = result["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError(f"malformed summary response: {result!r}") from e

        return (content or "").strip() or NO_SUMMARY_GENERATED

    async def summarize_or_fallback(self, transcript: str) -> str:
        """
        Never raises: an empty transcript and any upstream failure both map to
        fixed placeholder summaries so the save path is never blocked.
        """
        transcript = (transcript or "").strip()
        if not transcript:
            return EMPTY_TRANSCRIPT
        try:
            return await self.summarize(transcript)
        except UpstreamError as e:
            logger.warning("[summarizer] falling back to placeholder: %s", e.detail)
            return SUMMARY_FAILED


# Global singleton
summarizer = SummarizerService()
