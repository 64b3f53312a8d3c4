import logging
from dataclasses import dataclass, field
from typing import List

from google import genai
from google.genai import errors, types

from app.core.config import GEMINI_API_KEY, GEMINI_TIMEOUT_SECONDS
from app.core.exceptions import UpstreamUnavailable
from app.services.request_composer import ReasoningRequest
from app.services.source_attributor import Citation

logger = logging.getLogger(__name__)


@dataclass
class ReasoningReply:
    text: str
    citations: List[Citation] = field(default_factory=list)


class GeminiService:
    """
    Single blocking round trip to Gemini. No streaming, no retries:
    any failure surfaces as UpstreamUnavailable.
    """

    def __init__(self, client=None, timeout_seconds: int = GEMINI_TIMEOUT_SECONDS):
        if client is None:
            if not GEMINI_API_KEY:
                raise ValueError("GEMINI_API_KEY environment variable is not set")
            client = genai.Client(
                api_key=GEMINI_API_KEY,
                http_options=types.HttpOptions(timeout=timeout_seconds * 1000),
            )
        self.client = client

    def generate(self, request: ReasoningRequest) -> ReasoningReply:
        """
        Send the request and collect the reply text plus grounding citations.

        Args:
            request (ReasoningRequest): Composed payload

        Returns:
            ReasoningReply: Raw text and citation chunks

        Raises:
            UpstreamUnavailable: On API or transport errors
        """
        try:
            response = self.client.models.generate_content(
                model=request.model,
                contents=request.contents,
                config=request.config,
            )
        except errors.APIError as e:
            logger.error("Gemini API error %s: %s", e.code, e.message)
            raise UpstreamUnavailable(f"API error {e.code}") from e
        except Exception as e:
            logger.error("Gemini request failed: %s", e)
            raise UpstreamUnavailable(type(e).__name__) from e

        text = response.text or ""
        citations = self.extract_citations(response)
        logger.info("Gemini replied with %d chars and %d citations", len(text), len(citations))
        return ReasoningReply(text=text, citations=citations)

    @staticmethod
    def extract_citations(response) -> List[Citation]:
        """Pull {url, title} pairs out of the first candidate's grounding metadata."""
        candidates = response.candidates or []
        if not candidates or candidates[0].grounding_metadata is None:
            return []

        citations = []
        for chunk in candidates[0].grounding_metadata.grounding_chunks or []:
            web = chunk.web
            if web is not None and web.uri:
                citations.append(Citation(url=web.uri, title=web.title or ""))
        return citations
