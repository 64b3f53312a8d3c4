import logging
import time
from typing import Optional

from app.core.config import DEFAULT_CONFIDENCE_SCORE
from app.core.exceptions import InvalidInput
from app.models.verdict import VerdictRecord, VisualAnalysis, Verdict
from app.services.image_service import ImageInput
from app.services.request_composer import RequestComposer
from app.services.response_parser import ResponseParser
from app.services.source_attributor import SourceAttributor

logger = logging.getLogger(__name__)

IMAGE_ONLY_CLAIM = "Image analysis"


class VerificationPipeline:
    """
    Composer -> reasoning service -> parser -> attributor.

    One blocking round trip per verification. Upstream failures propagate
    as UpstreamUnavailable; the parser never fails.
    """

    def __init__(
        self,
        reasoning,
        composer: Optional[RequestComposer] = None,
        parser: Optional[ResponseParser] = None,
        attributor: Optional[SourceAttributor] = None,
        default_confidence: int = DEFAULT_CONFIDENCE_SCORE,
    ):
        self.reasoning = reasoning
        self.composer = composer or RequestComposer()
        self.parser = parser or ResponseParser()
        self.attributor = attributor or SourceAttributor()
        self.default_confidence = default_confidence

    def verify(
        self,
        claim: Optional[str] = None,
        image: Optional[ImageInput] = None,
        image_context: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> VerdictRecord:
        """
        Verify a claim and/or image.

        Args:
            claim (str): Claim text
            image (ImageInput): Optional image
            image_context (str): Optional embedded metadata for the image
            image_url (str): Optional public URL of the image, echoed in the record

        Returns:
            VerdictRecord: The assembled verdict

        Raises:
            InvalidInput: Neither claim nor image supplied
            UpstreamUnavailable: Reasoning service failed
        """
        claim = (claim or "").strip()
        has_image = image is not None and bool(image.data)
        if not claim and not has_image:
            raise InvalidInput("claim", "a claim or an image is required")

        request = self.composer.compose(claim, image=image, image_context=image_context)

        started = time.monotonic()
        reply = self.reasoning.generate(request)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        parsed = self.parser.parse(reply.text)
        sources = self.attributor.attribute(reply.citations, parsed.trailer_lines)

        confidence = parsed.confidence_score
        if confidence is None:
            confidence = self.default_confidence

        visual_analysis = None
        if parsed.verdict.is_synthetic_media:
            visual_analysis = VisualAnalysis(
                is_ai_generated=True,
                is_manipulated=parsed.verdict == Verdict.MANIPULATED,
                confidence=confidence,
                details=parsed.analysis_body,
            )

        logger.info(
            "Verified claim in %d ms: %s (%d%%, %d sources)",
            elapsed_ms, parsed.verdict.value, confidence, len(sources)
        )

        return VerdictRecord(
            claim=claim or IMAGE_ONLY_CLAIM,
            verdict=parsed.verdict,
            confidence_score=confidence,
            summary=parsed.summary,
            analysis_body=parsed.analysis_body,
            sources=sources,
            visual_analysis=visual_analysis,
            image_url=image_url,
            processing_time_ms=max(elapsed_ms, 0),
        )
