import pytest

from app.core.exceptions import InvalidInput, UpstreamUnavailable
from app.models.verdict import Verdict
from app.services.image_service import ImageInput
from app.services.source_attributor import Citation
from app.services.verification_pipeline import IMAGE_ONLY_CLAIM, VerificationPipeline
from conftest import FakeReasoningService


def test_end_to_end_false_claim(fake_reasoning):
    record = VerificationPipeline(fake_reasoning).verify("The moon is made of cheese")

    assert record.claim == "The moon is made of cheese"
    assert record.verdict == Verdict.FALSE
    assert record.confidence_score == 92
    assert record.summary == "This claim is fabricated."
    assert record.analysis_body == "Detailed refutation text."
    assert len(record.sources) == 1
    source = record.sources[0]
    assert source.domain == "news.example"
    assert source.title == "News Example"
    assert source.snippet == "Confirms fabrication"
    assert record.visual_analysis is None
    assert record.processing_time_ms >= 0
    assert len(fake_reasoning.requests) == 1


def test_missing_confidence_defaults_to_85():
    reasoning = FakeReasoningService(text="TRUE\nIt checks out.\n\nBody.", citations=[])
    record = VerificationPipeline(reasoning).verify("claim")

    assert record.confidence_score == 85
    assert record.sources == []


def test_explicit_zero_confidence_is_kept():
    reasoning = FakeReasoningService(text="FALSE\nCONFIDENCE: 0\nNo idea.", citations=[])
    assert VerificationPipeline(reasoning).verify("claim").confidence_score == 0


def test_unparseable_reply_degrades_to_unverified():
    reasoning = FakeReasoningService(text="", citations=[])
    record = VerificationPipeline(reasoning).verify("claim")

    assert record.verdict == Verdict.UNVERIFIED
    assert record.confidence_score == 85
    assert record.summary
    assert record.analysis_body


@pytest.mark.parametrize("reply, ai_generated, manipulated", [
    ("AI_GENERATED\nCONFIDENCE: 77\nSynthetic image.\nSmooth skin artifacts.", True, False),
    ("MANIPULATED\nCONFIDENCE: 64\nEdited photo.\nCloned region.", True, True),
])
def test_visual_analysis_for_synthetic_media(reply, ai_generated, manipulated):
    reasoning = FakeReasoningService(text=reply, citations=[])
    image = ImageInput(data=b"img", mime_type="image/jpeg")
    record = VerificationPipeline(reasoning).verify("", image=image, image_url="https://cdn.example/p.jpg")

    assert record.claim == IMAGE_ONLY_CLAIM
    assert record.image_url == "https://cdn.example/p.jpg"
    assert record.visual_analysis is not None
    assert record.visual_analysis.is_ai_generated is ai_generated
    assert record.visual_analysis.is_manipulated is manipulated
    assert record.visual_analysis.confidence == record.confidence_score
    assert record.visual_analysis.details == record.analysis_body


def test_upstream_failure_propagates(failing_reasoning):
    with pytest.raises(UpstreamUnavailable):
        VerificationPipeline(failing_reasoning).verify("claim")


def test_invalid_input_rejected_before_call(fake_reasoning):
    with pytest.raises(InvalidInput):
        VerificationPipeline(fake_reasoning).verify("  ")
    assert fake_reasoning.requests == []


def test_sources_capped_and_unique():
    citations = [Citation(url=f"https://s{i % 12}.example/a") for i in range(30)]
    reasoning = FakeReasoningService(text="TRUE\nOk.", citations=citations)
    record = VerificationPipeline(reasoning).verify("claim")

    assert len(record.sources) == 10
    assert len({s.url for s in record.sources}) == 10


def test_record_serializes_camel_case(fake_reasoning):
    payload = VerificationPipeline(fake_reasoning).verify("claim").model_dump(mode="json", by_alias=True)

    assert payload["confidenceScore"] == 92
    assert payload["analysisBody"] == "Detailed refutation text."
    assert "processingTimeMs" in payload
    assert payload["sources"][0]["trustScore"] is None
