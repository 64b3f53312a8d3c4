import pytest

from app.models.verdict import Verdict
from app.services.response_parser import (
    ANALYSIS_UNAVAILABLE,
    DETAILS_UNAVAILABLE,
    ResponseParser,
    detect_verdict,
)
from conftest import FALSE_CLAIM_REPLY


@pytest.fixture
def parser():
    return ResponseParser()


class TestVerdictDetection:
    @pytest.mark.parametrize("line, expected", [
        ("TRUE", Verdict.TRUE),
        ("**VRAI**", Verdict.TRUE),
        ("## FALSE", Verdict.FALSE),
        ("Verdict : FAUX", Verdict.FALSE),
        ("MISLEADING", Verdict.MISLEADING),
        ("TROMPEUR", Verdict.MISLEADING),
        ("NUANCED", Verdict.NUANCED),
        ("nuancé", Verdict.NUANCED),
        ("AI_GENERATED", Verdict.AI_GENERATED),
        ("Image générée par IA", Verdict.AI_GENERATED),
        ("MANIPULATED", Verdict.MANIPULATED),
        ("manipulée", Verdict.MANIPULATED),
        ("UNVERIFIED", Verdict.UNVERIFIED),
        ("Non vérifié", Verdict.UNVERIFIED),
    ])
    def test_keywords(self, line, expected):
        assert detect_verdict(line) == expected

    def test_priority_true_wins_over_false(self):
        assert detect_verdict("TRUE OR FALSE") == Verdict.TRUE

    def test_no_keyword_is_unverified(self, parser):
        result = parser.parse("Something odd happened\nA summary\nBody")
        assert result.verdict == Verdict.UNVERIFIED

    def test_ai_inside_a_word_is_not_a_keyword(self):
        assert detect_verdict("SAID SOMETHING") == Verdict.UNVERIFIED


class TestConfidence:
    def test_reads_score(self, parser):
        assert parser.parse(FALSE_CLAIM_REPLY).confidence_score == 92

    def test_missing_line_gives_no_score(self, parser):
        result = parser.parse("TRUE\nThe claim holds.\n\nBody text.")
        assert result.confidence_score is None
        assert result.summary == "The claim holds."

    def test_french_marker(self, parser):
        assert parser.parse("VRAI\nConfiance : 70 %\nRésumé.").confidence_score == 70

    @pytest.mark.parametrize("line, expected", [
        ("CONFIDENCE: 250", 100),
        ("CONFIDENCE: 0", 0),
        ("CONFIDENCE: -5", 5),
    ])
    def test_clamped(self, parser, line, expected):
        score = parser.parse(f"TRUE\n{line}\nSummary.").confidence_score
        assert score == expected
        assert 0 <= score <= 100

    def test_marker_without_number_is_consumed(self, parser):
        result = parser.parse("TRUE\nCONFIDENCE: high\nSummary line.\nBody.")
        assert result.confidence_score is None
        assert result.summary == "Summary line."


class TestBodyAndTrailer:
    def test_end_to_end_reply(self, parser):
        result = parser.parse(FALSE_CLAIM_REPLY)
        assert result.verdict == Verdict.FALSE
        assert result.summary == "This claim is fabricated."
        assert result.analysis_body == "Detailed refutation text."
        assert result.trailer_lines == ["- https://news.example/x : News Example | Confirms fabrication"]

    def test_lines_joined_with_blank_lines(self, parser):
        result = parser.parse("TRUE\nCONFIDENCE: 80\nSummary.\n\nFirst point.\nSecond point.")
        assert result.analysis_body == "First point.\n\nSecond point."

    def test_alternative_trailer_marker(self, parser):
        result = parser.parse("FALSE\nSummary.\nBody.\nSECTION FINALE : https://a.example/1 : A | B")
        assert result.analysis_body == "Body."
        assert result.trailer_lines == ["https://a.example/1 : A | B"]

    def test_boilerplate_dropped(self, parser):
        reply = "TRUE\nCONFIDENCE: 90\nSummary.\n**Rapport d'analyse détaillé**\nN/A\nMetadata: N/A\nNot applicable\nReal content."
        assert parser.parse(reply).analysis_body == "Real content."

    def test_markdown_stripped(self, parser):
        result = parser.parse("TRUE\n**Bold summary**\n### Heading\n**Point**")
        assert result.summary == "Bold summary"
        assert result.analysis_body == "Heading\n\nPoint"

    def test_empty_body_gets_placeholder(self, parser):
        result = parser.parse("TRUE\nCONFIDENCE: 90\nOnly a summary.")
        assert result.analysis_body == DETAILS_UNAVAILABLE

    def test_missing_summary_falls_back_to_body_prefix(self, parser):
        body = "x" * 200
        result = parser.parse(f"TRUE\nCONFIDENCE: 90\n**\n{body}")
        assert result.summary == "x" * 150 + "..."
        assert result.analysis_body == body

    def test_trailer_right_after_verdict(self, parser):
        result = parser.parse("TRUE\nCONFIDENCE: 90\nSOURCES_DETAILS:\n- https://a.example : A")
        assert result.summary == DETAILS_UNAVAILABLE
        assert result.analysis_body == DETAILS_UNAVAILABLE
        assert result.trailer_lines == ["- https://a.example : A"]


class TestNeverRaises:
    @pytest.mark.parametrize("text", [None, "", "   \n\n  "])
    def test_empty_input(self, parser, text):
        result = parser.parse(text)
        assert result.verdict == Verdict.UNVERIFIED
        assert result.confidence_score is None
        assert result.summary == ANALYSIS_UNAVAILABLE
        assert result.analysis_body == DETAILS_UNAVAILABLE

    def test_garbage(self, parser):
        result = parser.parse("\x00\x01 ??? ###\n**\n#")
        assert result.verdict == Verdict.UNVERIFIED
        assert result.summary
        assert result.analysis_body
