from app.core.exceptions import UpstreamUnavailable
from app.services.suggestion_service import (
    FALLBACK_SUGGESTIONS,
    MAX_SUGGESTIONS,
    SuggestionService,
    parse_suggestions,
)
from conftest import FakeReasoningService


def test_parse_json_array():
    assert parse_suggestions('["Is A true?", "Is B true?"]') == ["Is A true?", "Is B true?"]


def test_parse_fenced_json_capped():
    items = [f"Question number {i}?" for i in range(15)]
    text = "```json\n" + str(items).replace("'", '"') + "\n```"
    assert parse_suggestions(text) == items[:MAX_SUGGESTIONS]


def test_parse_line_fallback():
    text = 'Here you go:\n"Did the mayor really ban bicycles?",\nshort\n"Is the new vaccine mandatory for kids?"'
    assert parse_suggestions(text) == [
        "Did the mayor really ban bicycles?",
        "Is the new vaccine mandatory for kids?",
    ]


def test_parse_nothing_usable():
    assert parse_suggestions("") is None
    assert parse_suggestions("[]\nok") is None


def test_service_uses_search_tool():
    reasoning = FakeReasoningService(text='["Is A true?"]', citations=[])
    assert SuggestionService(reasoning, model="gemini-test").get_news_suggestions() == ["Is A true?"]

    request = reasoning.requests[0]
    assert request.model == "gemini-test"
    assert request.config.temperature == 0.6
    assert request.config.tools[0].google_search is not None


def test_service_falls_back():
    failing = FakeReasoningService(error=UpstreamUnavailable("down"))
    assert SuggestionService(failing).get_news_suggestions() == FALLBACK_SUGGESTIONS

    empty = FakeReasoningService(text="", citations=[])
    assert SuggestionService(empty).get_news_suggestions() == FALLBACK_SUGGESTIONS
