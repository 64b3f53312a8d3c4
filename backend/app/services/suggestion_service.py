import json
import logging
import re
from typing import List, Optional

from google.genai import types

from app.core.config import GEMINI_MODEL, RESPONSE_LANGUAGE
from app.core.exceptions import UpstreamUnavailable
from app.services.request_composer import ReasoningRequest

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 10

SUGGESTIONS_PROMPT = """You are an assistant connected to real-time world news.
Your task: find 12 rumours, viral claims or news questions from the last 24-48 hours that deserve fact-checking.

Strict rules:
1. Use Google Search to find trending topics (politics, tech, unusual, society, health).
2. Phrase each topic as a short, punchy QUESTION (max 15 words), written in {language}.
3. Answer ONLY with a raw JSON array of strings, no markdown, no introduction.

Expected format:
["Did the government really cancel this benefit?", "Is this bear video a deepfake?", ...]"""

FALLBACK_SUGGESTIONS = [
    "Will electricity prices really rise on the 1st of next month?",
    "Does drinking lemon water really help you lose weight?",
    "Is this viral cat video generated by AI?",
    "Has the latest pension reform been cancelled?",
    "Has the ban on petrol cars been pushed back to 2040?",
    "Is there a new 500 euro grant for students?",
    "Is coffee really bad for your heart?",
    "How do you spot a fake health insurance text message?",
    "Did ChatGPT really pass the bar exam?",
    "Did the Olympic Games really cost double their budget?",
]

CODE_FENCE = re.compile(r"```(?:json)?")


def parse_suggestions(text: str) -> Optional[List[str]]:
    """
    Read suggestions from a model reply.

    Tries a JSON array first, then falls back to one question per line.

    Args:
        text (str): Raw reply

    Returns:
        list: Up to MAX_SUGGESTIONS strings, or None if nothing usable was found
    """
    text = CODE_FENCE.sub("", text or "").strip()
    if not text:
        return None

    try:
        parsed = json.loads(text)
        if isinstance(parsed, list) and parsed:
            return [str(item) for item in parsed[:MAX_SUGGESTIONS]]
    except ValueError:
        logger.warning("Suggestions reply is not valid JSON, splitting lines instead")

    lines = []
    for line in text.splitlines():
        line = line.strip().rstrip(",").strip().strip("\"'")
        if len(line) > 10 and ("?" in line or len(line) > 20):
            lines.append(line)
    return lines[:MAX_SUGGESTIONS] or None


class SuggestionService:
    """News claims worth checking, researched live by Gemini."""

    def __init__(self, reasoning, model: str = GEMINI_MODEL, language: str = RESPONSE_LANGUAGE):
        self.reasoning = reasoning
        self.model = model
        self.language = language

    def build_request(self) -> ReasoningRequest:
        prompt = SUGGESTIONS_PROMPT.format(language=self.language)
        return ReasoningRequest(
            model=self.model,
            contents=[types.Content(role="user", parts=[types.Part.from_text(text=prompt)])],
            config=types.GenerateContentConfig(
                tools=[types.Tool(google_search=types.GoogleSearch())],
                temperature=0.6,
                max_output_tokens=2000,
            ),
        )

    def get_news_suggestions(self) -> List[str]:
        """
        Fetch suggestions, falling back to a fixed list on any failure.

        Returns:
            list: Up to MAX_SUGGESTIONS questions
        """
        try:
            reply = self.reasoning.generate(self.build_request())
        except UpstreamUnavailable as e:
            logger.warning("Suggestions unavailable, using fallback list: %s", e.message)
            return list(FALLBACK_SUGGESTIONS)

        suggestions = parse_suggestions(reply.text)
        if not suggestions:
            logger.warning("No usable suggestions in reply, using fallback list")
            return list(FALLBACK_SUGGESTIONS)
        return suggestions
