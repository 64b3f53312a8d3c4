import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import List, Optional

from app.models.verdict import Verdict

logger = logging.getLogger(__name__)

ANALYSIS_UNAVAILABLE = "Analysis unavailable"
DETAILS_UNAVAILABLE = "Details unavailable."
SUMMARY_FALLBACK_LENGTH = 150

# Scanned in order against the folded first line; first hit wins
VERDICT_KEYWORDS = [
    (Verdict.TRUE, re.compile(r"TRUE|VRAI")),
    (Verdict.FALSE, re.compile(r"FALSE|FAUX")),
    (Verdict.MISLEADING, re.compile(r"MISLEADING|TROMPEU")),
    (Verdict.NUANCED, re.compile(r"NUANCE")),
    (Verdict.AI_GENERATED, re.compile(r"GENERATED|GENERE|\bAI\b|\bIA\b")),
    (Verdict.MANIPULATED, re.compile(r"MANIPULATED|MANIPULE")),
    (Verdict.UNVERIFIED, re.compile(r"UNVERIFIED|NON VERIFIE")),
]

CONFIDENCE_MARKER = re.compile(r"CONFI(?:DENCE|ANCE)")
INTEGER = re.compile(r"\d+")
TRAILER_MARKER = re.compile(r"SOURCES?[_ ]DETAILS|SECTION FINALE|FINAL SECTION", re.IGNORECASE)

BOILERPLATE = [
    re.compile(r":\s*N/?A\b"),
    re.compile(r"^[-*•\s]*N/?A\.?$"),
    re.compile(r"^[-*•\s]*(?:NONE|AUCUNE?|NEANT|RIEN)\.?$"),
    re.compile(r"NOT APPLICABLE|SANS OBJET"),
    re.compile(r"AUCUN INDICE|PAS D'INDICES?|NO INDICATIONS?\b"),
    re.compile(r"AFFIRMATION TEXTUELLE|TEXTUAL CLAIM ONLY"),
    re.compile(r"RAPPORT D'ANALYSE DETAILLE|DETAILED ANALYSIS REPORT"),
]


@dataclass
class ParsedReply:
    """
    Decoded reply. confidence_score is None when the service gave no
    usable score, which is distinct from an explicit 0.
    """
    verdict: Verdict = Verdict.UNVERIFIED
    confidence_score: Optional[int] = None
    summary: str = ANALYSIS_UNAVAILABLE
    analysis_body: str = DETAILS_UNAVAILABLE
    trailer_lines: List[str] = field(default_factory=list)


def fold(text: str) -> str:
    """Upper-case and strip accents so keyword matching is language tolerant."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).upper()


def clean_line(line: str) -> str:
    """Remove markdown emphasis and heading markers."""
    return line.replace("**", "").lstrip("#").strip()


def detect_verdict(line: str) -> Verdict:
    folded = fold(clean_line(line))
    for verdict, pattern in VERDICT_KEYWORDS:
        if pattern.search(folded):
            return verdict
    return Verdict.UNVERIFIED


def is_boilerplate(line: str) -> bool:
    folded = fold(line)
    return any(pattern.search(folded) for pattern in BOILERPLATE)


class ResponseParser:
    """
    Tolerant decoder for the reasoning service's line protocol:

        VERDICT
        CONFIDENCE: 0-100      (optional)
        one-sentence summary
        analysis ...
        SOURCES_DETAILS:       (optional trailer)
        - <url> : <title> | <summary>

    Never raises: anything malformed degrades to UNVERIFIED with generic text.
    """

    def parse(self, text: Optional[str]) -> ParsedReply:
        try:
            return self._parse(text or "")
        except Exception:
            logger.exception("Unexpected reply shape, falling back to defaults")
            return ParsedReply()

    def _parse(self, raw: str) -> ParsedReply:
        lines = [line.strip() for line in raw.splitlines() if line.strip()]
        if not lines:
            return ParsedReply(analysis_body=raw.strip() or DETAILS_UNAVAILABLE)

        verdict = detect_verdict(lines[0])
        index = 1

        confidence = None
        if index < len(lines) and CONFIDENCE_MARKER.search(fold(lines[index])):
            match = INTEGER.search(lines[index])
            if match:
                confidence = max(0, min(100, int(match.group())))
            index += 1

        summary = ""
        if index < len(lines) and not TRAILER_MARKER.search(lines[index]):
            summary = clean_line(lines[index])
            index += 1

        body_lines, trailer_lines = self._split_trailer(lines[index:])

        analysis = []
        for line in body_lines:
            cleaned = clean_line(line)
            if cleaned and not is_boilerplate(cleaned):
                analysis.append(cleaned)

        analysis_body = "\n\n".join(analysis) or DETAILS_UNAVAILABLE
        if not summary:
            summary = analysis_body[:SUMMARY_FALLBACK_LENGTH]
            if len(analysis_body) > SUMMARY_FALLBACK_LENGTH:
                summary += "..."

        return ParsedReply(
            verdict=verdict,
            confidence_score=confidence,
            summary=summary,
            analysis_body=analysis_body,
            trailer_lines=trailer_lines,
        )

    def _split_trailer(self, lines: List[str]):
        """Cut the body at the first trailer marker; return (body, trailer)."""
        for i, line in enumerate(lines):
            match = TRAILER_MARKER.search(line)
            if not match:
                continue
            trailer = []
            remainder = line[match.end():].strip().lstrip(":*").strip()
            if remainder:
                trailer.append(remainder)
            trailer.extend(lines[i + 1:])
            return lines[:i], trailer
        return lines, []
