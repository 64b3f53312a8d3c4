import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse, parse_qs

from app.core.config import MAX_SOURCES
from app.core.source_credibility import get_trust_score
from app.models.verdict import Source

DEFAULT_SNIPPET = "Source verified via web search"

# Hosts that only bounce to the real page
REDIRECT_HOST_PREFIXES = ("vertexaisearch.",)
REDIRECT_HOSTS = {"l.facebook.com", "lm.facebook.com", "out.reddit.com"}
REDIRECT_HOST_PATHS = {"google.com": "/url", "www.google.com": "/url"}
TARGET_PARAMS = ("url", "u", "q", "target", "dest")

SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*://")
URL_IN_LINE = re.compile(r"https?://[^\s<>|]+", re.IGNORECASE)
HOSTNAME = re.compile(r"^(?:www\.)?[a-z0-9-]+(?:\.[a-z0-9-]+)+$")


@dataclass
class Citation:
    """A {url, title} pair the reasoning service reports having consulted."""
    url: str
    title: str = ""


@dataclass
class TrailerEntry:
    title: Optional[str]
    summary: Optional[str]


def strip_www(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def normalize_url(url: str) -> str:
    """
    Matching key for a URL: lower-cased, without scheme, leading "www.",
    query string, fragment or trailing slash.
    """
    key = SCHEME.sub("", (url or "").strip().lower())
    key = key.split("#", 1)[0].split("?", 1)[0]
    return strip_www(key).rstrip("/")


def is_url_fragment(text: str) -> bool:
    text = text.strip().lower()
    return text.startswith(("http://", "https://", "www.")) or ("/" in text and " " not in text)


class SourceAttributor:
    """
    Reconciles grounding citations with the per-source summaries the reply
    lists in its trailer section, producing clean, deduplicated sources.
    """

    def __init__(self, max_sources: int = MAX_SOURCES):
        self.max_sources = max_sources

    def attribute(self, citations: List[Citation], trailer_lines: Optional[List[str]] = None) -> List[Source]:
        """
        Build the ordered source list.

        Args:
            citations (list): Citation chunks from the reasoning service
            trailer_lines (list): Lines following the trailer marker in the reply

        Returns:
            list: At most max_sources Source entries, unique by normalized URL
        """
        details = self.parse_trailer(trailer_lines or [])
        sources = []
        seen = set()

        for citation in citations or []:
            if not citation.url:
                continue
            url, domain = self.canonicalize(citation)
            if not domain:
                continue

            key = normalize_url(url)
            if key in seen:
                continue
            seen.add(key)

            entry = self._lookup(key, details)
            raw_title = (citation.title or "").strip()
            if entry and entry.title:
                title = entry.title
            elif raw_title and not is_url_fragment(raw_title):
                title = raw_title
            else:
                title = domain

            sources.append(Source(
                title=title,
                url=url,
                domain=domain,
                snippet=(entry.summary if entry and entry.summary else DEFAULT_SNIPPET),
                trust_score=get_trust_score(domain),
            ))
            if len(sources) >= self.max_sources:
                break

        return sources

    def canonicalize(self, citation: Citation) -> Tuple[str, str]:
        """Unwrap redirect hosts; return (url, domain without "www.")."""
        url = citation.url.strip()
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()

        if self._is_redirect(host, parsed.path):
            target = self._extract_target(parsed.query)
            if target:
                url = target
                host = (urlparse(target).hostname or "").lower()
            else:
                # Grounding redirects carry no target, but their title is the publisher's host
                title = (citation.title or "").strip().lower()
                if HOSTNAME.match(title):
                    host = title

        return url, strip_www(host)

    def parse_trailer(self, lines: List[str]) -> Dict[str, TrailerEntry]:
        """
        Read "- <url> : <title> | <summary>" lines into a map keyed by
        normalized URL. The "title |" part is optional.
        """
        details = {}
        for line in lines:
            match = URL_IN_LINE.search(line)
            if not match:
                continue
            url = match.group().rstrip(".,;:)>")
            rest = line[match.end():].strip().lstrip(":-–—").strip()

            title, summary = None, rest or None
            if "|" in rest:
                title_part, summary_part = rest.split("|", 1)
                title = title_part.strip() or None
                summary = summary_part.strip() or None

            key = normalize_url(url)
            if key and key not in details:
                details[key] = TrailerEntry(title=title, summary=summary)
        return details

    def _lookup(self, key: str, details: Dict[str, TrailerEntry]) -> Optional[TrailerEntry]:
        if key in details:
            return details[key]
        # Tolerate tracking parameters and redirect drift in either direction
        for detail_key, entry in details.items():
            if key in detail_key or detail_key in key:
                return entry
        return None

    def _is_redirect(self, host: str, path: str) -> bool:
        if host.startswith(REDIRECT_HOST_PREFIXES) or ".vertexaisearch." in host:
            return True
        if host in REDIRECT_HOSTS:
            return True
        return REDIRECT_HOST_PATHS.get(host) == path

    def _extract_target(self, query: str) -> Optional[str]:
        params = parse_qs(query)
        for name in TARGET_PARAMS:
            for value in params.get(name, []):
                if value.lower().startswith(("http://", "https://")):
                    return value
        return None
