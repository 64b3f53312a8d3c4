"""
Trust baselines (0-100) for domains that show up often in fact-check citations.

Known domains take their baseline, official and academic TLDs take a type
default, everything else stays unscored.
"""

from typing import Dict, Optional

SOURCE_BASELINES: Dict[str, int] = {
    # Wire services
    "reuters.com": 90,
    "apnews.com": 90,
    "afp.com": 90,

    # Fact-checking organizations
    "snopes.com": 85,
    "factcheck.org": 85,
    "politifact.com": 85,
    "fullfact.org": 85,
    "factuel.afp.com": 90,

    # Major news outlets
    "bbc.com": 85,
    "bbc.co.uk": 85,
    "nytimes.com": 85,
    "washingtonpost.com": 85,
    "theguardian.com": 82,
    "lemonde.fr": 85,
    "francetvinfo.fr": 80,
    "liberation.fr": 78,
    "lefigaro.fr": 78,
    "economist.com": 85,
    "ft.com": 85,
    "wsj.com": 85,
    "cnn.com": 75,
    "aljazeera.com": 75,

    # Reference
    "wikipedia.org": 70,
    "who.int": 90,
    "nature.com": 90,
    "science.org": 90,

    # Known lower-credibility sources
    "rt.com": 40,
    "sputniknews.com": 40,
    "infowars.com": 20,

    # Social media platforms (user-generated content)
    "twitter.com": 30,
    "x.com": 30,
    "reddit.com": 30,
    "facebook.com": 30,
    "tiktok.com": 30,
    "youtube.com": 35,
    "instagram.com": 30,
}

TLD_DEFAULTS: Dict[str, int] = {
    ".gov": 85,
    ".gouv.fr": 85,
    ".gov.uk": 85,
    ".edu": 85,
    ".int": 85,
}


def get_trust_score(domain: str) -> Optional[int]:
    """
    Look up a trust score for a domain.

    Subdomains inherit their parent's baseline ("edition.cnn.com" -> "cnn.com").

    Args:
        domain: Host without a leading "www."

    Returns:
        Score in [0, 100], or None for unknown domains
    """
    if not domain:
        return None
    domain = domain.lower().strip(".")

    labels = domain.split(".")
    for i in range(len(labels) - 1):
        candidate = ".".join(labels[i:])
        if candidate in SOURCE_BASELINES:
            return SOURCE_BASELINES[candidate]

    for suffix, score in TLD_DEFAULTS.items():
        if domain.endswith(suffix):
            return score
    return None
