"""
extract_incident_data - keyword-bucket classification of news text.

This is a heuristic, not NLP. Rules are scanned in CATEGORY_RULES order
and the first bucket with any keyword hit wins, so "assault" classifies
as Violent Crimes even though the Sexual Offences bucket also lists it.
"""

import re
from dataclasses import dataclass

import structlog

from safetynews.config import settings
from safetynews.schemas.incident import SUMMARY_MAX_LENGTH, CrimeCategory
from safetynews.schemas.tools import ExtractIncidentArgs

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORY = CrimeCategory.PROPERTY_FINANCIAL
DEFAULT_SEVERITY = 3

_WORD_RE = re.compile(r"\b\w{4,}\b")


@dataclass(frozen=True)
class CategoryRule:
    category: CrimeCategory
    keywords: tuple[str, ...]
    severity: int


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        CrimeCategory.VIOLENT,
        ("assault", "robbery", "mugging", "attack", "violence", "murder", "shooting"),
        4,
    ),
    CategoryRule(
        CrimeCategory.PROPERTY_FINANCIAL,
        ("theft", "burglary", "fraud", "scam", "stolen", "break-in"),
        3,
    ),
    CategoryRule(
        CrimeCategory.PUBLIC_ORDER,
        ("protest", "disturbance", "vandalism", "loitering"),
        3,
    ),
    CategoryRule(
        CrimeCategory.CYBER,
        ("cyber", "online", "digital", "phishing", "hacking"),
        3,
    ),
    CategoryRule(
        CrimeCategory.ORGANISED,
        ("syndicate", "gang", "organized", "cartel"),
        4,
    ),
    CategoryRule(
        CrimeCategory.SEXUAL,
        ("sexual", "harassment", "assault"),
        5,
    ),
)


def classify(text: str) -> tuple[CrimeCategory, int, list[str]]:
    """Return (category, severity, matched keywords) for the first matching rule."""
    lowered = text.lower()
    for rule in CATEGORY_RULES:
        matches = [kw for kw in rule.keywords if kw in lowered]
        if matches:
            return rule.category, rule.severity, matches
    return DEFAULT_CATEGORY, DEFAULT_SEVERITY, []


async def extract_incident_data(params: ExtractIncidentArgs) -> dict:
    category, severity, keywords = classify(params.newsText)

    # Matched rule words first, then longer words from the text; dedupe, keep order
    candidates = keywords + _WORD_RE.findall(params.newsText.lower())[: settings.extraction_keyword_limit]
    keywords = list(dict.fromkeys(candidates))[: settings.extraction_keyword_limit]

    logger.info("incident_data_extracted", category=category.value, severity=severity)
    return {
        "category": category.value,
        "severity": severity,
        "keywords": keywords,
        "summary": params.newsText[:SUMMARY_MAX_LENGTH].strip(),
        "extractedLocation": params.location,
    }
