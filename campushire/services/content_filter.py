"""Moderation of user-submitted text before it is stored.

Spam scoring is soft: the author's score is raised and a warning is attached
to the response. Forbidden words are hard: the request fails with 400.
"""

import re
from typing import Any, Dict, List, Mapping, Optional

from fastapi import HTTPException, status
from loguru import logger

from campushire.models.mongodb_models import ScoreSource, User
from campushire.services.spam_detection import ContentSpamResult, content_spam_scorer
from campushire.services.spam_score import spam_score_service

MODERATED_FIELDS = ("description", "notes", "student_message", "alumni_response", "title", "message")

FORBIDDEN_WORDS = [
    "spam", "scam", "fake", "phishing", "malware", "virus",
    "hack", "crack", "illegal", "unauthorized",
]

SUSPICIOUS_LINK_DOMAINS = [
    "bit.ly", "tinyurl.com", "goo.gl", "t.co", "is.gd", "v.gd", "ow.ly",
    "shorturl", "urlshortener", "linktr.ee",
]

_URL_PATTERN = re.compile(r"https?://[^\s]+")


def collect_text(fields: Mapping[str, Any]) -> str:
    return " ".join(str(fields[name]) for name in MODERATED_FIELDS if fields.get(name))


def find_forbidden_words(fields: Mapping[str, Any]) -> List[str]:
    detected: List[str] = []
    for name in MODERATED_FIELDS:
        value = fields.get(name)
        if not value:
            continue
        text = str(value).lower()
        detected.extend(word for word in FORBIDDEN_WORDS if word in text)
    return detected


def find_suspicious_links(fields: Mapping[str, Any]) -> List[str]:
    links: List[str] = []
    for name in MODERATED_FIELDS:
        value = fields.get(name)
        if not value:
            continue
        for url in _URL_PATTERN.findall(str(value)):
            if any(domain in url.lower() for domain in SUSPICIOUS_LINK_DOMAINS):
                links.append(url)
    return links


async def score_content(text: str, user: Optional[User] = None) -> ContentSpamResult:
    """Score text and charge a positive score to the author on the content path"""
    result = content_spam_scorer.score(text)
    if user is not None and result.spam_score > 0:
        try:
            await spam_score_service.adjust(
                user, result.spam_score, ScoreSource.CONTENT, reason="Content spam detection"
            )
        except Exception as e:
            logger.error(f"Failed to update spam score for user {user.id}: {e}")
    return result


async def moderate(fields: Mapping[str, Any], user: Optional[User] = None) -> Optional[Dict[str, Any]]:
    """Run soft spam scoring then the forbidden word check.

    Returns a warning dict to attach to the response, or None for clean text.
    Raises HTTPException(400) when a forbidden word is present.
    """
    text = collect_text(fields)
    warning: Dict[str, Any] = {}

    if text.strip():
        result = await score_content(text, user)
        if result.is_spam:
            warning["spam"] = {
                "detected": True,
                "score": result.spam_score,
                "patterns": result.detected_patterns,
                "threshold": result.threshold,
            }
            logger.warning(
                f"Spam detected for user {user.id if user else None}: "
                f"score={result.spam_score} content={text[:100]}..."
            )

    links = find_suspicious_links(fields)
    if links:
        warning["links"] = {"detected": True, "links": links}
        logger.warning(f"Suspicious links detected for user {user.id if user else None}: {links}")

    detected_words = find_forbidden_words(fields)
    if detected_words:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Content contains forbidden words", "detectedWords": detected_words},
        )

    return warning or None
