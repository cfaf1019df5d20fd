"""Heuristic spam detection for free text and user profiles"""

import re
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

from loguru import logger
from pydantic import BaseModel, Field

CONTENT_SPAM_THRESHOLD = 5
PROFILE_SPAM_THRESHOLD = 10


class ContentSpamResult(BaseModel):
    is_spam: bool = False
    spam_score: int = 0
    detected_patterns: List[str] = Field(default_factory=list)
    threshold: int = CONTENT_SPAM_THRESHOLD


class ProfileSpamResult(BaseModel):
    is_spam: bool = False
    spam_score: int = 0
    detected_patterns: List[str] = Field(default_factory=list)
    link_count: int = 0
    repetitive_message_count: int = 0
    threshold: int = PROFILE_SPAM_THRESHOLD


def _keyword_pattern(words: Iterable[str]) -> "re.Pattern[str]":
    return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + r")\b", re.IGNORECASE)


class ContentSpamScorer:
    """Scores a text blob against fixed keyword, link, repetition and caps rules"""

    def __init__(self):
        self.keyword_categories: Dict[str, "re.Pattern[str]"] = {
            "financial": _keyword_pattern(
                ["buy", "sell", "earn", "money", "cash", "profit", "investment", "bitcoin", "crypto"]
            ),
            "urgency": _keyword_pattern(["click here", "visit now", "limited time", "act now", "urgent"]),
            "promotional": _keyword_pattern(["free", "discount", "offer", "deal", "sale", "promotion"]),
            "prize": _keyword_pattern(["winner", "congratulations", "prize", "lottery", "jackpot"]),
            "credit": _keyword_pattern(["loan", "credit", "debt", "mortgage", "refinance"]),
            "health": _keyword_pattern(["weight loss", "diet", "supplement", "vitamin", "health"]),
            "dating": _keyword_pattern(["dating", "single", "meet", "relationship", "romance"]),
            "remote_work": _keyword_pattern(["work from home", "remote", "online", "part-time", "flexible"]),
        }
        self.link_patterns: Dict[str, "re.Pattern[str]"] = {
            "shortener": re.compile(r"bit\.ly|tinyurl|goo\.gl|t\.co|is\.gd|v\.gd|ow\.ly", re.IGNORECASE),
            "url": re.compile(r"https?://\S+", re.IGNORECASE),
        }
        self.link_weight = 2
        self.repetition_limit = 3
        self.caps_ratio_limit = 0.7
        self.caps_penalty = 2
        self.threshold = CONTENT_SPAM_THRESHOLD

    def score(self, text: Optional[str]) -> ContentSpamResult:
        """Score text; never raises, returning a clean result on internal errors"""
        try:
            return self._score(text or "")
        except Exception as e:
            logger.error(f"Spam detection error: {e}")
            return ContentSpamResult(threshold=self.threshold)

    def _score(self, text: str) -> ContentSpamResult:
        spam_score = 0
        detected_patterns: List[str] = []

        for category, pattern in self.keyword_categories.items():
            matches = pattern.findall(text)
            if matches:
                spam_score += len(matches)
                detected_patterns.append(f"{category}: {', '.join(matches)}")

        for kind, pattern in self.link_patterns.items():
            matches = pattern.findall(text)
            if matches:
                spam_score += len(matches) * self.link_weight
                detected_patterns.append(f"Suspicious links ({kind}): {len(matches)}")

        word_count: Dict[str, int] = {}
        for word in text.lower().split():
            word_count[word] = word_count.get(word, 0) + 1
        for word, count in word_count.items():
            if count > self.repetition_limit:
                spam_score += count - self.repetition_limit
                detected_patterns.append(f"Word repetition: '{word}' {count} times")

        if text:
            caps_ratio = sum(1 for ch in text if ch.isupper()) / len(text)
            if caps_ratio > self.caps_ratio_limit:
                spam_score += self.caps_penalty
                detected_patterns.append("Excessive caps")

        return ContentSpamResult(
            is_spam=spam_score >= self.threshold,
            spam_score=spam_score,
            detected_patterns=detected_patterns,
            threshold=self.threshold,
        )


class ProfileSpamEvaluator:
    """Looks for link-farming, copy-pasted messages and mismatched profile links"""

    def __init__(self):
        self.verified_domains = ["linkedin.com", "github.com", "bracu.ac.bd", "verified-domain.com"]
        self.suspicious_link_allowance = 4
        self.duplicate_message_penalty = 2
        self.profile_link_penalty = 2
        self.threshold = PROFILE_SPAM_THRESHOLD

    def is_suspicious_link(self, link: str) -> bool:
        try:
            hostname = (urlparse(link).hostname or "").lower()
        except ValueError:
            return True
        if not hostname:
            return True
        return not any(domain in hostname for domain in self.verified_domains)

    def evaluate(
        self,
        links: Optional[List[str]] = None,
        messages: Optional[List[str]] = None,
        linkedin: Optional[str] = None,
        github: Optional[str] = None,
    ) -> ProfileSpamResult:
        """Evaluate a profile; never raises, returning a clean result on internal errors"""
        try:
            return self._evaluate(links or [], messages or [], linkedin, github)
        except Exception as e:
            logger.error(f"User spam detection error: {e}")
            return ProfileSpamResult(threshold=self.threshold)

    def _evaluate(
        self,
        links: List[str],
        messages: List[str],
        linkedin: Optional[str],
        github: Optional[str],
    ) -> ProfileSpamResult:
        spam_score = 0
        detected_patterns: List[str] = []

        link_count = sum(1 for link in links if self.is_suspicious_link(link))
        if link_count > self.suspicious_link_allowance:
            spam_score += link_count - self.suspicious_link_allowance
            detected_patterns.append(f"Suspicious links: {link_count} detected")

        seen = set()
        repetitive_messages = 0
        for message in messages:
            if message in seen:
                repetitive_messages += 1
            else:
                seen.add(message)
        if repetitive_messages:
            spam_score += repetitive_messages * self.duplicate_message_penalty
            detected_patterns.append(f"Repetitive messages: {repetitive_messages} detected")

        if linkedin and "linkedin.com" not in linkedin:
            spam_score += self.profile_link_penalty
            detected_patterns.append("Suspicious LinkedIn URL")

        if github and "github.com" not in github:
            spam_score += self.profile_link_penalty
            detected_patterns.append("Suspicious GitHub URL")

        return ProfileSpamResult(
            is_spam=spam_score >= self.threshold,
            spam_score=spam_score,
            detected_patterns=detected_patterns,
            link_count=link_count,
            repetitive_message_count=repetitive_messages,
            threshold=self.threshold,
        )


content_spam_scorer = ContentSpamScorer()
profile_spam_evaluator = ProfileSpamEvaluator()
