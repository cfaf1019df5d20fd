"""Tests for the text spam scorer and the profile evaluator"""

from campushire.services.content_filter import find_forbidden_words, find_suspicious_links
from campushire.services.spam_detection import ContentSpamScorer, ProfileSpamEvaluator


class TestContentSpamScorer:

    def setup_method(self):
        self.scorer = ContentSpamScorer()

    def test_promotional_burst_is_spam(self):
        result = self.scorer.score("BUY NOW BUY NOW BUY NOW BUY NOW click here click here")

        assert result.is_spam is True
        assert result.spam_score >= 5
        assert any(p.startswith("financial") for p in result.detected_patterns)
        assert any(p.startswith("urgency") for p in result.detected_patterns)

    def test_ordinary_text_is_clean(self):
        result = self.scorer.score("Looking forward to the interview next week.")

        assert result.is_spam is False
        assert result.spam_score == 0
        assert result.detected_patterns == []

    def test_score_below_threshold_is_not_spam(self):
        # two keyword hits
        result = self.scorer.score("I have a question about the free parking and the discount card")

        assert result.spam_score == 2
        assert result.is_spam is False

    def test_links_weigh_double(self):
        result = self.scorer.score("see https://example.org/page")

        assert result.spam_score == 2
        assert "Suspicious links (url): 1" in result.detected_patterns

    def test_repetition_counts_words_past_three(self):
        result = self.scorer.score("apply apply apply apply apply")

        assert result.spam_score == 2
        assert "Word repetition: 'apply' 5 times" in result.detected_patterns

    def test_excessive_caps(self):
        result = self.scorer.score("HELLO THERE")

        assert "Excessive caps" in result.detected_patterns

    def test_empty_text(self):
        assert self.scorer.score(None).spam_score == 0
        assert self.scorer.score("").is_spam is False


class TestProfileSpamEvaluator:

    def setup_method(self):
        self.evaluator = ProfileSpamEvaluator()

    def test_verified_domains_are_not_suspicious(self):
        assert self.evaluator.is_suspicious_link("https://www.linkedin.com/in/someone") is False
        assert self.evaluator.is_suspicious_link("https://github.com/someone") is False
        assert self.evaluator.is_suspicious_link("not a url") is True

    def test_link_allowance(self):
        links = [f"https://site{i}.example.com" for i in range(6)]
        result = self.evaluator.evaluate(links=links)

        assert result.link_count == 6
        assert result.spam_score == 2

    def test_four_suspicious_links_are_tolerated(self):
        links = [f"https://site{i}.example.com" for i in range(4)]

        assert self.evaluator.evaluate(links=links).spam_score == 0

    def test_repeated_messages(self):
        result = self.evaluator.evaluate(messages=["hi", "hi", "hi", "hello"])

        assert result.repetitive_message_count == 2
        assert result.spam_score == 4

    def test_mismatched_profile_links(self):
        result = self.evaluator.evaluate(linkedin="https://example.com/me", github="https://gitlab.com/me")

        assert result.spam_score == 4
        assert "Suspicious LinkedIn URL" in result.detected_patterns
        assert "Suspicious GitHub URL" in result.detected_patterns

    def test_threshold(self):
        links = [f"https://site{i}.example.com" for i in range(14)]
        result = self.evaluator.evaluate(links=links)

        assert result.spam_score == 10
        assert result.is_spam is True


class TestContentFilterHelpers:

    def test_forbidden_words_only_in_moderated_fields(self):
        fields = {"description": "This is a scam", "company": "Fake Corp"}

        assert find_forbidden_words(fields) == ["scam"]

    def test_suspicious_links(self):
        fields = {"message": "look https://bit.ly/abc and https://bracu.ac.bd"}

        assert find_suspicious_links(fields) == ["https://bit.ly/abc"]
