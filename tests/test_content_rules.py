"""Tests for content-type classification."""

import pytest

from trustscore.rules import ContentClassifier
from trustscore.schemas import ContentTypeRule
from trustscore.stores import InMemoryRuleStore


@pytest.fixture
def classifier(sample_content_rules):
    return ContentClassifier(InMemoryRuleStore(content_rules=sample_content_rules))


def test_pattern_rule_matches(classifier):
    """Test a URL matching the first rule's pattern gets its type."""
    match = classifier.match("https://youtube.com/watch?v=abc", "youtube.com")

    assert match.content_type == "video"
    assert match.trust_modifier == 5
    assert match.min_ratings_required == 2
    assert match.rule is not None


def test_rules_evaluated_in_priority_order(classifier):
    """Test later rules apply when earlier patterns do not match."""
    assert classifier.classify("https://youtube.com/@channel", "youtube.com") == "channel"


def test_no_match_is_general(classifier):
    """Test unmatched URLs fall back to general with no modifier."""
    match = classifier.match("https://youtube.com/feed", "youtube.com")

    assert match.content_type == "general"
    assert match.trust_modifier == 0.0
    assert match.rule is None


def test_unknown_domain_is_general(classifier):
    """Test domains without rules are general."""
    assert classifier.classify("https://example.com/", "example.com") == "general"
    assert classifier.classify(None, None) == "general"


def test_patternless_rule_matches_any_url(classifier):
    """Test a rule without pattern applies to every URL of the domain."""
    assert classifier.classify("https://github.com/", "github.com") == "code"


def test_without_url_only_patternless_rules_match(classifier):
    """Test an unknown URL cannot satisfy a pattern."""
    assert classifier.classify(None, "youtube.com") == "general"
    assert classifier.classify(None, "github.com") == "code"


def test_inactive_rules_skipped():
    """Test inactive rules are never selected."""
    store = InMemoryRuleStore(
        content_rules=[
            ContentTypeRule(domain="example.com", content_type="retired", active=False),
            ContentTypeRule(domain="example.com", content_type="article", priority=1),
        ]
    )

    assert ContentClassifier(store).classify("https://example.com/a", "example.com") == "article"


def test_domain_lookup_is_case_insensitive(classifier):
    """Test rules apply regardless of domain case."""
    assert classifier.classify("https://GitHub.com/x", "GitHub.com") == "code"


def test_www_rule_domain_matches_bare_domain():
    """Test a rule written for a www. host applies to the bare domain key."""
    store = InMemoryRuleStore(
        content_rules=[ContentTypeRule(domain="www.example.com", content_type="article")]
    )

    assert ContentClassifier(store).classify("https://www.example.com/a", "example.com") == "article"
