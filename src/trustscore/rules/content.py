"""Content-type classification of URLs by ordered, domain-scoped rules."""

import re
from dataclasses import dataclass
from typing import Optional

from trustscore.common import constants
from trustscore.schemas import ContentTypeRule, normalize_domain
from trustscore.stores import RuleStore


@dataclass(frozen=True)
class ContentMatch:
    """Resolved content type and the modifier it contributes."""

    content_type: str
    trust_modifier: float = 0.0
    min_ratings_required: int = 0
    rule: Optional[ContentTypeRule] = None


GENERAL = ContentMatch(content_type=constants.DEFAULT_CONTENT_TYPE)


def rule_matches(rule: ContentTypeRule, url: Optional[str]) -> bool:
    """A pattern-less rule matches any URL; a pattern needs a URL to search."""
    if rule.url_pattern is None:
        return True
    if url is None:
        return False
    return re.search(rule.url_pattern, url) is not None


class ContentClassifier:
    """First-match-wins classifier over a RuleStore's content rules."""

    def __init__(self, rules: RuleStore):
        self.rules = rules

    def match(self, url: Optional[str], domain: Optional[str]) -> ContentMatch:
        """
        Resolve the content rule for a URL.

        Args:
            url: Full URL, or None when only the domain is known
            domain: Owning domain

        Returns:
            ContentMatch for the first active matching rule, or ``general``
            with a zero modifier
        """
        if not domain:
            return GENERAL

        for rule in self.rules.content_rules_for(normalize_domain(domain)):
            if rule.active and rule_matches(rule, url):
                return ContentMatch(
                    content_type=rule.content_type,
                    trust_modifier=rule.trust_modifier,
                    min_ratings_required=rule.min_ratings_required,
                    rule=rule,
                )

        return GENERAL

    def classify(self, url: Optional[str], domain: Optional[str]) -> str:
        """Content type only."""
        return self.match(url, domain).content_type
