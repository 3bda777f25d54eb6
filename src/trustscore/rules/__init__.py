"""Rules package."""

from trustscore.rules.blacklist import (
    NOT_BLACKLISTED,
    BlacklistMatcher,
    BlacklistResult,
    pattern_matches,
)
from trustscore.rules.content import GENERAL, ContentClassifier, ContentMatch
from trustscore.rules.generator import ContentRuleGenerator, detect_content_rule

__all__ = [
    "NOT_BLACKLISTED",
    "BlacklistMatcher",
    "BlacklistResult",
    "pattern_matches",
    "GENERAL",
    "ContentClassifier",
    "ContentMatch",
    "ContentRuleGenerator",
    "detect_content_rule",
]
