"""Blacklist matching of domains against severity-scored deny rules."""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Pattern

import structlog

from trustscore.common import constants
from trustscore.schemas import BlacklistRule, normalize_domain
from trustscore.stores import RuleStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class BlacklistResult:
    """Outcome of checking one domain against the blacklist."""

    blacklisted: bool
    worst_category: Optional[str]
    max_severity: int
    penalty: float
    matched_patterns: tuple = ()


NOT_BLACKLISTED = BlacklistResult(
    blacklisted=False, worst_category=None, max_severity=0, penalty=0.0
)


@lru_cache(maxsize=4096)
def _glob_to_regex(pattern: str) -> Pattern:
    # only '*' is a wildcard; everything else matches literally
    parts = (re.escape(part) for part in pattern.split("*"))
    return re.compile("^" + ".*".join(parts) + "$")


def pattern_matches(pattern: str, domain: str) -> bool:
    """
    True if domain equals pattern or satisfies its ``*`` wildcards.

    Examples:
        >>> pattern_matches("*.badsite.com", "login.badsite.com")
        True
        >>> pattern_matches("*.badsite.com", "badsite.com")
        False
    """
    pattern = pattern.lower()
    if pattern == domain:
        return True
    if "*" not in pattern:
        return False
    return bool(_glob_to_regex(pattern).match(domain))


class BlacklistMatcher:
    """Read-only matcher over the active blacklist rules of a RuleStore."""

    def __init__(
        self,
        rules: RuleStore,
        severity_multiplier: float = constants.DEFAULT_SEVERITY_MULTIPLIER,
        max_penalty: float = constants.DEFAULT_MAX_BLACKLIST_PENALTY,
    ):
        self.rules = rules
        self.severity_multiplier = severity_multiplier
        self.max_penalty = max_penalty

    def matching_rules(self, domain: str) -> List[BlacklistRule]:
        key = normalize_domain(domain)
        return [
            rule
            for rule in self.rules.blacklist_rules()
            if rule.active and pattern_matches(rule.pattern, key)
        ]

    def check(self, domain: Optional[str]) -> BlacklistResult:
        """
        Check a domain against every active rule.

        The penalty is the sum of ``severity * multiplier`` over all matching
        rules, capped at ``max_penalty``. The worst category belongs to the
        highest-severity match (first in rule order on ties).
        """
        if not domain:
            return NOT_BLACKLISTED

        matches = self.matching_rules(domain)
        if not matches:
            return NOT_BLACKLISTED

        worst = max(matches, key=lambda r: r.severity)
        raw_penalty = sum(rule.severity * self.severity_multiplier for rule in matches)
        penalty = min(self.max_penalty, raw_penalty)

        logger.debug(
            "Domain matched blacklist",
            domain=domain,
            matches=len(matches),
            worst_category=worst.category,
            penalty=penalty,
        )

        return BlacklistResult(
            blacklisted=True,
            worst_category=worst.category,
            max_severity=worst.severity,
            penalty=float(penalty),
            matched_patterns=tuple(rule.pattern for rule in matches),
        )
