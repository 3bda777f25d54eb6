"""Automated content-type rule generation from rating history."""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

from trustscore.common import constants
from trustscore.schemas import ContentTypeRule, Rating
from trustscore.stores import RatingStore, RuleStore

logger = structlog.get_logger()

# domain -> (content_type, trust_modifier, min_ratings_required, description)
KNOWN_PLATFORMS: Dict[str, Tuple[str, float, int, str]] = {}

ESTABLISHED_NEWS = ("cnn.com", "bbc.com", "reuters.com", "ap.org", "npr.org", "pbs.org")


def _register(domains, content_type, modifier, min_ratings, description):
    for domain in domains:
        KNOWN_PLATFORMS[domain] = (content_type, modifier, min_ratings, description)


_register(
    ("youtube.com", "youtu.be", "vimeo.com", "dailymotion.com", "twitch.tv"),
    "video", 5.0, 2, "Video platform",
)
_register(
    ("facebook.com", "twitter.com", "x.com", "instagram.com", "tiktok.com",
     "snapchat.com", "pinterest.com"),
    "social", -2.0, 5, "Social media, requires more community validation",
)
_register(
    ("github.com", "gitlab.com", "bitbucket.org", "sourceforge.net", "codepen.io"),
    "code", 5.0, 2, "Code repository",
)
_register(ESTABLISHED_NEWS, "news", 8.0, 2, "Established news media")
_register(
    ("coursera.org", "edx.org", "khanacademy.org", "udemy.com"),
    "education", 7.0, 2, "Educational platform",
)
_register(
    ("amazon.com", "ebay.com", "etsy.com", "shopify.com", "walmart.com", "target.com"),
    "ecommerce", 2.0, 3, "E-commerce platform",
)
_register(
    ("stackoverflow.com", "stackexchange.com", "developer.mozilla.org",
     "w3schools.com", "docs.microsoft.com"),
    "documentation", 8.0, 1, "Technical documentation",
)
_register(
    ("linkedin.com", "glassdoor.com", "indeed.com"),
    "professional", 3.0, 2, "Professional networking",
)
_register(
    ("netflix.com", "hulu.com", "disney.com", "spotify.com", "apple.com"),
    "entertainment", 3.0, 3, "Entertainment platform",
)

NEWS_TLD = re.compile(r"\.(com|org|net)$")
NEWS_WORDS = ("news", "times", "post")

# Checked in order against sample URLs of otherwise unknown domains
URL_PATTERN_HINTS = [
    (re.compile(r"/watch\?v=|/video/|/v/|/embed/"), "video", 2.0, 3,
     "Video content detected from URL patterns"),
    (re.compile(r"/article/|/blog/|/post/|/news/"), "article", 2.0, 3,
     "Article content detected from URL patterns"),
    (re.compile(r"/product/|/item/|/dp/|/p/"), "ecommerce", 1.0, 4,
     "Product page detected from URL patterns"),
]

# Platform rules worth having before any rating arrives
PREDEFINED_RULES = [
    ContentTypeRule(domain="facebook.com", content_type="social",
                    url_pattern=r"/.*/(posts|photos)/", trust_modifier=-1,
                    min_ratings_required=5, description="Facebook posts"),
    ContentTypeRule(domain="instagram.com", content_type="social", url_pattern=r"/p/",
                    trust_modifier=-1, min_ratings_required=4,
                    description="Instagram posts"),
    ContentTypeRule(domain="tiktok.com", content_type="social", url_pattern=r"/@.*/",
                    trust_modifier=-2, min_ratings_required=6,
                    description="TikTok videos"),
    ContentTypeRule(domain="cnn.com", content_type="news", url_pattern=r"/.*/",
                    trust_modifier=8, min_ratings_required=2,
                    description="CNN news articles"),
    ContentTypeRule(domain="bbc.com", content_type="news", url_pattern=r"/news/",
                    trust_modifier=9, min_ratings_required=2, description="BBC news"),
    ContentTypeRule(domain="reuters.com", content_type="news", url_pattern=r"/.*/",
                    trust_modifier=9, min_ratings_required=2, description="Reuters"),
]


@dataclass
class DomainProfile:
    """Rating history of one domain, as seen by the generator."""

    domain: str
    rating_count: int = 0
    spam_count: int = 0
    misleading_count: int = 0
    scam_count: int = 0
    sample_urls: List[str] = field(default_factory=list)


def build_profiles(ratings: List[Rating], sample_size: int = 5) -> Dict[str, DomainProfile]:
    """Group ratings per domain; sample URLs are the most recent ones."""
    profiles: Dict[str, DomainProfile] = {}
    for rating in sorted(ratings, key=lambda r: r.created_at, reverse=True):
        if not rating.domain:
            continue
        profile = profiles.setdefault(rating.domain, DomainProfile(domain=rating.domain))
        profile.rating_count += 1
        profile.spam_count += int(rating.flags.is_spam)
        profile.misleading_count += int(rating.flags.is_misleading)
        profile.scam_count += int(rating.flags.is_scam)
        if rating.url and len(profile.sample_urls) < sample_size:
            profile.sample_urls.append(rating.url)
    return profiles


def detect_content_rule(profile: DomainProfile) -> ContentTypeRule:
    """
    Derive a pattern-less content rule for a domain.

    Known platforms map to fixed types; news-like domains get a small
    bonus unless established; anything else is classified from sample URL
    paths. Community flags then lower the modifier, which is clamped to
    [-10, 10], and raise the rating requirement, clamped to [1, 10].
    """
    domain = profile.domain
    content_type, modifier, min_ratings = constants.DEFAULT_CONTENT_TYPE, 0.0, 3
    description = "Auto-generated rule based on domain analysis"

    if domain in KNOWN_PLATFORMS:
        content_type, modifier, min_ratings, description = KNOWN_PLATFORMS[domain]
    elif NEWS_TLD.search(domain) and any(word in domain for word in NEWS_WORDS):
        content_type, modifier, min_ratings = "news", 2.0, 4
        description = "News-like domain, requires community validation"
    elif domain.endswith(".edu"):
        content_type, modifier, min_ratings = "education", 7.0, 2
        description = "Educational institution"
    else:
        for url in profile.sample_urls:
            hint = _hint_for(url)
            if hint:
                content_type, modifier, min_ratings, description = hint
                break

    total = profile.rating_count
    if profile.spam_count > total * 0.3:
        modifier -= 5
        min_ratings += 2
    elif profile.misleading_count > total * 0.2:
        modifier -= 3
        min_ratings += 1
    elif profile.scam_count > total * 0.1:
        modifier -= 8
        min_ratings += 3

    return ContentTypeRule(
        domain=domain,
        content_type=content_type,
        url_pattern=None,
        trust_modifier=max(-10.0, min(10.0, modifier)),
        min_ratings_required=max(1, min(10, min_ratings)),
        description=f"{description} (based on {total} ratings)",
    )


def _hint_for(url: str) -> Optional[Tuple[str, float, int, str]]:
    for pattern, content_type, modifier, min_ratings, description in URL_PATTERN_HINTS:
        if pattern.search(url):
            return content_type, modifier, min_ratings, description
    return None


class ContentRuleGenerator:
    """Creates content rules for rated domains that have none yet."""

    def __init__(
        self,
        ratings: RatingStore,
        rules: RuleStore,
        min_ratings: int = constants.RULE_GENERATION_MIN_RATINGS,
        domain_limit: int = constants.RULE_GENERATION_DOMAIN_LIMIT,
    ):
        self.ratings = ratings
        self.rules = rules
        self.min_ratings = min_ratings
        self.domain_limit = domain_limit

    def generate(self) -> int:
        """
        Run one generation pass.

        Returns:
            Number of rules created (generated plus predefined)
        """
        profiles = build_profiles(self.ratings.all_ratings())
        candidates = sorted(
            (
                p
                for p in profiles.values()
                if p.rating_count >= self.min_ratings
                and not self.rules.has_active_content_rules(p.domain)
            ),
            key=lambda p: (-p.rating_count, p.domain),
        )[: self.domain_limit]

        created = 0
        for profile in candidates:
            rule = detect_content_rule(profile)
            self.rules.add_content_rule(rule)
            created += 1
            logger.info(
                "Content rule generated",
                domain=rule.domain,
                content_type=rule.content_type,
                trust_modifier=rule.trust_modifier,
                min_ratings_required=rule.min_ratings_required,
            )

        for rule in PREDEFINED_RULES:
            existing = self.rules.content_rules_for(rule.domain)
            if not any(r.content_type == rule.content_type for r in existing):
                self.rules.add_content_rule(rule)
                created += 1

        logger.info("Content rule generation complete", created=created)
        return created
