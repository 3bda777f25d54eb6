"""Rating ingestion: validation and append, never aggregation."""

from typing import Any, Dict, Optional, Union

import pydantic
import structlog

from trustscore.common import ValidationError, constants
from trustscore.schemas import (
    Rating,
    RatingFlags,
    extract_domain,
    hash_url,
    is_valid_domain,
    normalize_domain,
)
from trustscore.stores import RatingStore

logger = structlog.get_logger()

FlagsInput = Union[RatingFlags, Dict[str, Any], None]


class RatingValidator:
    """Validator for incoming rating submissions."""

    def __init__(self):
        self.stats = {
            "total": 0,
            "valid": 0,
            "invalid": 0,
        }

    def _reject(self, message: str, field: str, value: Any) -> ValidationError:
        self.stats["invalid"] += 1
        logger.warning("Rating rejected", reason=message, field=field, value=str(value))
        return ValidationError(message, context={"field": field, "value": value})

    def validate(
        self,
        url_hash: str,
        domain: Optional[str],
        user_ref: str,
        score: Any,
        flags: FlagsInput = None,
        url: Optional[str] = None,
    ) -> Rating:
        """
        Build a Rating from raw submission fields.

        Args:
            url_hash: Hash of the rated URL
            domain: Owning domain; derived from ``url`` when omitted
            user_ref: Privacy-hashed user reference
            score: Integer rating between 1 and 5
            flags: RatingFlags or a mapping of flag names to booleans
            url: Full URL; when given it must hash to ``url_hash`` and
                belong to ``domain``

        Returns:
            Validated Rating, not yet stored

        Raises:
            ValidationError: If any field is missing, malformed or
                inconsistent
        """
        self.stats["total"] += 1

        if not isinstance(url_hash, str) or not url_hash.strip():
            raise self._reject("url_hash is required", "url_hash", url_hash)

        if not isinstance(user_ref, str) or not user_ref.strip():
            raise self._reject("user_ref is required", "user_ref", user_ref)

        # bool is an int subclass; True must not pass as a score of 1
        if isinstance(score, bool) or not isinstance(score, int):
            raise self._reject("score must be an integer", "score", score)
        if not constants.MIN_RATING <= score <= constants.MAX_RATING:
            raise self._reject(
                f"score must be between {constants.MIN_RATING} and {constants.MAX_RATING}",
                "score",
                score,
            )

        if isinstance(domain, str):
            domain = normalize_domain(domain)

        if url is not None:
            if hash_url(url) != url_hash:
                raise self._reject("url_hash does not match url", "url_hash", url_hash)
            url_domain = extract_domain(url)
            if url_domain is None:
                raise self._reject("url has no valid domain", "url", url)
            if domain is None:
                domain = url_domain
            elif domain != url_domain:
                raise self._reject("domain does not match url", "domain", domain)

        if domain is None or not is_valid_domain(domain):
            raise self._reject("domain is missing or invalid", "domain", domain)

        try:
            parsed_flags = (
                flags if isinstance(flags, RatingFlags) else RatingFlags(**(flags or {}))
            )
        except (pydantic.ValidationError, TypeError) as e:
            self.stats["invalid"] += 1
            raise ValidationError(
                "flags are malformed", context={"field": "flags"}, original_error=e
            )

        self.stats["valid"] += 1
        return Rating(
            url_hash=url_hash.strip(),
            domain=domain,
            url=url,
            user_ref=user_ref.strip(),
            score=score,
            flags=parsed_flags,
        )

    def get_statistics(self) -> dict:
        return self.stats.copy()


class RatingIngestionService:
    """Accepts ratings and requests domain refreshes in the background."""

    def __init__(self, ratings: RatingStore, refresher=None):
        """
        Initialize ingestion service.

        Args:
            ratings: Store the ratings are appended to
            refresher: Optional DomainSignalRefresher notified of the domain
        """
        self.ratings = ratings
        self.refresher = refresher
        self.validator = RatingValidator()

    def submit_rating(
        self,
        url_hash: str,
        domain: Optional[str],
        user_ref: str,
        score: int,
        flags: FlagsInput = None,
        url: Optional[str] = None,
    ) -> str:
        """
        Validate and store a rating.

        Scores are not recomputed here; the next aggregation pass picks the
        rating up.

        Returns:
            Id of the stored rating

        Raises:
            ValidationError: If the submission is rejected
        """
        rating = self.validator.validate(url_hash, domain, user_ref, score, flags, url)
        rating_id = self.ratings.append(rating)

        logger.info(
            "Rating accepted",
            rating_id=rating_id,
            url_hash=rating.url_hash,
            domain=rating.domain,
            score=rating.score,
        )

        if self.refresher is not None:
            try:
                self.refresher.request_refresh(rating.domain)
            except Exception as e:
                logger.warning(
                    "Could not request domain refresh",
                    domain=rating.domain,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        return rating_id
