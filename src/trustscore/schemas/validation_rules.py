"""URL and domain normalisation rules."""

import hashlib
import ipaddress
import re
from typing import Optional

# Matches valid domain names (e.g., example.com, sub.example.com)
# - Labels must be 1-63 characters
# - Labels must start and end with alphanumeric
# - TLD must be at least 2 characters and alphabetic
DOMAIN_PATTERN = re.compile(
    r"^(?!-)[A-Za-z0-9-]{1,63}(?<!-)(\.[A-Za-z0-9-]{1,63}(?<!-))*\.[A-Za-z]{2,}$"
)

URL_SCHEMES = ("https://", "http://", "ftp://", "//")


def is_valid_domain(domain: str) -> bool:
    """
    Check if domain is a syntactically valid host name.

    IP literals and single-label hosts are rejected; ratings are keyed by
    registrable host names.

    Examples:
        >>> is_valid_domain("example.com")
        True
        >>> is_valid_domain("sub.example.com")
        True
        >>> is_valid_domain("localhost")
        False
        >>> is_valid_domain("192.168.1.1")
        False
    """
    if not domain:
        return False

    domain = domain.strip().lower()

    if len(domain) < 4 or len(domain) > 253:
        return False

    try:
        ipaddress.ip_address(domain)
        return False
    except ValueError:
        pass

    return bool(DOMAIN_PATTERN.match(domain))


def extract_domain(url: str) -> Optional[str]:
    """
    Extract the host name a URL belongs to.

    Removes the scheme, any ``www.`` prefix, credentials, port, path,
    query and fragment.

    Args:
        url: URL or bare host

    Returns:
        Lowercase domain, or None if nothing valid remains

    Examples:
        >>> extract_domain("https://www.Example.com/path?q=1")
        'example.com'
        >>> extract_domain("example.com:8080")
        'example.com'
    """
    if not url:
        return None

    domain = url.strip().lower()

    for prefix in URL_SCHEMES:
        if domain.startswith(prefix):
            domain = domain[len(prefix) :]
            break

    for delimiter in ["/", "?", "#"]:
        if delimiter in domain:
            domain = domain.split(delimiter)[0]

    if "@" in domain:
        domain = domain.rsplit("@", 1)[1]

    if ":" in domain and domain.count(":") == 1:
        domain = domain.split(":")[0]

    while domain.startswith("www."):
        domain = domain[4:]

    domain = domain.rstrip(".").strip()

    if is_valid_domain(domain):
        return domain

    return None


def normalize_domain(domain: str) -> str:
    """
    Lowercase and strip a domain key without validating it.

    Leading ``www.`` labels are removed the same way :func:`extract_domain`
    removes them, so URL-derived and submitted domains share one key.

    Examples:
        >>> normalize_domain(" WWW.Example.com. ")
        'example.com'
    """
    domain = domain.strip().lower().rstrip(".")
    while domain.startswith("www."):
        domain = domain[4:]
    return domain


def hash_url(url: str) -> str:
    """
    Content-addressed identifier of a URL (SHA-256 hex of the raw string).

    Examples:
        >>> len(hash_url("https://example.com/"))
        64
    """
    return hashlib.sha256(url.encode("utf-8")).hexdigest()
