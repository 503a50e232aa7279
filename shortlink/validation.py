"""Validation and URL building helpers for the HTTP boundary and the core."""

__all__ = ["normalize_domain", "require_url", "domain_from_host", "build_short_url"]

from shortlink.exceptions import InvalidInputError

LOCAL_HOST_MARKERS = ("localhost", "127.0.0.1")


def normalize_domain(domain: str | None) -> str:
    """Trim surrounding whitespace and lower-case a domain.

    Raises:
        InvalidInputError: If the domain is missing or empty after normalization.
    """
    if not isinstance(domain, str):
        raise InvalidInputError("'domain' is required")
    normalized = domain.strip().lower()
    if not normalized:
        raise InvalidInputError("'domain' is required")
    return normalized


def require_url(url: str | None) -> str:
    """Return ``url`` unchanged, rejecting a missing or empty value."""
    if not isinstance(url, str) or not url:
        raise InvalidInputError("'url' is required")
    return url


def domain_from_host(host: str | None) -> str:
    """Turn a Host header into a lookup domain: lower-cased, port removed.

    Example:
        >>> domain_from_host("LocalHost:8080")
        'localhost'
    """
    domain = (host or "").strip().lower()
    # bracketed IPv6 literal, e.g. [::1]:8080
    if domain.startswith("["):
        end = domain.find("]")
        return domain[: end + 1] if end != -1 else domain
    return domain.split(":", 1)[0]


def build_short_url(domain: str, code: str) -> str:
    """Build ``scheme://domain/code``.

    Plain http is used for local development hosts, https everywhere else.
    """
    scheme = "http" if any(marker in domain for marker in LOCAL_HOST_MARKERS) else "https"
    return f"{scheme}://{domain}/{code}"
