"""
Outbound URL Guard — bank-grade validation for issuer links.

Every "Learn more" / "Apply" link shown to a user passes through
validate_outbound_url. A link that passes is an https URL on one of
the issuer's own domains or their subdomains; nothing else is ever
rendered as clickable.

EXTENDING ALLOWLISTS:
  1. Add the issuer to ISSUER_DOMAIN_ALLOWLISTS with its official domains
  2. Use the registrable domain; subdomains are allowed automatically
  3. Add a case to tests/test_url_guard.py before deploying

Lookalikes such as chase.com.evil.com or evilchase.com never match
chase.com: the suffix check is anchored on the dot.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from creditguard.config import settings

logger = logging.getLogger(__name__)


# Issuer domain allowlists, official domains only
ISSUER_DOMAIN_ALLOWLISTS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "American Express": ("americanexpress.com", "amex.com"),
    "Chase": ("chase.com",),
    "Capital One": ("capitalone.com",),
    "Citi": ("citi.com", "citicards.com"),
    "Discover": ("discover.com",),
    "Bank of America": ("bankofamerica.com",),
    "Wells Fargo": ("wellsfargo.com",),
    "U.S. Bank": ("usbank.com",),
    "Barclays": ("barclays.com", "barclaycardus.com", "barclaycards.com"),
    "Apple": ("apple.com",),
    "Bilt": ("bilt.com",),
    "Synchrony": ("synchrony.com", "synchronybank.com"),
    "USAA": ("usaa.com",),
    "Navy Federal": ("navyfederal.org",),
    "PNC": ("pnc.com",),
    "TD Bank": ("td.com", "tdbank.com"),
})

# Checked case-insensitively against the start of the raw input
DANGEROUS_SCHEMES: tuple[str, ...] = (
    "javascript:",
    "data:",
    "file:",
    "chrome:",
    "chrome-extension:",
    "about:",
    "vbscript:",
    "blob:",
    "ftp:",
)

MAX_URL_LENGTH = settings.MAX_URL_LENGTH

_HOST_RE = re.compile(r"^[a-z0-9](?:[a-z0-9\-]*[a-z0-9])?(?:\.[a-z0-9](?:[a-z0-9\-]*[a-z0-9])?)*$")
_UNSAFE_CHARS = re.compile(r"[\s\\\x00-\x1f\x7f]")


def as_allowlist(allowlist: Any) -> tuple[str, ...]:
    """
    Normalize an allowlist from an external store to a tuple of domains.

    A bare string is one domain. Entries that are not strings are
    dropped, and anything that is not iterable is an empty allowlist.
    """
    if isinstance(allowlist, str):
        return (allowlist,)
    if not isinstance(allowlist, Iterable):
        return ()
    return tuple(entry for entry in allowlist if isinstance(entry, str))


@dataclass(frozen=True)
class UrlStatus:
    """Outcome of validating one outbound URL."""
    is_valid: bool
    blocked: bool
    reason: Optional[str] = None
    normalized_url: Optional[str] = None
    display_host: Optional[str] = None


def _strip_www(hostname: str) -> str:
    return hostname[4:] if hostname.startswith("www.") else hostname


def _ascii_hostname(hostname: str) -> Optional[str]:
    """Lowercase, IDNA-encode, and syntax-check a hostname."""
    try:
        host = hostname.lower().encode("idna").decode("ascii")
    except UnicodeError:
        return None
    return host if _HOST_RE.match(host) else None


def _check_https_url(url: str) -> tuple[Optional[str], Optional[str]]:
    """
    Run the scheme, parse, and length rules.

    Returns (normalized_url, None) on success or (None, reason) on failure.
    """
    trimmed = url.strip()
    lower = trimmed.lower()

    for scheme in DANGEROUS_SCHEMES:
        if lower.startswith(scheme):
            return None, f"Dangerous scheme: {scheme}"

    if lower.startswith("http://"):
        return None, "HTTP not allowed (requires HTTPS)"

    if not lower.startswith("https://"):
        trimmed = "https://" + trimmed

    if _UNSAFE_CHARS.search(trimmed):
        return None, "Invalid URL format"

    try:
        parts = urlsplit(trimmed)
        port = parts.port
    except ValueError:
        return None, "Invalid URL format"

    if parts.scheme != "https":
        return None, "Must use HTTPS protocol"
    if "@" in parts.netloc:
        return None, "Credentials in URL are not allowed"
    if not parts.hostname:
        return None, "Missing hostname"

    host = _ascii_hostname(parts.hostname)
    if host is None:
        return None, "Invalid hostname"

    netloc = host if port in (None, 443) else f"{host}:{port}"
    if parts.path in ("", "/") and not parts.query and not parts.fragment:
        normalized = f"https://{netloc}"
    else:
        normalized = urlunsplit(("https", netloc, parts.path or "/", parts.query, parts.fragment))

    if len(normalized) > MAX_URL_LENGTH:
        return None, f"URL too long (max {MAX_URL_LENGTH} chars)"

    return normalized, None


def normalize_https_url(url: Optional[str]) -> Optional[str]:
    """
    Normalize a URL to https with a lowercase hostname.

    Returns None if the URL is absent, unsafe, not https, or malformed.
    """
    if not isinstance(url, str) or not url.strip():
        return None
    normalized, _ = _check_https_url(url)
    return normalized


def is_hostname_allowed(hostname: str, allowlist: Iterable[str]) -> bool:
    """
    Check a hostname against an allowlist of registrable domains.

    Exact match or dot-anchored subdomain match, after stripping a
    leading "www.". An empty allowlist allows nothing.
    """
    if not isinstance(hostname, str) or not hostname:
        return False

    host = _strip_www(hostname.lower().strip())
    for allowed in as_allowlist(allowlist):
        entry = allowed.lower().strip()
        if not entry:
            continue
        if host == entry or host.endswith("." + entry):
            return True
    return False


def validate_outbound_url(url: Optional[str], allowlist: Iterable[str]) -> UrlStatus:
    """Validate an outbound URL against the security rules and an issuer allowlist."""
    if not isinstance(url, str) or not url.strip():
        return UrlStatus(is_valid=True, blocked=False, reason="No URL provided")

    normalized, reason = _check_https_url(url)
    if normalized is None:
        logger.warning("Outbound URL blocked", extra={"reason": reason})
        return UrlStatus(is_valid=False, blocked=True, reason=reason)

    hostname = urlsplit(normalized).hostname or ""
    allowlist = as_allowlist(allowlist)
    if not is_hostname_allowed(hostname, allowlist):
        reason = f'Domain "{hostname}" not in issuer allowlist'
        logger.warning("Outbound URL blocked", extra={"reason": reason, "host": hostname})
        return UrlStatus(
            is_valid=False,
            blocked=True,
            reason=reason,
            display_host=hostname,
        )

    return UrlStatus(
        is_valid=True,
        blocked=False,
        normalized_url=normalized,
        display_host=_strip_www(hostname),
    )


def get_issuer_allowlist(issuer: str) -> tuple[str, ...]:
    if not isinstance(issuer, str):
        return ()
    return ISSUER_DOMAIN_ALLOWLISTS.get(issuer, ())


def validate_card_urls(
    issuer: str,
    learn_more_url: Optional[str] = None,
    apply_url: Optional[str] = None,
    custom_allowlist: Optional[Iterable[str]] = None,
) -> dict[str, UrlStatus]:
    """Validate both the learn-more and apply links for a card."""
    allowlist = as_allowlist(custom_allowlist) or get_issuer_allowlist(issuer)
    return {
        "learn_more": validate_outbound_url(learn_more_url, allowlist),
        "apply": validate_outbound_url(apply_url, allowlist),
    }
