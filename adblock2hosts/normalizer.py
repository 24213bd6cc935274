#!/usr/bin/env python3
"""
normalizer.py - Domain Canonicalization and Validation

Second stage of the pipeline. Takes the raw body extracted by the parser and
turns it into the exact string that will appear in the hosts file, or rejects it.

Canonical form:
    - lowercase
    - no leading "*." or ".", no trailing "."
    - no ":port" suffix
    - punycode (xn--) for internationalized labels
    - labels of 1-63 chars from [a-z0-9-], no leading/trailing hyphen
    - at least two labels, total length <= 253
    - alphabetic (or xn--) top-level label, which rules out raw IPv4 addresses

Policy:
    Single-label names (localhost, intranet hosts, bare TLDs) are rejected.
    Internationalized names are accepted and emitted as punycode.
    Names that are themselves a public suffix (co.uk, com.au) are rejected:
    they have no registrable label to block. This departs from the upstream
    converter, which emitted "||co.uk^" as "0.0.0.0 co.uk".
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Final

import tldextract

from adblock2hosts.parser import Domain, ParsedToken, Skip

# Pre-configure tldextract to use the bundled suffix snapshot (no network)
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())

SKIP_INVALID: Final = "invalid"
SKIP_LOCAL_HOSTNAME: Final = "local_hostname"
SKIP_PUBLIC_SUFFIX: Final = "public_suffix"

MAX_DOMAIN_LENGTH: Final = 253
DOMAIN_CACHE_SIZE: Final = 65536

# Single label: 1-63 chars, alphanumeric plus inner hyphens
LABEL_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$"
)

# Top-level label: letters only, or punycode
TLD_PATTERN: Final[re.Pattern[str]] = re.compile(r"^(?:[a-z]{2,63}|xn--[a-z0-9-]{1,59})$")

PORT_PATTERN: Final[re.Pattern[str]] = re.compile(r":\d+$")

# Local hostnames to skip
LOCAL_HOSTNAMES: Final[frozenset[str]] = frozenset({
    "localhost", "localhost.localdomain", "local", "broadcasthost",
    "ip6-localhost", "ip6-loopback", "ip6-localnet",
    "ip6-mcastprefix", "ip6-allnodes", "ip6-allrouters", "ip6-allhosts",
})

WILDCARD: Final = "*"


@lru_cache(maxsize=DOMAIN_CACHE_SIZE)
def _extract_domain_parts(domain: str) -> tuple[str, str, str]:
    """Cached tldextract extraction. Returns (subdomain, domain, suffix)."""
    ext = _tld_extract(domain)
    return ext.subdomain, ext.domain, ext.suffix


def is_public_suffix(domain: str) -> bool:
    """
    True if the whole name is a public suffix (e.g. "co.uk").

    Such names are dropped rather than emitted, unlike the upstream converter.
    """
    _, dom, suffix = _extract_domain_parts(domain)
    return bool(suffix) and not dom


def get_registered_domain(domain: str) -> str | None:
    """Get registered domain (domain.tld) from full domain."""
    _, dom, suffix = _extract_domain_parts(domain)
    if suffix and dom:
        return f"{dom}.{suffix}"
    return None


def to_punycode(domain: str) -> str | None:
    """Convert a (possibly Unicode) domain to IDNA/punycode; None on failure."""
    if domain.isascii():
        return domain
    try:
        return domain.encode("idna").decode("ascii")
    except UnicodeError:
        return None


def canonicalize(domain: str) -> str:
    """
    Apply the cosmetic rewrites without validating.

    Example:
        >>> canonicalize(" *.Example.COM.:443 ")
        'example.com'
    """
    d = domain.strip().lower()
    d = PORT_PATTERN.sub("", d)
    if d.startswith("*."):
        d = d[2:]
    return d.strip(".")


def is_valid_domain(domain: str) -> bool:
    """
    Check a canonical ASCII domain against the hosts-file grammar.

    Example:
        >>> is_valid_domain("ads.example.net")
        True
        >>> is_valid_domain("example..com")
        False
        >>> is_valid_domain("invalid_domain")
        False
    """
    if not domain or len(domain) > MAX_DOMAIN_LENGTH:
        return False
    labels = domain.split(".")
    if len(labels) < 2:
        return False
    if not TLD_PATTERN.match(labels[-1]):
        return False
    return all(LABEL_PATTERN.match(label) for label in labels)


@lru_cache(maxsize=DOMAIN_CACHE_SIZE)
def _normalize_cached(value: str) -> ParsedToken:
    d = canonicalize(value)
    if not d or d == WILDCARD:
        return Skip(SKIP_INVALID)

    if d in LOCAL_HOSTNAMES:
        return Skip(SKIP_LOCAL_HOSTNAME)

    ascii_domain = to_punycode(d)
    if ascii_domain is None or not is_valid_domain(ascii_domain):
        return Skip(SKIP_INVALID)

    if is_public_suffix(ascii_domain):
        return Skip(SKIP_PUBLIC_SUFFIX)

    return Domain(ascii_domain)


def normalize(token: ParsedToken) -> ParsedToken:
    """
    Normalize a parsed token.

    Skip tokens pass through unchanged; Domain tokens come back either as a
    canonical Domain or as a Skip with the rejection reason.

    Example:
        >>> normalize(Domain("EXAMPLE.com."))
        Domain(value='example.com')
        >>> normalize(Domain("localhost"))
        Skip(reason='local_hostname')
    """
    if isinstance(token, Skip):
        return token
    return _normalize_cached(token.value)


def normalize_domain(domain: str) -> str | None:
    """Normalize a plain string; returns the canonical domain or None."""
    result = normalize(Domain(domain))
    return result.value if isinstance(result, Domain) else None
