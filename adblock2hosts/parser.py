#!/usr/bin/env python3
"""
parser.py - Rule Classification for Hosts Conversion

This module classifies each line of a filter list. It's the first stage of the
pipeline, running BEFORE the normalizer.

Critical Understanding - Hosts Files Only Know Domains:
    A hosts file maps one name to one address. It has no wildcards, no paths,
    no request types and no exceptions. Only a small subset of adblock syntax
    survives the trip:

        ||ads.example.com^              →  ads.example.com
        ||ads.example.com^$important    →  ads.example.com   (options dropped)
        0.0.0.0 ads.example.com         →  ads.example.com
        ads.example.com                 →  ads.example.com

    Everything else is skipped:

        example.com##.ad-banner         →  cosmetic
        @@||example.com^                →  exception (never un-blocks)
        ||example.com/ads/*             →  unsupported (path/wildcard)
        ||*.example.com^                →  unsupported (wildcard)

Design Decision - Skip, Don't Guess:
    A rule whose body is not a plain domain after stripping the anchor,
    options and separator is SKIPPED. Trimming ||example.com/ads/* down to
    example.com would block the whole site for a rule that targeted one path.

Key Operations:
    1. Remove empty lines and comments (# and ! lines)
    2. Discard cosmetic/element-hiding rules (##, #@#, #?#, #$#, etc.)
    3. Discard exception rules (@@)
    4. Extract the body of ABP rules, hosts entries and plain domains
"""

from __future__ import annotations

import re
from typing import Final, NamedTuple


# =============================================================================
# SKIP REASONS
# =============================================================================

SKIP_EMPTY: Final = "empty"
SKIP_COMMENT: Final = "comment"
SKIP_COSMETIC: Final = "cosmetic"
SKIP_EXCEPTION: Final = "exception"
SKIP_UNSUPPORTED: Final = "unsupported"


# =============================================================================
# REGEX PATTERNS
# =============================================================================

#: Cosmetic/element-hiding rule patterns (DISCARD entirely)
#: These include: ## #@# #?# #$# #$?# #@?# #@$# etc.
COSMETIC_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"#[@$?%]*#|"            # Element hiding and extended CSS: ## #@# #?# #$#
    r"\$#|"                  # Snippet injection: $#
    r"#%#|"                  # Scriptlet injection: #%#
    r"^\[adblock",           # Adblock header: [Adblock Plus 2.0]
    re.IGNORECASE
)

#: Pattern to detect if a line is a comment (starts with # or !)
COMMENT_PATTERN: Final[re.Pattern[str]] = re.compile(r"^\s*[#!]")

#: Trailing inline comment: match " # comment" (space before #)
#: Example: "||example.com^ # block ads" → "||example.com^"
TRAILING_COMMENT_PATTERN: Final[re.Pattern[str]] = re.compile(r"\s+[#!].*$")

#: Comment glued to the separator: "||example.com^#note" → "||example.com^"
SEPARATOR_COMMENT_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?<=\^)#.*$")

#: Hosts format: IP hostname [hostname2 ...]
HOSTS_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^([\d.:a-fA-F]+)\s+"   # IP address (IPv4 or IPv6)
    r"(.+)$"                 # Rest of line (hostnames)
)

#: Characters that can never appear in a plain domain body.
#: Non-ASCII letters are allowed through for IDNA conversion later.
UNSUPPORTED_BODY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[/*|^$@#!?&=~,;:\[\]()\\\"'<>%+\s]"
)

#: Sink addresses used by blocking hosts files
BLOCKING_IPS: Final[frozenset[str]] = frozenset({
    "0.0.0.0", "127.0.0.1", "::", "::0", "::1",
    "0:0:0:0:0:0:0:0", "0:0:0:0:0:0:0:1",
})

ABP_ANCHOR: Final = "||"
ABP_SEPARATOR: Final = "^"
ABP_OPTIONS: Final = "$"
EXCEPTION_MARKER: Final = "@@"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

class RawLine(NamedTuple):
    """
    A single line of source text.

    Attributes:
        text: The line as read from the source
        source: Identifier of the originating source (URL or path)
    """
    text: str
    source: str = ""


class Domain(NamedTuple):
    """A domain token extracted from a rule (not yet normalized)."""
    value: str


class Skip(NamedTuple):
    """
    A line that yields no domain.

    Attributes:
        reason: One of the SKIP_* constants (used for stats)

    Example:
        >>> parse_rule("! Title: EasyList")
        Skip(reason='comment')
    """
    reason: str


#: Tagged result of parsing or normalizing one line
ParsedToken = Domain | Skip


# =============================================================================
# CLASSIFICATION HELPERS
# =============================================================================

def is_comment(line: str) -> bool:
    """
    Check if line is a comment (starts with # or !).

    Example:
        >>> is_comment("# This is a comment")
        True
        >>> is_comment("||example.com^")
        False
    """
    return bool(COMMENT_PATTERN.match(line))


def is_cosmetic_rule(line: str) -> bool:
    """
    Check if line is a cosmetic/element-hiding rule.

    Example:
        >>> is_cosmetic_rule("example.com##.ad-banner")
        True
        >>> is_cosmetic_rule("||example.com^")
        False
    """
    return bool(COSMETIC_PATTERN.search(line))


def strip_trailing_comment(line: str) -> str:
    """
    Remove a trailing inline comment.

    Strips comments preceded by whitespace, or a # directly after the ^
    separator. Any other bare # is left for the body check to reject.

    Example:
        >>> strip_trailing_comment("||example.com^ # block ads")
        '||example.com^'
        >>> strip_trailing_comment("||example.com^#comment")
        '||example.com^'
        >>> strip_trailing_comment("||example.com#fragment")
        '||example.com#fragment'
    """
    line = SEPARATOR_COMMENT_PATTERN.sub("", line)
    match = TRAILING_COMMENT_PATTERN.search(line)
    if match:
        return line[:match.start()].rstrip()
    return line


def extract_rule_body(rule: str) -> str:
    """
    Reduce an ABP-style rule to its pattern body.

    Strips the leading || anchor, everything from the options marker ($)
    onwards, and one trailing ^ separator.

    Example:
        >>> extract_rule_body("||ads.example.net^$important")
        'ads.example.net'
        >>> extract_rule_body("||example.com/ads^")
        'example.com/ads'
    """
    if rule.startswith(ABP_ANCHOR):
        rule = rule[len(ABP_ANCHOR):]
    rule = rule.split(ABP_OPTIONS, 1)[0]
    if rule.endswith(ABP_SEPARATOR):
        rule = rule[:-len(ABP_SEPARATOR)]
    return rule


def parse_hosts_entry(line: str) -> ParsedToken | None:
    """
    Parse a hosts-format line.

    Returns:
        None if the line is not hosts-shaped, otherwise Domain or Skip.
        Only single-hostname lines pointing at a sink address are kept.
    """
    match = HOSTS_PATTERN.match(line)
    if not match:
        return None

    ip, rest = match.group(1), match.group(2)
    hostnames = rest.split()
    if ip not in BLOCKING_IPS or len(hostnames) != 1:
        return Skip(SKIP_UNSUPPORTED)
    return Domain(hostnames[0])


# =============================================================================
# PARSING
# =============================================================================

def parse_rule(line: RawLine | str) -> ParsedToken:
    """
    Classify a single filter-list line.

    Never raises: any shape that is not a plain domain rule becomes a Skip.

    Args:
        line: The raw line (a RawLine or plain string)

    Returns:
        Domain with the un-normalized body, or Skip with a reason

    Example:
        >>> parse_rule("||example.com^")
        Domain(value='example.com')
        >>> parse_rule("@@||example.com^")
        Skip(reason='exception')
        >>> parse_rule("||sub.domain.co.uk/path*")
        Skip(reason='unsupported')
    """
    text = line.text if isinstance(line, RawLine) else line
    text = text.strip()

    if not text:
        return Skip(SKIP_EMPTY)

    if is_comment(text):
        return Skip(SKIP_COMMENT)

    if is_cosmetic_rule(text):
        return Skip(SKIP_COSMETIC)

    if text.startswith(EXCEPTION_MARKER):
        return Skip(SKIP_EXCEPTION)

    text = strip_trailing_comment(text)

    hosts = parse_hosts_entry(text)
    if hosts is not None:
        return hosts

    body = extract_rule_body(text)
    if not body or UNSUPPORTED_BODY_PATTERN.search(body):
        return Skip(SKIP_UNSUPPORTED)

    return Domain(body)
