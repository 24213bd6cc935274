"""Tests for filter-list line classification."""

from __future__ import annotations

import pytest

from adblock2hosts.parser import (
    Domain,
    RawLine,
    Skip,
    extract_rule_body,
    is_comment,
    is_cosmetic_rule,
    parse_rule,
    strip_trailing_comment,
)


class TestDomainRules:
    def test_anchored_rule(self) -> None:
        assert parse_rule("||example.com^") == Domain("example.com")

    def test_options_dropped(self) -> None:
        assert parse_rule("||ads.example.net^$important") == Domain("ads.example.net")

    def test_browser_options_dropped(self) -> None:
        assert parse_rule("||example.com^$third-party") == Domain("example.com")

    def test_case_preserved_for_normalizer(self) -> None:
        assert parse_rule("||EXAMPLE.com^") == Domain("EXAMPLE.com")

    def test_surrounding_whitespace(self) -> None:
        assert parse_rule("  ||example.com^  ") == Domain("example.com")

    def test_trailing_comment(self) -> None:
        assert parse_rule("||example.com^ # comment") == Domain("example.com")

    def test_comment_after_separator(self) -> None:
        assert parse_rule("||example.com^#comment") == Domain("example.com")

    def test_comment_after_options(self) -> None:
        assert parse_rule("||example.com^$important # note") == Domain("example.com")

    def test_plain_domain(self) -> None:
        assert parse_rule("tracker.example.org") == Domain("tracker.example.org")

    def test_anchor_without_separator(self) -> None:
        assert parse_rule("||example.com") == Domain("example.com")

    def test_raw_line_input(self) -> None:
        assert parse_rule(RawLine("||example.com^", "list.txt")) == Domain("example.com")

    def test_body_left_for_normalizer(self) -> None:
        """Grammar checks belong to the normalizer."""
        assert parse_rule("||invalid_domain^") == Domain("invalid_domain")


class TestHostsEntries:
    def test_zero_ip(self) -> None:
        assert parse_rule("0.0.0.0 ads.example.com") == Domain("ads.example.com")

    def test_loopback_ip(self) -> None:
        assert parse_rule("127.0.0.1 ads.example.com") == Domain("ads.example.com")

    def test_ipv6_sink(self) -> None:
        assert parse_rule("::1 ads.example.com") == Domain("ads.example.com")

    def test_trailing_comment(self) -> None:
        assert parse_rule("0.0.0.0 ads.example.com # tracker") == Domain("ads.example.com")

    def test_non_blocking_ip(self) -> None:
        assert parse_rule("192.168.1.10 nas.example.com") == Skip("unsupported")

    def test_multiple_hostnames(self) -> None:
        assert parse_rule("0.0.0.0 a.example.com b.example.com") == Skip("unsupported")


class TestSkippedLines:
    @pytest.mark.parametrize("line", ["", "   ", "\t\n"])
    def test_empty(self, line: str) -> None:
        assert parse_rule(line) == Skip("empty")

    @pytest.mark.parametrize("line", ["! comment", "# comment", "  ! Title: EasyList", "!"])
    def test_comment(self, line: str) -> None:
        assert parse_rule(line) == Skip("comment")

    @pytest.mark.parametrize(
        "line",
        [
            "example.com##.ad-banner",
            "example.com#@#.ad-banner",
            "example.com#?#div:has(> .ad)",
            "example.com#$#body { padding: 0; }",
            "example.com#%#//scriptlet('abort-on-property-read', 'ads')",
            "[Adblock Plus 2.0]",
        ],
    )
    def test_cosmetic(self, line: str) -> None:
        assert parse_rule(line) == Skip("cosmetic")

    def test_bare_element_hiding_is_comment(self) -> None:
        """A line starting with ## is caught by the comment check first."""
        assert parse_rule("##.banner") == Skip("comment")

    @pytest.mark.parametrize("line", ["@@||example.com^", "@@||example.com^$important", "@@example.com"])
    def test_exception(self, line: str) -> None:
        assert parse_rule(line) == Skip("exception")

    @pytest.mark.parametrize(
        "line",
        [
            "||sub.domain.co.uk/path*",
            "||example.com/ads/",
            "||*.example.com^",
            "||ads*.example.com^",
            "|example.com^",
            "||example.com^|",
            "/banner[0-9]+/",
            "example,com",
            "||example.com:8080^",
            "||^",
            "$script,third-party",
            "||example.com#fragment",
        ],
    )
    def test_unsupported(self, line: str) -> None:
        assert parse_rule(line) == Skip("unsupported")


class TestHelpers:
    def test_is_comment(self) -> None:
        assert is_comment("! note")
        assert not is_comment("||example.com^")

    def test_is_cosmetic_rule(self) -> None:
        assert is_cosmetic_rule("example.com##.ad")
        assert not is_cosmetic_rule("||example.com^")

    def test_strip_trailing_comment(self) -> None:
        assert strip_trailing_comment("||example.com^#comment") == "||example.com^"
        assert strip_trailing_comment("||example.com#fragment") == "||example.com#fragment"
        assert strip_trailing_comment("||example.com^   ! note") == "||example.com^"

    def test_extract_rule_body(self) -> None:
        assert extract_rule_body("||example.com^$dnstype=AAAA") == "example.com"
        assert extract_rule_body("example.com") == "example.com"
