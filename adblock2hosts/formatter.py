"""Hosts-file rendering: one "0.0.0.0 <domain>" line per domain, nothing else."""

from __future__ import annotations

from typing import Iterable, Iterator

# Sink address understood by the router's adlist import
BLOCK_IP = "0.0.0.0"


def format_entry(domain: str) -> str:
    """Render a single hosts line (without newline)."""
    return f"{BLOCK_IP} {domain}"


def iter_hosts_lines(domains: Iterable[str]) -> Iterator[str]:
    """Yield newline-terminated hosts lines in the order given."""
    for domain in domains:
        yield format_entry(domain) + "\n"


def format_hosts(domains: Iterable[str]) -> str:
    """
    Render the whole hosts file.

    No header, no footer, a single final newline. An empty input renders as
    an empty string.
    """
    return "".join(iter_hosts_lines(domains))
