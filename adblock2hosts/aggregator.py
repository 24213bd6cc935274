#!/usr/bin/env python3
"""
aggregator.py - Domain Set with Deterministic Output

Third stage of the pipeline. Collects normalized domains from every source
into one duplicate-free set.

DETERMINISM:
    The output is sorted lexicographically on finalize(). Insertion order,
    source order and the order in which concurrent fetches complete have no
    effect on the result, so two runs over the same inputs produce
    byte-identical hosts files and clean diffs in version control.

SUBDOMAIN PRUNING (optional):
    Hosts entries match exact names only, so pruning is OFF by default.
    When enabled, ads.example.com is dropped if example.com is present;
    parents are walked up to the registrable domain only.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Iterator

from adblock2hosts.normalizer import get_registered_domain


@lru_cache(maxsize=65536)
def walk_parent_domains(domain: str) -> tuple[str, ...]:
    """
    Walk up the domain hierarchy to find all parent domains.

    Stops at the registrable domain, so public suffixes are never returned.

    Example: "a.b.example.com" -> ("b.example.com", "example.com")
    """
    registered = get_registered_domain(domain)
    if not registered or registered == domain:
        return ()

    labels = domain.split(".")
    parents = []
    for i in range(1, len(labels)):
        parent = ".".join(labels[i:])
        parents.append(parent)
        if parent == registered:
            break
    return tuple(parents)


class DomainSet:
    """
    Duplicate-free collection of normalized domains.

    insert() is idempotent; finalize() always returns the same order for the
    same members.

    Example:
        >>> domains = DomainSet()
        >>> domains.insert("example.com")
        True
        >>> domains.insert("example.com")
        False
        >>> domains.finalize()
        ['example.com']
    """

    def __init__(self, domains: Iterable[str] = ()) -> None:
        self._domains: set[str] = set()
        self.duplicates = 0
        self.update(domains)

    def __len__(self) -> int:
        return len(self._domains)

    def __contains__(self, domain: object) -> bool:
        return domain in self._domains

    def __iter__(self) -> Iterator[str]:
        return iter(self.finalize())

    def __repr__(self) -> str:
        return f"DomainSet({len(self._domains)} domains)"

    def insert(self, domain: str) -> bool:
        """Add a domain. Returns False (and counts a duplicate) if already present."""
        if domain in self._domains:
            self.duplicates += 1
            return False
        self._domains.add(domain)
        return True

    def update(self, domains: Iterable[str]) -> None:
        for domain in domains:
            self.insert(domain)

    def merge(self, other: DomainSet) -> DomainSet:
        """Fold another set into this one (e.g. one built per source)."""
        self.duplicates += other.duplicates
        self.update(other._domains)
        return self

    def prune_subdomains(self) -> int:
        """
        Drop every domain whose parent is also in the set.

        Returns:
            Number of domains removed
        """
        redundant = {
            domain for domain in self._domains
            if any(parent in self._domains for parent in walk_parent_domains(domain))
        }
        self._domains -= redundant
        return len(redundant)

    def finalize(self) -> list[str]:
        """Return the members in lexicographic order."""
        return sorted(self._domains)
