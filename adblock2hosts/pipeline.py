#!/usr/bin/env python3
"""
pipeline.py

Main processing pipeline for hosts-file generation.

Usage:
    python -m adblock2hosts [--sources FILE] [--url URL ...] [--input FILE ...]
                            [--output hosts.txt] [--cache DIR]

Pipeline stages:
1. Fetch every configured source (URLs concurrently, local files / stdin directly)
2. Parse each line (drop comments, cosmetic, exception and unsupported rules)
3. Normalize and validate each domain
4. Aggregate into one sorted, duplicate-free set
5. Write "0.0.0.0 <domain>" lines atomically
"""
from __future__ import annotations

import argparse
import sys
import time
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, NamedTuple

from adblock2hosts.aggregator import DomainSet
from adblock2hosts.downloader import (
    DEFAULT_CONCURRENCY,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    decode_content,
    fetch_sources,
    load_sources,
)
from adblock2hosts.formatter import format_hosts
from adblock2hosts.normalizer import normalize
from adblock2hosts.parser import Domain, RawLine, parse_rule
from adblock2hosts.writer import write_atomic

DEFAULT_OUTPUT = "hosts.txt"
DEFAULT_SOURCES_FILE = "config/sources.txt"
STDIN_SOURCE = "-"


class Source(NamedTuple):
    """One already-fetched filter list."""
    name: str
    text: str


@dataclass
class ConvertStats:
    """Statistics from one conversion run."""
    sources: int = 0
    lines_raw: int = 0
    kept: int = 0
    duplicates: int = 0
    subdomains_pruned: int = 0
    output: int = 0
    skipped: dict[str, int] = field(default_factory=dict)

    def count_skip(self, reason: str) -> None:
        self.skipped[reason] = self.skipped.get(reason, 0) + 1


def convert_lines(
    lines: Iterable[str],
    source: str,
    domains: DomainSet,
    stats: ConvertStats,
) -> DomainSet:
    """
    Run parser and normalizer over one source's lines.

    Args:
        lines: Raw lines of the source
        source: Source identifier (URL or path)
        domains: Set to insert surviving domains into
        stats: Counters updated in place

    Returns:
        The same DomainSet, for chaining
    """
    for text in lines:
        stats.lines_raw += 1
        token = normalize(parse_rule(RawLine(text, source)))
        if isinstance(token, Domain):
            stats.kept += 1
            domains.insert(token.value)
        else:
            stats.count_skip(token.reason)
    return domains


def convert_sources(
    sources: Iterable[Source],
    prune_subdomains: bool = False,
) -> tuple[list[str], ConvertStats]:
    """
    Convert any number of sources into the final sorted domain list.

    Zero sources, or sources with nothing but skipped lines, give an empty list.
    """
    stats = ConvertStats()
    domains = DomainSet()

    for source in sources:
        stats.sources += 1
        domains = convert_lines(source.text.splitlines(), source.name, domains, stats)

    stats.duplicates = domains.duplicates
    if prune_subdomains:
        stats.subdomains_pruned = domains.prune_subdomains()

    result = domains.finalize()
    stats.output = len(result)
    return result, stats


def render_sources(
    sources: Iterable[Source],
    prune_subdomains: bool = False,
) -> tuple[str, ConvertStats]:
    """Convert sources and render the hosts file text."""
    domains, stats = convert_sources(sources, prune_subdomains=prune_subdomains)
    return format_hosts(domains), stats


def read_sources(paths: Iterable[str]) -> list[Source]:
    """
    Load local filter lists. "-" reads standard input.

    Files and stdin are both decoded as UTF-8 with the BOM dropped and bad
    bytes replaced.

    Raises:
        FileNotFoundError: if a path does not exist
    """
    sources = []
    for path in paths:
        if path == STDIN_SOURCE:
            sources.append(Source("<stdin>", decode_content(sys.stdin.buffer.read())))
        else:
            sources.append(Source(path, decode_content(Path(path).read_bytes())))
    return sources


def print_summary(stats: ConvertStats) -> None:
    """Print formatted summary."""
    print("\n" + "=" * 60)
    print("📊 PIPELINE SUMMARY")
    print("=" * 60)

    print(f"\n📁 Sources:  {stats.sources}")
    print(f"\n📈 Lines:")
    print(f"   Raw input:    {stats.lines_raw:>12,}")
    print(f"   Domains kept: {stats.kept:>12,}")
    print(f"   Final output: {stats.output:>12,}")

    print(f"\n🧹 Skipped:")
    for reason, count in sorted(stats.skipped.items()):
        print(f"   {reason + ':':<18} {count:>10,}")

    print(f"\n🔧 Deduplication:")
    print(f"   Duplicates:        {stats.duplicates:>10,}")
    print(f"   Subdomains pruned: {stats.subdomains_pruned:>10,}")


def run(
    urls: list[str],
    inputs: list[str],
    output: str,
    cache_dir: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    concurrency: int = DEFAULT_CONCURRENCY,
    prune_subdomains: bool = False,
) -> int:
    """
    Fetch, convert and write. Returns a process exit code.

    An existing output file is left alone when no source could be read.
    """
    sources = read_sources(inputs)

    if urls:
        print(f"🔄 Fetching {len(urls)} sources...")
    results = fetch_sources(
        urls,
        cache_dir=Path(cache_dir) if cache_dir else None,
        concurrency=concurrency,
        timeout=timeout,
        retries=retries,
    )
    for result in results:
        if result.success:
            status = "fetched" if result.changed else "cached"
            print(f"   ✓ {result.url} ({status})")
            if result.error:
                print(f"     ⚠️  {result.error}", file=sys.stderr)
            sources.append(Source(result.url, result.text))
        else:
            print(f"   ✗ {result.url}: {result.error}", file=sys.stderr)

    if not sources:
        print(f"No sources fetched. Skipping writing {output}.", file=sys.stderr)
        return 1

    print("\n⚙️  Converting...")
    text, stats = render_sources(sources, prune_subdomains=prune_subdomains)

    write_atomic(output, text)
    print(f"   Wrote {stats.output:,} domains to {output}")

    print_summary(stats)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adblock2hosts",
        description="Convert AdBlock/AdGuard filter lists to a 0.0.0.0 hosts file",
    )
    parser.add_argument("--sources", help=f"Path to sources file (default: {DEFAULT_SOURCES_FILE})")
    parser.add_argument("--url", action="append", default=[], help="Source URL (repeatable)")
    parser.add_argument("--input", action="append", default=[], help="Local list file, '-' for stdin (repeatable)")
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help="Output hosts file")
    parser.add_argument("--cache", help="Cache directory for fetched lists and ETag state")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Request timeout in seconds")
    parser.add_argument("--retries", type=int, default=DEFAULT_RETRIES, help="Attempts per URL")
    parser.add_argument("--concurrency", type=int, default=DEFAULT_CONCURRENCY, help="Max concurrent downloads")
    parser.add_argument("--prune-subdomains", action="store_true", help="Drop subdomains of listed domains")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        urls = list(args.url)
        sources_file = args.sources
        if sources_file is None and not urls and not args.input:
            sources_file = DEFAULT_SOURCES_FILE
        if sources_file is not None:
            urls.extend(load_sources(sources_file))

        print("🚀 Starting hosts conversion...")
        print("-" * 60)

        start_time = time.time()
        code = run(
            urls,
            args.input,
            args.output,
            cache_dir=args.cache,
            timeout=args.timeout,
            retries=args.retries,
            concurrency=args.concurrency,
            prune_subdomains=args.prune_subdomains,
        )
        total_time = time.time() - start_time

        if code == 0:
            print(f"\n⏱️  Total time: {total_time:.1f}s")
            print("✅ Pipeline completed successfully!")
        return code

    except Exception as e:
        print(f"\n❌ ERROR: {e}", file=sys.stderr)
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
