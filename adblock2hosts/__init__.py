"""
adblock2hosts package - AdBlock/AdGuard filter lists to router hosts file

Modules:
    parser: Classify filter-list lines (domain rule or skip)
    normalizer: Canonicalize and validate domains
    aggregator: Duplicate-free domain set with sorted output
    formatter: Render "0.0.0.0 <domain>" lines
    downloader: Fetch sources with retries and cache fallback
    writer: Atomic output writing
    pipeline: Main processing pipeline and CLI
"""

__version__ = "1.0.0"
