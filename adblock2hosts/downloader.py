#!/usr/bin/env python3
"""
downloader.py - Async Filter List Downloader with Cache Fallback

Fetches filter lists concurrently and hands their text to the pipeline.
When a cache directory is configured, every successful download is kept on disk
together with its ETag/Last-Modified headers, so unchanged lists are served
from the cache (HTTP 304) and a failing source falls back to its last good copy.

A failed source never aborts the run: it comes back as a FetchResult with
success=False and the pipeline carries on with the others.
"""
from __future__ import annotations

import asyncio
import hashlib
import json
import sys
import time
from pathlib import Path
from typing import NamedTuple
from urllib.parse import urlparse

import aiofiles
import aiohttp


# Default configuration
DEFAULT_TIMEOUT = 10
DEFAULT_RETRIES = 3
DEFAULT_CONCURRENCY = 8
DEFAULT_BACKOFF = 1.0

# State file for ETag/Last-Modified tracking
STATE_FILE = "state.json"


class FetchResult(NamedTuple):
    """Result of a single fetch operation."""
    url: str
    success: bool
    changed: bool
    text: str = ""
    error: str | None = None


def url_to_filename(url: str) -> str:
    """Generate a safe, unique cache filename from a URL."""
    url_hash = hashlib.sha256(url.encode()).hexdigest()[:16]
    domain = urlparse(url).netloc.replace(".", "_").replace(":", "_")[:30] or "unknown"
    return f"{domain}_{url_hash}.txt"


def decode_content(content: bytes) -> str:
    """Decode list bytes as UTF-8, dropping a BOM and replacing bad bytes."""
    return content.decode("utf-8-sig", errors="replace")


def load_sources(sources_file: str | Path) -> list[str]:
    """
    Load URLs from a sources file, skipping comments and empty lines.

    Raises:
        FileNotFoundError: if the sources file does not exist
    """
    path = Path(sources_file)
    if not path.exists():
        raise FileNotFoundError(f"Sources file not found: {sources_file}")

    urls = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            urls.append(line)
    return urls


def load_state(cache_dir: Path) -> dict:
    """Load state.json containing ETag/Last-Modified cache."""
    state_path = cache_dir / STATE_FILE
    if state_path.exists():
        try:
            with open(state_path, encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            print(f"Warning: Could not load state.json: {e}", file=sys.stderr)
    return {}


def save_state(cache_dir: Path, state: dict) -> None:
    """Save state.json atomically."""
    state_path = cache_dir / STATE_FILE
    temp_path = state_path.with_suffix(".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(state, f, indent=2, sort_keys=True)
        temp_path.replace(state_path)
    except OSError as e:
        print(f"Warning: Could not save state.json: {e}", file=sys.stderr)


async def read_cache(cache_path: Path | None) -> str | None:
    """Return the cached text for a source, or None if there is none."""
    if cache_path is None or not cache_path.exists():
        return None
    try:
        async with aiofiles.open(cache_path, "rb") as f:
            return decode_content(await f.read())
    except OSError:
        return None


async def fetch_url(
    session: aiohttp.ClientSession,
    url: str,
    cache_dir: Path | None,
    state: dict,
    timeout: float,
    retries: int,
    backoff: float = DEFAULT_BACKOFF,
) -> FetchResult:
    """
    Fetch a single URL, retrying with exponential backoff.

    Returns:
        FetchResult with the decoded text on success (fresh or cached)
    """
    cache_path = cache_dir / url_to_filename(url) if cache_dir else None

    headers = {}
    if cache_path is not None and cache_path.exists():
        url_state = state.get(url, {})
        if url_state.get("etag"):
            headers["If-None-Match"] = url_state["etag"]
        if url_state.get("last_modified"):
            headers["If-Modified-Since"] = url_state["last_modified"]

    error = "Max retries exceeded"
    attempts = max(retries, 1)
    for attempt in range(attempts):
        try:
            async with session.get(
                url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=timeout),
                allow_redirects=True,
            ) as response:

                # 304 Not Modified - use cached version
                if response.status == 304:
                    cached = await read_cache(cache_path)
                    if cached is not None:
                        return FetchResult(url, success=True, changed=False, text=cached)
                    # Cache file missing, need to re-download
                    headers = {}
                    continue

                if response.status >= 400:
                    error = f"HTTP {response.status}"
                else:
                    content = await response.read()

                    if cache_path is not None:
                        async with aiofiles.open(cache_path, "wb") as f:
                            await f.write(content)

                        new_state = {"filename": cache_path.name}
                        if "ETag" in response.headers:
                            new_state["etag"] = response.headers["ETag"]
                        if "Last-Modified" in response.headers:
                            new_state["last_modified"] = response.headers["Last-Modified"]
                        new_state["fetched_at"] = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
                        state[url] = new_state

                    return FetchResult(url, success=True, changed=True, text=decode_content(content))

        except asyncio.TimeoutError:
            error = "Timeout"
        except aiohttp.ClientError as e:
            error = str(e) or type(e).__name__

        if attempt < attempts - 1:
            await asyncio.sleep(backoff * 2 ** attempt)

    # Fallback to cache
    cached = await read_cache(cache_path)
    if cached is not None:
        return FetchResult(url, success=True, changed=False, text=cached, error=f"{error}, using cached version")
    return FetchResult(url, success=False, changed=False, error=error)


async def fetch_all(
    urls: list[str],
    cache_dir: Path | None = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    backoff: float = DEFAULT_BACKOFF,
) -> list[FetchResult]:
    """Fetch all URLs concurrently with rate limiting. Results keep the order of urls."""
    state: dict = {}
    if cache_dir is not None:
        cache_dir.mkdir(parents=True, exist_ok=True)
        state = load_state(cache_dir)

    semaphore = asyncio.Semaphore(concurrency)

    async def fetch_with_semaphore(url: str) -> FetchResult:
        async with semaphore:
            return await fetch_url(
                session, url, cache_dir, state, timeout, retries, backoff
            )

    connector = aiohttp.TCPConnector(limit=concurrency, limit_per_host=2)
    async with aiohttp.ClientSession(connector=connector) as session:
        tasks = [fetch_with_semaphore(url) for url in urls]
        results = await asyncio.gather(*tasks, return_exceptions=True)

    final_results = []
    for url, result in zip(urls, results):
        if isinstance(result, Exception):
            final_results.append(FetchResult(url, success=False, changed=False, error=str(result)))
        else:
            final_results.append(result)

    if cache_dir is not None:
        save_state(cache_dir, state)

    return final_results


def fetch_sources(urls: list[str], **kwargs) -> list[FetchResult]:
    """Synchronous wrapper around fetch_all()."""
    if not urls:
        return []
    return asyncio.run(fetch_all(urls, **kwargs))
