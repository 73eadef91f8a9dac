#!/usr/bin/env python3
"""
Benchmark Script for Logstream ingestion

Posts events one by one to POST /log across a handful of groups and streams,
then optionally triggers a full reindex.

Usage:
    python scripts/benchmark_ingestion.py [total_events] [--reindex]
"""

import sys
import time
import requests
from datetime import datetime, timedelta, timezone
from pathlib import Path
import statistics

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from logstream.core.config import settings


def generate_events(count: int, start_date: datetime):
    """Generate test events"""
    levels = ["DEBUG", "INFO", "WARNING", "ERROR"]

    for i in range(count):
        yield {
            "group": f"service_{i % 5}",
            "stream": f"instance_{i % 20}",
            "timestamp": (start_date + timedelta(seconds=i)).isoformat(),
            "message": f"{levels[i % len(levels)]} request {i} handled"
        }


def benchmark_ingestion(base_url: str, total_events: int = 10000):
    """Benchmark event ingestion"""
    print(f"\n{'=' * 60}")
    print(f"BENCHMARK: Ingesting {total_events:,} events")
    print(f"{'=' * 60}")

    start_date = datetime.now(timezone.utc) - timedelta(seconds=total_events)

    stored = 0
    not_indexed = 0
    request_times = []

    start_time = time.time()

    with requests.Session() as session:
        for i, event in enumerate(generate_events(total_events, start_date)):
            request_start = time.time()

            try:
                response = session.post(f"{base_url}/log", json=event, timeout=30)

                if response.status_code == 201:
                    stored += 1
                    if not response.json().get("indexed", False):
                        not_indexed += 1
                else:
                    print(f"Error on event {i}: Status {response.status_code}")

            except Exception as e:
                print(f"Error on event {i}: {e}")

            request_times.append(time.time() - request_start)

            if i % 1000 == 0:
                print(f"Progress: {i + 1:,} / {total_events:,} events")

    total_time = time.time() - start_time

    print(f"\n{'=' * 60}")
    print(f"INGESTION RESULTS")
    print(f"{'=' * 60}")
    print(f"Total events:        {total_events:,}")
    print(f"Stored:              {stored:,}")
    print(f"Not indexed:         {not_indexed:,}")
    print(f"Total time:          {total_time:.2f}s")
    print(f"Events/sec:          {total_events / total_time:,.0f}")
    print(f"Avg request time:    {statistics.mean(request_times) * 1000:.1f}ms")
    print(f"Max request time:    {max(request_times) * 1000:.1f}ms")
    print(f"{'=' * 60}\n")

    return total_time


def benchmark_reindex(base_url: str):
    """Time a full reindex"""
    start = time.time()
    response = requests.post(f"{base_url}/index", timeout=3600)
    elapsed = time.time() - start

    if response.status_code == 200:
        print(f"Reindexed {response.json()['indexed']:,} documents in {elapsed:.2f}s")
    else:
        print(f"Reindex failed: Status {response.status_code}")


def main():
    base_url = settings.api_base_url
    args = sys.argv[1:]
    total_events = int(args[0]) if args and args[0].isdigit() else 10000

    print("\n" + "=" * 60)
    print("LOGSTREAM API - BENCHMARK")
    print("=" * 60)
    print(f"Target: {base_url}")
    print("=" * 60)

    # Test connection
    try:
        response = requests.get(f"{base_url}/health", timeout=5)
        if response.status_code != 200:
            print("Error: API is not healthy")
            sys.exit(1)
    except Exception as e:
        print(f"Error: Cannot connect to API: {e}")
        sys.exit(1)

    # Run benchmarks
    benchmark_ingestion(base_url, total_events=total_events)

    if "--reindex" in args:
        benchmark_reindex(base_url)

    print("\n" + "=" * 60)
    print("BENCHMARK COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
