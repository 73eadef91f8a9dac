#!/usr/bin/env python3
"""
Benchmark Script for Logstream listing and search

Times the group, stream, event and search queries against a running API.
Run benchmark_ingestion.py first so there is something to read.
"""

import sys
import time
import requests
from pathlib import Path
import statistics

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from logstream.core.config import settings


def benchmark_queries(base_url: str):
    """Benchmark listing and search queries"""
    print(f"\n{'=' * 60}")
    print(f"BENCHMARK: Query Performance")
    print(f"{'=' * 60}")

    queries = [
        ("Groups", f"{base_url}/log"),
        ("Streams", f"{base_url}/log?group=service_0"),
        ("Events", f"{base_url}/log?group=service_0&stream=instance_0"),
        ("Search (common)", f"{base_url}/log?group=service_0&search=request"),
        ("Search (rare)", f"{base_url}/log?group=service_0&search=ERROR"),
    ]

    results = []

    for name, url in queries:
        times = []
        rows = 0

        # Run each query 5 times
        for _ in range(5):
            start = time.time()
            try:
                response = requests.get(url, timeout=30)
                elapsed = (time.time() - start) * 1000  # Convert to ms

                if response.status_code == 200:
                    times.append(elapsed)
                    rows = len(response.json())
                else:
                    print(f"Error in {name}: Status {response.status_code}")
            except Exception as e:
                print(f"Error in {name}: {e}")

        if times:
            results.append({
                "name": name,
                "rows": rows,
                "p50": statistics.median(times),
                "avg": statistics.mean(times),
                "min": min(times),
                "max": max(times)
            })

    print(f"\n{'Query':<20} {'Rows':>8} {'P50':>10} {'Avg':>10} {'Max':>10}")
    print(f"{'-' * 62}")
    for r in results:
        print(f"{r['name']:<20} {r['rows']:>8} {r['p50']:>9.0f}ms "
              f"{r['avg']:>9.0f}ms {r['max']:>9.0f}ms")

    print(f"{'=' * 60}\n")

    return results


def main():
    base_url = settings.api_base_url

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

    benchmark_queries(base_url)

    print("\n" + "=" * 60)
    print("BENCHMARK COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
