"""HTTP benchmark for the comment listing endpoints, cold cache vs warm cache."""
import asyncio
import argparse
import time
import statistics
import httpx

DEFAULT_BASE_URL = "http://localhost:8000"

ENDPOINTS = [
    ("GET roots media=1", "/api/v1/comments/roots?media_id=1"),
    ("GET roots media=1 take=50 asc", "/api/v1/comments/roots?media_id=1&take=50&order=asc"),
    ("GET children parent=1", "/api/v1/comments/1/children"),
    ("GET children parent=1 page=2", "/api/v1/comments/1/children?page=2"),
    ("GET comment 1", "/api/v1/comments/1"),
    ("GET /api/v1/metrics", "/api/v1/metrics"),
]


async def benchmark_endpoint(client: httpx.AsyncClient, base_url: str, name: str, path: str,
                             iterations: int = 50):
    times = []
    query_counts = []
    errors = 0
    cold_ms = None
    cold_queries = None

    for i in range(iterations):
        try:
            start = time.perf_counter()
            resp = await client.get(f"{base_url}{path}")
            elapsed = (time.perf_counter() - start) * 1000
        except httpx.HTTPError:
            errors += 1
            continue

        if resp.status_code != 200:
            errors += 1
            continue
        qc = resp.headers.get("X-Query-Count")
        if i == 0:
            # First request after startup populates the cache.
            cold_ms = elapsed
            cold_queries = qc
            continue
        times.append(elapsed)
        if qc is not None:
            query_counts.append(int(qc))

    if not times:
        return {"name": name, "error": f"All {iterations} requests failed"}

    return {
        "name": name,
        "cold_ms": round(cold_ms, 2) if cold_ms is not None else None,
        "cold_queries": cold_queries if cold_queries is not None else "N/A",
        "avg_ms": round(statistics.mean(times), 2),
        "p50_ms": round(sorted(times)[len(times) // 2], 2),
        "p95_ms": round(sorted(times)[int(len(times) * 0.95)], 2),
        "queries": round(statistics.mean(query_counts), 1) if query_counts else "N/A",
        "errors": errors,
        "iterations": len(times),
    }


async def run_benchmark(base_url: str, iterations: int = 50):
    print("=" * 92)
    print(f"Comment Threads Benchmark — {iterations} iterations per endpoint")
    print(f"Target: {base_url}")
    print("=" * 92)

    async with httpx.AsyncClient() as client:
        try:
            resp = await client.get(f"{base_url}/health")
            if resp.status_code != 200:
                print(f"ERROR: Health check failed ({resp.status_code})")
                return
            print(f"Health: {resp.json()}")
        except httpx.HTTPError as e:
            print(f"ERROR: Cannot connect to {base_url}: {e}")
            return

        print()
        print(f"{'Endpoint':<36} {'Cold':>9} {'ColdQ':>6} {'Avg':>9} {'P50':>9} {'P95':>9} {'Q':>5} {'Err':>4}")
        print("-" * 92)

        for name, path in ENDPOINTS:
            result = await benchmark_endpoint(client, base_url, name, path, iterations)
            if "error" in result:
                print(f"{result['name']:<36} {'ERROR':>9}")
                continue
            cold = f"{result['cold_ms']:.1f}ms" if result["cold_ms"] is not None else "N/A"
            print(
                f"{result['name']:<36} "
                f"{cold:>9} "
                f"{str(result['cold_queries']):>6} "
                f"{result['avg_ms']:>7.1f}ms "
                f"{result['p50_ms']:>7.1f}ms "
                f"{result['p95_ms']:>7.1f}ms "
                f"{str(result['queries']):>5} "
                f"{result['errors']:>4}"
            )

        print("-" * 92)
        print("\nBenchmark complete.")


def main():
    parser = argparse.ArgumentParser(description="Benchmark the comment listing endpoints")
    parser.add_argument("-n", "--iterations", type=int, default=50, help="Iterations per endpoint")
    parser.add_argument("--base-url", default=DEFAULT_BASE_URL, help="API base URL")
    args = parser.parse_args()
    asyncio.run(run_benchmark(args.base_url, args.iterations))


if __name__ == "__main__":
    main()
