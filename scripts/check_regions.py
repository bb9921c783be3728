#!/usr/bin/env python3
"""Region check: N parallel GET / requests against a deployed URL with rotating location headers.
Reports p50/p95 latency, which regions answered, and status counts.
"""
from __future__ import annotations

import argparse
import asyncio
from collections import Counter
import itertools
import statistics
import time

import httpx

DEFAULT_LOCATIONS = (
    "Paris,Ile-de-France,France",
    "Tokyo,Tokyo,Japan",
    "Chicago,Illinois,United States",
)
LOCATION_HEADER = "X-Client-Geo-Location"


def _pctl(values: list[float], q: float) -> float:
    if not values:
        return 0.0
    xs = sorted(values)
    idx = int(q * (len(xs) - 1))
    return xs[idx]


def _summary(values: list[float]) -> str:
    if not values:
        return "n=0"
    return (
        f"n={len(values)} "
        f"avg={statistics.mean(values):.3f} "
        f"p50={_pctl(values, 0.50):.3f} "
        f"p95={_pctl(values, 0.95):.3f} "
        f"min={min(values):.3f} "
        f"max={max(values):.3f}"
    )


async def fetch_one(client: httpx.AsyncClient, url: str, i: int, location: str) -> tuple[int, float, int | str, dict]:
    """Single request. Returns (request_idx, latency_s, status, body).

    Transport failures (refused connection, timeout) are reported as the exception
    name in place of a status code, so one dead backend does not abort the run.
    """
    t0 = time.perf_counter()
    try:
        resp = await client.get(url, headers={LOCATION_HEADER: location})
    except httpx.HTTPError as e:
        return i, time.perf_counter() - t0, type(e).__name__, {"error": str(e)}
    latency = time.perf_counter() - t0
    try:
        body = resp.json()
    except ValueError:
        body = {"error": resp.text}
    if not isinstance(body, dict):
        body = {"error": f"unexpected body: {body!r}"}
    return i, latency, resp.status_code, body


def _meta(body: dict) -> dict:
    meta = body.get("meta")
    return meta if isinstance(meta, dict) else {}


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--url", required=True, help="e.g. http://<global-ip>/")
    parser.add_argument("--n", type=int, default=8)
    parser.add_argument("--location", action="append", default=None)
    parser.add_argument("--timeout", type=float, default=60.0)
    args = parser.parse_args()

    locations = itertools.cycle(args.location or DEFAULT_LOCATIONS)
    t_wall_start = time.perf_counter()

    async with httpx.AsyncClient(timeout=args.timeout) as client:
        tasks = [fetch_one(client, args.url, i, next(locations)) for i in range(args.n)]
        results = await asyncio.gather(*tasks)

    t_wall = time.perf_counter() - t_wall_start

    latencies = [r[1] for r in results]
    statuses = Counter(r[2] for r in results)
    regions = Counter(_meta(r[3]).get("served_from_region", "-") for r in results)

    print(f"=== {args.n} parallel GET {args.url} ===")
    print(f"Total wall time:    {t_wall:.3f}s")
    print(f"Latency (s):        {_summary(latencies)}")
    status_text = ", ".join(f"{k}:{v}" for k, v in sorted(statuses.items(), key=lambda kv: str(kv[0])))
    print(f"Status codes:       {status_text}")
    print(f"Served from:        {', '.join(f'{k}:{v}' for k, v in regions.most_common())}")
    print("")
    print("Per-request snapshot:")
    for req_idx, latency_s, status, body in sorted(results, key=lambda r: r[0]):
        meta = _meta(body)
        print(
            f"  req={req_idx:02d} "
            f"lat={latency_s:.3f}s "
            f"status={status} "
            f"region={meta.get('served_from_region', '-')} "
            f"location={meta.get('user_detected_location', '-')!r}"
        )
        if "error" in body:
            print(f"         error={body['error']}")


if __name__ == "__main__":
    asyncio.run(main())
