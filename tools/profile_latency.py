import argparse
import asyncio
import math
import time

from services.pipeline import ChequeScanPipeline, PipelineConfig
from services.verification.client import VerificationResult
from tools.synthetic_page import generate_rows, render_listing


class SimulatedVerifier:
    """Stands in for the remote service: fixed latency, clean result."""

    def __init__(self, latency_s: float) -> None:
        self.latency_s = latency_s

    async def verify(self, amount, due_date, code, document_number):
        await asyncio.sleep(self.latency_s)
        return VerificationResult(status_text="OK", query_status=1)


async def _run_once(pipe: ChequeScanPipeline, html: str) -> float:
    t0 = time.perf_counter()
    await pipe.scan_html(html)
    return time.perf_counter() - t0


def profile():
    ap = argparse.ArgumentParser()
    ap.add_argument("--rows", type=int, default=200)
    ap.add_argument("--checked", type=float, default=0.5)
    ap.add_argument("--latency-ms", type=float, default=50.0, help="Simulated service latency per call")
    ap.add_argument("--concurrency", type=int, default=2)
    ap.add_argument("--runs", type=int, default=10)
    args = ap.parse_args()

    html = render_listing(generate_rows(args.rows, checked_ratio=args.checked, seed=7))
    pipe = ChequeScanPipeline(
        verifier=SimulatedVerifier(args.latency_ms / 1000.0),
        config=PipelineConfig(concurrency=args.concurrency),
    )

    print("⏳ Warmup...")
    asyncio.run(_run_once(pipe, html))

    print(f"🚀 Profiling {args.runs} runs...")
    times = [asyncio.run(_run_once(pipe, html)) for _ in range(args.runs)]

    avg = sum(times) / len(times)
    selected = int(pipe.summary.snapshot()["total"]) if pipe.summary else 0
    print(f"📊 Average scan: {avg*1000:.2f} ms for {selected} selected cheque(s)")
    if selected:
        floor = math.ceil(selected / args.concurrency) * args.latency_ms
        print(f"   lower bound from latency/concurrency: {floor:.2f} ms")


if __name__ == "__main__":
    profile()
