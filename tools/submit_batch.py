#!/usr/bin/env python3
import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

import requests
from rich.console import Console
from rich.table import Table

console = Console()


def _chunk(xs: List[Path], batch_size: int) -> List[List[Path]]:
    if batch_size <= 0:
        return [xs]
    return [xs[i : i + batch_size] for i in range(0, len(xs), batch_size)]


def _post_scan_batch(pages: List[Path], url: str, timeout_s: int) -> Dict[str, Any]:
    files = [("files", (p.name, p.read_bytes(), "text/html")) for p in pages]
    r = requests.post(url, files=files, timeout=timeout_s)
    r.raise_for_status()
    return r.json()


def main() -> None:
    ap = argparse.ArgumentParser(description="Send saved cheque listings to a running gateway.")
    ap.add_argument("--pages-dir", required=True, help="Folder containing .html pages (recursively).")
    ap.add_argument("--gateway", default="http://127.0.0.1:8000", help="Gateway base URL.")
    ap.add_argument("--endpoint", default="/scan/batch", help="Batch scan endpoint path.")
    ap.add_argument("--timeout-s", type=int, default=120, help="HTTP timeout per batch (s).")
    ap.add_argument("--batch-size", type=int, default=4, help="Number of pages per request.")
    ap.add_argument("--out-dir", default=None, help="Write annotated pages and reports here.")
    args = ap.parse_args()

    base = Path(args.pages_dir)
    pages = sorted(p for p in base.rglob("*.html") if p.is_file())
    if not pages:
        console.print(f"[yellow]No .html pages under {base}[/yellow]")
        sys.exit(1)

    endpoint = args.endpoint if args.endpoint.startswith("/") else f"/{args.endpoint}"
    url = f"{args.gateway.rstrip('/')}{endpoint}"
    out_dir = Path(args.out_dir) if args.out_dir else None
    if out_dir:
        out_dir.mkdir(parents=True, exist_ok=True)

    table = Table(show_header=True)
    for col in ("Page", "OK", "Total", "Occurrences", "Received", "Not received"):
        table.add_column(col)

    for batch in _chunk(pages, args.batch_size):
        try:
            resp = _post_scan_batch(batch, url=url, timeout_s=args.timeout_s)
        except requests.exceptions.RequestException as e:
            console.print(f"[red]Transport error for batch: {e}[/red]")
            for p in batch:
                table.add_row(p.name, "no", "-", "-", "-", "-")
            continue

        for item in resp.get("results", []):
            name = item.get("filename") or "?"
            if not item.get("ok"):
                table.add_row(name, f"no ({item.get('error')})", "-", "-", "-", "-")
                continue
            res = item["result"]
            s = res.get("summary", {})
            table.add_row(
                name,
                "yes",
                str(s.get("total", 0)),
                str(s.get("occurrences", 0)),
                str(s.get("received", 0)),
                str(s.get("not_received", 0)),
            )
            if out_dir:
                stem = Path(name).stem
                (out_dir / f"{stem}.checked.html").write_text(res.get("html", ""), encoding="utf-8")
                report = {"summary": s, "records": res.get("records", [])}
                (out_dir / f"{stem}.json").write_text(json.dumps(report, indent=2, ensure_ascii=False), encoding="utf-8")

    console.print(table)


if __name__ == "__main__":
    main()
