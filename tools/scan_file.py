#!/usr/bin/env python3
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

# project root
sys.path.append(str(Path(__file__).resolve().parents[1]))
from apps.common.settings import load_settings
from apps.workers.pipeline_loader import build_pipeline

console = Console()


def print_report(report) -> None:
    table = Table(show_header=True)
    table.add_column("CMC-7")
    table.add_column("Due")
    table.add_column("Amount", justify="right")
    table.add_column("Document")
    table.add_column("Outcome")

    for o in report.outcomes:
        if o["ok"]:
            res = o["result"]
            flag = "[red]occurrence[/red]" if res["has_occurrence"] else "[green]clean[/green]"
            outcome = f"{flag} {res['status_text']}"
        else:
            outcome = f"[yellow]error[/yellow] {o['error']}"
        table.add_row(o["code"], o["due_date"] or "-", o["amount"], o["document_number"] or "-", outcome)

    console.print(table)
    console.print(report.counters)


def main():
    ap = argparse.ArgumentParser(description="Scan a saved cheque listing and write the annotated page.")
    ap.add_argument("input", help="HTML file with the cheque listing")
    ap.add_argument("--out", default=None, help="Annotated HTML output (default: <input>.checked.html)")
    ap.add_argument("--json", dest="json_out", default=None, help="Optional JSON report path")
    ap.add_argument("--config", default=None, help="Settings YAML (default: config/app.yaml)")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    src = Path(args.input)
    if not src.exists():
        console.print(f"[red]Missing input {src}[/red]")
        sys.exit(2)

    pipe = build_pipeline(load_settings(args.config))
    html, report = asyncio.run(pipe.scan_html(src.read_text(encoding="utf-8")))

    out = Path(args.out) if args.out else src.with_suffix(".checked.html")
    out.write_text(html, encoding="utf-8")
    console.print(f"\n[green]Saved annotated page → {out}[/green]")

    if args.json_out:
        Path(args.json_out).write_text(json.dumps(report.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"[green]Saved report → {args.json_out}[/green]")

    print_report(report)


if __name__ == "__main__":
    main()
