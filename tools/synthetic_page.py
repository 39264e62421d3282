"""
Synthetic cheque listing generator
==================================

Builds an HTML page shaped like the bank's "cheques em custódia" listing, for
demos, manual testing of the gateway and latency profiling.

Usage:
    python -m tools.synthetic_page --rows 40 --checked 0.5 --seed 42 --out data/synthetic/listing.html
"""

import argparse
import random
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from faker import Faker
from jinja2 import Environment

fake = Faker("pt_BR")

PAGE_TEMPLATE = """<html>
<head><meta charset="utf-8"><title>Cheques</title></head>
<body>
<div id="consulta"></div>
<table id="cheques" width="100%">
<tbody>
{% for row in rows %}
<tr>
<td><input type="checkbox" class="{{ checkbox_class }}"{% if row.checked %} checked{% endif %}></td>
<td>{{ row.document }}</td>
<td>{{ row.amount }}</td>
<td>{{ row.due }}</td>
<td>{{ row.code }}</td>
<td>{{ row.issuer }}</td>
</tr>
{% endfor %}
</tbody>
</table>
</body>
</html>
"""


def mod10(digits: str) -> int:
    """Modulo 10 check digit, weights 2,1,2,... from the right."""
    total = 0
    for i, ch in enumerate(reversed(digits)):
        p = int(ch) * (2 if i % 2 == 0 else 1)
        total += p // 10 + p % 10
    return (10 - total % 10) % 10


def generate_cmc7(rng: random.Random) -> str:
    """
    bank+agency (7) | C2 | compensation+number+type (10) | C1 | account (10) | C3

    C2 checks the second block, C1 the first block, C3 the account.
    """
    block1 = "".join(str(rng.randint(0, 9)) for _ in range(7))
    block2 = "".join(str(rng.randint(0, 9)) for _ in range(10))
    account = "".join(str(rng.randint(0, 9)) for _ in range(10))
    return f"{block1}{mod10(block2)}{block2}{mod10(block1)}{account}{mod10(account)}"


def format_brl(value: Decimal) -> str:
    # 1234567.8 -> 1.234.567,80
    s = f"{value:,.2f}"
    return s.replace(",", "_").replace(".", ",").replace("_", ".")


def generate_rows(n: int, *, checked_ratio: float = 0.5, seed: Optional[int] = None) -> List[Dict[str, Any]]:
    rng = random.Random(seed)
    if seed is not None:
        Faker.seed(seed)

    today = date.today()
    rows = []
    for _ in range(n):
        amount = Decimal(rng.randint(1000, 5_000_000)) / 100
        rows.append({
            "code": generate_cmc7(rng),
            "due": (today + timedelta(days=rng.randint(-30, 180))).strftime("%d/%m/%Y"),
            "amount": format_brl(amount),
            "document": fake.cnpj() if rng.random() < 0.6 else fake.cpf(),
            "issuer": fake.company(),
            "checked": rng.random() < checked_ratio,
        })
    return rows


def render_listing(rows: List[Dict[str, Any]], *, checkbox_class: str = "ObInputCheckBox") -> str:
    env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
    return env.from_string(PAGE_TEMPLATE).render(rows=rows, checkbox_class=checkbox_class)


def main() -> None:
    ap = argparse.ArgumentParser(description="Generate a synthetic cheque listing page.")
    ap.add_argument("--rows", type=int, default=20)
    ap.add_argument("--checked", type=float, default=0.5, help="Fraction of rows selected")
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--checkbox-class", default="ObInputCheckBox")
    ap.add_argument("--out", default="data/synthetic/listing.html")
    args = ap.parse_args()

    rows = generate_rows(args.rows, checked_ratio=args.checked, seed=args.seed)
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_listing(rows, checkbox_class=args.checkbox_class), encoding="utf-8")

    print(f"Wrote {len(rows)} rows ({sum(r['checked'] for r in rows)} selected) → {out}")


if __name__ == "__main__":
    main()
