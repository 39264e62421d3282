# services/rendering/labels.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Labels:
    error: str
    nsf: str
    nsf_found: str  # formatted with {count}
    nsf_none: str
    protests: str
    protests_found: str  # formatted with {count}
    protests_none: str
    status: str
    summary_title: str
    summary_total: str
    summary_occurrences: str
    summary_received: str
    summary_not_received: str


EN = Labels(
    error="Error",
    nsf="Checks without funds",
    nsf_found="Found {count} check(s) without funds.",
    nsf_none="No checks without funds found.",
    protests="Protests",
    protests_found="Found {count} protest(s).",
    protests_none="No protests found (IEPTB).",
    status="Check status",
    summary_title="Checks summary:",
    summary_total="Total checks",
    summary_occurrences="Occurrences",
    summary_received="Received",
    summary_not_received="Not received",
)

PT_BR = Labels(
    error="Erro",
    nsf="Cheques sem Fundo",
    nsf_found="Localizamos {count} cheque(s) sem fundos.",
    nsf_none="Não existem cheques sem fundos.",
    protests="Protestos",
    protests_found="Localizamos {count} protesto(s).",
    protests_none="Não existem protestos (IEPTB).",
    status="Situação do Cheque",
    summary_title="Resumo dos Cheques:",
    summary_total="Total de Cheques",
    summary_occurrences="Ocorrências",
    summary_received="Recebidos",
    summary_not_received="Não Recebidos",
)

LABELS: Dict[str, Labels] = {"en": EN, "pt_BR": PT_BR}


def get_labels(name: str) -> Labels:
    key = (name or "en").strip().lower().replace("-", "_")
    if key == "pt":
        key = "pt_br"
    for k, labels in LABELS.items():
        if k.lower() == key:
            return labels
    raise ValueError(f"Unknown labels {name!r}. Use one of: {', '.join(LABELS)}")
