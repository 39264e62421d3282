# services/rendering/widgets.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag
from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

ROW_COLSPAN = 8


class WidgetRenderer:
    """
    render(template, target) -> node

    Templates produce HTML fragments; the first element of the fragment is
    detached and returned so callers can place it anywhere in a document.
    """

    def __init__(self, template_dir: Optional[Path] = None) -> None:
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=True,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template: str, target: Optional[Tag] = None, **context: Any) -> Tag:
        html = self.env.get_template(f"{template}.html.j2").render(**context)
        fragment = BeautifulSoup(html, "html.parser")
        node = fragment.find(True)
        if node is None:
            raise ValueError(f"Template {template!r} rendered no element")
        node.extract()
        if target is not None:
            target.append(node)
        return node

    def annotation(self, *, kind: str, name: str, value: str, anchor_kind: str = "tr") -> Tag:
        # Rows inside a table must stay rows; anything else gets a block.
        template = "annotation_row" if anchor_kind == "tr" else "annotation_block"
        return self.render(template, kind=kind, name=name, value=value, colspan=ROW_COLSPAN)

    def summary(self, *, counters: Any, labels: Any) -> Tag:
        return self.render("summary", counters=counters, labels=labels)
