import datetime as dt
import json
import uuid
from pathlib import Path
import pandas as pd
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from reportlab.lib.units import mm

from pcm.core.config import settings
from pcm.schemas.wbs import WBSNodeOut
from pcm.services.wbs.hierarchy import iter_tree

INDENT = "    "


def _clean_node(node: WBSNodeOut, include_description: bool, include_ids: bool) -> dict:
    out: dict = {
        "code": node.code,
        "name": node.name,
        "level_number": node.level_number,
        "sort_order": node.sort_order,
    }
    if include_description:
        out["description"] = node.description
    if include_ids:
        out["id"] = node.id
        out["parent_id"] = node.parent_id
        out["project_id"] = node.project_id
        out["created_at"] = node.created_at.isoformat() if node.created_at else None
    return out


def wbs_rows(tree: list[WBSNodeOut], include_description: bool = False, include_ids: bool = False) -> list[dict]:
    """Pre-order rows, one per node, with the name indented by level."""
    rows = []
    for node in iter_tree(tree):
        row = {
            "code": node.code,
            "name": INDENT * (node.level_number - 1) + node.name,
            "level": node.level_number,
            "sort_order": node.sort_order,
        }
        if include_description:
            row["description"] = node.description or ""
        if include_ids:
            row["id"] = node.id
            row["parent_id"] = node.parent_id
        rows.append(row)
    return rows


def export_wbs_json(tree: list[WBSNodeOut], include_description: bool = False, include_ids: bool = False) -> str:
    # nested output: walk with an explicit stack, pairing each node with its output container
    out: list[dict] = []
    stack = [(node, out) for node in reversed(tree)]
    while stack:
        node, container = stack.pop()
        cleaned = _clean_node(node, include_description, include_ids)
        container.append(cleaned)
        if node.children:
            cleaned["children"] = []
            stack.extend((child, cleaned["children"]) for child in reversed(node.children))
    return json.dumps(out, ensure_ascii=False, indent=2)


def export_wbs_xlsx(tree: list[WBSNodeOut], out_path: Path, include_description: bool = False, include_ids: bool = False):
    columns = ["code", "name", "level", "sort_order"]
    if include_description:
        columns.append("description")
    if include_ids:
        columns += ["id", "parent_id"]
    df = pd.DataFrame(wbs_rows(tree, include_description, include_ids), columns=columns)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(out_path, engine="xlsxwriter") as w:
        df.to_excel(w, index=False, sheet_name="wbs")
    return out_path


def export_wbs_pdf(
    tree: list[WBSNodeOut],
    out_path: Path,
    title: str = "Work Breakdown Structure",
    include_description: bool = False,
    include_ids: bool = False,
):
    out_path.parent.mkdir(parents=True, exist_ok=True)
    c = canvas.Canvas(str(out_path), pagesize=A4)
    width, height = A4
    y = height - 20*mm
    c.setFont("Helvetica-Bold", 14)
    c.drawString(20*mm, y, title)
    y -= 6*mm
    c.setFont("Helvetica", 9)
    c.drawString(20*mm, y, f"Exported: {dt.datetime.utcnow().strftime('%Y-%m-%d %H:%M')} UTC")
    y -= 10*mm

    for node in iter_tree(tree):
        lines = [(11, f"{node.code}  {node.name}")]
        if include_description and node.description:
            lines.append((9, node.description))
        if include_ids:
            lines.append((9, f"ID: {node.id} | Level: {node.level_number} | Order: {node.sort_order}"))
        x = 20*mm + (node.level_number - 1) * 8*mm
        for size, text in lines:
            if y < 20*mm:
                c.showPage()
                y = height - 20*mm
            c.setFont("Helvetica", size)
            c.drawString(x, y, text)
            y -= 6*mm
    c.showPage()
    c.save()
    return out_path


def default_export_path(prefix: str, ext: str) -> Path:
    ts = dt.datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    return Path(settings.EXPORT_DIR) / f"{prefix}_{ts}_{uuid.uuid4().hex[:8]}.{ext}"
