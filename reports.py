"""
reports.py
Totals, chart buckets, pagination, export projections and the PDF/Excel writers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from io import BytesIO
from xml.sax.saxutils import escape

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
from reportlab.lib import colors  # noqa: E402
from reportlab.lib.pagesizes import A4, landscape  # noqa: E402
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet  # noqa: E402
from reportlab.lib.units import mm  # noqa: E402
from reportlab.pdfgen import canvas  # noqa: E402
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle  # noqa: E402

from models import Contact, Donation  # noqa: E402

HEADER_BLUE = colors.HexColor("#2196F3")
CHART_GREEN = "#4caf50"
PAGE_MARGIN = 14 * mm
NUMBER_COL_WIDTH = 10 * mm


@dataclass(frozen=True)
class Summary:
    total: Decimal
    count: int


@dataclass(frozen=True)
class Bucket:
    label: str
    total: Decimal


@dataclass(frozen=True)
class Page:
    rows: list
    page: int
    total_pages: int
    offset: int  # rows before this page; on-screen numbering starts at offset + 1


# ---------- Aggregation ----------

def to_amount(value) -> Decimal:
    """Amounts may arrive as int, float, Decimal or text; always sum them as numbers."""
    if isinstance(value, Decimal):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        return Decimal("0")
    return Decimal(str(value).strip())


def summarize(rows: list[Donation]) -> Summary:
    return Summary(total=sum((to_amount(d.amount) for d in rows), Decimal("0")), count=len(rows))


def entry_total(rows: list[Donation], calendar_entry_id) -> Decimal:
    if calendar_entry_id in (None, ""):
        return Decimal("0")
    return sum(
        (to_amount(d.amount) for d in rows if d.calendar_entry_id == calendar_entry_id),
        Decimal("0"),
    )


def bucket_by_entry(rows: list[Donation]) -> list[Bucket]:
    """Per-Ekadashi totals in first-seen order; rows without an Ekadashi are skipped."""
    totals: dict[str, Decimal] = {}
    for d in rows:
        if not d.calendar_entry_name and not d.calendar_entry_date:
            continue
        label = f"{d.calendar_entry_name} ({d.calendar_entry_date})"
        totals[label] = totals.get(label, Decimal("0")) + to_amount(d.amount)
    return [Bucket(label=k, total=v) for k, v in totals.items()]


def paginate(rows: list, page: int, per_page: int) -> Page:
    total_pages = math.ceil(len(rows) / per_page) if rows else 0
    page = max(1, min(page, total_pages or 1))
    offset = (page - 1) * per_page
    return Page(rows=rows[offset:offset + per_page], page=page, total_pages=total_pages, offset=offset)


# ---------- Export projections ----------

def contact_columns(is_admin: bool) -> list[str]:
    cols = ["#", "Name", "Phone", "Address", "Enrolment Date"]
    if is_admin:
        cols.append("Core Devotee")
    return cols


def donation_columns(is_admin: bool) -> list[str]:
    cols = ["#", "Contact Name"]
    if is_admin:
        cols += ["Core Devotee", "Centre"]
    cols += ["Ekadashi", "Ekadashi Date", "Transaction Date", "Amount",
             "Transaction ID", "Receipt Number", "Transferred"]
    return cols


def contact_export_rows(rows: list[Contact], is_admin: bool) -> list[dict]:
    out = []
    for index, c in enumerate(rows, start=1):
        row = {
            "#": index,
            "Name": c.name,
            "Phone": c.phone,
            "Address": c.address or "",
            "Enrolment Date": c.enrolment_date or "",
        }
        if is_admin:
            row["Core Devotee"] = c.owner_name or ""
        out.append({k: row[k] for k in contact_columns(is_admin)})
    return out


def donation_export_rows(rows: list[Donation], is_admin: bool) -> list[dict]:
    """Rows in view order, numbered from 1 relative to the exported set."""
    out = []
    for index, d in enumerate(rows, start=1):
        row = {
            "#": index,
            "Contact Name": d.contact_name or "",
            "Core Devotee": d.devotee_name or "",
            "Centre": d.centre_name or "",
            "Ekadashi": d.calendar_entry_name or "",
            "Ekadashi Date": d.calendar_entry_date or "",
            "Transaction Date": d.transaction_date or "",
            "Amount": to_amount(d.amount),
            "Transaction ID": d.transaction_id or "",
            "Receipt Number": d.receipt_number or "",
            "Transferred": "Yes" if d.transferred else "No",
        }
        out.append({k: row[k] for k in donation_columns(is_admin)})
    return out


# ---------- Sinks ----------

def rows_to_excel_bytes(rows: list[dict], sheet_name: str) -> bytes:
    df = pd.DataFrame(rows)
    if "Amount" in df.columns:
        df["Amount"] = df["Amount"].astype(float)
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
    return output.getvalue()


def chart_png(buckets: list[Bucket]) -> bytes | None:
    if not buckets:
        return None
    fig, ax = plt.subplots(figsize=(10, 3.6))
    labels = [b.label for b in buckets]
    values = [float(b.total) for b in buckets]
    ax.bar(labels, values, color=CHART_GREEN, label="Total Donation (Rs.)")
    ax.set_ylim(bottom=0)
    ax.yaxis.set_major_formatter(lambda v, _pos: f"Rs.{v:,.0f}")
    ax.tick_params(axis="x", rotation=30, labelsize=7)
    ax.legend(loc="upper right")
    ax.grid(axis="y", alpha=0.2)
    buf = BytesIO()
    plt.tight_layout()
    fig.savefig(buf, format="png", dpi=150)
    plt.close(fig)
    return buf.getvalue()


class _NumberedCanvas(canvas.Canvas):
    """Defers page output so every page can carry "Page X of Y"."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_pages = []

    def showPage(self):
        self._saved_pages.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_pages)
        for state in self._saved_pages:
            self.__dict__.update(state)
            self.setFont("Helvetica", 9)
            self.drawString(PAGE_MARGIN, 10 * mm, f"Page {self._pageNumber} of {total}")
            super().showPage()
        super().save()


def _pdf_table(rows: list[dict], columns: list[str]) -> Table:
    """Fixed-width columns across the page; body cells wrap."""
    cell_style = ParagraphStyle("cell", parent=getSampleStyleSheet()["Normal"], fontSize=7.5, leading=9)
    width = landscape(A4)[0] - 2 * PAGE_MARGIN
    rest = (width - NUMBER_COL_WIDTH) / (len(columns) - 1)
    data = [columns] + [[Paragraph(escape(_cell(r[c])), cell_style) for c in columns] for r in rows]
    table = Table(data, colWidths=[NUMBER_COL_WIDTH] + [rest] * (len(columns) - 1), repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
    ]))
    return table


def _cell(value) -> str:
    if isinstance(value, Decimal):
        return f"{value:f}"
    return str(value)


def _build_pdf(story: list) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(A4),
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=12 * mm,
        bottomMargin=16 * mm,
    )
    doc.build(story, canvasmaker=_NumberedCanvas)
    return buf.getvalue()


def contacts_pdf_bytes(rows: list[dict], is_admin: bool, exported_by: str | None,
                       export_date: date | None = None) -> bytes:
    styles = getSampleStyleSheet()
    export_date = export_date or date.today()
    story = [
        Paragraph("Contacts Report", styles["Title"]),
        Paragraph(f"Exported By: {escape(exported_by or '-')}", styles["Normal"]),
        Paragraph(f"Export Date: {export_date:%d/%m/%Y}", styles["Normal"]),
        Spacer(1, 8 * mm),
        _pdf_table(rows, contact_columns(is_admin)),
    ]
    return _build_pdf(story)


def donations_pdf_bytes(rows: list[dict], is_admin: bool, summary: Summary,
                        devotee_name: str | None, centre_name: str | None,
                        chart: bytes | None = None, export_date: date | None = None) -> bytes:
    styles = getSampleStyleSheet()
    export_date = export_date or date.today()
    story = [
        Paragraph("Donation History Report", styles["Title"]),
        Paragraph(f"Core Devotee: {escape(devotee_name or '-')}", styles["Normal"]),
        Paragraph(f"Centre: {escape(centre_name or '-')}", styles["Normal"]),
        Paragraph(f"Export Date: {export_date:%d/%m/%Y}", styles["Normal"]),
        Spacer(1, 4 * mm),
        Paragraph("Summary", styles["Heading2"]),
        Paragraph(f"Total Donations: Rs. {summary.total:f}", styles["Normal"]),
        Paragraph(f"Total Entries: {summary.count}", styles["Normal"]),
        Spacer(1, 4 * mm),
    ]
    if chart:
        width = landscape(A4)[0] - 2 * PAGE_MARGIN
        story += [
            Paragraph("Summary Chart", styles["Heading2"]),
            Image(BytesIO(chart), width=width, height=width * 0.36),
            Spacer(1, 4 * mm),
        ]
    story.append(_pdf_table(rows, donation_columns(is_admin)))
    return _build_pdf(story)
