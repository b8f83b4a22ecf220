"""
Office file builders for downloads.

Each builder renders into memory and returns the file bytes; routers wrap
them in a StreamingResponse with an attachment disposition.
"""
from __future__ import annotations

import io
import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from pptx import Presentation
from pptx.util import Inches, Pt as PPTXPt

from app.services.roi_calculator import format_currency, format_percentage

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill("solid", fgColor="1F4E79")
_CURRENCY_FORMAT = '"$"#,##0'

# Localization plan phases: (phase, responsible role, base working days)
PLAN_PHASES = [
    ("Translation", "Medical Translator", 5),
    ("Cultural Intelligence", "Cultural Consultant", 3),
    ("Regulatory Review", "Regulatory Affairs Team", 5),
    ("MLR Review", "MLR Reviewer", 7),
    ("Publishing", "Publishing Coordinator", 2),
]
TRANSLATION_COST_PER_LANGUAGE = 2000

_LABELS = {
    "baseline_savings": "Baseline Cost Savings",
    "rework_elimination": "Rework & MLR Revision Elimination",
    "mlr_cycle_reduction": "MLR Cycle Reduction",
    "labor_efficiency": "Labor Efficiency Gains",
    "administrative": "Administrative Coordination",
    "translation_savings": "Translation Savings (TM Leverage)",
    "regulatory_efficiency": "Regulatory Review Efficiency",
    "quality_improvements": "Quality & Consistency Improvements",
}


def _label(key: str) -> str:
    return _LABELS.get(key, key.replace("_", " ").title())


# ═══════════════════════════════════════════════════════════════════════════════
# XLSX
# ═══════════════════════════════════════════════════════════════════════════════

def _write_table(ws, headers: List[str], rows: Iterable[Iterable[Any]], widths: Optional[List[int]] = None) -> None:
    ws.append(headers)
    for cell in ws[ws.max_row]:
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center")
    for row in rows:
        ws.append(list(row))
    for idx, width in enumerate(widths or [], start=1):
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = width


def _currency_columns(ws, *columns: int, first_row: int = 2) -> None:
    for column in columns:
        for row in range(first_row, ws.max_row + 1):
            ws.cell(row=row, column=column).number_format = _CURRENCY_FORMAT


def _save_workbook(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_roi_workbook(result: Dict[str, Any]) -> bytes:
    """Summary, Domestic Value, Global Value and Per-Asset Breakdown sheets."""
    wb = Workbook()

    summary = wb.active
    summary.title = "Summary"
    _write_table(
        summary,
        ["Metric", "Value"],
        [
            ["Scenario", result.get("scenario", "base")],
            ["Total Annual Value", result["total_value"]],
            ["Domestic Value", result["domestic"]["total"]],
            ["Global Value", result["global"]["total"]],
        ],
        widths=[32, 20],
    )
    _currency_columns(summary, 2, first_row=3)
    summary.append([])
    summary.append(["Asset Type", "Baseline (weeks)", "With Platform (weeks)", "Reduction"])
    for cell in summary[summary.max_row]:
        cell.font = Font(bold=True)
    for row in result["timeline_reductions"]:
        summary.append([
            row["asset_type"], row["baseline_weeks"], row["platform_weeks"],
            format_percentage(row["reduction"]),
        ])

    for title, section in (("Domestic Value", "domestic"), ("Global Value", "global")):
        ws = wb.create_sheet(title)
        components = result[section]["components"]
        rows = [[_label(key), value] for key, value in components.items()]
        rows.append(["Total", result[section]["total"]])
        _write_table(ws, ["Component", "Annual Value"], rows, widths=[38, 20])
        _currency_columns(ws, 2)
        ws.cell(row=ws.max_row, column=1).font = Font(bold=True)

    per_asset = wb.create_sheet("Per-Asset Breakdown")
    _write_table(
        per_asset,
        ["Asset Type", "Domestic Value per Asset", "Global Value per Asset", "Total per Asset"],
        [
            [asset.upper() if asset == "dsa" else asset.title(), v["domestic"], v["global"], v["total"]]
            for asset, v in result["by_asset_type"].items()
        ],
        widths=[18, 26, 24, 18],
    )
    _currency_columns(per_asset, 2, 3, 4)

    return _save_workbook(wb)


def build_project_plan_workbook(project: Any, start_date: Optional[date] = None) -> bytes:
    """
    Localization plan for a project: Task List, Resource Assignment, Budget
    Tracking and Key Milestones.

    Phases run in sequence; markets run in parallel within a phase. Phase
    durations scale with the complexity effort multiplier, and regulatory
    review stretches to the longest regulatory timeline found for a market.
    """
    start = start_date or date.today()
    complexity = project.complexity or {}
    multiplier = float(complexity.get("effort_multiplier") or 1.0)
    assessments = (project.regulatory_assessment or {}).get("assessments") or []
    markets = list(project.target_markets or [])
    languages = list(project.target_languages or [])

    def market_reg_days(market: str) -> int:
        days = [a["regulatory_timeline_impact"] for a in assessments if a.get("target_market") == market]
        return max(days) if days else 0

    tasks: List[List[Any]] = []
    milestones: List[List[Any]] = []
    resources: Dict[str, Dict[str, Any]] = {}
    phase_start = start
    task_no = 1
    for phase, role, base_days in PLAN_PHASES:
        phase_end = phase_start
        for market in markets:
            days = max(1, round(base_days * multiplier))
            if phase == "Regulatory Review":
                days = max(days, market_reg_days(market))
            end = phase_start + timedelta(days=days)
            tasks.append([task_no, f"{phase} - {market}", phase, market, role, phase_start, end, days, "Not Started"])
            task_no += 1
            phase_end = max(phase_end, end)
            entry = resources.setdefault(role, {"tasks": 0, "days": 0, "markets": []})
            entry["tasks"] += 1
            entry["days"] += days
            if market not in entry["markets"]:
                entry["markets"].append(market)
        milestones.append([f"{phase} complete", phase_end, phase])
        phase_start = phase_end

    budget_rows: List[List[Any]] = []
    for market in markets:
        regulatory = sum(
            a["cost_implications"]["total_estimated_cost"]
            for a in assessments
            if a.get("target_market") == market
        )
        translation = TRANSLATION_COST_PER_LANGUAGE * len(languages)
        budget_rows.append([market, translation, regulatory, translation + regulatory, 0])

    wb = Workbook()
    ws = wb.active
    ws.title = "Task List"
    _write_table(
        ws,
        ["#", "Task", "Phase", "Market", "Owner", "Start", "End", "Duration (days)", "Status"],
        tasks,
        widths=[5, 38, 22, 14, 24, 12, 12, 16, 14],
    )
    for row in range(2, ws.max_row + 1):
        ws.cell(row=row, column=6).number_format = "yyyy-mm-dd"
        ws.cell(row=row, column=7).number_format = "yyyy-mm-dd"

    ws = wb.create_sheet("Resource Assignment")
    _write_table(
        ws,
        ["Role", "Assigned Tasks", "Effort (days)", "Markets"],
        [[role, r["tasks"], r["days"], ", ".join(r["markets"])] for role, r in resources.items()],
        widths=[26, 16, 14, 40],
    )

    ws = wb.create_sheet("Budget Tracking")
    _write_table(
        ws,
        ["Market", "Translation", "Regulatory", "Planned Total", "Actual Spend"],
        budget_rows,
        widths=[16, 16, 16, 16, 16],
    )
    ws.append(["Total", *(sum(r[i] for r in budget_rows) for i in range(1, 5))])
    ws.cell(row=ws.max_row, column=1).font = Font(bold=True)
    _currency_columns(ws, 2, 3, 4, 5)

    ws = wb.create_sheet("Key Milestones")
    _write_table(ws, ["Milestone", "Target Date", "Phase"], milestones, widths=[30, 14, 22])
    for row in range(2, ws.max_row + 1):
        ws.cell(row=row, column=2).number_format = "yyyy-mm-dd"

    logger.info("Project plan built for project=%s: %d tasks", getattr(project, "id", None), len(tasks))
    return _save_workbook(wb)


# ═══════════════════════════════════════════════════════════════════════════════
# PPTX
# ═══════════════════════════════════════════════════════════════════════════════

def _bullet_slide(prs, title: str, bullets: List[str]):
    slide = prs.slides.add_slide(prs.slide_layouts[1])  # Title and Content
    slide.shapes.title.text = title
    text_frame = slide.placeholders[1].text_frame
    text_frame.clear()
    for i, bullet in enumerate(bullets):
        p = text_frame.paragraphs[0] if i == 0 else text_frame.add_paragraph()
        p.text = bullet
        p.level = 0
    return slide


def _title_slide(prs, title: str, subtitle: str) -> None:
    slide = prs.slides.add_slide(prs.slide_layouts[0])
    slide.shapes.title.text = title
    slide.placeholders[1].text = subtitle


def _save_presentation(prs) -> bytes:
    buffer = io.BytesIO()
    prs.save(buffer)
    return buffer.getvalue()


def build_roi_presentation(result: Dict[str, Any]) -> bytes:
    prs = Presentation()
    _title_slide(
        prs,
        "Content Operations ROI",
        f"{result.get('scenario', 'base').title()} scenario: {format_currency(result['total_value'])} annual value",
    )
    _bullet_slide(prs, "Value Summary", [
        f"Total annual value: {format_currency(result['total_value'])}",
        f"Domestic value: {format_currency(result['domestic']['total'])}",
        f"Global value: {format_currency(result['global']['total'])}",
    ])
    for title, section in (("Domestic Value Drivers", "domestic"), ("Global Value Drivers", "global")):
        _bullet_slide(prs, title, [
            f"{_label(key)}: {format_currency(value)}" for key, value in result[section]["components"].items()
        ])
    _bullet_slide(prs, "Timeline Reduction", [
        f"{row['asset_type']}: {row['baseline_weeks']} weeks to {row['platform_weeks']} weeks "
        f"({format_percentage(row['reduction'])} faster)"
        for row in result["timeline_reductions"]
    ])

    slide = prs.slides.add_slide(prs.slide_layouts[5])  # Title Only
    slide.shapes.title.text = "Value per Asset"
    breakdown = result["by_asset_type"]
    table = slide.shapes.add_table(
        len(breakdown) + 1, 4, Inches(0.5), Inches(1.6), Inches(9), Inches(0.4) * (len(breakdown) + 1)
    ).table
    for col, header in enumerate(["Asset", "Domestic", "Global", "Total"]):
        table.cell(0, col).text = header
    for row, (asset, values) in enumerate(breakdown.items(), start=1):
        table.cell(row, 0).text = asset.upper() if asset == "dsa" else asset.title()
        table.cell(row, 1).text = format_currency(values["domestic"])
        table.cell(row, 2).text = format_currency(values["global"])
        table.cell(row, 3).text = format_currency(values["total"])

    return _save_presentation(prs)


def build_themes_presentation(brand: Any, themes: List[Any]) -> bytes:
    """One slide per theme, after a title slide for the brand."""
    prs = Presentation()
    _title_slide(prs, f"{brand.brand_name} Campaign Themes", f"{len(themes)} theme(s)")

    for theme in themes:
        prediction = theme.performance_prediction or {}
        bullets = [f"Key message: {theme.key_message}"]
        if theme.description:
            bullets.append(theme.description)
        bullets.append(f"Call to action: {theme.call_to_action or 'Learn more'}")
        bullets.append(f"Tone: {theme.tone or 'professional'}")
        if prediction:
            bullets.append(
                f"Predicted engagement {prediction.get('engagement_rate', '-')}% "
                f"(confidence {prediction.get('confidence', '-')}%)"
            )
        if theme.supporting_claims:
            bullets.append(f"Supporting claims: {', '.join(str(c) for c in theme.supporting_claims)}")
        slide = _bullet_slide(prs, theme.name, bullets)
        for paragraph in slide.placeholders[1].text_frame.paragraphs:
            for run in paragraph.runs:
                run.font.size = PPTXPt(16)

    return _save_presentation(prs)


# ═══════════════════════════════════════════════════════════════════════════════
# DOCX
# ═══════════════════════════════════════════════════════════════════════════════

def _new_document():
    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)
    return doc


def _add_bullet(doc, text: str, bold_prefix: Optional[str] = None):
    p = doc.add_paragraph(style="List Bullet")
    if bold_prefix:
        run = p.add_run(bold_prefix)
        run.bold = True
        p.add_run(f" {text}")
    else:
        p.add_run(text)
    return p


def _save_document(doc) -> bytes:
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


_STATUS_COLORS = {
    "ready": RGBColor(0, 128, 0),
    "needs_minor_revisions": RGBColor(200, 140, 0),
    "needs_major_revisions": RGBColor(220, 90, 0),
    "not_ready": RGBColor(192, 0, 0),
}


def build_mlr_report_document(report: Dict[str, Any], asset_type: str = "Email", region: str = "US") -> bytes:
    doc = _new_document()
    title = doc.add_heading("MLR Readiness Report", level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    status = report["submission_status"]
    p = doc.add_paragraph()
    p.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = p.add_run(f"Score {report['mlr_readiness_score']}/100 | {status.replace('_', ' ').title()}")
    run.bold = True
    run.font.size = Pt(14)
    run.font.color.rgb = _STATUS_COLORS.get(status, RGBColor(40, 40, 40))
    doc.add_paragraph(f"Asset type: {asset_type}    Region: {region}    Generated: {report.get('timestamp', '')}")

    doc.add_heading("Summary", level=1)
    summary = report["summary"]
    table = doc.add_table(rows=1, cols=2)
    table.style = "Light Grid Accent 1"
    table.rows[0].cells[0].text = "Measure"
    table.rows[0].cells[1].text = "Count"
    for key in ("total_issues", "critical_issues", "high_issues", "medium_issues", "low_issues", "blockers"):
        cells = table.add_row().cells
        cells[0].text = key.replace("_", " ").title()
        cells[1].text = str(summary.get(key, 0))

    doc.add_heading("Top Priorities", level=1)
    if not report.get("top_priorities"):
        doc.add_paragraph("No blocking issues found.")
    for item in report.get("top_priorities", []):
        _add_bullet(doc, f"{item['issue']}. {item.get('recommendation') or ''}".strip(), f"[{item['severity'].upper()}]")

    doc.add_heading("Claims", level=1)
    claims = report["claims_analysis"]["claims"]
    if not claims:
        doc.add_paragraph("No promotional claims detected.")
    for claim in claims:
        _add_bullet(doc, f"\"{claim['text']}\" ({claim['category']}): {claim['suggestion']}", f"[{claim['severity'].upper()}]")

    doc.add_heading("References", level=1)
    refs = report["references_analysis"]
    doc.add_paragraph(
        f"{refs['citations_found']} citation marker(s) found; "
        f"{refs['summary']['missing_citations']} claim(s) missing a citation."
    )
    for gap in refs["gaps"]:
        _add_bullet(doc, gap["recommendation"], f"\"{gap['text']}\":")

    doc.add_heading("Regulatory Checklist", level=1)
    for check in report["regulatory_analysis"]["checks"]:
        text = check["details"]
        if check.get("recommendation"):
            text = f"{text}. {check['recommendation']}"
        _add_bullet(doc, text, f"{check['requirement']} [{check['status'].upper()}]:")

    return _save_document(doc)


def _render_value(doc, value: Any, level: int = 0) -> None:
    if isinstance(value, dict):
        for key, inner in value.items():
            if isinstance(inner, (dict, list)):
                p = doc.add_paragraph()
                p.add_run(f"{_label(str(key))}:").bold = True
                _render_value(doc, inner, level + 1)
            else:
                _add_bullet(doc, str(inner), f"{_label(str(key))}:")
    elif isinstance(value, list):
        for item in value:
            if isinstance(item, (dict, list)):
                _render_value(doc, item, level + 1)
            else:
                _add_bullet(doc, str(item))
    elif value not in (None, ""):
        doc.add_paragraph(str(value))


def build_brand_document_export(brand: Any, document: Any) -> bytes:
    """Structured sections of a processed brand document, one heading per top-level key."""
    doc = _new_document()
    title = doc.add_heading(document.document_title, level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    p = doc.add_paragraph()
    p.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = p.add_run(f"{brand.brand_name} | {document.document_category.value}")
    run.italic = True

    parsed = document.parsed_data or {}
    if not parsed:
        doc.add_heading("Extracted Text", level=1)
        doc.add_paragraph(document.content_text or "No content extracted.")
    for section, value in parsed.items():
        doc.add_heading(_label(section), level=1)
        _render_value(doc, value)

    metadata = document.extraction_metadata or {}
    if metadata:
        doc.add_heading("Extraction Details", level=1)
        for key, value in metadata.items():
            if not isinstance(value, (dict, list)):
                _add_bullet(doc, str(value), f"{_label(key)}:")

    return _save_document(doc)
