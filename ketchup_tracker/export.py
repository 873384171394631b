"""
Export module for Ketchup Tracker.

Generates dose log reports in PDF, Excel and CSV formats.

Every report holds the 20 most recent doses with the columns
Datum, Tid, Cykeldag, Fas, Status (in that order). The diary has its
own PDF with the spreadsheet columns.
"""

import csv
import logging
from datetime import datetime, date
from pathlib import Path
from typing import List

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils.dataframe import dataframe_to_rows
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

from . import config
from .cycle import phase_for_day
from .models import DoseEvent, DiaryEntry, DIARY_COLUMNS, diary_entry_to_row


logger = logging.getLogger(__name__)

REPORT_COLUMNS = ["Datum", "Tid", "Cykeldag", "Fas", "Status"]

HEADER_COLOR = '#DC2626'


def ensure_export_dir(export_dir: Path = None) -> Path:
    """Create the export directory if it doesn't exist."""
    export_dir = Path(export_dir or config.EXPORT_DIR)
    export_dir.mkdir(parents=True, exist_ok=True)
    return export_dir


# ============================================================
# ROWS
# ============================================================

def event_to_row(event: DoseEvent) -> list:
    """One report row: Datum, Tid, Cykeldag, Fas, Status."""
    if event.timestamp is not None:
        datum = event.timestamp.strftime("%Y-%m-%d")
        tid = event.timestamp.strftime("%H:%M")
    else:
        datum = tid = "-"
    return [
        datum,
        tid,
        str(event.cycle_day),
        phase_for_day(event.cycle_day).label,
        event.status.value,
    ]


def build_report_rows(events: List[DoseEvent], limit: int = config.REPORT_ROW_LIMIT) -> list:
    """
    Rows for the most recent doses.

    Args:
        events: Dose log, newest first (as returned by store.list_all())
        limit: Maximum number of rows

    Returns:
        List of rows, without the header
    """
    return [event_to_row(e) for e in events[:limit]]


# ============================================================
# PDF EXPORT
# ============================================================

def _table_style():
    return TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(HEADER_COLOR)),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
        ('GRID', (0, 0), (-1, -1), 1, colors.black),
    ])


def _build_pdf(filepath: Path, title: str, patient_name: str, generated: date,
               columns: list, rows: list):
    doc = SimpleDocTemplate(str(filepath), pagesize=A4,
                            rightMargin=72, leftMargin=72,
                            topMargin=72, bottomMargin=72)

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=18,
        spaceAfter=20,
    )

    elements = [
        Paragraph(title, title_style),
        Paragraph(f"Patient: {patient_name}", styles['Normal']),
        Paragraph(f"Genererad: {generated.strftime('%Y-%m-%d')}", styles['Normal']),
        Spacer(1, 20),
    ]

    col_width = (A4[0] - 144) / len(columns)
    table = Table([columns] + rows, colWidths=[col_width] * len(columns), repeatRows=1)
    table.setStyle(_table_style())
    elements.append(table)

    doc.build(elements)


def export_pdf(events: List[DoseEvent], patient_name: str = None,
               filename: str = None, generated: date = None,
               export_dir: Path = None) -> Path:
    """
    Export the dose log to PDF.

    Args:
        events: Dose log, newest first
        patient_name: Name in the header (defaults to config.PATIENT_NAME)
        filename: Optional custom filename
        generated: Date printed as generation date (defaults to today)
        export_dir: Where to write (defaults to config.EXPORT_DIR)

    Returns:
        Path to the created PDF file. An empty log still gives a PDF with
        the header and column titles.
    """
    if patient_name is None:
        patient_name = config.PATIENT_NAME
    if generated is None:
        generated = date.today()
    if filename is None:
        filename = f"ketchup_report_{generated}.pdf"

    filepath = ensure_export_dir(export_dir) / filename
    rows = build_report_rows(events)

    _build_pdf(filepath, "Doseringsrapport", patient_name, generated,
               REPORT_COLUMNS, rows)
    logger.info("Wrote PDF report with %d rows to %s", len(rows), filepath)
    return filepath


def export_diary_pdf(entries: List[DiaryEntry], patient_name: str = None,
                     filename: str = None, generated: date = None,
                     export_dir: Path = None) -> Path:
    """Export the 20 newest diary rows to PDF."""
    if patient_name is None:
        patient_name = config.PATIENT_NAME
    if generated is None:
        generated = date.today()
    if filename is None:
        filename = f"ketchup_dagbok_{generated}.pdf"

    filepath = ensure_export_dir(export_dir) / filename
    rows = []
    for entry in entries[:config.REPORT_ROW_LIMIT]:
        row = diary_entry_to_row(entry)
        rows.append([row[c] for c in DIARY_COLUMNS])

    _build_pdf(filepath, "Dagbok", patient_name, generated, DIARY_COLUMNS, rows)
    logger.info("Wrote diary PDF with %d rows to %s", len(rows), filepath)
    return filepath


# ============================================================
# EXCEL EXPORT
# ============================================================

def export_excel(events: List[DoseEvent], patient_name: str = None,
                 filename: str = None, export_dir: Path = None) -> Path:
    """
    Export the dose log to an Excel file with a Summary and a Doser sheet.

    Returns:
        Path to the created Excel file
    """
    if patient_name is None:
        patient_name = config.PATIENT_NAME
    if filename is None:
        filename = f"ketchup_report_{date.today()}.xlsx"

    filepath = ensure_export_dir(export_dir) / filename

    wb = Workbook()
    wb.remove(wb.active)

    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="DC2626", end_color="DC2626", fill_type="solid")
    border = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    ws = wb.create_sheet("Summary")
    ws.append(["Doseringsrapport"])
    ws.append([f"Patient: {patient_name}"])
    ws.append([f"Genererad: {datetime.now().strftime('%Y-%m-%d %H:%M')}"])
    ws.append([])
    ws.append(["Totala loggar:", len(events)])
    ws['A1'].font = Font(bold=True, size=16)
    ws.column_dimensions['A'].width = 30
    ws.column_dimensions['B'].width = 20

    ws = wb.create_sheet("Doser")
    df = pd.DataFrame(build_report_rows(events), columns=REPORT_COLUMNS)
    for r in dataframe_to_rows(df, index=False, header=True):
        ws.append(r)

    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal='center')
        cell.border = border
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.border = border
    for column in ws.columns:
        width = max(len(str(cell.value or "")) for cell in column)
        ws.column_dimensions[column[0].column_letter].width = min(width + 2, 50)

    wb.save(filepath)
    logger.info("Wrote Excel report to %s", filepath)
    return filepath


# ============================================================
# CSV EXPORT
# ============================================================

def export_csv(events: List[DoseEvent], filename: str = None,
               export_dir: Path = None) -> Path:
    """Export the report rows to CSV, header included even when empty."""
    if filename is None:
        filename = f"ketchup_report_{date.today()}.csv"

    filepath = ensure_export_dir(export_dir) / filename

    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(REPORT_COLUMNS)
        writer.writerows(build_report_rows(events))

    return filepath


EXPORTERS = {
    'pdf': export_pdf,
    'excel': export_excel,
    'csv': export_csv,
}
