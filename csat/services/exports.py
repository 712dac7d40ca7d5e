"""
Spreadsheet exports of filtered survey responses.

Two workbook layouts:
  - grouped: a two-row header band (DATE | CLIENT INFO x4 | SCHOOL | TYPE |
    RATING | REASON) starting at B2, data from row 4;
  - flat: one header row, one record per row, ids and timestamps included.
A CSV rendition of the grouped columns is available for plain-text consumers.
"""
from __future__ import annotations

import csv
import io
from datetime import datetime
from typing import Iterable, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from csat.models.survey import STATUS_SUBMITTED, SurveyResponse
from csat.utils.helpers import format_short_date, to_local

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
CSV_MIMETYPE = "text/csv; charset=utf-8"

SHEET_TITLE = "Client Reviews"

# Individual column labels, in order (columns B..J of the grouped layout)
EXPORT_COLUMNS = (
    "DATE",
    "FIRST NAME",
    "MIDDLE NAME",
    "LAST NAME",
    "EMAIL",
    "SCHOOL / HEI'S",
    "TYPE OF TRANSACTION",
    "SATISFACTION RATING",
    "REASON/COMMENTS",
)

# Upper band: (merge range, label)
HEADER_BAND = (
    ("B2:B3", "DATE"),
    ("C2:F2", "CLIENT INFO"),
    ("G2:G3", "SCHOOL / HEI'S"),
    ("H2:H3", "TYPE OF TRANSACTION"),
    ("I2:I3", "SATISFACTION RATING"),
    ("J2:J3", "REASON/COMMENTS"),
)
# Lower row: only the CLIENT INFO cluster has individual cells
SUB_HEADERS = {"C3": "FIRST NAME", "D3": "MIDDLE NAME", "E3": "LAST NAME", "F3": "EMAIL"}

FIRST_COL = 2          # column B
BAND_ROW = 2
SUB_ROW = 3
FIRST_DATA_ROW = 4

COLUMN_WIDTHS = {"B": 14, "C": 18, "D": 18, "E": 18, "F": 30, "G": 36, "H": 24, "I": 20, "J": 60}

FLAT_COLUMNS = (
    "ID",
    "Client Name",
    "Email",
    "Transaction Date",
    "Submitted At",
    "School/HEI",
    "Transaction Type",
    "Satisfaction",
    "Comment",
    "Status",
)

_HEADER_FILL = PatternFill(fill_type="solid", start_color="FFF2F2F2", end_color="FFF2F2F2")
_THIN = Side(style="thin", color="FFD1D5DB")
_HAIR = Side(style="hair", color="FFE5E7EB")
_HEADER_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_ROW_BORDER = Border(left=_HAIR, right=_HAIR, top=_HAIR, bottom=_HAIR)
_CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)
_LINK_FONT = Font(color="FF0563C1", underline="single")


def grouped_row(survey: SurveyResponse) -> tuple:
    return (
        survey.transaction_date,
        survey.first_name or "",
        survey.middle_name or "",
        survey.last_name or "",
        survey.email or "",
        survey.school_display_name,
        survey.transaction_type_display,
        survey.satisfaction_label,
        survey.reason or "",
    )


def flat_row(survey: SurveyResponse, tz) -> tuple:
    submitted = to_local(survey.created_at, tz)
    return (
        survey.id,
        survey.full_name,
        survey.email or "",
        survey.transaction_date,
        # Excel has no timezone support: write local wall time
        submitted.replace(tzinfo=None) if submitted else None,
        survey.school_display_name,
        survey.transaction_type_display,
        survey.satisfaction_label,
        survey.reason or "",
        survey.status or STATUS_SUBMITTED,
    )


def _save(wb: Workbook) -> bytes:
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def _write_grouped_header(ws) -> None:
    last_col = FIRST_COL + len(EXPORT_COLUMNS) - 1
    for col in range(FIRST_COL, last_col + 1):
        for row in (BAND_ROW, SUB_ROW):
            cell = ws.cell(row=row, column=col)
            cell.font = Font(bold=True)
            cell.alignment = _CENTER
            cell.fill = _HEADER_FILL
            cell.border = _HEADER_BORDER

    for rng, label in HEADER_BAND:
        ws[rng.split(":")[0]] = label
    for ref, label in SUB_HEADERS.items():
        ws[ref] = label
    for rng, _ in HEADER_BAND:
        ws.merge_cells(rng)

    ws.row_dimensions[BAND_ROW].height = 24
    ws.row_dimensions[SUB_ROW].height = 22
    for letter, width in COLUMN_WIDTHS.items():
        ws.column_dimensions[letter].width = width
    ws.freeze_panes = f"{get_column_letter(FIRST_COL)}{FIRST_DATA_ROW}"


def build_grouped_workbook(surveys: Iterable[SurveyResponse]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    _write_grouped_header(ws)

    email_col = FIRST_COL + EXPORT_COLUMNS.index("EMAIL")
    reason_col = FIRST_COL + EXPORT_COLUMNS.index("REASON/COMMENTS")
    date_col = FIRST_COL

    row_idx = FIRST_DATA_ROW
    for survey in surveys:
        for offset, value in enumerate(grouped_row(survey)):
            cell = ws.cell(row=row_idx, column=FIRST_COL + offset, value=value)
            cell.border = _ROW_BORDER

        ws.cell(row=row_idx, column=date_col).number_format = "m/d/yyyy"

        email = survey.email
        if email:
            cell = ws.cell(row=row_idx, column=email_col)
            cell.hyperlink = f"mailto:{email}"
            cell.font = _LINK_FONT

        ws.cell(row=row_idx, column=reason_col).alignment = Alignment(wrap_text=True, vertical="top")
        row_idx += 1

    return _save(wb)


def build_flat_workbook(surveys: Iterable[SurveyResponse], tz) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(list(FLAT_COLUMNS))
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.fill = _HEADER_FILL

    for survey in surveys:
        ws.append(list(flat_row(survey, tz)))
        row = ws.max_row
        ws.cell(row=row, column=4).number_format = "yyyy-mm-dd"
        ws.cell(row=row, column=5).number_format = "yyyy-mm-dd hh:mm:ss"

    widths = (8, 30, 30, 16, 20, 36, 28, 14, 60, 12)
    for idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.freeze_panes = "A2"
    return _save(wb)


def build_grouped_csv(surveys: Iterable[SurveyResponse]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(EXPORT_COLUMNS)
    for survey in surveys:
        row = list(grouped_row(survey))
        row[0] = format_short_date(row[0])
        writer.writerow(row)
    return buf.getvalue()


def header_labels(ws) -> Sequence[str]:
    """Effective label per column of a grouped sheet: the sub-header if any, else the band."""
    labels = []
    for col in range(FIRST_COL, FIRST_COL + len(EXPORT_COLUMNS)):
        sub = ws.cell(row=SUB_ROW, column=col).value
        band = ws.cell(row=BAND_ROW, column=col).value
        labels.append(sub or band)
    return labels


def export_filename(now: datetime, ext: str) -> str:
    return f"client-reviews-{now:%Y%m%d-%H%M%S}.{ext}"
