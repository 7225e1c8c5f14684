"""CSV and Excel rendering of report rows in the fixed column order."""

import csv
import io
from collections.abc import Iterable
from datetime import date

from openpyxl import Workbook
from openpyxl.styles import Font

from ocs_report.models.report import OUTPUT_COLUMNS, AggregatedRow

MONEY_COLUMNS = frozenset({"cost", "resellerCost"})
TIMESTAMP_COLUMNS = frozenset({"lastUsageDate", "tsactivationutc", "tsexpirationutc"})

SHEET_TITLE = "OCS Report"
MONEY_FORMAT = "0.00"

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def format_timestamp(value: str) -> str:
    """``2025-07-03T09:00:00`` -> ``2025-07-03 09:00:00``; only the date separator."""
    return value.replace("T", " ", 1)


def format_cell(column: str, value: object) -> str:
    if value is None:
        return ""
    if column in MONEY_COLUMNS:
        return f"{float(value):.2f}"  # type: ignore[arg-type]
    if column in TIMESTAMP_COLUMNS and isinstance(value, str):
        return format_timestamp(value)
    return str(value)


def rows_to_csv(rows: Iterable[AggregatedRow]) -> str:
    """Render rows as CSV under a plain header line; every data cell is quoted."""
    buffer = io.StringIO()
    buffer.write(",".join(OUTPUT_COLUMNS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        values = row.as_dict()
        writer.writerow(format_cell(column, values[column]) for column in OUTPUT_COLUMNS)
    return buffer.getvalue()


def rows_to_xlsx(rows: Iterable[AggregatedRow]) -> bytes:
    """Render rows as a single-sheet workbook.

    Money stays numeric with two decimals shown, byte counts stay numeric,
    timestamps get the same space separator as the CSV and nulls are left
    as empty cells.
    """
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_TITLE
    sheet.append(list(OUTPUT_COLUMNS))
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    sheet.freeze_panes = "A2"

    for row in rows:
        values = row.as_dict()
        line: list[object] = []
        for column in OUTPUT_COLUMNS:
            value = values[column]
            if isinstance(value, str) and column in TIMESTAMP_COLUMNS:
                value = format_timestamp(value)
            line.append(value)
        sheet.append(line)

        for cell in sheet[sheet.max_row]:
            if OUTPUT_COLUMNS[cell.column - 1] in MONEY_COLUMNS and cell.value is not None:
                cell.number_format = MONEY_FORMAT

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_filename(today: date, extension: str = "csv") -> str:
    return f"ocs_report_{today.isoformat()}.{extension}"
