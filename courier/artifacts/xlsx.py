"""Excel workbook materializer built on openpyxl's write-only mode.

Write-only workbooks stream rows to the output rather than holding a cell
grid in memory, which keeps large reports within worker memory limits.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import io
import typing as typ

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.styles import Font

from courier.artifacts.errors import ArtifactError

if typ.TYPE_CHECKING:
    from openpyxl.worksheet._write_only import WriteOnlyWorksheet

    from courier.handlers.protocol import CellValue, TabularData

XLSX_CONTENT_TYPE = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
)
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
# Excel rejects sheet titles longer than 31 characters.
_MAX_SHEET_TITLE = 31
_INVALID_TITLE_CHARS = str.maketrans({ch: " " for ch in "[]:*?/\\"})


def _sheet_title(title: str) -> str:
    cleaned = title.translate(_INVALID_TITLE_CHARS).strip()
    return (cleaned or "Report")[:_MAX_SHEET_TITLE]


def _cell_value(value: CellValue) -> str | int | float | bool | None:
    if isinstance(value, dt.datetime):
        return value.strftime(_TIMESTAMP_FORMAT)
    return value


class XlsxMaterializer:
    """Serialize ``TabularData`` to an ``.xlsx`` workbook."""

    content_type = XLSX_CONTENT_TYPE
    file_extension = "xlsx"

    async def materialize(self, data: TabularData) -> bytes:
        """Build the workbook in a worker thread and return its bytes.

        Raises
        ------
        ArtifactError
            If openpyxl rejects the data.

        """
        try:
            return await asyncio.to_thread(self._build, data)
        except (ValueError, TypeError) as exc:
            raise ArtifactError.serialization_failed("xlsx", str(exc)) from exc

    def _build(self, data: TabularData) -> bytes:
        workbook = Workbook(write_only=True)
        sheet: WriteOnlyWorksheet = workbook.create_sheet(_sheet_title(data.title))
        header_font = Font(bold=True)

        header: list[WriteOnlyCell] = []
        for column in data.columns:
            cell = WriteOnlyCell(sheet, value=column)
            cell.font = header_font
            header.append(cell)
        sheet.append(header)

        for row in data.rows:
            sheet.append([_cell_value(value) for value in row])

        output = io.BytesIO()
        workbook.save(output)
        return output.getvalue()
