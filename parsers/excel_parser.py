import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

import numpy as np
import pandas as pd

from .file_parser import BaseParser
from .table_normalizer import SheetTable, normalize
from utils.exceptions import AnalyticsError, NotFoundError, UnreadableFileError


@dataclass
class WorkbookMetadata:
    """Workbook-level totals computed once at parse time"""
    sheet_names: list = field(default_factory=list)
    sheet_count: int = 0
    total_rows: int = 0
    total_columns: int = 0

    def to_dict(self):
        return {
            'sheet_names': list(self.sheet_names),
            'sheet_count': self.sheet_count,
            'total_rows': self.total_rows,
            'total_columns': self.total_columns
        }


@dataclass
class WorkbookResult:
    """Tagged parse result: either a workbook with its sheets or an error message"""
    success: bool
    workbook: WorkbookMetadata = None
    sheets: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)
    error_message: str = None

    @classmethod
    def failure(cls, error_message):
        return cls(success=False, error_message=error_message)

    @classmethod
    def from_upload(cls, upload):
        """Rebuild a parse result from a stored upload record"""
        parsed_data = upload.get_parsed_data() or {}
        sheet_names = list(upload.get_sheet_names() or parsed_data.keys())
        sheets = {
            name: SheetTable.from_dict(parsed_data[name])
            for name in sheet_names if name in parsed_data
        }
        workbook = WorkbookMetadata(
            sheet_names=sheet_names,
            sheet_count=upload.sheet_count,
            total_rows=upload.row_count,
            total_columns=upload.column_count
        )
        return cls(success=True, workbook=workbook, sheets=sheets)

    def first_sheet(self):
        """First sheet in workbook order, or None for an empty workbook"""
        if not self.success or not self.workbook:
            return None
        for name in self.workbook.sheet_names:
            if name in self.sheets:
                return self.sheets[name]
        return None

    def sheets_as_dict(self):
        return {name: table.to_dict() for name, table in self.sheets.items()}


def _to_cell(value):
    """Convert a pandas cell into a plain Python value (None for blanks)"""
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, float) and np.isnan(value):
        return None
    if isinstance(value, np.generic):
        value = value.item()
        if isinstance(value, float) and np.isnan(value):
            return None
        return value
    if value is pd.NaT or value is pd.NA:
        return None
    return value


class ExcelParser(BaseParser):
    """Parser for Excel workbooks (.xls and .xlsx) held in memory"""

    def parse(self, file_bytes):
        """Parse every sheet of a workbook.

        Never raises: any failure to open or read the container is returned
        as ``WorkbookResult(success=False, error_message=...)``.
        """
        try:
            raw_sheets = self._read_raw_sheets(file_bytes)

            sheets = {}
            total_rows = 0
            total_columns = 0
            for sheet_name, raw_rows in raw_sheets.items():
                table = normalize(raw_rows)
                sheets[sheet_name] = table
                total_rows += table.row_count
                total_columns = max(total_columns, table.column_count)

            workbook = WorkbookMetadata(
                sheet_names=list(sheets.keys()),
                sheet_count=len(sheets),
                total_rows=total_rows,
                total_columns=total_columns
            )
            logging.info(f"Parsed workbook with {workbook.sheet_count} sheet(s), "
                         f"{total_rows} rows, {total_columns} columns")

            return WorkbookResult(
                success=True,
                workbook=workbook,
                sheets=sheets,
                metadata={
                    'parsed_at': datetime.now(timezone.utc),
                    'file_size': len(file_bytes)
                }
            )

        except AnalyticsError as e:
            logging.error(f"Error parsing Excel file: {e.message}")
            return WorkbookResult.failure(e.message)
        except Exception as e:
            logging.error(f"Error parsing Excel file: {str(e)}")
            return WorkbookResult.failure(str(e) or e.__class__.__name__)

    def get_info(self, file_bytes):
        """Sheet names and count without normalizing any table"""
        with self._open(file_bytes) as excel_file:
            sheet_names = list(excel_file.sheet_names)
        return {
            'sheet_names': sheet_names,
            'sheet_count': len(sheet_names)
        }

    def extract_sheet(self, file_bytes, sheet_name):
        """Normalize a single named sheet"""
        with self._open(file_bytes) as excel_file:
            if sheet_name not in excel_file.sheet_names:
                raise NotFoundError(f'Sheet "{sheet_name}" not found')
            raw_rows = self._sheet_to_rows(excel_file, sheet_name)
        return normalize(raw_rows)

    def _open(self, file_bytes):
        if not file_bytes:
            raise UnreadableFileError('File is empty')
        try:
            # pandas picks openpyxl or xlrd from the container signature
            return pd.ExcelFile(io.BytesIO(file_bytes))
        except Exception as e:
            raise UnreadableFileError(f'Unreadable spreadsheet file: {str(e)}') from e

    def _read_raw_sheets(self, file_bytes):
        raw_sheets = {}
        with self._open(file_bytes) as excel_file:
            for sheet_name in excel_file.sheet_names:
                try:
                    raw_sheets[sheet_name] = self._sheet_to_rows(excel_file, sheet_name)
                except Exception as e:
                    raise UnreadableFileError(
                        f"Could not read sheet '{sheet_name}': {str(e)}") from e
        return raw_sheets

    def _sheet_to_rows(self, excel_file, sheet_name):
        # per-cell types: a blank must not widen an int column to float
        df = excel_file.parse(sheet_name, header=None, dtype=object)
        return [
            [_to_cell(value) for value in row]
            for row in df.astype(object).itertuples(index=False, name=None)
        ]
