from abc import ABC, abstractmethod

from utils.exceptions import UnsupportedFileTypeError

XLS_MIME_TYPE = 'application/vnd.ms-excel'
XLSX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

ALLOWED_MIME_TYPES = {XLS_MIME_TYPE, XLSX_MIME_TYPE}
ALLOWED_EXTENSIONS = {'xls', 'xlsx'}


class BaseParser(ABC):
    """Abstract base class for file parsers"""

    @abstractmethod
    def parse(self, file_bytes):
        """Parse file contents and return a WorkbookResult"""
        pass


class FileParserFactory:
    """Factory class to get appropriate parser for file type"""

    def __init__(self):
        from .excel_parser import ExcelParser

        excel_parser = ExcelParser()
        self.parsers = {
            'xls': excel_parser,
            'xlsx': excel_parser,
            XLS_MIME_TYPE: excel_parser,
            XLSX_MIME_TYPE: excel_parser
        }

    def get_parser(self, file_type):
        """Get parser for a file extension or MIME type"""
        parser = self.parsers.get((file_type or '').lower())
        if not parser:
            raise UnsupportedFileTypeError(
                'Invalid file type. Only Excel files (.xls, .xlsx) are allowed.')
        return parser
