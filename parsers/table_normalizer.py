from dataclasses import dataclass, field

from utils.exceptions import ParseError


@dataclass
class SheetTable:
    """One sheet normalized into a header list and header-keyed row dicts"""
    headers: list = field(default_factory=list)
    rows: list = field(default_factory=list)
    row_count: int = 0
    column_count: int = 0

    def column_values(self, header):
        """Ordered values of one column"""
        return [row.get(header) for row in self.rows]

    def to_dict(self):
        return {
            'headers': list(self.headers),
            'rows': [dict(row) for row in self.rows],
            'row_count': self.row_count,
            'column_count': self.column_count
        }

    @classmethod
    def from_dict(cls, data):
        headers = list(data.get('headers') or [])
        rows = [dict(row) for row in data.get('rows') or []]
        return cls(
            headers=headers,
            rows=rows,
            row_count=data.get('row_count', len(rows)),
            column_count=data.get('column_count', len(headers))
        )


def _is_blank_header(value):
    return value is None or str(value).strip() == ''


def build_headers(header_row):
    """Header names for a raw header row.

    Blank cells become ``Column_<position>`` (1-based). Repeated names get a
    numeric suffix so every key stays unique.
    """
    headers = []
    seen = set()
    for index, value in enumerate(header_row):
        name = f'Column_{index + 1}' if _is_blank_header(value) else str(value).strip()
        base = name
        suffix = 1
        while name in seen:
            suffix += 1
            name = f'{base}_{suffix}'
        seen.add(name)
        headers.append(name)
    return headers


def normalize(raw_rows):
    """Convert a raw 2D array (first row = headers) into a SheetTable"""
    if not isinstance(raw_rows, (list, tuple)):
        raise ParseError(f'Sheet data must be a list of rows, got {type(raw_rows).__name__}')

    for position, raw_row in enumerate(raw_rows):
        if not isinstance(raw_row, (list, tuple)):
            raise ParseError(f'Row {position + 1} is not a list of cells')

    if not raw_rows:
        return SheetTable()

    headers = build_headers(raw_rows[0])

    rows = []
    for raw_row in raw_rows[1:]:
        row = {}
        for index, header in enumerate(headers):
            row[header] = raw_row[index] if index < len(raw_row) else None
        rows.append(row)

    return SheetTable(
        headers=headers,
        rows=rows,
        row_count=len(rows),
        column_count=len(headers)
    )
