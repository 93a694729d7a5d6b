"""Streaming CSV export.

Rows are encoded one at a time so a response can be written while rows are
still being produced. The header comes from the first row's keys and every
later row must have the same keys.

Usage:
    from starlette.responses import StreamingResponse

    lines = iter_csv(record.to_row() for record in records)
    return StreamingResponse(lines, media_type=CSV_MEDIA_TYPE)
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from enshub.core.exceptions import EncodingFault


CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
DELIMITER = ","
QUOTE = '"'
LINE_END = "\n"
_NEEDS_QUOTING = (DELIMITER, QUOTE, LINE_END)


def encode_field(value: Any) -> str:
    """Render one field: None is empty, quotes doubled, quoted when needed."""
    if value is None:
        return ""
    text = str(value).replace(QUOTE, QUOTE * 2)
    if any(ch in text for ch in _NEEDS_QUOTING):
        return f"{QUOTE}{text}{QUOTE}"
    return text


def encode_header(row: Mapping[str, Any]) -> tuple[list[str], str]:
    headers = list(row.keys())
    return headers, DELIMITER.join(headers) + LINE_END


def encode_row(headers: list[str], row: Mapping[str, Any]) -> str:
    """Encode ``row`` in header order. A missing key is a caller bug."""
    try:
        fields = [encode_field(row[key]) for key in headers]
    except KeyError as e:
        raise EncodingFault(message=f"Export row is missing column {e.args[0]!r}") from e
    return DELIMITER.join(fields) + LINE_END


def iter_csv(rows: Iterable[Mapping[str, Any]]) -> Iterator[str]:
    """Yield the header line, then one line per row. Nothing for no rows."""
    headers: list[str] | None = None
    for row in rows:
        if headers is None:
            headers, line = encode_header(row)
            yield line
        yield encode_row(headers, row)


def export_filename(entity: str) -> str:
    return f"{entity}.csv"


def content_disposition(entity: str) -> str:
    return f'attachment; filename="{export_filename(entity)}"'
