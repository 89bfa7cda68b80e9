from __future__ import annotations

import io
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import pandas as pd

from ..errors import FatalParseError
from ..mapping.values import cell_to_text, is_blank
from ..models.row_data import RowData
from ..services.progress import ProgressSink, Stage, emit, make_event

"""Tabular parser: delimited text / spreadsheet bytes -> RawRow sequence.

- first line / first row is the header row (names whitespace-trimmed)
- spreadsheet: first sheet only, cells coerced to text (dates -> YYYY-MM-DD)
- structurally inconsistent input aborts the whole parse (FatalParseError);
  a single malformed or missing cell just becomes ''
- parsing is not chunked: progress is reported at 0% and once at 100%
"""

__all__ = [
    "InputKind",
    "TabularData",
    "detect_kind",
    "parse_tabular",
]


class InputKind(Enum):
    DELIMITED = "delimited"
    SPREADSHEET = "spreadsheet"
    MARKUP = "markup"


_OLE_MAGIC = b"\xd0\xcf\x11\xe0"  # legacy .xls (BIFF)

_EXTENSIONS = {
    ".csv": InputKind.DELIMITED,
    ".txt": InputKind.DELIMITED,
    ".xlsx": InputKind.SPREADSHEET,
    ".xlsm": InputKind.SPREADSHEET,
    ".xls": InputKind.SPREADSHEET,  # rejected in _read_spreadsheet
    ".xml": InputKind.MARKUP,
}


@dataclass
class TabularData:
    headers: list[str]
    rows: Iterator[RowData]  # lazy, one-shot


def detect_kind(file_name: str, data: bytes) -> InputKind:
    """Pick the parser from the file extension, sniffing the content otherwise."""
    kind = _EXTENSIONS.get(Path(file_name).suffix.lower())
    if kind is not None:
        return kind
    head = data[:512]
    if head.startswith(b"PK") or head.startswith(_OLE_MAGIC):  # zip (xlsx) / OLE (xls)
        return InputKind.SPREADSHEET
    if head.lstrip(b"\xef\xbb\xbf \t\r\n").startswith(b"<"):
        return InputKind.MARKUP
    return InputKind.DELIMITED


def parse_tabular(data: bytes, kind: InputKind, on_progress: ProgressSink | None = None) -> TabularData:
    """Parse delimited text or a spreadsheet into headers + lazy rows.

    Raises:
        FatalParseError: empty / undecodable input, inconsistent columns or an
            unreadable workbook.
    """
    emit(on_progress, make_event(0, 100, Stage.PARSING))
    if kind is InputKind.DELIMITED:
        headers, records = _read_delimited(data)
    elif kind is InputKind.SPREADSHEET:
        headers, records = _read_spreadsheet(data)
    else:
        raise ValueError(f"parse_tabular does not handle {kind.value} input")
    emit(on_progress, make_event(100, 100, Stage.PARSING))
    return TabularData(headers=headers, rows=_iter_rows(headers, records))


def _read_delimited(data: bytes) -> tuple[list[str], Iterable[Sequence[Any]]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise FatalParseError(f"file is not valid UTF-8 text: {e}") from e
    if not text.strip():
        raise FatalParseError("file is empty")
    df = _read_csv_frame(text)
    if not isinstance(df.index, pd.RangeIndex):
        # データ行がヘッダより 1 列多いと pandas は先頭列を index にしてしまう
        if not all(is_blank(v) for v in df.iloc[:, -1]):
            raise FatalParseError("inconsistent columns: data rows have more fields than the header")
        df = _read_csv_frame(text, index_col=False)  # 末尾カンマ (Excel 出力) は捨てる
    headers = [str(c).strip() for c in df.columns]
    return headers, df.itertuples(index=False, name=None)


def _read_csv_frame(text: str, **kwargs: Any) -> pd.DataFrame:
    try:
        return pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,  # 'NA' などを文字列のまま残す
            skip_blank_lines=True,
            **kwargs,
        )
    except pd.errors.EmptyDataError as e:
        raise FatalParseError("file has no header row") from e
    except pd.errors.ParserError as e:
        raise FatalParseError(f"inconsistent columns: {e}") from e


def _read_spreadsheet(data: bytes) -> tuple[list[str], Iterable[Sequence[Any]]]:
    if not data:
        raise FatalParseError("file is empty")
    if data.startswith(_OLE_MAGIC):
        raise FatalParseError("legacy .xls workbooks are not supported; save the file as .xlsx")
    try:
        raw = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=object, engine="openpyxl")
    except Exception as e:  # openpyxl raises zip / xml / key errors for broken workbooks
        raise FatalParseError(f"unreadable workbook: {e}") from e
    if raw.shape[0] == 0:
        raise FatalParseError("first sheet is empty")
    header_cells = [cell_to_text(c) for c in raw.iloc[0].tolist()]
    # ヘッダが空の列 (書式だけ残った列など) は無視
    keep = [i for i, h in enumerate(header_cells) if h]
    headers = [header_cells[i] for i in keep]
    records = ([row[i] for i in keep] for row in raw.iloc[1:].itertuples(index=False, name=None))
    return headers, records


def _iter_rows(headers: list[str], records: Iterable[Sequence[Any]]) -> Iterator[RowData]:
    row_number = 0
    for record in records:
        cells = [cell_to_text(v) for v in record]
        if not any(cells):
            continue  # 空行はスキップ
        values = {h: (cells[i] if i < len(cells) else "") for i, h in enumerate(headers)}
        yield RowData(row_number=row_number, values=values)
        row_number += 1
