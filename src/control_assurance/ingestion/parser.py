"""Delimited-text parser for bulk test result ingestion.

Splits comma- or tab-separated text into rows of trimmed string cells.
Quoted fields may contain the delimiter, newlines and doubled quotes.
The parser enforces no size limits; that is left to the caller.
"""

from control_assurance.models.ingestion import InputSource


COMMA = ","
TAB = "\t"
QUOTE = '"'

# Delimiter preferred when the first line has as many tabs as commas
DEFAULT_DELIMITER: dict[InputSource, str] = {
    InputSource.FILE: COMMA,
    InputSource.PASTE: TAB,
}

HEADER_MARKERS = frozenset({"control_ref", "controlref", "control ref"})


def detect_delimiter(text: str, prefer: str = COMMA) -> str:
    """Pick tab or comma by counting each on the first line."""
    first_line = text.split("\n", 1)[0]
    tabs = first_line.count(TAB)
    commas = first_line.count(COMMA)
    if tabs > commas:
        return TAB
    if commas > tabs:
        return COMMA
    return prefer


def tokenize(text: str, delimiter: str) -> list[list[str]]:
    """Split text into rows of cells.

    Args:
        text: Decoded input block.
        delimiter: Single-character cell separator.

    Returns:
        Ordered rows of whitespace-trimmed cells. A final row holding one
        empty cell (left behind by a trailing newline) is dropped.
    """
    return [cells for _, cells in tokenize_records(text, delimiter)]


def tokenize_records(text: str, delimiter: str) -> list[tuple[int, list[str]]]:
    """Split text into rows, each paired with the 1-based source line it starts on.

    A quoted cell spanning line breaks advances the line count, so later
    rows keep pointing at their real source line.
    """
    records: list[tuple[int, list[str]]] = []
    line = 1
    start_line = 1
    row: list[str] = []
    cell: list[str] = []
    in_quotes = False
    i = 0
    length = len(text)

    while i < length:
        ch = text[i]
        if in_quotes:
            if ch == QUOTE:
                if i + 1 < length and text[i + 1] == QUOTE:
                    cell.append(QUOTE)
                    i += 1
                else:
                    in_quotes = False
            else:
                if ch == "\n":
                    line += 1
                cell.append(ch)
        elif ch == QUOTE:
            in_quotes = True
        elif ch == delimiter:
            row.append("".join(cell).strip())
            cell = []
        elif ch == "\n" or (ch == "\r" and i + 1 < length and text[i + 1] == "\n"):
            if ch == "\r":
                i += 1
            row.append("".join(cell).strip())
            records.append((start_line, row))
            row = []
            cell = []
            line += 1
            start_line = line
        else:
            cell.append(ch)
        i += 1

    row.append("".join(cell).strip())
    if row != [""]:
        records.append((start_line, row))
    return records


def parse_delimited(text: str, source: InputSource = InputSource.FILE) -> list[list[str]]:
    """Detect the delimiter for `source` and tokenize the whole block."""
    delimiter = detect_delimiter(text, prefer=DEFAULT_DELIMITER[source])
    return tokenize(text, delimiter)


def is_header_row(row: list[str]) -> bool:
    """True when the first cell names the control reference column."""
    return bool(row) and row[0].strip().lower() in HEADER_MARKERS


def strip_header(rows: list[list[str]]) -> tuple[list[list[str]], bool]:
    """Remove a leading header row if present.

    Returns:
        The data rows and whether a header was removed.
    """
    if rows and is_header_row(rows[0]):
        return rows[1:], True
    return rows, False


def parse_records(
    text: str,
    source: InputSource = InputSource.FILE,
) -> tuple[list[tuple[int, list[str]]], bool]:
    """Tokenize a block and drop a leading header row.

    Returns:
        (line_number, cells) records and whether a header was removed.
    """
    delimiter = detect_delimiter(text, prefer=DEFAULT_DELIMITER[source])
    records = tokenize_records(text, delimiter)
    rows, header_skipped = strip_header([cells for _, cells in records])
    return records[len(records) - len(rows):], header_skipped
