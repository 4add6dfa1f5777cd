"""Render query result rows as plain-text and HTML tables."""
import html
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Sequence

MAX_DISPLAY_ROWS = 100
NO_ROWS_MESSAGE = "No rows returned"


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _columns(rows: Sequence[Dict[str, Any]]) -> List[str]:
    # Rows are uniform; the first one defines the column order
    return list(rows[0].keys())


def _more_rows_note(total: int, max_rows: int) -> str:
    return f"... ({total - max_rows} more rows)"


def format_table_text(rows: Sequence[Dict[str, Any]], max_rows: int = MAX_DISPLAY_ROWS) -> str:
    """Fixed-width table of at most max_rows rows, with a trailer when truncated."""
    if not rows:
        return NO_ROWS_MESSAGE

    columns = _columns(rows)
    shown = [[_cell_text(row.get(column)) for column in columns] for row in rows[:max_rows]]
    widths = [
        max([len(column)] + [len(values[i]) for values in shown])
        for i, column in enumerate(columns)
    ]

    def line(values: List[str]) -> str:
        return " | ".join(value.ljust(width) for value, width in zip(values, widths)).rstrip()

    lines = [line(columns), "-+-".join("-" * width for width in widths)]
    lines.extend(line(values) for values in shown)
    if len(rows) > max_rows:
        lines.append(_more_rows_note(len(rows), max_rows))
    return "\n".join(lines)


def format_table_html(rows: Sequence[Dict[str, Any]], max_rows: int = MAX_DISPLAY_ROWS) -> str:
    """HTML table of at most max_rows rows; every value is escaped."""
    if not rows:
        return f"<div>{NO_ROWS_MESSAGE}</div>"

    columns = _columns(rows)
    header = "".join(f"<th>{html.escape(column)}</th>" for column in columns)
    body = "".join(
        "<tr>" + "".join(f"<td>{html.escape(_cell_text(row.get(column)))}</td>" for column in columns) + "</tr>"
        for row in rows[:max_rows]
    )

    parts = [
        '<table style="border-collapse: collapse; width: 100%; font-family: monospace; font-size: 12px;">',
        f"<thead><tr>{header}</tr></thead>",
        f"<tbody>{body}</tbody>",
        "</table>",
    ]
    if len(rows) > max_rows:
        parts.append(f"<div>{html.escape(_more_rows_note(len(rows), max_rows))}</div>")
    return "".join(parts)


def serialize_value(value: Any) -> Any:
    """Convert values that JSON cannot carry (dates, decimals) to strings."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    return value


def table_bundle(rows: Sequence[Dict[str, Any]], max_rows: int = MAX_DISPLAY_ROWS) -> Dict[str, Any]:
    """MIME bundle for a result set: plain text, HTML and a JSON table."""
    bundle: Dict[str, Any] = {
        "text/plain": format_table_text(rows, max_rows),
        "text/html": format_table_html(rows, max_rows),
    }
    if rows:
        columns = _columns(rows)
        bundle["application/json"] = {
            "type": "table",
            "columns": columns,
            "rows": [[serialize_value(row.get(column)) for column in columns] for row in rows[:max_rows]],
            "truncated": _more_rows_note(len(rows), max_rows) if len(rows) > max_rows else None,
        }
    return bundle
