import secrets
import time
from typing import List, Literal, Optional, Set

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

# ids handed out during the current millisecond; ids from earlier milliseconds
# differ in their time prefix, so only these can collide
_issued_ms = -1
_issued: Set[str] = set()


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Opaque record id: base36 milliseconds followed by a random base36 suffix."""
    global _issued_ms
    while True:
        now_ms = time.time_ns() // 1_000_000
        if now_ms != _issued_ms:
            _issued_ms = now_ms
            _issued.clear()
        cand = _to_base36(now_ms) + _to_base36(secrets.randbits(48))
        if cand not in _issued:
            _issued.add(cand)
            return cand


def format_money(amount: float, currency: str = "PHP") -> str:
    return f"{currency} {amount:,.2f}"


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows; cells are converted with str().
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all left ('l').

    Returns:
        str: Markdown formatted table, or "" when there is nothing to show.
    """
    if not rows and not headers:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [str(h) for h in headers]
    rows = [[str(cell) for cell in row] for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["l"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {
        "l": ":---",
        "c": ":---:",
        "r": "---:",
    }

    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(align_map[a] for a in aligns) + " |",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in rows)
    return "\n".join(lines)
