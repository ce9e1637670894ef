# rendering/table_text.py
from __future__ import annotations

from typing import List, Sequence

from bs4 import Tag


def table_to_text(rows: Sequence[Sequence[str]]) -> str:
    """
    Header row first. Output:

        | Name  | Qty |
        | ----- | --- |
        | apple | 3   |

    Column widths come from the header's columns; cells beyond the header's width
    are written unpadded. Zero rows -> "".
    """
    if not rows:
        return ""

    header = rows[0]
    widths = [
        max((len(row[col]) for row in rows if col < len(row)), default=0)
        for col in range(len(header))
    ]

    def _line(cells: Sequence[str]) -> str:
        padded = (cell.ljust(widths[col] if col < len(widths) else 0) for col, cell in enumerate(cells))
        return "|" + "".join(f" {cell} |" for cell in padded)

    lines = [_line(header), "|" + "".join(f" {'-' * w} |" for w in widths)]
    lines.extend(_line(row) for row in rows[1:])
    return "\n".join(lines).strip()


def table_rows(table: Tag) -> List[List[str]]:
    return [
        [cell.get_text().strip() for cell in tr.find_all(["th", "td"])]
        for tr in table.find_all("tr")
    ]


def table_element_to_text(table: Tag) -> str:
    return table_to_text(table_rows(table))
