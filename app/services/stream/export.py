from __future__ import annotations

import csv
import io
import json
from typing import Iterable, List

from app.models.stream import Record


def to_json(records: Iterable[Record]) -> str:
    return json.dumps(list(records), ensure_ascii=False, indent=2)


def to_csv(records: Iterable[Record]) -> str:
    """Render records as CSV; the header is the union of keys in first-seen order."""
    rows = list(records)
    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=columns, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return buf.getvalue()
