from __future__ import annotations

import csv
import io
from collections.abc import Iterable

from .models import Listing

HEADER = ("title", "uni", "deadline")


def serialize(listings: Iterable[Listing]) -> str:
    """
    Render listings as CSV text.

      - header row is the bare literal ``title,uni,deadline``
      - every data field is quoted, embedded quotes doubled, empty -> ""
      - rows end with "\\n", including the last one
    """
    buf = io.StringIO()
    buf.write(",".join(HEADER) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for item in listings:
        writer.writerow([item.title or "", item.uni or "", item.deadline or ""])
    return buf.getvalue()
