from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .derived import sequential_document_number


def next_document_number(db: Session, column, prefix: str, year: Optional[int] = None) -> str:
    """
    Generate the next <prefix>-<year>-<seq> number for the column's table.

    The sequence is the count of this year's numbers plus one. This is a
    read-then-write: two concurrent creates can compute the same number, in
    which case the unique constraint rejects the second insert (409). If a
    deletion has left the counted number in use, the sequence skips forward
    to the next free value.
    """
    year = year or datetime.now(timezone.utc).year
    pattern = f"{prefix}-{year}-%"
    count = db.query(func.count()).filter(column.like(pattern)).scalar() or 0
    number = sequential_document_number(prefix, year, count)
    while db.query(column).filter(column == number).first() is not None:
        count += 1
        number = sequential_document_number(prefix, year, count)
    return number
