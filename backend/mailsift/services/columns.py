# backend/mailsift/services/columns.py
from dataclasses import dataclass
from typing import Optional, Sequence

from ..errors import ColumnNotFound, MalformedInput

# Checked in order against lower-cased header names
EMAIL_HEADER_HINTS = ("email", "mail")


@dataclass(frozen=True)
class ResolvedColumn:
    name: str
    index: int


def resolve_email_column(headers: Sequence[str], hint: Optional[str] = None) -> ResolvedColumn:
    """
    Pick the column holding email addresses.

    An explicit hint must match a header exactly. Without one, the first
    header containing "email" wins, then the first containing "mail",
    then the first column.
    """
    if not headers:
        raise MalformedInput("CSV has no header columns")

    if hint:
        if hint not in headers:
            raise ColumnNotFound(f"Email column '{hint}' not found in CSV headers")
        return ResolvedColumn(hint, list(headers).index(hint))

    for needle in EMAIL_HEADER_HINTS:
        for i, name in enumerate(headers):
            if needle in name.lower():
                return ResolvedColumn(name, i)

    return ResolvedColumn(headers[0], 0)
