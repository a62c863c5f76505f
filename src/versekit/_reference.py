"""Parsing of passage references like ``John 3:16-18`` or ``Gen 1``."""

from __future__ import annotations

import re

from ._canon import resolve_book_name
from ._errors import ValidationError
from ._models import Reference

_REF_RE = re.compile(
    r"""
    ^\s*
    (?P<book>\d?\s*[^\d\s:][^:]*?)   # book, optionally numbered ("1 John")
    \s+
    (?P<chapter>\d+)
    (?:\s*:\s*(?P<start>\d+)(?:\s*-\s*(?P<end>\d+))?)?
    \s*$
    """,
    re.VERBOSE,
)


def parse_reference(ref: str) -> Reference:
    """Parse a reference string.

    The book may be a canonical name or alias ("jn", "1 cor"); names the
    canon does not know (e.g. apocryphal books) are kept as written.

    Raises ValidationError for malformed references, zero chapter or verse
    numbers, and reversed verse ranges.
    """
    m = _REF_RE.match(ref)
    if m is None:
        raise ValidationError(f"Malformed reference: {ref!r}")

    book_str = " ".join(m.group("book").split())
    book = resolve_book_name(book_str) or book_str
    chapter = int(m.group("chapter"))
    start = int(m.group("start")) if m.group("start") else None
    end = int(m.group("end")) if m.group("end") else start

    if chapter < 1:
        raise ValidationError(f"Chapter must be positive in reference: {ref!r}")
    if start is not None:
        if start < 1:
            raise ValidationError(f"Verse must be positive in reference: {ref!r}")
        if end < start:
            raise ValidationError(f"Verse range is reversed in reference: {ref!r}")

    return Reference(book, chapter, start, end)
