"""
Quote-aware splitting of one statement template into executable fragments.
"""


def split_statements(sql: str) -> list[str]:
    """Split *sql* on ``;`` outside single- or double-quoted regions.

    A quote opens a region only when none is open and closes it only when it
    matches the opening character. There is no escape handling: ``'it''s'``
    is read as two adjacent regions. Fragments are stripped; empty ones are
    dropped, so blank input yields ``[]``.
    """
    stmts: list[str] = []
    current: list[str] = []
    quote: str | None = None

    for ch in sql:
        if ch in ("'", '"'):
            if quote is None:
                quote = ch
            elif ch == quote:
                quote = None
            current.append(ch)
            continue

        if ch == ";" and quote is None:
            stmt = "".join(current).strip()
            if stmt:
                stmts.append(stmt)
            current = []
            continue

        current.append(ch)

    tail = "".join(current).strip()
    if tail:
        stmts.append(tail)
    return stmts
