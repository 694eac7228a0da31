from __future__ import annotations

QUOTE = '"'
DELIMITER = ","


def split_line(line: str, delimiter: str = DELIMITER) -> list[str]:
    """Split one delimited line into trimmed fields.

    Quoted fields may contain the delimiter; a doubled quote inside a quoted
    field is a literal quote. An unterminated quote runs to the end of the line.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == QUOTE:
            if in_quotes and i + 1 < n and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            fields.append(strip_wrapping_quotes("".join(current).strip()))
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append(strip_wrapping_quotes("".join(current).strip()))
    return fields


def strip_wrapping_quotes(value: str) -> str:
    if len(value) >= 2 and value.startswith(QUOTE) and value.endswith(QUOTE):
        return value[1:-1].strip()
    return value
