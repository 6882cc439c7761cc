"""
Line Tokenizer.

Splits raw statement text into trimmed, non-empty logical lines and parses
each line into fields.  Quoting follows the usual CSV convention: a double
quote toggles quoted mode, ``""`` inside quotes is a literal quote, and a
comma only separates fields outside quotes.

Records never span lines; a line that ends inside quotes is a fatal error.
"""

from __future__ import annotations

from typing import List

from statement_ingest.errors import UnterminatedQuoteError


def split_lines(text: str) -> List[str]:
    """Return the trimmed, non-empty lines of *text*."""
    lines = text.replace("\r", "").split("\n")
    return [line.strip() for line in lines if line.strip()]


def parse_line(line: str) -> List[str]:
    """Split one line into fields.

    Raises
    ------
    UnterminatedQuoteError
        If the line ends inside a quoted field.
    """
    values: List[str] = []
    current: List[str] = []
    in_quotes = False

    i = 0
    while i < len(line):
        char = line[i]

        if char == '"':
            if in_quotes and line[i + 1:i + 2] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    if in_quotes:
        raise UnterminatedQuoteError(line)

    values.append("".join(current))
    return values


def tokenize(text: str) -> List[List[str]]:
    """Split *text* into lines and parse every line into fields."""
    return [parse_line(line) for line in split_lines(text)]
