"""
Header & Metadata Detection Layer.

Bank exports often open with a block of ``key,value`` lines (account number,
statement period, ...) before the real column header.  The detector scans
lines in order and picks the first one whose cells cover an accepted header
vocabulary; everything above it becomes metadata.

Rules
-----
* Cells are compared after trimming and lowercasing.
* Extra columns and column order are irrelevant.
* Blank header cells are named ``Column N`` (1-indexed).
* Data rows are padded with empty strings to the widest row.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from statement_ingest.config import DetectionConfig
from statement_ingest.errors import EmptyInputError, HeaderNotFoundError
from statement_ingest.logging_setup import get_logger
from statement_ingest.tokenizer import parse_line, split_lines

logger = get_logger("header_detector")


def normalize_cell(value: str) -> str:
    return value.strip().lower()


@dataclass
class DetectedTable:
    """Headers, padded data rows, and the metadata block above them."""

    headers: List[str]
    rows: List[List[str]]
    metadata: Dict[str, str]
    header_index: int


class HeaderDetector:
    """Locates the transaction header and splits off the metadata block.

    Parameters
    ----------
    config:
        Accepted vocabularies and preview limits.
    """

    def __init__(self, config: DetectionConfig) -> None:
        self._config = config
        self._vocabularies = [
            {normalize_cell(word) for word in vocab}
            for vocab in config.header_vocabularies
        ]

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def detect(self, text: str) -> DetectedTable:
        """Run detection over raw statement text.

        Raises
        ------
        EmptyInputError
            The text holds no non-empty lines.
        UnterminatedQuoteError
            Any line ends inside a quoted field.
        HeaderNotFoundError
            No line matches an accepted vocabulary.
        """
        lines = split_lines(text)
        if not lines:
            raise EmptyInputError()

        parsed = [parse_line(line) for line in lines]
        header_index = self.find_header_index(parsed)

        data_rows = parsed[header_index + 1:]
        headers = self.build_headers(parsed[header_index], data_rows)
        width = len(headers)
        rows = [row + [""] * (width - len(row)) for row in data_rows]
        metadata = self.build_metadata(parsed[:header_index])

        logger.info(
            "Header found at line %d: columns=%d, data rows=%d, metadata keys=%d",
            header_index,
            width,
            len(rows),
            len(metadata),
        )
        return DetectedTable(
            headers=headers,
            rows=rows,
            metadata=metadata,
            header_index=header_index,
        )

    def is_header(self, cells: Sequence[str]) -> bool:
        """True if *cells* cover at least one accepted vocabulary."""
        normalized = {normalize_cell(c) for c in cells}
        return any(vocab <= normalized for vocab in self._vocabularies)

    def find_header_index(self, parsed_lines: Sequence[Sequence[str]]) -> int:
        for index, cells in enumerate(parsed_lines):
            if self.is_header(cells):
                return index

        raise HeaderNotFoundError(
            [list(vocab) for vocab in self._config.header_vocabularies]
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def build_headers(
        raw_headers: Sequence[str], data_rows: Sequence[Sequence[str]]
    ) -> List[str]:
        """Name every column, widening to the longest data row."""
        width = max([len(raw_headers)] + [len(row) for row in data_rows])
        headers: List[str] = []
        for index in range(width):
            value = raw_headers[index].strip() if index < len(raw_headers) else ""
            headers.append(value or f"Column {index + 1}")
        return headers

    @staticmethod
    def build_metadata(parsed_lines: Sequence[Sequence[str]]) -> Dict[str, str]:
        """Turn ``key, value...`` lines into a lowercase-keyed dict.

        Values that were split on commas are rejoined; lines with an empty
        key or value are dropped.
        """
        metadata: Dict[str, str] = {}
        for cells in parsed_lines:
            if not cells:
                continue
            key = normalize_cell(cells[0])
            value = ",".join(cells[1:]).strip()
            if key and value:
                metadata[key] = value
            else:
                logger.debug("Ignoring metadata line without key/value: %r", cells)
        return metadata
