"""
Unit tests for header and metadata detection.
"""

from __future__ import annotations

import pytest

from statement_ingest.config import DetectionConfig
from statement_ingest.errors import (
    EmptyInputError,
    HeaderNotFoundError,
    UnterminatedQuoteError,
)
from statement_ingest.header_detector import HeaderDetector


@pytest.fixture
def detector() -> HeaderDetector:
    return HeaderDetector(config=DetectionConfig())


# ======================================================================
# Header location
# ======================================================================

class TestHeaderLocation:
    @pytest.mark.parametrize(
        "header_line",
        [
            "Date,Description,Amount",
            "Posted Date,Payee,Address,Amount",
            "  AMOUNT , description,Running Bal., date ",
        ],
    )
    def test_vocabularies_detected_after_metadata(
        self, detector: HeaderDetector, header_line: str
    ) -> None:
        text = "\n".join([
            "Account Number,123456789",
            "Statement Period,01/01/2026 - 01/31/2026",
            header_line,
            "01/02/2026,X,-1.00",
        ])
        table = detector.detect(text)
        assert table.header_index == 2
        assert table.metadata == {
            "account number": "123456789",
            "statement period": "01/01/2026 - 01/31/2026",
        }

    def test_first_matching_line_wins(self, detector: HeaderDetector) -> None:
        text = "Date,Description,Amount\nDate,Description,Amount\n1/1/2026,a,1"
        table = detector.detect(text)
        assert table.header_index == 0
        assert table.rows[0] == ["Date", "Description", "Amount"]

    def test_header_at_first_line_has_no_metadata(
        self, detector: HeaderDetector
    ) -> None:
        table = detector.detect("Date,Description,Amount\n1/1/2026,a,1")
        assert table.header_index == 0
        assert table.metadata == {}

    def test_partial_vocabulary_not_a_header(self, detector: HeaderDetector) -> None:
        with pytest.raises(HeaderNotFoundError):
            detector.detect("Date,Amount\n1/1/2026,5")

    def test_no_header_message_names_vocabularies(
        self, detector: HeaderDetector
    ) -> None:
        with pytest.raises(HeaderNotFoundError) as excinfo:
            detector.detect("foo,bar\n1,2")
        assert "Date/Description/Amount" in str(excinfo.value)
        assert "Posted Date/Payee/Amount" in str(excinfo.value)

    def test_empty_input(self, detector: HeaderDetector) -> None:
        with pytest.raises(EmptyInputError, match="CSV is empty"):
            detector.detect("\r\n   \n")

    def test_unterminated_quote_in_data_row(self, detector: HeaderDetector) -> None:
        with pytest.raises(UnterminatedQuoteError):
            detector.detect('Date,Description,Amount\n1/1/2026,"oops,1')


# ======================================================================
# Metadata
# ======================================================================

class TestMetadata:
    def test_values_with_commas_rejoined(self, detector: HeaderDetector) -> None:
        text = 'Account Name,"Smith, Jane"\nNote,a,b,c\nDate,Description,Amount'
        table = detector.detect(text)
        assert table.metadata["account name"] == "Smith, Jane"
        assert table.metadata["note"] == "a,b,c"

    def test_keys_lowercased_and_blank_lines_dropped(
        self, detector: HeaderDetector
    ) -> None:
        text = "  CARD NUMBER  ,  ****1234 \nOrphan\n,value\nDate,Description,Amount"
        table = detector.detect(text)
        assert table.metadata == {"card number": "****1234"}


# ======================================================================
# Columns and rows
# ======================================================================

class TestColumns:
    def test_blank_headers_get_placeholders(self, detector: HeaderDetector) -> None:
        table = detector.detect("Date,,Description,Amount\n1/1/2026,x,y,1")
        assert table.headers == ["Date", "Column 2", "Description", "Amount"]

    def test_wider_rows_extend_headers(self, detector: HeaderDetector) -> None:
        table = detector.detect("Date,Description,Amount\n1/1/2026,a,1,extra")
        assert table.headers == ["Date", "Description", "Amount", "Column 4"]

    def test_short_rows_padded(self, detector: HeaderDetector) -> None:
        table = detector.detect("Date,Description,Amount,Balance\n1/1/2026,a")
        assert table.rows == [["1/1/2026", "a", "", ""]]

    def test_all_rows_retained(self, detector: HeaderDetector) -> None:
        lines = ["Date,Description,Amount"] + [f"1/1/2026,row {i},1" for i in range(30)]
        table = detector.detect("\n".join(lines))
        assert len(table.rows) == 30
