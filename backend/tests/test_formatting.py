from decimal import Decimal

from utils import format_indian_currency, format_document_number


def test_indian_grouping():
    assert format_indian_currency(Decimal("1234567")) == "₹ 12,34,567.00"
    assert format_indian_currency(Decimal("999.5")) == "₹ 999.50"
    assert format_indian_currency(Decimal("-150000")) == "₹ -1,50,000.00"
    assert format_indian_currency(None) == "₹ 0.00"


def test_document_number_padding():
    assert format_document_number("PAY", 42) == "PAY000042"
    assert format_document_number("REF", 1234567) == "REF1234567"
