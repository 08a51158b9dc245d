from decimal import Decimal

def format_indian_currency(amount: Decimal) -> str:
    """Format with lakh/crore grouping, e.g. ``₹ 12,34,567.00``."""
    if amount is None:
        return "₹ 0.00"
    amount = Decimal(amount)
    sign = "-" if amount < 0 else ""
    amount_str = f"{abs(amount):.2f}"
    integer_part, decimal_part = amount_str.split(".")

    if len(integer_part) <= 3:
        return f"₹ {sign}{integer_part}.{decimal_part}"

    last_three = integer_part[-3:]
    remaining = integer_part[:-3]

    formatted_remaining = ""
    while len(remaining) > 2:
        formatted_remaining = "," + remaining[-2:] + formatted_remaining
        remaining = remaining[:-2]

    formatted_remaining = remaining + formatted_remaining

    return f"₹ {sign}{formatted_remaining},{last_three}.{decimal_part}"


def format_document_number(prefix: str, value: int, width: int = 6) -> str:
    """``PAY`` + 42 -> ``PAY000042``."""
    return f"{prefix}{str(value).zfill(width)}"
