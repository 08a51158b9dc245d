from sqlalchemy.orm import class_mapper
from .formatting import format_indian_currency, format_document_number

def sqlalchemy_to_dict(obj):
    """Convert a SQLAlchemy object to a JSON friendly dictionary."""
    if not obj:
        return None
    mapper = class_mapper(obj.__class__)
    result = {}
    for c in mapper.columns:
        value = getattr(obj, c.key)
        # Convert datetime/date objects to ISO format strings
        if hasattr(value, 'isoformat'):
            value = value.isoformat()
        # Convert Decimal objects to strings so no precision is lost
        elif hasattr(value, 'normalize') and hasattr(value, 'from_float'):
            value = str(value)
        # Convert enum types to their persisted values
        elif hasattr(value, 'value') and hasattr(value, 'name'):
            value = value.value
        result[c.key] = value
    return result

__all__ = ['format_document_number', 'format_indian_currency', 'sqlalchemy_to_dict']
