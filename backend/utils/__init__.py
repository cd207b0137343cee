from sqlalchemy.orm import class_mapper

def sqlalchemy_to_dict(obj):
    """Snapshot a mapped row as JSON-friendly column values for the audit log."""
    if not obj:
        return None
    mapper = class_mapper(obj.__class__)
    result = {}
    for c in mapper.columns:
        value = getattr(obj, c.key)
        if hasattr(value, 'isoformat'):
            value = value.isoformat()
        elif hasattr(value, 'normalize') and hasattr(value, 'from_float'):  # Decimal
            value = float(value)
        elif hasattr(value, 'name') and hasattr(value, 'value'):  # Enum
            value = value.value
        elif isinstance(value, dict):
            # JSON columns are mutable; later edits must not leak into the snapshot
            value = dict(value)
        result[c.key] = value
    return result

__all__ = ['sqlalchemy_to_dict']
