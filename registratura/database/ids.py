import uuid


def is_valid_id(value: object) -> bool:
    """Return True when ``value`` is a textual UUID accepted by the id columns."""
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def normalize_id(value: str) -> str:
    """Canonical lowercase form, as PostgreSQL renders UUID columns."""
    return str(uuid.UUID(value))
