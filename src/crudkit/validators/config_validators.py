from typing import Any


def to_uppercase(value: Any) -> Any:
    """Strip and uppercase a string setting; other values pass through to field validation."""
    return value.strip().upper() if isinstance(value, str) else value


def to_lowercase(value: Any) -> Any:
    """Strip and lowercase a string setting; other values pass through to field validation."""
    return value.strip().lower() if isinstance(value, str) else value
