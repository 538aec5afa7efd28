# crudkit/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py          # App-level errors + ErrorKind taxonomy
# │   ├── classifier.py    # Store-level signals -> ErrorKind
# │   └── mapper.py        # Store-level errors -> app-level errors, db_error_handler

from .base import (
    ErrorKind,
    RepositoryError,
    NotFoundError,
    DuplicateError,
    ValidationFailureError,
    InvalidFieldError,
    UnknownError,
)
from .classifier import classify_error
from .mapper import db_error_handler, to_app_error

__all__ = [
    "ErrorKind",
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "ValidationFailureError",
    "InvalidFieldError",
    "UnknownError",
    "classify_error",
    "db_error_handler",
    "to_app_error",
]
