"""Opaque asset identifiers."""

import re
import uuid

_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")


def new_id() -> str:
    # uuid4 draws from os.urandom; an entropy failure propagates and is fatal.
    return str(uuid.uuid4())


def is_valid_id(value: object) -> bool:
    """Allow-list check applied before an id is ever turned into a path."""
    return isinstance(value, str) and _ID_PATTERN.fullmatch(value) is not None
