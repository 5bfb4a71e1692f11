# chatapp/db/base_class.py
from typing import Any

from sqlalchemy.orm import as_declarative


@as_declarative()
class Base:
    """Declarative base for every table. Models name their tables explicitly."""

    id: Any
    __name__: str
