"""Read-only reference lookups against the HR source schema."""

from __future__ import annotations

from typing import Final

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError

from hr_event_publisher.enrichment.interfaces import REFERENCE_NOT_FOUND, ReferenceNotFound, ReferenceReadModelPort


class SQLAlchemyReferenceReadModel(ReferenceReadModelPort):
    """Resolve position titles, department names and employee names.

    Each entity type maps to one fixed parameterized query; no SQL is composed
    from caller input.
    """

    _LOOKUP_QUERIES: Final[dict[str, str]] = {
        "position": "SELECT title AS display_value FROM positions WHERE id = :reference_key",
        "department": "SELECT name AS display_value FROM departments WHERE CAST(id AS CHAR(20)) = :reference_key",
        "employee": (
            "SELECT CONCAT(first_name, ' ', last_name) AS display_value "
            "FROM employees WHERE CAST(id AS CHAR(20)) = :reference_key"
        ),
    }

    def __init__(self, engine: Engine):
        """Initialize reference read model.

        Args:
            engine: SQLAlchemy engine bound to the reference database.

        Returns:
            None: Initializer does not return values.

        Raises:
            ValueError: Raised when engine is invalid.
        """

        if engine is None:
            raise ValueError("engine must not be None")

        self._engine = engine

    def reference_lookup(self, entity_type: str, key: str) -> str | ReferenceNotFound:
        """Resolve one reference code.

        Args:
            entity_type: `position`, `department` or `employee`.
            key: Reference code.

        Returns:
            str | ReferenceNotFound: Display value, or `REFERENCE_NOT_FOUND`.

        Raises:
            ValueError: Raised when the entity type is not supported or the key is blank.
            ConnectionError: Raised when the reference database cannot be queried.
        """

        query = self._LOOKUP_QUERIES.get(entity_type)
        if query is None:
            raise ValueError(f"unsupported reference entity_type={entity_type}")
        normalized_key = str(key).strip()
        if not normalized_key:
            raise ValueError("key must not be blank")

        try:
            with self._engine.connect() as connection:
                row = connection.execute(text(query), {"reference_key": normalized_key}).mappings().first()
        except SQLAlchemyError as error:
            raise ConnectionError(
                f"reference lookup failed entity_type={entity_type} key={normalized_key}"
            ) from error

        if row is None or row["display_value"] is None:
            return REFERENCE_NOT_FOUND
        return str(row["display_value"])
