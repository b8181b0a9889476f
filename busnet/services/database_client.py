"""
Direct database binding for the data store.

Offers the same operations as ``RestClient`` but talks to the database
through SQLAlchemy. Reads declare their joins and ordering up front and
return records with relations already embedded, so the store does not need
to stitch foreign keys itself.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from busnet.db import SessionLocal
from busnet.resources import RESOURCES, Resource
from busnet.schemas import ConnectionStatus, Envelope
from busnet.services import record_service
from busnet.services.entities import ENTITIES, ENTITIES_BY_TABLE, EntitySpec

logger = logging.getLogger(__name__)


def _serialize(row, spec: EntitySpec) -> Dict[str, Any]:
    """Row -> dict, recursing through the entity's relations."""
    record = RESOURCES[spec.table].serialize(row)
    for rel in spec.relations:
        related = getattr(row, rel.name)
        record[rel.name] = _serialize(related, ENTITIES[rel.target]) if related is not None else None
    return record


class DatabaseClient:
    """
    Binding that reads and writes the database directly.

    Each call opens and closes its own session in a worker thread, so
    concurrent calls from the store overlap instead of blocking the loop.
    """

    embeds_relations = True

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        pass

    @staticmethod
    def _resource(table: str) -> Tuple[Resource, EntitySpec]:
        name = table.lower()
        if name not in RESOURCES or name not in ENTITIES_BY_TABLE:
            raise record_service.NotFoundError(f"Unknown table '{table}'")
        return RESOURCES[name], ENTITIES_BY_TABLE[name]

    # ------------------------------------------------------------------
    # Session work (runs in a worker thread)
    # ------------------------------------------------------------------

    def _select_rows(self, table: str, filter: Optional[Tuple[str, Any]]) -> List[Dict[str, Any]]:
        resource, spec = self._resource(table)
        model = resource.model
        with self._session_factory() as db:
            query = db.query(model).options(
                *(joinedload(getattr(model, rel.name)) for rel in spec.relations)
            )
            if filter is not None:
                column_name, value = filter
                columns = model.__table__.columns
                if column_name not in columns:
                    raise record_service.ValidationError(
                        f"Unknown filter column '{column_name}'"
                    )
                query = query.filter(columns[column_name] == value)

            sort_column = getattr(model, spec.sort_field)
            query = query.order_by(sort_column.desc() if spec.descending else sort_column.asc())

            return [_serialize(row, spec) for row in query.all()]

    def _insert_row(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        resource, _ = self._resource(table)
        payload = resource.create.model_validate(record)
        with self._session_factory() as db:
            row = record_service.create_record(db, resource, payload)
            return resource.serialize(row)

    def _update_row(self, table: str, record_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        resource, _ = self._resource(table)
        payload = resource.update.model_validate(changes)
        with self._session_factory() as db:
            row = record_service.update_record(db, resource, int(record_id), payload)
            return resource.serialize(row)

    def _delete_row(self, table: str, record_id: Any) -> None:
        resource, _ = self._resource(table)
        with self._session_factory() as db:
            record_service.delete_record(db, resource, int(record_id))

    def _ping(self) -> None:
        with self._session_factory() as db:
            db.connection()

    # ------------------------------------------------------------------
    # Binding operations
    # ------------------------------------------------------------------

    async def select(self, table: str, filter: Optional[Tuple[str, Any]] = None) -> Envelope:
        try:
            data = await asyncio.to_thread(self._select_rows, table, filter)
            return Envelope(data=data)
        except record_service.RecordError as e:
            return Envelope(error=str(e))
        except SQLAlchemyError as e:
            logger.error("Database error reading %s: %s", table, e)
            return Envelope(error=str(e))

    async def insert(self, table: str, record) -> Envelope:
        if isinstance(record, (list, tuple)):
            record = record[0] if record else {}
        try:
            data = await asyncio.to_thread(self._insert_row, table, record)
            return Envelope(data=data)
        except (SchemaValidationError, ValueError) as e:
            return Envelope(error=str(e))
        except record_service.RecordError as e:
            return Envelope(error=str(e))
        except SQLAlchemyError as e:
            logger.error("Database error creating %s: %s", table, e)
            return Envelope(error=str(e))

    async def update(self, table: str, record_id: Any, changes: Dict[str, Any]) -> Envelope:
        try:
            data = await asyncio.to_thread(self._update_row, table, record_id, changes)
            return Envelope(data=data)
        except (SchemaValidationError, ValueError) as e:
            return Envelope(error=str(e))
        except record_service.RecordError as e:
            return Envelope(error=str(e))
        except SQLAlchemyError as e:
            logger.error("Database error updating %s/%s: %s", table, record_id, e)
            return Envelope(error=str(e))

    async def delete(self, table: str, record_id: Any) -> Envelope:
        try:
            await asyncio.to_thread(self._delete_row, table, record_id)
            return Envelope()
        except ValueError as e:
            return Envelope(error=str(e))
        except record_service.RecordError as e:
            return Envelope(error=str(e))
        except SQLAlchemyError as e:
            logger.error("Database error deleting %s/%s: %s", table, record_id, e)
            return Envelope(error=str(e))

    async def test_connection(self) -> ConnectionStatus:
        try:
            await asyncio.to_thread(self._ping)
            return ConnectionStatus(success=True)
        except SQLAlchemyError as e:
            return ConnectionStatus(success=False, error=str(e))
