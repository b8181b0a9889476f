"""
Record service for the REST resources.

Handles listing, lookup, creation, update and deletion of rows for any
registered resource, including foreign key validation.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from busnet.resources import Resource


class RecordError(Exception):
    """Base exception for record errors."""
    pass


class ValidationError(RecordError):
    """Raised when a write is rejected (bad filter, dangling reference, duplicate)."""
    pass


class NotFoundError(RecordError):
    """Raised when the addressed record does not exist."""
    pass


def _coerce_filter_value(column, value: str) -> Any:
    """Convert a query-string value to the column's Python type where that is simple."""
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if python_type in (int, float):
        try:
            return python_type(value)
        except ValueError:
            raise ValidationError(f"Invalid value '{value}' for filter column '{column.key}'")
    return value


def list_records(
    db: Session,
    resource: Resource,
    filters: Optional[Dict[str, str]] = None,
    skip: int = 0,
    limit: Optional[int] = None
) -> List[Any]:
    """
    List rows of a resource, optionally filtered by column equality.

    Raises:
        ValidationError: If a filter names an unknown column
    """
    model = resource.model
    columns = model.__table__.columns
    query = db.query(model)

    for column_name, value in (filters or {}).items():
        if column_name not in columns:
            raise ValidationError(f"Unknown filter column '{column_name}'")
        column = columns[column_name]
        query = query.filter(column == _coerce_filter_value(column, value))

    query = query.order_by(model.id).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_record(db: Session, resource: Resource, record_id: int):
    """Get a row by ID."""
    record = db.get(resource.model, record_id)
    if record is None:
        raise NotFoundError(f"{resource.label} with id {record_id} not found")
    return record


def validate_references(db: Session, resource: Resource, data: Dict[str, Any]) -> None:
    """
    Ensure every non-null foreign key in ``data`` points at an existing row.

    Raises:
        ValidationError: If a referenced row is missing
    """
    for column_name, target in resource.references.items():
        value = data.get(column_name)
        if value is None:
            continue
        if db.get(target, value) is None:
            label = target.__name__
            raise ValidationError(f"{label} with id {value} not found")


def _commit(db: Session, resource: Resource) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ValidationError(
            f"{resource.label} violates a uniqueness or reference constraint: {e.orig}"
        )


def create_record(db: Session, resource: Resource, payload) -> Any:
    """
    Create a row from a validated Create schema.

    Raises:
        ValidationError: If a reference is dangling or a unique column clashes
    """
    data = payload.model_dump(exclude_none=True)
    validate_references(db, resource, data)

    record = resource.model(**data)
    db.add(record)
    _commit(db, resource)
    db.refresh(record)
    return record


def update_record(db: Session, resource: Resource, record_id: int, payload) -> Any:
    """Apply the fields set on an Update schema to an existing row."""
    record = get_record(db, resource, record_id)

    update_data = payload.model_dump(exclude_unset=True)
    validate_references(db, resource, update_data)

    for field, value in update_data.items():
        setattr(record, field, value)

    _commit(db, resource)
    db.refresh(record)
    return record


def delete_record(db: Session, resource: Resource, record_id: int) -> None:
    """Delete a row."""
    record = get_record(db, resource, record_id)
    db.delete(record)
    _commit(db, resource)


def split_query_params(params) -> Tuple[Dict[str, str], int, Optional[int]]:
    """Separate pagination parameters from column filters."""
    filters = {key: value for key, value in params.items() if key not in ("skip", "limit")}
    try:
        skip = int(params.get("skip", 0))
        limit = int(params["limit"]) if "limit" in params else None
    except ValueError:
        raise ValidationError("skip and limit must be integers")
    return filters, skip, limit
