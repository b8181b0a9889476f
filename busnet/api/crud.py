"""
API endpoints for the back office resources.

Every registered resource gets the same five routes; all of them answer with
an ``Envelope``.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from busnet.db import get_db
from busnet.resources import RESOURCES, Resource
from busnet.schemas import Envelope
from busnet.services.record_service import (
    list_records,
    get_record,
    create_record,
    update_record,
    delete_record,
    split_query_params,
    ValidationError,
    NotFoundError
)


def build_router(resource: Resource) -> APIRouter:
    """Create the CRUD router for one resource."""
    router = APIRouter(prefix=f"/{resource.table}", tags=[resource.label])
    create_schema = resource.create
    update_schema = resource.update

    @router.get("", response_model=Envelope)
    def list_resource(request: Request, db: Session = Depends(get_db)):
        """
        List records.

        Any query parameter other than skip/limit is an equality filter on
        the column of the same name (e.g. ``/stations?city_id=3``).
        """
        try:
            filters, skip, limit = split_query_params(request.query_params)
            rows = list_records(db, resource, filters, skip, limit)
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
        return {"data": [resource.serialize(row) for row in rows], "error": None}

    @router.get("/{record_id}", response_model=Envelope)
    def get_resource(record_id: int, db: Session = Depends(get_db)):
        """Get a specific record by ID."""
        try:
            row = get_record(db, resource, record_id)
        except NotFoundError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=str(e)
            )
        return {"data": resource.serialize(row), "error": None}

    @router.post("", response_model=Envelope, status_code=status.HTTP_201_CREATED)
    def create_resource(payload: create_schema, db: Session = Depends(get_db)):
        """Create a new record."""
        try:
            row = create_record(db, resource, payload)
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
        return {"data": resource.serialize(row), "error": None}

    @router.put("/{record_id}", response_model=Envelope)
    def update_resource(
        record_id: int,
        payload: update_schema,
        db: Session = Depends(get_db)
    ):
        """Update a record (partial: only the fields sent are changed)."""
        try:
            row = update_record(db, resource, record_id, payload)
        except NotFoundError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=str(e)
            )
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
        return {"data": resource.serialize(row), "error": None}

    @router.delete("/{record_id}", response_model=Envelope)
    def delete_resource(record_id: int, db: Session = Depends(get_db)):
        """Delete a record."""
        try:
            delete_record(db, resource, record_id)
        except NotFoundError as e:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=str(e)
            )
        except ValidationError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
        return {"data": None, "error": None}

    return router


routers = [build_router(resource) for resource in RESOURCES.values()]
