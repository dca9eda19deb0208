"""
FastAPI routes for the generic data route.

Four remote methods over any table: add, edit, remove and list. Request
bodies name the table in ``schema``; every identifier and value is bound
through placeholders by the statement builder.
"""

import logging
from typing import Any

from fastapi import APIRouter

from app.api.schemas.data import AddRequest, EditRequest, ListRequest, RemoveRequest
from app.core.dependencies import DataServiceDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/data", tags=["Data"])


@router.post("/add", response_model=bool)
async def add(payload: AddRequest, service: DataServiceDep) -> bool:
    """
    Insert one row into ``schema``.

    Fields are passed through the insert-field hook; fields the hook drops
    are not written.
    """
    return await service.add(payload.schema_name, payload.fields)


@router.post("/edit", response_model=bool)
async def edit(payload: EditRequest, service: DataServiceDep) -> bool:
    """
    Update rows of ``schema`` matching every entry of ``whereFields``.

    An empty ``whereFields`` is refused with 422 unless the server allows
    unconditional updates and the request sets ``unconditional``.
    """
    return await service.edit(
        payload.schema_name,
        payload.where_fields,
        payload.fields,
        unconditional=payload.unconditional,
    )


@router.post("/remove", response_model=bool)
async def remove(payload: RemoveRequest, service: DataServiceDep) -> bool:
    """Delete rows of ``schema`` matching every entry of ``whereFields``."""
    return await service.remove(
        payload.schema_name,
        payload.where_fields,
        limit=payload.limit,
        unconditional=payload.unconditional,
    )


@router.post("/list")
async def list_rows(payload: ListRequest, service: DataServiceDep) -> list[dict[str, Any]]:
    """
    List rows of ``schema`` matching every entry of ``whereFields``.

    Sensitive columns (passwords, salts, hashes, API and secret keys) are
    removed from every row. ``limit`` defaults to the server setting (20);
    ``offset`` requires a limit.
    """
    rows = await service.list_rows(
        payload.schema_name,
        payload.where_fields,
        offset=payload.offset,
        limit=payload.limit,
    )
    logger.debug(
        f"Returning {len(rows)} rows",
        extra={"schema": payload.schema_name, "count": len(rows)},
    )
    return rows
