from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from ..config.database import get_async_db_dependency
from ..services import client_service
from ..utils.errors import DomainError, to_http_exception

router = APIRouter(prefix="/api/clients", tags=["clients"])


class ClientIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


@router.get("")
async def list_clients(db: AsyncSession = Depends(get_async_db_dependency)) -> List[Dict[str, Any]]:
    return await client_service.list_clients(db)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(payload: ClientIn, db: AsyncSession = Depends(get_async_db_dependency)):
    client = await client_service.create_client(db, payload.model_dump())
    return {"client_id": client["id"]}


@router.get("/{client_id}")
async def get_client(client_id: int, db: AsyncSession = Depends(get_async_db_dependency)):
    try:
        return await client_service.get_client(db, client_id)
    except DomainError as exc:
        raise to_http_exception(exc)


@router.put("/{client_id}")
async def update_client(
    client_id: int,
    payload: ClientIn,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    try:
        return await client_service.update_client(db, client_id, payload.model_dump())
    except DomainError as exc:
        raise to_http_exception(exc)


@router.delete("/{client_id}")
async def delete_client(client_id: int, db: AsyncSession = Depends(get_async_db_dependency)):
    """Remove a client. Invoices that reference it keep their client_id."""
    try:
        await client_service.delete_client(db, client_id)
    except DomainError as exc:
        raise to_http_exception(exc)
    return {"success": True}
