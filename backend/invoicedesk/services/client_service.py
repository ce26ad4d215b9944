from typing import Any, Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.database import Client
from ..utils.errors import ClientNotFound

# Client service.
# Responsibilities:
# - Create / list / get / update / delete clients
# - Deleting a client leaves invoices that reference it untouched

CLIENT_FIELDS = ("contact_person", "email", "phone", "address")


async def _get_or_raise(db: AsyncSession, client_id: int) -> Client:
    res = await db.execute(select(Client).where(Client.id == client_id))
    client = res.scalar_one_or_none()
    if not client:
        raise ClientNotFound("Client not found", details={"client_id": client_id})
    return client


async def create_client(db: AsyncSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    client = Client(**{f: payload.get(f) for f in CLIENT_FIELDS})
    db.add(client)
    await db.commit()
    return serialize_client(client)


async def list_clients(db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(select(Client).order_by(Client.contact_person.asc(), Client.id.asc()))
    return [serialize_client(c) for c in result.scalars().all()]


async def get_client(db: AsyncSession, client_id: int) -> Dict[str, Any]:
    return serialize_client(await _get_or_raise(db, client_id))


async def update_client(db: AsyncSession, client_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Overwrite every client field; omitted fields become null."""
    client = await _get_or_raise(db, client_id)
    for field in CLIENT_FIELDS:
        setattr(client, field, payload.get(field))
    await db.commit()
    return serialize_client(client)


async def delete_client(db: AsyncSession, client_id: int) -> None:
    client = await _get_or_raise(db, client_id)
    await db.delete(client)
    await db.commit()


def serialize_client(client: Client) -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": client.id}
    for field in CLIENT_FIELDS:
        data[field] = getattr(client, field)
    return data
