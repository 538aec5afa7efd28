from typing import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crudkit.api.v1.context import OperationContext
from crudkit.database.session import get_async_session


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async for session in get_async_session():
        yield session


async def get_operation_context(
    request: Request, db: AsyncSession = Depends(get_db_session)
) -> OperationContext:
    """Per-request OperationContext from the settings the app was created with."""
    return OperationContext.from_settings(request, db, getattr(request.app.state, "settings", None))
