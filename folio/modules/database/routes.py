from typing import Dict, Optional

from fastapi import APIRouter, Depends

from folio.core.dependencies import get_optional_user
from folio.database.client import Database, get_database
from folio.modules.database.schemas import QueryCommand, QueryResponse
from folio.modules.database.service import DatabaseService

router = APIRouter(prefix="/database", tags=["database"])


def get_database_service(database: Database = Depends(get_database)) -> DatabaseService:
    return DatabaseService(database)


@router.post("", response_model=QueryResponse)
async def run_query(
    command: QueryCommand,
    current_user: Optional[Dict] = Depends(get_optional_user),
    service: DatabaseService = Depends(get_database_service),
):
    """Run one query command built by a client query builder"""
    return service.execute(command, current_user)
