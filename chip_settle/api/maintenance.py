from __future__ import annotations

from fastapi import APIRouter, Depends

from chip_settle.api.dependencies import get_services
from chip_settle.api.schemas import LockCleanupResponse
from chip_settle.runtime import Services

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/locks/cleanup", response_model=LockCleanupResponse, summary="Drop expired calculation locks")
def cleanup_locks(services: Services = Depends(get_services)) -> LockCleanupResponse:
    return LockCleanupResponse(removed=services.locks.cleanup_expired())
