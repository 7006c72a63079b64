from __future__ import annotations

from fastapi import APIRouter, Depends

from chip_settle.api.dependencies import current_user_id, get_services
from chip_settle.api.schemas import (
    AuditEntryResponse,
    CompleteSettlementRequest,
    ErrorResponse,
    SettlementResponse,
)
from chip_settle.domain import PaymentMethod
from chip_settle.runtime import Services

router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.post(
    "/{settlement_id}/complete",
    response_model=SettlementResponse,
    summary="Mark a pending settlement as paid",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def mark_complete(
    settlement_id: str,
    payload: CompleteSettlementRequest | None = None,
    user_id: str = Depends(current_user_id),
    services: Services = Depends(get_services),
) -> SettlementResponse:
    payment_method = payload.payment_method if payload else PaymentMethod.CASH
    row = services.statuses.mark_complete(settlement_id, user_id, payment_method=payment_method)
    return SettlementResponse.model_validate(row)


@router.post(
    "/{settlement_id}/cancel",
    response_model=SettlementResponse,
    summary="Cancel a pending settlement (group admins only)",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def cancel(
    settlement_id: str,
    user_id: str = Depends(current_user_id),
    services: Services = Depends(get_services),
) -> SettlementResponse:
    return SettlementResponse.model_validate(services.statuses.cancel(settlement_id, user_id))


@router.get(
    "/{settlement_id}/history",
    response_model=list[AuditEntryResponse],
    summary="Audit trail of one settlement",
)
def settlement_history(settlement_id: str, services: Services = Depends(get_services)) -> list[AuditEntryResponse]:
    return [AuditEntryResponse.model_validate(row) for row in services.audit.settlement_history(settlement_id)]
