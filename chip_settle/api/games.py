from __future__ import annotations

from fastapi import APIRouter, Depends, status

from chip_settle.api.dependencies import current_user_id, get_services
from chip_settle.api.schemas import (
    ErrorResponse,
    GameAuditResponse,
    SettlementListResponse,
    SettlementResponse,
    SettlementValidationResponse,
)
from chip_settle.runtime import Services

router = APIRouter(prefix="/games", tags=["games"])


@router.post(
    "/{game_id}/settlements",
    response_model=SettlementListResponse,
    status_code=status.HTTP_200_OK,
    summary="Return existing settlements or calculate them once",
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def get_or_calculate_settlements(
    game_id: str,
    user_id: str = Depends(current_user_id),
    services: Services = Depends(get_services),
) -> SettlementListResponse:
    rows = services.orchestrator.get_or_calculate_settlements(game_id, user_id)
    return SettlementListResponse(
        game_id=game_id,
        settlements=[SettlementResponse.model_validate(row) for row in rows],
    )


@router.get(
    "/{game_id}/settlements",
    response_model=SettlementListResponse,
    summary="List settlements without calculating",
)
def list_settlements(game_id: str, services: Services = Depends(get_services)) -> SettlementListResponse:
    rows = services.orchestrator.list_settlements(game_id)
    return SettlementListResponse(
        game_id=game_id,
        settlements=[SettlementResponse.model_validate(row) for row in rows],
    )


@router.get(
    "/{game_id}/settlements/validation",
    response_model=SettlementValidationResponse,
    summary="Check that buy-ins and cash-outs balance",
)
def validate_settlement(game_id: str, services: Services = Depends(get_services)) -> SettlementValidationResponse:
    return SettlementValidationResponse.model_validate(services.orchestrator.validate_game(game_id))


@router.post(
    "/{game_id}/settlements/cancel",
    response_model=SettlementListResponse,
    summary="Cancel every pending settlement of a voided game",
    responses={403: {"model": ErrorResponse}},
)
def cancel_game_settlements(
    game_id: str,
    user_id: str = Depends(current_user_id),
    services: Services = Depends(get_services),
) -> SettlementListResponse:
    rows = services.statuses.cancel_game_settlements(game_id, user_id)
    return SettlementListResponse(
        game_id=game_id,
        settlements=[SettlementResponse.model_validate(row) for row in rows],
    )


@router.get(
    "/{game_id}/audit",
    response_model=GameAuditResponse,
    summary="Calculation attempts and settlement changes for a game",
)
def game_audit(game_id: str, services: Services = Depends(get_services)) -> GameAuditResponse:
    return GameAuditResponse.model_validate(services.audit.game_audit_summary(game_id))
