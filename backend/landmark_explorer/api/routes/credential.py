from __future__ import annotations

from fastapi import APIRouter, Depends

from landmark_explorer.api.deps import get_session
from landmark_explorer.models.contracts import (
    CredentialRequest,
    CredentialStatus,
    ErrorResponse,
)
from landmark_explorer.tour.session import TourSession

router = APIRouter(tags=["credential"])


@router.get("/credential", response_model=CredentialStatus)
async def credential_status(session: TourSession = Depends(get_session)):
    return CredentialStatus(has_credential=session.credentials.get() is not None)


@router.put(
    "/credential",
    response_model=CredentialStatus,
    responses={422: {"model": ErrorResponse}},
)
async def save_credential(body: CredentialRequest, session: TourSession = Depends(get_session)):
    session.credentials.set(body.api_key)
    return CredentialStatus(has_credential=True)


@router.delete("/credential", response_model=CredentialStatus)
async def clear_credential(session: TourSession = Depends(get_session)):
    session.credentials.clear()
    return CredentialStatus(has_credential=False)
