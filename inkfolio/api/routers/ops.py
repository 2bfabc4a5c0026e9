"""Ops router — manual reconciliation sweep."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from inkfolio.api.deps import get_current_user, get_reconcile_service, get_session
from inkfolio.api.schemas.ops import ReconcileResponse
from inkfolio.models.user import User
from inkfolio.services.reconcile_service import ReconcileService

router = APIRouter()


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile(
    dry_run: bool = Query(False),
    session: AsyncSession = Depends(get_session),
    _user: User = Depends(get_current_user),
    svc: ReconcileService = Depends(get_reconcile_service),
) -> ReconcileResponse:
    report = await svc.sweep(session, repair=not dry_run)
    return ReconcileResponse(**report.to_dict())
