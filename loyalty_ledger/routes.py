"""Loyalty endpoints used by the order flow and the storefront UI."""

from __future__ import annotations

from dataclasses import asdict
from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from .engine import LoyaltyEngine
from .errors import PersistenceError

router = APIRouter(prefix="/loyalty")


class AwardRequest(BaseModel):
    amount: Decimal = Field(..., description="Amount spent on the completed order")
    description: str = ""
    order_id: Optional[int] = None


def get_engine(request: Request) -> LoyaltyEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Loyalty engine unavailable")
    return engine


@router.get("")
async def get_ledger(engine: LoyaltyEngine = Depends(get_engine)) -> Dict[str, Any]:
    return asdict(engine.store.ledger)


@router.post("/awards")
async def award_points(
    body: AwardRequest,
    response: Response,
    engine: LoyaltyEngine = Depends(get_engine),
) -> Dict[str, Any]:
    try:
        transaction = engine.awards.award(body.amount, body.description, body.order_id)
    except PersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    if transaction is None:
        return {"awarded": False}
    response.status_code = status.HTTP_201_CREATED
    return {"awarded": True, "transaction": asdict(transaction)}


@router.get("/archive")
async def get_archive(engine: LoyaltyEngine = Depends(get_engine)) -> Dict[str, Any]:
    return {"archived_years": [asdict(entry) for entry in engine.store.archived_years]}


@router.get("/summary")
async def get_summary(year: Optional[int] = None, engine: LoyaltyEngine = Depends(get_engine)) -> Dict[str, Any]:
    return asdict(engine.summary(year))


@router.get("/banner")
async def get_banner(engine: LoyaltyEngine = Depends(get_engine)) -> Dict[str, Any]:
    return asdict(engine.banner.state)


@router.post("/banner/dismiss")
async def dismiss_banner(engine: LoyaltyEngine = Depends(get_engine)) -> Dict[str, Any]:
    try:
        banner = engine.banner.dismiss()
    except PersistenceError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return asdict(banner)
