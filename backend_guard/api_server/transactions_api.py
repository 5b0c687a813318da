"""
FastAPI router: GET /transactions?address=&limit=.

Pure read-through to the block explorer for transaction-history display.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from backend_guard.core.exceptions import ValidationError, ValidationKind
from backend_guard.oracle.explorer import DEFAULT_LIMIT, ExplorerClient

router = APIRouter(tags=["transactions"])


def get_explorer(request: Request) -> ExplorerClient:
    return request.app.state.explorer


@router.get("/transactions")
async def list_transactions(
    address: str | None = Query(None, description="Account or contract address"),
    limit: int = Query(DEFAULT_LIMIT, description="Max transactions (1-100)"),
    explorer: ExplorerClient = Depends(get_explorer),
) -> dict[str, Any]:
    address = (address or "").strip()
    if not address:
        raise ValidationError(ValidationKind.MISSING_FIELD, "Address parameter is required")
    txs = await explorer.list_transactions(address, limit)
    return {"success": True, "transactions": [tx.to_dict() for tx in txs]}
