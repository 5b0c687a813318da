"""
Block-explorer read-through: recent transactions for an address.

Etherscan-compatible API (Basescan by default): module=account&action=txlist,
newest first. Items are reshaped for display; no audit logic lives here.
Config: EXPLORER_API_URL, BASESCAN_API_KEY.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from backend_guard.core.exceptions import ExplorerError
from backend_guard.guard_logging import get_logger

logger = get_logger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_TIMEOUT_SEC = 15.0


@dataclass(frozen=True)
class ExplorerTransaction:
    hash: str
    sender: str
    to: str
    value: str
    timestamp: int
    block_number: str
    method: str
    status: str

    @classmethod
    def from_api_item(cls, item: dict[str, Any]) -> "ExplorerTransaction":
        """Build from one txlist result item. timeStamp is seconds; timestamp is milliseconds."""
        try:
            ts = int(item.get("timeStamp") or 0) * 1000
        except (TypeError, ValueError):
            ts = 0
        return cls(
            hash=str(item.get("hash") or ""),
            sender=str(item.get("from") or ""),
            to=str(item.get("to") or ""),
            value=str(item.get("value") or "0"),
            timestamp=ts,
            block_number=str(item.get("blockNumber") or ""),
            method=str(item.get("methodId") or "0x"),
            status="success" if str(item.get("txreceipt_status")) == "1" else "failed",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hash": self.hash,
            "from": self.sender,
            "to": self.to,
            "value": self.value,
            "timestamp": self.timestamp,
            "blockNumber": self.block_number,
            "method": self.method,
            "status": self.status,
        }


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, int(limit)))


class ExplorerClient:
    """Thin async client for one explorer endpoint."""

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        *,
        client: httpx.AsyncClient | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        self._api_url = api_url
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_sec)

    async def list_transactions(self, address: str, limit: int | None = None) -> list[ExplorerTransaction]:
        """
        Latest transactions for address. Explorer status != "1" (including
        "No transactions found") yields an empty list; transport errors raise ExplorerError.
        """
        params: dict[str, Any] = {
            "module": "account",
            "action": "txlist",
            "address": address,
            "startblock": 0,
            "endblock": 99999999,
            "page": 1,
            "offset": clamp_limit(limit),
            "sort": "desc",
        }
        if self._api_key:
            params["apikey"] = self._api_key
        try:
            resp = await self._client.get(self._api_url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("explorer_request_failed", address=address, error=str(e))
            raise ExplorerError(f"explorer request failed: {e}") from e

        if not isinstance(data, dict) or str(data.get("status")) != "1" or not isinstance(data.get("result"), list):
            logger.info(
                "explorer_no_transactions",
                address=address,
                message=str(data.get("message")) if isinstance(data, dict) else None,
            )
            return []
        txs = [ExplorerTransaction.from_api_item(item) for item in data["result"] if isinstance(item, dict)]
        logger.debug("explorer_transactions_fetched", address=address, count=len(txs))
        return txs

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
