"""
Ledger query clients.

Available clients:
- EsploraLedger: Esplora REST API (blockstream.info, mempool.space or self-hosted)
- MemoryLedger: in-memory records, for offline rendering and tests
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from txflow.errors import InputError, NetworkError, NotFoundError
from txflow.models import OutspendInfo, TransactionRecord, is_valid_txid, parse_outspends


def normalize_txid(txid: str) -> str:
    """
    Strip and validate a user-supplied transaction id.

    Raises:
        InputError: If the id is empty or not 64 hex characters
    """
    cleaned = (txid or "").strip().lower()
    if not cleaned:
        raise InputError("Transaction id is empty")
    if not is_valid_txid(cleaned):
        raise InputError(f"Malformed transaction id: {txid!r}", txid=txid)
    return cleaned


class LedgerClient(ABC):
    """
    Source of transaction records and their spend status.

    Implementations raise InputError, NotFoundError or NetworkError; nothing
    else escapes a lookup.
    """

    @abstractmethod
    async def get_transaction(self, txid: str) -> TransactionRecord:
        """Get a transaction by txid"""

    @abstractmethod
    async def get_outspends(self, txid: str) -> OutspendInfo:
        """Get spend status for each output, aligned with vout"""

    async def close(self) -> None:
        """Release network resources"""
        pass

    async def __aenter__(self) -> LedgerClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class EsploraLedger(LedgerClient):
    def __init__(
        self,
        base_url: str = "https://blockstream.info/api",
        timeout: float = 30.0,
        max_concurrent_requests: int = 5,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize Esplora client.

        Args:
            base_url: API root, e.g. https://mempool.space/api
            timeout: Per-request timeout in seconds
            max_concurrent_requests: Bound on in-flight requests
            client: Preconfigured httpx client (tests inject a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._semaphore = asyncio.Semaphore(max_concurrent_requests)

    async def _get_json(self, endpoint: str, txid: str) -> Any:
        url = f"{self.base_url}/{endpoint}"
        try:
            async with self._semaphore:
                response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.error(f"Esplora request failed: {endpoint} - {e}")
            raise NetworkError(f"Request failed for {txid}: {e}", txid=txid) from e

        # Esplora answers 400 for ids it cannot parse and 404 for unknown ones
        if response.status_code in (400, 404):
            raise NotFoundError(f"Transaction not found: {txid}", txid=txid)
        if response.status_code >= 400:
            raise NetworkError(
                f"Unexpected status {response.status_code} for {txid}", txid=txid
            )

        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON for {txid}: {e}", txid=txid) from e

    async def get_transaction(self, txid: str) -> TransactionRecord:
        txid = normalize_txid(txid)
        data = await self._get_json(f"tx/{txid}", txid)
        try:
            record = TransactionRecord.model_validate(data)
        except ValidationError as e:
            raise NetworkError(f"Unusable transaction payload for {txid}: {e}", txid=txid) from e
        logger.debug(f"Fetched {txid}: {len(record.vin)} in, {len(record.vout)} out")
        return record

    async def get_outspends(self, txid: str) -> OutspendInfo:
        txid = normalize_txid(txid)
        data = await self._get_json(f"tx/{txid}/outspends", txid)
        if not isinstance(data, list):
            raise NetworkError(f"Unusable outspends payload for {txid}", txid=txid)
        try:
            return parse_outspends(data)
        except ValidationError as e:
            raise NetworkError(f"Unusable outspends payload for {txid}: {e}", txid=txid) from e

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()


class MemoryLedger(LedgerClient):
    def __init__(
        self,
        records: list[TransactionRecord] | None = None,
        outspends: dict[str, OutspendInfo] | None = None,
    ):
        self._records = {r.txid: r for r in records or []}
        self._outspends = dict(outspends or {})

    def add(self, record: TransactionRecord, outspends: OutspendInfo | None = None) -> None:
        self._records[record.txid] = record
        if outspends is not None:
            self._outspends[record.txid] = outspends

    async def get_transaction(self, txid: str) -> TransactionRecord:
        txid = normalize_txid(txid)
        record = self._records.get(txid)
        if record is None:
            raise NotFoundError(f"Transaction not found: {txid}", txid=txid)
        return record

    async def get_outspends(self, txid: str) -> OutspendInfo:
        record = await self.get_transaction(txid)
        outspends = self._outspends.get(record.txid)
        if outspends is None:
            # Unknown spend status reads as all outputs unspent
            return parse_outspends([{"spent": False} for _ in record.vout])
        return outspends
