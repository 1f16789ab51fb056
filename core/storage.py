"""
core/storage.py — Decentralized Document Storage Backend
==========================================================
Abstraction layer over 2 backends:
  1. "simulation" — in-memory pay-per-byte network addressed like the Irys
                    devnet (ar:// URIs); price and balance are real numbers
                    so the uploader's funding checks behave as in production
  2. "ipfs"       — a Kubo node's HTTP RPC API (/api/v0/add); pinning is free,
                    so price is always 0

Set STORAGE_BACKEND in .env to switch.
All modules call: from core.storage import storage
"""

import asyncio
import base64
import hashlib
import logging
from typing import Dict, List, Optional, Tuple

import requests

from config import settings

logger = logging.getLogger("propius.storage")

Tag = Tuple[str, str]


class StorageError(Exception):
    """Raised when the storage network rejects or fails an operation."""


class InsufficientBalanceError(StorageError):
    """Raised when the funded balance cannot cover an upload."""

    def __init__(self, price: int, balance: int):
        super().__init__(f"Insufficient balance. Need: {price} wei, Have: {balance} wei")
        self.price = price
        self.balance = balance


# ── Simulated storage network (default) ───────────────────────────────────────
class SimulatedStorage:
    """
    Pay-per-byte storage kept in memory.
    Uploads are charged against the funded balance and can be read back.
    """

    name = "simulation"
    uri_scheme = "ar"
    url_base = "https://devnet.irys.xyz/"
    gateway_base = "https://gateway.irys.xyz/"

    def __init__(self, price_per_byte: int = None, initial_balance: int = None):
        self.price_per_byte = settings.STORAGE_PRICE_PER_BYTE_WEI if price_per_byte is None else price_per_byte
        self.balance = settings.STORAGE_INITIAL_BALANCE_WEI if initial_balance is None else initial_balance
        self._objects: Dict[str, Tuple[bytes, List[Tag]]] = {}

    async def ping(self) -> str:
        return f"ok: simulated storage, {len(self._objects)} objects"

    async def get_price(self, num_bytes: int) -> int:
        return num_bytes * self.price_per_byte

    async def get_balance(self) -> int:
        return self.balance

    async def fund(self, amount: int) -> dict:
        if amount <= 0:
            raise StorageError("Funding amount must be positive")
        self.balance += amount
        logger.info(f"Simulated storage funded with {amount} wei (balance {self.balance})")
        return {"quantity": str(amount), "balance": str(self.balance)}

    async def upload(self, data: bytes, tags: List[Tag]) -> str:
        price = await self.get_price(len(data))
        if self.balance < price:
            raise InsufficientBalanceError(price, self.balance)
        self.balance -= price
        digest = hashlib.sha256(data + str(len(self._objects)).encode()).digest()
        object_id = base64.urlsafe_b64encode(digest).rstrip(b"=").decode()
        self._objects[object_id] = (data, list(tags))
        return object_id

    async def download(self, object_id: str) -> bytes:
        try:
            return self._objects[object_id][0]
        except KeyError:
            raise StorageError(f"Object not found: {object_id}") from None

    def tags_of(self, object_id: str) -> Optional[List[Tag]]:
        stored = self._objects.get(object_id)
        return stored[1] if stored else None

    def url(self, object_id: str) -> str:
        return f"{self.url_base}{object_id}"

    def gateway_url(self, object_id: str) -> str:
        return f"{self.gateway_base}{object_id}"

    def uri(self, object_id: str) -> str:
        return f"{self.uri_scheme}://{object_id}"


# ── IPFS backend ──────────────────────────────────────────────────────────────
class IpfsStorage:
    """
    Uploads through a Kubo node's RPC API.
    Requires: IPFS_HOST / IPFS_PORT pointing at a running node.
    IPFS keeps no tags; they are still returned to the caller for the record.
    """

    name = "ipfs"
    uri_scheme = "ipfs"

    def __init__(self):
        self.api_url = f"http://{settings.IPFS_HOST}:{settings.IPFS_PORT}/api/v0"
        self.gateway_base = settings.IPFS_GATEWAY_URL

    def _post_blocking(self, endpoint: str, **kwargs) -> requests.Response:
        try:
            response = requests.post(f"{self.api_url}/{endpoint}", timeout=settings.IPFS_TIMEOUT, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise StorageError(f"IPFS {endpoint} failed: {exc}") from exc
        return response

    async def _post(self, endpoint: str, **kwargs) -> requests.Response:
        # requests blocks; keep the event loop free while the node answers
        return await asyncio.to_thread(self._post_blocking, endpoint, **kwargs)

    async def ping(self) -> str:
        try:
            version = (await self._post("version")).json().get("Version", "?")
        except StorageError:
            return "disconnected"
        return f"ok: IPFS node v{version}"

    async def get_price(self, num_bytes: int) -> int:
        return 0

    async def get_balance(self) -> int:
        return 0

    async def fund(self, amount: int) -> dict:
        raise StorageError("The IPFS backend does not take funding")

    async def upload(self, data: bytes, tags: List[Tag]) -> str:
        filename = dict(tags).get("Filename", "document")
        response = await self._post(
            "add",
            params={"cid-version": 1, "pin": "true"},
            files={"file": (filename, data)},
        )
        return response.json()["Hash"]

    async def download(self, object_id: str) -> bytes:
        return (await self._post("cat", params={"arg": object_id})).content

    def url(self, object_id: str) -> str:
        return f"{self.gateway_base}{object_id}"

    def gateway_url(self, object_id: str) -> str:
        return f"{self.gateway_base}{object_id}"

    def uri(self, object_id: str) -> str:
        return f"{self.uri_scheme}://{object_id}"


# ── Factory: picks the right backend from .env ───────────────────────────────
def create_storage(backend: str = None):
    backend = (backend or settings.STORAGE_BACKEND).lower()
    if backend == "ipfs":
        logger.info("Using IPFS storage backend")
        return IpfsStorage()
    logger.info("Using Simulated storage backend (development mode)")
    return SimulatedStorage()


# Singleton, import this everywhere:  from core.storage import storage
storage = create_storage()
