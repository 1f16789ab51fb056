"""
core/contracts.py — Shared Contract Plumbing
==============================================
Pieces every contract client needs, whichever chain backend is active:

- ContractRevert   — raised when a call is rejected (same reasons the Solidity
                     contracts revert with, e.g. "No pending transfer")
- ContractEvent    — one decoded log entry
- TxReceipt        — result of a state-changing call
- SimulatedContract — role table, pause switch and event emission for the
                     in-memory contracts (OpenZeppelin AccessControl semantics)
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from web3 import Web3

logger = logging.getLogger("propius.contracts")

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

DEFAULT_ADMIN_ROLE = "DEFAULT_ADMIN_ROLE"
ADMIN_ROLE = "ADMIN_ROLE"
NOTARY_ROLE = "NOTARY_ROLE"
REGISTRY_ROLE = "REGISTRY_ROLE"
PROPERTY_MANAGER_ROLE = "PROPERTY_MANAGER_ROLE"
DISTRIBUTOR_ROLE = "DISTRIBUTOR_ROLE"


class ContractRevert(Exception):
    """A contract call was rejected. `reason` is the revert string."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass
class ContractEvent:
    name: str
    args: dict


@dataclass
class TxReceipt:
    tx_hash: str
    block_number: int
    events: List[ContractEvent] = field(default_factory=list)

    def find_event(self, name: str) -> Optional[ContractEvent]:
        for event in self.events:
            if event.name == name:
                return event
        return None


# Signature of the callback simulated contracts use to "mine" a transaction:
#   mine(sender, contract_address, method, events) -> TxReceipt
Miner = Callable[[str, str, str, List[ContractEvent]], TxReceipt]


def role_id(role: str) -> str:
    """bytes32 role identifier as the Solidity contracts compute it."""
    if role == DEFAULT_ADMIN_ROLE:
        return "0x" + "00" * 32
    return Web3.to_hex(Web3.keccak(text=role))


def normalize_address(address: str) -> str:
    """Checksummed address; raises ContractRevert for anything that isn't one."""
    if not address or not Web3.is_address(address):
        raise ContractRevert(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)


class SimulatedContract:
    """
    Base for the in-memory contracts: role table (OpenZeppelin AccessControl
    semantics, DEFAULT_ADMIN_ROLE administers every role), pause switch, and
    event emission through the owning chain's miner.
    """

    def __init__(self, address: str, admin: str, mine: Miner):
        self.address = normalize_address(address)
        self._mine = mine
        self._roles: Dict[str, Set[str]] = {}
        self.paused = False
        self._grant(DEFAULT_ADMIN_ROLE, admin)

    # ── Roles ──────────────────────────────────────────────────────────────
    def has_role(self, role: str, account: str) -> bool:
        return normalize_address(account) in self._roles.get(role, set())

    def _check_role(self, role: str, account: str):
        if not self.has_role(role, account):
            logger.warning(f"Access denied: {account} lacks {role}")
            raise ContractRevert(f"AccessControl: account {account} is missing role {role}")

    def _grant(self, role: str, account: str):
        self._roles.setdefault(role, set()).add(normalize_address(account))

    def grant_role(self, sender: str, role: str, account: str) -> TxReceipt:
        self._check_role(DEFAULT_ADMIN_ROLE, sender)
        self._grant(role, account)
        return self._emit(sender, "grantRole", ContractEvent("RoleGranted", {
            "role": role, "account": normalize_address(account), "sender": normalize_address(sender),
        }))

    def revoke_role(self, sender: str, role: str, account: str) -> TxReceipt:
        self._check_role(DEFAULT_ADMIN_ROLE, sender)
        self._roles.get(role, set()).discard(normalize_address(account))
        return self._emit(sender, "revokeRole", ContractEvent("RoleRevoked", {
            "role": role, "account": normalize_address(account), "sender": normalize_address(sender),
        }))

    # ── Pausable ───────────────────────────────────────────────────────────
    def _when_not_paused(self):
        if self.paused:
            raise ContractRevert("Pausable: paused")

    def _set_paused(self, sender: str, paused: bool) -> TxReceipt:
        self.paused = paused
        name = "Paused" if paused else "Unpaused"
        method = "pause" if paused else "unpause"
        return self._emit(sender, method, ContractEvent(name, {"account": normalize_address(sender)}))

    # ── Events ─────────────────────────────────────────────────────────────
    def _emit(self, sender: str, method: str, *events: ContractEvent) -> TxReceipt:
        return self._mine(normalize_address(sender), self.address, method, list(events))
