"""
core/registry.py — Property Registry (simulated contract)
===========================================================
One non-fungible token per real-world property, keyed by its RGP registry
number. Mirrors the deployed PropertyRegistry contract:

  - only verified notaries mint (tokenize_property)
  - ownership moves only after BOTH a notary and a registry-role signer have
    approved a pending transfer; whichever approval lands second completes it
  - the current owner can cancel a pending transfer at any time before that
  - notaries update valuations, the registry role flags encumbrances
  - admins manage verified notaries, fees, and the pause switch

Every state-changing call returns a TxReceipt; rejected calls raise
ContractRevert with the contract's revert string.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.contracts import (
    SimulatedContract, ContractEvent, ContractRevert, TxReceipt, Miner,
    ADMIN_ROLE, DEFAULT_ADMIN_ROLE, NOTARY_ROLE, REGISTRY_ROLE, ZERO_ADDRESS,
    normalize_address,
)

logger = logging.getLogger("propius.registry")

# On-chain PropertyType enum order
PROPERTY_TYPES = ["Residential", "Commercial", "Industrial", "Agricultural", "Mixed"]

DEFAULT_TOKENIZATION_FEE_USD = 100
DEFAULT_TRANSFER_FEE_BPS = 50          # 0.5 %
MAX_TRANSFER_FEE_BPS = 200             # 2 %
BPS_DENOMINATOR = 10_000


@dataclass
class PropertyRecord:
    token_id: int
    registry_number: str
    cadastral_reference: str
    municipality: str
    zone: str
    area_sq_meters: int
    construction_sq_meters: int
    property_type: int
    current_owner: str
    document_hash: str
    valuation_usd: int
    valuation_gtq: int
    is_verified: bool = True
    has_encumbrance: bool = False
    pending_transfer_to: Optional[str] = None


@dataclass
class PendingTransfer:
    token_id: int
    from_owner: str
    to: str
    document_hash: str
    notary_approved: bool = False
    registry_approved: bool = False
    notary: Optional[str] = None
    registrar: Optional[str] = None


class SimulatedPropertyRegistry(SimulatedContract):

    def __init__(self, address: str, deployer: str, fee_recipient: str, mine: Miner):
        super().__init__(address, deployer, mine)
        self._grant(ADMIN_ROLE, deployer)
        self.fee_recipient = normalize_address(fee_recipient)
        self.tokenization_fee_usd = DEFAULT_TOKENIZATION_FEE_USD
        self.transfer_fee_percent = DEFAULT_TRANSFER_FEE_BPS
        self._verified_notaries: Dict[str, bool] = {}
        self._properties: Dict[int, PropertyRecord] = {}
        self._registry_index: Dict[str, int] = {}
        self._pending: Dict[int, PendingTransfer] = {}
        self._next_token_id = 1

    # ── Admin ──────────────────────────────────────────────────────────────
    def _check_admin(self, sender: str):
        # Notary verification is also open to the default admin, so a fresh
        # deployment can verify notaries before ADMIN_ROLE is handed out.
        if self.has_role(DEFAULT_ADMIN_ROLE, sender):
            return
        self._check_role(ADMIN_ROLE, sender)

    def add_verified_notary(self, sender: str, notary: str) -> TxReceipt:
        self._check_admin(sender)
        notary = normalize_address(notary)
        self._verified_notaries[notary] = True
        return self._emit(sender, "addVerifiedNotary", ContractEvent("NotaryAdded", {"notary": notary}))

    def remove_verified_notary(self, sender: str, notary: str) -> TxReceipt:
        self._check_admin(sender)
        notary = normalize_address(notary)
        self._verified_notaries[notary] = False
        return self._emit(sender, "removeVerifiedNotary", ContractEvent("NotaryRemoved", {"notary": notary}))

    def verified_notaries(self, account: str) -> bool:
        return self._verified_notaries.get(normalize_address(account), False)

    def update_fees(self, sender: str, tokenization_fee_usd: int, transfer_fee_percent: int) -> TxReceipt:
        self._check_role(ADMIN_ROLE, sender)
        if transfer_fee_percent > MAX_TRANSFER_FEE_BPS:
            raise ContractRevert("Fee too high")
        self.tokenization_fee_usd = tokenization_fee_usd
        self.transfer_fee_percent = transfer_fee_percent
        return self._emit(sender, "updateFees", ContractEvent("FeesUpdated", {
            "tokenizationFeeUSD": tokenization_fee_usd,
            "transferFeePercent": transfer_fee_percent,
        }))

    def pause(self, sender: str) -> TxReceipt:
        self._check_role(ADMIN_ROLE, sender)
        return self._set_paused(sender, True)

    def unpause(self, sender: str) -> TxReceipt:
        self._check_role(ADMIN_ROLE, sender)
        return self._set_paused(sender, False)

    # ── Tokenization ───────────────────────────────────────────────────────
    def tokenize_property(
        self,
        sender: str,
        registry_number: str,
        cadastral_reference: str,
        municipality: str,
        zone: str,
        area_sq_meters: int,
        construction_sq_meters: int,
        property_type: int,
        owner: str,
        document_hash: str,
        valuation_usd: int,
        valuation_gtq: int,
    ) -> TxReceipt:
        self._when_not_paused()
        self._check_role(NOTARY_ROLE, sender)
        if not self.verified_notaries(sender):
            raise ContractRevert("Not a verified notary")
        if not registry_number:
            raise ContractRevert("Invalid registry number")
        if registry_number in self._registry_index:
            raise ContractRevert("Property already tokenized")
        if not 0 <= property_type < len(PROPERTY_TYPES):
            raise ContractRevert("Invalid property type")
        owner = normalize_address(owner)
        if owner == ZERO_ADDRESS:
            raise ContractRevert("Invalid owner")

        token_id = self._next_token_id
        self._next_token_id += 1
        self._properties[token_id] = PropertyRecord(
            token_id=token_id,
            registry_number=registry_number,
            cadastral_reference=cadastral_reference,
            municipality=municipality,
            zone=zone,
            area_sq_meters=area_sq_meters,
            construction_sq_meters=construction_sq_meters,
            property_type=property_type,
            current_owner=owner,
            document_hash=document_hash,
            valuation_usd=valuation_usd,
            valuation_gtq=valuation_gtq,
        )
        self._registry_index[registry_number] = token_id

        logger.info(f"Property {registry_number} tokenized as #{token_id} for {owner}")
        return self._emit(
            sender, "tokenizeProperty",
            ContractEvent("Transfer", {"from": ZERO_ADDRESS, "to": owner, "tokenId": token_id}),
            ContractEvent("PropertyTokenized", {
                "tokenId": token_id,
                "registryNumber": registry_number,
                "owner": owner,
                "notary": normalize_address(sender),
                "valuationUSD": valuation_usd,
            }),
        )

    # ── Transfers ──────────────────────────────────────────────────────────
    def request_transfer(self, sender: str, token_id: int, to: str, document_hash: str) -> TxReceipt:
        self._when_not_paused()
        record = self._require_property(token_id)
        sender = normalize_address(sender)
        if record.current_owner != sender:
            raise ContractRevert("Not property owner")
        to = normalize_address(to)
        if to == ZERO_ADDRESS or to == sender:
            raise ContractRevert("Invalid recipient")
        if token_id in self._pending:
            raise ContractRevert("Transfer already pending")
        if record.has_encumbrance:
            raise ContractRevert("Property has encumbrance")

        self._pending[token_id] = PendingTransfer(
            token_id=token_id, from_owner=sender, to=to, document_hash=document_hash,
        )
        record.pending_transfer_to = to
        return self._emit(sender, "requestTransfer", ContractEvent("TransferRequested", {
            "tokenId": token_id, "from": sender, "to": to, "documentHash": document_hash,
        }))

    def approve_transfer_as_notary(self, sender: str, token_id: int) -> TxReceipt:
        self._when_not_paused()
        self._check_role(NOTARY_ROLE, sender)
        pending = self._require_pending(token_id)
        if pending.notary_approved:
            raise ContractRevert("Already approved by notary")
        pending.notary_approved = True
        pending.notary = normalize_address(sender)
        return self._approve(sender, pending, "notary", "approveTransferAsNotary")

    def approve_transfer_as_registry(self, sender: str, token_id: int) -> TxReceipt:
        self._when_not_paused()
        self._check_role(REGISTRY_ROLE, sender)
        pending = self._require_pending(token_id)
        if pending.registry_approved:
            raise ContractRevert("Already approved by registry")
        pending.registry_approved = True
        pending.registrar = normalize_address(sender)
        return self._approve(sender, pending, "registry", "approveTransferAsRegistry")

    def _approve(self, sender: str, pending: PendingTransfer, authority: str, method: str) -> TxReceipt:
        events = [ContractEvent("TransferApproved", {
            "tokenId": pending.token_id, "approver": normalize_address(sender), "authority": authority,
        })]
        if pending.notary_approved and pending.registry_approved:
            events.extend(self._complete_transfer(pending))
        return self._emit(sender, method, *events)

    def _complete_transfer(self, pending: PendingTransfer) -> List[ContractEvent]:
        record = self._properties[pending.token_id]
        fee_usd = record.valuation_usd * self.transfer_fee_percent // BPS_DENOMINATOR
        record.current_owner = pending.to
        record.pending_transfer_to = None
        del self._pending[pending.token_id]

        logger.info(f"Property #{pending.token_id} transferred {pending.from_owner} → {pending.to}")
        return [
            ContractEvent("Transfer", {"from": pending.from_owner, "to": pending.to, "tokenId": pending.token_id}),
            ContractEvent("TransferCompleted", {
                "tokenId": pending.token_id,
                "from": pending.from_owner,
                "to": pending.to,
                "transferFeeUSD": fee_usd,
                "feeRecipient": self.fee_recipient,
                "notary": pending.notary,
                "registrar": pending.registrar,
            }),
        ]

    def cancel_transfer(self, sender: str, token_id: int) -> TxReceipt:
        record = self._require_property(token_id)
        pending = self._require_pending(token_id)
        if record.current_owner != normalize_address(sender):
            raise ContractRevert("Not property owner")
        del self._pending[token_id]
        record.pending_transfer_to = None
        return self._emit(sender, "cancelTransfer", ContractEvent("TransferCancelled", {
            "tokenId": token_id, "to": pending.to,
        }))

    def get_pending_transfer(self, token_id: int) -> Optional[PendingTransfer]:
        return self._pending.get(token_id)

    # ── Property management ────────────────────────────────────────────────
    def update_valuation(self, sender: str, token_id: int, valuation_usd: int, valuation_gtq: int) -> TxReceipt:
        self._check_role(NOTARY_ROLE, sender)
        record = self._require_property(token_id)
        old_usd = record.valuation_usd
        record.valuation_usd = valuation_usd
        record.valuation_gtq = valuation_gtq
        return self._emit(sender, "updateValuation", ContractEvent("PropertyValuationUpdated", {
            "tokenId": token_id, "oldValuationUSD": old_usd,
            "newValuationUSD": valuation_usd, "newValuationGTQ": valuation_gtq,
        }))

    def update_encumbrance(self, sender: str, token_id: int, has_encumbrance: bool) -> TxReceipt:
        self._check_role(REGISTRY_ROLE, sender)
        record = self._require_property(token_id)
        record.has_encumbrance = has_encumbrance
        return self._emit(sender, "updateEncumbrance", ContractEvent("EncumbranceUpdated", {
            "tokenId": token_id, "hasEncumbrance": has_encumbrance,
        }))

    # ── Views ──────────────────────────────────────────────────────────────
    def get_property(self, token_id: int) -> PropertyRecord:
        return self._require_property(token_id)

    def owner_of(self, token_id: int) -> str:
        return self._require_property(token_id).current_owner

    def balance_of(self, owner: str) -> int:
        return len(self.get_owner_properties(owner))

    def get_owner_properties(self, owner: str) -> List[int]:
        owner = normalize_address(owner)
        return [tid for tid, rec in sorted(self._properties.items()) if rec.current_owner == owner]

    def registry_number_to_token_id(self, registry_number: str) -> int:
        """0 when the registry number has not been tokenized, as on chain."""
        return self._registry_index.get(registry_number, 0)

    def _require_property(self, token_id: int) -> PropertyRecord:
        record = self._properties.get(token_id)
        if record is None:
            raise ContractRevert("Property does not exist")
        return record

    def _require_pending(self, token_id: int) -> PendingTransfer:
        self._require_property(token_id)
        pending = self._pending.get(token_id)
        if pending is None:
            raise ContractRevert("No pending transfer")
        return pending
