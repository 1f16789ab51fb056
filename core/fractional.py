"""
core/fractional.py — Fractional Property (simulated contract)
===============================================================
Splits a tokenized property into a fixed supply of shares sold for a
stablecoin (6 decimals, e.g. USDC).

    fractionalize_property  → new asset with total_shares, share_price, minimum
    purchase_shares         → buyer takes >= minimum shares, never oversold
    distribute_revenue      → rental/yield income split pro-rata over sold shares
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

from core.contracts import (
    SimulatedContract, ContractEvent, ContractRevert, TxReceipt, Miner,
    PROPERTY_MANAGER_ROLE, DISTRIBUTOR_ROLE, normalize_address,
)

logger = logging.getLogger("propius.fractional")

STABLECOIN_DECIMALS = 6


def share_price_units(valuation_usd: float, total_shares: int) -> int:
    """Per-share price in stablecoin base units (6 decimals), rounded down."""
    if total_shares <= 0:
        raise ValueError("total_shares must be positive")
    return int(valuation_usd * 10 ** STABLECOIN_DECIMALS) // total_shares


@dataclass
class FractionalAsset:
    asset_id: int
    property_token_id: int
    property_registry: str
    property_identifier: str
    total_shares: int
    share_price: int                 # stablecoin base units
    minimum_investment: int          # shares per purchase
    payment_token: str
    beneficiary: str
    revenue_generating: bool
    metadata_uri: str
    shares_sold: int = 0
    is_active: bool = True

    @property
    def shares_available(self) -> int:
        return self.total_shares - self.shares_sold


class SimulatedFractionalProperty(SimulatedContract):

    def __init__(self, address: str, deployer: str, fee_recipient: str, base_uri: str, mine: Miner):
        super().__init__(address, deployer, mine)
        self.fee_recipient = normalize_address(fee_recipient)
        self.base_uri = base_uri
        self._assets: Dict[int, FractionalAsset] = {}
        self._balances: Dict[Tuple[int, str], int] = {}
        self._claimable: Dict[Tuple[int, str], int] = {}
        self.proceeds: Dict[str, int] = {}          # beneficiary → stablecoin units received
        self._next_asset_id = 1

    def fractionalize_property(
        self,
        sender: str,
        property_token_id: int,
        property_registry: str,
        property_identifier: str,
        total_shares: int,
        share_price: int,
        minimum_investment: int,
        payment_token: str,
        beneficiary: str,
        revenue_generating: bool,
        metadata_uri: str,
    ) -> TxReceipt:
        self._when_not_paused()
        self._check_role(PROPERTY_MANAGER_ROLE, sender)
        if total_shares <= 0:
            raise ContractRevert("Invalid share count")
        if share_price <= 0:
            raise ContractRevert("Invalid share price")
        if not 1 <= minimum_investment <= total_shares:
            raise ContractRevert("Invalid minimum investment")

        asset_id = self._next_asset_id
        self._next_asset_id += 1
        self._assets[asset_id] = FractionalAsset(
            asset_id=asset_id,
            property_token_id=property_token_id,
            property_registry=normalize_address(property_registry),
            property_identifier=property_identifier,
            total_shares=total_shares,
            share_price=share_price,
            minimum_investment=minimum_investment,
            payment_token=normalize_address(payment_token),
            beneficiary=normalize_address(beneficiary),
            revenue_generating=revenue_generating,
            metadata_uri=metadata_uri or f"{self.base_uri}{asset_id}",
        )
        logger.info(f"Asset #{asset_id} fractionalized: {total_shares} shares of {property_identifier}")
        return self._emit(sender, "fractionalizeProperty", ContractEvent("AssetFractionalized", {
            "assetId": asset_id,
            "propertyTokenId": property_token_id,
            "propertyIdentifier": property_identifier,
            "totalShares": total_shares,
            "sharePrice": share_price,
        }))

    def purchase_shares(self, sender: str, asset_id: int, shares: int) -> TxReceipt:
        self._when_not_paused()
        asset = self._require_asset(asset_id)
        if not asset.is_active:
            raise ContractRevert("Asset not active")
        if shares < asset.minimum_investment:
            raise ContractRevert("Below minimum investment")
        if shares > asset.shares_available:
            raise ContractRevert("Insufficient shares available")

        buyer = normalize_address(sender)
        cost = shares * asset.share_price
        asset.shares_sold += shares
        self._balances[(asset_id, buyer)] = self._balances.get((asset_id, buyer), 0) + shares
        self.proceeds[asset.beneficiary] = self.proceeds.get(asset.beneficiary, 0) + cost

        return self._emit(sender, "purchaseShares", ContractEvent("SharesPurchased", {
            "assetId": asset_id, "buyer": buyer, "shares": shares, "cost": cost,
        }))

    def distribute_revenue(self, sender: str, asset_id: int, amount: int) -> TxReceipt:
        self._check_role(DISTRIBUTOR_ROLE, sender)
        asset = self._require_asset(asset_id)
        if not asset.revenue_generating:
            raise ContractRevert("Asset does not generate revenue")
        if amount <= 0:
            raise ContractRevert("Invalid amount")
        if asset.shares_sold == 0:
            raise ContractRevert("No shareholders")

        distributed = 0
        for (aid, holder), held in self._balances.items():
            if aid != asset_id or held == 0:
                continue
            portion = amount * held // asset.shares_sold
            self._claimable[(asset_id, holder)] = self._claimable.get((asset_id, holder), 0) + portion
            distributed += portion

        return self._emit(sender, "distributeRevenue", ContractEvent("RevenueDistributed", {
            "assetId": asset_id, "amount": amount, "distributed": distributed,
        }))

    def claimable_revenue(self, asset_id: int, holder: str) -> int:
        return self._claimable.get((asset_id, normalize_address(holder)), 0)

    def set_asset_active(self, sender: str, asset_id: int, active: bool) -> TxReceipt:
        self._check_role(PROPERTY_MANAGER_ROLE, sender)
        asset = self._require_asset(asset_id)
        asset.is_active = active
        return self._emit(sender, "setAssetActive", ContractEvent("AssetStatusChanged", {
            "assetId": asset_id, "active": active,
        }))

    # ── Views ──────────────────────────────────────────────────────────────
    def get_asset(self, asset_id: int) -> FractionalAsset:
        return self._require_asset(asset_id)

    def shares_of(self, asset_id: int, holder: str) -> int:
        return self._balances.get((asset_id, normalize_address(holder)), 0)

    def funding_progress(self, asset_id: int) -> float:
        asset = self._require_asset(asset_id)
        return round(asset.shares_sold / asset.total_shares * 100, 2)

    def _require_asset(self, asset_id: int) -> FractionalAsset:
        asset = self._assets.get(asset_id)
        if asset is None:
            raise ContractRevert("Asset does not exist")
        return asset
