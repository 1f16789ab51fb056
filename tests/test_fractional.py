"""Tests for the simulated FractionalProperty contract."""

import pytest

from config import settings
from core.contracts import ContractRevert
from core.fractional import share_price_units


@pytest.fixture
def fractional(chain, platform):
    return chain.fractional


@pytest.fixture
def asset_id(chain, deployer, fractional) -> int:
    """$75,000 home split into 300 shares, minimum 4 per purchase."""
    receipt = fractional.fractionalize_property(
        deployer,
        1,
        chain.registry.address,
        "RGP-2025-DEMO-001",
        300,
        share_price_units(75_000, 300),
        4,
        settings.USDC_ADDRESS,
        deployer,
        True,
        "",
    )
    return receipt.find_event("AssetFractionalized").args["assetId"]


class TestSharePrice:
    """Tests for share_price_units."""

    def test_six_decimals(self) -> None:
        """$75,000 over 300 shares is $250.000000."""
        assert share_price_units(75_000, 300) == 250_000_000

    def test_rounds_down(self) -> None:
        """Fractions of a base unit are dropped."""
        assert share_price_units(100, 3) == 33_333_333

    def test_zero_shares(self) -> None:
        """Zero shares is a programming error."""
        with pytest.raises(ValueError):
            share_price_units(100, 0)


class TestFractionalize:
    """Tests for fractionalize_property."""

    def test_creates_asset(self, fractional, asset_id, deployer) -> None:
        """The asset starts active with nothing sold."""
        assert asset_id == 1
        asset = fractional.get_asset(asset_id)
        assert asset.total_shares == 300
        assert asset.share_price == 250_000_000
        assert asset.shares_sold == 0
        assert asset.shares_available == 300
        assert asset.is_active is True
        assert asset.beneficiary == deployer
        assert asset.metadata_uri == f"{settings.METADATA_BASE_URI}1"

    def test_requires_property_manager(self, chain, fractional) -> None:
        """Accounts without PROPERTY_MANAGER_ROLE are rejected."""
        stranger = chain.accounts[5]
        with pytest.raises(ContractRevert, match="missing role PROPERTY_MANAGER_ROLE"):
            fractional.fractionalize_property(
                stranger, 1, chain.registry.address, "RGP-1", 100, 1, 1,
                settings.USDC_ADDRESS, stranger, False, "",
            )

    @pytest.mark.parametrize(
        "total_shares, share_price, minimum, reason",
        [
            (0, 1, 1, "Invalid share count"),
            (100, 0, 1, "Invalid share price"),
            (100, 1, 0, "Invalid minimum investment"),
            (100, 1, 101, "Invalid minimum investment"),
        ],
    )
    def test_rejects_bad_terms(self, chain, deployer, fractional, total_shares, share_price, minimum, reason) -> None:
        """Share terms are validated before anything is stored."""
        with pytest.raises(ContractRevert, match=reason):
            fractional.fractionalize_property(
                deployer, 1, chain.registry.address, "RGP-1", total_shares, share_price, minimum,
                settings.USDC_ADDRESS, deployer, False, "",
            )


class TestPurchase:
    """Tests for purchase_shares."""

    def test_purchase(self, chain, fractional, asset_id, deployer) -> None:
        """Shares move to the buyer and proceeds to the beneficiary."""
        buyer = chain.accounts[3]
        receipt = fractional.purchase_shares(buyer, asset_id, 10)

        event = receipt.find_event("SharesPurchased")
        assert event.args["cost"] == 10 * 250_000_000
        assert fractional.shares_of(asset_id, buyer) == 10
        assert fractional.get_asset(asset_id).shares_available == 290
        assert fractional.proceeds[deployer] == 2_500_000_000
        assert fractional.funding_progress(asset_id) == 3.33

    def test_below_minimum(self, chain, fractional, asset_id) -> None:
        """Purchases under the minimum investment revert."""
        with pytest.raises(ContractRevert, match="Below minimum investment"):
            fractional.purchase_shares(chain.accounts[3], asset_id, 3)

    def test_never_oversold(self, chain, fractional, asset_id) -> None:
        """shares_sold never exceeds total_shares."""
        fractional.purchase_shares(chain.accounts[3], asset_id, 296)
        with pytest.raises(ContractRevert, match="Insufficient shares available"):
            fractional.purchase_shares(chain.accounts[4], asset_id, 5)
        fractional.purchase_shares(chain.accounts[4], asset_id, 4)
        assert fractional.get_asset(asset_id).shares_available == 0
        assert fractional.funding_progress(asset_id) == 100

    def test_inactive_asset(self, chain, deployer, fractional, asset_id) -> None:
        """Deactivated assets cannot be bought."""
        fractional.set_asset_active(deployer, asset_id, False)
        with pytest.raises(ContractRevert, match="Asset not active"):
            fractional.purchase_shares(chain.accounts[3], asset_id, 4)

    def test_unknown_asset(self, chain, fractional) -> None:
        with pytest.raises(ContractRevert, match="Asset does not exist"):
            fractional.purchase_shares(chain.accounts[3], 99, 4)

    def test_paused(self, chain, deployer, fractional, asset_id) -> None:
        """Pausing the contract stops purchases."""
        fractional._set_paused(deployer, True)
        with pytest.raises(ContractRevert, match="Pausable: paused"):
            fractional.purchase_shares(chain.accounts[3], asset_id, 4)


class TestRevenue:
    """Tests for distribute_revenue."""

    def test_pro_rata(self, chain, deployer, fractional, asset_id) -> None:
        """Revenue is split by shares held."""
        alice, bob = chain.accounts[3], chain.accounts[4]
        fractional.purchase_shares(alice, asset_id, 30)
        fractional.purchase_shares(bob, asset_id, 10)

        receipt = fractional.distribute_revenue(deployer, asset_id, 1_000_000)
        assert receipt.find_event("RevenueDistributed").args["distributed"] == 1_000_000
        assert fractional.claimable_revenue(asset_id, alice) == 750_000
        assert fractional.claimable_revenue(asset_id, bob) == 250_000

    def test_requires_distributor(self, chain, fractional, asset_id) -> None:
        """Only DISTRIBUTOR_ROLE can distribute."""
        fractional.purchase_shares(chain.accounts[3], asset_id, 4)
        with pytest.raises(ContractRevert, match="missing role DISTRIBUTOR_ROLE"):
            fractional.distribute_revenue(chain.accounts[3], asset_id, 100)

    def test_no_shareholders(self, deployer, fractional, asset_id) -> None:
        """Nothing to distribute before the first sale."""
        with pytest.raises(ContractRevert, match="No shareholders"):
            fractional.distribute_revenue(deployer, asset_id, 100)
