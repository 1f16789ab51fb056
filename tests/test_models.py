"""Tests for the catalog table constraints and computed columns."""

import pytest
from sqlalchemy.exc import IntegrityError

from db.models import Property


def make_property(**overrides) -> Property:
    data = {
        "id": "prop-100",
        "title": "APARTMENT, ZONE 14",
        "type": "RESIDENTIAL",
        "location": "Zona 14, Guatemala City",
        "total_value": 100_000,
        "share_price": 250,
        "min_investment": 250,
        "est_return": 7.0,
        "shares_sold": 100,
        "total_shares": 400,
        "status": "ACTIVE",
    }
    data.update(overrides)
    return Property(**data)


class TestSharesConstraint:
    """Tests for shares_sold <= total_shares."""

    async def test_oversold_row_rejected(self, db_session) -> None:
        """Committing more shares sold than exist fails."""
        db_session.add(make_property(shares_sold=5, total_shares=4))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_fully_sold_row_accepted(self, db_session) -> None:
        """shares_sold == total_shares is allowed."""
        db_session.add(make_property(shares_sold=400, total_shares=400, status="FUNDED"))
        await db_session.commit()

        prop = await db_session.get(Property, "prop-100")
        assert prop.funding_progress == 100

    async def test_null_shares_accepted(self, db_session) -> None:
        """Whole-NFT listings carry no share counts."""
        db_session.add(make_property(share_price=None, shares_sold=None, total_shares=None, status="WHOLE_NFT"))
        await db_session.commit()

        prop = await db_session.get(Property, "prop-100")
        assert prop.total_shares is None
        assert prop.funding_progress == 0


class TestFundingProgress:
    """Tests for the funding_progress column."""

    async def test_computed_on_insert(self, db_session) -> None:
        """100 of 400 shares sold → 25%."""
        db_session.add(make_property())
        await db_session.commit()

        prop = await db_session.get(Property, "prop-100")
        assert prop.funding_progress == 25

    async def test_recomputed_on_update(self, db_session) -> None:
        """Selling more shares refreshes the stored progress."""
        db_session.add(make_property())
        await db_session.commit()

        prop = await db_session.get(Property, "prop-100")
        prop.shares_sold = 300
        await db_session.commit()

        assert prop.funding_progress == 75

    def test_not_fractionalized(self) -> None:
        """No total_shares → 0."""
        assert make_property(total_shares=None, shares_sold=None).compute_funding_progress() == 0.0
