"""
db/seed.py — Reference Property Catalog
=========================================
Six reference listings inserted on first startup when the catalog is empty.
Called from main.py lifespan when SEED_CATALOG is true.
"""

import logging
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Property

logger = logging.getLogger("propius.db.seed")


REFERENCE_PROPERTIES = [
    {
        "id": "prop-001",
        "title": "FAMILY HOME, ZONE 15",
        "type": "RESIDENTIAL",
        "location": "Zone 15, Guatemala City",
        "total_value": 75000,
        "share_price": 250,
        "min_investment": 1000,
        "est_return": 8.5,
        "shares_sold": 225,
        "total_shares": 300,
        "status": "ACTIVE",
        "image": "R",
        "description": "Beautiful family home in prestigious Zone 15",
        "documents": {
            "propertyTitle": "ar://abc123",
            "rgpCertification": "ar://def456",
            "photos": ["ar://photo1", "ar://photo2"],
        },
        "verified": True,
    },
    {
        "id": "prop-002",
        "title": "OFFICE BUILDING, ZONE 10",
        "type": "COMMERCIAL",
        "location": "Zone 10, Guatemala City",
        "total_value": 2500000,
        "share_price": 250,
        "min_investment": 10000,
        "est_return": 12.0,
        "shares_sold": 0,
        "total_shares": 10000,
        "status": "NEW",
        "image": "C",
        "description": "Prime commercial space in financial district",
        "documents": {"propertyTitle": "ar://xyz789", "rgpCertification": "ar://uvw012"},
        "verified": True,
    },
    {
        "id": "prop-003",
        "title": "AGRICULTURAL LAND, PETEN",
        "type": "AGRICULTURAL",
        "location": "Peten, Guatemala",
        "total_value": 125000,
        "share_price": 250,
        "min_investment": 500,
        "est_return": 6.8,
        "shares_sold": 200,
        "total_shares": 500,
        "status": "ACTIVE",
        "image": "A",
        "description": "Fertile agricultural land with high potential",
        "documents": {"propertyTitle": "ar://agr123", "rgpCertification": "ar://agr456"},
        "verified": True,
    },
    {
        "id": "prop-004",
        "title": "LUXURY VILLA, ZONE 14",
        "type": "LUXURY",
        "location": "Zone 14, Guatemala City",
        "total_value": 450000,
        "share_price": None,
        "min_investment": 450000,
        "est_return": 5.2,
        "shares_sold": None,
        "total_shares": None,
        "status": "WHOLE_NFT",
        "image": "L",
        "description": "Exclusive luxury villa in prime location",
        "documents": {"propertyTitle": "ar://lux123", "rgpCertification": "ar://lux456"},
        "verified": True,
    },
    {
        "id": "prop-005",
        "title": "RETAIL SPACE, ZONE 1",
        "type": "COMMERCIAL",
        "location": "Zone 1, Guatemala City",
        "total_value": 180000,
        "share_price": 250,
        "min_investment": 2500,
        "est_return": 9.2,
        "shares_sold": 720,
        "total_shares": 720,
        "status": "FUNDED",
        "image": "S",
        "description": "High-traffic retail space in historic center",
        "documents": {"propertyTitle": "ar://ret123", "rgpCertification": "ar://ret456"},
        "verified": True,
    },
    {
        "id": "prop-006",
        "title": "COLONIAL HOUSE, ANTIGUA",
        "type": "COLONIAL",
        "location": "Antigua Guatemala",
        "total_value": 320000,
        "share_price": 250,
        "min_investment": 2000,
        "est_return": 7.5,
        "shares_sold": 0,
        "total_shares": 1280,
        "status": "COMING_SOON",
        "image": "H",
        "description": "Historic colonial house in UNESCO World Heritage site",
        "documents": {"propertyTitle": "ar://col123", "rgpCertification": "ar://col456"},
        "verified": False,
        "launch_date": "2025-03-01",
    },
]


async def seed_catalog(db: AsyncSession) -> int:
    """Insert the reference catalog if the table is empty. Returns rows inserted."""
    count = await db.scalar(select(func.count()).select_from(Property))
    if count:
        return 0

    logger.info("Initializing property data...")
    for data in REFERENCE_PROPERTIES:
        db.add(Property(**data))
    await db.commit()
    logger.info(f"Property data initialized ({len(REFERENCE_PROPERTIES)} listings)")
    return len(REFERENCE_PROPERTIES)
