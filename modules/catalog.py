"""
modules/catalog.py — Property Catalog Module
==============================================
Read side of the marketplace: listing, lookup and platform stats.

Flow:
    API route → build query → DB → serialize (camelCase, as the browser client expects)
"""

import logging
from typing import Optional
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from db.models import Property

logger = logging.getLogger("propius.modules.catalog")


async def list_properties(
    db: AsyncSession,
    property_type: Optional[str] = None,
    property_status: Optional[str] = None,
    limit: int = 20,
) -> list:
    """Most recently updated properties first, optionally filtered by type and status."""
    query = select(Property)
    if property_type and property_type.upper() != "ALL":
        query = query.where(Property.type == property_type.upper())
    if property_status:
        query = query.where(Property.status == property_status.upper())
    query = query.order_by(Property.updated_at.desc(), Property.id).limit(limit)

    result = await db.execute(query)
    return [serialize_property(p) for p in result.scalars().all()]


async def get_property(db: AsyncSession, property_id: str) -> dict:
    prop = await db.get(Property, property_id)
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return serialize_property(prop)


async def get_stats(db: AsyncSession) -> dict:
    """Aggregate counts and sums across the whole catalog."""
    total_properties, total_value, average_return = (
        await db.execute(
            select(
                func.count(Property.id),
                func.sum(Property.total_value),
                func.avg(Property.est_return),
            )
        )
    ).one()
    funded = await db.scalar(
        select(func.count(Property.id)).where(Property.status == "FUNDED")
    )
    return {
        "totalProperties": total_properties,
        "totalValue": total_value or 0,
        "fundedProperties": funded or 0,
        "averageReturn": round(average_return, 1) if average_return is not None else 0,
    }


def serialize_property(p: Property) -> dict:
    return {
        "id": p.id,
        "title": p.title,
        "type": p.type,
        "location": p.location,
        "totalValue": p.total_value,
        "sharePrice": p.share_price,
        "minInvestment": p.min_investment,
        "estReturn": p.est_return,
        "sharesSold": p.shares_sold,
        "totalShares": p.total_shares,
        "status": p.status,
        "fundingProgress": p.funding_progress,
        "image": p.image,
        "description": p.description,
        "documents": p.documents or {},
        "verified": p.verified,
        "launchDate": p.launch_date,
        "createdAt": p.created_at.isoformat() if p.created_at else None,
        "updatedAt": p.updated_at.isoformat() if p.updated_at else None,
    }
