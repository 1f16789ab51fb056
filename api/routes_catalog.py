"""
api/routes_catalog.py — Property Catalog API Endpoints

Endpoints:
    GET /api/properties          → List properties (filter by type/status, limit)
    GET /api/properties/{id}     → Single property
    GET /api/stats               → Platform-wide aggregate numbers
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from db.session import get_db
from modules.catalog import list_properties, get_property, get_stats

logger = logging.getLogger("propius.api.catalog")

router = APIRouter()


@router.get("/properties")
async def search_properties(
    type: Optional[str] = Query(None, description="RESIDENTIAL | COMMERCIAL | ... or ALL"),
    status: Optional[str] = Query(None, description="NEW | ACTIVE | FUNDED | WHOLE_NFT | COMING_SOON"),
    limit: int = Query(20, ge=1),
    db: AsyncSession = Depends(get_db),
):
    try:
        properties = await list_properties(db, property_type=type, property_status=status, limit=limit)
    except Exception:
        logger.exception("Error fetching properties")
        raise HTTPException(status_code=500, detail="Failed to fetch properties")
    return {"success": True, "data": properties, "count": len(properties)}


@router.get("/properties/{property_id}")
async def read_property(property_id: str, db: AsyncSession = Depends(get_db)):
    try:
        prop = await get_property(db, property_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error fetching property {property_id}")
        raise HTTPException(status_code=500, detail="Failed to fetch property")
    return {"success": True, "data": prop}


@router.get("/stats")
async def platform_stats(db: AsyncSession = Depends(get_db)):
    try:
        stats = await get_stats(db)
    except Exception:
        logger.exception("Error fetching stats")
        raise HTTPException(status_code=500, detail="Failed to fetch stats")
    return {"success": True, "data": stats}
