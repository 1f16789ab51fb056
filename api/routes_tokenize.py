"""
api/routes_tokenize.py — Tokenization Request API Endpoints

Endpoints:
    POST /api/tokenize                          → Open a tokenization request
    GET  /api/tokenize/{wallet_address}         → Requests opened by a wallet
    POST /api/tokenize/{request_id}/documents   → Attach storage links / advance status
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Union

from db.session import get_db
from modules.tokenization import create_request, list_requests, attach_documents

logger = logging.getLogger("propius.api.tokenize")

router = APIRouter()


class TokenizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    wallet_address: Optional[str] = Field(None, alias="walletAddress")
    property_address: Optional[str] = Field(None, alias="propertyAddress")
    estimated_value: Optional[float] = Field(None, alias="estimatedValue")
    tokenization_type: Optional[str] = Field(None, alias="tokenizationType")   # fractional | whole


class DocumentsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    document_links: Optional[Union[dict, list]] = Field(
        None, validation_alias=AliasChoices("documentLinks", "arweaveLinks", "document_links"),
    )
    documents_uploaded: Optional[bool] = Field(None, alias="documentsUploaded")
    status: Optional[str] = None


@router.post("/tokenize")
async def start_tokenization(body: TokenizeRequest, db: AsyncSession = Depends(get_db)):
    try:
        request = await create_request(
            db,
            wallet_address=body.wallet_address,
            property_address=body.property_address,
            estimated_value=body.estimated_value,
            tokenization_type=body.tokenization_type,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Error starting tokenization")
        raise HTTPException(status_code=500, detail="Failed to start tokenization process")
    return {"success": True, "data": request}


@router.get("/tokenize/{wallet_address}")
async def wallet_requests(wallet_address: str, db: AsyncSession = Depends(get_db)):
    try:
        requests = await list_requests(db, wallet_address)
    except Exception:
        logger.exception(f"Error fetching tokenization requests for {wallet_address}")
        raise HTTPException(status_code=500, detail="Failed to fetch tokenization requests")
    return {"success": True, "data": requests}


@router.post("/tokenize/{request_id}/documents")
async def update_documents(request_id: str, body: DocumentsUpdate, db: AsyncSession = Depends(get_db)):
    try:
        request = await attach_documents(
            db,
            request_id,
            document_links=body.document_links,
            documents_uploaded=body.documents_uploaded,
            new_status=body.status,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception(f"Error updating documents for {request_id}")
        raise HTTPException(status_code=500, detail="Failed to update documents")
    return {"success": True, "message": "Documents updated successfully", "data": request}
