"""
modules/tokenization.py — Tokenization Request Tracker
========================================================
Off-chain bookkeeping for owners who want their property tokenized.

Lifecycle:
    pending_documents → pending_notary_verification → contract_deployed

The contracts themselves are driven by the scripts in scripts/; this module
only records where each request stands.
"""

import time
import uuid
import logging
from datetime import datetime
from typing import Optional, Union
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from db.models import TokenizationRequest, TOKENIZATION_STATUSES, TOKENIZATION_TYPES

logger = logging.getLogger("propius.modules.tokenization")


def new_request_id() -> str:
    millis = int(time.time() * 1000)
    return f"token-{millis}-{uuid.uuid4().hex[:6]}"


async def create_request(
    db: AsyncSession,
    wallet_address: Optional[str],
    property_address: Optional[str],
    estimated_value: Optional[float],
    tokenization_type: Optional[str] = None,
) -> dict:
    """Open a new tokenization request in the pending_documents state."""
    if not wallet_address or not property_address or not estimated_value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

    tokenization_type = tokenization_type or "fractional"
    if tokenization_type not in TOKENIZATION_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid tokenization type")

    now = datetime.utcnow()
    request = TokenizationRequest(
        id=new_request_id(),
        wallet_address=wallet_address,
        property_address=property_address,
        estimated_value=estimated_value,
        tokenization_type=tokenization_type,
        status="pending_documents",
        documents_uploaded=False,
        notary_verified=False,
        contract_deployed=False,
        created_at=now,
        updated_at=now,
    )
    db.add(request)
    await db.flush()

    logger.info(f"Tokenization request {request.id} opened by {wallet_address} ({tokenization_type})")
    return serialize_request(request)


async def list_requests(db: AsyncSession, wallet_address: str) -> list:
    """All requests for a wallet, newest first."""
    result = await db.execute(
        select(TokenizationRequest)
        .where(TokenizationRequest.wallet_address == wallet_address)
        .order_by(TokenizationRequest.created_at.desc(), TokenizationRequest.id.desc())
    )
    return [serialize_request(r) for r in result.scalars().all()]


async def attach_documents(
    db: AsyncSession,
    request_id: str,
    document_links: Optional[Union[dict, list]] = None,
    documents_uploaded: Optional[bool] = None,
    new_status: Optional[str] = None,
) -> dict:
    """Record storage links for a request and advance its status."""
    if new_status is not None and new_status not in TOKENIZATION_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid status '{new_status}'")

    request = await db.get(TokenizationRequest, request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tokenization request not found")

    if document_links is not None:
        request.document_links = document_links
    if documents_uploaded is not None:
        request.documents_uploaded = documents_uploaded
    elif document_links:
        request.documents_uploaded = True

    if new_status is not None:
        request.status = new_status
        if new_status == "pending_notary_verification":
            request.documents_uploaded = True
        elif new_status == "contract_deployed":
            request.documents_uploaded = True
            request.notary_verified = True
            request.contract_deployed = True

    request.updated_at = datetime.utcnow()
    await db.flush()

    logger.info(f"Tokenization request {request_id} updated, status={request.status}")
    return serialize_request(request)


def serialize_request(r: TokenizationRequest) -> dict:
    return {
        "id": r.id,
        "walletAddress": r.wallet_address,
        "propertyAddress": r.property_address,
        "estimatedValue": r.estimated_value,
        "tokenizationType": r.tokenization_type,
        "status": r.status,
        "documentsUploaded": r.documents_uploaded,
        "notaryVerified": r.notary_verified,
        "contractDeployed": r.contract_deployed,
        "documentLinks": r.document_links,
        "createdAt": r.created_at.isoformat() if r.created_at else None,
        "updatedAt": r.updated_at.isoformat() if r.updated_at else None,
    }
