"""
modules/documents.py — Property Document Uploader
===================================================
Puts deeds, RGP certificates, photos and NFT metadata on permanent storage.

Flow for every document:
    validate bytes → SHA-256 → price vs balance → tag → upload → URIs

The hash travels with the document as a tag, so anyone holding the file can
check it against what was stored.
"""

import asyncio
import hashlib
import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from config import settings
from core.registry import PROPERTY_TYPES
from core.storage import storage, InsufficientBalanceError

logger = logging.getLogger("propius.modules.documents")


CONTENT_TYPES = {
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "bmp": "image/bmp",
    "tiff": "image/tiff",
    # Documents
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "txt": "text/plain",
    "json": "application/json",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# metadata key → tag name, appended in this order when present
OPTIONAL_TAGS = [
    ("registry_number", "Registry-Number"),
    ("property_type", "Property-Type"),
    ("municipality", "Municipality"),
    ("zone", "Zone"),
    ("owner_address", "Owner-Address"),
]


class DocumentUploadError(ValueError):
    """Raised for payloads that cannot be uploaded (wrong type, empty)."""


def get_content_type(filename: str) -> str:
    ext = filename.lower().rsplit(".", 1)[-1]
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def get_property_type_name(type_number: int) -> str:
    if isinstance(type_number, int) and 0 <= type_number < len(PROPERTY_TYPES):
        return PROPERTY_TYPES[type_number]
    return "Unknown"


def document_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def build_tags(data: bytes, filename: str, digest: str, metadata: dict) -> list:
    tags = [
        ("Content-Type", get_content_type(filename)),
        ("Filename", filename),
        ("Document-Hash", digest),
        ("File-Size", str(len(data))),
        ("Upload-Timestamp", datetime.utcnow().isoformat() + "Z"),
        ("Platform", settings.PLATFORM_NAME),
        ("Document-Type", metadata.get("document_type") or "property-document"),
        ("Country", settings.COUNTRY),
    ]
    for key, tag_name in OPTIONAL_TAGS:
        if metadata.get(key):
            tags.append((tag_name, str(metadata[key])))
    return tags


async def upload_property_document(
    data: bytes,
    filename: str,
    metadata: Optional[dict] = None,
    backend=None,
) -> dict:
    """
    Upload one document.
    Raises DocumentUploadError for bad payloads and InsufficientBalanceError
    when the storage account cannot pay for it.
    """
    backend = backend or storage
    metadata = metadata or {}

    if not isinstance(data, (bytes, bytearray)):
        raise DocumentUploadError("Invalid buffer provided - not a bytes object")
    if len(data) == 0:
        raise DocumentUploadError("Empty buffer provided")
    data = bytes(data)

    logger.info(f"Uploading property document: {filename} ({len(data)} bytes)")
    digest = document_hash(data)

    price = await backend.get_price(len(data))
    balance = await backend.get_balance()
    logger.info(f"Upload cost: {price} wei, Balance: {balance} wei")
    if balance < price:
        raise InsufficientBalanceError(price, balance)

    tags = build_tags(data, filename, digest, metadata)
    object_id = await backend.upload(data, tags)

    result = {
        "id": object_id,
        "url": backend.url(object_id),
        "gateway_url": backend.gateway_url(object_id),
        "uri": backend.uri(object_id),
        "document_hash": digest,
        "size": len(data),
        "content_type": get_content_type(filename),
        "tags": dict(tags),
    }
    logger.info(f"Document uploaded: {result['uri']} sha256={digest[:16]}...")
    return result


async def upload_property_deed_from_file(file_path, metadata: Optional[dict] = None, backend=None) -> dict:
    """Read a deed from disk and upload it as document type property-deed."""
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    deed_metadata = dict(metadata or {}, document_type="property-deed")
    logger.info(f"Reading deed file: {path}")
    return await upload_property_document(path.read_bytes(), path.name, deed_metadata, backend=backend)


async def upload_property_document_bundle(
    documents: List[dict],
    metadata: Optional[dict] = None,
    backend=None,
    delay: float = None,
) -> dict:
    """
    Upload several documents one after another.

    documents: [{"data": bytes, "filename": str, "type": "property-deed"}, ...]
    """
    delay = settings.UPLOAD_BUNDLE_DELAY_SECONDS if delay is None else delay
    logger.info(f"Uploading document bundle ({len(documents)} files)...")

    results = []
    for index, doc in enumerate(documents):
        doc_type = doc.get("type") or "property-document"
        doc_metadata = dict(metadata or {}, document_type=doc_type)
        result = await upload_property_document(doc["data"], doc["filename"], doc_metadata, backend=backend)
        results.append({"type": doc_type, "filename": doc["filename"], **result})
        if delay and index < len(documents) - 1:
            await asyncio.sleep(delay)

    logger.info(f"Bundle upload complete! {len(results)} documents uploaded.")
    return {
        "bundle_id": str(uuid.uuid4()),
        "documents": results,
        "total_size": sum(doc["size"] for doc in results),
        "uploaded_at": datetime.utcnow().isoformat() + "Z",
    }


def build_property_metadata(property_data: dict, document_results: List[dict]) -> dict:
    """ERC-721 metadata JSON for a property NFT."""
    registry_number = property_data["registry_number"]
    image = next(
        (doc["gateway_url"] for doc in document_results if doc.get("type") == "property-image"), "",
    )
    return {
        "name": f"Property {registry_number}",
        "description": (
            f"{settings.COUNTRY} Property Token for {property_data.get('municipality')}, "
            f"Zone {property_data.get('zone')}"
        ),
        "image": image,
        "external_url": f"{settings.PROPERTY_EXTERNAL_URL}{registry_number}",
        "attributes": [
            {"trait_type": "Registry Number", "value": registry_number},
            {"trait_type": "Municipality", "value": property_data.get("municipality")},
            {"trait_type": "Zone", "value": property_data.get("zone")},
            {"trait_type": "Area (m²)", "value": property_data.get("area_sq_meters"), "display_type": "number"},
            {"trait_type": "Construction (m²)", "value": property_data.get("construction_sq_meters"),
             "display_type": "number"},
            {"trait_type": "Property Type", "value": get_property_type_name(property_data.get("property_type"))},
            {"trait_type": "Valuation (USD)", "value": property_data.get("valuation_usd"), "display_type": "number"},
            {"trait_type": "Country", "value": settings.COUNTRY},
        ],
        "documents": [
            {
                "type": doc.get("type"),
                "filename": doc.get("filename"),
                "url": doc["gateway_url"],
                "hash": doc["document_hash"],
                "size": doc["size"],
            }
            for doc in document_results
        ],
        "verification": {
            "verified": True,
            "verifiedAt": datetime.utcnow().isoformat() + "Z",
            "platform": settings.PLATFORM_NAME,
        },
    }


async def generate_property_metadata(property_data: dict, document_results: List[dict], backend=None) -> dict:
    """Build the NFT metadata and upload it; the returned URI goes into tokenURI."""
    metadata = build_property_metadata(property_data, document_results)
    registry_number = property_data["registry_number"]

    uploaded = await upload_property_document(
        json.dumps(metadata, indent=2, ensure_ascii=False).encode("utf-8"),
        f"{registry_number}-metadata.json",
        {"document_type": "nft-metadata", "registry_number": registry_number},
        backend=backend,
    )
    logger.info(f"Property metadata uploaded: {uploaded['gateway_url']}")
    return {
        "metadata": metadata,
        "metadata_uri": uploaded["gateway_url"],
        "metadata_hash": uploaded["document_hash"],
    }


async def check_balance(estimated_size: int, backend=None) -> dict:
    backend = backend or storage
    price = await backend.get_price(estimated_size)
    balance = await backend.get_balance()
    logger.info(f"Storage balance: {balance} wei, estimated cost: {price} wei")
    return {
        "balance": str(balance),
        "estimated_cost": str(price),
        "has_sufficient_funds": balance >= price,
    }


async def fund_account(amount: int, backend=None) -> dict:
    backend = backend or storage
    receipt = await backend.fund(amount)
    logger.info(f"Funded storage account with {amount} wei")
    return receipt
