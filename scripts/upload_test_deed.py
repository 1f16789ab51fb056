#!/usr/bin/env python3
"""Exercise the property document uploader end to end.

Creates a sample deed (PDF) and property photo (JPEG) under test-files/,
checks the storage balance, uploads the deed, uploads a deed+photo bundle,
generates the NFT metadata, and saves everything to test-uploads.json.

Usage:
    python scripts/upload_test_deed.py
    STORAGE_BACKEND=ipfs python scripts/upload_test_deed.py --output-dir /tmp/propius
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.storage import InsufficientBalanceError
from modules.documents import (
    check_balance,
    generate_property_metadata,
    upload_property_deed_from_file,
    upload_property_document_bundle,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("propius.scripts.upload_test_deed")

ESTIMATED_UPLOAD_BYTES = 1024 * 1024

SAMPLE_PDF = b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /Contents 4 0 R >>
endobj
4 0 obj
<< /Length 44 >>
stream
BT
/F1 12 Tf
100 700 Td
(TITULO DE PROPIEDAD - GUATEMALA) Tj
ET
endstream
endobj
xref
0 5
0000000000 65535 f
0000000009 00000 n
0000000074 00000 n
0000000120 00000 n
0000000179 00000 n
trailer
<< /Size 5 /Root 1 0 R >>
startxref
274
%%EOF
"""

# Minimal JPEG: SOI, JFIF APP0 header, EOI
SAMPLE_JPEG = bytes([
    0xFF, 0xD8, 0xFF, 0xE0, 0x00, 0x10, 0x4A, 0x46, 0x49, 0x46, 0x00, 0x01,
    0x01, 0x01, 0x00, 0x48, 0x00, 0x48, 0x00, 0x00, 0xFF, 0xD9,
])

UPLOAD_METADATA = {
    "registry_number": "RGP-2025-TEST-001",
    "municipality": "Guatemala City",
    "zone": "10",
    "property_type": "Residential",
    "owner_address": "0x23de198F1520ad386565fc98AEE6abb3Ae5052BE",
}

PROPERTY_DATA = {
    "registry_number": "RGP-2025-TEST-001",
    "municipality": "Guatemala City",
    "zone": "10",
    "area_sq_meters": 500,
    "construction_sq_meters": 350,
    "property_type": 0,
    "valuation_usd": 250_000,
}


def create_sample_files(directory: Path):
    """Write the sample deed and photo unless they already exist."""
    directory.mkdir(parents=True, exist_ok=True)
    deed_path = directory / "sample-deed.pdf"
    image_path = directory / "sample-property-image.jpg"
    if not deed_path.exists():
        deed_path.write_bytes(SAMPLE_PDF)
        logger.info(f"Created sample deed file: {deed_path}")
    if not image_path.exists():
        image_path.write_bytes(SAMPLE_JPEG)
        logger.info(f"Created sample property image: {image_path}")
    return deed_path, image_path


async def run_upload_test(output_dir: Path, backend=None, delay: float = None):
    """
    Returns the results dict written to test-uploads.json,
    or None when the storage account cannot cover the estimated upload.
    """
    logger.info("Checking storage balance...")
    balance_info = await check_balance(ESTIMATED_UPLOAD_BYTES, backend=backend)
    if not balance_info["has_sufficient_funds"]:
        logger.error("Insufficient storage balance for upload")
        logger.info("Fund the account with modules.documents.fund_account(amount_wei)")
        return None

    deed_path, image_path = create_sample_files(output_dir / "test-files")

    logger.info("Test 1: upload single property deed...")
    deed_result = await upload_property_deed_from_file(deed_path, UPLOAD_METADATA, backend=backend)
    logger.info(f"Deed uploaded: {deed_result['gateway_url']}")

    logger.info("Test 2: upload document bundle...")
    bundle = [
        {"data": deed_path.read_bytes(), "filename": "titulo-propiedad.pdf", "type": "property-deed"},
        {"data": image_path.read_bytes(), "filename": "property-exterior.jpg", "type": "property-image"},
    ]
    bundle_result = await upload_property_document_bundle(bundle, UPLOAD_METADATA, backend=backend, delay=delay)
    logger.info(f"Bundle uploaded: {bundle_result['bundle_id']} "
                f"({bundle_result['total_size'] / 1024:.2f} KB)")

    logger.info("Test 3: generate NFT metadata...")
    metadata_result = await generate_property_metadata(PROPERTY_DATA, bundle_result["documents"], backend=backend)
    logger.info(f"NFT metadata generated: {metadata_result['metadata_uri']}")

    logger.info("-" * 40)
    logger.info(f"Property deed:    {deed_result['gateway_url']}")
    logger.info(f"Document bundle:  {bundle_result['bundle_id']}")
    logger.info(f"NFT metadata:     {metadata_result['metadata_uri']}")
    logger.info(f"Metadata hash:    {metadata_result['metadata_hash']}")
    logger.info(f'Use as tokenURI:  "{metadata_result["metadata_uri"]}"')

    results = {
        "deed_upload": deed_result,
        "document_bundle": bundle_result,
        "nft_metadata": metadata_result,
        "property_data": PROPERTY_DATA,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }
    results_path = output_dir / "test-uploads.json"
    results_path.write_text(json.dumps(results, indent=2, ensure_ascii=False))
    logger.info(f"Results saved to: {results_path}")
    return results


async def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Upload a sample deed, bundle and NFT metadata")
    parser.add_argument("--output-dir", default=str(project_root), help="Where test files and results go")
    args = parser.parse_args(argv)

    try:
        results = await run_upload_test(Path(args.output_dir))
    except InsufficientBalanceError as exc:
        logger.error(f"Upload test failed: {exc}")
        logger.info("Fund the storage account first, e.g. fund_account(1_000_000_000_000_000)  # 0.001 ETH")
        return 1
    return 0 if results else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
