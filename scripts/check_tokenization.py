#!/usr/bin/env python3
"""Smoke-test the deployed contracts: tokenize, fractionalize, read back.

Usage:
    python scripts/check_tokenization.py
    BLOCKCHAIN_BACKEND=ethereum python scripts/check_tokenization.py --deployments-dir deployments
"""

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import settings
from core.blockchain import blockchain
from core.contracts import ContractRevert
from core.deployment import attach_platform
from core.fractional import STABLECOIN_DECIMALS

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("propius.scripts.check_tokenization")

EXAMPLE_DOCUMENT_HASH = "QmXoypizjW3WknFiJnKLwHCnL72vedxjQkDDP1mXWo6uco"
SHARE_PRICE_UNITS = 250 * 10 ** STABLECOIN_DECIMALS


def check_tokenization(chain, signer: str, registry_number: str = None) -> dict:
    """Run the three checks against `chain` and return what was read back."""
    registry_number = registry_number or f"RGP-2025-{random.randint(0, 9999)}"
    property_data = {
        "registry_number": registry_number,
        "cadastral_reference": "CAD-GT-Z10-001",
        "municipality": "Guatemala City",
        "zone": "10",
        "area_sq_meters": 500,
        "construction_sq_meters": 350,
        "property_type": 0,
        "valuation_usd": 250_000,
        "valuation_gtq": 1_950_000,     # ~7.8 GTQ per USD
    }

    logger.info("Test 1: tokenizing a whole property...")
    receipt = chain.registry.tokenize_property(
        signer,
        property_data["registry_number"],
        property_data["cadastral_reference"],
        property_data["municipality"],
        property_data["zone"],
        property_data["area_sq_meters"],
        property_data["construction_sq_meters"],
        property_data["property_type"],
        signer,
        EXAMPLE_DOCUMENT_HASH,
        property_data["valuation_usd"],
        property_data["valuation_gtq"],
    )
    token_id = receipt.find_event("PropertyTokenized").args["tokenId"]
    logger.info(f"Property tokenized in tx {receipt.tx_hash}: token #{token_id}, "
                f"registry {registry_number}, valuation ${property_data['valuation_usd']:,}")

    logger.info("Test 2: fractionalizing the property...")
    total_shares = 1_000
    receipt = chain.fractional.fractionalize_property(
        signer,
        token_id,
        chain.registry.address,
        registry_number,
        total_shares,
        SHARE_PRICE_UNITS,
        10,
        settings.USDC_ADDRESS,
        signer,
        True,
        f"{settings.METADATA_BASE_URI}{token_id}",
    )
    asset_id = receipt.find_event("AssetFractionalized").args["assetId"]
    logger.info(f"Fractional asset #{asset_id}: {total_shares} shares at "
                f"${SHARE_PRICE_UNITS / 10 ** STABLECOIN_DECIMALS:.2f} "
                f"(total ${total_shares * SHARE_PRICE_UNITS / 10 ** STABLECOIN_DECIMALS:,.0f})")

    logger.info("Test 3: querying property details...")
    owned = chain.registry.get_owner_properties(signer)
    logger.info(f"Total properties owned: {len(owned)}")
    latest = chain.registry.get_property(owned[-1])
    logger.info(f"  Registry number: {latest.registry_number}")
    logger.info(f"  Municipality:    {latest.municipality}")
    logger.info(f"  Zone:            {latest.zone}")
    logger.info(f"  Area:            {latest.area_sq_meters} m²")
    logger.info(f"  Construction:    {latest.construction_sq_meters} m²")
    logger.info(f"  Valuation (USD): ${latest.valuation_usd}")
    logger.info(f"  Valuation (GTQ): Q{latest.valuation_gtq}")
    logger.info(f"  Is verified:     {latest.is_verified}")
    logger.info(f"  Has encumbrance: {latest.has_encumbrance}")

    return {"token_id": token_id, "asset_id": asset_id, "owned": owned, "property": latest}


async def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check tokenization against a deployment")
    parser.add_argument("--deployments-dir", help="Directory holding latest.json (default: DEPLOYMENTS_DIR)")
    parser.add_argument("--registry-number", help="Registry number to tokenize (default: random)")
    args = parser.parse_args(argv)

    await blockchain.connect()
    if not blockchain.accounts:
        logger.error("No signing account available, set DEPLOYER_PRIVATE_KEY")
        return 1
    try:
        manifest = attach_platform(blockchain, args.deployments_dir)
    except (FileNotFoundError, ValueError) as exc:
        logger.error(f"{exc}")
        return 1
    logger.info(f"Network: {manifest['network']} (chain id {manifest['chainId']})")
    signer = blockchain.accounts[0]
    logger.info(f"Testing with account: {signer}")

    try:
        check_tokenization(blockchain, signer, args.registry_number)
    except ContractRevert as exc:
        logger.error(f"Contract rejected the call: {exc.reason}")
        return 1
    finally:
        await blockchain.disconnect()

    logger.info("All checks completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
