#!/usr/bin/env python3
"""Walk through the Propius minting flows for four Guatemalan property profiles.

Each scenario tokenizes a property on PropertyRegistry and, unless it is
sold as a whole NFT, fractionalizes it on FractionalProperty with a
per-share price in stablecoin units. The compliance tiers for the
resulting investment sizes are printed at the end.

Usage:
    python scripts/demo_minting_flow.py
    BLOCKCHAIN_BACKEND=ethereum python scripts/demo_minting_flow.py
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import settings
from core.blockchain import blockchain
from core.contracts import ContractRevert
from core.deployment import attach_platform
from core.fractional import STABLECOIN_DECIMALS, share_price_units

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("propius.scripts.demo")


SCENARIOS = [
    {
        "name": "Small Property Owner",
        "property": {
            "registry_number": "RGP-2025-DEMO-001",
            "cadastral_reference": "CAD-GT-Z15-001",
            "municipality": "Guatemala City",
            "zone": "15",
            "area_sq_meters": 150,
            "construction_sq_meters": 120,
            "property_type": 0,         # Residential
            "valuation_usd": 75_000,
            "valuation_gtq": 585_000,
        },
        "fractionalization": {"enabled": True, "total_shares": 300, "minimum_investment": 4,
                              "revenue_generating": True},
        "target_market": "Local families, diaspora remittances",
    },
    {
        "name": "Luxury Developer",
        "property": {
            "registry_number": "RGP-2025-DEMO-002",
            "cadastral_reference": "CAD-GT-Z10-002",
            "municipality": "Guatemala City",
            "zone": "10",
            "area_sq_meters": 2_000,
            "construction_sq_meters": 1_800,
            "property_type": 1,         # Commercial
            "valuation_usd": 2_500_000,
            "valuation_gtq": 19_500_000,
        },
        "fractionalization": {"enabled": True, "total_shares": 10_000, "minimum_investment": 40,
                              "revenue_generating": True},
        "target_market": "International investors, institutions",
    },
    {
        "name": "Community Property",
        "property": {
            "registry_number": "RGP-2025-DEMO-003",
            "cadastral_reference": "CAD-GT-PETEN-001",
            "municipality": "Peten",
            "zone": "Rural",
            "area_sq_meters": 50_000,
            "construction_sq_meters": 0,
            "property_type": 3,         # Agricultural
            "valuation_usd": 125_000,
            "valuation_gtq": 975_000,
        },
        "fractionalization": {"enabled": True, "total_shares": 500, "minimum_investment": 2,
                              "revenue_generating": True},
        "target_market": "Community members, agricultural investors",
    },
    {
        "name": "Whole Property Only",
        "property": {
            "registry_number": "RGP-2025-DEMO-004",
            "cadastral_reference": "CAD-GT-Z14-004",
            "municipality": "Guatemala City",
            "zone": "14",
            "area_sq_meters": 800,
            "construction_sq_meters": 600,
            "property_type": 0,         # Residential
            "valuation_usd": 450_000,
            "valuation_gtq": 3_510_000,
        },
        "fractionalization": {"enabled": False},
        "target_market": "Single wealthy buyer, family trust",
    },
]

COMPLIANCE_TIERS = [
    ("Tier 1 ($500 - $5,000)", [
        "Basic ID verification",
        "Address confirmation",
        "Phone/email verification",
    ]),
    ("Tier 2 ($5,000 - $50,000)", [
        "Enhanced KYC",
        "Income verification",
        "Source of funds documentation",
    ]),
    ("Tier 3 ($50,000+)", [
        "Accredited investor verification",
        "Net worth documentation",
        "Professional investor status",
        "Legal entity verification (if applicable)",
    ]),
]


def demonstrate_scenario(chain, signer: str, scenario: dict):
    """
    Tokenize (and optionally fractionalize) one scenario.
    Returns {"token_id", "asset_id"} or None if the chain rejected a step.
    """
    name = scenario["name"]
    prop = scenario["property"]
    frac = scenario["fractionalization"]

    logger.info(f"{name} configuration:")
    logger.info(f"  Property value: ${prop['valuation_usd']:,}")
    logger.info(f"  Location: {prop['municipality']}, Zone {prop['zone']}")
    logger.info(f"  Area: {prop['area_sq_meters']}m²")
    logger.info(f"  Target market: {scenario['target_market']}")

    if frac["enabled"]:
        share_price = prop["valuation_usd"] / frac["total_shares"]
        logger.info(f"  Total shares: {frac['total_shares']:,}")
        logger.info(f"  Price per share: ${share_price:.2f}")
        logger.info(f"  Minimum investment: {frac['minimum_investment']} shares "
                    f"(${share_price * frac['minimum_investment']:.2f})")
    else:
        logger.info("  Single NFT: no fractionalization")

    result = {"token_id": None, "asset_id": None}
    try:
        receipt = chain.registry.tokenize_property(
            signer,
            prop["registry_number"],
            prop["cadastral_reference"],
            prop["municipality"],
            prop["zone"],
            prop["area_sq_meters"],
            prop["construction_sq_meters"],
            prop["property_type"],
            signer,
            f"QmPropertyDoc{int(time.time() * 1000)}",
            prop["valuation_usd"],
            prop["valuation_gtq"],
        )
        logger.info(f"  Property tokenized in tx {receipt.tx_hash}")
        token_id = receipt.find_event("PropertyTokenized").args["tokenId"]
        result["token_id"] = token_id
        logger.info(f"  Property NFT ID: {token_id}")

        if frac["enabled"]:
            receipt = chain.fractional.fractionalize_property(
                signer,
                token_id,
                chain.registry.address,
                prop["registry_number"],
                frac["total_shares"],
                share_price_units(prop["valuation_usd"], frac["total_shares"]),
                frac["minimum_investment"],
                settings.USDC_ADDRESS,
                signer,
                frac["revenue_generating"],
                f"{settings.METADATA_BASE_URI}{token_id}",
            )
            logger.info(f"  Property fractionalized in tx {receipt.tx_hash}")
            asset_id = receipt.find_event("AssetFractionalized").args["assetId"]
            result["asset_id"] = asset_id
            logger.info(f"  Fractional asset ID: {asset_id}, {frac['total_shares']} shares available")
            for line in investment_tiers(prop["valuation_usd"] / frac["total_shares"]):
                logger.info(f"    {line}")
    except ContractRevert as exc:
        logger.error(f"Error in {name} scenario: {exc.reason}")
        return None

    logger.info(f"{name} scenario complete")
    return result


def investment_tiers(share_price: float) -> list:
    return [
        f"Retail (4-20 shares): ${share_price * 4:.0f} - ${share_price * 20:.0f}",
        f"Moderate (21-100 shares): ${share_price * 21:.0f} - ${share_price * 100:.0f}",
        f"Large (100+ shares): ${share_price * 100:.0f}+",
    ]


def show_compliance_requirements():
    logger.info("KYC/compliance requirements")
    for tier, requirements in COMPLIANCE_TIERS:
        logger.info(tier)
        for requirement in requirements:
            logger.info(f"  - {requirement}")


def summarize(scenarios=SCENARIOS) -> list:
    lines = []
    for index, scenario in enumerate(scenarios, start=1):
        value = scenario["property"]["valuation_usd"]
        frac = scenario["fractionalization"]
        if frac["enabled"]:
            price = share_price_units(value, frac["total_shares"]) / 10 ** STABLECOIN_DECIMALS
            lines.append(f"Scenario {index}: ${value:,} property → {frac['total_shares']:,} shares @ ${price:,.0f} each")
        else:
            lines.append(f"Scenario {index}: ${value:,} property → Single NFT (no fractionalization)")
    return lines


def demonstrate_minting_flows(chain, signer: str) -> list:
    results = []
    for index, scenario in enumerate(SCENARIOS, start=1):
        logger.info("-" * 50)
        logger.info(f"SCENARIO {index}: {scenario['name']}")
        results.append(demonstrate_scenario(chain, signer, scenario))

    logger.info("All minting scenarios demonstrated")
    for line in summarize():
        logger.info(line)
    return results


async def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Demonstrate the Propius minting flows")
    parser.add_argument("--deployments-dir", help="Directory holding latest.json (default: DEPLOYMENTS_DIR)")
    args = parser.parse_args(argv)

    await blockchain.connect()
    if not blockchain.accounts:
        logger.error("No signing account available, set DEPLOYER_PRIVATE_KEY")
        return 1
    try:
        attach_platform(blockchain, args.deployments_dir)
    except (FileNotFoundError, ValueError) as exc:
        logger.error(f"{exc}")
        return 1

    demonstrate_minting_flows(blockchain, blockchain.accounts[0])
    show_compliance_requirements()
    await blockchain.disconnect()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
