#!/usr/bin/env python3
"""Deploy the Propius contracts and record the deployment manifest.

Deploys PropertyRegistry and FractionalProperty on the configured chain
backend, hands the operational roles to the deployer, and writes
deployments/deployment-<chainId>-<ms>.json plus deployments/latest.json.

Usage:
    BLOCKCHAIN_BACKEND=ethereum python scripts/deploy.py
    python scripts/deploy.py --fee-recipient 0x... --deployments-dir deployments
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.blockchain import blockchain
from core.deployment import deploy_platform, save_manifest

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("propius.scripts.deploy")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy the Propius contracts")
    parser.add_argument("--fee-recipient", help="Platform fee recipient (default: PLATFORM_FEE_RECIPIENT or deployer)")
    parser.add_argument("--base-uri", help="Metadata base URI for FractionalProperty")
    parser.add_argument("--deployments-dir", help="Where to write the manifest (default: DEPLOYMENTS_DIR)")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    await blockchain.connect()

    if not blockchain.accounts:
        logger.error("No signing account available, set DEPLOYER_PRIVATE_KEY")
        return 1
    deployer = blockchain.accounts[0]
    balance = blockchain.get_balance(deployer)
    logger.info(f"Deployer {deployer} balance: {balance / 10 ** 18:.4f} ETH")
    logger.info(f"Network: {blockchain.name} (chain id {blockchain.chain_id})")

    manifest = deploy_platform(blockchain, deployer, args.fee_recipient, args.base_uri)
    path = save_manifest(manifest, args.deployments_dir)

    logger.info("-" * 40)
    logger.info("Deployment summary")
    for name, address in manifest["contracts"].items():
        logger.info(f"  {name}: {address}")
    logger.info(f"  Fee recipient: {manifest['configuration']['feeRecipient']}")
    logger.info(f"  USDC address:  {manifest['configuration']['usdcAddress']}")
    logger.info(f"Manifest: {path}")

    await blockchain.disconnect()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
