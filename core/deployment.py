"""
core/deployment.py — Contract Deployment & Manifest
=====================================================
Deploys the platform contracts on the active chain backend, hands the
operational roles to the deployer, and records addresses in
deployments/latest.json (plus a timestamped copy).

The manifest is the only thing the scripts and the API share with the chain.
"""

import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from config import settings
from core.blockchain import REGISTRY_CONTRACT, FRACTIONAL_CONTRACT
from core.contracts import NOTARY_ROLE, REGISTRY_ROLE, PROPERTY_MANAGER_ROLE, DISTRIBUTOR_ROLE

logger = logging.getLogger("propius.deployment")

LATEST_MANIFEST = "latest.json"


def configure_roles(chain, deployer: str):
    """
    Give the deployer every operational role. Fine for testnets;
    production notaries and registrars get their own accounts.
    """
    chain.fractional.grant_role(deployer, PROPERTY_MANAGER_ROLE, deployer)
    logger.info("Granted PROPERTY_MANAGER_ROLE to deployer")
    chain.fractional.grant_role(deployer, DISTRIBUTOR_ROLE, deployer)
    logger.info("Granted DISTRIBUTOR_ROLE to deployer")

    chain.registry.grant_role(deployer, NOTARY_ROLE, deployer)
    chain.registry.add_verified_notary(deployer, deployer)
    logger.info("Added deployer as verified notary")
    chain.registry.grant_role(deployer, REGISTRY_ROLE, deployer)
    logger.info("Granted REGISTRY_ROLE to deployer")


def deploy_platform(chain, deployer: str, fee_recipient: Optional[str] = None,
                    base_uri: Optional[str] = None) -> dict:
    """Deploy both contracts, configure roles, return the manifest dict."""
    fee_recipient = fee_recipient or settings.PLATFORM_FEE_RECIPIENT or deployer
    base_uri = base_uri or settings.METADATA_BASE_URI

    logger.info(f"Deploying contracts with account {deployer} on {chain.name}")
    contracts = chain.deploy_contracts(deployer, fee_recipient, base_uri)
    for name, address in contracts.items():
        logger.info(f"{name} deployed to: {address}")

    configure_roles(chain, deployer)

    return {
        "network": chain.name,
        "chainId": str(chain.chain_id),
        "deployer": deployer,
        "timestamp": datetime.utcnow().isoformat() + "Z",
        "contracts": contracts,
        "configuration": {
            "feeRecipient": fee_recipient,
            "usdcAddress": settings.USDC_ADDRESS,
            "metadataBaseURI": base_uri,
        },
    }


def save_manifest(manifest: dict, deployments_dir=None) -> Path:
    """Write deployment-<chainId>-<ms>.json and latest.json. Returns the timestamped path."""
    directory = Path(deployments_dir or settings.DEPLOYMENTS_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    millis = int(time.time() * 1000)
    path = directory / f"deployment-{manifest['chainId']}-{millis}.json"
    payload = json.dumps(manifest, indent=2)
    path.write_text(payload)
    (directory / LATEST_MANIFEST).write_text(payload)
    logger.info(f"Deployment info saved to: {path}")
    return path


def attach_platform(chain, deployments_dir=None) -> dict:
    """
    Bind the chain's contract clients to the recorded deployment.
    The simulation keeps no state between processes, so there it deploys afresh.
    """
    if chain.name == "simulation":
        logger.info("Simulation backend: deploying a fresh platform in-process")
        return deploy_platform(chain, chain.accounts[0])
    manifest = load_manifest(deployments_dir)
    chain.attach(manifest["contracts"])
    logger.info(f"Using deployment from {manifest['timestamp']} on {manifest['network']}")
    return manifest


def load_manifest(deployments_dir=None) -> dict:
    path = Path(deployments_dir or settings.DEPLOYMENTS_DIR) / LATEST_MANIFEST
    if not path.exists():
        raise FileNotFoundError(f"No deployment found at {path}. Run scripts/deploy.py first.")
    manifest = json.loads(path.read_text())
    missing = {REGISTRY_CONTRACT, FRACTIONAL_CONTRACT} - set(manifest.get("contracts", {}))
    if missing:
        raise ValueError(f"Deployment manifest is missing contracts: {sorted(missing)}")
    return manifest
