"""
core/blockchain.py — Blockchain Backend
=========================================
Abstraction layer over 2 backends:
  1. "simulation" — in-memory chain running the PropertyRegistry and
                    FractionalProperty protocols in Python (start here)
  2. "ethereum"   — Hardhat node, Base Sepolia or any JSON-RPC endpoint via web3.py,
                    talking to the deployed Solidity contracts

Set BLOCKCHAIN_BACKEND in .env to switch.
Both backends expose the same surface:

    await blockchain.connect()
    blockchain.accounts                         → signer addresses
    blockchain.deploy_contracts(deployer, fee_recipient, base_uri)
    blockchain.attach(addresses)                → bind to an existing deployment
    blockchain.registry / blockchain.fractional → contract clients

All scripts call: from core.blockchain import blockchain
"""

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from web3 import Web3
from web3.exceptions import ContractLogicError
from web3.logs import DISCARD

from config import settings
from core.contracts import (
    ContractEvent, ContractRevert, TxReceipt, ZERO_ADDRESS,
    normalize_address, role_id,
)
from core.fractional import SimulatedFractionalProperty, FractionalAsset
from core.registry import SimulatedPropertyRegistry, PropertyRecord

logger = logging.getLogger("propius.blockchain")

REGISTRY_CONTRACT = "PropertyRegistry"
FRACTIONAL_CONTRACT = "FractionalProperty"
SIMULATED_ACCOUNT_BALANCE_WEI = 10_000 * 10 ** 18


def simulated_address(label: str) -> str:
    """Deterministic checksummed address derived from a label."""
    return Web3.to_checksum_address(Web3.keccak(text=f"propius:{label}")[-20:])


# ── Simulated Blockchain (default, works with zero setup) ─────────────────────
class SimulatedChain:
    """
    In-memory blockchain simulation.
    Every contract call is "mined" into its own block. Data resets when the
    process exits; the deployment manifest records addresses only.
    """

    name = "simulation"
    chain_id = 31337

    def __init__(self, account_count: int = 10):
        self.blocks = []       # list of block dicts
        self.block_number = 0
        self.accounts = [simulated_address(f"account-{i}") for i in range(account_count)]
        self.registry: Optional[SimulatedPropertyRegistry] = None
        self.fractional: Optional[SimulatedFractionalProperty] = None
        self._deployments: Dict[str, object] = {}

    async def connect(self):
        logger.info("SimulatedChain: ready (in-memory mode)")
        if not self.blocks:
            self._mine_block("GENESIS", {"message": "Propius genesis block"})

    async def disconnect(self):
        logger.info("SimulatedChain: disconnected")

    async def ping(self) -> str:
        return f"ok: simulated chain, {len(self.blocks)} blocks"

    def _mine_block(self, block_type: str, data: dict) -> dict:
        prev_hash = self.blocks[-1]["hash"] if self.blocks else "0" * 64
        timestamp = datetime.utcnow().isoformat()
        payload = json.dumps({
            "block_number": self.block_number,
            "block_type": block_type,
            "data": data,
            "prev_hash": prev_hash,
            "timestamp": timestamp,
        }, sort_keys=True, default=str)
        block_hash = hashlib.sha3_256(payload.encode()).hexdigest()
        block = {
            "block_number": self.block_number,
            "block_type": block_type,
            "data": data,
            "prev_hash": prev_hash,
            "hash": block_hash,
            "timestamp": timestamp,
        }
        self.blocks.append(block)
        self.block_number += 1
        return block

    def _mine_transaction(self, sender: str, contract: str, method: str, events: List[ContractEvent]) -> TxReceipt:
        block = self._mine_block("TX", {
            "from": sender,
            "to": contract,
            "method": method,
            "events": [{"name": e.name, "args": e.args} for e in events],
        })
        logger.debug(f"Block #{block['block_number']} {method} hash={block['hash'][:16]}...")
        return TxReceipt(tx_hash="0x" + block["hash"], block_number=block["block_number"], events=events)

    def get_balance(self, address: str) -> int:
        # Simulated signers are pre-funded like Hardhat's default accounts
        return SIMULATED_ACCOUNT_BALANCE_WEI if normalize_address(address) in self.accounts else 0

    def get_block(self, block_hash: str) -> Optional[dict]:
        block_hash = block_hash[2:] if block_hash.startswith("0x") else block_hash
        for block in self.blocks:
            if block["hash"] == block_hash:
                return block
        return None

    def deploy_contracts(self, deployer: str, fee_recipient: str, base_uri: str) -> Dict[str, str]:
        registry_address = simulated_address(f"{REGISTRY_CONTRACT}-{len(self._deployments)}")
        self.registry = SimulatedPropertyRegistry(registry_address, deployer, fee_recipient, self._mine_transaction)
        self._deployments[registry_address] = self.registry
        self._mine_block("DEPLOY", {"contract": REGISTRY_CONTRACT, "address": registry_address})

        fractional_address = simulated_address(f"{FRACTIONAL_CONTRACT}-{len(self._deployments)}")
        self.fractional = SimulatedFractionalProperty(
            fractional_address, deployer, fee_recipient, base_uri, self._mine_transaction,
        )
        self._deployments[fractional_address] = self.fractional
        self._mine_block("DEPLOY", {"contract": FRACTIONAL_CONTRACT, "address": fractional_address})

        return {REGISTRY_CONTRACT: registry_address, FRACTIONAL_CONTRACT: fractional_address}

    def attach(self, addresses: Dict[str, str]):
        try:
            self.registry = self._deployments[normalize_address(addresses[REGISTRY_CONTRACT])]
            self.fractional = self._deployments[normalize_address(addresses[FRACTIONAL_CONTRACT])]
        except KeyError as exc:
            raise LookupError(
                f"Simulated contract {exc} is not deployed in this process, "
                "the simulation keeps no state between runs"
            ) from exc


# ── Ethereum Backend ──────────────────────────────────────────────────────────
def _load_artifact(name: str) -> dict:
    """Hardhat artifact (abi + bytecode) for a compiled contract."""
    path = Path(settings.ARTIFACTS_DIR) / "contracts" / f"{name}.sol" / f"{name}.json"
    if not path.exists():
        raise FileNotFoundError(f"Artifact not found: {path}, compile the contracts first")
    return json.loads(path.read_text())


def _revert_reason(exc: Exception) -> str:
    message = str(exc.args[0]) if exc.args else str(exc)
    return message.split("execution reverted:", 1)[-1].strip() or message


class EthereumContract:
    """
    Thin web3 wrapper: view calls, signed transactions, decoded events.
    Transactions are signed locally with the chain's private key.
    """

    def __init__(self, chain: "EthereumChain", name: str, address: str, abi: list):
        self.chain = chain
        self.name = name
        self.address = Web3.to_checksum_address(address)
        self.contract = chain.w3.eth.contract(address=self.address, abi=abi)

    def _call(self, fn_name: str, *args):
        try:
            return self.contract.functions[fn_name](*args).call()
        except ContractLogicError as exc:
            raise ContractRevert(_revert_reason(exc)) from exc

    def _transact(self, sender: str, fn_name: str, *args) -> TxReceipt:
        account = self.chain.signer(sender)
        w3 = self.chain.w3
        try:
            tx = self.contract.functions[fn_name](*args).build_transaction({
                "from": account.address,
                "nonce": w3.eth.get_transaction_count(account.address),
                "chainId": settings.CHAIN_ID,
            })
        except ContractLogicError as exc:
            raise ContractRevert(_revert_reason(exc)) from exc

        signed = account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt.status != 1:
            raise ContractRevert(f"{self.name}.{fn_name} reverted in tx {tx_hash.hex()}")

        events = []
        for item in self.contract.abi:
            if item.get("type") != "event":
                continue
            for log in self.contract.events[item["name"]]().process_receipt(receipt, errors=DISCARD):
                events.append(ContractEvent(log["event"], dict(log["args"])))
        logger.info(f"{self.name}.{fn_name} mined in block #{receipt.blockNumber} (gas {receipt.gasUsed})")
        return TxReceipt(tx_hash=Web3.to_hex(receipt.transactionHash), block_number=receipt.blockNumber, events=events)

    def _struct(self, fn_name: str, value) -> dict:
        """Map a returned Solidity struct (tuple) onto its ABI component names."""
        fn_abi = next(i for i in self.contract.abi if i.get("type") == "function" and i["name"] == fn_name)
        components = fn_abi["outputs"][0].get("components") or []
        return {c["name"]: v for c, v in zip(components, value)}

    def _role(self, role: str) -> bytes:
        return Web3.to_bytes(hexstr=role_id(role))

    def has_role(self, role: str, account: str) -> bool:
        return self._call("hasRole", self._role(role), Web3.to_checksum_address(account))

    def grant_role(self, sender: str, role: str, account: str) -> TxReceipt:
        return self._transact(sender, "grantRole", self._role(role), Web3.to_checksum_address(account))

    def revoke_role(self, sender: str, role: str, account: str) -> TxReceipt:
        return self._transact(sender, "revokeRole", self._role(role), Web3.to_checksum_address(account))

    def pause(self, sender: str) -> TxReceipt:
        return self._transact(sender, "pause")

    def unpause(self, sender: str) -> TxReceipt:
        return self._transact(sender, "unpause")

    @property
    def paused(self) -> bool:
        return self._call("paused")


class EthereumPropertyRegistry(EthereumContract):

    def add_verified_notary(self, sender: str, notary: str) -> TxReceipt:
        return self._transact(sender, "addVerifiedNotary", Web3.to_checksum_address(notary))

    def remove_verified_notary(self, sender: str, notary: str) -> TxReceipt:
        return self._transact(sender, "removeVerifiedNotary", Web3.to_checksum_address(notary))

    def verified_notaries(self, account: str) -> bool:
        return self._call("verifiedNotaries", Web3.to_checksum_address(account))

    def update_fees(self, sender: str, tokenization_fee_usd: int, transfer_fee_percent: int) -> TxReceipt:
        return self._transact(sender, "updateFees", tokenization_fee_usd, transfer_fee_percent)

    @property
    def tokenization_fee_usd(self) -> int:
        return self._call("tokenizationFeeUSD")

    @property
    def transfer_fee_percent(self) -> int:
        return self._call("transferFeePercent")

    @property
    def fee_recipient(self) -> str:
        return self._call("feeRecipient")

    def tokenize_property(self, sender, registry_number, cadastral_reference, municipality, zone,
                          area_sq_meters, construction_sq_meters, property_type, owner,
                          document_hash, valuation_usd, valuation_gtq) -> TxReceipt:
        return self._transact(
            sender, "tokenizeProperty",
            registry_number, cadastral_reference, municipality, zone,
            area_sq_meters, construction_sq_meters, property_type,
            Web3.to_checksum_address(owner), document_hash, valuation_usd, valuation_gtq,
        )

    def request_transfer(self, sender: str, token_id: int, to: str, document_hash: str) -> TxReceipt:
        return self._transact(sender, "requestTransfer", token_id, Web3.to_checksum_address(to), document_hash)

    def approve_transfer_as_notary(self, sender: str, token_id: int) -> TxReceipt:
        return self._transact(sender, "approveTransferAsNotary", token_id)

    def approve_transfer_as_registry(self, sender: str, token_id: int) -> TxReceipt:
        return self._transact(sender, "approveTransferAsRegistry", token_id)

    def cancel_transfer(self, sender: str, token_id: int) -> TxReceipt:
        return self._transact(sender, "cancelTransfer", token_id)

    def update_valuation(self, sender: str, token_id: int, valuation_usd: int, valuation_gtq: int) -> TxReceipt:
        return self._transact(sender, "updateValuation", token_id, valuation_usd, valuation_gtq)

    def update_encumbrance(self, sender: str, token_id: int, has_encumbrance: bool) -> TxReceipt:
        return self._transact(sender, "updateEncumbrance", token_id, has_encumbrance)

    def get_property(self, token_id: int) -> PropertyRecord:
        raw = self._struct("getProperty", self._call("getProperty", token_id))
        pending = raw.get("pendingTransferTo")
        return PropertyRecord(
            token_id=token_id,
            registry_number=raw.get("registryNumber", ""),
            cadastral_reference=raw.get("cadastralReference", ""),
            municipality=raw.get("municipality", ""),
            zone=raw.get("zone", ""),
            area_sq_meters=raw.get("areaSqMeters", 0),
            construction_sq_meters=raw.get("constructionSqMeters", 0),
            property_type=raw.get("propertyType", 0),
            current_owner=raw.get("currentOwner", ZERO_ADDRESS),
            document_hash=raw.get("documentIPFSHash", ""),
            valuation_usd=raw.get("valuationUSD", 0),
            valuation_gtq=raw.get("valuationGTQ", 0),
            is_verified=raw.get("isVerified", False),
            has_encumbrance=raw.get("hasEncumbrance", False),
            pending_transfer_to=None if pending in (None, ZERO_ADDRESS) else pending,
        )

    def owner_of(self, token_id: int) -> str:
        return self._call("ownerOf", token_id)

    def balance_of(self, owner: str) -> int:
        return self._call("balanceOf", Web3.to_checksum_address(owner))

    def get_owner_properties(self, owner: str) -> List[int]:
        return list(self._call("getOwnerProperties", Web3.to_checksum_address(owner)))

    def registry_number_to_token_id(self, registry_number: str) -> int:
        return self._call("registryNumberToTokenId", registry_number)


class EthereumFractionalProperty(EthereumContract):

    def fractionalize_property(self, sender, property_token_id, property_registry, property_identifier,
                               total_shares, share_price, minimum_investment, payment_token,
                               beneficiary, revenue_generating, metadata_uri) -> TxReceipt:
        return self._transact(
            sender, "fractionalizeProperty",
            property_token_id, Web3.to_checksum_address(property_registry), property_identifier,
            total_shares, share_price, minimum_investment, Web3.to_checksum_address(payment_token),
            Web3.to_checksum_address(beneficiary), revenue_generating, metadata_uri,
        )

    def purchase_shares(self, sender: str, asset_id: int, shares: int) -> TxReceipt:
        return self._transact(sender, "purchaseShares", asset_id, shares)

    def distribute_revenue(self, sender: str, asset_id: int, amount: int) -> TxReceipt:
        return self._transact(sender, "distributeRevenue", asset_id, amount)

    def get_asset(self, asset_id: int) -> FractionalAsset:
        raw = self._struct("getAsset", self._call("getAsset", asset_id))
        return FractionalAsset(
            asset_id=asset_id,
            property_token_id=raw.get("propertyTokenId", 0),
            property_registry=raw.get("propertyRegistry", ZERO_ADDRESS),
            property_identifier=raw.get("propertyIdentifier", ""),
            total_shares=raw.get("totalShares", 0),
            share_price=raw.get("sharePrice", 0),
            minimum_investment=raw.get("minimumInvestment", 0),
            payment_token=raw.get("paymentToken", ZERO_ADDRESS),
            beneficiary=raw.get("beneficiary", ZERO_ADDRESS),
            revenue_generating=raw.get("revenueGenerating", False),
            metadata_uri=raw.get("metadataURI", ""),
            shares_sold=raw.get("sharesSold", 0),
            is_active=raw.get("isActive", True),
        )

    def shares_of(self, asset_id: int, holder: str) -> int:
        return self._call("balanceOf", Web3.to_checksum_address(holder), asset_id)

    def funding_progress(self, asset_id: int) -> float:
        asset = self.get_asset(asset_id)
        if not asset.total_shares:
            return 0.0
        return round(asset.shares_sold / asset.total_shares * 100, 2)


class EthereumChain:
    """
    Connects to a real Ethereum node (local Hardhat or a public testnet).
    Requires: WEB3_PROVIDER_URL and DEPLOYER_PRIVATE_KEY in .env
    """

    name = "ethereum"

    def __init__(self):
        self.w3 = None
        self._signers = {}
        self.registry: Optional[EthereumPropertyRegistry] = None
        self.fractional: Optional[EthereumFractionalProperty] = None

    @property
    def chain_id(self) -> int:
        return self.w3.eth.chain_id if self.w3 else settings.CHAIN_ID

    @property
    def accounts(self) -> List[str]:
        return list(self._signers)

    async def connect(self):
        self.w3 = Web3(Web3.HTTPProvider(settings.WEB3_PROVIDER_URL))
        if not self.w3.is_connected():
            raise ConnectionError(f"Cannot connect to {settings.WEB3_PROVIDER_URL}")
        if settings.DEPLOYER_PRIVATE_KEY:
            account = self.w3.eth.account.from_key(settings.DEPLOYER_PRIVATE_KEY)
            self._signers[account.address] = account
        else:
            logger.warning("DEPLOYER_PRIVATE_KEY not set, read-only connection")
        logger.info(f"Ethereum connected at block #{self.w3.eth.block_number}")

    async def disconnect(self):
        self.w3 = None

    async def ping(self) -> str:
        if self.w3 and self.w3.is_connected():
            return f"ok: Ethereum block #{self.w3.eth.block_number}"
        return "disconnected"

    def signer(self, sender: str):
        try:
            return self._signers[Web3.to_checksum_address(sender)]
        except KeyError:
            raise ValueError(f"No private key loaded for {sender}") from None

    def get_balance(self, address: str) -> int:
        return self.w3.eth.get_balance(Web3.to_checksum_address(address))

    def _deploy(self, deployer: str, name: str, *constructor_args) -> str:
        artifact = _load_artifact(name)
        account = self.signer(deployer)
        factory = self.w3.eth.contract(abi=artifact["abi"], bytecode=artifact["bytecode"])
        tx = factory.constructor(*constructor_args).build_transaction({
            "from": account.address,
            "nonce": self.w3.eth.get_transaction_count(account.address),
            "chainId": settings.CHAIN_ID,
        })
        signed = account.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)
        logger.info(f"{name} deployed to {receipt.contractAddress}")
        return receipt.contractAddress

    def deploy_contracts(self, deployer: str, fee_recipient: str, base_uri: str) -> Dict[str, str]:
        fee_recipient = Web3.to_checksum_address(fee_recipient)
        addresses = {
            REGISTRY_CONTRACT: self._deploy(deployer, REGISTRY_CONTRACT, fee_recipient),
            FRACTIONAL_CONTRACT: self._deploy(deployer, FRACTIONAL_CONTRACT, fee_recipient, base_uri),
        }
        self.attach(addresses)
        return addresses

    def attach(self, addresses: Dict[str, str]):
        self.registry = EthereumPropertyRegistry(
            self, REGISTRY_CONTRACT, addresses[REGISTRY_CONTRACT], _load_artifact(REGISTRY_CONTRACT)["abi"],
        )
        self.fractional = EthereumFractionalProperty(
            self, FRACTIONAL_CONTRACT, addresses[FRACTIONAL_CONTRACT], _load_artifact(FRACTIONAL_CONTRACT)["abi"],
        )


# ── Factory: picks the right backend from .env ───────────────────────────────
def create_blockchain(backend: str = None):
    backend = (backend or settings.BLOCKCHAIN_BACKEND).lower()
    if backend == "ethereum":
        logger.info("Using Ethereum blockchain backend")
        return EthereumChain()
    logger.info("Using Simulated blockchain backend (development mode)")
    return SimulatedChain()


# Singleton, import this everywhere:  from core.blockchain import blockchain
blockchain = create_blockchain()
