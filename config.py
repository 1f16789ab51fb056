"""
config.py — Propius Global Configuration
=========================================
Every setting can be overridden from the environment or a local .env file.
Backends default to the in-process simulation so the API, scripts and tests
run without a node or an IPFS daemon.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List


class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    APP_NAME: str = "Propius"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    PLATFORM_NAME: str = "Propius"
    COUNTRY: str = "Guatemala"

    # API Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "https://propius.gt",
    ]

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./propius.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    SEED_CATALOG: bool = True

    # Blockchain
    BLOCKCHAIN_BACKEND: str = "simulation"
    WEB3_PROVIDER_URL: str = "http://127.0.0.1:8545"
    CHAIN_ID: int = 31337
    DEPLOYER_PRIVATE_KEY: str = ""
    ARTIFACTS_DIR: str = "artifacts"
    DEPLOYMENTS_DIR: str = "deployments"
    PLATFORM_FEE_RECIPIENT: str = ""
    USDC_ADDRESS: str = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"   # USDC on Base Sepolia
    METADATA_BASE_URI: str = "https://api.propius.gt/metadata/"
    PROPERTY_EXTERNAL_URL: str = "https://propius.gt/property/"

    # Document storage
    STORAGE_BACKEND: str = "simulation"
    IPFS_HOST: str = "127.0.0.1"
    IPFS_PORT: int = 5001
    IPFS_TIMEOUT: int = 30
    IPFS_GATEWAY_URL: str = "https://ipfs.io/ipfs/"
    STORAGE_PRICE_PER_BYTE_WEI: int = 1_000
    STORAGE_INITIAL_BALANCE_WEI: int = 10_000_000_000_000_000    # 0.01 ETH
    UPLOAD_BUNDLE_DELAY_SECONDS: float = 1.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "propius.log"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
