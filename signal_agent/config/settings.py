"""
Centralized configuration management for the Token Signal Agent.

Configuration is layered the same way throughout the project:

Tier 1: Code Defaults (settings.py)
- Default values for tracked tokens, schedule, storage caps and pricing
- Version controlled, visible in PRs

Tier 2: Environment Variables (.env)
- Secrets and credentials (LLM API keys, payout address)
- Can override any Tier 1 setting for local development

Example Override Pattern:
- Default in code: AGENT INTERVAL_MINUTES = 30
- Override in .env: AGENT_INTERVAL_MINUTES=15

This module uses pydantic-settings to manage configuration from environment
variables and .env files, providing a structured and validated way to
access settings throughout the application.
"""
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """
    Configuration for the Language Model client used for market opinions.
    """
    model_config = SettingsConfigDict(env_prefix='LLM_')

    SITE_URL: str = "https://my-site.com"
    APP_NAME: str = "Token Signal Agent"
    CACHE_TTL_SECONDS: int = 600  # opinions go stale quickly, keep the TTL short
    TEMPERATURE: float = 0.2

    # Provider-specific configuration
    PROVIDER: str = "mistral"  # mistral, openrouter, openai_direct

    MISTRAL_BASE_URL: str = "https://api.mistral.ai/v1"
    MISTRAL_DEFAULT_MODEL: str = "mistral-tiny"

    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_DEFAULT_MODEL: str = "mistralai/mistral-7b-instruct"

    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_DEFAULT_MODEL: str = "gpt-4o-mini"


class AgentSettings(BaseSettings):
    """
    Configuration for the scheduled analysis agent.
    """
    model_config = SettingsConfigDict(env_prefix='AGENT_')

    TOKENS: List[str] = ["ETH", "WETH", "CBETH"]
    INTERVAL_MINUTES: int = 30
    TOKEN_DELAY_SECONDS: float = 3.0  # pause between tokens for free-tier upstream APIs
    AI_TIMEOUT_SECONDS: float = 60.0


class StorageSettings(BaseSettings):
    """
    Configuration for the JSON file storage.
    """
    model_config = SettingsConfigDict(env_prefix='STORAGE_')

    DATA_DIR: str = "data"
    MAX_PRICE_ENTRIES: int = 48  # 24 hours at 30 minute intervals
    MAX_SIGNAL_ENTRIES: int = 100
    MAX_EARNING_ENTRIES: int = 200
    MAX_RUN_ENTRIES: int = 50


class DataSettings(BaseSettings):
    """
    Configuration for market data providers.
    """
    model_config = SettingsConfigDict(env_prefix='DATA_')

    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    COINGECKO_API_KEY: Optional[str] = None
    COINGECKO_RATE_LIMIT: int = 10  # requests per period on the public tier
    COINGECKO_RATE_PERIOD: float = 60.0
    QUOTE_CACHE_TTL_SECONDS: int = 30
    REQUEST_TIMEOUT_SECONDS: float = 15.0
    USER_AGENT: str = "token-signal-agent/1.0"

    # Base JSON-RPC, picked by PAYMENTS_NETWORK ("base" is mainnet)
    BASE_MAINNET_RPC_URL: str = "https://mainnet.base.org"
    BASE_SEPOLIA_RPC_URL: str = "https://sepolia.base.org"
    USDC_MAINNET_ADDRESS: str = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
    USDC_SEPOLIA_ADDRESS: str = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
    LOW_BALANCE_ETH: float = 0.01  # wallet health warning threshold


class PaymentSettings(BaseSettings):
    """
    Configuration for the x402 pay-per-call gate on the paid endpoints.

    Route prices are expressed in USD and converted to USDC atomic units
    (6 decimals) when payment requirements are built.
    """
    model_config = SettingsConfigDict(env_prefix='PAYMENTS_')

    ENABLED: bool = True
    PAY_TO: str = ""
    NETWORK: str = "base-sepolia"
    FACILITATOR_URL: str = "https://facilitator.payai.network"
    USDC_ADDRESS: str = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"  # USDC on Base Sepolia
    MAX_TIMEOUT_SECONDS: int = 60
    VERIFY_TIMEOUT_SECONDS: float = 15.0

    ROUTE_PRICES_USD: Dict[str, float] = {
        "signal": 0.05,
        "report": 0.10,
        "watchlist": 0.03,
    }


class APISettings(BaseSettings):
    """
    Configuration for the FastAPI application.
    """
    model_config = SettingsConfigDict(env_prefix='API_')

    CORS_ALLOWED_ORIGINS: List[str] = ["*"]
    HOST: str = "0.0.0.0"
    PORT: int = 4020
    PUBLIC_URL: Optional[str] = None  # external base URL advertised in payment requirements


class Settings(BaseSettings):
    """
    Main settings object that aggregates all other settings.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    llm: LLMSettings = LLMSettings()
    agent: AgentSettings = AgentSettings()
    storage: StorageSettings = StorageSettings()
    data: DataSettings = DataSettings()
    payments: PaymentSettings = PaymentSettings()
    api: APISettings = APISettings()

    # Direct environment variable access
    MISTRAL_API_KEY: Optional[str] = None
    OPENROUTER_API_KEY: Optional[str] = None
    LOG_LEVEL: str = "INFO"


settings = Settings()
