"""
paychat Configuration Management
Uses pydantic-settings for type-safe environment variable loading
"""

from pathlib import Path
from typing import Literal
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChatClientConfig(BaseSettings):
    """Configuration for the pay-capable chat client"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Completions endpoint
    completions_url: str = Field(
        default="https://402.jetson.computer/v1/chat/completions",
        description="OpenAI-compatible streaming completions endpoint"
    )
    model: str = Field(default="llama3.2", description="Model name sent with each request")
    request_timeout: float = Field(default=60.0, description="HTTP timeout in seconds")

    # Payment Configuration
    max_payment_amount: int = Field(
        default=100_000,
        ge=0,
        description="Per-request payment ceiling in token base units (100000 = 0.1 USDC)"
    )

    # Wallet Configuration
    wallet_private_key: str = Field(default="", description="Private key used by the local signer")

    # Chat history
    chat_store_dir: Path = Field(
        default=Path.home() / ".paychat" / "chats",
        description="Directory holding one JSON file per saved chat"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="text")

    @field_validator("wallet_private_key")
    @classmethod
    def validate_private_key(cls, v):
        if v and not v.startswith("0x"):
            return f"0x{v}"
        return v


# Singleton instance
_client_config: ChatClientConfig | None = None


def get_client_config() -> ChatClientConfig:
    """Get or create chat client configuration singleton"""
    global _client_config
    if _client_config is None:
        _client_config = ChatClientConfig()
    return _client_config
