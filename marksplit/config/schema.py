"""Configuration schema using Pydantic."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChunkingConfig(BaseModel):
    """Size limits for the splitting pipeline."""

    ceiling: int = Field(default=2000, gt=0)
    code_ceiling: int = Field(default=1900, gt=0)  # headroom for re-inserted fences


class DeliveryConfig(BaseModel):
    """Sequential delivery behaviour."""

    send_delay: float = Field(default=0.1, ge=0.0)  # seconds between messages
    max_retries: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0.0)


class DiscordConfig(BaseModel):
    """Discord REST transport configuration."""

    token: str = ""
    api_base: str = "https://discord.com/api/v10"
    suppress_embeds: bool = True
    embed_color: int = 0x0099FF
    timeout: float = 15.0


class Config(BaseSettings):
    """Root configuration for marksplit."""

    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    discord: DiscordConfig = Field(default_factory=DiscordConfig)

    model_config = SettingsConfigDict(
        env_prefix="MARKSPLIT_",
        env_nested_delimiter="__",
        extra="ignore",
    )
