from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BITLY_", extra="ignore")

    api_url: str = Field(default="https://api-ssl.bitly.com/v4")
    access_token: str | None = Field(default=None)
    timeout_seconds: float = Field(default=10.0, gt=0)
    default_group_guid: str | None = Field(default=None)
