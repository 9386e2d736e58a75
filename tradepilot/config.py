from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    TZ: str = "UTC"
    DATABASE_URL: str = "sqlite:///data.db"
    HTTP_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    COINGECKO_API: str = "https://api.coingecko.com/api/v3"
    COINGECKO_USER_AGENT: str = Field(default="TradePilot/1.0")
    CALLMEBOT_URL: str = "https://api.callmebot.com/whatsapp.php"
    CALLMEBOT_USER_AGENT: str = Field(default="TradePilot-Notifications/1.0")
    INVESTMENT_DAYS: int = Field(default=30, ge=1)
    LOCAL_PROFIT_HOUR: int = Field(default=1, ge=0, le=23)
    LOCAL_PASS_MINUTES: int = Field(default=15, ge=1)
    CATCHUP_PASS_HOURS: int = Field(default=4, ge=1)
    STARTUP_DELAY_SEC: int = Field(default=5, ge=0)
    ARBITRAGE_SEED: int | None = None

    model_config = SettingsConfigDict(env_file=".env")

settings = Settings()
