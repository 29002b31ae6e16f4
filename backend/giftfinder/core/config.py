from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central settings object.
    The host provides env vars; locally you can use backend/.env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # AliExpress affiliate credentials
    AE_APP_KEY: str = ""
    AE_APP_SECRET: str = ""
    AE_TRACKING_ID: str = ""

    # AliExpress gateway
    AE_GATEWAY_URL: str = "https://api-sg.aliexpress.com/sync"
    AE_TIMEOUT_SECONDS: float = 15.0
    AE_TARGET_CURRENCY: str = "USD"

    # Paging across upstream result pages for one request
    RECOMMENDATIONS_MAX_PAGES: int = 2
    RECOMMENDATIONS_TARGET_COUNT: int = 12

    LOG_LEVEL: str = "INFO"

    # Versioning
    APP_VERSION: str = "0.1.0"
    BUILD_ID: str = "dev"

    @property
    def credentials_ok(self) -> bool:
        return bool(self.AE_APP_KEY and self.AE_APP_SECRET and self.AE_TRACKING_ID)


# ✅ MUST EXIST: other modules import this
settings = Settings()
