from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./entity_tools.db"
    FIELD_PREFIX: str = "field_"
    LOG_CHANNEL: str = "entity_tools"
    LOG_LEVEL: str = "INFO"
    DEFAULT_WIDGET_WEIGHT: int = 100

settings = Settings()
