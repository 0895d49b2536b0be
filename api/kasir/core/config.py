from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite:///./kasir.db"
    lock_timeout_ms: int = 5000
    sql_echo: bool = False
    log_level: str = "INFO"
    create_schema: bool = True

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="KASIR_")


settings = Settings()
