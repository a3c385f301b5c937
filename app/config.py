"""
Application configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080
    API_TITLE: str = "wasmrepro API"
    API_VERSION: str = "0.1.0"

    # Packaged builds live under <ARTIFACTS_PATH>/<arch>/<timestamp>/
    ARTIFACTS_PATH: str = "artifacts"

    # Run wasm2wat when a compared build lacks lib.wat
    COMPARE_DISASSEMBLE: bool = False


settings = Settings()
