"""Configuration management using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class InventoryConfig(BaseModel):
    """Stock reconciliation settings."""
    variant_limit: int = 200
    strict_stock: bool = True
    default_warehouse_id: str = "MAIN_WAREHOUSE"
    default_warehouse_name: str = "Main Warehouse"


class CatalogsConfig(BaseModel):
    """Starter vocabularies used when nothing has been saved yet."""
    categories: List[str] = ["General", "Clothing", "Electronics", "Home"]
    sizes: List[str] = ["XS", "S", "M", "L", "XL", "XXL"]
    colors: List[str] = ["Black", "White", "Red", "Blue"]
    others: List[str] = ["Standard", "Premium", "Pack"]


class StorageConfig(BaseModel):
    """Persistence provider settings."""
    max_retries: int = 3
    retry_delay: float = 0.1
    indent: Optional[int] = 2


class LoggingFilesConfig(BaseModel):
    """Log file paths."""
    store: str = "logs/store.log"
    storage: str = "logs/storage.log"
    api: str = "logs/api.log"
    error: str = "logs/error.log"
    ledger: str = "logs/ledger.log"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_bytes: int = 10485760  # 10MB
    backup_count: int = 5
    files: LoggingFilesConfig = LoggingFilesConfig()


class APIConfig(BaseModel):
    """HTTP server settings."""
    title: str = "Stock Ledger API"
    host: str = "127.0.0.1"


class YAMLConfig(BaseModel):
    """Configuration loaded from YAML file."""
    inventory: InventoryConfig = InventoryConfig()
    catalogs: CatalogsConfig = CatalogsConfig()
    storage: StorageConfig = StorageConfig()
    logging: LoggingConfig = LoggingConfig()
    api: APIConfig = APIConfig()


class Settings(BaseSettings):
    """Application settings from environment variables."""

    environment: str = Field(default="development", description="Environment (development/production)")
    log_level: Optional[str] = Field(default=None, description="Override log level")
    inventory_data_dir: str = Field(default="data", description="Directory holding the JSON store")
    strict_stock: Optional[bool] = Field(default=None, description="Override reject-vs-clamp policy")
    port: int = Field(default=8000, description="Server port")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


class AppConfig:
    """Combined application configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        self.env = Settings()

        # Load YAML config
        if config_path is None:
            config_path = Path(__file__).parent.parent.parent / "config" / "config.yml"
        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    yaml_data = yaml.safe_load(f) or {}
                self.yaml = YAMLConfig(**yaml_data)
            except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
                raise ConfigurationError(
                    f"Invalid configuration file {config_path}: {str(e)}",
                    details={"path": str(config_path)}
                )
        else:
            self.yaml = YAMLConfig()

        # Environment overrides
        if self.env.log_level:
            self.yaml.logging.level = self.env.log_level
        if self.env.strict_stock is not None:
            self.yaml.inventory.strict_stock = self.env.strict_stock

    @property
    def inventory(self) -> InventoryConfig:
        return self.yaml.inventory

    @property
    def catalogs(self) -> CatalogsConfig:
        return self.yaml.catalogs

    @property
    def storage(self) -> StorageConfig:
        return self.yaml.storage

    @property
    def logging(self) -> LoggingConfig:
        return self.yaml.logging

    @property
    def api(self) -> APIConfig:
        return self.yaml.api

    @property
    def data_dir(self) -> Path:
        return Path(self.env.inventory_data_dir)

    @property
    def is_production(self) -> bool:
        return self.env.environment.lower() == "production"


@lru_cache()
def get_config() -> AppConfig:
    """Get cached configuration instance."""
    return AppConfig()
