from pathlib import Path
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings

import os

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (e.g., plain, json)")

    # Map Sizing Configuration
    default_map_size: int = Field(default=141, description="Map size when population sizing is off")
    min_map_size: int = Field(default=50, description="Smallest allowed map size")
    max_map_size: int = Field(default=500, description="Largest allowed map size")
    default_year: int = Field(default=2025, description="Year used when none is requested")

    # Biome Allocation Configuration
    water_fraction: float = Field(default=0.709, ge=0.0, le=1.0, description="Share of tiles forced to water in population mode")
    missing_biome_probability: float = Field(default=0.4, ge=0.0, le=1.0, description="Chance to inject a never-placed biome")
    rare_biome_probability: float = Field(default=0.3, ge=0.0, le=1.0, description="Chance to boost an under-represented biome")
    rare_biome_threshold: int = Field(default=50, ge=0, description="Placed-tile count below which a biome is rare")
    block_clustering: bool = Field(default=True, description="Reorganize the final map into square blocks")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Instantiate singleton settings object
settings = Settings()
