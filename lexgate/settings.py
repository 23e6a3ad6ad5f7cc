# lexgate/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import logging
from pathlib import Path

# Configure logging for settings module
logger = logging.getLogger(__name__)
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s SETTINGS.PY - [%(levelname)s] - %(message)s'
    )

# This settings.py file is at <project>/lexgate/settings.py
# Two .parent calls will get to the project directory
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
DOTENV_PATH = PROJECT_ROOT / ".env"

if DOTENV_PATH.exists():
    logger.info(f"SETTINGS.PY: .env file FOUND at explicit path: {DOTENV_PATH}")
else:
    logger.info(
        f"SETTINGS.PY: .env file NOT FOUND at explicit path: {DOTENV_PATH}. "
        "Will rely on OS env vars or defaults."
    )


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    app_name: str = "Lexgate"
    debug_mode: bool = False

    # Control-plane SQLite database. ":memory:" keeps everything in-process.
    sqlite_db_path: str = "./lexgate_control_plane.sqlite3"

    # Redis configuration, only used for cross-process cache invalidation
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None
    redis_invalidation_enabled: bool = False
    redis_invalidation_channel: str = "lexgate:tenant_invalidations"

    lexgate_log_level: str = "INFO"

    # Connection cache and routing
    connection_cache_ttl_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Lifetime of a cached tenant backend connection."
    )
    connection_cache_sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Interval of the background sweep that releases expired connections."
    )
    directory_lookup_timeout_seconds: float = 2.0
    backend_connect_timeout_seconds: float = 5.0
    backend_health_path: Optional[str] = Field(
        default=None,
        description="Path probed on the tenant backend when a connection is established (e.g. /health)."
    )
    routing_event_buffer_size: int = 1000

    # Security settings
    gateway_shared_secret: Optional[str] = Field(
        default=None,
        description="Secret the upstream auth gateway presents in X-Gateway-Secret."
    )
    admin_api_key: Optional[str] = Field(
        default=None,
        description="API Key for accessing admin routes."
    )
    lexgate_encryption_key: Optional[str] = Field(
        default=None,
        description="Fernet key used to encrypt tenant backend locations at rest."
    )

    model_config = SettingsConfigDict(
        env_file=DOTENV_PATH if DOTENV_PATH.exists() else None,
        extra="ignore",
        env_file_encoding='utf-8'
    )


# Initialize settings instance
settings = Settings()

# Log configuration values for debugging (sensitive values are masked)
logger.info(
    f"SETTINGS.PY: debug_mode={settings.debug_mode}, "
    f"sqlite_db_path='{settings.sqlite_db_path}', "
    f"redis_invalidation_enabled={settings.redis_invalidation_enabled}"
)
logger.info(
    f"SETTINGS.PY: connection_cache_ttl_seconds={settings.connection_cache_ttl_seconds}, "
    f"connection_cache_sweep_interval_seconds={settings.connection_cache_sweep_interval_seconds}"
)
logger.info(
    f"SETTINGS.PY: admin_api_key: {'********' if settings.admin_api_key else 'None'}, "
    f"gateway_shared_secret: {'********' if settings.gateway_shared_secret else 'None'}, "
    f"lexgate_encryption_key: {'********' if settings.lexgate_encryption_key else 'None'}"
)
