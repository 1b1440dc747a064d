import logging
import sys
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.schemas.game_engine import EngineRules, RethinkMode

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase
    SUPABASE_URL: str
    SUPABASE_API_KEY: str

    # App config
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    DEBUG: bool = False

    # Upstash Redis
    UPSTASH_REDIS_REST_URL: str
    UPSTASH_REDIS_REST_TOKEN: str

    # Live game storage
    GAME_SESSION_TTL: int = 60 * 60 * 24
    ROUND_LOCK_TTL: int = 30

    # Engine rules
    RETHINK_MODE: RethinkMode = RethinkMode.COSMETIC
    PROPHECY_REQUIRES_ACTION: bool = True
    COMPLICATION_SPAWN_CHANCE: float = 0.2
    MAX_ACTIVE_COMPLICATIONS: int = 3
    HAND_SIZE: int = 4
    HAND_REFILL_INTERVAL: int = 3
    INSTIGATOR_BONUS_VP: int = 5

    @field_validator("UPSTASH_REDIS_REST_URL")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("UPSTASH_REDIS_REST_URL must be a valid HTTPS URL")
        return v

    @field_validator("UPSTASH_REDIS_REST_TOKEN")
    @classmethod
    def validate_redis_token(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("UPSTASH_REDIS_REST_TOKEN cannot be empty")
        return v

    @field_validator("HAND_SIZE", "HAND_REFILL_INTERVAL")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @property
    def supabase_jwks_url(self) -> str:
        return f"{self.SUPABASE_URL}/auth/v1/.well-known/jwks.json"

    def engine_rules(self) -> EngineRules:
        return EngineRules(
            rethink_mode=self.RETHINK_MODE,
            prophecy_requires_action=self.PROPHECY_REQUIRES_ACTION,
            complication_spawn_chance=self.COMPLICATION_SPAWN_CHANCE,
            max_active_complications=self.MAX_ACTIVE_COMPLICATIONS,
            hand_size=self.HAND_SIZE,
            hand_refill_interval=self.HAND_REFILL_INTERVAL,
            instigator_bonus_vp=self.INSTIGATOR_BONUS_VP,
        )


def configure_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    configure_logging(settings.DEBUG)
    logger.info("Settings loaded successfully")
    logger.debug("Supabase URL: %s", settings.SUPABASE_URL)
    logger.debug("Engine rules: %s", settings.engine_rules())
    return settings
