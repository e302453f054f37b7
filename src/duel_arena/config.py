"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    bot_token: str
    database_url: str

    debug: bool = False

    # Duel timing (seconds)
    decision_timeout: float = 30.0  # Bound for each unit/attack/target choice
    challenge_timeout: float = 30.0  # Bound for accepting a challenge
    resolution_delay: float = 2.0  # Pause after an attack result is shown

    # Duel economy
    max_duels_per_opponent: int = 3  # Per day, per opponent
    daily_duel_xp_cap: int = 100
    xp_per_win: int = 10

    # JSON list of unit definitions synced into the catalog at startup
    unit_catalog_path: str | None = None

    # Admin Configuration
    admin_user_ids: str | None = None  # Comma-separated list of Telegram user IDs

    def get_admin_user_ids(self) -> list[int]:
        """Parse admin user IDs from comma-separated string."""
        if not self.admin_user_ids:
            return []
        return [int(uid.strip()) for uid in self.admin_user_ids.split(",") if uid.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
