"""Engine settings loaded from environment variables."""

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Result cache
    cache_ttl_seconds: float = 300.0  # 5 minutes

    # Schedule generation
    default_declining_rate: float = 20.0  # percent per year
    fractional_life_policy: Literal["reject", "round"] = "reject"

    # Book-value queries: True re-raises unexpected errors instead of falling back
    strict_book_values: bool = False


settings = Settings()
