from __future__ import annotations

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

BYTES_PER_MB = 1024 * 1024


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    # Credential slots, tried in this order
    GEMINI_API_KEY: SecretStr | None = None
    GEMINI_API_KEY_2: SecretStr | None = None
    GEMINI_API_KEY_3: SecretStr | None = None
    GEMINI_API_KEY_4: SecretStr | None = None
    GEMINI_API_KEY_5: SecretStr | None = None
    GEMINI_MODEL: str = "gemini-2.5-flash"

    MAX_INLINE_VIDEO_BYTES: int = 20 * BYTES_PER_MB
    TRANSCRIPT_MAX_CHARS: int = 12_000
    PAGE_TEXT_MAX_CHARS: int = 10_000
    TEXT_EXTRACTION_MAX_CHARS: int = 15_000

    PORTION_ANALYSIS_RETRIES: int = 2
    PORTION_RETRY_DELAY_SECONDS: float = 1.0

    EXTRACTION_TIMEOUT_SECONDS: float = 120.0
    DOWNLOAD_TIMEOUT_SECONDS: float = 30.0
    MEDIA_CACHE_DIR: str = "/tmp/kitchen-ai"

    @property
    def api_keys(self) -> list[str]:
        slots = (
            self.GEMINI_API_KEY,
            self.GEMINI_API_KEY_2,
            self.GEMINI_API_KEY_3,
            self.GEMINI_API_KEY_4,
            self.GEMINI_API_KEY_5,
        )
        keys: list[str] = []
        for slot in slots:
            if slot is None:
                continue
            value = slot.get_secret_value().strip()
            if value:
                keys.append(value)
        return keys


settings = Settings()
