from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    APP_NAME: str = "Roadside Tow Dispatch API"

    # REQUIRED in .env
    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 24  # 1 day

    DATABASE_URL: str = "sqlite:///./tow.db"
    AUTO_CREATE_DB: bool = True
    SEED_USERS: bool = True

    LOG_LEVEL: str = "INFO"

    # Customer push notifications (assigned / en_route / completed ...)
    ENABLE_PUSH: bool = True

    # Request numbers look like TOW-2025-00001
    TOW_NUMBER_PREFIX: str = "TOW"
    TOW_NUMBER_PAD: int = 5

    # How many times a transition is re-applied after losing an optimistic-lock race
    TRANSITION_RETRIES: int = 1

    class Config:
        env_file = ".env"

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if not v or len(v.strip()) < 32:
            raise ValueError("JWT_SECRET must be set and at least 32 characters.")
        if "CHANGE_ME" in v.upper():
            raise ValueError("JWT_SECRET looks like a placeholder. Set a real secret.")
        return v.strip()

    @field_validator("TOW_NUMBER_PAD")
    @classmethod
    def validate_pad(cls, v: int) -> int:
        if v < 1:
            raise ValueError("TOW_NUMBER_PAD must be at least 1.")
        return v


settings = Settings()
