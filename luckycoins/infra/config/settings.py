from typing import List, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = "LuckyCoins Portal"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",  # Frontend development
        "https://luckycoins.app",  # Production frontend
    ]

    # Redis Settings
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_MAX_CONNECTIONS: int = 10

    # Durable session storage: "redis" or "memory"
    SESSION_STORE_BACKEND: str = "redis"

    # Admin Session Settings
    ADMIN_SESSION_KEY: str = "adminSessionToken"
    ADMIN_SESSION_EXPIRY_KEY: str = "adminSessionExpiry"
    ADMIN_SESSION_DURATION_HOURS: int = 8
    ADMIN_SESSION_TOKEN_BYTES: int = 32  # 256 bits

    # Embedded admin credentials, checked in-process by EmbeddedCredentialVerifier
    ADMIN_ID: str = "admin"
    ADMIN_PASSWORD: str = "admin123"

    # Backend canister gateway
    BACKEND_GATEWAY_URL: str = "http://localhost:4943"
    BACKEND_CANISTER_ID: str = "bkyz2-fmaaa-aaaaa-qaaaq-cai"

    # HTTP Client Settings
    HTTP_DEFAULT_TIMEOUT: float = 10.0
    HTTP_BACKEND_TIMEOUT: float = 30.0
    HTTP_MAX_CONNECTIONS: int = 20
    HTTP_MAX_KEEPALIVE_CONNECTIONS: int = 5

    # Identity Settings
    IDENTITY_KEY_PATH: Optional[str] = ".luckycoins/identity.key"

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
