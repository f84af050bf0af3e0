from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./notes.db"

    # Security
    ENVIRONMENT: str = "development"
    DEV_MODE: bool = True  # Accepts the "test" bearer token

    # API
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Supabase Auth
    SUPABASE_URL: str = ""
    SUPABASE_JWKS_URL: str = ""  # /.well-known/jwks.json endpoint
    SUPABASE_AUDIENCE: str = "authenticated"

    # Rate Limiting (memory:// locally, redis://host:6379/0 in production)
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_PER_IP: str = "120/minute"

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_PUBLISHABLE_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_PRICE_ID_PRO: str = ""  # Price ID of the Pro plan
    STRIPE_CHECKOUT_MODE: str = "payment"  # payment (lifetime) | subscription
    FRONTEND_URL: str = "http://localhost:3000"  # Base URL for checkout redirects

    # Realtime plan notifications
    NOTIFIER_QUEUE_SIZE: int = 16

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )


settings = Settings()
