"""
Application Configuration

Settings for the VoiceVerse API, read from environment variables.
"""

import os
from typing import Dict, List, Optional

from pydantic import BaseModel

from .billing.stripe_client import StripeConfig
from .blockchain.algorand import AlgorandConfig
from .notifications.email import EmailConfig


DEVELOPMENT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "https://voice-verse-two.vercel.app",
]

VERCEL_ORIGIN_REGEX = r"https://.*\.vercel\.app"

PLAN_IDS = ["pro_monthly", "pro_yearly", "premium_monthly", "premium_yearly"]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class AppConfig(BaseModel):
    """Application configuration."""

    # API settings
    title: str = "VoiceVerse API"
    description: str = "Voice recording, transformation and translation platform"
    version: str = "1.0.0"

    # Server settings
    environment: str = "development"
    debug: bool = False
    docs_enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000
    log_requests: bool = True

    # Database
    database_url: str = "sqlite+aiosqlite:///./voiceverse.db"
    database_pool_size: int = 5

    # Auth
    jwt_secret: str = "voiceverse-dev-secret"
    jwt_expires_in: int = 24 * 7
    dev_mode: bool = False
    firebase_allow_unverified: bool = True

    # Web
    frontend_url: str = "http://localhost:5173"
    cors_origins: List[str] = []
    upload_dir: str = "uploads"

    # Voice & translation providers
    elevenlabs_api_key: Optional[str] = None
    google_translate_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    libretranslate_api_url: str = "https://translate.monocles.de/translate"
    libretranslate_api_key: Optional[str] = None

    # Stripe
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_price_ids: Dict[str, str] = {}

    # Algorand
    algod_server: str = "https://testnet-api.algonode.cloud"
    algod_token: str = ""
    indexer_server: str = "https://testnet-idx.algonode.cloud"

    # Email
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    email_from: Optional[str] = None
    email_pass: Optional[str] = None
    contact_email: Optional[str] = None
    admin_email: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load configuration from environment variables."""
        price_ids = {
            plan_id: os.environ[f"STRIPE_{plan_id.upper()}_PRICE_ID"]
            for plan_id in PLAN_IDS
            if os.getenv(f"STRIPE_{plan_id.upper()}_PRICE_ID")
        }
        extra_origins = os.getenv("CORS_ORIGINS", "")
        return cls(
            environment=os.getenv("ENVIRONMENT", os.getenv("NODE_ENV", "development")),
            debug=_flag("DEBUG"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "5000")),
            database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./voiceverse.db"),
            database_pool_size=int(os.getenv("DATABASE_POOL_SIZE", "5")),
            jwt_secret=os.getenv("JWT_SECRET", "voiceverse-dev-secret"),
            jwt_expires_in=int(os.getenv("JWT_EXPIRES_IN", str(24 * 7))),
            dev_mode=_flag("VOICEVERSE_DEV_MODE"),
            firebase_allow_unverified=_flag("FIREBASE_ALLOW_UNVERIFIED", "true"),
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173"),
            cors_origins=[origin.strip() for origin in extra_origins.split(",") if origin.strip()],
            upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
            elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY"),
            google_translate_api_key=os.getenv("GOOGLE_TRANSLATE_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            libretranslate_api_url=os.getenv(
                "LIBRETRANSLATE_API_URL", "https://translate.monocles.de/translate"
            ),
            libretranslate_api_key=os.getenv("LIBRETRANSLATE_API_KEY"),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
            stripe_price_ids=price_ids,
            algod_server=os.getenv("ALGOD_SERVER", "https://testnet-api.algonode.cloud"),
            algod_token=os.getenv("ALGOD_TOKEN", ""),
            indexer_server=os.getenv("INDEXER_SERVER", "https://testnet-idx.algonode.cloud"),
            smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.getenv("SMTP_PORT", "465")),
            email_from=os.getenv("EMAIL_FROM"),
            email_pass=os.getenv("EMAIL_PASS"),
            contact_email=os.getenv("CONTACT_EMAIL"),
            admin_email=os.getenv("ADMIN_EMAIL"),
        )

    @property
    def is_development(self) -> bool:
        return self.environment.lower() != "production"

    @property
    def dev_bypass_enabled(self) -> bool:
        """Authentication failures resolve to a dev user."""
        return self.is_development and self.dev_mode

    @property
    def allowed_origins(self) -> List[str]:
        if self.is_development:
            origins = list(DEVELOPMENT_ORIGINS)
        else:
            origins = [self.frontend_url]
        for origin in self.cors_origins:
            if origin not in origins:
                origins.append(origin)
        return origins

    def stripe_config(self) -> StripeConfig:
        return StripeConfig(
            api_key=self.stripe_secret_key,
            webhook_secret=self.stripe_webhook_secret,
        )

    def email_config(self) -> EmailConfig:
        return EmailConfig(
            smtp_host=self.smtp_host,
            smtp_port=self.smtp_port,
            from_address=self.email_from,
            password=self.email_pass,
        )

    def algorand_config(self) -> AlgorandConfig:
        return AlgorandConfig(
            algod_server=self.algod_server,
            algod_token=self.algod_token,
            indexer_server=self.indexer_server,
        )


__all__ = [
    "DEVELOPMENT_ORIGINS",
    "VERCEL_ORIGIN_REGEX",
    "AppConfig",
]
