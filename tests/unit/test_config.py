"""Unit tests for application configuration."""

from voiceverse.config import DEVELOPMENT_ORIGINS, AppConfig


class TestAppConfig:

    def test_defaults(self):
        config = AppConfig()
        assert config.port == 5000
        assert config.version == "1.0.0"
        assert config.is_development

    def test_development_origins(self):
        config = AppConfig(cors_origins=["https://extra.example.com"])
        origins = config.allowed_origins
        for origin in DEVELOPMENT_ORIGINS:
            assert origin in origins
        assert "https://extra.example.com" in origins

    def test_production_origins(self):
        config = AppConfig(environment="production", frontend_url="https://voiceverse.app")
        assert config.allowed_origins == ["https://voiceverse.app"]

    def test_dev_bypass_requires_development(self):
        assert AppConfig(dev_mode=True).dev_bypass_enabled
        assert not AppConfig(dev_mode=False).dev_bypass_enabled
        assert not AppConfig(environment="production", dev_mode=True).dev_bypass_enabled

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("NODE_ENV", "production")
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("STRIPE_PRO_MONTHLY_PRICE_ID", "price_pm")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example.com, https://b.example.com")

        config = AppConfig.from_env()
        assert config.port == 8080
        assert config.environment == "production"
        assert config.stripe_price_ids == {"pro_monthly": "price_pm"}
        assert config.cors_origins == ["https://a.example.com", "https://b.example.com"]

    def test_provider_configs(self):
        config = AppConfig(stripe_secret_key="sk_test", stripe_webhook_secret="whsec", email_from="a@b.c")
        assert config.stripe_config().api_key == "sk_test"
        assert config.stripe_config().webhook_secret == "whsec"
        assert config.email_config().from_address == "a@b.c"
