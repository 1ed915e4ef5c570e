"""Application configuration using pydantic-settings."""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict

from closing_conditions.core.policies import PlaceholderPolicy


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Condition catalog (spreadsheet CSV export, columns A..R)
    CONDITIONS_CSV_PATH: str = "./ConditionsPortal_Loan_Conditions_Formatted.csv"
    LOAD_CATALOG_ON_STARTUP: bool = True

    # Placeholder business defaults until loan data carries these values
    MI_COMPANY_NAME: str = "Genworth Mortgage Insurance"
    MI_RATE_FACTOR: Decimal = Decimal("0.35")
    MI_TYPE: str = "Monthly"
    ASSUME_RETAIL_CHANNEL: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def placeholder_policy(self) -> PlaceholderPolicy:
        """Bundle the placeholder business defaults for the engine."""
        return PlaceholderPolicy(
            mi_company_name=self.MI_COMPANY_NAME,
            mi_rate_factor=self.MI_RATE_FACTOR,
            mi_type=self.MI_TYPE,
            assume_retail_channel=self.ASSUME_RETAIL_CHANNEL,
        )


# Global settings instance
settings = Settings()
