"""Configuration settings for the portfolio backtester."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Simulation
    initial_capital: float = 10_000.0
    default_benchmark: str = "SPY"

    # Benchmark identifiers starting with this prefix reference a saved portfolio
    benchmark_portfolio_prefix: str = "PORT_"
    max_expansion_depth: int = 5

    # Risk-free rate (10-year treasury yield, quoted in percent)
    risk_free_ticker: str = "^TNX"
    fallback_risk_free_rate: float = 0.04

    # Saved portfolio API
    portfolio_api_url: str = "http://localhost:3000/api"
    request_timeout: float = 10.0

    # Logging
    log_level: str = "INFO"


# Singleton settings instance
settings = Settings()
