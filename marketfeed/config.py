"""Central configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class ExchangeConfig(BaseSettings):
    exchange: str = Field(default="kraken", alias="FEED_EXCHANGE")
    kraken_ws_url: str = Field(default="wss://ws.kraken.com", alias="KRAKEN_WS_URL")
    binance_ws_url: str = Field(
        default="wss://stream.binance.com:9443/stream", alias="BINANCE_WS_URL"
    )

    def url_for(self, exchange: str) -> str:
        urls = {"kraken": self.kraken_ws_url, "binance": self.binance_ws_url}
        try:
            return urls[exchange]
        except KeyError:
            raise ValueError(f"no websocket url configured for exchange {exchange!r}") from None


class TuningConfig(BaseSettings):
    ws_ping_interval: int = Field(default=30, alias="WS_PING_INTERVAL")
    ws_pong_timeout: int = Field(default=10, alias="WS_PONG_TIMEOUT")
    ws_open_timeout: int = Field(default=10, alias="WS_OPEN_TIMEOUT")
    ws_max_message_size: int = Field(default=10 * 1024 * 1024, alias="WS_MAX_MESSAGE_SIZE")
    handler_timeout: float = Field(default=30.0, alias="HANDLER_TIMEOUT")  # 0 disables
    stats_interval: int = Field(default=60, alias="STATS_INTERVAL")


class LoggingConfig(BaseSettings):
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")


class AppConfig:
    """Aggregated application configuration."""

    def __init__(self) -> None:
        self.exchange = ExchangeConfig()
        self.tuning = TuningConfig()
        self.logging = LoggingConfig()


def get_config() -> AppConfig:
    """Create and return the application configuration."""
    return AppConfig()
