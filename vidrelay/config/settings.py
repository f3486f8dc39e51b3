import json
import logging
import os
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.json")

DESKTOP_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/91.0.4472.124 Safari/537.36"
)

class RedisConfig(BaseModel):
    url: str = Field(default="redis://localhost:6379", description="Redis connection URL")
    socket_timeout: int = Field(default=5, description="Redis socket timeout in seconds")

class RateLimitConfig(BaseModel):
    enabled: bool = Field(default=True, description="Enable rate limiting")
    max_requests: int = Field(default=30, ge=1, description="Max requests per window")
    window_seconds: int = Field(default=60, ge=1, description="Rate limit window in seconds")

class SecurityConfig(BaseModel):
    enable_ssrf_protection: bool = Field(default=True, description="Enable SSRF protection")
    allow_private_ips: bool = Field(default=False, description="Allow private IP ranges")
    allow_localhost: bool = Field(default=False, description="Allow localhost access")

class UpstreamConfig(BaseModel):
    timeout_seconds: float = Field(default=30.0, gt=0, description="Outbound HTTP timeout")
    user_agent: str = Field(default=DESKTOP_UA, description="Emulated browser User-Agent")
    accept_language: str = Field(default="en-US,en;q=0.5", description="Accept-Language sent upstream")

class SiteConfig(BaseModel):
    base_url: str = Field(default="https://www.wow.xxx", description="Scraped site root")
    max_pages: int = Field(default=10, ge=1, le=10, description="Upper bound for pages fetched per search")

class InnerTubeConfig(BaseModel):
    base_url: str = Field(default="https://www.youtube.com/youtubei/v1", description="InnerTube API root")
    api_key: Optional[str] = Field(default=None, description="Optional InnerTube API key")
    client_name: str = Field(default="ANDROID", description="Emulated InnerTube client")
    client_name_id: int = Field(default=3, description="Numeric id sent as X-Youtube-Client-Name (ANDROID is 3, WEB is 1)")
    client_version: str = Field(default="19.09.37", description="Emulated client version")
    android_sdk_version: int = Field(default=30, description="Android SDK version sent in context")
    user_agent: str = Field(
        default="com.google.android.youtube/19.09.37 (Linux; U; Android 11) gzip",
        description="User-Agent for InnerTube and media CDN requests"
    )
    hl: str = Field(default="en", description="Interface language")
    gl: str = Field(default="US", description="Content region")

class YtDlpConfig(BaseModel):
    binary: str = Field(default="yt-dlp", description="yt-dlp executable")
    js_runtime: Optional[str] = Field(default=None, description="JS runtime (e.g., deno:/usr/local/bin/deno)")
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout for yt-dlp")
    retries: int = Field(default=3, ge=0, description="Retries passed to yt-dlp")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Hard timeout for one yt-dlp call")

class ProxyConfig(BaseModel):
    default_content_type: str = Field(default="video/mp4", description="Content-Type when upstream sends none")
    rewrite_urls: bool = Field(default=True, description="Rewrite media URLs through /proxy by default")

class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: list = Field(default=["en", "ja"], description="Supported locales")

class ApiConfig(BaseModel):
    title: str = Field(default="vidrelay", description="API title")
    description: str = Field(default="Video metadata scraping and media relay API", description="API description")
    version: str = Field(default="1.0.0", description="API version")
    debug: bool = Field(default=False, description="Enable debug mode")

class Config(BaseSettings):
    """Main configuration model"""
    model_config = SettingsConfigDict(env_prefix="VIDRELAY_", env_nested_delimiter="__")

    redis: RedisConfig = Field(default_factory=RedisConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    site: SiteConfig = Field(default_factory=SiteConfig)
    innertube: InnerTubeConfig = Field(default_factory=InnerTubeConfig)
    ytdlp: YtDlpConfig = Field(default_factory=YtDlpConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @classmethod
    def load_from_file(cls, config_path: str = CONFIG_PATH) -> "Config":
        """Load configuration from JSON file, falling back to env and defaults"""
        if os.path.exists(config_path):
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)
                logger.info(f"Configuration loaded from {config_path}")
                return cls(**config_data)
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load config from {config_path}: {str(e)}")
                logger.info("Using environment/default configuration")
        else:
            logger.warning(f"Config file {config_path} not found, using environment/defaults")

        return cls()

    def save_to_file(self, config_path: str = CONFIG_PATH):
        """Save configuration to JSON file"""
        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
            logger.info(f"Configuration saved to {config_path}")
        except OSError as e:
            logger.error(f"Failed to save config to {config_path}: {str(e)}")

    def to_dict(self, **kwargs) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True, **kwargs)

def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration with priority: config.json > env vars > defaults"""
    return Config.load_from_file(config_path or CONFIG_PATH)

# Global config instance
config = load_config()
