"""Configuration management for FileDrop."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "filedrop"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Storage backend (Supabase-style Storage REST API)
    STORAGE_URL: str = "http://localhost:54321"
    STORAGE_API_KEY: str = ""
    DEFAULT_BUCKET: str = "documents"
    CACHE_CONTROL_SECONDS: int = 3600
    USE_SIGNED_URLS: bool = False
    SIGNED_URL_EXPIRES_SECONDS: int = 3600

    # Connectivity probes
    INTERNET_PROBE_URL: str = "https://httpbin.org/get"
    DNS_PROBE_URL: str = "https://dns.google/resolve?name=google.com"
    INTERNET_PROBE_TIMEOUT_MS: int = 5000
    BACKEND_PROBE_TIMEOUT_MS: int = 10000
    DNS_PROBE_TIMEOUT_MS: int = 3000

    # Retry / transport
    MAX_RETRIES: int = 3
    BASE_DELAY_MS: int = 1000
    TRANSPORT_TIMEOUT_MS: int = 15000

    # Local files outside this directory are refused
    UPLOAD_ROOT: str = "uploads"

    # Upload constraints (only enforced when ENFORCE_UPLOAD_VALIDATION is set)
    MAX_FILE_SIZE_MB: int = 100
    SUPPORTED_EXTENSIONS: str = "pdf,doc,docx,jpg,jpeg,png,gif,bmp,webp,heic,heif,txt"
    ENFORCE_UPLOAD_VALIDATION: bool = False

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MAX_FILE_SIZE_MB to bytes."""
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def supported_extensions(self) -> list[str]:
        """Parse SUPPORTED_EXTENSIONS into a list of lowercase extensions."""
        return [ext.strip().lower().lstrip(".") for ext in self.SUPPORTED_EXTENSIONS.split(",") if ext.strip()]

    @property
    def upload_root(self) -> Path:
        """UPLOAD_ROOT as an absolute path with symlinks resolved."""
        return Path(self.UPLOAD_ROOT).expanduser().resolve()

    @property
    def base_delay_seconds(self) -> float:
        return self.BASE_DELAY_MS / 1000

    @property
    def internet_probe_timeout(self) -> float:
        return self.INTERNET_PROBE_TIMEOUT_MS / 1000

    @property
    def backend_probe_timeout(self) -> float:
        return self.BACKEND_PROBE_TIMEOUT_MS / 1000

    @property
    def dns_probe_timeout(self) -> float:
        return self.DNS_PROBE_TIMEOUT_MS / 1000

    @property
    def transport_timeout(self) -> float:
        return self.TRANSPORT_TIMEOUT_MS / 1000

    @property
    def storage_base_url(self) -> str:
        """STORAGE_URL without a trailing slash."""
        return self.STORAGE_URL.rstrip("/")


# Singleton settings instance
settings = Settings()
