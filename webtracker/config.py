from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from webtracker.services.identity import abbreviate, clean_phone

PROJECT_DIR = Path(__file__).resolve().parent.parent

# Later files win: the project directory overrides the working directory and
# .env.local overrides .env inside each location.
ENV_FILES = (
    ".env",
    ".env.local",
    str(PROJECT_DIR / ".env"),
    str(PROJECT_DIR / ".env.local"),
)

DEFAULT_COMPANY_NAME = "Airwaybill"
DEFAULT_ADMIN_TIMEZONE = "Africa/Lagos"


class ConfigurationError(Exception):
    """Raised when a required setting is missing at startup."""


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False

    # LLM extraction (Gemini)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.0-flash-exp"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"
    LLM_RATE_PER_SECOND: float = 5.0
    LLM_BURST: int = 5
    LLM_WAIT_TIMEOUT_SECONDS: float = 5.0
    LLM_HTTP_TIMEOUT_SECONDS: float = 10.0

    # Company identity
    COMPANY_NAME: str = ""

    # Chat transport
    WHATSAPP_PAIRING_PHONE: str = ""
    BOT_OWNER_PHONE: str = ""
    WHATSAPP_ADMIN_PHONES: str = ""
    WHATSAPP_SESSION_PATH: str = "session.db"
    WHATSAPP_ALLOW_PRIVATE_CHAT: str = ""
    CHAT_TRANSPORT: str = ""
    RECEIPT_RENDERER: str = ""

    # HTTP API
    API_AUTH_TOKEN: str = ""
    API_PORT: int = 8080
    TRACKING_BASE_URL: str = ""
    ALLOWED_ORIGIN: str = ""

    # Observability
    LOG_PATH: str = ""
    LOG_LEVEL: str = "INFO"
    HEALTHCHECK_URL: str = ""

    # Scheduler
    ADMIN_TIMEZONE: str = ""
    DAILY_REPORT_HOUR: int = 8
    DELIVERED_RETENTION_HOURS: int = 48
    MAX_RETENTION_DAYS: int = 7

    # Pairing notifier (consumed by transport factories)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    NOTIFY_EMAIL: str = ""

    # =================================================================
    # STORE AND WORKER SETTINGS
    # =================================================================
    DATABASE_PATH: str = "webtracker.db"
    DB_POOL_TIMEOUT: float = 5.0
    WORKER_POOL_SIZE: int = 5
    JOB_QUEUE_SIZE: int = 100
    COMMAND_RATE_LIMIT: int = 5
    COMMAND_RATE_WINDOW_SECONDS: int = 60

    model_config = SettingsConfigDict(
        env_file=ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def company_name(self) -> str:
        name = self.COMPANY_NAME.replace(" ", "")
        return name or DEFAULT_COMPANY_NAME

    def company_prefix(self) -> str:
        """Three-letter tracking prefix derived from the company name."""
        return abbreviate(self.company_name())

    def pairing_phone(self) -> str:
        return clean_phone(self.WHATSAPP_PAIRING_PHONE)

    def admin_phones(self) -> list[str]:
        """
        Admin phones with formatting stripped.
        The pairing phone is always treated as an admin.
        """
        phones = []
        for raw in self.WHATSAPP_ADMIN_PHONES.split(","):
            phone = clean_phone(raw)
            if phone and phone not in phones:
                phones.append(phone)

        pairing = self.pairing_phone()
        if pairing and pairing not in phones:
            phones.append(pairing)
        return phones

    def owner_phone(self) -> str:
        """Configured bot owner, defaulting to the first admin phone."""
        owner = clean_phone(self.BOT_OWNER_PHONE)
        if owner:
            return owner
        admins = self.admin_phones()
        return admins[0] if admins else ""

    def api_port(self) -> int:
        return self.API_PORT or 8080

    def allow_private_chat(self) -> bool:
        return self.WHATSAPP_ALLOW_PRIVATE_CHAT == "true"

    def cors_origin(self) -> str:
        return self.ALLOWED_ORIGIN or "*"

    def admin_timezone(self) -> str:
        return self.ADMIN_TIMEZONE or DEFAULT_ADMIN_TIMEZONE

    def gemini_url(self) -> str:
        base = self.GEMINI_BASE_URL.rstrip("/")
        return f"{base}/{self.GEMINI_MODEL}:generateContent"

    def tracking_url(self, tracking_id: str) -> str:
        if not self.TRACKING_BASE_URL:
            return ""
        return f"{self.TRACKING_BASE_URL}?id={tracking_id}"

    def get_retention_config(self) -> dict:
        return {
            "delivered_retention_hours": self.DELIVERED_RETENTION_HOURS,
            "max_retention_days": self.MAX_RETENTION_DAYS,
        }

    def validate_required(self) -> None:
        """Fail fast on settings the bot cannot run without."""
        missing = []
        if not self.GEMINI_API_KEY:
            missing.append("GEMINI_API_KEY")
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")


settings = Settings()
