from functools import lru_cache
from pydantic import Field, SecretStr, AnyHttpUrl
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from .env file (only once at import time)
load_dotenv()


class Settings(BaseSettings):
    # Application
    app_name: str = Field(default="Ibtisama Clinic Bot")
    app_env: str = Field(default="development")
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=3000)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    # WhatsApp Cloud API
    verify_token: SecretStr | None = Field(default=None)
    whatsapp_token: SecretStr | None = Field(default=None)
    phone_number_id: str | None = Field(default=None)
    graph_api_url: AnyHttpUrl | str = Field(default="https://graph.facebook.com")
    graph_api_version: str = Field(default="v21.0")
    http_timeout_seconds: float = Field(default=20.0)

    # OpenAI
    openai_api_key: SecretStr | None = Field(default=None)
    openai_model: str = Field(default="gpt-4o-mini")
    openai_transcribe_model: str = Field(default="whisper-1")
    openai_timeout_seconds: int = Field(default=15)

    # ElevenLabs
    elevenlabs_api_key: SecretStr | None = Field(default=None)
    elevenlabs_voice_id: str = Field(default="yXEnnEln9armDCyhkXcA")  # Saudi Arabic voice
    elevenlabs_model_id: str = Field(default="eleven_multilingual_v2")

    # Supabase (bookings + clinic_settings tables)
    supabase_url: AnyHttpUrl | str | None = Field(default=None)
    supabase_service_role_key: SecretStr | None = Field(default=None)

    # Conversation state
    state_backend: str = Field(default="memory")  # memory | redis
    redis_url: str = Field(default="redis://localhost:6379/0")

    # Message guard
    duplicate_window_seconds: float = Field(default=5.0)
    rate_window_seconds: float = Field(default=30.0)
    rate_max_messages: int = Field(default=10)
    processing_timeout_seconds: float = Field(default=10.0)
    guard_sweep_interval_seconds: float = Field(default=120.0)

    # Clinic content
    clinic_name: str = Field(default="عيادة ابتسامة")
    default_booking_times: list[str] = Field(default_factory=lambda: ["3 PM", "6 PM", "9 PM"])
    phone_pattern: str = Field(default=r"^07[0-9]{8}$")
    clinic_maps_url: str = Field(default="https://maps.app.goo.gl/ibtisama-clinic")
    clinic_address_ar: str = Field(default="عمّان - شارع المدينة المنورة، مجمع ابتسامة الطبي، الطابق الأول")
    clinic_address_en: str = Field(default="Amman - Madina Munawara St., Ibtisama Medical Complex, 1st floor")
    clinic_latitude: float = Field(default=31.9895)
    clinic_longitude: float = Field(default=35.8681)
    offer_images: list[str] = Field(default_factory=list)
    doctor_images: list[str] = Field(default_factory=list)
    media_delay_seconds: float = Field(default=0.8)
    banned_words: list[str] = Field(default_factory=list)

    # Website booking notifications
    candy_notify_phone: str = Field(default="962781685210")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    # Convenience uppercase aliases to match docs/examples
    @property
    def VERIFY_TOKEN(self) -> str | None:
        return None if self.verify_token is None else self.verify_token.get_secret_value()

    @property
    def WHATSAPP_TOKEN(self) -> str | None:
        return None if self.whatsapp_token is None else self.whatsapp_token.get_secret_value()

    @property
    def OPENAI_API_KEY(self) -> str | None:
        return None if self.openai_api_key is None else self.openai_api_key.get_secret_value()

    @property
    def ELEVENLABS_API_KEY(self) -> str | None:
        return None if self.elevenlabs_api_key is None else self.elevenlabs_api_key.get_secret_value()

    @property
    def SUPABASE_SERVICE_ROLE_KEY(self) -> str | None:
        if self.supabase_service_role_key is None:
            return None
        return self.supabase_service_role_key.get_secret_value()

    @property
    def GRAPH_BASE_URL(self) -> str:
        return f"{str(self.graph_api_url).rstrip('/')}/{self.graph_api_version}"

    @property
    def REDIS_URL(self) -> str:
        return self.redis_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# Expose a singleton-like instance for simple imports: from ibtisama_bot.config import settings
settings = get_settings()
