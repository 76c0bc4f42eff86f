"""Configuración central basada en variables de entorno."""

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Valores globales leídos desde `.env` o el entorno."""

    environment: str = "development"
    log_level: str | None = Field(
        default=None,
        description="Nivel de logging global (ej. debug, info, warning). Cuando no se define, usa un valor por ambiente.",
    )
    request_log_level: str = Field(
        default="info",
        description=(
            "Nivel mínimo para registrar solicitudes en middleware. "
            "Valores más altos (warning/error) reducen registros de peticiones exitosas."
        ),
    )
    request_log_skip_prefixes: tuple[str, ...] = Field(
        default=("/health", "/favicon", "/docs", "/openapi"),
        description="Prefijos de ruta para los que no se registrarán eventos de request.started/completed.",
    )
    log_file_path: str | None = None

    supabase_url: str | None = None
    supabase_service_role: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "CHATDESK_SUPABASE_SERVICE_ROLE", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_SERVICE_ROLE"
        ),
    )

    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    whatsapp_senders: dict[int, str] = Field(
        default_factory=dict,
        description="Operadores con número de WhatsApp activo: {id_operador: '+54911...'}.",
    )
    notification_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Tiempo máximo de espera por cada intento de envío saliente.",
    )

    timezone: str = Field(
        default="America/Argentina/Buenos_Aires",
        description="Zona horaria usada para calcular el día calendario local.",
    )
    auto_close_minutes: int = Field(
        default=30,
        gt=0,
        description="Minutos de inactividad antes del cierre automático cuando la configuración del sistema no define uno válido.",
    )
    auto_close_message: str = "🕒 Chat finalizado por inactividad"
    scheduler_enabled: bool = True
    scheduler_interval_seconds: float = Field(default=300.0, gt=0)
    settings_cache_ttl_seconds: float = Field(default=30.0, ge=0)
    reminder_horizon_days: int = Field(
        default=365,
        gt=0,
        description="Límite de generación de ocurrencias para recordatorios sin fecha de fin.",
    )

    session_secret: str | None = None
    session_cookie_name: str = "chatdesk.sid"
    session_cookie_secure: bool | None = Field(
        default=None,
        description="Cuando no se define, la cookie es segura sólo en producción.",
    )
    session_cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    session_max_age_seconds: int = Field(default=60 * 60 * 12, gt=0)
    session_cleanup_interval_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Frecuencia de la limpieza de sesiones expiradas; 0 la desactiva.",
    )
    session_rolling: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_prefix="CHATDESK_", extra="allow")

    @property
    def cookie_secure(self) -> bool:
        if self.session_cookie_secure is not None:
            return self.session_cookie_secure
        return self.environment == "production"


settings = Settings()
