"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI ni
  los servicios de orquestación.
- Adaptadores HTTP y sesión leen el mismo contrato validado.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "subscription-manage"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "subscription-manage"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "subscription-manage"
    return Path.home() / ".config" / "subscription-manage"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# subscription-manage user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central de la aplicación.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar los servicios.
    - Un único contrato de configuración para CLI/adapters/sesión.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUBMANAGE_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    subscription_service_url: str = Field(
        default="http://localhost:8080/api/subscription-service",
        min_length=8,
        description="URL base del servicio de suscripciones (variante unificada).",
    )
    sso_api_url: str = Field(
        default="http://localhost:8080/api/sso",
        min_length=8,
        description="URL base de la API SSO (variante perfil, método de pago, datos de cliente).",
    )
    unified_db_url: str = Field(
        default="http://localhost:8080/api/unified-db",
        min_length=8,
        description="URL base del directorio de usuarios usado para enriquecer.",
    )
    api_token: str | None = Field(
        default=None,
        description="Token bearer enviado a todas las APIs (opcional).",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request (segundos).",
    )
    user_agent: str = Field(
        default="subscription-manage/0.1",
        min_length=1,
        description="User-Agent para peticiones a las APIs.",
    )

    default_page_size: int = Field(
        default=10,
        ge=1,
        le=500,
        description="Tamaño de página inicial para pagos, managers y dominios.",
    )
    users_page_size: int = Field(
        default=15,
        ge=1,
        le=500,
        description="Tamaño de página inicial para la sección de usuarios.",
    )

    poll_interval_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Intervalo entre ticks del polling de activación (segundos).",
    )
    directory_fields: list[str] = Field(
        default_factory=lambda: ["email", "jobInfo"],
        description="Campos adicionales pedidos al directorio de usuarios.",
    )

    log_level: str = Field(
        default="WARNING",
        description="Nivel de log raíz usado por la CLI.",
    )
