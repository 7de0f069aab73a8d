# Config Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Propósito del módulo
#   2) Componentes principales
#   3) Puntos de extensión
#
# EN: Quick index
#   1) Module purpose
#   2) Main components
#   3) Extension points
#
# Secciones / Sections:
#   - Configuración / Configuration
#   - Lógica principal / Core logic
#   - Integraciones / Integrations

"""Configuración segura y validada de Votaciones.

Secure and validated Votaciones configuration.

Orden de precedencia / Precedence order:
    variables de entorno (.env, .env.local incluidos) > archivo YAML > valores
    por defecto.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
from pathlib import Path
from typing import Annotated, Any, List, Optional

import yaml
from dateutil import tz
from dotenv import load_dotenv
from pydantic import AnyUrl, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict, SettingsError

from .errors import ConfiguracionError

_ENV_PATH = Path(".env")
_ENV_LOCAL_PATH = Path(".env.local")
# Seguridad: Cargar variables sensibles desde .env y .env.local. / Security: Load sensitive vars from .env/.env.local.
load_dotenv(_ENV_PATH, override=False)
load_dotenv(_ENV_LOCAL_PATH, override=False)

DEFAULT_CONFIG_PATH = Path("config/votaciones.yaml")

_VALID_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class VotacionesSettings(BaseSettings):
    """Variables de entorno y archivo .env para Votaciones.

    English: Environment variables and .env file for Votaciones.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    API_BASE_URL: str = "http://localhost:3000/api/votacion"
    AUTH_URL: str = "http://localhost:3000/api/token"
    SECRET_KEY: str = Field(default_factory=lambda: secrets.token_hex(32), min_length=16)

    # Lista de bloques CIDR admitidos; una IP suelta equivale a /32.
    ALLOWED_NETWORKS: Annotated[List[str], NoDecode] = Field(default_factory=list)
    IP_FILTER_ENABLED: bool = True
    DEV_MODE: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[Path] = None

    REQUEST_TIMEOUT: float = Field(default=10.0, gt=0)
    MAX_RETRIES: int = Field(default=3, ge=1, le=10)
    RETRY_WAIT_SECONDS: float = Field(default=0.5, ge=0)

    PAGE_SIZE: int = Field(default=10, ge=1, le=500)
    TIMEZONE: Optional[str] = "America/Mexico_City"
    # None = cookie de sesión del navegador (se destruye al cerrar la pestaña).
    SESSION_MAX_AGE: Optional[int] = Field(default=None, ge=60)
    HTTPS_ONLY: bool = False

    @field_validator("API_BASE_URL", "AUTH_URL")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        """Validate URLs without changing the stored type."""
        TypeAdapter(AnyUrl).validate_python(value)
        return value.rstrip("/")

    @field_validator("ALLOWED_NETWORKS", mode="before")
    @classmethod
    def _split_networks(cls, value: Any) -> Any:
        """Acepta lista, lista JSON o cadena separada por comas.

        English: Accept a list, a JSON list or a comma separated string, so
        ``ALLOWED_NETWORKS=10.0.0.0/8,127.0.0.1`` works from the environment.
        """
        if isinstance(value, str):
            cleaned = value.strip()
            if cleaned.startswith("["):
                return json.loads(cleaned)
            return [item.strip() for item in cleaned.split(",") if item.strip()]
        return value

    @field_validator("TIMEZONE")
    @classmethod
    def _validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value and tz.gettz(value) is None:
            raise ValueError(f"Unknown TIMEZONE: {value}")
        return value or None

    @field_validator("LOG_LEVEL")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in _VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(_VALID_LOG_LEVELS)}")
        return normalized


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    """Carga un mapa YAML o lanza un error orientado al usuario.

    English: Load a YAML mapping or raise a user-facing error.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfiguracionError(f"{path.name} tiene errores de sintaxis YAML ({path.name} has YAML syntax errors).") from exc
    if not isinstance(raw, dict):
        raise ConfiguracionError(f"{path.name} debe ser un mapa YAML ({path.name} must be a YAML mapping).")
    return raw


def _yaml_defaults(path: Optional[Path]) -> dict[str, Any]:
    """Valores del YAML que no están definidos en el entorno.

    English: YAML values not already defined in the environment.
    """
    if path is None or not path.exists():
        return {}
    env_keys = {key.upper() for key in os.environ}
    defaults: dict[str, Any] = {}
    for key, value in _load_yaml_mapping(path).items():
        normalized = str(key).upper()
        if normalized in env_keys:
            continue
        defaults[normalized] = value
    return defaults


def load_config(config_path: Optional[Path] = None, **overrides: Any) -> VotacionesSettings:
    """/** Carga y valida configuración, fallando con detalle. / Load and validate configuration, failing with details. **/"""
    path = config_path
    if path is None:
        env_path = os.getenv("VOTACIONES_CONFIG")
        path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH
    values = _yaml_defaults(path)
    values.update(overrides)
    try:
        settings = VotacionesSettings(**values)
    except (ValidationError, SettingsError) as exc:
        raise ConfiguracionError(f"Invalid configuration: {exc}") from exc
    if not settings.ALLOWED_NETWORKS and settings.IP_FILTER_ENABLED and not settings.DEV_MODE:
        logging.getLogger(__name__).warning("allowlist_empty ip_filter=enabled all_pages_denied=true")
    return settings
