"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votaciones/logging.py`.
Configuración de structlog con salida JSON y redacción de tokens Bearer.

Componentes detectados:
  - redact_sensitive_text
  - SensitiveLogFilter
  - setup_logging
  - bind_context

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- Priorizar claridad operativa y trazabilidad del comportamiento.

======================== ENGLISH ========================
File: `src/votaciones/logging.py`.
structlog configuration with JSON output and Bearer token redaction.

Detected components:
  - redact_sensitive_text
  - SensitiveLogFilter
  - setup_logging
  - bind_context

Notes:
- Keep this header in sync with structural changes in the file.
- Prioritize operational clarity and behavior traceability.
"""

from __future__ import annotations

import logging
import re
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Optional

import structlog

_SENSITIVE_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"((?:auth-token|token|secret_key)\s*[=:]\s*)['\"]?[^\s'\",}]+", re.IGNORECASE),
)


def redact_sensitive_text(text: str) -> str:
    """Oculta tokens Bearer y claves en un texto de log.

    English: Mask Bearer tokens and keys in a log string.
    """
    for pattern in _SENSITIVE_PATTERNS:
        text = pattern.sub(r"\1[REDACTED]", text)
    return text


class SensitiveLogFilter(logging.Filter):
    """Filtro seguro para redacción de secretos / Secure filter to redact secrets."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Seguridad: Evita exposición de tokens / Security: Avoid token exposure.
        record.msg = redact_sensitive_text(str(record.getMessage()))
        record.args = ()
        return True


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> structlog.BoundLogger:
    """Configura structlog y handlers de consola/archivo.

    English: Configure structlog and console/file handlers. The file handler
    is only attached when ``log_dir`` is given.
    """
    redact_filter = SensitiveLogFilter()
    console_handler = logging.StreamHandler()
    console_handler.addFilter(redact_filter)
    handlers: list[logging.Handler] = [console_handler]

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_dir / "votaciones.log",
            when="midnight",
            backupCount=30,
            encoding="utf-8",
        )
        file_handler.addFilter(redact_filter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level.upper(),
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(log_level.upper())),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("votaciones")


def bind_context(
    logger: structlog.BoundLogger,
    request_path: Optional[str] = None,
    client_ip: Optional[str] = None,
    usuario_id: Optional[int] = None,
) -> structlog.BoundLogger:
    """Adjunta contexto estándar al logger.

    English: Bind standard context to the logger.
    """
    context: dict[str, Any] = {}
    if request_path:
        context["path"] = request_path
    if client_ip:
        context["client_ip"] = client_ip
    if usuario_id is not None:
        context["usuario_id"] = usuario_id
    return logger.bind(**context)
