"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `conftest.py`.
Fixtures compartidas: bloqueo de red, configuración de prueba y datos de
ejemplo de la API de votación.

Componentes detectados:
  - block_network
  - settings
  - usuario_data
  - admin_data
  - votantes_data

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- Priorizar claridad operativa y trazabilidad del comportamiento.

======================== ENGLISH ========================
File: `conftest.py`.
Shared fixtures: network block, test configuration and sample voting API
data.

Detected components:
  - block_network
  - settings
  - usuario_data
  - admin_data
  - votantes_data

Notes:
- Keep this header in sync with structural changes in the file.
- Prioritize operational clarity and behavior traceability.
"""

from __future__ import annotations

import socket
from typing import Any

import pytest

from votaciones.config import VotacionesSettings

API_BASE_URL = "http://api.test/api/votacion"
AUTH_URL = "http://api.test/api/token"


@pytest.fixture(autouse=True)
def block_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """Impide conexiones de red reales en tests.

    English:
        Prevents real network connections in tests.
    """

    def guarded_connect(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    def guarded_create_connection(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    monkeypatch.setattr(socket.socket, "connect", guarded_connect, raising=True)
    monkeypatch.setattr(socket, "create_connection", guarded_create_connection, raising=True)


@pytest.fixture
def settings() -> VotacionesSettings:
    """Configuración de prueba sin filtro IP ni esperas entre reintentos.

    English: Test configuration with no IP filter and no retry waits.
    """
    return VotacionesSettings(
        API_BASE_URL=API_BASE_URL,
        AUTH_URL=AUTH_URL,
        SECRET_KEY="clave-de-pruebas-suficientemente-larga",
        ALLOWED_NETWORKS=[],
        IP_FILTER_ENABLED=False,
        DEV_MODE=False,
        RETRY_WAIT_SECONDS=0,
        MAX_RETRIES=3,
        LOG_DIR=None,
        TIMEZONE="America/Mexico_City",
    )


@pytest.fixture
def usuario_data() -> dict[str, Any]:
    return {
        "id": 7,
        "rfc": "GOMA800101AB1",
        "nombre": "Ana Gómez",
        "correoElectronico": "ana@example.com",
        "membresia": 1,
        "membresiaNombre": "Titular",
        "estatus": "activo",
    }


@pytest.fixture
def admin_data() -> dict[str, Any]:
    return {
        "id": 1,
        "rfc": "ADMI700101XY9",
        "nombre": "Luis Admin",
        "correoElectronico": "admin@example.com",
        "membresia": 2,
        "membresiaNombre": "Administrador",
        "estatus": "activo",
    }


@pytest.fixture
def votantes_data() -> list[dict[str, Any]]:
    """23 votantes: tres páginas de 10, 10 y 3."""
    return [
        {
            "votoId": f"v{i}",
            "fechaVoto": f"2025-03-05T{10 + i % 10:02d}:15:00Z",
            "usuarioId": 100 + i,
            "nombreCompleto": f"Votante Número {i:02d}",
            "apellidoPaterno": "Número",
            "apellidoMaterno": f"{i:02d}",
            "rfc": f"RFCX{i:02d}0101AAA",
            "candidatoId": 1 + i % 3,
            "candidatoNombre": ("Dra. María López", "Dr. Juan Pérez", "Dr. Pedro Ruiz")[i % 3],
        }
        for i in range(1, 24)
    ]
