"""Errores controlados de la aplicación de votaciones.

English: Controlled errors for the voting application.

Los rechazos de negocio (por ejemplo, un voto duplicado) NO son excepciones:
llegan como sobres ``success: false`` y el llamador debe revisarlos.
"""

from __future__ import annotations

from typing import Optional


class VotacionesError(Exception):
    """Raíz de todos los errores propios.

    English: Root of every application error.
    """


class ConfiguracionError(VotacionesError):
    """Configuración inválida o incompleta.

    English: Invalid or incomplete configuration.
    """


class ApiError(VotacionesError):
    """Fallo al hablar con la API REST de votación.

    English: Failure while talking to the voting REST API.
    """


class NoAutenticadoError(ApiError):
    """No hay token de autenticación en la sesión."""


class CredencialesInvalidasError(ApiError):
    """La API rechazó el RFC al emitir el token."""


class PeticionFallidaError(ApiError):
    """Estado HTTP no exitoso o error de transporte.

    English: Non-success HTTP status or transport error.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RespuestaInvalidaError(ApiError):
    """El sobre de respuesta no tiene la forma esperada."""


class ReporteSinDatosError(VotacionesError):
    """No hay estadísticas o votantes suficientes para el reporte."""
