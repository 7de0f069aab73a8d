# Schemas Module
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

"""Esquemas Pydantic para validar las respuestas de la API de votación.

Pydantic schemas to validate voting API responses.

La API usa camelCase (``correoElectronico``); los modelos exponen snake_case
y aceptan ambos nombres al validar.
"""

from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Código de membresía de administrador / Administrator membership code.
MEMBRESIA_ADMIN = 2

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base común: alias camelCase, campos extra ignorados.

    English: Common base with camelCase aliases; extra fields are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


class Usuario(ApiModel):
    """Usuario devuelto por la API al iniciar sesión.

    English: User returned by the API on login.
    """

    id: int
    rfc: str
    nombre: str
    correo_electronico: Optional[str] = None
    membresia: int
    membresia_nombre: Optional[str] = None
    estatus: Optional[str] = None

    @property
    def es_admin(self) -> bool:
        return self.membresia == MEMBRESIA_ADMIN


class AuthResponse(ApiModel):
    success: bool
    token: Optional[str] = None
    user: Optional[Usuario] = None
    error: Optional[str] = None
    message: Optional[str] = None


class Candidato(ApiModel):
    """Candidato activo. Solo lectura desde el cliente.

    English: Active candidate. Read-only from the client.
    """

    id: int
    nombre: str
    descripcion: Optional[str] = None
    imagen_s3_llave: Optional[str] = None
    propuesta: Optional[str] = None
    activo: bool = True
    creado_el: Optional[str] = None
    actualizado_el: Optional[str] = None
    votos_count: Optional[int] = None


class Voto(ApiModel):
    id: str
    fecha_voto: str


class EstadoVoto(ApiModel):
    """Datos de ``/voto-usuario``: si el usuario ya votó y por quién."""

    ha_votado: bool = False
    candidato: Optional[Candidato] = None
    voto: Optional[Voto] = None


class ResultadoCandidato(ApiModel):
    candidato_id: int
    nombre: str
    descripcion: Optional[str] = None
    imagen_s3_llave: Optional[str] = None
    votos: int = Field(ge=0)
    porcentaje: float = 0.0


class EstadisticasVotacion(ApiModel):
    """Resultados agregados; recalculados por la API en cada consulta.

    English: Aggregated results; recomputed by the API on every fetch.
    """

    resultados: List[ResultadoCandidato] = Field(default_factory=list)
    total_votos: int = Field(default=0, ge=0)


class Votante(ApiModel):
    voto_id: str
    fecha_voto: str
    usuario_id: int
    nombre_completo: str
    apellido_paterno: Optional[str] = None
    apellido_materno: Optional[str] = None
    rfc: str
    candidato_id: int
    candidato_nombre: str


class Respuesta(ApiModel, Generic[T]):
    """Sobre ``{success, data, error}`` usado por la API.

    English: ``{success, data, error}`` envelope used by the API.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    message: Optional[str] = None


class LoginForm(BaseModel):
    """Formulario de acceso: solo RFC.

    English: Login form, RFC only.
    """

    rfc: str

    @field_validator("rfc")
    @classmethod
    def rfc_requerido(cls, value: str) -> str:
        cleaned = value.strip().upper()
        if not cleaned:
            raise ValueError("El RFC es requerido")
        return cleaned
