"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votaciones/__init__.py`.
Paquete de la aplicación web de votaciones AMCE: inicio de sesión por RFC,
emisión de voto y estadísticas para administradores sobre la API REST externa.

Componentes detectados:
  - (sin componentes de nivel de módulo / no top-level components)

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.

======================== ENGLISH ========================
File: `src/votaciones/__init__.py`.
AMCE voting web application package: RFC login, vote casting and admin
statistics on top of the external REST API.

Detected components:
  - (sin componentes de nivel de módulo / no top-level components)

Notes:
- Keep this header in sync with structural changes in the file.
"""

__version__ = "0.3.0"
