"""Capa web: páginas, guardia de sesión y filtro IP.

English: Web layer: pages, session guard and IP filter.
"""

from votaciones.web.app import create_app

__all__ = ["create_app"]
