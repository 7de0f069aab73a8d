"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/votaciones/cli.py`.
Línea de comandos: arranque del servidor web y diagnóstico del filtro IP.

Componentes detectados:
  - main
  - serve
  - check_ip
  - bloque_main

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- Priorizar claridad operativa y trazabilidad del comportamiento.

======================== ENGLISH ========================
File: `src/votaciones/cli.py`.
Command line: web server startup and IP filter diagnostics.

Detected components:
  - main
  - serve
  - check_ip
  - bloque_main

Notes:
- Keep this header in sync with structural changes in the file.
- Prioritize operational clarity and behavior traceability.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from votaciones.config import load_config
from votaciones.errors import ConfiguracionError
from votaciones.logging import setup_logging
from votaciones.web.middleware import invalid_networks, is_address_allowed

app = typer.Typer(help="AMCE Votaciones CLI")


@app.callback()
def main() -> None:
    """Interfaz de línea de comandos de Votaciones.

    English: Votaciones command line interface.
    """


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Interfaz de escucha / Bind host."),
    port: int = typer.Option(8000, help="Puerto / Port."),
    reload: bool = typer.Option(False, help="Recarga automática (solo desarrollo) / Auto reload."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Ruta al YAML de configuración / YAML config path."),
) -> None:
    """Arranca la aplicación web con uvicorn.

    English: Start the web application with uvicorn.
    """
    if config is not None:
        # La fábrica vuelve a leer la ruta desde el entorno.
        os.environ["VOTACIONES_CONFIG"] = str(config)
    try:
        settings = load_config(config)
    except ConfiguracionError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc

    logger = setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    logger.info("server_starting", host=host, port=port, dev_mode=settings.DEV_MODE)
    uvicorn.run(
        "votaciones.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        proxy_headers=True,
        log_config=None,
    )


@app.command("check-ip")
def check_ip(
    address: str = typer.Argument(..., help="Dirección IPv4 a evaluar / IPv4 address to check."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Ruta al YAML de configuración / YAML config path."),
) -> None:
    """Indica si una dirección pasaría el filtro IP configurado.

    English: Report whether an address would pass the configured IP filter.
    Exit code 1 when the address would be redirected to /acceso-denegado.
    """
    try:
        settings = load_config(config)
    except ConfiguracionError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc

    for entry in invalid_networks(settings.ALLOWED_NETWORKS):
        typer.secho(f"Entrada inválida ignorada: {entry}", fg=typer.colors.YELLOW, err=True)

    if not settings.IP_FILTER_ENABLED:
        typer.echo(f"{address}: permitida (filtro desactivado)")
        return
    if is_address_allowed(address, settings.ALLOWED_NETWORKS, settings.DEV_MODE):
        typer.echo(f"{address}: permitida")
        return
    typer.echo(f"{address}: denegada")
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
