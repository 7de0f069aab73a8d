"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `tests/test_ip_filter.py`.
Pruebas del filtro IP: aritmética CIDR, extracción de la IP del cliente y
redirección 307 a /acceso-denegado.

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.

======================== ENGLISH ========================
File: `tests/test_ip_filter.py`.
IP filter tests: CIDR arithmetic, client IP extraction and the 307 redirect
to /acceso-denegado.

Notes:
- Keep this header in sync with structural changes in the file.
"""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from votaciones.web.app import create_app
from votaciones.web.middleware import (
    extract_client_ip,
    invalid_networks,
    ip_in_cidr,
    ip_to_int,
    is_address_allowed,
)


def _request(headers=None, client=("203.0.113.9", 5000)) -> Request:
    raw_headers = [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers, "client": client})


def test_ip_to_int_big_endian():
    assert ip_to_int("0.0.0.1") == 1
    assert ip_to_int("1.0.0.0") == 16777216
    assert ip_to_int("192.168.1.10") == 3232235786


@pytest.mark.parametrize(
    ("address", "cidr", "expected"),
    [
        ("192.168.1.10", "192.168.1.0/24", True),
        ("192.168.2.10", "192.168.1.0/24", False),
        ("10.20.30.40", "10.0.0.0/8", True),
        ("8.8.8.8", "0.0.0.0/0", True),
        ("127.0.0.1", "127.0.0.1", True),
        ("127.0.0.2", "127.0.0.1", False),
        ("192.168.1.10", "192.168.1.0/33", False),
        ("not-an-ip", "10.0.0.0/8", False),
        ("10.0.0.1", "garbage/8", False),
        ("::1", "10.0.0.0/8", False),
    ],
)
def test_ip_in_cidr(address, cidr, expected):
    assert ip_in_cidr(address, cidr) is expected


def test_dev_mode_admits_local_and_unknown_addresses():
    assert is_address_allowed("127.0.0.1", [], dev_mode=True) is True
    assert is_address_allowed("::1", [], dev_mode=True) is True
    assert is_address_allowed("192.168.0.5", [], dev_mode=True) is True
    assert is_address_allowed("unknown", [], dev_mode=True) is True
    assert is_address_allowed("8.8.8.8", [], dev_mode=True) is False
    assert is_address_allowed("127.0.0.1", [], dev_mode=False) is False


def test_invalid_networks_are_reported():
    assert invalid_networks(["10.0.0.0/8", "300.1.1.1", "10.0.0.0/40", "172.16.0.1"]) == [
        "300.1.1.1",
        "10.0.0.0/40",
    ]


def test_extract_client_ip_prefers_first_forwarded_hop():
    request = _request({"X-Forwarded-For": " 10.1.2.3 , 172.16.0.1"})

    assert extract_client_ip(request) == "10.1.2.3"


def test_extract_client_ip_falls_back_to_peer_then_unknown():
    assert extract_client_ip(_request()) == "203.0.113.9"
    assert extract_client_ip(_request(client=None)) == "unknown"


def _client(settings, **updates) -> TestClient:
    return TestClient(create_app(settings.model_copy(update=updates)))


def test_allowed_address_reaches_login_page(settings):
    client = _client(settings, IP_FILTER_ENABLED=True, ALLOWED_NETWORKS=["10.0.0.0/8"])

    response = client.get("/", headers={"X-Forwarded-For": "10.1.2.3, 198.51.100.1"})

    assert response.status_code == 200
    assert "Ingresa tu RFC" in response.text


def test_denied_address_is_redirected_with_307(settings, caplog):
    client = _client(settings, IP_FILTER_ENABLED=True, ALLOWED_NETWORKS=["10.0.0.0/8"])

    with caplog.at_level(logging.WARNING, logger="votaciones.middleware"):
        response = client.get("/votar", headers={"X-Forwarded-For": "198.51.100.7"}, follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/acceso-denegado"
    assert "ip_filter_denied ip=198.51.100.7" in caplog.text


def test_denied_page_and_api_bypass_the_filter(settings):
    client = _client(settings, IP_FILTER_ENABLED=True, ALLOWED_NETWORKS=["10.0.0.0/8"])
    headers = {"X-Forwarded-For": "198.51.100.7"}

    denegado = client.get("/", headers=headers)
    salud = client.get("/api/salud", headers=headers)

    assert denegado.status_code == 200
    assert "Acceso Denegado" in denegado.text
    assert salud.status_code == 200
    assert salud.json()["status"] == "ok"


def test_empty_allow_list_denies_everything(settings):
    client = _client(settings, IP_FILTER_ENABLED=True, ALLOWED_NETWORKS=[])

    response = client.get("/", headers={"X-Forwarded-For": "10.1.2.3"}, follow_redirects=False)

    assert response.status_code == 307


def test_dev_mode_lets_test_client_through(settings):
    client = _client(settings, IP_FILTER_ENABLED=True, ALLOWED_NETWORKS=[], DEV_MODE=True)

    assert client.get("/", follow_redirects=False).status_code == 200


def test_disabled_filter_passes_everything(settings):
    client = _client(settings, IP_FILTER_ENABLED=False, ALLOWED_NETWORKS=[])

    response = client.get("/", headers={"X-Forwarded-For": "198.51.100.7"}, follow_redirects=False)

    assert response.status_code == 200
