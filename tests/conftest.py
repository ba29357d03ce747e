"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.fixtures.gateway_mocks import ScriptedGateway

CERTIFICATE = "-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----\n"


@pytest.fixture
def gateway() -> ScriptedGateway:
    """Gateway double that accepts everything unless scripted otherwise."""
    return ScriptedGateway()


@pytest.fixture
def certificate() -> str:
    return CERTIFICATE


@pytest.fixture
def certificate_file(tmp_path: Path) -> Path:
    """Certificate file on disk for configuration tests."""
    path = tmp_path / "gateway.pem"
    _ = path.write_text(CERTIFICATE)
    return path
