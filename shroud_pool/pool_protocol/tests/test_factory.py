"""
Tests for deployment-time verifier selection.
"""

from __future__ import annotations

import json

import pytest

from shroud_pool.pool_protocol import get_verifier
from shroud_pool.pool_protocol.adapters.mock_adapter import MockVerifier
from shroud_pool.pool_protocol.exceptions import ConfigurationError
from shroud_pool.pool_protocol.factory import VERIFIER_REGISTRY, _load_verifier_class
from shroud_pool.pool_protocol.snark.assets import VK_FILENAME
from shroud_pool.pool_protocol.snark.backend import ProductionVerifier
from shroud_pool.pool_protocol.snark.serialization import verifying_key_to_json


@pytest.fixture
def vk_file(tmp_path, trapdoor_setup):
    path = tmp_path / VK_FILENAME
    path.write_text(json.dumps(verifying_key_to_json(trapdoor_setup.vk)))
    return path


def test_registry_entries_load():
    for name in VERIFIER_REGISTRY:
        assert _load_verifier_class(name) is not None


def test_mock_via_env(monkeypatch):
    monkeypatch.setenv("SHROUD_POOL_VERIFIER", "mock")
    verifier = get_verifier()
    assert isinstance(verifier, MockVerifier)
    assert verifier.is_mock


def test_mock_logs_warning(caplog):
    with caplog.at_level("WARNING"):
        get_verifier(prefer="mock")
    assert "MockVerifier" in caplog.text


def test_mock_refused_in_production(monkeypatch):
    monkeypatch.setenv("SHROUD_POOL_ENV", "production")
    with pytest.raises(ConfigurationError):
        get_verifier(prefer="mock")


def test_groth16_with_explicit_path(vk_file):
    verifier = get_verifier(prefer="groth16", vk_path=vk_file)
    assert isinstance(verifier, ProductionVerifier)
    assert not verifier.is_mock


def test_groth16_from_env_directory(monkeypatch, vk_file):
    monkeypatch.setenv("SHROUD_VK_PATH", str(vk_file.parent))
    assert isinstance(get_verifier(), ProductionVerifier)


def test_groth16_allowed_in_production(monkeypatch, vk_file):
    monkeypatch.setenv("SHROUD_POOL_ENV", "production")
    monkeypatch.setenv("SHROUD_VK_PATH", str(vk_file))
    assert isinstance(get_verifier(), ProductionVerifier)


def test_missing_verifying_key(monkeypatch, tmp_path):
    monkeypatch.setenv("SHROUD_VK_PATH", str(tmp_path / "absent.json"))
    monkeypatch.setattr(
        "shroud_pool.pool_protocol.snark.assets._default_params_dir",
        lambda: tmp_path / "no-params",
    )
    with pytest.raises(ConfigurationError):
        get_verifier(prefer="groth16")


def test_invalid_variant():
    with pytest.raises(ValueError):
        get_verifier(prefer="stark")
