"""
Pytest configuration and fixtures for shared coin tests.
"""

import os

import pytest

from crypto.keys import PrivateKey
from scripts.encoding import compile_script, encode_script_num
from scripts.opcodes import ScriptOpcode
from sharedcoin.stakeholder import Stakeholder


def checksig_script(private_key: PrivateKey) -> bytes:
    """<x-only pubkey> OP_CHECKSIG tapscript for a key."""
    return compile_script([private_key.public_key().x_only, ScriptOpcode.OP_CHECKSIG])


@pytest.fixture
def make_checksig():
    return checksig_script


@pytest.fixture
def alice_key():
    return PrivateKey(b'\x01' * 32)


@pytest.fixture
def bob_key():
    return PrivateKey(b'\x02' * 32)


@pytest.fixture
def carol_key():
    return PrivateKey(b'\x03' * 32)


@pytest.fixture
def alice(alice_key):
    """Alice locks 1 BTC into the shared coin."""
    return Stakeholder(scripts=(checksig_script(alice_key),), amount=1_0000_0000)


@pytest.fixture
def bob(bob_key):
    """Bob locks 0.5 BTC into the shared coin."""
    return Stakeholder(scripts=(checksig_script(bob_key),), amount=5000_0000)


@pytest.fixture
def carol(carol_key):
    """Carol has two alternative scripts and locks 0.2 BTC."""
    return Stakeholder(
        scripts=(
            checksig_script(carol_key),
            compile_script([encode_script_num(144), ScriptOpcode.OP_CHECKSEQUENCEVERIFY, ScriptOpcode.OP_DROP,
                            carol_key.public_key().x_only, ScriptOpcode.OP_CHECKSIG]),
        ),
        amount=2000_0000,
    )


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Run with no config files and no SHAREDCOIN_ variables in scope."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in list(os.environ):
        if key.startswith("SHAREDCOIN_"):
            monkeypatch.delenv(key)
    return tmp_path


# Test markers for different test categories
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# Pytest collection hooks
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test paths."""
    for item in items:
        if "unit" in str(item.path):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.path):
            item.add_marker(pytest.mark.integration)

        if "slow" in item.name or "large" in item.name:
            item.add_marker(pytest.mark.slow)
