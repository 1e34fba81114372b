"""Aadhaar encryption at rest and masking."""
import pytest
from cryptography.fernet import Fernet

from sitebook import crypto
from sitebook.config import settings


@pytest.fixture
def fernet_key(monkeypatch):
    monkeypatch.setattr(settings, "encryption_key", Fernet.generate_key().decode())
    crypto.reset_cipher()
    yield
    crypto.reset_cipher()


def test_encrypt_roundtrip(fernet_key):
    token = crypto.encrypt("123456789012")
    assert token != "123456789012"
    assert crypto.decrypt(token) == "123456789012"


def test_plain_values_survive_decrypt(fernet_key):
    """Rows written before a key was configured read back unchanged."""
    assert crypto.decrypt("123456789012") == "123456789012"


def test_without_key_values_pass_through(monkeypatch):
    monkeypatch.setattr(settings, "encryption_key", None)
    crypto.reset_cipher()
    assert crypto.encrypt("123456789012") == "123456789012"


def test_masks():
    assert crypto.mask_aadhaar("1234 5678 9012") == "XXXX XXXX 9012"
    assert crypto.mask_aadhaar("12") == "XXXX"
