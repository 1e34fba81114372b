"""KYC field encryption/decryption and masking - aadhaar number, phone"""
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from sitebook.config import settings

logger = logging.getLogger(__name__)

_fernet_instance: Optional[Fernet] = None


def _fernet() -> Optional[Fernet]:
    """ENCRYPTION_KEY must be a Fernet key (32 bytes urlsafe base64, 44 chars); generate with Fernet.generate_key()"""
    global _fernet_instance
    if _fernet_instance is not None:
        return _fernet_instance
    key = settings.encryption_key
    if not key or len(key) < 44:
        return None
    try:
        _fernet_instance = Fernet(key.encode("utf-8") if isinstance(key, str) else key)
        return _fernet_instance
    except ValueError:
        logger.warning("ENCRYPTION_KEY is not a valid Fernet key; KYC fields stay in plain text")
        return None


def reset_cipher() -> None:
    """Drop the cached cipher so a changed ENCRYPTION_KEY takes effect (tests)."""
    global _fernet_instance
    _fernet_instance = None


def encrypt(plain: Optional[str]) -> Optional[str]:
    """Encrypt; returns the value unchanged when no key is configured or it is empty"""
    if not plain:
        return plain
    f = _fernet()
    if not f:
        return plain
    return f.encrypt(plain.encode("utf-8")).decode("utf-8")


def decrypt(cipher: Optional[str]) -> Optional[str]:
    """Decrypt; values written before a key was configured are returned as-is"""
    if not cipher:
        return cipher
    f = _fernet()
    if not f:
        return cipher
    try:
        return f.decrypt(cipher.encode("utf-8")).decode("utf-8")
    except InvalidToken:
        return cipher


def mask_aadhaar(value: Optional[str]) -> str:
    """Aadhaar mask: only the last 4 digits, grouped like the printed card"""
    digits = "".join(ch for ch in (value or "") if ch.isdigit())
    if len(digits) < 4:
        return "XXXX"
    return "XXXX XXXX " + digits[-4:]


def mask_phone(value: Optional[str]) -> str:
    if not value or len(value) < 4:
        return "****"
    return "******" + value[-4:]
