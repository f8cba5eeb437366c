"""
PII field encryption.

AES-256-GCM with a random 12 byte IV per value. Stored format is
``cipherHex:ivHex`` where cipherHex is ciphertext followed by the 16 byte
GCM tag. Keys come from ``settings.PII_ENC_KEYS`` (newest first) or the
single ``settings.PII_ENC_KEY``; the first key encrypts, every key is tried
when decrypting so old tokens keep working through a rotation.
"""
import base64
import binascii
import logging
import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .exceptions import DecryptError

logger = logging.getLogger(__name__)

IV_BYTES = 12
TAG_BYTES = 16
FORMAT = 'hex_concat_iv'

_HEX_RE = re.compile(r'^[0-9a-fA-F]+$')


def parse_key(raw):
    raw = (raw or '').strip()
    if re.fullmatch(r'[0-9a-fA-F]{64}', raw):
        return bytes.fromhex(raw)
    try:
        key = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        key = b''
    if len(key) in (16, 24, 32):
        return key
    raise ImproperlyConfigured(
        "PII encryption keys must be 64 hex chars or base64 yielding 16/24/32 bytes"
    )


def key_ring():
    raw_keys = list(getattr(settings, 'PII_ENC_KEYS', None) or [])
    single = getattr(settings, 'PII_ENC_KEY', '')
    if not raw_keys and single:
        raw_keys = [single]
    if not raw_keys:
        raise ImproperlyConfigured("PII_ENC_KEYS / PII_ENC_KEY is not configured")
    return [parse_key(k) for k in raw_keys]


def encrypt(value):
    if value is None:
        return ''
    primary = key_ring()[0]
    iv = os.urandom(IV_BYTES)
    sealed = AESGCM(primary).encrypt(iv, str(value).encode('utf-8'), None)
    return f"{sealed.hex()}:{iv.hex()}"


def looks_like_token(value):
    parts = str(value).split(':')
    if len(parts) == 2:
        return all(p and _HEX_RE.match(p) for p in parts)
    return False


def _legacy_parts(value):
    """Old ``iv:ct:tag`` base64 layout, or None if value is not shaped like it."""
    parts = str(value).split(':')
    if len(parts) != 3:
        return None
    try:
        iv, ct, tag = (base64.b64decode(p, validate=True) for p in parts)
    except (binascii.Error, ValueError):
        return None
    if len(iv) != IV_BYTES or len(tag) != TAG_BYTES:
        return None
    return iv, ct + tag


def _open(iv, sealed):
    for key in key_ring():
        try:
            return AESGCM(key).decrypt(iv, sealed, None).decode('utf-8')
        except InvalidTag:
            continue
    raise DecryptError("Encrypted field did not authenticate with any configured key")


def decrypt(token):
    """
    Decrypt a stored token.

    Values that are not shaped like a token are returned unchanged so rows
    written before encryption was switched on still read back.
    """
    if not token:
        return ''
    token = str(token)

    if looks_like_token(token):
        cipher_hex, iv_hex = token.split(':')
        try:
            sealed = bytes.fromhex(cipher_hex)
            iv = bytes.fromhex(iv_hex)
        except ValueError as exc:
            raise DecryptError(f"Malformed token: {exc}") from exc
        if len(iv) != IV_BYTES:
            raise DecryptError(f"Invalid IV length {len(iv)}, expected {IV_BYTES}")
        if len(sealed) < TAG_BYTES:
            raise DecryptError("Cipher data too short")
        return _open(iv, sealed)

    legacy = _legacy_parts(token)
    if legacy is not None:
        return _open(*legacy)

    return token


def safe_decrypt(token, fallback=''):
    """decrypt() that never raises; listing code uses this per field."""
    if not token:
        return fallback
    try:
        return decrypt(token)
    except (DecryptError, ImproperlyConfigured) as exc:
        logger.debug("PII decrypt failed, using fallback: %s", exc)
        return fallback


def reencrypt(token):
    """Re-seal a token (or legacy plaintext) under the current primary key."""
    if not token:
        return token
    return encrypt(decrypt(token))
