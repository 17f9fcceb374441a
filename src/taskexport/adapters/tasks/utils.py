"""Shared helpers for task provider adapters."""

from __future__ import annotations

import base64
import binascii
import json
import os
from pathlib import Path
from typing import Any, Dict

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from taskexport.ports.tasks.provider import TaskProviderError

AES_MODES = {"aes-256-gcm", "aes256gcm", "aes_gcm"}
_NONCE_SIZE = 12
_TAG_SIZE = 16


def read_snapshot(
    path: str,
    *,
    mode: str | None = None,
    key: str | None = None,
    key_env: str | None = None,
) -> Any:
    """Load a JSON snapshot, decrypting it first when ``mode`` is given."""

    file_path = Path(path)
    if not file_path.exists():
        raise TaskProviderError(f"snapshot not found at {file_path}")

    try:
        payload_text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TaskProviderError(f"tasks.export.read_failed: cannot read snapshot {file_path}: {exc}") from exc
    if not mode:
        return _loads_json(payload_text)

    mode = mode.lower().strip()
    secret = _resolve_key(key=key, key_env=key_env)

    if mode == "xor":
        blob = _b64decode(payload_text, "encrypted snapshot is not valid base64")
        return _loads_json_bytes(_xor_cipher(blob, secret.encode("utf-8")))

    if mode in AES_MODES:
        key_bytes = _decode_key_bytes(secret)
        if len(key_bytes) not in {16, 24, 32}:
            raise TaskProviderError("aes-gcm key must be 16, 24 or 32 bytes")
        blob = _b64decode(payload_text, "aes-gcm snapshot is not valid base64")
        if len(blob) <= _NONCE_SIZE + _TAG_SIZE:
            raise TaskProviderError("aes-gcm snapshot payload too short")
        try:
            decrypted = AESGCM(key_bytes).decrypt(blob[:_NONCE_SIZE], blob[_NONCE_SIZE:], None)
        except InvalidTag as exc:
            raise TaskProviderError("aes-gcm decryption failed") from exc
        return _loads_json_bytes(decrypted)

    raise TaskProviderError(f"tasks.export.config_invalid: unsupported encryption mode '{mode}'")


def parse_encryption(
    options: Dict[str, Any],
    *,
    label: str,
    block: str,
    legacy_flag: str,
    legacy_key: str,
    legacy_key_env: str,
) -> tuple[str | None, str | None, str | None]:
    """Return ``(mode, key, key_env)`` from a provider options mapping."""

    encryption_opts = options.get(block)
    if encryption_opts is not None and not isinstance(encryption_opts, dict):
        raise TaskProviderError(f"{label} provider {block} must be object")
    if encryption_opts:
        mode = encryption_opts.get("mode", "xor")
        if not isinstance(mode, str) or not mode:
            raise TaskProviderError(f"{label} provider {block}.mode must be string")
        return mode.lower(), encryption_opts.get("key"), encryption_opts.get("key_env")
    if options.get(legacy_flag):
        return "xor", options.get(legacy_key), options.get(legacy_key_env)
    return None, None, None


def _resolve_key(*, key: str | None, key_env: str | None) -> str:
    if key:
        return key
    if key_env:
        value = os.environ.get(key_env)
        if value:
            return value
        raise TaskProviderError(f"encryption key environment variable '{key_env}' is not set")
    raise TaskProviderError("encrypted snapshots require 'key' or 'key_env'")


def _b64decode(text: str, message: str) -> bytes:
    try:
        return base64.b64decode(text)
    except (binascii.Error, ValueError) as exc:
        raise TaskProviderError(message) from exc


def _xor_cipher(data: bytes, key: bytes) -> bytes:
    if not key:
        raise TaskProviderError("encryption key must not be empty")
    key_len = len(key)
    return bytes(b ^ key[i % key_len] for i, b in enumerate(data))


def _decode_key_bytes(secret: str) -> bytes:
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError):
        pass
    try:
        return bytes.fromhex(secret)
    except ValueError:
        return secret.encode("utf-8")


def _loads_json(payload: str) -> Any:
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        raise TaskProviderError("snapshot is not valid JSON") from exc


def _loads_json_bytes(payload: bytes) -> Any:
    try:
        return json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TaskProviderError("decrypted snapshot is not valid JSON") from exc


__all__ = ["AES_MODES", "parse_encryption", "read_snapshot"]
