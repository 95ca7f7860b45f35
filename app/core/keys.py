"""
Key provider: load the RSA key pair used to sign and verify JWTs.

Keys come either from settings (KEY_SOURCE=static) or from a HashiCorp Vault
KV engine over its HTTP API (KEY_SOURCE=vault). The pair is loaded once at
startup; any failure raises KeyMaterialError and the app refuses to start.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from app.core.errors import KeyMaterialError

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

PEM_PREFIX = "-----BEGIN"


@dataclass(frozen=True)
class KeyPair:
    """Process-wide signing material. Never mutated after load."""

    public_key: rsa.RSAPublicKey
    private_key: rsa.RSAPrivateKey


def generate_key_pair(bits: int = 2048) -> KeyPair:
    """Create a fresh RSA key pair (for provisioning and tests)."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
    return KeyPair(public_key=private_key.public_key(), private_key=private_key)


def encode_public_key(public_key: rsa.RSAPublicKey) -> str:
    """Base64 of the X.509 SubjectPublicKeyInfo DER encoding."""
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return base64.b64encode(der).decode("ascii")


def encode_private_key(private_key: rsa.RSAPrivateKey) -> str:
    """Base64 of the unencrypted PKCS#8 DER encoding."""
    der = private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return base64.b64encode(der).decode("ascii")


def _decode_der(text: str, what: str) -> bytes:
    try:
        return base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyMaterialError(f"{what} is neither PEM nor valid base64 DER.", cause=e) from e


def parse_public_key(text: str) -> rsa.RSAPublicKey:
    """Parse an RSA public key from PEM text or base64 DER."""
    text = (text or "").strip()
    if not text:
        raise KeyMaterialError("Public key is empty.")
    try:
        if text.startswith(PEM_PREFIX):
            key = serialization.load_pem_public_key(text.encode("utf-8"))
        else:
            key = serialization.load_der_public_key(_decode_der(text, "Public key"))
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyMaterialError("Public key could not be parsed.", cause=e) from e
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyMaterialError("Public key is not an RSA key.")
    return key


def parse_private_key(text: str) -> rsa.RSAPrivateKey:
    """Parse an unencrypted RSA private key from PEM text or base64 PKCS#8 DER."""
    text = (text or "").strip()
    if not text:
        raise KeyMaterialError("Private key is empty.")
    try:
        if text.startswith(PEM_PREFIX):
            key = serialization.load_pem_private_key(text.encode("utf-8"), password=None)
        else:
            key = serialization.load_der_private_key(
                _decode_der(text, "Private key"), password=None
            )
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyMaterialError("Private key could not be parsed.", cause=e) from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyMaterialError("Private key is not an RSA key.")
    return key


def build_key_pair(public_text: str, private_text: str) -> KeyPair:
    """Parse both halves and check that they belong together."""
    public_key = parse_public_key(public_text)
    private_key = parse_private_key(private_text)
    if private_key.public_key().public_numbers() != public_key.public_numbers():
        raise KeyMaterialError("Public key does not match private key.")
    return KeyPair(public_key=public_key, private_key=private_key)


def _load_static(settings: Settings) -> KeyPair:
    if settings.JWT_PUBLIC_KEY is None or settings.JWT_PRIVATE_KEY is None:
        raise KeyMaterialError(
            "JWT_PUBLIC_KEY and JWT_PRIVATE_KEY must be set when KEY_SOURCE=static."
        )
    return build_key_pair(
        settings.JWT_PUBLIC_KEY.get_secret_value(),
        settings.JWT_PRIVATE_KEY.get_secret_value(),
    )


def _read_vault_secret(client: httpx.Client, base_url: str, path: str, field: str) -> str:
    """Read one field of a KV secret. Accepts KV v1 and KV v2 response bodies."""
    url = f"{base_url}/v1/{path}"
    try:
        resp = client.get(url)
    except httpx.HTTPError as e:
        raise KeyMaterialError(f"Vault request for '{path}' failed.", cause=e) from e
    if resp.status_code != 200:
        raise KeyMaterialError(
            f"Vault returned status {resp.status_code} for '{path}'. Check Vault and restart."
        )
    try:
        body: Any = resp.json()
    except ValueError as e:
        raise KeyMaterialError(f"Vault response for '{path}' is not valid JSON.", cause=e) from e

    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, dict):
        raise KeyMaterialError(f"Vault response for '{path}' has no data.")
    # KV v2 nests the secret one level deeper.
    if field not in data and isinstance(data.get("data"), dict):
        data = data["data"]
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise KeyMaterialError(f"Vault secret '{path}' is missing field '{field}'.")
    return value


def _load_vault(settings: Settings, client: httpx.Client | None = None) -> KeyPair:
    if not settings.VAULT_ADDR:
        raise KeyMaterialError("VAULT_ADDR must be set when KEY_SOURCE=vault.")
    if settings.VAULT_TOKEN is None or not settings.VAULT_TOKEN.get_secret_value().strip():
        raise KeyMaterialError("VAULT_TOKEN must be set when KEY_SOURCE=vault.")

    owns_client = client is None
    if client is None:
        client = httpx.Client(
            headers={"X-Vault-Token": settings.VAULT_TOKEN.get_secret_value()},
            timeout=httpx.Timeout(settings.VAULT_REQUEST_TIMEOUT_SEC),
        )
    try:
        public_text = _read_vault_secret(
            client,
            settings.VAULT_ADDR,
            settings.VAULT_PUBLIC_KEY_PATH,
            settings.VAULT_PUBLIC_KEY_FIELD,
        )
        private_text = _read_vault_secret(
            client,
            settings.VAULT_ADDR,
            settings.VAULT_PRIVATE_KEY_PATH,
            settings.VAULT_PRIVATE_KEY_FIELD,
        )
    finally:
        if owns_client:
            client.close()
    return build_key_pair(public_text, private_text)


def load_key_pair(settings: Settings, client: httpx.Client | None = None) -> KeyPair:
    """
    Load the signing key pair from the configured source.

    Raises KeyMaterialError on any failure; callers at startup should let it abort the process.
    """
    try:
        if settings.KEY_SOURCE == "vault":
            pair = _load_vault(settings, client=client)
        else:
            pair = _load_static(settings)
    except KeyMaterialError as e:
        logger.error("Failed to load JWT key material (source=%s): %s", settings.KEY_SOURCE, e.message)
        raise
    logger.info(
        "Loaded JWT key material (source=%s, key_size=%s)",
        settings.KEY_SOURCE,
        pair.public_key.key_size,
    )
    return pair
