# apbrowse/activitypub/keys.py
"""
Signing identity and key-file lifecycle.

The process has exactly one identity: an RSA key pair stored as a PEM file
plus the actor URI that owns it. The key is generated on first run and
loaded on every run after that. It is never rotated or overwritten.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..errors import KeyGenerationError, KeyIOError, KeyParseError

logger = logging.getLogger(__name__)

KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537
DEFAULT_KEY_PATH = Path("private_key.pem")


@dataclass(frozen=True)
class Identity:
    """
    The local actor's signing identity.

    Attributes:
        private_key: RSA private key used for request signatures
        owner: Actor URI the key belongs to
    """
    private_key: rsa.RSAPrivateKey
    owner: str = ""

    @property
    def key_id(self) -> str:
        """Key ID advertised in the actor document and Signature header."""
        return f"{self.owner}#main-key"

    @property
    def public_key_pem(self) -> str:
        return public_key_pem(self)


def generate_private_key() -> rsa.RSAPrivateKey:
    """Generate a new RSA-2048 private key."""
    try:
        return rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=KEY_SIZE,
        )
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyGenerationError(f"Failed to generate RSA key: {e}") from e


def private_key_bytes(private_key: rsa.RSAPrivateKey) -> bytes:
    """Serialize a private key as unencrypted PKCS#8 PEM."""
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def save_private_key(private_key: rsa.RSAPrivateKey, path: Path | str) -> Path:
    """
    Write a private key to a new PEM file.

    The file is created exclusively with owner-only permissions. An
    existing file is never replaced; FileExistsError is raised instead.
    """
    path = Path(path)
    pem = private_key_bytes(private_key)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise KeyIOError(f"Cannot create key directory {path.parent}: {e}") from e

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError:
        raise
    except OSError as e:
        raise KeyIOError(f"Cannot create key file {path}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            f.write(pem)
    except OSError as e:
        # A partial key would fail every later start with KeyParseError.
        path.unlink(missing_ok=True)
        raise KeyIOError(f"Cannot write key file {path}: {e}") from e

    logger.info(f"Saved new private key to {path}")
    return path


def load_private_key(path: Path | str) -> rsa.RSAPrivateKey:
    """Load an RSA private key from a PEM file."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise KeyIOError(f"Cannot read key file {path}: {e}") from e

    try:
        private_key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyParseError(f"Malformed key file {path}: {e}") from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise KeyParseError(f"Key file {path} does not hold an RSA private key")

    return private_key


def ensure_identity(path: Path | str = DEFAULT_KEY_PATH, owner: str = "") -> Identity:
    """
    Load the identity at path, generating and persisting it if absent.

    Args:
        path: PEM file holding the private key
        owner: Actor URI the key belongs to

    Returns:
        Identity backed by the persisted key

    Raises:
        KeyGenerationError, KeyIOError, KeyParseError
    """
    path = Path(path)

    if not path.exists():
        logger.info(f"No key at {path}, generating a new one")
        try:
            save_private_key(generate_private_key(), path)
        except FileExistsError:
            # Created by someone else in the meantime: load theirs.
            logger.debug(f"Key file {path} appeared before write, loading it")

    return Identity(private_key=load_private_key(path), owner=owner)


def public_key_pem(identity: Identity) -> str:
    """Serialize the identity's public key as SubjectPublicKeyInfo PEM."""
    pem = identity.private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return pem.decode("utf-8")
