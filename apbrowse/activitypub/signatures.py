# apbrowse/activitypub/signatures.py
"""
HTTP Signatures for outbound requests.

Implements the draft-cavage signing discipline used across the fediverse:
a signature base string is built from an ordered list of components, hashed
with SHA-256 and signed with the actor's RSA key using PKCS#1 v1.5. Remote
servers rebuild the same string from the request they receive, so component
order and name casing must be reproduced byte for byte.

Example base string:

    (request-target): get /users/alice
    host: example.test
    date: Sun, 06 Nov 1994 08:49:37 GMT
"""

import base64
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Dict, Mapping, Optional, Sequence
from urllib.parse import urlsplit

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from ..errors import SigningError
from .keys import Identity

ALGORITHM = "rsa-sha256"
REQUEST_TARGET = "(request-target)"
DEFAULT_COMPONENTS = (REQUEST_TARGET, "host", "date")


def http_date(now: Optional[datetime] = None) -> str:
    """Format a timestamp as an RFC 7231 IMF-fixdate (always GMT)."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return format_datetime(now.astimezone(timezone.utc), usegmt=True)


def request_target(method: str, uri: str) -> str:
    """Value of the (request-target) pseudo-header: lower method and path."""
    parts = urlsplit(uri)
    target = parts.path or "/"
    if parts.query:
        target = f"{target}?{parts.query}"
    return f"{method.lower()} {target}"


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup."""
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def signature_base_string(
    method: str,
    uri: str,
    headers: Mapping[str, str],
    components: Sequence[str] = DEFAULT_COMPONENTS,
) -> str:
    """
    Build the canonical string that gets signed.

    Args:
        method: HTTP method
        uri: Absolute request URI
        headers: Request headers (any casing)
        components: Ordered component names to cover

    Returns:
        Newline-joined "name: value" lines, names lower-cased

    Raises:
        SigningError: if a covered header is missing
    """
    lines = []
    for component in components:
        name = component.lower()
        if name == REQUEST_TARGET:
            value = request_target(method, uri)
        else:
            value = _header(headers, name)
            if value is None:
                raise SigningError(f"Cannot sign request: missing {name} header")
        lines.append(f"{name}: {value}")
    return "\n".join(lines)


def signature_header(key_id: str, components: Sequence[str], signature: str) -> str:
    """Format the Signature header value."""
    covered = " ".join(c.lower() for c in components)
    return (
        f'keyId="{key_id}",'
        f'algorithm="{ALGORITHM}",'
        f'headers="{covered}",'
        f'signature="{signature}"'
    )


def sign_string(identity: Identity, data: str) -> str:
    """Sign data with RSASSA-PKCS1-v1_5 over SHA-256, returning base64."""
    try:
        signature_bytes = identity.private_key.sign(
            data.encode("utf-8"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except (AttributeError, TypeError, ValueError, UnsupportedAlgorithm) as e:
        raise SigningError(f"Cannot sign request: {e}") from e
    return base64.b64encode(signature_bytes).decode("ascii")


def sign_request(
    method: str,
    uri: str,
    identity: Identity,
    headers: Optional[Mapping[str, str]] = None,
    now: Optional[datetime] = None,
    components: Sequence[str] = DEFAULT_COMPONENTS,
) -> Dict[str, str]:
    """
    Produce the headers that authenticate a request as coming from identity.

    Adds Date (unless already present), Host (from the URI authority) and
    Signature. The input headers are not modified.

    Args:
        method: HTTP method
        uri: Absolute request URI
        identity: Signing identity
        headers: Existing request headers
        now: Timestamp for the Date header (defaults to current UTC time)
        components: Ordered components covered by the signature

    Returns:
        New header dict including the signature

    Raises:
        SigningError: if the URI has no host or the key cannot sign
    """
    host = urlsplit(uri).netloc
    if not host:
        raise SigningError(f"Cannot sign request: no host in {uri!r}")

    signed = {
        key: value
        for key, value in (headers or {}).items()
        if key.lower() != "host"
    }
    signed["Host"] = host
    if _header(signed, "date") is None:
        signed["Date"] = http_date(now)

    base = signature_base_string(method, uri, signed, components)
    signature = sign_string(identity, base)
    signed["Signature"] = signature_header(identity.key_id, components, signature)
    return signed
