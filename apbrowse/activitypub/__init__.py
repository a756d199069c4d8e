# apbrowse/activitypub/__init__.py
"""
ActivityPub identity for apbrowse.

Core concepts:
- Identity: the process's RSA key pair and the actor URI that owns it
- ActorDocument: the Person profile peers fetch to find our public key
- HTTP Signatures: proof that an outbound request comes from the identity
"""

from .keys import Identity, ensure_identity, public_key_pem
from .actor import ACTIVITY_JSON, ActorDocument, SignablePublicKey
from .signatures import sign_request, signature_base_string, http_date

__all__ = [
    "Identity",
    "ensure_identity",
    "public_key_pem",
    "ACTIVITY_JSON",
    "ActorDocument",
    "SignablePublicKey",
    "sign_request",
    "signature_base_string",
    "http_date",
]
