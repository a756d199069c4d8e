# apbrowse/activitypub/actor.py
"""
The local actor's published profile.

Peers verifying our request signatures dereference the keyId, which points
into this document. It is built once at startup and served read-only.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict

from .keys import Identity

ACTIVITY_JSON = "application/activity+json"

CONTEXT = [
    "https://www.w3.org/ns/activitystreams",
    "https://w3id.org/security/v1",
]


@dataclass(frozen=True)
class SignablePublicKey:
    """Public key material as advertised to peers."""
    id: str
    owner: str
    public_key_pem: str

    @classmethod
    def from_identity(cls, identity: Identity) -> "SignablePublicKey":
        return cls(
            id=identity.key_id,
            owner=identity.owner,
            public_key_pem=identity.public_key_pem,
        )

    def to_activitypub(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "publicKeyPem": self.public_key_pem,
        }


@dataclass(frozen=True)
class ActorDocument:
    """
    An ActivityPub Person describing the local identity.

    Attributes:
        id: Actor URI (the root URI)
        preferred_username: Handle without domain
        name: Display name
        inbox: {id}/inbox
        outbox: {id}/outbox
        followers: {id}/followers
        public_key: Key used to verify our signatures
    """
    id: str
    preferred_username: str
    name: str
    inbox: str
    outbox: str
    followers: str
    public_key: SignablePublicKey

    @classmethod
    def from_identity(
        cls,
        identity: Identity,
        preferred_username: str = "",
        name: str = "",
    ) -> "ActorDocument":
        """Build the actor document for an identity; its owner is the actor id."""
        root = identity.owner
        return cls(
            id=root,
            preferred_username=preferred_username,
            name=name,
            inbox=f"{root}/inbox",
            outbox=f"{root}/outbox",
            followers=f"{root}/followers",
            public_key=SignablePublicKey.from_identity(identity),
        )

    def to_activitypub(self) -> Dict[str, Any]:
        """Return ActivityPub JSON-LD representation."""
        return {
            "@context": list(CONTEXT),
            "type": "Person",
            "id": self.id,
            "preferredUsername": self.preferred_username,
            "name": self.name,
            "inbox": self.inbox,
            "outbox": self.outbox,
            "followers": self.followers,
            "publicKey": self.public_key.to_activitypub(),
        }

    def to_json(self, indent: int = None) -> str:
        return json.dumps(self.to_activitypub(), indent=indent)
