# apbrowse - Terminal browser for ActivityPub documents with HTTP Signatures
#
# Fetches actors and objects as a signed-in actor and lets the user follow
# the links inside them, one document at a time.
#
# Core concepts:
# - Identity: RSA key pair and actor URI used to sign every request
# - FetchPipeline: signed GET returning an indented, displayable document
# - NavigationEngine: history stack and the decisions about what to fetch
# - ActorServer: publishes the actor document so peers can verify us

__version__ = "0.1.0"

from .errors import (
    ApBrowseError,
    ConfigError,
    IdentityError,
    KeyGenerationError,
    KeyIOError,
    KeyParseError,
    NavigationError,
    SigningError,
    TransportError,
    BodyReadError,
)
from .activitypub import Identity, ActorDocument, ensure_identity, sign_request
from .fetch import FetchPipeline, FetchResult
from .links import LineTarget, extract_link
from .navigation import NavigationEngine, NavigationState, Phase
from .server import ActorServer

__all__ = [
    # Errors
    "ApBrowseError",
    "ConfigError",
    "IdentityError",
    "KeyGenerationError",
    "KeyIOError",
    "KeyParseError",
    "NavigationError",
    "SigningError",
    "TransportError",
    "BodyReadError",
    # Identity
    "Identity",
    "ActorDocument",
    "ensure_identity",
    "sign_request",
    # Browsing
    "FetchPipeline",
    "FetchResult",
    "LineTarget",
    "extract_link",
    "NavigationEngine",
    "NavigationState",
    "Phase",
    "ActorServer",
]
