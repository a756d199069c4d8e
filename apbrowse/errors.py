# apbrowse/errors.py
"""
Exception hierarchy.

Identity errors are raised while the process starts up and are fatal:
without a key no request can be signed. Navigation errors are contained
within a single fetch and surface on the status line.
"""


class ApBrowseError(Exception):
    """Base class for all apbrowse errors."""


class ConfigError(ApBrowseError):
    """Invalid configuration file or value."""


class IdentityError(ApBrowseError):
    """The signing identity could not be established."""


class KeyGenerationError(IdentityError):
    """Generating a new keypair failed."""


class KeyIOError(IdentityError):
    """Reading or writing the key file failed."""


class KeyParseError(IdentityError):
    """The persisted key material is malformed."""


class NavigationError(ApBrowseError):
    """A single navigation attempt failed."""


class SigningError(NavigationError):
    """The outbound request could not be signed."""


class TransportError(NavigationError):
    """Connection, timeout or protocol failure."""


class BodyReadError(NavigationError):
    """The response body was truncated or unreadable."""
