# apbrowse/fetch.py
"""
Signed retrieval of ActivityPub documents.

Every request carries an HTTP Signature from the local identity, since many
servers refuse unsigned fetches ("authorized fetch"). Error statuses are not
failures here: a 404 or 410 body is still a document worth reading.
"""

import json
import logging
import time
from dataclasses import dataclass
from http.client import HTTPException
from typing import List, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlsplit, urlunsplit
from urllib.request import HTTPRedirectHandler, OpenerDirector, Request, build_opener

from . import __version__
from .activitypub.actor import ACTIVITY_JSON
from .activitypub.keys import Identity
from .activitypub.signatures import sign_request
from .errors import BodyReadError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3.0
USER_AGENT = f"apbrowse/{__version__}"
CHUNK_SIZE = 8192

# Characters left alone when an IRI is percent-encoded for the wire.
_URI_SAFE = "/%:@!$&'()*+,;=?~-._"
_JSON_WHITESPACE = " \t\n\r"

# Headers that must be recomputed when a request is re-signed.
_SIGNED_HEADERS = ("Host", "Date", "Signature")


@dataclass(frozen=True)
class FetchResult:
    """
    A fetched document.

    Attributes:
        uri: Requested URI
        status_code: HTTP status
        body: Raw response body
        text: Indented JSON, or the raw body decoded if it is not JSON
        content_type: Response Content-Type
        is_json: Whether the body parsed as JSON
    """
    uri: str
    status_code: int
    body: bytes
    text: str
    content_type: str = ""
    is_json: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def lines(self) -> List[str]:
        return self.text.split("\n")


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def indent_json(text: str, indent: str = "  ") -> str:
    """
    Re-indent a valid JSON text.

    Works token by token, so every token is kept as written: duplicate keys,
    number spellings and string escapes all survive.
    """
    out = []
    depth = 0
    in_string = False
    escaped = False
    i, n = 0, len(text)
    while i < n:
        c = text[i]
        if in_string:
            out.append(c)
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
        elif c == '"':
            in_string = True
            out.append(c)
        elif c in "{[":
            j = i + 1
            while j < n and text[j] in _JSON_WHITESPACE:
                j += 1
            if j < n and text[j] in "}]":
                out.append(c + text[j])
                i = j
            else:
                depth += 1
                out.append(c + "\n" + indent * depth)
        elif c in "}]":
            depth -= 1
            out.append("\n" + indent * depth + c)
        elif c == ",":
            out.append(",\n" + indent * depth)
        elif c == ":":
            out.append(": ")
        elif c not in _JSON_WHITESPACE:
            out.append(c)
        i += 1
    return "".join(out)


def pretty_json(body: bytes) -> Tuple[str, bool]:
    """
    Indent a JSON body for display.

    Returns (text, is_json). Anything that is not strict JSON (malformed,
    NaN/Infinity literals, nested too deeply to parse) comes back as the
    decoded raw body so the user still sees what the server sent.
    """
    try:
        text = body.decode("utf-8")
        json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return body.decode("utf-8", errors="replace"), False
    return indent_json(text), True


def iri_to_uri(iri: str) -> str:
    """
    Percent-encode the non-ASCII parts of an IRI.

    Links such as https://host/tags/café appear verbatim in documents; the
    request line and the signed (request-target) both use the encoded form.
    Existing %-escapes are left untouched.
    """
    if iri.isascii():
        return iri
    parts = urlsplit(iri)
    netloc = parts.netloc
    if not netloc.isascii():
        try:
            netloc = netloc.encode("idna").decode("ascii")
        except UnicodeError as e:
            raise TransportError(f"Invalid host in {iri!r}: {e}") from e
    return urlunsplit((
        parts.scheme,
        netloc,
        quote(parts.path, safe=_URI_SAFE),
        quote(parts.query, safe=_URI_SAFE),
        quote(parts.fragment, safe=_URI_SAFE),
    ))


class SigningRedirectHandler(HTTPRedirectHandler):
    """Re-sign redirected requests so Host and signature match the new URI."""

    def __init__(self, identity: Identity):
        self.identity = identity

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        new_req = super().redirect_request(req, fp, code, msg, headers, newurl)
        if new_req is None:
            return None

        for name in _SIGNED_HEADERS:
            new_req.remove_header(name)
        signed = sign_request(
            new_req.get_method(),
            newurl,
            self.identity,
            dict(new_req.header_items()),
        )
        for name in _SIGNED_HEADERS:
            new_req.add_header(name, signed[name])

        logger.debug(f"Following {code} redirect to {newurl}")
        return new_req


class FetchPipeline:
    """
    Fetches documents as the local actor.

    Usage:
        pipeline = FetchPipeline(identity)
        result = pipeline.fetch("https://example.test/users/alice")
        print(result.status_code, result.text)

    Args:
        identity: Identity that signs every request
        timeout: Per-request timeout in seconds
        opener: urllib opener (defaults to one that re-signs redirects)
    """

    def __init__(
        self,
        identity: Identity,
        timeout: float = DEFAULT_TIMEOUT,
        opener: Optional[OpenerDirector] = None,
    ):
        self.identity = identity
        self.timeout = timeout
        self.opener = opener or build_opener(SigningRedirectHandler(identity))

    def build_request(self, uri: str) -> Request:
        """Create the signed GET request for uri."""
        wire_uri = iri_to_uri(uri)
        try:
            request = Request(wire_uri, method="GET")
        except ValueError as e:
            raise TransportError(f"Invalid URI {uri!r}: {e}") from e

        headers = sign_request(
            "GET",
            wire_uri,
            self.identity,
            {"Accept": ACTIVITY_JSON, "User-Agent": USER_AGENT},
        )
        for name, value in headers.items():
            request.add_header(name, value)
        return request

    def fetch(self, uri: str) -> FetchResult:
        """
        Fetch uri and prepare it for display.

        Raises:
            TransportError: connection failure, timeout, invalid URI
            SigningError: the request could not be signed
            BodyReadError: the body could not be read completely
        """
        request = self.build_request(uri)
        logger.info(f"GET {uri}")
        # The timeout bounds the whole exchange, not each socket operation.
        deadline = time.monotonic() + self.timeout

        try:
            response = self.opener.open(request, timeout=self.timeout)
        except HTTPError as e:
            # Error statuses still carry a readable document.
            response = e
        except URLError as e:
            raise TransportError(f"Request to {uri} failed: {e.reason}") from e
        except (HTTPException, OSError, UnicodeError) as e:
            raise TransportError(f"Request to {uri} failed: {e}") from e

        with response:
            status_code = response.getcode()
            headers = response.headers
            content_type = headers.get("Content-Type", "") if headers else ""
            declared = headers.get("Content-Length", "") if headers else ""
            body = self._read_body(response, uri, deadline)

        if declared.isdigit() and len(body) < int(declared):
            raise BodyReadError(
                f"Could not read response from {uri}: got {len(body)} of {declared} bytes"
            )

        logger.debug(f"{uri} -> {status_code} ({len(body)} bytes, {content_type or 'no type'})")

        text, is_json = pretty_json(body)
        return FetchResult(
            uri=uri,
            status_code=status_code,
            body=body,
            text=text,
            content_type=content_type,
            is_json=is_json,
        )

    def _read_body(self, response, uri: str, deadline: float) -> bytes:
        chunks = []
        while True:
            if time.monotonic() > deadline:
                raise TransportError(f"Request to {uri} failed: timed out")
            try:
                chunk = response.read1(CHUNK_SIZE)
            except TimeoutError as e:
                raise TransportError(f"Request to {uri} failed: timed out") from e
            except (HTTPException, OSError) as e:
                raise BodyReadError(f"Could not read response from {uri}: {e}") from e
            if not chunk:
                return b"".join(chunks)
            chunks.append(chunk)
