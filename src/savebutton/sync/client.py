"""
Remote Store Client -- the account server's file API.

    GET  {server}/api/v1/{email}/{collection}                 listing
    GET  {server}/api/v1/{email}/{collection}/{filename}      file bytes
    POST {server}/api/v1/{email}/{collection}/{filename}      multipart "file"
    GET  {server}/api/v1/{email}/words                        anga dirs
    GET  {server}/api/v1/{email}/words/{anga}                 words listing
    GET  {server}/api/v1/{email}/words/{anga}/{filename}      words file

Every request carries HTTP Basic auth. No timeout is set; a stalled
server stalls the pass that is talking to it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional
from urllib.parse import quote

import requests

from ..config import Credentials
from ..errors import AuthenticationFailure, TransportFailure
from .listing import mime_type_for, parse_file_listing
from .models import Collection, CollectionKind

logger = logging.getLogger("savebutton.sync.client")


class PushOutcome(str, Enum):
    """How the server took an upload. Both count as success."""

    CREATED = "created"
    DUPLICATE = "duplicate"


def encode_segment(value: str) -> str:
    """Percent-encode one path segment (everything but unreserved chars)."""
    return quote(value, safe="")


class RemoteStore:
    """Authenticated client for one account on one server.

    Args:
        credentials: Server, email and plaintext password.
        session: Optional pre-built ``requests.Session`` (tests pass a
            double here).
    """

    def __init__(
        self,
        credentials: Credentials,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.credentials = credentials
        self.session = session or requests.Session()
        self.session.auth = (credentials.email, credentials.password)

    @property
    def base_url(self) -> str:
        server = self.credentials.server.rstrip("/")
        return f"{server}/api/v1/{encode_segment(self.credentials.email)}"

    def collection_url(self, collection: Collection) -> str:
        if collection.kind == CollectionKind.WORDS and collection.anga_name is not None:
            return f"{self.base_url}/words/{encode_segment(collection.anga_name)}"
        return f"{self.base_url}/{collection.kind.value}"

    def file_url(self, collection: Collection, filename: str, encode: bool) -> str:
        name = encode_segment(filename) if encode else filename
        return f"{self.collection_url(collection)}/{name}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """Send one request and classify the response.

        409 is returned to the caller untouched; it only means something
        for uploads.

        Raises:
            AuthenticationFailure: On HTTP 401.
            TransportFailure: On any other non-2xx status or network error.
        """
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise TransportFailure(f"HTTP error: {exc}") from exc

        status = response.status_code
        if 200 <= status < 300 or status == 409:
            return response
        if status == 401:
            raise AuthenticationFailure(
                "Authentication failed - check your email and password",
                status_code=status,
            )
        raise TransportFailure(
            f"Server returned status {status} for {method} {url}",
            status_code=status,
        )

    def _get(self, url: str) -> requests.Response:
        response = self._request("GET", url)
        if response.status_code == 409:
            raise TransportFailure(
                f"Server returned status 409 for GET {url}", status_code=409
            )
        return response

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_files(self, collection: Collection) -> set[str]:
        """Fetch the server's filenames for a collection."""
        return parse_file_listing(self._get(self.collection_url(collection)).text)

    def list_words(self) -> set[str]:
        """Fetch the anga names that have words on the server."""
        return parse_file_listing(self._get(f"{self.base_url}/words").text)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def fetch(self, collection: Collection, filename: str) -> bytes:
        """Download one file.

        Anga and meta names are sent exactly as the listing gave them;
        words names are percent-encoded like the rest of the nested path.
        """
        encode = collection.kind == CollectionKind.WORDS
        return self._get(self.file_url(collection, filename, encode=encode)).content

    def push(self, collection: Collection, filename: str, content: bytes) -> PushOutcome:
        """Upload one file as multipart field ``file``.

        Returns:
            CREATED on 2xx, DUPLICATE on 409.

        Raises:
            ValueError: For a download-only collection.
        """
        if not collection.uploads:
            raise ValueError(f"{collection.label} is download-only")

        files = {"file": (filename, content, mime_type_for(filename))}
        response = self._request(
            "POST", self.file_url(collection, filename, encode=True), files=files
        )
        if response.status_code == 409:
            logger.debug("Server already has %s/%s", collection.label, filename)
            return PushOutcome.DUPLICATE
        return PushOutcome.CREATED

    def check_connection(self) -> None:
        """Confirm the server accepts these credentials.

        Raises:
            AuthenticationFailure: Wrong email or password.
            TransportFailure: Server unreachable or unhappy.
        """
        url = self.collection_url(Collection.anga())
        logger.info("Testing connection to %s", url)
        self._get(url)
        logger.info("Connection test successful")

    def close(self) -> None:
        self.session.close()
