"""
HTTP transport for the WildFyre API.

Performs one synchronous JSON exchange per call. Connection failures are
retried a few times, then reported as ConnectivityError; refusals from the
server are reported as TransferError carrying the server's error body.
"""
import logging
import threading
from enum import Enum
from typing import Any, Dict, Optional

import requests
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.settings import settings
from wildfyre.errors import ConnectivityError, InvalidDocumentError, TransferError

logger = logging.getLogger("wildfyre.transport")


class Method(str, Enum):
    """HTTP methods used by the API."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"


class Transport:
    """
    Sends requests to the WildFyre API and decodes the JSON replies.

    Usage:
        transport = Transport()
        document = transport.request(Method.GET, "/users/42/", token=token)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        max_concurrent_requests: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the transport.

        Args:
            base_url: Root URL of the API, defaults to settings.api_base_url
            timeout: Seconds before a request is abandoned
            retry_attempts: Attempts made when the connection fails
            max_concurrent_requests: Cap on simultaneous exchanges
            session: requests.Session to reuse
        """
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.retry_attempts = max(
            1, retry_attempts if retry_attempts is not None else settings.connect_retry_attempts
        )
        self._session = session or requests.Session()
        self._semaphore = threading.Semaphore(
            max_concurrent_requests or settings.max_concurrent_requests
        )

    def request(
        self,
        method: Method,
        path: str,
        token: Optional[str] = None,
        body: Optional[Any] = None,
    ) -> Any:
        """
        Make one request and return the decoded JSON reply.

        Args:
            method: HTTP method
            path: Path below the API root, e.g. "/users/"
            token: Authentication token, if the endpoint requires one
            body: JSON-serializable request body

        Returns:
            The decoded JSON document, or None if the reply had no body

        Raises:
            ConnectivityError: The server could not be reached
            TransferError: The server refused the request
            InvalidDocumentError: The reply was not JSON
        """
        url = f"{self.base_url}{path}"
        headers = self._get_headers(token)

        try:
            response = self._send(method, url, headers, body)
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"{method.value} {path}: cannot reach the server ({e})")
            raise ConnectivityError(f"Cannot connect to the server: {url}") from e

        logger.debug(f"{method.value} {path} -> HTTP {response.status_code}")

        if response.status_code >= 400:
            raise TransferError(
                f"The server refused the request {method.value} {path}",
                document=_decode_or_none(response),
                status_code=response.status_code,
            )

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise InvalidDocumentError(
                f"The reply to {method.value} {path} is not JSON: {response.text[:500]}"
            ) from e

    def _send(
        self,
        method: Method,
        url: str,
        headers: Dict[str, str],
        body: Optional[Any],
    ) -> requests.Response:
        sender = retry(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
            reraise=True,
        )(self._send_once)
        return sender(method, url, headers, body)

    def _send_once(
        self,
        method: Method,
        url: str,
        headers: Dict[str, str],
        body: Optional[Any],
    ) -> requests.Response:
        # Limit concurrent API requests across foreground and background threads
        with self._semaphore:
            return self._session.request(
                method.value,
                url,
                headers=headers,
                json=body,
                timeout=self.timeout,
            )

    def _get_headers(self, token: Optional[str]) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "From": "lib-python",
        }
        if token is not None:
            headers["Authorization"] = f"token {token}"
        return headers

    def close(self) -> None:
        self._session.close()


def _decode_or_none(response: requests.Response) -> Optional[Any]:
    """Decode an error body, if it is JSON."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None
