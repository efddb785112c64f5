"""
CloudFlare API client.

This module implements the read-only subset of the CloudFlare API v4 needed
to back up zones. Both API Token and legacy Global API Key authentication
are supported.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import ValidationError

from cloudflare_backup.models import Envelope

if TYPE_CHECKING:
    from types import TracebackType
    from typing import Self

    from cloudflare_backup.config import ApiConfig


T = TypeVar("T")


logger = logging.getLogger(__name__)


class APIError(Exception):
    """
    Exception raised when a CloudFlare API request fails.

    Attributes
    ----------
    path : str
        The requested resource path.
    status_code : int | None
        HTTP status code, if a response was received.
    errors : list[str]
        Errors reported in the response envelope.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str,
        status_code: int | None = None,
        errors: list[str] | None = None,
    ) -> None:
        self.path = path
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)


class TooManyResultsError(APIError):
    """Raised when a listing does not fit in the single page requested."""


def build_headers(config: ApiConfig) -> dict[str, str]:
    """
    Build the authentication headers for a configuration.

    Parameters
    ----------
    config : ApiConfig
        API configuration holding exactly one kind of credential.

    Returns
    -------
    dict[str, str]
        Request headers.
    """
    headers = {"Content-Type": "application/json"}
    if config.uses_global_key:
        headers["X-Auth-Email"] = config.email or ""
        headers["X-Auth-Key"] = config.key or ""
    else:
        headers["Authorization"] = f"Bearer {config.token or config.key}"
    return headers


class CloudFlareClient:
    """
    Synchronous CloudFlare API client.

    Issues one GET at a time and decodes every response into an
    :class:`~cloudflare_backup.models.Envelope`. Use as a context manager
    so the underlying connection pool is closed.
    """

    def __init__(
        self,
        config: ApiConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Parameters
        ----------
        config : ApiConfig
            API configuration (credential, base URL, timeout).
        transport : httpx.BaseTransport | None, optional
            Transport override, mainly for tests.
        """
        self._client = httpx.Client(
            base_url=config.base_url,
            headers=build_headers(config),
            timeout=config.timeout,
            transport=transport,
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def get(
        self,
        path: str,
        params: dict[str, str],
        result_type: Any,
    ) -> Envelope[T]:
        """
        Fetch a resource and decode its envelope.

        Parameters
        ----------
        path : str
            Resource path relative to the base URL (e.g. "zones").
        params : dict[str, str]
            Query parameters.
        result_type : Any
            Type of the envelope payload (e.g. ``list[Zone]``).

        Returns
        -------
        Envelope[T]
            The decoded, successful envelope.

        Raises
        ------
        APIError
            On transport failure, an undecodable body or an unsuccessful
            envelope.
        """
        try:
            response = self._client.get(path, params=params)
        except httpx.RequestError as e:
            msg = f"Network request failed for {path}: {e}"
            raise APIError(msg, path=path) from e

        logger.debug(
            "[cloudflare] GET %s?%s -> %d",
            path,
            response.request.url.query.decode(),
            response.status_code,
        )

        try:
            envelope: Envelope[T] = Envelope[result_type].model_validate_json(  # type: ignore[valid-type]
                response.content,
            )
        except ValidationError as e:
            msg = (
                f"Invalid response for {path} "
                f"(HTTP {response.status_code}): {e.error_count()} validation error(s)"
            )
            logger.debug("[cloudflare] Response: %s", response.text)
            raise APIError(msg, path=path, status_code=response.status_code) from e

        if not envelope.success:
            msg = f"Request for {path} failed: {'; '.join(envelope.errors)}"
            raise APIError(
                msg,
                path=path,
                status_code=response.status_code,
                errors=envelope.errors,
            )

        for message in envelope.messages:
            logger.info("[cloudflare] %s", message)

        return envelope


def ensure_single_page(envelope: Envelope[Any], what: str, path: str) -> None:
    """
    Check that a listing was returned in full.

    Parameters
    ----------
    envelope : Envelope[Any]
        The listing envelope.
    what : str
        Human-readable description of the limit, used in the error message
        (e.g. "accounts with more than 50 zones").
    path : str
        The requested resource path.

    Raises
    ------
    TooManyResultsError
        If the page holds fewer items than the total count.
    """
    info = envelope.result_info
    if info is None:
        return
    if info.count != info.total_count:
        msg = f"This program currently does not support {what}."
        raise TooManyResultsError(msg, path=path)
