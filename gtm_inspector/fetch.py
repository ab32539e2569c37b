"""HTTP fetch shell for the published container JavaScript."""

import logging
from typing import Optional

import httpx

from .config import FetchConfig


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "gtm-inspector/0.1 (+https://www.googletagmanager.com)"


class FetchError(Exception):
    """Base class for container download failures."""

    def __init__(self, container_id: str, message: str):
        super().__init__(message)
        self.container_id = container_id


class ContainerHTTPError(FetchError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, container_id: str, status_code: int):
        super().__init__(container_id, f"HTTP {status_code} fetching container {container_id}")
        self.status_code = status_code


class ContainerTransportError(FetchError):
    """The request never produced a response (DNS, connect, timeout)."""
    pass


def fetch_container_js(
    container_id: str,
    client: Optional[httpx.Client] = None,
    config: Optional[FetchConfig] = None
) -> str:
    """Download the compiled container JavaScript.

    Args:
        container_id: Public container id, e.g. ``GTM-ABC123``.
        client: Optional preconfigured client; one is created and closed
            per call when omitted.
        config: Fetch settings (endpoint, timeout, user agent).

    Returns:
        Response body text.

    Raises:
        ContainerHTTPError: On a non-2xx response.
        ContainerTransportError: On any transport-level failure.
    """
    config = config or FetchConfig()
    headers = {"User-Agent": config.user_agent or DEFAULT_USER_AGENT}
    owns_client = client is None
    if owns_client:
        client = httpx.Client(
            timeout=httpx.Timeout(timeout=config.timeout_seconds),
            follow_redirects=True
        )

    logger.debug(f"Fetching {config.endpoint}?id={container_id}")
    try:
        response = client.get(
            config.endpoint,
            params={"id": container_id},
            headers=headers,
            follow_redirects=True
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise ContainerHTTPError(container_id, e.response.status_code) from e
    except httpx.RequestError as e:
        raise ContainerTransportError(
            container_id, f"Request error fetching container {container_id}: {e}"
        ) from e
    finally:
        if owns_client:
            client.close()

    logger.info(f"Fetched {len(response.text)} characters for {container_id}")
    return response.text


class HttpContainerFetcher:
    """Callable fetcher bound to a configuration, injectable into the inspector."""

    def __init__(self, config: Optional[FetchConfig] = None, client: Optional[httpx.Client] = None):
        self.config = config or FetchConfig()
        self.client = client

    def __call__(self, container_id: str) -> str:
        return fetch_container_js(container_id, client=self.client, config=self.config)
