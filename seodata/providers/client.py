"""
DataForSEO API Client

Async HTTP client with:
- Connection pooling (one pooled client per process)
- Automatic retry with exponential backoff on 429/5xx
- No retry on timeouts (the cache serves stale data instead)
- Strict envelope validation
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

# DataForSEO status codes
STATUS_OK = 20000
STATUS_TASK_CREATED = 20100
STATUS_NO_RESULTS = 40102


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 2
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)


class ProviderError(Exception):
    """Upstream provider failure. Absorbed by the cache's stale fallback."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
        self.retryable = retryable


class ProviderTimeout(ProviderError):
    """The provider did not answer within the configured timeout."""


class MalformedProviderData(ProviderError):
    """The provider answered, but not with a usable envelope."""


class DataForSEOClient:
    """
    Async client for DataForSEO API.

    Usage:
        client = DataForSEOClient(login="your_login", password="your_password")

        response = await client.post("dataforseo_labs/google/ranked_keywords/live", [{
            "target": "example.com",
            "location_name": "United States",
            "language_name": "English",
        }])
        result = extract_result(response, "dataforseo_labs/google/ranked_keywords/live")

        await client.close()
    """

    BASE_URL = "https://api.dataforseo.com/v3"

    def __init__(
        self,
        login: str,
        password: str,
        retry_config: Optional[RetryConfig] = None,
        max_connections: int = 20,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize DataForSEO client.

        Args:
            login: DataForSEO login email
            password: DataForSEO API password
            retry_config: Retry configuration (optional)
            max_connections: Maximum concurrent connections
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout

        credentials = f"{login}:{password}"
        auth_token = base64.b64encode(credentials.encode()).decode()

        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers={
                "Authorization": f"Basic {auth_token}",
                "Content-Type": "application/json",
            },
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(max_connections // 2, 1),
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def post(
        self,
        endpoint: str,
        data: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Make POST request to DataForSEO API.

        Args:
            endpoint: API endpoint path (e.g., "dataforseo_labs/google/ranked_keywords/live")
            data: Request payload (list of task objects)

        Returns:
            Validated API response envelope

        Raises:
            ProviderTimeout: Request exceeded the timeout
            MalformedProviderData: Response is not a DataForSEO envelope
            ProviderError: HTTP, API-level or task-level error
        """
        if self._closed:
            raise ProviderError("Client is closed", endpoint=endpoint)

        return await self._request_with_retry(endpoint, data)

    async def _make_request(self, endpoint: str, data: List[Dict]) -> Dict[str, Any]:
        """Make a single HTTP request and validate the envelope."""
        logger.debug(f"POST /{endpoint}")

        try:
            response = await self._client.post(f"/{endpoint}", json=data)
        except httpx.TimeoutException as e:
            raise ProviderTimeout(
                f"Request timed out after {self.timeout}s: {e}", endpoint=endpoint
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"HTTP error: {e}", endpoint=endpoint, retryable=True)

        if response.status_code != 200:
            raise ProviderError(
                f"API request failed: {response.status_code}",
                status_code=response.status_code,
                endpoint=endpoint,
                retryable=response.status_code in self.retry_config.retryable_status_codes,
            )

        try:
            result = response.json()
        except ValueError:
            raise MalformedProviderData("Response body is not JSON", endpoint=endpoint)

        if not isinstance(result, dict):
            raise MalformedProviderData("Response body is not an object", endpoint=endpoint)

        # API-level errors
        if result.get("status_code") != STATUS_OK:
            raise ProviderError(
                f"API error: {result.get('status_message', 'Unknown error')}",
                status_code=result.get("status_code"),
                endpoint=endpoint,
            )

        tasks = result.get("tasks")
        if not isinstance(tasks, list):
            raise MalformedProviderData("Response has no tasks list", endpoint=endpoint)

        # Task-level errors
        for task in tasks:
            if not isinstance(task, dict):
                raise MalformedProviderData("Task is not an object", endpoint=endpoint)
            task_status = task.get("status_code")
            if task_status not in (STATUS_OK, STATUS_TASK_CREATED, STATUS_NO_RESULTS):
                raise ProviderError(
                    f"Task error: {task.get('status_message', 'Task error')}",
                    status_code=task_status,
                    endpoint=endpoint,
                )

        return result

    async def _request_with_retry(self, endpoint: str, data: List[Dict]) -> Dict[str, Any]:
        """Make request with automatic retry on retryable failures."""
        delay = self.retry_config.initial_delay

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                return await self._make_request(endpoint, data)
            except ProviderError as e:
                if not e.retryable or attempt >= self.retry_config.max_retries:
                    raise

                logger.warning(
                    f"Request to {endpoint} failed (attempt {attempt + 1}/"
                    f"{self.retry_config.max_retries + 1}): {e}. Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
                delay = min(
                    delay * self.retry_config.exponential_base,
                    self.retry_config.max_delay,
                )

        # range() always runs at least once and either returns or raises
        raise ProviderError("Retries exhausted", endpoint=endpoint)

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# =============================================================================
# ENVELOPE HELPERS
# =============================================================================

def extract_result(response: Dict[str, Any], endpoint: str = "") -> Optional[Dict[str, Any]]:
    """
    Return the first result object of the first task.

    Returns None when the provider had nothing for the query (no tasks,
    "no search results" status, or an empty result list).

    Raises:
        MalformedProviderData: result or its first entry has the wrong type
    """
    tasks = response.get("tasks") or []
    if not tasks:
        return None

    task = tasks[0]
    if task.get("status_code") == STATUS_NO_RESULTS:
        return None

    result = task.get("result")
    if result is None:
        return None
    if not isinstance(result, list):
        raise MalformedProviderData("Task result is not a list", endpoint=endpoint)
    if not result or result[0] is None:
        return None
    if not isinstance(result[0], dict):
        raise MalformedProviderData("Task result entry is not an object", endpoint=endpoint)

    return result[0]


def extract_items(result: Optional[Dict[str, Any]], endpoint: str = "") -> List[Dict[str, Any]]:
    """
    Return result["items"], or [] when absent.

    Raises:
        MalformedProviderData: items is present but not a list
    """
    if result is None:
        return []

    items = result.get("items")
    if items is None:
        return []
    if not isinstance(items, list):
        raise MalformedProviderData("Result items is not a list", endpoint=endpoint)

    return [item for item in items if isinstance(item, dict)]
