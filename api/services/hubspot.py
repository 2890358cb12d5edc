"""HTTP client for the HubSpot CRM, the system of record for contacts, bookings and exam sessions."""

import asyncio
from typing import Any, cast

import httpx

from api.logger import get_logger
from api.settings import settings


logger = get_logger(__name__)


class HubSpotError(Exception):
    """Base error for failed HubSpot requests."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class HubSpotNotFoundError(HubSpotError):
    """Raised when the requested object does not exist (or has been archived)."""


class HubSpotRateLimitError(HubSpotError):
    """Raised when HubSpot still rate limits the request after all retries."""


class HubSpotConnectionError(HubSpotError):
    """Raised when HubSpot could not be reached or did not answer in time."""


class HubSpotClient:
    def __init__(
        self,
        token: str,
        *,
        base_url: str = "https://api.hubapi.com",
        timeout: float = 10.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.http = http or httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def request(
        self, method: str, path: str, *, json: Any = None, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """
        Send a request to HubSpot and return the decoded response body.

        Rate limited requests (HTTP 429) are retried with exponential backoff. Every other failure is raised
        as a `HubSpotError` immediately.
        """

        attempt = 1
        while True:
            try:
                response = await self.http.request(method, path, json=json, params=params)
            except httpx.TimeoutException as e:
                raise HubSpotConnectionError(f"Request to {path} timed out") from e
            except httpx.HTTPError as e:
                raise HubSpotConnectionError(f"Request to {path} failed: {e}") from e

            if response.status_code == 429 and attempt < self.max_retries:
                delay = self.retry_delay * 2 ** (attempt - 1)
                logger.info(f"Rate limited, retrying {path} after {delay}s (attempt {attempt + 1}/{self.max_retries})")
                await asyncio.sleep(delay)
                attempt += 1
                continue

            break

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"HubSpot request {method} {path} failed with status {response.status_code}: {message}")
            if response.status_code == 404:
                raise HubSpotNotFoundError(message, 404)
            if response.status_code == 429:
                raise HubSpotRateLimitError(message, 429)
            raise HubSpotError(message, response.status_code)

        if response.status_code == 204 or not response.content:
            return {}
        return cast(dict[str, Any], response.json())

    async def get_object(
        self, object_type: str, object_id: str, properties: list[str], associations: list[str] | None = None
    ) -> dict[str, Any] | None:
        params: dict[str, Any] = {"properties": ",".join(properties)}
        if associations:
            params["associations"] = ",".join(associations)

        try:
            return await self.request("GET", f"/crm/v3/objects/{object_type}/{object_id}", params=params)
        except HubSpotNotFoundError:
            return None

    async def create_object(
        self, object_type: str, properties: dict[str, str], associations: list[dict[str, Any]] | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"properties": properties}
        if associations:
            payload["associations"] = associations
        return await self.request("POST", f"/crm/v3/objects/{object_type}", json=payload)

    async def update_object(self, object_type: str, object_id: str, properties: dict[str, str]) -> dict[str, Any]:
        return await self.request(
            "PATCH", f"/crm/v3/objects/{object_type}/{object_id}", json={"properties": properties}
        )

    async def archive_object(self, object_type: str, object_id: str) -> None:
        await self.request("DELETE", f"/crm/v3/objects/{object_type}/{object_id}")

    async def search_objects(
        self,
        object_type: str,
        filters: list[dict[str, Any]],
        properties: list[str],
        sorts: list[dict[str, str]] | None = None,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {"filterGroups": [{"filters": filters}], "properties": properties, "limit": limit}
        if sorts:
            payload["sorts"] = sorts
        response = await self.request("POST", f"/crm/v3/objects/{object_type}/search", json=payload)
        return cast(list[dict[str, Any]], response.get("results") or [])

    async def batch_read_objects(self, object_type: str, ids: list[str], properties: list[str]) -> list[dict[str, Any]]:
        response = await self.request(
            "POST",
            f"/crm/v3/objects/{object_type}/batch/read",
            json={"inputs": [{"id": i} for i in ids], "properties": properties},
        )
        return cast(list[dict[str, Any]], response.get("results") or [])

    async def batch_update_objects(self, object_type: str, inputs: list[dict[str, Any]]) -> list[dict[str, Any]]:
        response = await self.request("POST", f"/crm/v3/objects/{object_type}/batch/update", json={"inputs": inputs})
        return _write_results(response)

    async def batch_read_associations(self, from_type: str, ids: list[str], to_type: str) -> list[dict[str, Any]]:
        response = await self.request(
            "POST",
            f"/crm/v4/associations/{from_type}/{to_type}/batch/read",
            json={"inputs": [{"id": i} for i in ids]},
        )
        return cast(list[dict[str, Any]], response.get("results") or [])

    async def batch_create_associations(
        self, from_type: str, to_type: str, inputs: list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        response = await self.request(
            "POST", f"/crm/v4/associations/{from_type}/{to_type}/batch/create", json={"inputs": inputs}
        )
        return _write_results(response)

    async def batch_archive_associations(self, from_type: str, to_type: str, inputs: list[dict[str, Any]]) -> None:
        await self.request("POST", f"/crm/v4/associations/{from_type}/{to_type}/batch/archive", json={"inputs": inputs})


def _write_results(response: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Return the results of a batch write.

    HubSpot answers partially failed batches with `207 Multi-Status` and lists the rejected inputs in `errors`,
    so a successful status code alone does not mean that every input was written.
    """

    if errors := response.get("errors"):
        message = errors[0].get("message") or "unknown error"
        raise HubSpotError(f"Batch write failed for {response.get('numErrors') or len(errors)} input(s): {message}")
    return cast(list[dict[str, Any]], response.get("results") or [])


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.reason_phrase

    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase


hubspot = HubSpotClient(
    settings.hubspot_token,
    base_url=settings.hubspot_base_url,
    timeout=settings.hubspot_timeout,
    max_retries=settings.hubspot_max_retries,
    retry_delay=settings.hubspot_retry_delay,
)
