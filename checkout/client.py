"""
HTTP client for the Square Connect v2 REST API.

Only the calls the storefront and checkout need are wrapped. Every method
returns the decoded JSON record(s) as plain dicts and raises a
SquareAPIError subclass when the call fails, so views never inspect HTTP
responses themselves.
"""

import logging
from typing import Any

import requests
from requests import Response

from orders_payments.env import getEnvConfig

logger = logging.getLogger(__name__)

# HTTP status codes below this are considered successful
HTTP_SUCCESS_THRESHOLD = 400
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


class SquareAPIError(Exception):
    """A call to Square failed. ``errors`` is Square's own ``errors`` list."""

    def __init__(self, message: str, status_code: int | None = None, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []

    @property
    def codes(self) -> list[str]:
        return [error.get("code", "") for error in self.errors]


class SquareConnectionError(SquareAPIError):
    """Square could not be reached (DNS, refused connection, timeout...)."""


class SquareNotFoundError(SquareAPIError):
    """The requested order or location does not exist."""


class SquareConflictError(SquareAPIError):
    """The order was modified since it was read (stale ``version``)."""


class SquareClient:
    """Thin wrapper around the Square REST endpoints used by the checkout."""

    def __init__(
        self,
        access_token: str,
        base_url: str,
        api_version: str,
        timeout: int = 30,
        session: requests.Session | None = None,
    ):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self.session = session or requests.Session()

    # Orders

    def create_order(self, location_id: str, body: dict[str, Any]) -> dict[str, Any]:
        payload = dict(body)
        payload["order"] = {**body.get("order", {}), "location_id": location_id}
        return self._request("POST", "/v2/orders", payload)["order"]

    def batch_retrieve_orders(self, location_id: str, order_ids: list[str]) -> list[dict[str, Any]]:
        data = self._request(
            "POST",
            "/v2/orders/batch-retrieve",
            {"location_id": location_id, "order_ids": order_ids},
        )
        return data.get("orders", [])

    def update_order(self, location_id: str, order_id: str, body: dict[str, Any]) -> dict[str, Any]:
        payload = dict(body)
        payload["order"] = {**body.get("order", {}), "location_id": location_id}
        return self._request("PUT", f"/v2/orders/{order_id}", payload)["order"]

    # Locations

    def retrieve_location(self, location_id: str) -> dict[str, Any]:
        return self._request("GET", f"/v2/locations/{location_id}")["location"]

    # Payments

    def create_payment(self, body: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/v2/payments", body)["payment"]

    # Catalog

    def list_catalog(self, types: str = "ITEM") -> list[dict[str, Any]]:
        """Return every catalog object of ``types``, following the pagination cursor."""
        objects = []
        params = {"types": types}
        while True:
            data = self._request("GET", "/v2/catalog/list", params=params)
            objects.extend(data.get("objects", []))
            cursor = data.get("cursor")
            if not cursor:
                return objects
            params = {"types": types, "cursor": cursor}

    def _build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Square-Version": self.api_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        logger.debug("Square %s %s", method, endpoint)

        try:
            response = self.session.request(
                method=method,
                url=url,
                json=data,
                params=params,
                headers=self._build_headers(),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning("Square %s %s failed to connect: %s", method, endpoint, e)
            raise SquareConnectionError(f"Could not reach Square: {e}") from e

        if response.status_code < HTTP_SUCCESS_THRESHOLD:
            return self._parse_success_response(response)

        raise self._error_from_response(method, endpoint, response)

    @staticmethod
    def _parse_success_response(response: Response) -> dict[str, Any]:
        try:
            return response.json()
        except ValueError:
            return {}

    @staticmethod
    def _error_from_response(method: str, endpoint: str, response: Response) -> SquareAPIError:
        try:
            errors = response.json().get("errors", [])
        except ValueError:
            errors = []

        detail = "; ".join(error.get("detail") or error.get("code", "") for error in errors)
        message = f"Square {method} {endpoint} returned HTTP {response.status_code}"
        if detail:
            message = f"{message}: {detail}"

        logger.warning(message)

        if response.status_code == HTTP_NOT_FOUND:
            error_class = SquareNotFoundError
        elif response.status_code == HTTP_CONFLICT or "VERSION_MISMATCH" in [e.get("code") for e in errors]:
            error_class = SquareConflictError
        else:
            error_class = SquareAPIError
        return error_class(message, status_code=response.status_code, errors=errors)


def get_square_client() -> SquareClient:
    """Build a client from the environment configuration."""
    env_config = getEnvConfig()
    return SquareClient(
        access_token=env_config.SQUARE_ACCESS_TOKEN,
        base_url=env_config.get_square_base_url(),
        api_version=env_config.SQUARE_API_VERSION,
        timeout=env_config.SQUARE_REQUEST_TIMEOUT,
    )
