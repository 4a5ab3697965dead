"""Deal management API gateway.

One async method per remote operation, all sharing a single
``httpx.AsyncClient`` whose ``base_url`` and timeout come from settings:

  create_investor           POST  /deals/{deal_id}/investors
  update_investment         PATCH /deals/{deal_id}/investors/{investor_id}
  create_investor_profile   POST  /investor_profiles/{category}
  link_profile_to_investor  PATCH /deals/{deal_id}/investors/{profile_id}
  list_deals                GET   /deals
  list_investors            GET   /deals/{deal_id}/investors

Failures are normalised into the GatewayError family:
  - no response          → TransportError
  - non-2xx              → ApplicationError (message from the body if any)
  - 2xx without the id   → UnexpectedResponseShape

Nothing is retried here; the operator re-submits the step.
"""

import logging
from typing import Any, Literal

import httpx
from pydantic import BaseModel

from dealdesk.middleware.exceptions import (
    ApplicationError,
    TransportError,
    UnexpectedResponseShape,
)

logger = logging.getLogger(__name__)

Encoding = Literal["json", "form"]

ACCESS_BLOCKED_HINT = (
    "Access to the deal API is blocked upstream "
    "(deployment protection may still be enabled)"
)


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of an error response."""
    fallback = f"HTTP error, status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback

    if body.get("message"):
        return str(body["message"])
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if error:
        return str(error)
    return fallback


def _json_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        raise UnexpectedResponseShape(
            "Deal API returned a response that is not JSON",
            upstream_status=response.status_code,
        ) from None
    if not isinstance(body, dict):
        raise UnexpectedResponseShape(
            "Deal API returned an unexpected response",
            upstream_status=response.status_code,
        )
    return body


def _require_id(body: dict[str, Any], what: str, status_code: int) -> int | str:
    identifier = body.get("id")
    if identifier is None or identifier == "":
        raise UnexpectedResponseShape(
            f"Deal API did not return an id for the {what}",
            upstream_status=status_code,
        )
    return identifier


class DealApiGateway:
    """Stateless request/response wrapper around the deal management API."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def _request(
        self,
        method: str,
        path: str,
        payload: BaseModel | dict | None = None,
        encoding: Encoding = "json",
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {}
        if payload is not None:
            data = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else payload
            if encoding == "form":
                kwargs["data"] = {k: str(v) for k, v in data.items()}
            else:
                kwargs["json"] = data

        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning("Deal API unreachable: %s %s (%s)", method, path, e)
            raise TransportError(f"Could not reach the deal API: {e}") from e

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "Deal API error: %s %s -> %d %s",
                method, path, response.status_code, message,
            )
            raise ApplicationError(message, upstream_status=response.status_code)

        return response

    # ── Onboarding operations ───────────────────────────────

    async def create_investor(self, deal_id: int | str, payload: BaseModel) -> int | str:
        """Create the investor record and return its id."""
        response = await self._request("POST", f"/deals/{deal_id}/investors", payload)
        return _require_id(_json_body(response), "investor", response.status_code)

    async def update_investment(
        self,
        deal_id: int | str,
        investor_id: int | str,
        payload: BaseModel,
    ) -> str | None:
        """Record the investment amount; returns the access link when offered."""
        response = await self._request(
            "PATCH", f"/deals/{deal_id}/investors/{investor_id}", payload,
        )
        return _json_body(response).get("access_link") or None

    async def create_investor_profile(self, category: str, payload: BaseModel) -> int | str:
        """Create a category-specific investor profile and return its id."""
        response = await self._request("POST", f"/investor_profiles/{category}", payload)
        return _require_id(_json_body(response), "investor profile", response.status_code)

    async def link_profile_to_investor(
        self,
        deal_id: int | str,
        profile_id: int | str,
        payload: BaseModel,
        encoding: Encoding = "json",
    ) -> dict[str, Any]:
        response = await self._request(
            "PATCH", f"/deals/{deal_id}/investors/{profile_id}", payload, encoding=encoding,
        )
        return _json_body(response)

    # ── List views ───────────────────────────────────────────

    async def list_deals(self) -> dict[str, Any]:
        try:
            response = await self._request("GET", "/deals")
        except ApplicationError as e:
            if e.upstream_status in (401, 403):
                raise ApplicationError(
                    f"{e.message}. {ACCESS_BLOCKED_HINT}",
                    upstream_status=e.upstream_status,
                ) from e
            raise
        return _json_body(response)

    async def list_investors(self, deal_id: int | str) -> dict[str, Any]:
        response = await self._request("GET", f"/deals/{deal_id}/investors")
        return _json_body(response)


def build_client(base_url: str, timeout: float) -> httpx.AsyncClient:
    """Create the shared httpx client for the deal API."""
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        timeout=timeout,
        headers={"Accept": "application/json"},
    )
