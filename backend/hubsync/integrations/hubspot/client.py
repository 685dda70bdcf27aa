"""
HubSpot API Client.
Handles OAuth token exchange and the CRM v3/v4 endpoints used by the sync.

The client holds no account state: every CRM call takes the access token
of the account being synced, so several accounts can share one client
without leaking credentials between them.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class HubSpotAPIError(Exception):
    """Raised when HubSpot API returns an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class HubSpotAuthError(HubSpotAPIError):
    """Raised when the OAuth token endpoint rejects a refresh."""
    pass


class HubSpotClient:
    """
    HubSpot CRM API Client.

    Implements the OAuth2 refresh token exchange and the search, association
    and object endpoints. Retries are not done here; callers wrap each call
    in the sync engine's retry executor.
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        api_base_url: str = "https://api.hubapi.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize HubSpot client.

        Args:
            client_id: HubSpot OAuth client ID
            client_secret: HubSpot OAuth client secret
            api_base_url: HubSpot API base URL
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_base_url = api_base_url.rstrip("/")

        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

        logger.info("HubSpotClient initialized")

    async def request(
        self,
        method: str,
        endpoint: str,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Makes a request to HubSpot API.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint (e.g., "/crm/v3/objects/contacts/search")
            access_token: Bearer token of the account
            params: Query parameters
            json: JSON body
            data: Form body (OAuth endpoint)

        Returns:
            API response as dictionary

        Raises:
            HubSpotAPIError: If API returns an error or the network fails
        """
        url = f"{self.api_base_url}{endpoint}"
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            response = await self._client.request(
                method=method,
                url=url,
                params=params,
                json=json,
                data=data,
                headers=headers,
            )
        except httpx.RequestError as e:
            raise HubSpotAPIError(f"Network error: {e}") from e

        if response.status_code >= 400:
            error_msg = f"HubSpot API error: {response.status_code} - {response.text}"
            logger.warning(error_msg)
            raise HubSpotAPIError(error_msg, status_code=response.status_code)

        if not response.content:
            return {}

        return response.json()

    async def search_objects(
        self,
        object_type: str,
        search_request: Dict[str, Any],
        access_token: str,
    ) -> Dict[str, Any]:
        """
        Runs a CRM search.

        Returns:
            {"results": [...], "paging": {"next": {"after": "100"}}}
        """
        return await self.request(
            "POST",
            f"/crm/v3/objects/{object_type}/search",
            access_token=access_token,
            json=search_request,
        )

    async def batch_read_associations(
        self,
        from_type: str,
        to_type: str,
        object_ids: List[str],
        access_token: str,
    ) -> List[Dict[str, Any]]:
        """
        Reads associations for a batch of source ids.

        Returns:
            [{"from": {"id": "1"}, "to": [{"id": "9", "type": "contact_to_company"}]}, ...]
        """
        response = await self.request(
            "POST",
            f"/crm/v3/associations/{from_type.upper()}/{to_type.upper()}/batch/read",
            access_token=access_token,
            json={"inputs": [{"id": str(object_id)} for object_id in object_ids]},
        )
        return response.get("results") or []

    async def get_associations(
        self,
        object_type: str,
        object_id: str,
        to_type: str,
        access_token: str,
    ) -> List[Dict[str, Any]]:
        """
        Lists associations of a single object.

        Returns:
            [{"toObjectId": 123, "associationTypes": [...]}, ...]
        """
        response = await self.request(
            "GET",
            f"/crm/v4/objects/{object_type}/{object_id}/associations/{to_type}",
            access_token=access_token,
        )
        return response.get("results") or []

    async def get_object(
        self,
        object_type: str,
        object_id: str,
        properties: List[str],
        access_token: str,
    ) -> Dict[str, Any]:
        """Fetches one object with the requested properties."""
        return await self.request(
            "GET",
            f"/crm/v3/objects/{object_type}/{object_id}",
            access_token=access_token,
            params={"properties": ",".join(properties)},
        )

    async def create_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Exchanges a refresh token for a new access token.

        Returns:
            {"access_token": "...", "refresh_token": "...", "expires_in": 1800}

        Raises:
            HubSpotAuthError: If the exchange is rejected
        """
        logger.debug("Refreshing HubSpot access token")
        try:
            return await self.request(
                "POST",
                "/oauth/v1/token",
                data={
                    "grant_type": "refresh_token",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": refresh_token,
                },
            )
        except HubSpotAPIError as e:
            raise HubSpotAuthError(f"Token refresh failed: {e}", status_code=e.status_code) from e

    async def close(self):
        """Closes the HTTP client."""
        await self._client.aclose()
        logger.info("HubSpotClient closed")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
