"""
Pipedrive API client for the Deal Sync engine.

Handles:
- Authenticated GETs against the Pipedrive v1 REST API (api_token query param)
- Unwrapping the ``{"success": ..., "data": ...}`` envelope into payload models
- Retry with exponential backoff on transient failures (timeouts, 429, 5xx)

Errors are surfaced as the typed PipedriveError hierarchy; the sync pipeline
does not retry on top of this client.
"""

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from ..config import config
from ..errors import (
    PipedriveError,
    PipedriveNotFoundError,
    PipedriveRequestError,
    PipedriveTransportError,
)
from ..models.remote import (
    PipedriveDeal,
    PipedriveDealProduct,
    PipedriveFile,
    PipedriveNote,
    PipedriveOrganization,
    PipedrivePerson,
)

logger = structlog.get_logger(__name__)

M = TypeVar('M', bound=BaseModel)


class PipedriveClient:
    """
    Async Pipedrive client.

    Configuration via environment variables:
    - PIPEDRIVE_BASE_URL: API root (default: https://api.pipedrive.com/v1)
    - PIPEDRIVE_API_TOKEN: Required API token
    - PIPEDRIVE_TIMEOUT_SECONDS: Per-request timeout (default: 30)
    - PIPEDRIVE_MAX_RETRIES: Attempts for transient failures (default: 3)
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_token: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Pipedrive client.

        Args:
            base_url: API root (defaults to PIPEDRIVE_BASE_URL)
            api_token: API token (defaults to PIPEDRIVE_API_TOKEN)
            timeout: Request timeout in seconds
            max_retries: Total attempts for transient failures (>= 1)
            transport: Custom httpx transport (used by tests)
        """
        self.base_url = (base_url or config.PIPEDRIVE_BASE_URL).rstrip('/') + '/'
        self.api_token = api_token or config.PIPEDRIVE_API_TOKEN
        if not self.api_token:
            raise ValueError('PIPEDRIVE_API_TOKEN environment variable is required')

        self.timeout = timeout if timeout is not None else config.PIPEDRIVE_TIMEOUT_SECONDS
        self.max_retries = max(1, max_retries if max_retries is not None else config.PIPEDRIVE_MAX_RETRIES)
        self.retry_wait: wait_base = wait_exponential(multiplier=1, min=1, max=10)

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> 'PipedriveClient':
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _get_once(self, path: str, params: dict[str, Any]) -> Any:
        context = {'path': path}
        try:
            response = await self._client.get(
                path.lstrip('/'),
                params={**params, 'api_token': self.api_token},
            )
        except httpx.TransportError as exc:
            raise PipedriveTransportError(
                f"Pipedrive request failed: {type(exc).__name__}: {exc}",
                context=context,
            ) from exc

        status = response.status_code
        if status == 404:
            raise PipedriveNotFoundError(f"Pipedrive resource not found: {path}", context=context)
        if status == 429 or status >= 500:
            raise PipedriveTransportError(
                f"Pipedrive request failed: {status} {response.reason_phrase}",
                context={**context, 'status_code': status},
            )
        if status >= 400:
            raise PipedriveRequestError(
                f"Pipedrive request failed: {status} {response.reason_phrase} - {response.text}",
                context={**context, 'status_code': status},
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise PipedriveError(f"Pipedrive returned invalid JSON for {path}", context=context) from exc

        if isinstance(body, dict) and 'data' in body:
            return body['data']
        return body

    async def request(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        GET a Pipedrive path and return the unwrapped ``data`` payload.

        Transient failures are retried up to ``max_retries`` attempts.
        """
        query = {k: v for k, v in (params or {}).items() if v is not None}
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self.retry_wait,
            retry=retry_if_exception_type(PipedriveTransportError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        'pipedrive_client.retrying',
                        path=path,
                        attempt=attempt.retry_state.attempt_number,
                    )
                return await self._get_once(path, query)

    # =========================================================================
    # Entities
    # =========================================================================

    async def _get_entity(self, path: str, model: type[M], label: str, entity_id: int) -> M:
        data = await self.request(path)
        if not data:
            raise PipedriveNotFoundError(
                f"{label} {entity_id} not found in Pipedrive",
                context={'path': path},
            )
        return model.model_validate(data)

    async def _get_list(self, path: str, model: type[M], params: dict[str, Any] | None = None) -> list[M]:
        data = await self.request(path, params)
        if not isinstance(data, list):
            return []
        return [model.model_validate(item) for item in data]

    async def get_deal(self, deal_id: int) -> PipedriveDeal:
        return await self._get_entity(f'deals/{deal_id}', PipedriveDeal, 'Deal', deal_id)

    async def get_organization(self, organization_id: int) -> PipedriveOrganization:
        return await self._get_entity(
            f'organizations/{organization_id}', PipedriveOrganization, 'Organization', organization_id
        )

    async def get_person(self, person_id: int) -> PipedrivePerson:
        return await self._get_entity(f'persons/{person_id}', PipedrivePerson, 'Person', person_id)

    async def get_deal_products(self, deal_id: int) -> list[PipedriveDealProduct]:
        return await self._get_list(f'deals/{deal_id}/products', PipedriveDealProduct)

    async def get_deal_notes(self, deal_id: int) -> list[PipedriveNote]:
        return await self._get_list('notes', PipedriveNote, {'deal_id': deal_id})

    async def get_deal_files(self, deal_id: int) -> list[PipedriveFile]:
        return await self._get_list('files', PipedriveFile, {'deal_id': deal_id})
