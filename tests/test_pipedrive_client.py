"""
Tests for the Pipedrive API client.

Uses httpx.MockTransport; no network access.
"""

import httpx
import pytest
from tenacity import wait_none

from deal_sync.clients.pipedrive_client import PipedriveClient
from deal_sync.config import config
from deal_sync.errors import (
    PipedriveError,
    PipedriveNotFoundError,
    PipedriveRequestError,
    PipedriveTransportError,
)

BASE_URL = 'https://api.example.com/v1'


def make_client(handler, max_retries: int = 3) -> PipedriveClient:
    client = PipedriveClient(
        base_url=BASE_URL,
        api_token='test-token',
        max_retries=max_retries,
        transport=httpx.MockTransport(handler),
    )
    client.retry_wait = wait_none()
    return client


class TestConstruction:
    def test_requires_token(self, monkeypatch):
        monkeypatch.setattr(config, 'PIPEDRIVE_API_TOKEN', '')

        with pytest.raises(ValueError):
            PipedriveClient(base_url=BASE_URL, api_token=None)


class TestEntities:
    @pytest.mark.asyncio
    async def test_get_deal_unwraps_data(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={'success': True, 'data': {'id': 123, 'title': 'Curso', 'abc': 1}})

        async with make_client(handler) as client:
            deal = await client.get_deal(123)

        assert deal.id == 123
        assert deal.title == 'Curso'
        assert deal.custom_field('abc') == 1
        assert seen[0].url.path == '/v1/deals/123'
        assert seen[0].url.params['api_token'] == 'test-token'

    @pytest.mark.asyncio
    async def test_null_data_is_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={'success': True, 'data': None})

        async with make_client(handler) as client:
            with pytest.raises(PipedriveNotFoundError, match='Organization 45 not found'):
                await client.get_organization(45)

    @pytest.mark.asyncio
    async def test_404_is_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={'success': False, 'error': 'not found'})

        async with make_client(handler) as client:
            with pytest.raises(PipedriveNotFoundError):
                await client.get_person(67)

    @pytest.mark.asyncio
    async def test_lists_pass_deal_id(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={'data': [{'id': 1, 'content': 'Hola'}]})

        async with make_client(handler) as client:
            notes = await client.get_deal_notes(123)

        assert [n.id for n in notes] == [1]
        assert seen[0].url.path == '/v1/notes'
        assert seen[0].url.params['deal_id'] == '123'

    @pytest.mark.asyncio
    async def test_null_list_is_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={'data': None})

        async with make_client(handler) as client:
            assert await client.get_deal_products(123) == []
            assert await client.get_deal_files(123) == []

    @pytest.mark.asyncio
    async def test_products_nested_model(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == '/v1/deals/5/products'
            return httpx.Response(
                200, json={'data': [{'id': 9, 'quantity': 2, 'product': {'code': 'form-1', 'name': 'Extintores'}}]}
            )

        async with make_client(handler) as client:
            products = await client.get_deal_products(5)

        assert products[0].product.code == 'form-1'


class TestRetries:
    @pytest.mark.asyncio
    async def test_5xx_then_success(self):
        responses = iter([httpx.Response(503), httpx.Response(200, json={'data': {'id': 1}})])
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return next(responses)

        async with make_client(handler) as client:
            deal = await client.get_deal(1)

        assert deal.id == 1
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_429_exhausts_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429)

        async with make_client(handler, max_retries=3) as client:
            with pytest.raises(PipedriveTransportError):
                await client.get_deal(1)

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_transport_error_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError('connection refused', request=request)
            return httpx.Response(200, json={'data': {'id': 1}})

        async with make_client(handler) as client:
            deal = await client.get_deal(1)

        assert deal.id == 1
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_4xx_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, text='unauthorized')

        async with make_client(handler) as client:
            with pytest.raises(PipedriveRequestError):
                await client.get_deal(1)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text='<html>')

        async with make_client(handler) as client:
            with pytest.raises(PipedriveError, match='invalid JSON'):
                await client.get_deal(1)
