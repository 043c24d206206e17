"""Unit tests for the URL resolution state machine."""

from unittest.mock import AsyncMock, call

import pytest

from notion_file_proxy.enums import ResolutionStep, UrlSource
from notion_file_proxy.services.notion_client import InvalidPageIdError, NotionClientError
from notion_file_proxy.services.url_resolver import (
    FileUrlNotFoundError,
    FileUrlResolver,
    UpstreamUnavailableError,
)

from conftest import PAGE_ID, PDF_BLOCK_ID, RAW_PDF_URL, SIGNED_PDF_URL, make_block, make_record_map


def _signed_call():
    return call(PAGE_ID, fetch_missing_blocks=False, fetch_collections=False, sign_file_urls=True)


def _unsigned_call():
    return call(PAGE_ID, fetch_missing_blocks=False, fetch_collections=False, sign_file_urls=False)


@pytest.fixture
def client():
    return AsyncMock()


class TestRedirectPolicy:
    @pytest.fixture
    def resolver(self, client):
        return FileUrlResolver(client, refetch_unsigned_on_miss=False)

    @pytest.mark.asyncio
    async def test_signed_url_used_when_present(self, resolver, client, signed_record_map):
        client.get_page.return_value = signed_record_map

        resolution = await resolver.resolve(PAGE_ID, PDF_BLOCK_ID)

        assert resolution.url == SIGNED_PDF_URL
        assert resolution.source == UrlSource.SIGNED
        assert resolution.steps == [ResolutionStep.FETCH_SIGNED, ResolutionStep.USE_SIGNED]
        assert client.get_page.await_args_list == [_signed_call()]

    @pytest.mark.asyncio
    async def test_raw_url_from_signed_map(self, resolver, client, unsigned_record_map):
        client.get_page.return_value = unsigned_record_map

        resolution = await resolver.resolve(PAGE_ID, PDF_BLOCK_ID)

        assert resolution.url == RAW_PDF_URL
        assert resolution.source == UrlSource.RAW
        assert client.get_page.await_count == 1

    @pytest.mark.asyncio
    async def test_miss_after_successful_signed_fetch_is_not_found(self, resolver, client):
        client.get_page.return_value = make_record_map({PAGE_ID: make_block(PAGE_ID, "page")})

        with pytest.raises(FileUrlNotFoundError):
            await resolver.resolve(PAGE_ID, PDF_BLOCK_ID)
        assert client.get_page.await_count == 1

    @pytest.mark.asyncio
    async def test_signed_failure_falls_back_to_unsigned(self, resolver, client, unsigned_record_map):
        client.get_page.side_effect = [NotionClientError("401"), unsigned_record_map]

        resolution = await resolver.resolve(PAGE_ID, PDF_BLOCK_ID)

        assert resolution.url == RAW_PDF_URL
        assert resolution.source == UrlSource.RAW_UNSIGNED
        assert resolution.steps == [
            ResolutionStep.FETCH_SIGNED,
            ResolutionStep.FETCH_UNSIGNED,
            ResolutionStep.FALLBACK_RAW,
        ]
        assert client.get_page.await_args_list == [_signed_call(), _unsigned_call()]

    @pytest.mark.asyncio
    async def test_both_fetches_without_url_is_not_found(self, resolver, client):
        client.get_page.side_effect = [
            RuntimeError("signing failed"),
            make_record_map({PAGE_ID: make_block(PAGE_ID, "page")}),
        ]

        with pytest.raises(FileUrlNotFoundError):
            await resolver.resolve(PAGE_ID, PDF_BLOCK_ID)

    @pytest.mark.asyncio
    async def test_both_fetches_failing_is_upstream_unavailable(self, resolver, client):
        client.get_page.side_effect = [NotionClientError("401"), NotionClientError("503")]

        with pytest.raises(UpstreamUnavailableError):
            await resolver.resolve(PAGE_ID, PDF_BLOCK_ID)
        assert client.get_page.await_count == 2

    @pytest.mark.asyncio
    async def test_invalid_page_id_goes_through_fallback(self, resolver, client):
        client.get_page.side_effect = InvalidPageIdError("bad")

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await resolver.resolve("bad", PDF_BLOCK_ID)
        assert isinstance(exc_info.value.__cause__, InvalidPageIdError)
        assert client.get_page.await_count == 2
        assert client.get_page.call_args.kwargs["sign_file_urls"] is False


class TestStreamPolicy:
    @pytest.fixture
    def resolver(self, client):
        return FileUrlResolver(client, refetch_unsigned_on_miss=True)

    @pytest.mark.asyncio
    async def test_miss_refetches_unsigned_once(self, resolver, client, unsigned_record_map):
        client.get_page.side_effect = [
            make_record_map({PAGE_ID: make_block(PAGE_ID, "page")}, {}),
            unsigned_record_map,
        ]

        resolution = await resolver.resolve(PAGE_ID, PDF_BLOCK_ID)

        assert resolution.url == RAW_PDF_URL
        assert resolution.source == UrlSource.RAW_UNSIGNED
        assert resolution.steps == [
            ResolutionStep.FETCH_SIGNED,
            ResolutionStep.USE_SIGNED,
            ResolutionStep.FALLBACK_RAW,
            ResolutionStep.FETCH_UNSIGNED,
            ResolutionStep.FALLBACK_RAW,
        ]
        assert client.get_page.await_args_list == [_signed_call(), _unsigned_call()]

    @pytest.mark.asyncio
    async def test_second_miss_is_not_found(self, resolver, client):
        empty = make_record_map({PAGE_ID: make_block(PAGE_ID, "page")})
        client.get_page.side_effect = [empty, empty]

        with pytest.raises(FileUrlNotFoundError):
            await resolver.resolve(PAGE_ID, PDF_BLOCK_ID)
        assert client.get_page.await_count == 2

    @pytest.mark.asyncio
    async def test_signed_url_short_circuits(self, resolver, client, signed_record_map):
        client.get_page.return_value = signed_record_map

        resolution = await resolver.resolve(PAGE_ID, PDF_BLOCK_ID)

        assert resolution.source == UrlSource.SIGNED
        assert client.get_page.await_count == 1
