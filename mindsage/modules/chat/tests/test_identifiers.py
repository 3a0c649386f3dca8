"""Tests for session reference classification and resolution."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from mindsage.modules.chat.identifiers import (
    IdentifierResolver,
    ReferenceKind,
    ResolutionStatus,
    classify_reference,
)


class TestClassifyReference:
    @pytest.mark.parametrize("ref", ["", "   ", "undefined", "null", "NULL", " undefined ", None])
    def test_unusable_references_are_invalid(self, ref):
        assert classify_reference(ref) is ReferenceKind.INVALID

    def test_non_string_is_invalid(self):
        assert classify_reference(12345) is ReferenceKind.INVALID

    def test_24_hex_chars_is_internal(self):
        assert classify_reference("65d8f1a2b4c9e8a1f4c7b123") is ReferenceKind.INTERNAL
        assert classify_reference("65D8F1A2B4C9E8A1F4C7B123") is ReferenceKind.INTERNAL

    def test_uuid_is_external(self):
        assert classify_reference(str(uuid.uuid4())) is ReferenceKind.EXTERNAL

    def test_other_strings_are_external(self):
        assert classify_reference("not-a-real-id") is ReferenceKind.EXTERNAL
        # 23 and 25 hex chars do not match the internal shape
        assert classify_reference("a" * 23) is ReferenceKind.EXTERNAL
        assert classify_reference("a" * 25) is ReferenceKind.EXTERNAL


@pytest.fixture
def store():
    store = MagicMock()
    store.find_by_internal_id = AsyncMock(return_value=None)
    store.find_by_external_id = AsyncMock(return_value=None)
    return store


class TestIdentifierResolver:
    @pytest.mark.asyncio
    async def test_invalid_reference_skips_lookup(self, store):
        resolution = await IdentifierResolver(store).resolve("undefined")

        assert resolution.status is ResolutionStatus.INVALID_REFERENCE
        assert resolution.session is None
        store.find_by_internal_id.assert_not_awaited()
        store.find_by_external_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_internal_reference_uses_internal_lookup(self, store):
        session = MagicMock()
        store.find_by_internal_id.return_value = session

        resolution = await IdentifierResolver(store).resolve("65D8F1A2B4C9E8A1F4C7B123")

        assert resolution.found
        assert resolution.session is session
        assert resolution.found_by == "internal_id"
        store.find_by_internal_id.assert_awaited_once_with("65d8f1a2b4c9e8a1f4c7b123")
        store.find_by_external_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_external_reference_uses_external_lookup(self, store):
        external_id = str(uuid.uuid4())
        session = MagicMock()
        store.find_by_external_id.return_value = session

        resolution = await IdentifierResolver(store).resolve(f" {external_id} ")

        assert resolution.found
        assert resolution.found_by == "external_id"
        store.find_by_external_id.assert_awaited_once_with(external_id)

    @pytest.mark.asyncio
    async def test_missing_session_is_not_found(self, store):
        resolution = await IdentifierResolver(store).resolve("not-a-real-id")

        assert resolution.status is ResolutionStatus.NOT_FOUND
        assert resolution.ref == "not-a-real-id"
        assert not resolution.found
