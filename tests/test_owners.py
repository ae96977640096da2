"""Tests for owner provisioning and resolution."""

import asyncio

import pytest

from paperdemo.core.errors import Unauthenticated
from paperdemo.core.owners import DEFAULT_OWNER_NAME
from paperdemo.models import Identity


class TestEnsureOwner:
    @pytest.mark.asyncio
    async def test_creates_owner_on_first_call(self, owner_service, owner_repo, identity):
        owner_id = await owner_service.ensure_owner(identity)

        owner = await owner_repo.get_by_id(owner_id)
        assert owner.external_id == "user_alice"
        assert owner.email == "alice@example.com"
        assert owner.name == "Alice"

    @pytest.mark.asyncio
    async def test_is_idempotent(self, owner_service, identity):
        first = await owner_service.ensure_owner(identity)
        second = await owner_service.ensure_owner(identity)

        assert first == second

    @pytest.mark.asyncio
    async def test_concurrent_first_calls_create_one_owner(self, owner_service, owner_repo, identity, store):
        ids = await asyncio.gather(*(owner_service.ensure_owner(identity) for _ in range(5)))

        assert len(set(ids)) == 1
        rows = await store.list_by_index("owner", "by_external_id", identity.subject)
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_missing_name_gets_default(self, owner_service, owner_repo):
        owner_id = await owner_service.ensure_owner(Identity(subject="user_anon"))

        owner = await owner_repo.get_by_id(owner_id)
        assert owner.name == DEFAULT_OWNER_NAME
        assert owner.email == ""

    @pytest.mark.asyncio
    async def test_no_identity_is_unauthenticated(self, owner_service):
        with pytest.raises(Unauthenticated):
            await owner_service.ensure_owner(None)


class TestResolveOwner:
    @pytest.mark.asyncio
    async def test_resolves_existing_owner(self, owner_service, identity, owner_id):
        assert await owner_service.resolve_owner(identity) == owner_id

    @pytest.mark.asyncio
    async def test_unknown_identity_is_unauthenticated(self, owner_service, other_identity):
        with pytest.raises(Unauthenticated):
            await owner_service.resolve_owner(other_identity)

    @pytest.mark.asyncio
    async def test_current_owner(self, owner_service, identity, owner_id):
        owner = await owner_service.current_owner(identity)

        assert owner.id == owner_id
        assert await owner_service.current_owner(None) is None
