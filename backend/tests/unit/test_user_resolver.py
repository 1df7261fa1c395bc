"""
Unit tests for UserResolver.

Resolution priority: direct ID, then metadata, then email lookup.
"""

import pytest

from billing_sync.infrastructure.exceptions import ResolutionFailure, UserResolutionError
from billing_sync.infrastructure.services import ResolutionSource, UserResolver


class TestUserResolver:

    @pytest.fixture
    def resolver(self, profile_repo):
        profile_repo.emails["known@example.com"] = "u-email"
        return UserResolver(profile_repo)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", [None, "known@example.com", "unknown@example.com"])
    async def test_direct_id_always_wins(self, resolver, profile_repo, email):
        user = await resolver.resolve("u1", {"user_id": "u-meta"}, email)

        assert user.user_id == "u1"
        assert user.source == ResolutionSource.DIRECT
        assert profile_repo.lookups == []

    @pytest.mark.asyncio
    async def test_metadata_used_when_no_direct_id(self, resolver, profile_repo):
        user = await resolver.resolve("", {"user_id": "u-meta"}, "known@example.com")

        assert user.user_id == "u-meta"
        assert user.source == ResolutionSource.METADATA
        assert profile_repo.lookups == []

    @pytest.mark.asyncio
    async def test_empty_metadata_id_falls_through_to_email(self, resolver):
        user = await resolver.resolve(None, {"user_id": ""}, "known@example.com")

        assert user.user_id == "u-email"
        assert user.source == ResolutionSource.EMAIL

    @pytest.mark.asyncio
    async def test_email_lookup_is_exact(self, resolver, profile_repo):
        with pytest.raises(UserResolutionError) as exc_info:
            await resolver.resolve(None, None, "KNOWN@example.com")

        assert exc_info.value.reason == ResolutionFailure.PROFILE_NOT_FOUND
        assert profile_repo.lookups == ["KNOWN@example.com"]

    @pytest.mark.asyncio
    async def test_no_email_available(self, resolver, profile_repo):
        with pytest.raises(UserResolutionError) as exc_info:
            await resolver.resolve(None, {}, None)

        assert exc_info.value.reason == ResolutionFailure.NO_EMAIL
        assert profile_repo.lookups == []

    @pytest.mark.asyncio
    async def test_lookup_error_is_distinct(self, resolver, profile_repo):
        profile_repo.fail_lookup = True

        with pytest.raises(UserResolutionError) as exc_info:
            await resolver.resolve(None, None, "known@example.com")

        assert exc_info.value.reason == ResolutionFailure.LOOKUP_FAILED
        assert exc_info.value.original_error is not None

    @pytest.mark.asyncio
    async def test_failure_details_are_machine_readable(self, resolver):
        with pytest.raises(UserResolutionError) as exc_info:
            await resolver.resolve(None, None, "nobody@example.com")

        assert exc_info.value.to_dict()["details"] == {
            "reason": "profile_not_found",
            "email": "nobody@example.com",
        }
