"""Tests for cache-through get/set/delete/list."""
from datetime import datetime, timezone

import pytest

from ksecret.secrets.domains.errors import NotFoundError, RemoteUnavailableError
from ksecret.secrets.domains.models import SecretKey
from ksecret.secrets.workflows import secret_operations as ops

KEY = SecretKey("dev", "db-password")
REMOTE_ID = "k8s-dev-db-password"


class TestGetSecret:
    """Read path."""

    def test_miss_fetches_and_caches(self, source, cache, naming):
        source.secrets[REMOTE_ID] = "p1"

        assert ops.get_secret(source, cache, naming, KEY) == "p1"
        assert cache.get(KEY) == ("p1", True, True)
        assert ("get", REMOTE_ID) in source.calls

    def test_fresh_hit_skips_remote(self, source, cache, naming):
        cache.put(KEY, "cached")

        assert ops.get_secret(source, cache, naming, KEY) == "cached"
        assert source.calls == []

    def test_stale_hit_refetches_and_overwrites(self, source, cache, naming, clock):
        cache.put(KEY, "old")
        clock.advance(300)
        source.secrets[REMOTE_ID] = "new"

        assert ops.get_secret(source, cache, naming, KEY) == "new"
        assert cache.get(KEY) == ("new", True, True)

    def test_bypass_ignores_fresh_cache(self, source, cache, naming):
        cache.put(KEY, "cached")
        source.secrets[REMOTE_ID] = "remote"

        assert ops.get_secret(source, cache, naming, KEY, bypass_cache=True) == "remote"
        assert cache.get(KEY).value == "remote"

    def test_remote_failure_is_not_masked_by_stale_value(self, source, cache, naming, clock):
        cache.put(KEY, "old")
        clock.advance(600)
        source.fail_on.add(REMOTE_ID)

        with pytest.raises(RemoteUnavailableError):
            ops.get_secret(source, cache, naming, KEY)

    def test_remote_failure_on_bypass_propagates(self, source, cache, naming):
        cache.put(KEY, "cached")
        source.fail_on.add(REMOTE_ID)

        with pytest.raises(RemoteUnavailableError):
            ops.get_secret(source, cache, naming, KEY, bypass_cache=True)

    def test_not_found_propagates(self, source, cache, naming):
        with pytest.raises(NotFoundError):
            ops.get_secret(source, cache, naming, KEY)
        assert cache.get(KEY).found is False


class TestSetSecret:
    """Write path."""

    def test_writes_remote_then_cache(self, source, cache, naming):
        ops.set_secret(source, cache, naming, KEY, "p1")

        assert source.secrets[REMOTE_ID] == "p1"
        assert cache.get(KEY) == ("p1", True, True)

    def test_failed_remote_write_leaves_cache_absent(self, source, cache, naming):
        source.fail_on.add(REMOTE_ID)

        with pytest.raises(RemoteUnavailableError):
            ops.set_secret(source, cache, naming, KEY, "p1")
        assert cache.get(KEY).found is False

    def test_failed_remote_write_keeps_prior_value(self, source, cache, naming):
        cache.put(KEY, "prior")
        source.fail_on.add(REMOTE_ID)

        with pytest.raises(RemoteUnavailableError):
            ops.set_secret(source, cache, naming, KEY, "p2")
        assert cache.get(KEY).value == "prior"


class TestDeleteSecret:
    """Delete path."""

    def test_deletes_remote_and_evicts(self, source, cache, naming):
        source.secrets[REMOTE_ID] = "p1"
        cache.put(KEY, "p1")

        ops.delete_secret(source, cache, naming, KEY)

        assert REMOTE_ID not in source.secrets
        assert cache.get(KEY).found is False

    def test_absent_remote_still_evicts(self, source, cache, naming):
        cache.put(KEY, "p1")
        ops.delete_secret(source, cache, naming, KEY)
        assert cache.get(KEY).found is False

    def test_not_found_from_remote_counts_as_success(self, cache, naming):
        class MissingSource:
            def delete(self, remote_id):
                raise NotFoundError(remote_id)

        cache.put(KEY, "p1")
        ops.delete_secret(MissingSource(), cache, naming, KEY)
        assert cache.get(KEY).found is False

    def test_remote_failure_keeps_cache(self, source, cache, naming):
        cache.put(KEY, "p1")
        source.fail_on.add(REMOTE_ID)

        with pytest.raises(RemoteUnavailableError):
            ops.delete_secret(source, cache, naming, KEY)
        assert cache.get(KEY).value == "p1"


class TestListSecrets:
    """Environment-scoped listing."""

    def test_lists_environment_names_sorted(self, source, naming):
        source.secrets.update({
            "k8s-dev-zeta": "1",
            "k8s-dev-api-key": "2",
            "k8s-prod-api-key": "3",
            "unrelated": "4",
        })

        listing = ops.list_secrets(source, naming, "dev")
        assert listing.names == ["api-key", "zeta"]
        assert listing.skipped == []

    def test_reports_unparseable_ids(self, source, naming):
        source.secrets.update({"k8s-dev-a": "1", "k8s-orphan": "2"})

        listing = ops.list_secrets(source, naming, "dev")
        assert listing.names == ["a"]
        assert listing.skipped == ["k8s-orphan"]

    def test_source_failure_propagates(self, source, naming):
        source.fail_on.add("*")
        with pytest.raises(RemoteUnavailableError):
            ops.list_secrets(source, naming, "dev")

    def test_carries_creation_times_by_name(self, source, naming):
        created = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)
        source.secrets.update({"k8s-dev-a": "1", "k8s-dev-b": "2"})
        source.created["k8s-dev-a"] = created

        listing = ops.list_secrets(source, naming, "dev")
        assert listing.created == {"a": created, "b": None}
