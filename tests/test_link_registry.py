"""
Tests for the link lifecycle: create, lookup, soft delete, expiry sweep.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from tracking_app.exceptions import AliasConflictError, NotFoundError, ValidationError
from tracking_app.models import Link
from tracking_app.utils.time import utcnow


class TestCreateLink:

    def test_create_then_find_by_alias(self, registry):
        link = asyncio.run(registry.create(
            "promo", "https://example.com/landing", description="Spring campaign"
        ))

        found = asyncio.run(registry.find_active_by_alias("promo"))
        assert found is not None
        assert found.id == link.id
        assert found.alias == "promo"
        assert found.target_url == "https://example.com/landing"
        assert found.description == "Spring campaign"
        assert found.click_count == 0
        assert found.is_active is True
        assert found.expires_at is None

    @pytest.mark.parametrize("url", [
        "https://example.com",
        "http://Example.COM:8080/promo?utm_source=mail",
    ])
    def test_target_url_stored_as_given(self, registry, url):
        link = asyncio.run(registry.create("bare", url))

        assert link.target_url == url
        assert asyncio.run(registry.find_active_by_alias("bare")).target_url == url
        assert asyncio.run(registry.resolve("bare")).target_url == url

    def test_ids_are_unique(self, registry):
        first = asyncio.run(registry.create("one", "https://example.com/1"))
        second = asyncio.run(registry.create("two", "https://example.com/2"))

        assert first.id != second.id

    def test_duplicate_active_alias_conflicts(self, registry):
        asyncio.run(registry.create("promo", "https://example.com/a"))

        with pytest.raises(AliasConflictError) as exc_info:
            asyncio.run(registry.create("promo", "https://example.com/b"))
        assert exc_info.value.alias == "promo"

    def test_alias_reusable_after_deactivation(self, registry):
        first = asyncio.run(registry.create("promo", "https://example.com/a"))
        asyncio.run(registry.deactivate(first.id))

        second = asyncio.run(registry.create("promo", "https://example.com/b"))

        assert second.id != first.id
        assert asyncio.run(registry.find_active_by_alias("promo")).id == second.id

    def test_unique_index_rejects_racing_insert(self, storage):
        """The store itself refuses a second active alias"""
        asyncio.run(storage.create_link("promo", "https://example.com/a"))

        with pytest.raises(AliasConflictError):
            asyncio.run(storage.create_link("promo", "https://example.com/b"))

    @pytest.mark.parametrize("alias,url,field", [
        ("", "https://example.com", "alias"),
        ("has space", "https://example.com", "alias"),
        ("x" * 51, "https://example.com", "alias"),
        ("promo", "not-a-valid-url", "target_url"),
        ("promo", "ftp://example.com/file", "target_url"),
    ])
    def test_validation_errors(self, registry, storage, alias, url, field):
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(registry.create(alias, url))

        assert exc_info.value.field == field
        assert asyncio.run(storage.list_active_links()) == []

    def test_aware_expiry_stored_as_utc(self, registry):
        expires = datetime(2030, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

        link = asyncio.run(registry.create("promo", "https://example.com", expires_at=expires))

        assert link.expires_at == datetime(2030, 1, 1, 10, 0)


class TestLookup:

    def test_find_by_id_ignores_active_flag(self, registry):
        link = asyncio.run(registry.create("promo", "https://example.com"))
        asyncio.run(registry.deactivate(link.id))

        assert asyncio.run(registry.find_active_by_alias("promo")) is None
        found = asyncio.run(registry.find_by_id(link.id))
        assert found is not None
        assert found.is_active is False

    def test_find_by_id_missing(self, registry):
        assert asyncio.run(registry.find_by_id("does-not-exist")) is None

    def test_resolve(self, registry):
        link = asyncio.run(registry.create("promo", "https://example.com"))

        assert asyncio.run(registry.resolve("promo")).id == link.id
        with pytest.raises(NotFoundError):
            asyncio.run(registry.resolve("missing"))


class TestDeactivate:

    def test_idempotent(self, registry):
        link = asyncio.run(registry.create("promo", "https://example.com"))

        assert asyncio.run(registry.deactivate(link.id)) is True
        assert asyncio.run(registry.deactivate(link.id)) is True
        assert asyncio.run(registry.find_by_id(link.id)).is_active is False

    def test_unknown_link(self, registry):
        assert asyncio.run(registry.deactivate("does-not-exist")) is False


class TestExpirySweep:

    def test_sweep_deactivates_only_expired(self, registry):
        past = utcnow() - timedelta(minutes=5)
        future = utcnow() + timedelta(days=1)
        expired = asyncio.run(registry.create("old", "https://example.com/old", expires_at=past))
        fresh = asyncio.run(registry.create("new", "https://example.com/new", expires_at=future))
        forever = asyncio.run(registry.create("forever", "https://example.com/forever"))

        assert asyncio.run(registry.sweep_expired()) == 1

        assert asyncio.run(registry.find_by_id(expired.id)).is_active is False
        assert asyncio.run(registry.find_by_id(fresh.id)).is_active is True
        assert asyncio.run(registry.find_by_id(forever.id)).is_active is True

    def test_sweep_is_strictly_before_now(self, registry):
        boundary = datetime(2030, 1, 1)
        link = asyncio.run(registry.create("edge", "https://example.com", expires_at=boundary))

        assert asyncio.run(registry.sweep_expired(boundary)) == 0
        assert asyncio.run(registry.sweep_expired(boundary + timedelta(seconds=1))) == 1
        assert asyncio.run(registry.find_by_id(link.id)).is_active is False

    def test_already_inactive_links_not_counted(self, registry):
        past = utcnow() - timedelta(minutes=5)
        link = asyncio.run(registry.create("old", "https://example.com", expires_at=past))
        asyncio.run(registry.deactivate(link.id))

        assert asyncio.run(registry.sweep_expired()) == 0

    def test_expired_link_never_listed_or_resolved(self, registry):
        past = utcnow() - timedelta(seconds=1)
        asyncio.run(registry.create("old", "https://example.com/old", expires_at=past))
        asyncio.run(registry.create("live", "https://example.com/live"))

        aliases = [link.alias for link in asyncio.run(registry.list_active())]
        assert aliases == ["live"]
        with pytest.raises(NotFoundError):
            asyncio.run(registry.resolve("old"))

    def test_list_active_newest_first(self, registry, db_session):
        first = asyncio.run(registry.create("first", "https://example.com/1"))
        second = asyncio.run(registry.create("second", "https://example.com/2"))
        db_session.get(Link, first.id).created_at = utcnow() - timedelta(hours=1)
        db_session.commit()

        links = asyncio.run(registry.list_active())

        assert [link.id for link in links] == [second.id, first.id]
