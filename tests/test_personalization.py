"""Tests for the personalization service and profile stores."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from tc_analyzer.errors import ProfileNotFoundError, ProfileValidationError
from tc_analyzer.models import ExplanationStyle
from tc_analyzer.personalization import PersonalizationService
from tc_analyzer.store import InMemoryProfileStore, PostgresProfileStore, StoredProfile

USER_ID = "3f6c1a52-8d0e-4b8a-9a55-0d7c1f2b9e41"


@pytest.fixture
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def service(store: InMemoryProfileStore) -> PersonalizationService:
    return PersonalizationService(store)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TestPersonalizationService:
    def test_compute_profile(self, service, questionnaire) -> None:
        computed = service.compute_profile(questionnaire)
        assert computed.risk_tolerance.overall == 5.3

    def test_compute_profile_rejects_invalid(self, service, make_questionnaire) -> None:
        with pytest.raises(ProfileValidationError):
            service.compute_profile(make_questionnaire(**{"demographics.ageRange": "ancient"}))

    def test_save_and_get(self, service, questionnaire) -> None:
        saved = asyncio.run(service.save_profile(questionnaire))
        assert saved.user_id == USER_ID
        assert saved.computed_profile.risk_tolerance.legal == 7.8

        fetched = asyncio.run(service.get_profile(USER_ID))
        assert fetched.profile == saved.profile
        assert fetched.computed_profile == saved.computed_profile
        assert fetched.profile["demographics"]["jurisdiction"]["primaryCountry"] == "US"

    def test_save_invalid_writes_nothing(self, service, store, make_questionnaire) -> None:
        with pytest.raises(ProfileValidationError):
            asyncio.run(service.save_profile(make_questionnaire(**{"demographics.occupation": "astronaut"})))
        assert len(store) == 0

    def test_get_missing(self, service) -> None:
        assert asyncio.run(service.get_profile("nobody@example.com")) is None

    def test_update_section_recomputes(self, service, questionnaire) -> None:
        asyncio.run(service.save_profile(questionnaire))
        updated = asyncio.run(
            service.update_profile_section(
                {
                    "userId": USER_ID,
                    "section": "contextualFactors",
                    "data": {"specialCircumstances": ["non_native_speaker"]},
                }
            )
        )
        assert updated.profile["contextualFactors"]["specialCircumstances"] == ["non_native_speaker"]
        # Untouched keys of the section survive the shallow merge.
        assert updated.profile["contextualFactors"]["dependentStatus"] == "just_myself"
        assert updated.computed_profile.explanation_style == ExplanationStyle.SIMPLE_PROTECTIVE
        assert "special_non_native_speaker" in updated.computed_profile.profile_tags

    def test_update_without_recompute_keeps_computed(self, service, questionnaire) -> None:
        saved = asyncio.run(service.save_profile(questionnaire))
        updated = asyncio.run(
            service.update_profile_section(
                {
                    "userId": USER_ID,
                    "section": "demographics",
                    "data": {"occupation": "student"},
                    "recomputeProfile": False,
                }
            )
        )
        assert updated.profile["demographics"]["occupation"] == "student"
        assert updated.computed_profile == saved.computed_profile

    def test_update_invalid_merge_rejected(self, service, questionnaire) -> None:
        asyncio.run(service.save_profile(questionnaire))
        with pytest.raises(ProfileValidationError):
            asyncio.run(
                service.update_profile_section(
                    {"userId": USER_ID, "section": "demographics", "data": {"ageRange": "ancient"}}
                )
            )
        stored = asyncio.run(service.get_profile(USER_ID))
        assert stored.profile["demographics"]["ageRange"] == "26_40"

    def test_update_snake_case_keys_applied(self, service, questionnaire) -> None:
        asyncio.run(service.save_profile(questionnaire))
        updated = asyncio.run(
            service.update_profile_section(
                {"userId": USER_ID, "section": "demographics", "data": {"age_range": "over_55"}}
            )
        )
        assert updated.profile["demographics"]["ageRange"] == "over_55"
        assert "age_range" not in updated.profile["demographics"]
        assert "age_over_55" in updated.computed_profile.profile_tags

    def test_update_missing_user(self, service) -> None:
        with pytest.raises(ProfileNotFoundError):
            asyncio.run(
                service.update_profile_section(
                    {"userId": "nobody@example.com", "section": "demographics", "data": {"occupation": "student"}}
                )
            )

    def test_delete(self, service, questionnaire) -> None:
        asyncio.run(service.save_profile(questionnaire))
        assert asyncio.run(service.delete_profile(USER_ID)) is True
        assert asyncio.run(service.delete_profile(USER_ID)) is False
        assert asyncio.run(service.get_profile(USER_ID)) is None

    def test_insights(self, service, questionnaire) -> None:
        asyncio.run(service.save_profile(questionnaire))
        result = asyncio.run(service.get_insights(USER_ID))
        assert result["risk_profile_summary"]["overall"]["score"] == 5.3
        assert asyncio.run(service.get_insights("nobody@example.com")) is None


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class TestInMemoryProfileStore:
    def test_returned_objects_are_copies(self, store) -> None:
        stored = StoredProfile(user_id="a@example.com", profile={"demographics": {"ageRange": "26_40"}})
        asyncio.run(store.save(stored))
        stored.profile["demographics"]["ageRange"] = "over_55"

        fetched = asyncio.run(store.get("a@example.com"))
        assert fetched.profile["demographics"]["ageRange"] == "26_40"
        fetched.profile["demographics"]["ageRange"] = "under_18"
        assert asyncio.run(store.get("a@example.com")).profile["demographics"]["ageRange"] == "26_40"

    def test_update_section_missing(self, store) -> None:
        with pytest.raises(ProfileNotFoundError):
            asyncio.run(store.update_section("a@example.com", "demographics", {}))

    def test_to_dict_adds_bookkeeping(self) -> None:
        stored = StoredProfile(user_id="a@example.com", profile={"userId": "a@example.com"}, last_updated="t")
        assert stored.to_dict() == {"userId": "a@example.com", "computedProfile": None, "lastUpdated": "t"}


# ---------------------------------------------------------------------------
# PostgreSQL store (fake pool)
# ---------------------------------------------------------------------------


class FakeCursor:
    def __init__(self, row) -> None:
        self.row = row
        self.executed: list[tuple] = []
        self.rowcount = 1 if row else 0

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc) -> None:
        return None

    def execute(self, sql: str, params=None) -> None:
        self.executed.append((sql, params))

    def fetchone(self):
        return self.row


class FakeConnection:
    def __init__(self, row) -> None:
        self.cur = FakeCursor(row)
        self.commits = 0
        self.rollbacks = 0

    def cursor(self) -> FakeCursor:
        return self.cur

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


class FakePool:
    def __init__(self, conn: FakeConnection) -> None:
        self.conn = conn
        self.returned = 0

    def getconn(self) -> FakeConnection:
        return self.conn

    def putconn(self, conn) -> None:
        self.returned += 1

    def closeall(self) -> None:
        pass


def _postgres_store(row) -> tuple[PostgresProfileStore, FakeConnection, FakePool]:
    conn = FakeConnection(row)
    fake_pool = FakePool(conn)
    store = PostgresProfileStore("postgresql://localhost/test")
    store._pool = fake_pool
    return store, conn, fake_pool


class TestPostgresProfileStore:
    def test_save_upserts_and_returns_row(self, computed) -> None:
        updated_at = datetime(2026, 2, 1, tzinfo=timezone.utc)
        row = ("a@example.com", {"userId": "a@example.com"}, computed.to_dict(), updated_at)
        store, conn, fake_pool = _postgres_store(row)

        saved = asyncio.run(
            store.save(StoredProfile("a@example.com", {"userId": "a@example.com"}, computed_profile=computed))
        )
        sql, params = conn.cur.executed[0]
        assert "ON CONFLICT (user_id) DO UPDATE" in sql
        assert params[0] == "a@example.com"
        assert saved.computed_profile == computed
        assert saved.last_updated == "2026-02-01T00:00:00+00:00"
        assert conn.commits == 1
        assert fake_pool.returned == 1

    def test_get_missing(self) -> None:
        store, _, _ = _postgres_store(None)
        assert asyncio.run(store.get("a@example.com")) is None

    def test_update_section_targets_one_section(self) -> None:
        row = ("a@example.com", {"demographics": {"occupation": "student"}}, None, "2026-02-01")
        store, conn, _ = _postgres_store(row)
        updated = asyncio.run(store.update_section("a@example.com", "demographics", {"occupation": "student"}))
        _, params = conn.cur.executed[0]
        assert params[0] == ["demographics"]
        assert params[1] == "demographics"
        assert params[3] is None  # keep the stored computed profile
        assert updated.computed_profile is None

    def test_update_section_missing_rolls_back(self) -> None:
        store, conn, fake_pool = _postgres_store(None)
        with pytest.raises(ProfileNotFoundError):
            asyncio.run(store.update_section("a@example.com", "demographics", {}))
        assert conn.rollbacks == 1
        assert conn.commits == 0
        assert fake_pool.returned == 1

    def test_delete(self) -> None:
        store, conn, _ = _postgres_store(("a@example.com",))
        assert asyncio.run(store.delete("a@example.com")) is True
        assert conn.commits == 1
