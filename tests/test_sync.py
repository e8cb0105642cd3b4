"""Tests for the sync orchestrator."""

from __future__ import annotations

import pytest
from conftest import DES_ID, ENG_ID, FakeLinear, make_team

from lin.cache import TTLCache, org_partition
from lin.config import MemoryStore
from lin.errors import RemoteError
from lin.metadata import MetadataCache
from lin.models import EntityType
from lin.sync import SyncOrchestrator, parse_estimate_scale, teams_cache_key


class TestParseEstimateScale:
    """Tests for parse_estimate_scale()."""

    def test_tshirt(self) -> None:
        assert parse_estimate_scale("tShirt") == {
            "xs": 1.0,
            "s": 2.0,
            "m": 3.0,
            "l": 5.0,
            "xl": 8.0,
        }

    @pytest.mark.parametrize(
        ("estimate_type", "values"),
        [
            ("linear", [1, 2, 3, 4, 5]),
            ("fibonacci", [1, 2, 3, 5, 8, 13, 21]),
            ("exponential", [1, 2, 4, 8, 16, 32, 64]),
        ],
    )
    def test_numeric_scales(self, estimate_type: str, values: list[int]) -> None:
        scale = parse_estimate_scale(estimate_type)
        assert scale == {str(v): float(v) for v in values}

    @pytest.mark.parametrize("estimate_type", [None, "", "notUsed", "mystery"])
    def test_no_scale(self, estimate_type: str | None) -> None:
        assert parse_estimate_scale(estimate_type) == {}


class TestSync:
    """Tests for SyncOrchestrator.sync()."""

    def test_stores_teams_states_labels_and_scale(
        self, fake_linear: FakeLinear, metadata: MetadataCache
    ) -> None:
        result = SyncOrchestrator(fake_linear, metadata).sync()

        assert result.organization == "acme"
        assert result.team_keys == ["ENG"]
        assert result.state_count == 3
        team = metadata.find_team("ENG")
        assert team is not None
        assert team.id == ENG_ID
        assert [s.name for s in team.states] == ["Todo", "In Progress", "Done"]
        assert [lbl.name for lbl in team.labels] == ["Bug"]
        assert team.estimates["m"] == 3.0
        assert metadata.last_sync is not None

    def test_persists_to_store(
        self, fake_linear: FakeLinear, store: MemoryStore, metadata: MetadataCache
    ) -> None:
        SyncOrchestrator(fake_linear, metadata).sync()
        assert MetadataCache(store, "acme").team_keys() == ["ENG"]
        assert store.saves == 1

    def test_removes_deleted_teams(
        self, fake_linear: FakeLinear, metadata: MetadataCache
    ) -> None:
        fake_linear.add(make_team("DES", DES_ID))
        SyncOrchestrator(fake_linear, metadata).sync()
        assert metadata.team_keys() == ["DES", "ENG"]

        del fake_linear.teams[DES_ID]
        SyncOrchestrator(fake_linear, metadata).sync()
        assert metadata.team_keys() == ["ENG"]

    def test_partial_failure_leaves_partition_unchanged(
        self, fake_linear: FakeLinear, store: MemoryStore, metadata: MetadataCache
    ) -> None:
        SyncOrchestrator(fake_linear, metadata).sync()
        before = store.load()

        fake_linear.add(make_team("DES", DES_ID))
        fake_linear.fail_states_for = DES_ID
        with pytest.raises(RemoteError):
            SyncOrchestrator(fake_linear, metadata).sync()

        assert store.load() == before
        assert store.saves == 1

    def test_stores_team_list_in_ttl_cache(
        self, fake_linear: FakeLinear, metadata: MetadataCache, cache: TTLCache
    ) -> None:
        SyncOrchestrator(fake_linear, metadata, cache).sync()
        cached = cache.get(EntityType.TEAMS, teams_cache_key(org_partition("acme")))
        assert cached == [
            {
                "id": ENG_ID,
                "key": "ENG",
                "name": "Eng Team",
                "issueEstimationType": "tShirt",
            }
        ]

    def test_team_list_keys_are_per_organization(self) -> None:
        assert teams_cache_key("acme") != teams_cache_key("other")
