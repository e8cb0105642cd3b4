"""Tests for the configuration document store."""

from __future__ import annotations

import tomllib
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import ENG_ID, make_team

from lin.config import (
    ConfigStore,
    MemoryStore,
    add_organization,
    get_cache_dir,
    get_config_path,
    mask_token,
    remove_organization,
    resolve_credential,
    switch_organization,
    validate_document,
)
from lin.errors import ConfigError
from lin.models import Document


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "config.toml"


def _doc_with_team() -> Document:
    doc = Document()
    org = add_organization(doc, "acme", "lin_api_abcdefghijklmnop")
    org.teams["ENG"] = make_team(estimates={"xs": 1.0, "s": 2.0, "m": 3.0})
    org.last_sync = "2026-01-01T00:00:00+00:00"
    return doc


class TestPaths:
    """Tests for config and cache locations."""

    def test_config_dir_override(self, tmp_path: Path) -> None:
        """LIN_CONFIG_DIR (set by the autouse fixture) wins."""
        assert get_config_path() == tmp_path / "config" / "config.toml"

    def test_cache_dir_override(self, tmp_path: Path) -> None:
        assert get_cache_dir() == tmp_path / "cache"

    def test_cache_dir_uses_xdg(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("LIN_CACHE_DIR")
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg"))
        assert get_cache_dir() == tmp_path / "xdg" / "lin"


class TestConfigStoreLoad:
    """Tests for ConfigStore.load()."""

    def test_missing_file_gives_empty_document(self, config_path: Path) -> None:
        doc = ConfigStore(config_path).load()
        assert doc.organizations == {}
        assert doc.active_organization is None

    def test_round_trip_preserves_teams(self, config_path: Path) -> None:
        store = ConfigStore(config_path)
        store.save(_doc_with_team())

        loaded = store.load()
        assert loaded.active_organization == "acme"
        team = loaded.organizations["acme"].teams["ENG"]
        assert team.id == ENG_ID
        assert [s.name for s in team.states] == ["Todo", "In Progress", "Done"]
        assert team.estimates == {"xs": 1.0, "s": 2.0, "m": 3.0}
        assert team.labels[0].name == "Bug"
        assert loaded.organizations["acme"].last_sync == "2026-01-01T00:00:00+00:00"

    def test_estimate_names_lowercased_on_load(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text(
            'schema_version = 1\n'
            '[organizations.acme]\ntoken = "t"\n'
            '[organizations.acme.teams.ENG]\nid = "x"\nkey = "ENG"\nname = "Eng"\n'
            '[organizations.acme.teams.ENG.estimates]\nXL = 8.0\n'
        )
        team = ConfigStore(config_path).load().organizations["acme"].teams["ENG"]
        assert team.estimates == {"xl": 8.0}

    def test_invalid_toml_is_config_error(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text("this is [not toml")
        with pytest.raises(ConfigError, match="corrupt"):
            ConfigStore(config_path).load()

    def test_missing_required_field_is_config_error(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text("[organizations.acme]\nname = 'no token'\n")
        with pytest.raises(ConfigError, match="corrupt"):
            ConfigStore(config_path).load()

    def test_newer_schema_is_config_error(self, config_path: Path) -> None:
        config_path.parent.mkdir(parents=True)
        config_path.write_text("schema_version = 99\n")
        with pytest.raises(ConfigError, match="schema version"):
            ConfigStore(config_path).load()


class TestConfigStoreSave:
    """Tests for atomic ConfigStore.save()."""

    def test_creates_parent_directory(self, config_path: Path) -> None:
        ConfigStore(config_path).save(Document())
        assert config_path.exists()

    def test_no_temp_files_left_behind(self, config_path: Path) -> None:
        store = ConfigStore(config_path)
        store.save(_doc_with_team())
        store.save(Document())
        assert [p.name for p in config_path.parent.iterdir()] == ["config.toml"]

    def test_failed_write_keeps_previous_document(self, config_path: Path) -> None:
        """A crash before the rename leaves the old file intact."""
        store = ConfigStore(config_path)
        store.save(_doc_with_team())
        before = config_path.read_bytes()

        with (
            patch("lin.utils.os.fsync", side_effect=OSError("disk full")),
            pytest.raises(ConfigError, match="disk full"),
        ):
            store.save(Document())

        assert config_path.read_bytes() == before
        assert [p.name for p in config_path.parent.iterdir()] == ["config.toml"]

    def test_sequential_writers_leave_parseable_document(self, config_path: Path) -> None:
        """Two overlapping processes: last writer wins, file always valid."""
        first = ConfigStore(config_path)
        second = ConfigStore(config_path)

        snapshot_a = first.load()
        snapshot_b = second.load()
        add_organization(snapshot_a, "a", "token-a")
        add_organization(snapshot_b, "b", "token-b")
        first.save(snapshot_a)
        with config_path.open("rb") as f:
            tomllib.load(f)
        second.save(snapshot_b)

        loaded = ConfigStore(config_path).load()
        assert list(loaded.organizations) == ["b"]

    def test_omits_unset_active_organization(self, config_path: Path) -> None:
        ConfigStore(config_path).save(Document())
        assert "active_organization" not in config_path.read_text()

    def test_default_team_round_trip(self, config_path: Path) -> None:
        doc = _doc_with_team()
        doc.organizations["acme"].default_team = "ENG"
        store = ConfigStore(config_path)
        store.save(doc)

        with config_path.open("rb") as f:
            raw = tomllib.load(f)
        assert raw["organizations"]["acme"]["default_team"] == "ENG"
        assert store.load().organizations["acme"].default_team == "ENG"

    def test_omits_unset_default_team(self, config_path: Path) -> None:
        ConfigStore(config_path).save(_doc_with_team())
        assert "default_team" not in config_path.read_text()
        assert ConfigStore(config_path).load().organizations["acme"].default_team is None


class TestMemoryStore:
    """MemoryStore gives snapshot semantics."""

    def test_load_returns_copy(self) -> None:
        store = MemoryStore()
        doc = store.load()
        add_organization(doc, "acme", "t")
        assert store.load().organizations == {}
        store.save(doc)
        assert "acme" in store.load().organizations
        assert store.saves == 1


class TestOrganizations:
    """Tests for profile management helpers."""

    def test_first_added_becomes_active(self) -> None:
        doc = Document()
        add_organization(doc, "acme", "t1")
        add_organization(doc, "other", "t2")
        assert doc.active_organization == "acme"

    def test_re_adding_keeps_teams(self) -> None:
        doc = _doc_with_team()
        add_organization(doc, "acme", "new-token")
        assert doc.organizations["acme"].token == "new-token"
        assert "ENG" in doc.organizations["acme"].teams

    def test_blank_name_rejected(self) -> None:
        with pytest.raises(ConfigError):
            add_organization(Document(), "  ", "t")

    def test_remove_active_clears_it(self) -> None:
        doc = _doc_with_team()
        remove_organization(doc, "acme")
        assert doc.active_organization is None
        assert doc.organizations == {}

    def test_remove_unknown(self) -> None:
        with pytest.raises(ConfigError, match="not found"):
            remove_organization(Document(), "ghost")

    def test_switch(self) -> None:
        doc = _doc_with_team()
        add_organization(doc, "other", "t2")
        switch_organization(doc, "other")
        assert doc.active().name == "other"

    def test_switch_unknown_lists_known(self) -> None:
        with pytest.raises(ConfigError, match="Known organizations: acme"):
            switch_organization(_doc_with_team(), "ghost")


class TestResolveCredential:
    """Token precedence: environment, then stored profile."""

    def test_env_token_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_API_TOKEN", "lin_api_env")
        cred = resolve_credential(_doc_with_team())
        assert cred.token == "lin_api_env"
        assert cred.from_env
        assert cred.organization is None

    def test_empty_env_token_falls_through(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LINEAR_API_TOKEN", "")
        cred = resolve_credential(_doc_with_team())
        assert cred.organization == "acme"
        assert not cred.from_env

    def test_named_organization(self) -> None:
        doc = _doc_with_team()
        add_organization(doc, "other", "t2")
        assert resolve_credential(doc, "other").token == "t2"

    def test_no_profile_instructs_authentication(self) -> None:
        with pytest.raises(ConfigError, match="lin auth add"):
            resolve_credential(Document())

    def test_unknown_profile(self) -> None:
        with pytest.raises(ConfigError, match="Re-authenticate"):
            resolve_credential(_doc_with_team(), "ghost")


class TestMaskToken:
    """Tests for mask_token()."""

    def test_long_token(self) -> None:
        assert mask_token("lin_api_abcdefghijkl") == "lin_api_abcd..."

    def test_short_token(self) -> None:
        assert mask_token("short") == "*****"

    def test_exactly_twelve(self) -> None:
        assert mask_token("123456789012") == "*" * 12


class TestValidateDocument:
    """Tests for validate_document()."""

    def test_valid(self) -> None:
        assert validate_document(_doc_with_team()) == []

    def test_empty_document(self) -> None:
        assert validate_document(Document()) == []

    def test_token_prefix_warning(self) -> None:
        doc = Document()
        add_organization(doc, "acme", "not-a-linear-token")
        issues = validate_document(doc)
        assert [(i.severity, i.field) for i in issues] == [
            ("warning", "organizations.acme")
        ]

    def test_empty_token_and_dangling_active(self) -> None:
        doc = Document()
        add_organization(doc, "acme", "")
        doc.active_organization = "ghost"
        severities = sorted(i.severity for i in validate_document(doc))
        assert severities == ["error", "error"]
