"""Configuration document handling for lin.

The document lives at ``<app dir>/config.toml`` and holds every
organization profile together with its cached team metadata.  Every
write replaces the whole file via temp-file-plus-rename.
"""

from __future__ import annotations

import copy
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import tomli_w
import typer

from lin.constants import (
    APP_NAME,
    CACHE_DIR_ENV,
    CONFIG_DIR_ENV,
    CONFIG_FILENAME,
    LINEAR_API_TOKEN_ENV,
    MASKED_TOKEN_VISIBLE,
    SCHEMA_VERSION,
    TOKEN_PREFIX,
)
from lin.errors import ConfigError
from lin.models import Document, Organization, dict_to_document, document_to_dict
from lin.utils import atomic_write


def get_config_dir() -> Path:
    """Return the directory holding ``config.toml``."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    return Path(typer.get_app_dir(APP_NAME))


def get_config_path() -> Path:
    """Return the path to the configuration document."""
    return get_config_dir() / CONFIG_FILENAME


def get_cache_dir() -> Path:
    """Return the directory holding the response cache."""
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override)
    base = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(base) / APP_NAME


class Store(Protocol):
    """Anything that can load and save the configuration document."""

    def load(self) -> Document: ...

    def save(self, doc: Document) -> None: ...


class ConfigStore:
    """Reads and writes the configuration document on disk."""

    def __init__(self, path: str | Path | None = None) -> None:
        """Initialize the store.

        Args:
            path: Path to config.toml (default: platform config directory)
        """
        self.path = Path(path) if path is not None else get_config_path()

    def load(self) -> Document:
        """Load a full snapshot of the document.

        Returns:
            The document, or an empty one if the file does not exist yet

        Raises:
            ConfigError: If the file is unreadable or not a valid document
        """
        if not self.path.exists():
            return Document()

        try:
            with self.path.open("rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            msg = f"Failed to read config file {self.path}: {e}"
            raise ConfigError(msg) from e
        except tomllib.TOMLDecodeError as e:
            msg = f"Config file {self.path} is corrupt: {e}"
            raise ConfigError(msg) from e

        version = data.get("schema_version", SCHEMA_VERSION)
        if not isinstance(version, int) or version > SCHEMA_VERSION:
            msg = (
                f"Config file {self.path} has unsupported schema version "
                f"{version!r}; upgrade lin or re-authenticate"
            )
            raise ConfigError(msg)

        try:
            return dict_to_document(data)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            msg = f"Config file {self.path} is corrupt: {e}"
            raise ConfigError(msg) from e

    def save(self, doc: Document) -> None:
        """Atomically replace the document on disk.

        Raises:
            ConfigError: If the file cannot be written
        """
        payload = tomli_w.dumps(document_to_dict(doc)).encode()
        try:
            atomic_write(self.path, payload)
        except OSError as e:
            msg = f"Failed to write config file {self.path}: {e}"
            raise ConfigError(msg) from e


class MemoryStore:
    """In-memory stand-in for ConfigStore.

    Hands out copies so callers get snapshot semantics like the file store.
    """

    def __init__(self, doc: Document | None = None) -> None:
        self._doc = copy.deepcopy(doc) if doc is not None else Document()
        self.saves = 0

    def load(self) -> Document:
        return copy.deepcopy(self._doc)

    def save(self, doc: Document) -> None:
        self._doc = copy.deepcopy(doc)
        self.saves += 1


def add_organization(doc: Document, name: str, token: str) -> Organization:
    """Add or replace an organization profile.

    The first profile added becomes active.  Replacing an existing
    profile keeps its cached teams.
    """
    name = name.strip()
    if not name:
        msg = "Organization name cannot be empty"
        raise ConfigError(msg)

    existing = doc.organizations.get(name)
    if existing is not None:
        existing.token = token
        org = existing
    else:
        org = Organization(name=name, token=token)
        doc.organizations[name] = org

    if doc.active_organization is None:
        doc.active_organization = name
    return org


def remove_organization(doc: Document, name: str) -> None:
    """Remove an organization profile, clearing it as active if needed."""
    if doc.organizations.pop(name, None) is None:
        msg = f"Organization '{name}' not found in configuration"
        raise ConfigError(msg)
    if doc.active_organization == name:
        doc.active_organization = None


def switch_organization(doc: Document, name: str) -> None:
    """Make *name* the active organization."""
    if name not in doc.organizations:
        available = ", ".join(sorted(doc.organizations)) or "none"
        msg = (
            f"Organization '{name}' not found in configuration. "
            f"Known organizations: {available}"
        )
        raise ConfigError(msg)
    doc.active_organization = name


@dataclass(frozen=True)
class Credential:
    """The API token to use and where it came from."""

    token: str
    organization: str | None
    from_env: bool


def resolve_credential(doc: Document, org: str | None = None) -> Credential:
    """Pick the API token for this invocation.

    Precedence:
    1. ``LINEAR_API_TOKEN`` environment variable (non-empty)
    2. The named organization, or the active one

    Raises:
        ConfigError: If no token is available from any source
    """
    env_token = os.environ.get(LINEAR_API_TOKEN_ENV, "")
    if env_token:
        return Credential(token=env_token, organization=None, from_env=True)

    name = org or doc.active_organization
    if name is None:
        msg = (
            "No API token found. Authenticate with 'lin auth add <name> --token "
            f"<token>' or set {LINEAR_API_TOKEN_ENV}."
        )
        raise ConfigError(msg)

    profile = doc.organizations.get(name)
    if profile is None:
        msg = (
            f"Organization '{name}' not found in configuration. "
            f"Re-authenticate with 'lin auth add {name} --token <token>'."
        )
        raise ConfigError(msg)
    return Credential(token=profile.token, organization=name, from_env=False)


def mask_token(token: str) -> str:
    """Mask a token for display, keeping only its prefix."""
    if len(token) <= MASKED_TOKEN_VISIBLE:
        return "*" * len(token)
    return f"{token[:MASKED_TOKEN_VISIBLE]}..."


@dataclass(frozen=True)
class ValidationIssue:
    """A problem found in the configuration document."""

    severity: str  # "error" or "warning"
    field: str
    message: str


def validate_document(doc: Document) -> list[ValidationIssue]:
    """Check the document for problems that would break authentication."""
    issues: list[ValidationIssue] = []

    for name, org in doc.organizations.items():
        if not name.strip():
            issues.append(
                ValidationIssue(
                    "error", "organizations", "Organization name cannot be empty"
                )
            )
        if not org.token:
            issues.append(
                ValidationIssue(
                    "error",
                    f"organizations.{name}",
                    f"Token for organization '{name}' is empty",
                )
            )
        elif not org.token.startswith(TOKEN_PREFIX):
            issues.append(
                ValidationIssue(
                    "warning",
                    f"organizations.{name}",
                    f"Token for organization '{name}' may be invalid: "
                    f"does not start with '{TOKEN_PREFIX}'",
                )
            )

    active = doc.active_organization
    if active is not None and active not in doc.organizations:
        issues.append(
            ValidationIssue(
                "error",
                "active_organization",
                f"Active organization '{active}' does not exist",
            )
        )
    return issues
