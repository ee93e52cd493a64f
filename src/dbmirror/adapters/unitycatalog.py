"""Databricks Unity Catalog as a remote tree provider.

Unity Catalog maps onto the mirror hierarchy directly: catalog -> database,
schema -> schema, table -> table, and table full names already use the
``catalog.schema.table`` form of the internal-ID codec.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from databricks.sdk import WorkspaceClient
from databricks.sdk.core import Config


class AuthError(RuntimeError):
    """Raised when Databricks authentication fails."""


@dataclass(frozen=True)
class UCCatalog:
    name: str


@dataclass(frozen=True)
class UCSchema:
    name: str
    catalog_name: str


@dataclass(frozen=True)
class UCTable:
    full_name: str


def _format_auth_error(message: str, profile: str | None) -> str:
    """Turn SDK config errors into an actionable message."""
    if re.search(r"databricks auth login", message):
        cmd = "databricks auth login"
        if profile:
            cmd = f"{cmd} --profile {profile}"
        return f"Databricks credentials are expired. Re-authenticate with:\n  $ {cmd}"
    return f"Databricks authentication failed: {message}"


def _sanitize_host(host: str | None) -> str | None:
    """Drop query strings (``?o=<workspace>``) and trailing slashes from a host."""
    if not host:
        return host
    return host.split("?", 1)[0].rstrip("/")


def get_client(profile: str | None = None) -> WorkspaceClient:
    """
    Build a WorkspaceClient from the Databricks unified auth configuration
    (``~/.databrickscfg`` profile or environment variables).
    """
    try:
        cfg = Config(profile=profile) if profile else Config()
    except ValueError as exc:
        raise AuthError(_format_auth_error(str(exc), profile)) from exc
    cfg.host = _sanitize_host(cfg.host)
    return WorkspaceClient(config=cfg)


class UnityCatalogAdapter:
    """Lists Unity Catalog catalogs, schemas and tables through the Databricks SDK."""

    def __init__(self, client: WorkspaceClient) -> None:
        self.client = client

    @classmethod
    def from_profile(cls, profile: str | None = None) -> UnityCatalogAdapter:
        return cls(get_client(profile))

    def list_catalogs(self) -> list[UCCatalog]:
        """List catalogs visible to the current principal."""
        return [
            UCCatalog(name=c.name)
            for c in self.client.catalogs.list()
            if getattr(c, "name", None)
        ]

    def list_schemas(self, catalog: str) -> list[UCSchema]:
        """List schemas in a catalog."""
        out: list[UCSchema] = []
        for s in self.client.schemas.list(catalog_name=catalog):
            name = getattr(s, "name", None)
            full_name = getattr(s, "full_name", None)
            if not name and full_name:
                name = full_name.split(".")[-1]
            if not name:
                continue
            out.append(UCSchema(name=name, catalog_name=catalog))
        return out

    def list_tables(self, catalog: str, schema: str) -> list[UCTable]:
        """List tables in ``catalog.schema``."""
        out: list[UCTable] = []
        for t in self.client.tables.list(catalog_name=catalog, schema_name=schema):
            full_name = getattr(t, "full_name", None)
            if not full_name:
                name = getattr(t, "name", None)
                if not name:
                    continue
                full_name = f"{catalog}.{schema}.{name}"
            out.append(UCTable(full_name=full_name))
        return out
