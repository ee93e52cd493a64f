"""Common CLI options for the CLI."""

import typer

from dbmirror.core.settings import (
    DEFAULT_HEARTBEAT_EVERY,
    DEFAULT_INDEXER_BACKOFF,
    DEFAULT_INDEXER_RETRIES,
    DEFAULT_INDEXER_TIMEOUT,
)

StoreOpt = typer.Option(
    "dbmirror.db",
    "--store",
    "-s",
    envvar="DBMIRROR_STORE",
    help="Path of the SQLite mirror store",
)

ConnectorOpt = typer.Option(
    ...,
    "--connector",
    "-c",
    envvar="DBMIRROR_CONNECTOR",
    help="Connector id scoping the mirror",
)

ProfileOpt = typer.Option(
    None,
    "--profile",
    "-p",
    envvar="DBMIRROR_DATABRICKS_PROFILE",
    help="Databricks CLI profile (from ~/.databrickscfg)",
)

SnapshotOpt = typer.Option(
    None,
    "--snapshot",
    help="JSON snapshot of the remote catalog (databases/schemas/tables)",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Enable debug logging",
)

YesOpt = typer.Option(False, "--yes", help="Skip confirmation prompt")

IndexerUrlOpt = typer.Option(
    ...,
    "--indexer-url",
    envvar="DBMIRROR_INDEXER_URL",
    help="Base URL of the external indexer API",
)

IndexerApiKeyOpt = typer.Option(
    None,
    "--indexer-api-key",
    envvar="DBMIRROR_INDEXER_API_KEY",
    help="Bearer token for the external indexer",
)

ProjectOpt = typer.Option(
    ...,
    "--project",
    envvar="DBMIRROR_PROJECT",
    help="Indexer project id",
)

DataSourceOpt = typer.Option(
    ...,
    "--data-source",
    envvar="DBMIRROR_DATA_SOURCE",
    help="Indexer data source id",
)

HeartbeatEveryOpt = typer.Option(
    DEFAULT_HEARTBEAT_EVERY,
    "--heartbeat-every",
    envvar="DBMIRROR_HEARTBEAT_EVERY",
    help="Heartbeat (and check for cancellation) every N tables",
)

TimeoutOpt = typer.Option(
    DEFAULT_INDEXER_TIMEOUT,
    "--timeout",
    envvar="DBMIRROR_INDEXER_TIMEOUT",
    help="Timeout in seconds for each indexer call",
)

RetriesOpt = typer.Option(
    DEFAULT_INDEXER_RETRIES,
    "--retries",
    envvar="DBMIRROR_INDEXER_RETRIES",
    help="Extra attempts for an indexer call that timed out",
)

BackoffOpt = typer.Option(
    DEFAULT_INDEXER_BACKOFF,
    "--backoff",
    envvar="DBMIRROR_INDEXER_BACKOFF",
    help="Base wait in seconds before retrying a timed-out indexer call (doubles per retry)",
)
