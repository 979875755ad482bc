"""CLI utilities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import click

from repolens.acquire.archive import is_archive
from repolens.acquire.git import looks_like_remote, parse_remote_url
from repolens.acquire.materializer import Materializer
from repolens.config import RepoLensConfig, load_config
from repolens.core.errors import RepoLensError
from repolens.core.logging import configure_logging
from repolens.storage.database import Database
from repolens.storage.models import SourceType
from repolens.storage.store import Store


@dataclass
class Runtime:
    """Objects a command needs, built from resolved configuration."""

    config: RepoLensConfig
    store: Store
    materializer: Materializer


def open_runtime(db_path: Path | None = None) -> Runtime:
    """Load config, apply its logging section and open the database.

    The group-level -v flag only raises the root level to DEBUG; outputs and
    their own levels still come from configuration.

    Raises:
        click.ClickException: If configuration is invalid.
    """
    try:
        config = load_config()
    except RepoLensError as e:
        raise click.ClickException(e.message) from e

    ctx = click.get_current_context(silent=True)
    verbose = bool(ctx and (ctx.find_root().obj or {}).get("verbose"))
    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    configure_logging(config=logging_config)

    path = db_path or Path(config.storage.database_path).expanduser()
    db = Database(path, busy_timeout_ms=config.storage.busy_timeout_ms)
    db.create_all()
    return Runtime(
        config=config,
        store=Store(db),
        materializer=Materializer.from_config(config.storage),
    )


@dataclass(frozen=True)
class Target:
    """A resolved analyze TARGET argument."""

    name: str
    source_type: SourceType
    payload: dict[str, str]
    source_url: str | None = None


def resolve_target(target: str, branch: str | None = None) -> Target:
    """Classify TARGET as a local directory, a zip archive or a remote URL.

    Raises:
        click.BadParameter: If TARGET is none of these.
    """
    path = Path(target).expanduser()
    if path.is_dir():
        resolved = path.resolve()
        return Target(
            name=resolved.name,
            source_type=SourceType.LOCAL,
            payload={"source_type": SourceType.LOCAL.value, "path": str(resolved)},
        )

    if path.is_file() and is_archive(path):
        resolved = path.resolve()
        return Target(
            name=resolved.stem,
            source_type=SourceType.ARCHIVE,
            payload={"source_type": SourceType.ARCHIVE.value, "archive_path": str(resolved)},
        )

    if looks_like_remote(target):
        ref = parse_remote_url(target)
        payload = {"source_type": SourceType.GIT.value, "url": ref.url}
        if branch:
            payload["branch"] = branch
        return Target(
            name=ref.name,
            source_type=SourceType.GIT,
            payload=payload,
            source_url=ref.url,
        )

    raise click.BadParameter(
        f"'{target}' is not a directory, a .zip archive or a git URL",
        param_hint="TARGET",
    )
