"""repolens analyze command - analyze a repository end to end."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from repolens.cli.output import get_console, language_table, pluralize, status
from repolens.cli.utils import Runtime, open_runtime, resolve_target
from repolens.jobs.models import JobSnapshot, JobStatus
from repolens.jobs.orchestrator import JobOrchestrator
from repolens.pipeline.analyze import ANALYZE_JOB_TYPE, AnalysisPipeline

_POLL_INTERVAL_SEC = 0.25


async def run_analysis(
    runtime: Runtime, repository_id: str, payload: dict[str, str]
) -> JobSnapshot:
    """Run one analysis job on a private orchestrator and wait for it."""
    orchestrator = JobOrchestrator.from_config(runtime.config.jobs)
    pipeline = AnalysisPipeline.from_config(runtime.config, runtime.store, runtime.materializer)
    pipeline.register(orchestrator)
    orchestrator.start()
    try:
        job_id = orchestrator.enqueue(ANALYZE_JOB_TYPE, repository_id, payload)
        with get_console().status("[cyan]Analyzing...[/cyan]", spinner="dots") as spin:
            while True:
                try:
                    return await orchestrator.wait(job_id, timeout=_POLL_INTERVAL_SEC)
                except TimeoutError:
                    snapshot = orchestrator.get_job(job_id)
                    if snapshot is not None:
                        stage = snapshot.data.get("stage", snapshot.status.value)
                        spin.update(f"[cyan]Analyzing ({stage}) {snapshot.progress}%[/cyan]")
    finally:
        await orchestrator.stop()


@click.command()
@click.argument("target")
@click.option("--branch", default=None, help="Branch to clone (git URLs only)")
@click.option("--db", "db_path", type=click.Path(path_type=Path), help="Database file")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def analyze_command(target: str, branch: str | None, db_path: Path | None, as_json: bool) -> None:
    """Analyze TARGET: a local directory, a .zip archive or a git URL."""
    resolved = resolve_target(target, branch)
    runtime = open_runtime(db_path)
    record = runtime.store.create_repository(
        name=resolved.name,
        source_type=resolved.source_type.value,
        source_url=resolved.source_url,
        branch=branch,
    )

    snapshot = asyncio.run(run_analysis(runtime, record.id, resolved.payload))
    repo = runtime.store.get_repository(record.id)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "repository": repo.model_dump() if repo is not None else None,
                    "job": snapshot.to_dict(),
                },
                default=str,
            )
        )
        if snapshot.status is not JobStatus.COMPLETED:
            raise SystemExit(1)
        return

    if snapshot.status is not JobStatus.COMPLETED or repo is None:
        raise click.ClickException(f"Analysis failed: {snapshot.error}")

    status(f"Analyzed [bold]{repo.name}[/bold] ({repo.id})", style="success")
    status(
        f"{pluralize(repo.total_files, 'file')}, {repo.total_size} bytes, "
        f"primary language: {repo.primary_language}"
    )
    facts = snapshot.data.get("facts_extracted")
    if facts is not None:
        status(f"{pluralize(int(facts), 'structural fact')} extracted")
    get_console().print(language_table(repo.get_languages()))
