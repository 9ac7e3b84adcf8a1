"""CLI entrypoints for lexground."""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from lexground.config import load_settings
from lexground.errors import GroundingValidationError
from lexground.governance import get_domain_info, get_source_policy, is_tier_a_primary, validate_source
from lexground.grounding.validator import GroundingValidator
from lexground.logging import configure_logging, get_logger
from lexground.memory.authority_store import AuthorityStore
from lexground.memory.database import AuthorityDatabase
from lexground.memory.missing_authority_log import MissingAuthorityLog
from lexground.models.authority import SourceType
from lexground.models.content import AssetContent, ValidationOptions
from lexground.models.retrieval import AuthoritySearchQuery, MissingAuthorityTag
from lexground.service import create_core

app = typer.Typer(add_completion=False, help="Legal authority retrieval and grounding CLI")
logger = get_logger(__name__)


@app.command()
def retrieve(
    concept: str = typer.Argument(..., help="Legal concept to find authority for."),
    skill_id: str = typer.Option(..., "--skill-id", help="Skill the concept belongs to."),
    skill_name: str = typer.Option(..., "--skill-name", help="Human-readable skill name."),
    jurisdiction: str | None = typer.Option(None, "--jurisdiction", help="Override jurisdiction."),
    source_type: list[SourceType] = typer.Option(
        [], "--source-type", help="Preferred source types (repeatable)."
    ),
) -> None:
    """Retrieve verified authorities for CONCEPT and print the result as JSON."""

    settings = load_settings()
    configure_logging(settings.log_level)

    try:
        query = AuthoritySearchQuery(
            skill_id=skill_id,
            skill_name=skill_name,
            concept=concept,
            jurisdiction=jurisdiction,
            source_types=source_type,
        )
    except ValidationError as e:
        raise typer.BadParameter(str(e)) from e

    with create_core(settings) as core:
        result = core.retrieve_authorities(query)
    typer.echo(result.model_dump_json(indent=2))
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def validate(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="AssetContent JSON file."),
    strict: bool = typer.Option(False, "--strict", help="Fail instead of replacing items."),
    fix: bool = typer.Option(False, "--fix", help="Replace ungrounded items with fallback items."),
    session_id: str | None = typer.Option(None, "--session-id"),
    asset_id: str | None = typer.Option(None, "--asset-id"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write fixed content here."),
) -> None:
    """Validate that every item in FILE is grounded in stored authorities."""

    settings = load_settings()
    configure_logging(settings.log_level)

    try:
        content = AssetContent.model_validate_json(file.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise typer.BadParameter(f"Invalid asset content: {e}") from e

    database = AuthorityDatabase(settings.database_path)
    validator = GroundingValidator(AuthorityStore(database), MissingAuthorityLog(database))
    options = ValidationOptions(session_id=session_id, asset_id=asset_id, strict=strict)

    if not (fix or strict):
        result = validator.assert_grounded(content, options)
        typer.echo(result.model_dump_json(indent=2))
        if not result.is_valid:
            raise typer.Exit(code=1)
        return

    try:
        fixed = validator.validate_and_fix(content, options)
    except GroundingValidationError as e:
        typer.echo(e.result.model_dump_json(indent=2))
        raise typer.Exit(code=1) from e

    typer.echo(fixed.validation.model_dump_json(indent=2))
    if output is not None and fixed.was_fixed:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(fixed.content.model_dump_json(indent=2), encoding="utf-8")
        logger.info("Fixed content written to %s", output)


@app.command("check-domain")
def check_domain(url: str = typer.Argument(..., help="URL to check against the allowlist.")) -> None:
    """Print the governance entry that applies to URL."""

    validation = validate_source(url)
    info = get_domain_info(url)
    if not validation.valid or info is None:
        typer.echo(json.dumps({"url": url, "allowed": False, "reason": validation.reason}, indent=2))
        raise typer.Exit(code=1)

    policy = get_source_policy(url)
    payload = {
        "url": url,
        "allowed": True,
        "domain": info.domain,
        "tier": info.tier.value,
        "primary": is_tier_a_primary(url),
        "license": info.license.value,
        "allow_verbatim": validation.allow_verbatim,
        "jurisdiction": list(info.jurisdiction),
        "description": info.description,
        "max_verbatim_chars": policy.max_verbatim_chars if policy else None,
    }
    typer.echo(json.dumps(payload, indent=2))


@app.command("missing-log")
def missing_log(
    limit: int = typer.Option(20, "--limit", min=1, help="Number of entries to show."),
    tag: MissingAuthorityTag | None = typer.Option(None, "--tag", help="Filter by error tag."),
) -> None:
    """List recent missing-authority audit entries."""

    settings = load_settings()
    configure_logging(settings.log_level)

    log = MissingAuthorityLog(AuthorityDatabase(settings.database_path))
    entries = log.list_recent(limit=limit, error_tag=tag)

    table = Table(title=f"Missing authorities ({len(entries)})")
    table.add_column("created_at")
    table.add_column("tag")
    table.add_column("query")
    table.add_column("session")
    for e in entries:
        table.add_row(
            e.created_at.isoformat(timespec="seconds"),
            e.error_tag.value,
            e.search_query,
            e.session_id or "-",
        )
    Console().print(table)


@app.command()
def authorities(
    json_output: bool = typer.Option(False, "--json", help="Print records as JSON lines."),
) -> None:
    """List stored authority records."""

    settings = load_settings()
    configure_logging(settings.log_level)

    records = AuthorityStore(AuthorityDatabase(settings.database_path)).list_all()
    if json_output:
        for r in records:
            typer.echo(r.model_dump_json(exclude={"raw_text"}))
        return

    table = Table(title=f"Stored authorities ({len(records)})")
    table.add_column("id")
    table.add_column("tier")
    table.add_column("citation")
    table.add_column("url")
    for r in records:
        table.add_row(r.id, r.source_tier.value, r.display_citation, r.canonical_url)
    Console().print(table)


if __name__ == "__main__":
    app()
