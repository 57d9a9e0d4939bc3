import click


@click.group()
def main() -> None:
    """Mind Mesh - reconciliation engine keeping the visual workspace in sync with planning data."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from MINDMESH_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from MINDMESH_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the Graph Runtime server."""
    import uvicorn

    from mindmesh.graph_runtime.settings import MindMeshSettings

    settings = MindMeshSettings()

    uvicorn.run(
        "mindmesh.graph_runtime.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


@main.command()
@click.option("--execute", is_flag=True, default=False, help="Apply changes (default is a dry run).")
@click.option("--workspace", "workspace_id", default=None, help="Restrict the run to one workspace.")
def repair(execute: bool, workspace_id: str | None) -> None:
    """Detect and heal duplicate and orphaned containers.

    Prints the JSON report and exits with status 1 when any group failed.
    """
    import asyncio

    from sqlalchemy.pool import NullPool

    from mindmesh.graph_runtime.db.engine import create_engine, create_session_factory
    from mindmesh.graph_runtime.log import setup_logging
    from mindmesh.graph_runtime.managers.repair import run_repair
    from mindmesh.graph_runtime.settings import MindMeshSettings

    settings = MindMeshSettings()
    setup_logging(settings.log_level, json=settings.log_json)
    if not settings.database_url:
        raise click.ClickException("MINDMESH_DATABASE_URL is not set.")

    async def _run() -> tuple[str, bool]:
        engine = create_engine(settings.database_url, poolclass=NullPool)
        try:
            async with create_session_factory(engine)() as db:
                result = await run_repair(db, dry_run=not execute, workspace_id=workspace_id)
        finally:
            await engine.dispose()
        return result.model_dump_json(by_alias=True, indent=2), result.success

    report, success = asyncio.run(_run())
    click.echo(report)
    if not success:
        raise SystemExit(1)


@main.command("issue-token")
@click.argument("user_id")
@click.option("--role", "roles", multiple=True, help="Role claim to include (repeatable).")
@click.option("--expires-in", default=3600, type=int, show_default=True, help="Token lifetime in seconds.")
def issue_token(user_id: str, roles: tuple[str, ...], expires_in: int) -> None:
    """Issue an access token signed with MINDMESH_JWT_SECRET."""
    from mindmesh.graph_runtime.auth import create_access_token
    from mindmesh.graph_runtime.settings import MindMeshSettings

    settings = MindMeshSettings()
    if settings.jwt_secret is None:
        raise click.ClickException("MINDMESH_JWT_SECRET is not set; a generated secret would be useless.")

    click.echo(
        create_access_token(
            user_id,
            settings.jwt_secret.get_secret_value(),
            roles=list(roles),
            expires_in=expires_in,
            algorithm=settings.jwt_algorithm,
        ),
    )


# ---------------------------------------------------------------------------
# Database management
# ---------------------------------------------------------------------------


def _alembic_config():
    """Build an Alembic Config from the package's alembic.ini.

    Both alembic.ini and the alembic/ directory live inside the package,
    so this works whether running from source or from an installed package.
    """
    from pathlib import Path

    from alembic.config import Config

    ini_path = Path(__file__).parent / "graph_runtime" / "alembic.ini"
    return Config(str(ini_path))


@main.group()
def db() -> None:
    """Database migration and management commands."""


@db.command()
@click.option("--revision", default="head", help="Target revision (default: head).")
def upgrade(revision: str) -> None:
    """Run database migrations forward."""
    from alembic import command

    command.upgrade(_alembic_config(), revision)
    click.echo(f"Database upgraded to {revision}.")


@db.command()
@click.option("--revision", default="-1", help="Target revision (default: -1, one step back).")
def downgrade(revision: str) -> None:
    """Roll back database migrations."""
    from alembic import command

    command.downgrade(_alembic_config(), revision)
    click.echo(f"Database downgraded to {revision}.")


@db.command()
@click.argument("message")
def migrate(message: str) -> None:
    """Autogenerate a new migration from model changes."""
    from alembic import command

    command.revision(_alembic_config(), message=message, autogenerate=True)
    click.echo(f"Migration generated: {message}")


@db.command()
def current() -> None:
    """Show current database revision."""
    from alembic import command

    command.current(_alembic_config(), verbose=True)


@db.command()
def history() -> None:
    """Show migration history."""
    from alembic import command

    command.history(_alembic_config(), verbose=True)


if __name__ == "__main__":
    main()
