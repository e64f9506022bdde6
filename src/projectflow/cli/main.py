"""ProjectFlow CLI — run a service, inspect a token.

Usage:
    projectflow serve identity              # identity service on PROJECTFLOW_IDENTITY_PORT
    projectflow serve projects --port 9000  # project service on a custom port
    projectflow serve tasks --reload        # task service with auto-reload
    projectflow check-token eyJhbGciOi...   # verify a token with the configured secret
"""

import sys
from datetime import timedelta

import click
import uvicorn

from projectflow.auth.tokens import TokenCodec, TokenError
from projectflow.config import Settings

# service name → (app factory, settings attribute holding its port)
SERVICES = {
    "identity": ("projectflow.main:create_identity_app", "identity_port"),
    "projects": ("projectflow.main:create_project_app", "project_port"),
    "tasks": ("projectflow.main:create_task_app", "task_port"),
}


def _settings() -> Settings:
    return Settings()


@click.group()
def cli():
    """ProjectFlow — identity, project and task services."""


@cli.command()
@click.argument("service", type=click.Choice(sorted(SERVICES)))
@click.option("--host", default=None, help="Bind address (default: PROJECTFLOW_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: per-service setting)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(service, host, port, reload):
    """Run one service with uvicorn."""
    settings = _settings()
    factory, port_attr = SERVICES[service]
    uvicorn.run(
        factory,
        factory=True,
        host=host or settings.host,
        port=port or getattr(settings, port_attr),
        reload=reload,
        log_level=settings.log_level.lower(),
    )


@cli.command("check-token")
@click.argument("token")
def check_token(token):
    """Verify TOKEN with the configured secret and print its claims."""
    settings = _settings()
    codec = TokenCodec(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        lifetime=timedelta(hours=settings.token_expire_hours),
    )
    try:
        claims = codec.verify(token)
    except TokenError:
        click.echo("invalid", err=True)
        sys.exit(1)

    click.echo(f"subject:    {claims.subject_key}")
    click.echo(f"user id:    {claims.subject_id}")
    click.echo(f"issued at:  {claims.issued_at.isoformat()}")
    click.echo(f"expires at: {claims.expires_at.isoformat()}")


if __name__ == "__main__":
    cli()
