"""CLI entry point for running domain pipelines."""

import asyncio
import json

import click

from domain_pipeline.config import API_PORT, configure_logging
from domain_pipeline.dependencies import get_forecast_service, get_service_provider
from domain_pipeline.pipeline.result import Err
from domain_pipeline.pipeline.stages.forecast import FORECAST_RESPONSE


@click.group()
@click.option("--log-level", type=str, default=None, help="Override LOG_LEVEL")
def cli(log_level):
    """Domain Pipelines - composable request processing with explicit results."""
    configure_logging(log_level)


@cli.command()
@click.argument("city")
@click.option("--days", type=int, default=3, show_default=True, help="Number of days to forecast")
def forecast(city: str, days: int):
    """Run the validate -> fetch -> respond forecast pipeline for CITY."""

    async def run():
        service = get_forecast_service()
        with get_service_provider().create_scope() as scope:
            return await service.get_forecast(city, days, scope)

    result = asyncio.run(run())

    if isinstance(result, Err):
        for error in result.errors:
            click.echo(f"❌ {error.code}: {error.description}", err=True)
        raise SystemExit(1)

    click.echo(json.dumps(result.context.get(FORECAST_RESPONSE), indent=2))


@cli.command()
@click.option("--port", type=int, default=API_PORT, show_default=True)
def serve(port: int):
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("domain_pipeline.main:app", host="0.0.0.0", port=port)


if __name__ == "__main__":
    cli()
