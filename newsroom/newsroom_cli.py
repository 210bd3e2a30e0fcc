"""Command line interface for the newsroom tools."""

import asyncio
import json
import logging
from typing import Tuple

import click

# Commands import their dependencies lazily.

logger = logging.getLogger(__name__)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Newsroom content tools CLI.

    Extracts and summarizes articles through the rate-limited extraction
    queue and runs one-off LLM generations against either provider.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=log_level, force=True)
    logger.debug("Debug mode enabled")


@cli.command()
@click.argument("urls", nargs=-1, required=True)
@click.option("--delay", type=float, default=None, help="Seconds between extractions")
@click.option(
    "--provider",
    type=click.Choice(["primary", "secondary"]),
    default="primary",
    help="LLM provider used for summaries",
)
@click.pass_context
def extract(ctx: click.Context, urls: Tuple[str, ...], delay: float, provider: str) -> None:
    """Extract and summarize one or more article URLs."""

    async def _extract():
        from newsroom.core.extraction_queue import ExtractionCallbacks
        from newsroom.core.session import NewsroomSession
        from newsroom.models.settings import Settings

        settings = Settings(debug=ctx.obj.get("debug", False))
        if delay is not None:
            settings.extraction_delay = delay

        async with NewsroomSession(settings, provider=provider) as session:
            for url in dict.fromkeys(urls):

                def report(summary: str, text: str, url: str = url) -> None:
                    if summary:
                        click.echo(f"✅ {url}\n   {summary}")
                    else:
                        click.echo(f"❌ {url}\n   Could not summarize ({len(text)} chars)")

                session.queue.enqueue(
                    url,
                    ExtractionCallbacks(
                        on_extraction_started=lambda url=url: logger.info(
                            f"Extracting {url}"
                        ),
                        on_summary_complete=report,
                    ),
                )
            await session.queue.wait_idle()
            click.echo(f"📊 Stored {len(session.store)} articles")

    asyncio.run(_extract())


@cli.command()
@click.argument("prompt")
@click.option("--system", default=None, help="System instruction")
@click.option(
    "--provider",
    type=click.Choice(["primary", "secondary"]),
    default="primary",
)
@click.option("--model", default=None, help="Override the provider's model")
@click.option("--json", "as_json", is_flag=True, help="Require a JSON object result")
def generate(prompt: str, system: str, provider: str, model: str, as_json: bool) -> None:
    """Run a single generation and print the result."""

    async def _generate():
        from newsroom.clients.errors import GenerationError
        from newsroom.clients.generation import GenerationService
        from newsroom.models.generation import GenerationRequest
        from newsroom.models.settings import Settings

        service = GenerationService.from_settings(Settings())
        request = GenerationRequest(prompt=prompt, system_instruction=system, model_id=model)
        try:
            if as_json:
                value = await service.generate_json(_require_object, request, provider)
                click.echo(json.dumps(value, indent=2))
            else:
                click.echo(await service.generate_text(request, provider))
        except GenerationError as e:
            raise click.ClickException(str(e))

    asyncio.run(_generate())


@cli.command()
@click.argument("articles_file", type=click.Path(exists=True))
@click.option(
    "--provider",
    type=click.Choice(["primary", "secondary"]),
    default="primary",
)
def pitches(articles_file: str, provider: str) -> None:
    """Generate LinkedIn pitches from a JSON list of articles."""

    async def _pitches():
        from pathlib import Path

        from newsroom.clients.errors import GenerationError
        from newsroom.clients.generation import GenerationService
        from newsroom.core.flows import (
            SupportingArticle,
            generate_linkedin_pitches,
            pitches_to_json,
        )
        from newsroom.models.settings import Settings

        raw = json.loads(Path(articles_file).read_text(encoding="utf-8"))
        articles = [SupportingArticle.model_validate(a) for a in raw]
        service = GenerationService.from_settings(Settings())
        try:
            result = await generate_linkedin_pitches(service, articles, provider)
        except GenerationError as e:
            raise click.ClickException(str(e))
        click.echo(pitches_to_json(result))

    asyncio.run(_pitches())


def _require_object(value):
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object, got {type(value).__name__}")
    return value


if __name__ == "__main__":
    cli()
