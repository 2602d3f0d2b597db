"""Command-line interface for castdigest."""

import asyncio
import json
import logging

import click

from castdigest import __version__
from castdigest.config.settings import Settings, coerce_setting, get_settings, reload_settings
from castdigest.db.config import get_db_config
from castdigest.db.connection import get_db, init_db
from castdigest.db.models import SummaryLevel, SummaryStatus, TranscriptStatus
from castdigest.db.repository import SettingsRepository, SummaryRepository, TranscriptRepository
from castdigest.transcription.models import Episode

# Settings that can only be set through the environment
SECRET_SETTINGS = {"apple_bearer_token", "deepgram_api_key", "anthropic_api_key"}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _build_episode(
    episode_id: str,
    audio_url: str,
    transcript_url: str | None,
    podcast_title: str | None,
    title: str | None,
    language: str | None,
) -> Episode:
    return Episode(
        id=episode_id,
        title=title or "",
        audio_url=audio_url,
        transcript_url=transcript_url,
        podcast_title=podcast_title,
        language=language,
    )


def episode_options(func):
    """Shared options describing the catalog episode."""
    options = [
        click.option("--audio-url", required=True, help="Episode audio URL"),
        click.option("--transcript-url", default=None, help="Pre-supplied transcript URL"),
        click.option("--podcast-title", default=None, help="Show title, used for matching"),
        click.option("--title", default=None, help="Episode title, used for matching"),
        click.option("--language", "-l", default=None, help="Transcript language"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """castdigest - Podcast transcript and summary service.

    Finds the cheapest available transcript for an episode and turns it into
    quick and deep summaries.
    """
    _configure_logging(verbose)


@cli.command("init-db")
def cmd_init_db():
    """Initialize the database."""
    init_db()
    click.echo(f"Database initialized at {get_db_config().database_path}")


@cli.command("status")
def cmd_status():
    """Show transcript and summary counts."""
    db_path = get_db_config().database_path

    click.echo("castdigest Status")
    click.echo("=" * 40)

    if db_path.exists():
        click.echo(f"Database: {db_path} (exists)")
    else:
        click.echo(f"Database: {db_path} (not initialized)")
        click.echo("Run 'castdigest init-db' to initialize")
        return

    with get_db() as conn:
        transcript_counts = TranscriptRepository(conn).count_by_status()
        summary_counts = SummaryRepository(conn).count_by_status()

    click.echo()
    click.echo("Transcripts by status:")
    for status in TranscriptStatus:
        click.echo(f"  {status.value:<13}: {transcript_counts.get(status.value, 0)}")
    click.echo(f"  {'total':<13}: {sum(transcript_counts.values())}")

    click.echo()
    click.echo("Summaries by status:")
    for status in SummaryStatus:
        click.echo(f"  {status.value:<13}: {summary_counts.get(status.value, 0)}")
    click.echo(f"  {'total':<13}: {sum(summary_counts.values())}")


@cli.command("transcript")
@click.argument("episode_id")
@episode_options
def cmd_transcript(
    episode_id: str,
    audio_url: str,
    transcript_url: str | None,
    podcast_title: str | None,
    title: str | None,
    language: str | None,
):
    """Acquire a transcript for an episode and print it.

    EPISODE_ID is the catalog identifier of the episode.
    """
    from castdigest.transcription.service import TranscriptAcquisitionEngine

    episode = _build_episode(episode_id, audio_url, transcript_url, podcast_title, title, language)
    language = language or get_settings().default_language

    engine = TranscriptAcquisitionEngine()
    transcript = asyncio.run(engine.wait_for_transcript(episode, language))

    if transcript.status != TranscriptStatus.READY:
        click.echo(f"Transcript {transcript.status.value}: {transcript.error_message or ''}", err=True)
        raise SystemExit(1)

    click.echo(f"Provider: {transcript.provider}", err=True)
    click.echo(transcript.full_text)


@cli.command("summarize")
@click.argument("episode_id")
@click.option(
    "--level",
    type=click.Choice([level.value for level in SummaryLevel]),
    default=SummaryLevel.QUICK.value,
    help="Summary depth",
)
@episode_options
def cmd_summarize(
    episode_id: str,
    level: str,
    audio_url: str,
    transcript_url: str | None,
    podcast_title: str | None,
    title: str | None,
    language: str | None,
):
    """Generate a summary inline and print its JSON content.

    EPISODE_ID is the catalog identifier of the episode.
    """
    from castdigest.summary.coordinator import SummaryCoordinator

    episode = _build_episode(episode_id, audio_url, transcript_url, podcast_title, title, language)
    coordinator = SummaryCoordinator()
    result = asyncio.run(coordinator.request_summary(episode, SummaryLevel(level), language))

    if result["status"] == SummaryStatus.FAILED.value:
        click.echo(f"Summary failed: {result.get('error')}", err=True)
        raise SystemExit(1)
    if result["status"] != SummaryStatus.READY.value:
        click.echo(f"Summary is {result['status']}; another process is generating it")
        return

    click.echo(json.dumps(result["content"], indent=2, ensure_ascii=False))


@cli.command("reap-stale")
@click.option("--minutes", "-m", type=int, default=None, help="Stuck threshold in minutes")
def cmd_reap_stale(minutes: int | None):
    """Fail transcripts and summaries stuck in a processing status."""
    from castdigest.scheduler import reap_stale_records

    transcripts, summaries = reap_stale_records(minutes)
    click.echo(f"Failed {transcripts} stale transcripts and {summaries} stale summaries")


@cli.command("serve")
@click.option("--host", "-h", default="0.0.0.0", help="Host to bind to")
@click.option("--port", "-p", default=8000, help="Port to bind to")
@click.option("--reload", "-r", is_flag=True, help="Enable auto-reload for development")
def cmd_serve(host: str, port: int, reload: bool):
    """Start the API server."""
    click.echo(f"Starting castdigest API server on http://{host}:{port}")
    click.echo("Press Ctrl+C to stop")

    from castdigest.main import run_server
    run_server(host=host, port=port, reload=reload)


@cli.command("settings")
def cmd_settings():
    """Show effective settings and database overrides."""
    settings = get_settings()
    with get_db() as conn:
        overrides = SettingsRepository(conn).get_all()

    for key in Settings.model_fields:
        if key in SECRET_SETTINGS:
            value = "***" if getattr(settings, key) else "(not set)"
        else:
            value = getattr(settings, key)
        marker = " [db]" if key in overrides else ""
        click.echo(f"{key:<36} {value}{marker}")


@cli.command("set-setting")
@click.argument("key")
@click.argument("value", required=False)
@click.option("--reset", is_flag=True, help="Remove the override and use the default")
def cmd_set_setting(key: str, value: str | None, reset: bool):
    """Store a runtime settings override in the database."""
    if key not in Settings.model_fields:
        click.echo(f"Error: Unknown setting '{key}'", err=True)
        raise SystemExit(1)
    if key in SECRET_SETTINGS:
        click.echo(f"Error: '{key}' can only be set through the environment", err=True)
        raise SystemExit(1)

    with get_db() as conn:
        repo = SettingsRepository(conn)
        if reset:
            repo.delete(key)
            click.echo(f"Reset {key} to default")
        else:
            if value is None:
                click.echo("Error: VALUE is required unless --reset is given", err=True)
                raise SystemExit(1)
            try:
                coerce_setting(getattr(get_settings(), key), value)
            except (ValueError, TypeError):
                click.echo(f"Error: Invalid value for {key}: {value}", err=True)
                raise SystemExit(1)
            repo.set(key, value)
            click.echo(f"Set {key} = {value}")

    reload_settings()


if __name__ == "__main__":
    cli()
