"""Background scheduler for stale-record reaping."""

import logging
import math
from datetime import datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from castdigest.config.settings import Settings, get_settings
from castdigest.db.connection import get_db
from castdigest.db.repository import SummaryRepository, TranscriptRepository

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: BackgroundScheduler | None = None


def transcript_stale_minutes(settings: Settings) -> int:
    """Minutes after which a processing transcript is considered stuck.

    Never less than the longest a full provider chain can run, so a slow paid
    transcription is not failed while it is still being paid for.
    """
    chain_seconds = (
        settings.transcript_url_timeout
        + 2 * settings.metadata_timeout
        + settings.ttml_fetch_timeout
        + settings.redirect_timeout
        + settings.deepgram_max_attempts * settings.deepgram_timeout
        + (settings.deepgram_max_attempts - 1) * settings.deepgram_max_retry_wait
    )
    return max(settings.stuck_threshold_minutes, math.ceil(chain_seconds / 60))


def summary_stale_minutes(settings: Settings) -> int:
    """Minutes after which a processing summary is considered stuck.

    A summary may run the provider chain itself or wait on another caller's
    transcript before calling the summarizer.
    """
    transcript_minutes = max(
        transcript_stale_minutes(settings),
        math.ceil(settings.transcript_wait_timeout_seconds / 60),
    )
    return max(
        settings.stuck_threshold_minutes,
        transcript_minutes + math.ceil(settings.summary_timeout / 60),
    )


def reap_stale_records(threshold_minutes: int | None = None) -> tuple[int, int]:
    """Fail transcripts and summaries stuck in a processing status.

    Work that dies mid-flight (process restart, hard timeout) would otherwise
    hold its key forever; failed records can be claimed again.

    Args:
        threshold_minutes: Explicit threshold for both tables. By default each
            table uses the larger of stuck_threshold_minutes and its worst-case
            running time.

    Returns:
        (transcripts_failed, summaries_failed)
    """
    settings = get_settings()
    if threshold_minutes is None:
        transcript_minutes = transcript_stale_minutes(settings)
        summary_minutes = summary_stale_minutes(settings)
    else:
        transcript_minutes = summary_minutes = threshold_minutes

    with get_db() as conn:
        transcripts = TranscriptRepository(conn).fail_stale(transcript_minutes)
        summaries = SummaryRepository(conn).fail_stale(summary_minutes)

    if transcripts or summaries:
        logger.info(
            f"Reaped stale records: {transcripts} transcripts older than {transcript_minutes}m, "
            f"{summaries} summaries older than {summary_minutes}m"
        )
    return transcripts, summaries


def start_scheduler(interval_minutes: int | None = None):
    """Start the background scheduler.

    Args:
        interval_minutes: How often to reap stale records (defaults to settings).
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already running")
        return

    if interval_minutes is None:
        interval_minutes = get_settings().reaper_interval_minutes

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        reap_stale_records,
        trigger=IntervalTrigger(minutes=interval_minutes),
        id="reap_stale_records",
        name="Fail stuck transcripts and summaries",
        replace_existing=True,
        next_run_time=datetime.now(),  # Run immediately on start
    )

    scheduler.start()
    logger.info(f"Scheduler started. Stale reaping interval: {interval_minutes} minutes")


def stop_scheduler():
    """Stop the background scheduler."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status() -> dict:
    """Get scheduler status info."""
    if scheduler is None:
        return {"running": False}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
        })

    return {
        "running": scheduler.running,
        "jobs": jobs,
    }
