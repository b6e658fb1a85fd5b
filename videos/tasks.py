import logging
from pathlib import Path

from celery import shared_task
from django.conf import settings

from .catalog import DjangoCatalogStore
from .codec import FFmpegEngine
from .errors import JobFailed
from .ladder import select_tiers
from .models import Job
from .pipeline import Orchestrator, Stage
from .s3 import S3BlobStore

logger = logging.getLogger(__name__)

ERROR_MAX_LENGTH = 4000


def _update(job: Job, *, status=None, stage=None, progress=None, error=None, warnings=None,
            failed_stage=None, video_id=None):
    if status:
        job.status = status
    if stage:
        job.stage = stage
    if progress is not None:
        job.progress = max(0, min(100, int(progress)))
    if error is not None:
        job.error = error[:ERROR_MAX_LENGTH]
    if warnings is not None:
        job.warnings = list(warnings)
    if failed_stage is not None:
        job.failed_stage = failed_stage
    if video_id is not None:
        job.video_id = video_id
    job.save(update_fields=[
        "status", "stage", "progress", "error", "warnings", "failed_stage", "video", "updated_at",
    ])


def build_pipeline(on_stage=None) -> Orchestrator:
    """Wire the orchestrator to ffmpeg, S3 and the Video table from settings."""
    engine = FFmpegEngine(
        settings.FFMPEG_BIN,
        settings.FFPROBE_BIN,
        encode_timeout=settings.FFMPEG_TIMEOUT,
        probe_timeout=settings.FFPROBE_TIMEOUT,
        frame_timeout=settings.FFPROBE_TIMEOUT,
        segment_seconds=settings.HLS_SEGMENT_SECONDS,
        audio_sample_rate=settings.AUDIO_SAMPLE_RATE,
    )
    return Orchestrator(
        engine,
        S3BlobStore(),
        DjangoCatalogStore(),
        settings.PIPELINE_WORK_ROOT,
        tiers=select_tiers(settings.VIDEO_TIER_LABELS),
        max_workers=settings.PIPELINE_MAX_WORKERS,
        upload_workers=settings.S3_UPLOAD_WORKERS,
        upload_timeout=settings.S3_UPLOAD_TIMEOUT,
        thumbnail_timestamp=settings.THUMBNAIL_TIMESTAMP,
        thumbnail_size=settings.THUMBNAIL_SIZE,
        key_prefix=settings.S3_KEY_PREFIX,
        on_stage=on_stage,
    )


def _discard_upload(path: str) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as e:
        logger.error("Could not remove upload %s: %s", path, e)


@shared_task(bind=True)
def process_video(self, job_id: str):
    job = Job.objects.get(pk=job_id)
    _update(job, status=Job.Status.STARTED)

    def on_stage(state):
        _update(job, stage=state.stage.value, progress=state.progress, warnings=state.warnings)

    try:
        pipeline = build_pipeline(on_stage=on_stage)
    except Exception as e:
        logger.exception("Could not set up the pipeline for job %s", job.id)
        _update(
            job,
            status=Job.Status.FAILURE,
            stage=Stage.FAILED.value,
            error=f"pipeline setup failed: {e}",
            failed_stage=Stage.RECEIVED.value,
            progress=100,
        )
        _discard_upload(job.source_path)
        raise

    try:
        result = pipeline.run(Path(job.source_path), job.original_filename, job_id=job.id.hex)
    except JobFailed as e:
        _update(
            job,
            status=Job.Status.FAILURE,
            error=e.reason,
            warnings=e.warnings,
            failed_stage=e.stage,
            progress=100,
        )
        raise

    _update(job, status=Job.Status.SUCCESS, progress=100, warnings=result.warnings, video_id=result.catalog_id)
    logger.info("Job %s finished as video %s", job.id, result.catalog_id)
    return result.catalog_id
