"""
Job orchestration: one uploaded source in, one HLS package + catalog
record out.

    received -> probing -> encoding -> composing -> uploading -> persisting -> done

with `failed` reachable from every non-terminal stage.

Probe, thumbnail and the per-tier encodes run concurrently; the job
joins on all of them before composing the master playlist. A failed job
rolls back whatever it already uploaded, and the workspace is released on
every exit path.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .encoder import collect_renditions, submit_renditions
from .errors import JobFailed, PersistenceError, PlaylistError, StorageError
from .ladder import DEFAULT_TIERS
from .metadata import extract_metadata
from .outcome import Outcome
from .playlist import compose_master_playlist, write_master_playlist
from .thumbnail import generate_thumbnail
from .uploader import ArtifactUploader, LocalPackage
from .workspace import Workspace, new_job_id

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    RECEIVED = "received"
    PROBING = "probing"
    ENCODING = "encoding"
    COMPOSING = "composing"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (Stage.DONE, Stage.FAILED)


TRANSITIONS = {
    Stage.RECEIVED: Stage.PROBING,
    Stage.PROBING: Stage.ENCODING,
    Stage.ENCODING: Stage.COMPOSING,
    Stage.COMPOSING: Stage.UPLOADING,
    Stage.UPLOADING: Stage.PERSISTING,
    Stage.PERSISTING: Stage.DONE,
}

# Rough share of wall-clock time spent before each stage starts.
PROGRESS = {
    Stage.RECEIVED: 0,
    Stage.PROBING: 5,
    Stage.ENCODING: 10,
    Stage.COMPOSING: 70,
    Stage.UPLOADING: 75,
    Stage.PERSISTING: 95,
    Stage.DONE: 100,
    Stage.FAILED: 100,
}


@dataclass
class CatalogRecord:
    title: str
    source_locator: str
    manifest_locator: str
    renditions: list[dict]
    metadata: dict
    thumbnail_locator: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    object_keys: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class TranscodeJob:
    job_id: str
    source: Path
    original_filename: str
    stage: Stage = Stage.RECEIVED
    metadata: Optional[object] = None
    thumbnail: Optional[Path] = None
    renditions: list = field(default_factory=list)
    manifest: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    failed_stage: Optional[Stage] = None

    @property
    def title(self) -> str:
        return Path(self.original_filename).stem or self.original_filename

    @property
    def progress(self) -> int:
        return PROGRESS[self.stage]

    def advance(self, to: Stage) -> None:
        if self.stage.terminal:
            raise RuntimeError(f"job {self.job_id} already {self.stage.value}")
        if to is Stage.FAILED:
            self.failed_stage = self.stage
        elif TRANSITIONS.get(self.stage) is not to:
            raise RuntimeError(f"illegal transition {self.stage.value} -> {to.value}")
        self.stage = to

    def note(self, outcome: Outcome) -> None:
        if outcome.reason:
            self.warnings.append(outcome.reason)


@dataclass
class JobResult:
    job_id: str
    catalog_id: str
    record: CatalogRecord

    @property
    def warnings(self) -> list[str]:
        return self.record.warnings


def _resolve(future, what: str) -> Outcome:
    # Stage helpers return Outcomes; anything raised is a bug, kept non-fatal.
    try:
        return future.result()
    except Exception as e:
        logger.exception("%s crashed", what)
        return Outcome.warning(f"{what} failed: {e}")


class Orchestrator:
    def __init__(
        self,
        engine,
        store,
        catalog,
        work_root,
        *,
        tiers=DEFAULT_TIERS,
        max_workers: int = 4,
        upload_workers: int = 8,
        upload_timeout: float = 600,
        thumbnail_timestamp: float = 1.0,
        thumbnail_size: tuple[int, int] = (320, 240),
        key_prefix: str = "videos",
        on_stage: Optional[Callable[[TranscodeJob], None]] = None,
    ):
        self.engine = engine
        self.store = store
        self.catalog = catalog
        self.work_root = Path(work_root)
        self.tiers = tuple(tiers)
        self.max_workers = max(1, max_workers)
        self.upload_workers = upload_workers
        self.upload_timeout = upload_timeout
        self.thumbnail_timestamp = thumbnail_timestamp
        self.thumbnail_size = tuple(thumbnail_size)
        self.key_prefix = key_prefix.strip("/")
        self.on_stage = on_stage

    def _advance(self, job: TranscodeJob, to: Stage) -> None:
        job.advance(to)
        logger.info("Job %s: %s", job.job_id, to.value)
        if self.on_stage is not None:
            try:
                self.on_stage(job)
            except Exception:
                logger.exception("Stage listener failed for job %s", job.job_id)

    def run(self, source, original_filename: str, job_id: str | None = None) -> JobResult:
        """
        Run one job to `done` or raise JobFailed. Passing the `job_id` of an
        earlier attempt makes this a re-run: that attempt's leftover work dir
        and stored objects are cleared before they are written again.
        """
        rerun = job_id is not None
        job = TranscodeJob(job_id or new_job_id(), Path(source), original_filename or Path(source).name)
        workspace = Workspace(self.work_root, job.job_id, source=job.source)
        uploader = None
        try:
            if not job.source.is_file():
                raise JobFailed(job.stage.value, f"source file {job.source} not found")
            workspace.create(reclaim=rerun)

            self._advance(job, Stage.PROBING)
            self._transcode(job, workspace)

            self._advance(job, Stage.COMPOSING)
            try:
                job.manifest = compose_master_playlist(job.renditions, self.tiers, job.warnings)
                manifest_path = write_master_playlist(job.manifest, workspace.hls_dir)
            except PlaylistError as e:
                raise JobFailed(job.stage.value, str(e), job.warnings) from e

            self._advance(job, Stage.UPLOADING)
            uploader = ArtifactUploader(
                self.store,
                f"{self.key_prefix}/{job.job_id}",
                workers=self.upload_workers,
                timeout=self.upload_timeout,
            )
            package = LocalPackage(
                source=job.source,
                original_filename=job.original_filename,
                renditions=job.renditions,
                master_playlist=manifest_path,
                thumbnail=job.thumbnail,
            )
            try:
                if rerun:
                    uploader.purge_stale()
                uploaded = uploader.upload(package)
            except StorageError as e:
                raise JobFailed(job.stage.value, f"upload failed: {e}", job.warnings) from e
            job.warnings.extend(uploaded.warnings)

            self._advance(job, Stage.PERSISTING)
            record = CatalogRecord(
                title=job.title,
                source_locator=uploaded.source_key,
                manifest_locator=uploaded.manifest_key,
                thumbnail_locator=uploaded.thumbnail_key,
                renditions=[r.as_record() for r in job.renditions],
                metadata=job.metadata.as_dict() if job.metadata is not None else {},
                warnings=list(job.warnings),
                object_keys=uploaded.keys,
            )
            try:
                catalog_id = self.catalog.save(record)
            except PersistenceError as e:
                raise JobFailed(job.stage.value, f"could not save catalog record: {e}", job.warnings) from e

            self._advance(job, Stage.DONE)
            return JobResult(job.job_id, str(catalog_id), record)

        except JobFailed as e:
            self._abort(job, uploader, e.reason)
            raise
        except Exception as e:
            logger.exception("Job %s crashed in %s", job.job_id, job.stage.value)
            stage = job.stage.value
            self._abort(job, uploader, str(e))
            raise JobFailed(stage, f"unexpected error: {e}", job.warnings) from e
        finally:
            workspace.release()

    def _transcode(self, job: TranscodeJob, workspace: Workspace) -> None:
        """Probe, thumbnail and encode every tier concurrently, then join."""
        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix=f"job-{job.job_id[:8]}")
        with pool:
            meta_f = pool.submit(extract_metadata, self.engine, job.source)
            thumb_f = pool.submit(
                generate_thumbnail,
                self.engine,
                job.source,
                workspace.thumbnail_path,
                timestamp=self.thumbnail_timestamp,
                box=self.thumbnail_size,
            )
            self._advance(job, Stage.ENCODING)
            tier_futures = submit_renditions(pool, self.engine, job.source, self.tiers, workspace.hls_dir)

            meta = _resolve(meta_f, "metadata")
            renditions, tier_warnings = collect_renditions(tier_futures)
            thumb = _resolve(thumb_f, "thumbnail")

        job.metadata = meta.value
        job.note(meta)
        job.thumbnail = thumb.value
        job.note(thumb)
        job.warnings.extend(tier_warnings)

        encoding = Outcome.ok(renditions) if renditions else Outcome.fatal("no rendition could be encoded")
        if encoding.is_fatal:
            raise JobFailed(job.stage.value, encoding.reason, job.warnings)
        job.renditions = encoding.value

    def _abort(self, job: TranscodeJob, uploader: Optional[ArtifactUploader], reason: str) -> None:
        logger.error("Job %s failed during %s: %s", job.job_id, job.stage.value, reason)
        if not job.stage.terminal:
            self._advance(job, Stage.FAILED)
        if uploader is not None:
            uploader.rollback()
