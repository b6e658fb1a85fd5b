import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import StorageError
from .playlist import MASTER_PLAYLIST_NAME
from .s3 import CONTENT_TYPES, content_type_for

logger = logging.getLogger(__name__)


def safe_filename(name: str) -> str:
    base = Path(name or "").name
    cleaned = re.sub(r"[^\w.\-]", "_", base).strip("._")
    return cleaned or "source"


@dataclass
class LocalPackage:
    """Everything a finished job has on local disk, ready for upload."""
    source: Path
    original_filename: str
    renditions: list
    master_playlist: Path
    thumbnail: Optional[Path] = None


@dataclass
class UploadedPackage:
    source_key: str
    manifest_key: str
    hls_keys: list[str]
    thumbnail_key: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def keys(self) -> list[str]:
        keys = [self.source_key, *self.hls_keys, self.manifest_key]
        if self.thumbnail_key:
            keys.append(self.thumbnail_key)
        return keys


class ArtifactUploader:
    """
    Pushes one job's artifacts under `key_prefix` and remembers every key it
    tried to write so a failed job can be rolled back.

    Layout:
        <prefix>/source/<filename>
        <prefix>/thumbnail.jpg
        <prefix>/hls/<label>.m3u8, <label>_NNNNN.ts, master.m3u8
    """

    def __init__(self, store, key_prefix: str, *, workers: int = 8, timeout: float = 600):
        self.store = store
        self.key_prefix = key_prefix.rstrip("/")
        self.workers = max(1, workers)
        self.timeout = timeout
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._attempted: list[str] = []

    @property
    def hls_prefix(self) -> str:
        return f"{self.key_prefix}/hls"

    @property
    def attempted_keys(self) -> list[str]:
        with self._lock:
            return list(self._attempted)

    def cancel(self) -> None:
        """No upload may start after this; in-flight ones finish."""
        self._cancelled.set()

    def _put_file(self, path: Path, key: str, required: bool = True) -> str:
        if self._cancelled.is_set():
            raise StorageError(f"upload of {key} cancelled")
        with self._lock:
            self._attempted.append(key)
        try:
            return self.store.put_file(path, key, content_type_for(path))
        except StorageError:
            if required:
                self.cancel()
            raise

    def _put_data(self, data: bytes, key: str, content_type: str) -> str:
        if self._cancelled.is_set():
            raise StorageError(f"upload of {key} cancelled")
        with self._lock:
            self._attempted.append(key)
        return self.store.put(data, key, content_type)

    def purge_stale(self) -> list[str]:
        """
        Delete whatever an earlier attempt of this job left under the prefix.
        A listing or delete failure is a StorageError.
        """
        stale = self.store.list_keys(f"{self.key_prefix}/")
        for key in stale:
            self.store.delete(key)
        if stale:
            logger.warning("Purged %d stale objects under %s", len(stale), self.key_prefix)
        return stale

    def hls_files(self, renditions) -> list[tuple[Path, str]]:
        files = []
        for rendition in renditions:
            for p in [rendition.playlist, *rendition.segments()]:
                files.append((p, f"{self.hls_prefix}/{p.name}"))
        return files

    def _remaining(self, deadline: float) -> float:
        return max(0.0, deadline - time.monotonic())

    def upload_batch(self, pool, files: list[tuple[Path, str]], deadline: float | None = None) -> list[str]:
        """
        Upload files in parallel and wait for all of them. Any failure or
        an exceeded budget fails the whole batch.
        """
        if not files:
            raise StorageError("empty HLS batch")
        if deadline is None:
            deadline = time.monotonic() + self.timeout
        futures = [pool.submit(self._put_file, path, key) for path, key in files]
        done, pending = wait(futures, timeout=self._remaining(deadline))
        if pending:
            self.cancel()
            raise StorageError(f"HLS upload timed out after {self.timeout}s ({len(pending)} pending)")

        errors = [f.exception() for f in done if f.exception() is not None]
        if errors:
            self.cancel()
            raise StorageError(f"{len(errors)} of {len(futures)} HLS uploads failed: {errors[0]}")
        return [f.result() for f in futures]

    def upload(self, package: LocalPackage) -> UploadedPackage:
        """
        Upload the whole package within one `timeout` budget. The master
        playlist is only written once the source and every HLS file are stored.
        """
        source_key = f"{self.key_prefix}/source/{safe_filename(package.original_filename)}"
        thumb_key = f"{self.key_prefix}/thumbnail.jpg"
        manifest_key = f"{self.hls_prefix}/{MASTER_PLAYLIST_NAME}"
        deadline = time.monotonic() + self.timeout

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="upload") as pool:
            source_f = pool.submit(self._put_file, package.source, source_key)
            thumb_f = None
            if package.thumbnail is not None:
                thumb_f = pool.submit(self._put_file, package.thumbnail, thumb_key, False)

            hls_keys = self.upload_batch(pool, self.hls_files(package.renditions), deadline)
            try:
                source_f.result(timeout=self._remaining(deadline))
            except StorageError:
                self.cancel()
                raise
            except FutureTimeout as e:
                self.cancel()
                raise StorageError(f"source upload timed out after {self.timeout}s") from e

            self._put_data(package.master_playlist.read_bytes(), manifest_key, CONTENT_TYPES[".m3u8"])

            warnings = []
            thumbnail_key = None
            if thumb_f is not None:
                try:
                    thumbnail_key = thumb_f.result(timeout=self._remaining(deadline))
                except (StorageError, FutureTimeout) as e:
                    logger.warning("Thumbnail upload failed: %s", e)
                    warnings.append(f"thumbnail upload failed: {str(e) or 'timed out'}")
                    thumb_f.cancel()

        return UploadedPackage(
            source_key=source_key,
            manifest_key=manifest_key,
            hls_keys=hls_keys,
            thumbnail_key=thumbnail_key,
            warnings=warnings,
        )

    def rollback(self) -> list[str]:
        """
        Best-effort delete of every key this uploader attempted.
        Returns the keys that could not be deleted.
        """
        self.cancel()
        with self._lock:
            keys, self._attempted = list(self._attempted), []
        failed = []
        for key in reversed(keys):
            try:
                self.store.delete(key)
            except StorageError as e:
                logger.error("Rollback could not delete %s: %s", key, e)
                failed.append(key)
        if keys:
            logger.info("Rolled back %d uploaded objects under %s", len(keys) - len(failed), self.key_prefix)
        return failed
