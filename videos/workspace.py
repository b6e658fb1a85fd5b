import logging
import shutil
import threading
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)


def new_job_id() -> str:
    return uuid4().hex


class Workspace:
    """
    Scratch area owned by one job: <root>/<job_id>/ plus the uploaded
    source file. release() removes both, once; later calls do nothing.
    """

    def __init__(self, root: Path, job_id: str, source: Path | None = None):
        self.root = Path(root)
        self.job_id = job_id
        self.path = self.root / job_id
        self.source = Path(source) if source else None
        self._created = False
        self._released = False
        self._lock = threading.Lock()

    def create(self, reclaim: bool = False) -> Path:
        """
        Make the job directory. With `reclaim`, whatever an earlier attempt of
        this same job id left behind is removed first; otherwise an existing
        directory is an error.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        if reclaim and self.path.exists():
            logger.warning("Reclaiming leftover work dir %s", self.path)
            shutil.rmtree(self.path)
        # exist_ok=False: two jobs must never share a directory
        self.path.mkdir(exist_ok=False)
        self._created = True
        self.hls_dir.mkdir()
        return self.path

    @property
    def hls_dir(self) -> Path:
        return self.path / "hls"

    @property
    def thumbnail_path(self) -> Path:
        return self.path / "thumbnail.jpg"

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> bool:
        """
        Delete the job directory and the source upload. Failures are
        logged, never raised. Returns False if already released.
        """
        with self._lock:
            if self._released:
                return False
            self._released = True

        # never remove a directory this job did not create
        if self._created and self.path.exists():
            try:
                shutil.rmtree(self.path)
            except OSError as e:
                logger.error("Could not remove work dir %s: %s", self.path, e)
        if self.source is not None:
            try:
                self.source.unlink(missing_ok=True)
            except OSError as e:
                logger.error("Could not remove upload %s: %s", self.source, e)
        logger.debug("Released workspace %s", self.path)
        return True
