import os, mimetypes
from pathlib import Path
from uuid import uuid4
from django.conf import settings

VIDEO_MIME_TYPES = {
    "video/mp4",
    "video/quicktime",   # .mov
    "video/x-msvideo",   # .avi
    "video/x-matroska",  # .mkv
}


def save_uploaded_file(djangofile) -> Path:
    """Save to UPLOAD_ROOT/<uuid>_<name> and return the absolute path."""
    uploads_dir = Path(settings.UPLOAD_ROOT)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    safe_name = f"{uuid4().hex}_{os.path.basename(djangofile.name)}"
    dest = uploads_dir / safe_name
    with open(dest, "wb") as f:
        for chunk in djangofile.chunks():
            f.write(chunk)
    return dest


def guess_kind(path: str) -> str:
    """Return 'image' | 'video' | 'other' based on mimetype/extension."""
    mime, _ = mimetypes.guess_type(path)
    if not mime:
        return "other"
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    return "other"


def video_mime_type(djangofile) -> str | None:
    """
    The upload's declared content type if it is a supported video,
    else the one guessed from its name, else None.
    """
    declared = (getattr(djangofile, "content_type", None) or "").split(";")[0].strip().lower()
    if declared in VIDEO_MIME_TYPES:
        return declared
    if guess_kind(djangofile.name) == "video":
        guessed, _ = mimetypes.guess_type(djangofile.name)
        if guessed in VIDEO_MIME_TYPES:
            return guessed
    return None
