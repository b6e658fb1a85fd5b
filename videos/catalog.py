from django.db import DatabaseError, transaction

from .errors import PersistenceError
from .models import Video


class DjangoCatalogStore:
    """Persists finished packages as Video rows."""

    def save(self, record) -> str:
        try:
            with transaction.atomic():
                video = Video.objects.create(
                    title=record.title[:255],
                    source_key=record.source_locator,
                    thumbnail_key=record.thumbnail_locator or "",
                    manifest_key=record.manifest_locator,
                    renditions=record.renditions,
                    metadata=record.metadata,
                    warnings=record.warnings,
                    object_keys=record.object_keys,
                )
        except DatabaseError as e:
            raise PersistenceError(str(e)) from e
        return str(video.id)
