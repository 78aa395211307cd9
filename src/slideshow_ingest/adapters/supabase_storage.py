"""Supabase Storage bucket used for originals and variants."""

from dataclasses import dataclass

from supabase import Client

from slideshow_ingest.domain.errors import RemoteServiceError
from slideshow_ingest.services.blobs import ObjectStorage

_GCS_PREFIX = "gs://"
_GCS_PUBLIC_BASE = "https://storage.googleapis.com/"


@dataclass
class SupabaseObjectStorage(ObjectStorage):
    """Object storage backed by one Supabase Storage bucket."""

    client: Client
    bucket: str

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Upload bytes, replacing any object already at the path."""
        try:
            self.client.storage.from_(self.bucket).upload(
                path,
                data,
                {"content-type": content_type, "upsert": "true"},
            )
        except Exception as exc:
            raise RemoteServiceError("storage", f"upload of {path} failed: {exc}") from exc
        return path

    def public_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        # Records imported from the legacy bucket keep their gs:// URIs.
        if path.startswith(_GCS_PREFIX):
            return _GCS_PUBLIC_BASE + path.removeprefix(_GCS_PREFIX)
        return self.client.storage.from_(self.bucket).get_public_url(path)

    def remove(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            self.client.storage.from_(self.bucket).remove(paths)
        except Exception as exc:
            raise RemoteServiceError("storage", f"remove failed: {exc}") from exc
