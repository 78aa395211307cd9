"""Error taxonomy shared by services and adapters."""


class IngestError(Exception):
    """Base class for ingestion pipeline errors."""


class RemoteServiceError(IngestError):
    """A remote call (picker, vision, storage) was rejected or failed in transport."""

    def __init__(
        self, service: str, detail: str, status_code: int | None = None
    ) -> None:
        self.service = service
        self.detail = detail
        self.status_code = status_code
        prefix = f"{service} failed"
        if status_code is not None:
            prefix = f"{prefix} ({status_code})"
        super().__init__(f"{prefix}: {detail}")


class SessionExpiredError(RemoteServiceError):
    """The picker session has expired and must be recreated."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            "picker",
            f"session {session_id} has expired; create a new session",
        )
        self.session_id = session_id


class NotFoundError(IngestError):
    """A session, blob or source record is absent."""

    def __init__(self, kind: str, key: object) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} {key} not found")


class ValidationError(IngestError):
    """Structured input (vision output, processing result) is malformed."""


class DuplicateContent(IngestError):  # noqa: N818
    """Signals that a blob with the same content hash already exists."""

    def __init__(self, blob_hash: str) -> None:
        self.blob_hash = blob_hash
        super().__init__(f"blob {blob_hash} already exists")
