"""Upload-and-handoff orchestrator.

Sequences a single attempt through three steps, strictly in order:

1. store the selected file in the avatars bucket under ``{user_id}/{token}.{ext}``
2. resolve the object's public URL
3. ``POST {api_url}/generate`` with ``{"user_id", "user_image_url"}``

Every phase change is published through the :class:`StatusReporter`. Failures
of any step end the attempt in ``FAILED`` with the underlying message; nothing
is retried and an object stored before a backend failure is left in place.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import BackendError, SessionRequiredError, StorageError, UploadPipelineError, ValidationError
from ..models.pipeline import PipelineState, PipelineStatus
from ..models.schemas import GenerationAcknowledgement, GenerationRequest
from .auth_session import Session
from .avatar_storage import AvatarStorage, build_storage_path
from .file_selector import SelectedFile
from .generation_backend import GenerationBackend
from .status_reporter import StatusReporter, status_text

logger = logging.getLogger(__name__)

AlertCallback = Callable[[str], None]

NO_FILE_MESSAGE = "no file selected"
CANCELLED_MESSAGE = "cancelled"


@dataclass
class UploadOutcome:
    """Terminal result of one attempt."""

    status: PipelineStatus
    message: str
    storage_path: Optional[str] = None
    public_url: Optional[str] = None
    object_stored: bool = False
    acknowledgement: Optional[GenerationAcknowledgement] = None
    error: Optional[UploadPipelineError] = None

    @property
    def succeeded(self) -> bool:
        return self.status is PipelineStatus.SUCCEEDED


def _log_alert(message: str) -> None:
    logger.warning("Alert: %s", message)


class UploadOrchestrator:
    """Drives store -> resolve URL -> notify backend for one component instance.

    Only one attempt runs at a time; a call made while another attempt is in
    flight is ignored and returns ``None``.
    """

    def __init__(
        self,
        storage: AvatarStorage,
        backend: GenerationBackend,
        *,
        reporter: Optional[StatusReporter] = None,
        alert: Optional[AlertCallback] = None,
        token_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._storage = storage
        self._backend = backend
        self._reporter = reporter or StatusReporter()
        self._alert = alert or _log_alert
        self._token_factory = token_factory
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def reporter(self) -> StatusReporter:
        return self._reporter

    @property
    def state(self) -> PipelineState:
        return self._reporter.state

    def _transition(self, status: PipelineStatus, reason: Optional[str] = None) -> None:
        current = self._reporter.state
        if not current.can_transition_to(status):
            raise RuntimeError(f"Illegal pipeline transition {current.status.value} -> {status.value}")
        new_state = PipelineState(status=status, reason=reason)
        logger.info("Upload pipeline %s -> %s", current.status.value, status.value)
        self._reporter.publish(new_state)

    def _reset(self) -> None:
        if self._reporter.state.status.terminal:
            self._transition(PipelineStatus.IDLE)

    def _fail(
        self,
        error: UploadPipelineError,
        *,
        storage_path: Optional[str] = None,
        public_url: Optional[str] = None,
        object_stored: bool = False,
    ) -> UploadOutcome:
        self._transition(PipelineStatus.FAILED, error.message)
        return UploadOutcome(
            status=PipelineStatus.FAILED,
            message=status_text(self._reporter.state),
            storage_path=storage_path,
            public_url=public_url,
            object_stored=object_stored,
            error=error,
        )

    async def start_upload(
        self,
        session: Optional[Session],
        selected_file: Optional[SelectedFile],
    ) -> Optional[UploadOutcome]:
        """Run one attempt and return its terminal outcome.

        Returns ``None`` without side effects when an attempt is already in
        progress. Errors never escape; cancelling the calling task records a
        ``FAILED`` status before the cancellation propagates.
        """

        if selected_file is None:
            error = ValidationError(NO_FILE_MESSAGE)
            self._alert("You must select an image to upload.")
            if self._busy:
                return UploadOutcome(status=PipelineStatus.FAILED, message=error.message, error=error)
            self._reset()
            return self._fail(error)

        if self._busy:
            logger.warning("Upload already in progress; ignoring new attempt")
            return None

        self._busy = True
        try:
            return await self._run(session, selected_file)
        finally:
            self._busy = False

    async def _run(self, session: Optional[Session], selected_file: SelectedFile) -> UploadOutcome:
        self._reset()
        if session is None:
            return self._fail(SessionRequiredError())

        try:
            token = self._token_factory() if self._token_factory else None
            storage_path = build_storage_path(session.user_id, selected_file.extension, token)
        except Exception as exc:
            logger.warning("Could not build a storage path for user %r: %s", session.user_id, exc)
            return self._fail(ValidationError(str(exc) or exc.__class__.__name__))
        public_url: Optional[str] = None
        upload_started = False
        stored = False

        try:
            self._transition(PipelineStatus.UPLOADING)
            upload_started = True
            try:
                await self._storage.upload(storage_path, selected_file.content, selected_file.content_type)
            except StorageError as exc:
                return self._fail(exc, storage_path=storage_path)
            stored = True

            try:
                public_url = self._storage.get_public_url(storage_path)
            except StorageError as exc:
                return self._fail(exc, storage_path=storage_path, object_stored=True)
            self._transition(PipelineStatus.RESOLVED)

            request = GenerationRequest(user_id=session.user_id, user_image_url=public_url)
            self._transition(PipelineStatus.NOTIFYING)
            try:
                ack = await self._backend.request_generation(request)
            except BackendError as exc:
                # No compensating delete: the stored object stays for an out-of-band retry.
                logger.warning("Backend handoff failed; stored object %s left in place", storage_path)
                return self._fail(exc, storage_path=storage_path, public_url=public_url, object_stored=True)

            self._transition(PipelineStatus.SUCCEEDED)
            return UploadOutcome(
                status=PipelineStatus.SUCCEEDED,
                message=status_text(self._reporter.state),
                storage_path=storage_path,
                public_url=public_url,
                object_stored=True,
                acknowledgement=ack,
            )
        except asyncio.CancelledError:
            if self._reporter.state.status.in_progress:
                self._transition(PipelineStatus.FAILED, CANCELLED_MESSAGE)
            if upload_started and not stored:
                # The worker thread may still finish the store after cancellation.
                logger.warning("Upload to %s cancelled; storage result unknown", storage_path)
            else:
                logger.warning("Upload to %s cancelled (object stored=%s)", storage_path, stored)
            raise
        except Exception as exc:
            logger.exception("Unexpected failure while uploading %s", storage_path)
            if not self._reporter.state.status.in_progress:
                raise
            return self._fail(
                UploadPipelineError(str(exc) or exc.__class__.__name__),
                storage_path=storage_path,
                public_url=public_url,
                object_stored=stored,
            )
