"""Multi-file upload orchestration.

``ChunkedUploader`` owns a queue of files and uploads them one at a time,
in the order they were added, to destinations minted by an upload session.
A file that fails after its retries is marked as errored and the batch moves
on; the session is then reconciled with the paths that did reach storage.
A reconciliation that fails is kept and sent again at the start of the next
run, and the batch only reports complete once every session is reconciled.

Progress, completion and errors are reported through three separate
callbacks. Progress snapshots are byte-weighted and are emitted on every
transfer tick.
"""

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional

from guestcap.uploader.exceptions import (
    EmptyQueueError,
    SessionCompleteError,
    UnexpectedUploadError,
    UploadAbortedError,
    UploadError,
    UploadInProgressError,
)
from guestcap.uploader.models import (
    FileStatus,
    FileToUpload,
    LocalFile,
    UploadProgress,
    UploadStatus,
    percent,
)
from guestcap.uploader.session_client import SessionProtocolClient
from guestcap.uploader.transfer import AbortSignal, TransferEngine

logger = logging.getLogger(__name__)

PAUSE = "pause"
CANCEL = "cancel"


class ChunkedUploader:
    """Sequential, pausable uploader for one guest's batch of files."""

    def __init__(
        self,
        event_id: str,
        guest_id: str,
        guest_token: str,
        on_progress: Optional[Callable[[UploadProgress], None]] = None,
        on_complete: Optional[Callable[[List[str]], None]] = None,
        on_error: Optional[Callable[[UploadError], None]] = None,
        session_client: Optional[SessionProtocolClient] = None,
        transfer_engine: Optional[TransferEngine] = None,
    ):
        self.event_id = event_id
        self.guest_id = guest_id
        self.guest_token = guest_token
        self._on_progress = on_progress
        self._on_complete = on_complete
        self._on_error = on_error
        self.session_client = session_client or SessionProtocolClient()
        self.transfer_engine = transfer_engine or TransferEngine()

        self._files: List[FileToUpload] = []
        self._uploaded_paths: List[str] = []
        # Transferred paths whose completion call failed, by session id
        self._unreconciled: Dict[str, List[str]] = {}
        self._status = UploadStatus.IDLE
        self._signal: Optional[AbortSignal] = None
        self._run: Optional[asyncio.Task] = None

    # Queue

    def add_files(self, files: Iterable[LocalFile]) -> List[FileToUpload]:
        """Queue files as pending tasks and return the created tasks."""
        new_files = [FileToUpload.create(f) for f in files]
        self._files.extend(new_files)
        return new_files

    def remove_file(self, file_id: str) -> bool:
        """Remove a pending task. Tasks that started uploading are kept."""
        for task in self._files:
            if task.id == file_id and task.status == FileStatus.PENDING:
                self._files.remove(task)
                return True
        return False

    def get_files(self) -> List[FileToUpload]:
        return list(self._files)

    def get_total_size(self) -> int:
        return sum(f.file.size for f in self._files)

    @property
    def status(self) -> UploadStatus:
        return self._status

    @property
    def uploaded_paths(self) -> List[str]:
        """Storage paths of every file uploaded since the last cancel."""
        return list(self._uploaded_paths)

    # Control

    async def start(self) -> None:
        """Upload every task that is not complete yet.

        Returns once the batch has completed, failed or been paused.
        """
        if self._run is not None and not self._run.done():
            self._report_error(UploadInProgressError("Upload already in progress"))
            return

        if not self._files:
            self._report_error(EmptyQueueError("No files to upload"))
            return

        if self._nothing_left():
            self._finish_without_upload()
            return

        self._run = asyncio.ensure_future(self._run_batch())
        await self._run

    def pause(self) -> None:
        """Abort the in-flight transfer and stop after the current step settles."""
        if self._status != UploadStatus.UPLOADING or self._signal is None:
            return
        logger.info("Pausing upload", extra={"event_id": self.event_id})
        self._signal.abort(PAUSE)

    async def resume(self) -> None:
        """Continue a paused batch with a new session for the unfinished files.

        The interrupted file restarts from zero; completed files are never
        sent again. Completion calls that failed earlier are repeated first.
        With nothing left to upload or reconcile the batch reports complete.
        """
        if self._run is not None and not self._run.done():
            await asyncio.gather(self._run, return_exceptions=True)

        for task in self._files:
            if task.status == FileStatus.UPLOADING:
                task.status = FileStatus.PENDING
                task.progress = 0

        if self._nothing_left():
            self._finish_without_upload()
            return

        await self.start()

    def cancel(self) -> None:
        """Abort in-flight I/O and drop the queue without reconciling.

        The pending request is cancelled before this returns. The batch
        coroutine itself unwinds on its next turn of the event loop.
        """
        logger.info("Cancelling upload", extra={"event_id": self.event_id})
        if self._signal is not None:
            self._signal.abort(CANCEL)
        self._files = []
        self._uploaded_paths = []
        self._unreconciled = {}
        self._status = UploadStatus.IDLE

    # Batch execution

    def _nothing_left(self) -> bool:
        if self._unreconciled:
            return False
        return all(task.status == FileStatus.COMPLETE for task in self._files)

    def _finish_without_upload(self) -> None:
        self._status = UploadStatus.COMPLETE
        self._emit(self._snapshot(UploadStatus.COMPLETE, current_file_progress=100))
        if self._on_complete:
            self._on_complete(list(self._uploaded_paths))

    async def _run_batch(self) -> None:
        signal = AbortSignal()
        self._signal = signal
        self._status = UploadStatus.UPLOADING

        batch = [task for task in self._files if task.status != FileStatus.COMPLETE]
        for task in batch:
            task.status = FileStatus.PENDING
            task.progress = 0
            task.error = None

        try:
            await self._reconcile_pending(signal)
            if signal.reason == CANCEL:
                return
            if batch:
                await self._upload_batch(batch, signal)
            else:
                self._finish_without_upload()
        except UploadError as e:
            self._fail(e, signal)
        except Exception as e:
            logger.error(f"Unexpected error during upload: {e}", exc_info=True)
            error = UnexpectedUploadError(str(e))
            error.__cause__ = e
            self._fail(error, signal)

    async def _reconcile_pending(self, signal: AbortSignal) -> None:
        """Repeat completion calls that failed in an earlier run.

        Completion is idempotent per (session, path) on the server, so a
        call that did land before failing is safe to send again.
        """
        for session_id, paths in list(self._unreconciled.items()):
            if signal.reason == CANCEL:
                return
            logger.info(
                f"Retrying upload completion: session_id={session_id}, files={len(paths)}",
                extra={"event_id": self.event_id},
            )
            await self.session_client.complete_session(session_id, self.guest_token, paths)
            self._unreconciled.pop(session_id, None)

    async def _upload_batch(self, batch: List[FileToUpload], signal: AbortSignal) -> None:
        session = await self.session_client.create_session(
            self.event_id, self.guest_id, self.guest_token, batch
        )

        if signal.reason == CANCEL:
            return

        logger.info(
            f"Upload session started: session_id={session.session_id}, files={len(batch)}",
            extra={"event_id": self.event_id, "guest_id": self.guest_id},
        )

        destinations = {d.file_id: d for d in session.signed_urls}
        succeeded: List[str] = []

        for task in batch:
            if signal.aborted:
                break

            destination = destinations.get(task.id)
            if destination is None:
                logger.warning(f"No upload destination issued for {task.file.name}")
                task.status = FileStatus.ERROR
                task.error = "No upload destination issued"
                continue

            task.status = FileStatus.UPLOADING
            task.progress = 0
            self._emit(self._snapshot(UploadStatus.UPLOADING, current=task))

            try:
                await self.transfer_engine.transfer(
                    task.file,
                    destination.url,
                    self._progress_listener(task, signal),
                    signal=signal,
                )
            except UploadAbortedError:
                # Left as uploading; resume() restarts it from zero
                break
            except UploadError as e:
                task.status = FileStatus.ERROR
                task.error = str(e)
                logger.warning(
                    f"File upload failed: {task.file.name}: {e}",
                    extra={"file_id": task.id, "session_id": session.session_id},
                )
                continue

            if signal.reason == CANCEL:
                return

            task.status = FileStatus.COMPLETE
            task.progress = 100
            succeeded.append(destination.path)
            self._uploaded_paths.append(destination.path)

        if signal.reason == CANCEL:
            return

        self._status = UploadStatus.PROCESSING
        self._emit(self._snapshot(UploadStatus.PROCESSING, current_file_progress=100))

        try:
            await self.session_client.complete_session(session.session_id, self.guest_token, succeeded)
        except SessionCompleteError:
            self._unreconciled[session.session_id] = succeeded
            raise

        if signal.reason == CANCEL:
            return

        if signal.reason == PAUSE:
            self._status = UploadStatus.PAUSED
            self._emit(self._snapshot(UploadStatus.PAUSED))
            return

        self._status = UploadStatus.COMPLETE
        self._emit(self._snapshot(UploadStatus.COMPLETE, current_file_progress=100))
        if self._on_complete:
            self._on_complete(list(self._uploaded_paths))

    def _progress_listener(self, task: FileToUpload, signal: AbortSignal) -> Callable[[int], None]:
        def on_tick(value: int) -> None:
            if signal.aborted:
                return
            task.progress = value
            self._emit(self._snapshot(UploadStatus.UPLOADING, current=task))

        return on_tick

    def _fail(self, error: UploadError, signal: AbortSignal) -> None:
        if signal.reason == CANCEL:
            return
        logger.error(
            f"Upload batch failed: {error}",
            extra={"event_id": self.event_id, "error_type": type(error).__name__},
        )
        self._status = UploadStatus.ERROR
        self._emit(self._snapshot(UploadStatus.ERROR, error=str(error)))
        self._report_error(error)

    # Reporting

    def _snapshot(
        self,
        status: UploadStatus,
        current: Optional[FileToUpload] = None,
        current_file_progress: int = 0,
        error: Optional[str] = None,
    ) -> UploadProgress:
        completed = [t for t in self._files if t.status == FileStatus.COMPLETE]
        bytes_uploaded = sum(t.file.size for t in completed)
        if current is not None:
            bytes_uploaded += round(current.file.size * current.progress / 100)
            current_file_progress = current.progress

        bytes_total = self.get_total_size()
        return UploadProgress(
            total_files=len(self._files),
            completed_files=len(completed),
            current_file_name=current.file.name if current is not None else "",
            current_file_progress=current_file_progress,
            overall_progress=percent(bytes_uploaded, bytes_total),
            bytes_uploaded=bytes_uploaded,
            bytes_total=bytes_total,
            status=status,
            error=error,
        )

    def _emit(self, progress: UploadProgress) -> None:
        if self._on_progress:
            self._on_progress(progress)

    def _report_error(self, error: UploadError) -> None:
        if self._on_error:
            self._on_error(error)
