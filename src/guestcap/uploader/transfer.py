"""Direct-to-storage transfer of a single file."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

import httpx

from guestcap.core.config import settings
from guestcap.uploader.exceptions import TransferError, UploadAbortedError
from guestcap.uploader.models import DEFAULT_CONTENT_TYPE, LocalFile, percent

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# Client errors that a retry cannot fix still fail fast; these are transient
RETRYABLE_STATUS_CODES = {408, 429}


class AbortSignal:
    """One-shot signal used to abort in-flight transfers.

    Tasks attached with :meth:`attach` are cancelled inside :meth:`abort`
    itself, so a pending request is torn down before the caller returns.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._tasks: Set[asyncio.Future] = set()
        self.reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def abort(self, reason: str = "aborted") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()
            for task in list(self._tasks):
                task.cancel()

    def attach(self, task: asyncio.Future) -> None:
        """Cancel ``task`` when the signal fires, or now if it already has."""
        if self.aborted:
            task.cancel()
            return
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait(self) -> None:
        await self._event.wait()


class TransferEngine:
    """PUTs one file to a pre-authorized URL with progress and retries.

    A failed attempt is retried up to ``max_retries`` more times, waiting
    ``retry_delay_base * 2**n`` seconds before retry n+1. Every attempt
    re-sends the whole file.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: Optional[int] = None,
        retry_delay_base: Optional[float] = None,
        chunk_size: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self._client = client
        self.max_retries = max_retries if max_retries is not None else settings.UPLOAD_MAX_RETRIES
        self.retry_delay_base = (
            retry_delay_base if retry_delay_base is not None else settings.UPLOAD_RETRY_DELAY_BASE_SECONDS
        )
        self.chunk_size = chunk_size or settings.UPLOAD_CHUNK_SIZE_BYTES
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT

    async def transfer(
        self,
        file: LocalFile,
        url: str,
        on_progress: ProgressCallback,
        signal: Optional[AbortSignal] = None,
    ) -> None:
        """Upload ``file`` to ``url``.

        Reported progress never decreases: a retry re-sends from byte zero
        but only reports again once it passes the furthest point reached.
        The last report on success is always 100.

        Raises:
            UploadAbortedError: If ``signal`` fires before the upload finishes
            TransferError: If every attempt failed
        """
        reported = 0

        def report(value: int) -> None:
            nonlocal reported
            if value > reported:
                reported = value
                on_progress(value)

        attempt = 0
        while True:
            if signal is not None and signal.aborted:
                raise UploadAbortedError("Upload aborted")

            try:
                await self._run_abortable(self._put(file, url, report), signal)
                break
            except OSError as e:
                raise TransferError(f"Could not read {file.name}: {e}") from e
            except (httpx.HTTPError, TransferError) as e:
                if not self._is_retryable(e) or attempt >= self.max_retries:
                    logger.error(
                        f"Upload of {file.name} failed after {attempt + 1} attempts",
                        extra={"file_name": file.name, "total_attempts": attempt + 1, "final_error": str(e)},
                    )
                    if isinstance(e, TransferError):
                        raise
                    raise TransferError(f"Network error during upload: {e}") from e

                delay = self.retry_delay_base * (2 ** attempt)
                logger.warning(
                    f"Upload of {file.name} failed (attempt {attempt + 1}/{self.max_retries + 1}), "
                    f"retrying in {delay}s",
                    extra={"file_name": file.name, "attempt": attempt + 1, "error": str(e)},
                )
                await self._backoff(delay, signal)
                attempt += 1

        report(100)

    async def _put(self, file: LocalFile, url: str, report: ProgressCallback) -> None:
        async def body():
            sent = 0
            for chunk in file.iter_chunks(self.chunk_size):
                yield chunk
                # Resumed once the transport has taken the previous chunk
                sent += len(chunk)
                report(percent(sent, file.size))

        headers = {
            "Content-Type": file.content_type or DEFAULT_CONTENT_TYPE,
            "Content-Length": str(file.size),
        }

        if self._client is not None:
            response = await self._client.put(url, content=body(), headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.put(url, content=body(), headers=headers)

        if not response.is_success:
            raise TransferError(
                f"Upload failed with status {response.status_code}",
                status_code=response.status_code,
            )

    @staticmethod
    def _is_retryable(error: Exception) -> bool:
        if isinstance(error, TransferError):
            status = error.status_code
            return status is None or status >= 500 or status in RETRYABLE_STATUS_CODES
        return True

    @staticmethod
    async def _run_abortable(operation: Awaitable[None], signal: Optional[AbortSignal]) -> None:
        """Await ``operation``, cancelling it as soon as ``signal`` fires."""
        if signal is None:
            await operation
            return

        task = asyncio.ensure_future(operation)
        signal.attach(task)
        waiter = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        if task.cancelled():
            raise UploadAbortedError("Upload aborted")
        task.result()

    @staticmethod
    async def _backoff(delay: float, signal: Optional[AbortSignal]) -> None:
        if signal is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(signal.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise UploadAbortedError("Upload aborted")
