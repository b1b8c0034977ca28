"""Fire-and-forget transcription trigger for uploaded audio."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor

from pouch_publisher.core.errors import NetworkError, TranscriptionError
from pouch_publisher.core.state import Destination
from pouch_publisher.utils.logging import get_logger

from .api import FORM_CONTENT_TYPE, PouchApiClient

LOGGER = get_logger(__name__)

TRANSCRIBE_ENDPOINT = "/modules/transcription/trigger_transcription.php"

NOTICE_STARTED = "Post saved! Transcription started in background."
NOTICE_STARTED_AI = "Post saved! Transcription started with AI improvement."
NOTICE_FAILED = "Post saved! Transcription may have failed to start."
NOTICE_SKIPPED = "Post saved! Transcription skipped as requested."


class PouchTranscriptionTrigger:
    """Starts server-side transcription.

    :meth:`trigger` raises :class:`TranscriptionError`; :meth:`fire` runs it on a
    background worker and resolves to a user notice, never to an exception.
    """

    def __init__(
        self,
        api_client: PouchApiClient,
        *,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._client = api_client
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="pouch-transcribe"
        )

    def trigger(
        self,
        audio_filename: str,
        slug: str,
        destination: Destination,
        *,
        ai_model: str | None = None,
        ai_provider: str | None = None,
    ) -> str:
        form = {
            "audio_filename": audio_filename,
            "json_filename": f"{slug}.json",
            "api_key": destination.api_key,
        }
        if ai_model:
            form["ai_model"] = ai_model
        if ai_provider:
            form["ai_provider"] = ai_provider
        with_ai = bool(ai_model and ai_provider)

        url = destination.endpoint(TRANSCRIBE_ENDPOINT)
        debug = self._client.debug_log
        debug.request(
            url,
            "Triggering audio transcription with AI improvement"
            if with_ai
            else "Triggering audio transcription",
        )
        try:
            raw = self._client.post(
                url,
                data=form,
                headers={"Content-Type": FORM_CONTENT_TYPE},
                error_label="Transcription error",
            )
        except NetworkError as exc:
            raise TranscriptionError(exc.message, details={"endpoint": url}) from exc

        debug.response(url, raw.status, raw.body, f"Transcription trigger response: {raw.status}")
        if raw.status == 200 and raw.body.get("success"):
            return NOTICE_STARTED_AI if with_ai else NOTICE_STARTED
        raise TranscriptionError(
            str(raw.body.get("error") or f"HTTP {raw.status}"),
            details={"endpoint": url, "status": raw.status},
        )

    def fire(
        self,
        audio_filename: str,
        slug: str,
        destination: Destination,
        *,
        ai_model: str | None = None,
        ai_provider: str | None = None,
    ) -> Future[str]:
        future = self._executor.submit(
            self._run_detached,
            audio_filename,
            slug,
            destination,
            ai_model,
            ai_provider,
        )
        future.add_done_callback(_log_outcome)
        return future

    def _run_detached(
        self,
        audio_filename: str,
        slug: str,
        destination: Destination,
        ai_model: str | None,
        ai_provider: str | None,
    ) -> str:
        try:
            return self.trigger(
                audio_filename, slug, destination, ai_model=ai_model, ai_provider=ai_provider
            )
        except TranscriptionError as exc:
            LOGGER.warning(
                "Transcription trigger failed",
                extra={"event": "transcription.failed", "slug": slug, "reason": exc.message},
            )
            return NOTICE_FAILED
        except Exception as exc:
            LOGGER.error(
                "Transcription trigger crashed",
                extra={
                    "event": "transcription.crashed",
                    "slug": slug,
                    "error_type": type(exc).__name__,
                    "reason": str(exc),
                },
            )
            return NOTICE_FAILED

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def _log_outcome(future: Future[str]) -> None:
    exc = future.exception()
    if exc is not None:
        LOGGER.error(
            "Transcription task crashed",
            extra={"event": "transcription.crashed", "error_type": type(exc).__name__},
        )
        return
    LOGGER.info(future.result(), extra={"event": "transcription.notice"})


__all__ = [
    "NOTICE_FAILED",
    "NOTICE_SKIPPED",
    "NOTICE_STARTED",
    "NOTICE_STARTED_AI",
    "PouchTranscriptionTrigger",
    "TRANSCRIBE_ENDPOINT",
]
