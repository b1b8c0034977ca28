"""Workflow for publishing a note, with optional audio, to a Pouch destination."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any

import requests

from pouch_publisher.core.errors import (
    ABORTING_ERRORS,
    ApiError,
    AudioResolutionError,
    AudioUploadError,
    AudioValidationError,
    DestinationError,
    MetadataWriteError,
    PouchError,
)
from pouch_publisher.core.state import SettingsStore
from pouch_publisher.core.vault import Vault
from pouch_publisher.platforms import AudioUploader, PostDispatcher, TranscriptionStarter
from pouch_publisher.platforms.pouch import (
    PUBLISH_ENDPOINT,
    PouchApiClient,
    PouchAudioUploader,
    PouchTranscriptionTrigger,
)
from pouch_publisher.platforms.pouch.transcription import NOTICE_SKIPPED
from pouch_publisher.settings import AppConfig, TranscriptionSettings
from pouch_publisher.utils.logging import get_logger
from pouch_publisher.utils.text import slugify

from .audio_assets import AudioAsset, detect_audio, resolve_audio, strip_audio_embeds, validate_audio
from .front_matter import FrontMatterSynchronizer, read_publish_status
from .publish_components import PublishFormBuilder, derive_editing_status, post_url, url_label
from .publish_models import PublishJob, PublishOutcome, PublishRequest, PublishStage
from .publish_options import PublishOptions

LOGGER = get_logger(__name__)

FRONT_MATTER_WARNING = "Warning: Could not update front matter"
STATE_WARNING = "Warning: Could not save publishing state"


class PouchPublishWorkflow:
    """Coordinates audio resolution, upload, post dispatch and local state updates.

    Each stage runs to completion before the next starts. Only the transcription
    trigger is detached; its result never changes the publish outcome.
    """

    def __init__(
        self,
        *,
        vault: Vault,
        store: SettingsStore,
        dispatcher: PostDispatcher,
        uploader: AudioUploader,
        transcription: TranscriptionStarter,
        front_matter: FrontMatterSynchronizer | None = None,
        form_builder: PublishFormBuilder | None = None,
        max_audio_mb: float = 25,
        transcription_settings: TranscriptionSettings | None = None,
    ) -> None:
        self._vault = vault
        self._store = store
        self._dispatcher = dispatcher
        self._uploader = uploader
        self._transcription = transcription
        self._front_matter = front_matter or FrontMatterSynchronizer(vault)
        self._form_builder = form_builder or PublishFormBuilder()
        self._max_audio_mb = max_audio_mb
        self._ai = transcription_settings or TranscriptionSettings()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        store: SettingsStore,
        *,
        session: requests.Session | None = None,
    ) -> "PouchPublishWorkflow":
        client = PouchApiClient(store.debug_log, session=session, timeout=config.http.timeout)
        return cls(
            vault=Vault(config.paths.vault_root),
            store=store,
            dispatcher=client,
            uploader=PouchAudioUploader(client),
            transcription=PouchTranscriptionTrigger(client),
            max_audio_mb=config.audio.max_size_mb,
            transcription_settings=config.transcription,
        )

    @property
    def vault(self) -> Vault:
        return self._vault

    # Entry points ---------------------------------------------------------

    def publish_note(self, vault_path: str) -> PublishOutcome:
        """One-click publish using the stored preferences and selected destination."""
        destination = self._store.selected_destination()
        if destination is None:
            raise DestinationError("Please configure at least one Pouch destination")

        prefs = self._store.preferences
        title = PurePosixPath(vault_path).stem
        job = PublishJob(
            vault_path=vault_path,
            title=title,
            content=self._vault.read_text(vault_path),
            destination=destination,
            slug=slugify(title),
            editing_status=derive_editing_status(
                publish_public=prefs.publish_public, publish_internal=prefs.publish_internal
            ),
            publish_internal=prefs.publish_internal,
            publish_public=prefs.publish_public,
            excerpt=prefs.publish_excerpt,
            hidden=prefs.publish_hidden,
            tags=prefs.default_tags,
            template=prefs.default_template,
            include_in_podcast=prefs.include_in_podcast,
            publish_immediately=prefs.publish_immediately,
            enable_transcription=prefs.enable_transcription,
        )
        return self.run(job)

    def initial_options(self, vault_path: str) -> PublishOptions:
        status = read_publish_status(self._vault.read_text(vault_path))
        return PublishOptions.initial(
            slug=slugify(PurePosixPath(vault_path).stem),
            preferences=self._store.preferences,
            destination_index=self._store.selected_index,
            editing_status=status.editing_status if status else None,
        )

    def publish_with_options(self, vault_path: str, options: PublishOptions) -> PublishOutcome:
        """Publish with explicit choices from the options form.

        The editing status is sent as seeded from the note front matter unless a
        magazine-mode destination let the user pick another one.
        """
        if options.excerpt and options.hidden:
            raise ValueError("Excerpt and Hidden cannot both be enabled")
        destination = self._store.destination_at(options.destination_index)
        if destination is None:
            raise DestinationError(
                "Invalid destination selected", details={"index": options.destination_index}
            )

        if options.remember_settings:
            self._remember(options)

        job = PublishJob(
            vault_path=vault_path,
            title=PurePosixPath(vault_path).stem,
            content=self._vault.read_text(vault_path),
            destination=destination,
            slug=options.slug,
            editing_status=options.editing_status,
            publish_internal=options.publish_internal,
            publish_public=options.publish_public,
            excerpt=options.excerpt,
            hidden=options.hidden,
            tags=options.tags,
            template=options.template,
            include_in_podcast=options.include_in_podcast,
            publish_immediately=options.publish_immediately,
            remove_silence=options.remove_silence,
            enable_transcription=options.enable_transcription,
            improve_transcript_with_ai=(
                options.enable_transcription and options.improve_transcript_with_ai
            ),
        )
        return self.run(job)

    # State machine --------------------------------------------------------

    def run(self, job: PublishJob) -> PublishOutcome:
        mapping = self._store.get_mapping(job.vault_path)
        outcome = PublishOutcome(title=job.title, slug=job.slug, is_update=mapping is not None)
        LOGGER.info(
            "Updating existing post" if mapping else "Publishing new post",
            extra={"event": "publish.start", "path": job.vault_path, "slug": job.slug},
        )

        try:
            outcome.stage = PublishStage.RESOLVING_AUDIO
            reference = detect_audio(job.content)
            markdown = strip_audio_embeds(job.content)
            asset = None
            if reference is not None:
                LOGGER.info(
                    "Audio reference found",
                    extra={
                        "event": "audio.detected",
                        "reference": reference.path,
                        "stripped": reference.stripped_from_body,
                    },
                )
                asset = self._resolve_audio(reference.path, job)

            if asset is not None:
                outcome.stage = PublishStage.UPLOADING_AUDIO
                outcome.audio_filename = self._upload_audio(asset, job)

            outcome.stage = PublishStage.DISPATCHING
            request = PublishRequest(
                title=job.title,
                slug=job.slug,
                markdown=markdown,
                publish_internal=job.publish_internal,
                publish_public=job.publish_public,
                excerpt=job.excerpt,
                hidden=job.hidden,
                tags=job.tags,
                template=job.template,
                editing_status=job.editing_status,
                destination_name=job.destination.name,
                filename_base=mapping.filename_base if mapping else None,
                audio_file=outcome.audio_filename,
                include_in_podcast=job.include_in_podcast,
                publish_immediately=job.publish_immediately,
            )
            outcome.form = self._form_builder.build(request)
            response = self._dispatcher.send(PUBLISH_ENDPOINT, outcome.form, job.destination)
        except ABORTING_ERRORS as exc:
            return self._fail(outcome, exc)

        return self._succeed(outcome, job, response)

    def _resolve_audio(self, reference: str, job: PublishJob) -> AudioAsset:
        asset = resolve_audio(reference, job.vault_path, self._vault)
        if asset is None:
            raise AudioResolutionError(
                f"Audio file not found: {reference}", details={"note": job.vault_path}
            )
        validation = validate_audio(asset, max_size_mb=self._max_audio_mb)
        if not validation.valid:
            raise AudioValidationError(
                validation.error or "Unknown validation error", details={"path": asset.vault_path}
            )
        return asset

    def _upload_audio(self, asset: AudioAsset, job: PublishJob) -> str:
        try:
            data = self._vault.read_bytes(asset.vault_path)
        except OSError as exc:
            raise AudioUploadError(str(exc), details={"path": asset.vault_path}) from exc
        return self._uploader.upload(
            file_name=asset.file_name,
            data=data,
            mime_type=asset.mime_type,
            slug=job.slug,
            destination=job.destination,
            remove_silence=job.remove_silence,
        )

    def _fail(self, outcome: PublishOutcome, exc: PouchError) -> PublishOutcome:
        outcome.stage = PublishStage.FAILED
        outcome.error = exc
        message = (
            f"Audio upload failed: {exc.message}" if isinstance(exc, AudioUploadError) else exc.message
        )
        error_code = str(exc.status_code) if isinstance(exc, ApiError) else None
        LOGGER.error(
            "Publish failed",
            extra={
                "event": "publish.failed",
                "slug": outcome.slug,
                "error_type": type(exc).__name__,
                "reason": message,
            },
        )
        self._log_publish(outcome, success=False, error_code=error_code, error_message=message)
        return outcome

    def _succeed(
        self, outcome: PublishOutcome, job: PublishJob, response: dict[str, Any]
    ) -> PublishOutcome:
        outcome.response = response
        filename_base = response.get("filename_base")
        if filename_base:
            try:
                self._store.upsert_mapping(job.vault_path, str(filename_base))
            except OSError as exc:
                LOGGER.warning(
                    "Could not persist post mapping",
                    extra={"event": "state.write_failed", "reason": str(exc)},
                )
                outcome.notices.append(STATE_WARNING)

        outcome.url = post_url(response, publish_public=job.publish_public, destination=job.destination)
        outcome.url_label = url_label(publish_public=job.publish_public, hidden=job.hidden)
        try:
            self._front_matter.update(
                job.vault_path, job.destination.name, outcome.url, job.editing_status
            )
        except MetadataWriteError as exc:
            LOGGER.warning(
                "Front matter update failed",
                extra={"event": "frontmatter.failed", "path": job.vault_path, "reason": str(exc)},
            )
            outcome.notices.append(FRONT_MATTER_WARNING)

        outcome.stage = PublishStage.SUCCEEDED
        self._log_publish(outcome, success=True)
        LOGGER.info(
            "Publish succeeded",
            extra={"event": "publish.succeeded", "slug": job.slug, "url": outcome.url},
        )

        if outcome.audio_filename:
            self._start_transcription(outcome, job, outcome.audio_filename)
        return outcome

    def _start_transcription(
        self, outcome: PublishOutcome, job: PublishJob, audio_filename: str
    ) -> None:
        if not job.enable_transcription:
            outcome.notices.append(NOTICE_SKIPPED)
            return
        ai_model = self._ai.ai_model if job.improve_transcript_with_ai else None
        ai_provider = self._ai.ai_provider if job.improve_transcript_with_ai else None
        outcome.transcription = self._transcription.fire(
            audio_filename,
            job.slug,
            job.destination,
            ai_model=ai_model,
            ai_provider=ai_provider,
        )

    def _log_publish(
        self,
        outcome: PublishOutcome,
        *,
        success: bool,
        error_code: str | None = None,
        error_message: str | None = None,
    ) -> None:
        try:
            self._store.publish_log.record(
                title=outcome.title,
                slug=outcome.slug,
                url=outcome.url,
                success=success,
                error_code=error_code,
                error_message=error_message,
            )
        except OSError as exc:
            LOGGER.warning(
                "Could not persist publish log",
                extra={"event": "state.write_failed", "reason": str(exc)},
            )
            outcome.notices.append(STATE_WARNING)

    def _remember(self, options: PublishOptions) -> None:
        self._store.update_preferences(
            publish_internal=options.publish_internal,
            publish_public=options.publish_public,
            publish_excerpt=options.excerpt,
            publish_hidden=options.hidden,
            default_tags=options.tags,
            default_template=options.template,
            remember_settings=options.remember_settings,
        )
        self._store.select_destination(options.destination_index)


__all__ = ["PouchPublishWorkflow"]
