"""Audio upload to the Pouch recording module."""

from __future__ import annotations

from pouch_publisher.core.errors import AudioUploadError, NetworkError
from pouch_publisher.core.state import Destination
from pouch_publisher.utils.logging import get_logger
from pouch_publisher.utils.text import size_in_mb

from .api import PouchApiClient
from .multipart import FilePart, content_type_for, encode_multipart

LOGGER = get_logger(__name__)

UPLOAD_ENDPOINT = "/modules/audio_recording/upload_audio.php"


class PouchAudioUploader:
    """Posts a single audio file as multipart form data and returns the stored filename."""

    def __init__(self, api_client: PouchApiClient) -> None:
        self._client = api_client

    def upload(
        self,
        *,
        file_name: str,
        data: bytes,
        mime_type: str,
        slug: str,
        destination: Destination,
        remove_silence: bool = False,
    ) -> str:
        debug = self._client.debug_log
        url = destination.endpoint(UPLOAD_ENDPOINT)
        debug.info(f"Uploading audio file: {file_name} ({size_in_mb(len(data))} MB)")

        boundary, body = encode_multipart(
            [
                ("filename_base", slug),
                ("api_key", destination.api_key),
                ("remove_silence", "true" if remove_silence else "false"),
            ],
            FilePart(field_name="audio", file_name=file_name, mime_type=mime_type, data=data),
        )

        debug.request(url, "Uploading audio to server")
        try:
            raw = self._client.post(
                url,
                data=body,
                headers={"Content-Type": content_type_for(boundary)},
                error_label="Audio upload error",
            )
        except NetworkError as exc:
            raise AudioUploadError(exc.message, details={"endpoint": url}) from exc

        debug.response(url, raw.status, raw.body, f"Audio upload response: {raw.status}")

        if raw.status == 200:
            filename = raw.body.get("filename")
            if raw.body.get("success") and filename:
                LOGGER.info(
                    "Audio uploaded",
                    extra={"event": "audio.uploaded", "slug": slug, "remote_filename": filename},
                )
                return str(filename)
            message = str(raw.body.get("error") or "Audio upload failed")
        else:
            message = str(raw.body.get("error") or f"HTTP {raw.status}")

        debug.error(f"Audio upload error: {message}", endpoint=url, status=raw.status, body=raw.body)
        raise AudioUploadError(message, details={"endpoint": url, "status": raw.status})


__all__ = ["PouchAudioUploader", "UPLOAD_ENDPOINT"]
