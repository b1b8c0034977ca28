"""Components for the Pouch publishing workflow."""

from __future__ import annotations

from typing import Any, Mapping

from pouch_publisher.core.state import Destination

from .publish_models import PublishRequest


def derive_editing_status(*, publish_public: bool, publish_internal: bool) -> str:
    """Map the visibility flags onto the magazine workflow used by one-click publishing."""
    if publish_public:
        return "submission"
    if publish_internal:
        return "feedback"
    return "draft"


def _flag(value: bool) -> str:
    return "1" if value else "0"


class PublishFormBuilder:
    """Builds the form fields for the ``api_create_post`` endpoint."""

    def build(self, request: PublishRequest) -> dict[str, str]:
        """
        Builds the ordered form dictionary.

        ``filename_base`` is only present for an update and the audio fields only
        when an audio file was uploaded. Empty values are left in place; the
        dispatcher drops them before sending.
        """
        form = {
            "title": request.title,
            "slug": request.slug,
            "markdown": request.markdown,
            "publish_internal": _flag(request.publish_internal),
            "publish_public": _flag(request.publish_public),
            "excerpt": _flag(request.excerpt),
            "hidden": _flag(request.hidden),
            "tags": request.tags,
            "post_template": request.template,
            "editing_status": request.editing_status,
            "shortname": request.destination_name,
        }
        if request.filename_base:
            form["filename_base"] = request.filename_base
        if request.audio_file:
            form["audio_file"] = request.audio_file
            form["include_in_podcast"] = _flag(request.include_in_podcast)
            form["publish_immediately"] = _flag(request.publish_immediately)
        return form


def post_url(response: Mapping[str, Any], *, publish_public: bool, destination: Destination) -> str:
    """Prefer the public path for public posts, otherwise the internal one."""
    public_path = response.get("public_url")
    internal_path = response.get("internal_url")
    if publish_public and public_path:
        return destination.base_url + str(public_path)
    if internal_path:
        return destination.base_url + str(internal_path)
    return ""


def url_label(*, publish_public: bool, hidden: bool) -> str:
    if publish_public:
        return "Hidden Post URL" if hidden else "Public Post URL"
    return "Internal Post URL"


__all__ = ["PublishFormBuilder", "derive_editing_status", "post_url", "url_label"]
