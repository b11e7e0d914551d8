"""Voice note transcription through the OpenAI audio API."""

from __future__ import annotations

import logging

from openai import OpenAI, OpenAIError

from .media import DownloadedMedia

logger = logging.getLogger(__name__)


def audio_filename(mime_type: str) -> str | None:
    """Map a WhatsApp audio MIME type to a filename the API accepts, or None."""
    normalised = mime_type.lower()
    if "ogg" in normalised or "opus" in normalised:
        return "voice.ogg"
    if "webm" in normalised:
        return "voice.webm"
    if "mpeg" in normalised or "mp3" in normalised:
        return "voice.mp3"
    if "wav" in normalised:
        return "voice.wav"
    if "mp4" in normalised or "m4a" in normalised or "aac" in normalised:
        return "voice.m4a"
    if "audio" in normalised:
        # WhatsApp voice notes are Opus in an Ogg container.
        return "voice.ogg"
    return None


def transcribe_audio(client: OpenAI, model: str, media: DownloadedMedia) -> str | None:
    filename = audio_filename(media.mime_type)
    if filename is None:
        logger.error("Unsupported audio format: %s", media.mime_type)
        return None

    logger.info("Transcribing audio (%s, %d bytes)", media.mime_type, len(media.data))
    try:
        result = client.audio.transcriptions.create(
            model=model,
            file=(filename, media.data, media.mime_type.split(";")[0].strip()),
        )
    except OpenAIError as exc:
        logger.error("Audio transcription failed: %s", exc)
        return None

    text = (getattr(result, "text", None) or "").strip()
    if not text:
        logger.error("No transcription returned")
        return None
    logger.info("Transcription successful: %s", text[:100])
    return text
