"""Choosing local file names for downloaded attachments."""

from __future__ import annotations

import mimetypes
import re
from email.header import decode_header, make_header
from email.message import Message
from email.utils import collapse_rfc2231_value
from pathlib import Path, PurePosixPath, PureWindowsPath

__all__ = ["fallback_filename", "filename_from_headers", "safe_filename", "unique_path"]

_ENCODED_WORD = re.compile(r"=\?[^?]+\?[bBqQ]\?[^?]*\?=")


def _decode_mime_words(value: str) -> str:
    if not _ENCODED_WORD.search(value):
        return value
    return str(make_header(decode_header(value)))


def filename_from_headers(content_disposition: str | None) -> str | None:
    """Extract the file name announced by a ``Content-Disposition`` header.

    An RFC 2231 ``filename*`` parameter wins over a plain ``filename``; MIME
    encoded-words in the plain form are decoded.
    """

    if not content_disposition:
        return None
    message = Message()
    message["Content-Disposition"] = content_disposition
    extended: str | None = None
    plain: str | None = None
    for key, value in message.get_params(header="Content-Disposition") or []:
        if key.lower() != "filename":
            continue
        if isinstance(value, tuple):
            extended = extended or collapse_rfc2231_value(value)
        elif plain is None and value:
            plain = value
    if extended:
        return safe_filename(extended)
    if plain:
        return safe_filename(_decode_mime_words(plain))
    return None


def fallback_filename(file_key: str, content_type: str | None) -> str:
    """Derive a name from the file key and the response content type."""

    extension = ""
    if content_type:
        mime = content_type.split(";", 1)[0].strip().lower()
        extension = mimetypes.guess_extension(mime, strict=False) or ""
    return safe_filename(f"{file_key}{extension}")


def safe_filename(name: str) -> str:
    """Strip directory components so the name stays inside the target dir."""

    name = PureWindowsPath(PurePosixPath(name).name).name.strip()
    if name in {"", ".", ".."}:
        return "download"
    return name


def unique_path(directory: Path, filename: str) -> Path:
    """Return ``directory/filename`` or the first free ``name (N).ext`` variant."""

    candidate = directory / filename
    if not candidate.exists():
        return candidate
    path = Path(filename)
    stem, suffix = path.stem, path.suffix
    counter = 1
    while True:
        candidate = directory / f"{stem} ({counter}){suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
