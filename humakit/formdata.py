"""Multipart form file handling: reading uploaded files and checking media types."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import BinaryIO, Callable, Mapping, Optional, Sequence

from humakit.errors import ErrorDetail

__all__ = [
    "DEFAULT_CONTENT_TYPE",
    "FileHeader",
    "FormFile",
    "MimeTypeValidator",
    "detect_content_type",
    "read_file",
    "read_single_file",
    "read_multiple_files",
]

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_SNIFF_LEN = 512
_INFER_LEN = 1000
_WHITESPACE = b"\t\n\x0c\r "
_BINARY_BYTES = frozenset(
    [*range(0x00, 0x09), 0x0B, *range(0x0E, 0x1B), *range(0x1C, 0x20)]
)


@dataclass
class FileHeader:
    """One uploaded file as it arrived in a multipart form."""

    filename: str
    content: bytes = b""
    content_type: str = ""

    @property
    def size(self) -> int:
        return len(self.content)

    def open(self) -> BinaryIO:
        return io.BytesIO(self.content)


@dataclass
class FormFile:
    """A file read from a form field, with its resolved media type."""

    file: Optional[BinaryIO] = None
    content_type: str = ""
    is_set: bool = False
    size: int = 0
    filename: str = ""


_Sniffer = Callable[[bytes, int], Optional[str]]


def _exact(signature: bytes, ct: str) -> _Sniffer:
    def match(data: bytes, first_non_ws: int) -> Optional[str]:
        return ct if data.startswith(signature) else None

    return match


def _masked(mask: bytes, pattern: bytes, ct: str, skip_ws: bool = False) -> _Sniffer:
    def match(data: bytes, first_non_ws: int) -> Optional[str]:
        if skip_ws:
            data = data[first_non_ws:]
        if len(data) < len(pattern):
            return None
        if all(d & m == p for d, m, p in zip(data, mask, pattern)):
            return ct
        return None

    return match


def _html(tag: bytes) -> _Sniffer:
    def match(data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(tag) + 1:
            return None
        for expected, actual in zip(tag, data):
            if ord("A") <= expected <= ord("Z"):
                actual &= 0xDF
            if expected != actual:
                return None
        if data[len(tag)] not in b" >":
            return None
        return "text/html; charset=utf-8"

    return match


def _mp4(data: bytes, first_non_ws: int) -> Optional[str]:
    if len(data) < 12:
        return None
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0:
        return None
    if data[4:8] != b"ftyp":
        return None
    for start in range(8, box_size, 4):
        if start == 12:
            continue
        if data[start:start + 3] == b"mp4":
            return "video/mp4"
    return None


def _text(data: bytes, first_non_ws: int) -> Optional[str]:
    if any(b in _BINARY_BYTES for b in data[first_non_ws:]):
        return None
    return "text/plain; charset=utf-8"


_HTML_TAGS = (
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1", b"<DIV",
    b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B", b"<BODY", b"<BR",
    b"<P", b"<!--",
)

_RIFF_MASK = b"\xFF\xFF\xFF\xFF\x00\x00\x00\x00\xFF\xFF\xFF\xFF"

_SNIFFERS: tuple[_Sniffer, ...] = (
    *(_html(tag) for tag in _HTML_TAGS),
    _masked(b"\xFF" * 5, b"<?xml", "text/xml; charset=utf-8", skip_ws=True),
    _exact(b"%PDF-", "application/pdf"),
    _exact(b"%!PS-Adobe-", "application/postscript"),
    _masked(b"\xFF\xFF\x00\x00", b"\xFE\xFF\x00\x00", "text/plain; charset=utf-16be"),
    _masked(b"\xFF\xFF\x00\x00", b"\xFF\xFE\x00\x00", "text/plain; charset=utf-16le"),
    _masked(b"\xFF\xFF\xFF\x00", b"\xEF\xBB\xBF\x00", "text/plain; charset=utf-8"),
    _exact(b"\x00\x00\x01\x00", "image/x-icon"),
    _exact(b"\x00\x00\x02\x00", "image/x-icon"),
    _exact(b"BM", "image/bmp"),
    _exact(b"GIF87a", "image/gif"),
    _exact(b"GIF89a", "image/gif"),
    _masked(_RIFF_MASK + b"\xFF\xFF", b"RIFF\x00\x00\x00\x00WEBPVP", "image/webp"),
    _exact(b"\x89PNG\x0D\x0A\x1A\x0A", "image/png"),
    _exact(b"\xFF\xD8\xFF", "image/jpeg"),
    _masked(b"\xFF" * 4, b".snd", "audio/basic"),
    _masked(_RIFF_MASK, b"FORM\x00\x00\x00\x00AIFF", "audio/aiff"),
    _masked(b"\xFF" * 3, b"ID3", "audio/mpeg"),
    _masked(b"\xFF" * 5, b"OggS\x00", "application/ogg"),
    _masked(b"\xFF" * 8, b"MThd\x00\x00\x00\x06", "audio/midi"),
    _masked(_RIFF_MASK, b"RIFF\x00\x00\x00\x00AVI ", "video/avi"),
    _masked(_RIFF_MASK, b"RIFF\x00\x00\x00\x00WAVE", "audio/wave"),
    _mp4,
    _exact(b"\x1A\x45\xDF\xA3", "video/webm"),
    _masked(b"\xFF" * 4, b"\x00\x01\x00\x00", "font/ttf"),
    _exact(b"OTTO", "font/otf"),
    _exact(b"ttcf", "font/collection"),
    _exact(b"wOFF", "font/woff"),
    _exact(b"wOF2", "font/woff2"),
    _exact(b"\x1F\x8B\x08", "application/x-gzip"),
    _exact(b"PK\x03\x04", "application/zip"),
    _exact(b"Rar!\x1A\x07\x00", "application/x-rar-compressed"),
    _exact(b"Rar!\x1A\x07\x01\x00", "application/x-rar-compressed"),
    _exact(b"\x00\x61\x73\x6D", "application/wasm"),
    _text,
)


def detect_content_type(data: bytes) -> str:
    """Guess a media type from at most the first 512 bytes of ``data``."""
    data = bytes(data[:_SNIFF_LEN])
    first_non_ws = len(data) - len(data.lstrip(_WHITESPACE))
    for sniff in _SNIFFERS:
        ct = sniff(data, first_non_ws)
        if ct:
            return ct
    return DEFAULT_CONTENT_TYPE


def _open(file_header: FileHeader, location: str) -> BinaryIO:
    try:
        return file_header.open()
    except OSError as exc:
        raise ErrorDetail(message="Failed to open file", location=location) from exc


class MimeTypeValidator:
    """Checks uploaded files against a comma separated list of accepted media types."""

    def __init__(self, content_type: str = DEFAULT_CONTENT_TYPE):
        self.accept = [m.strip(" ") for m in content_type.split(",")]

    def __repr__(self) -> str:
        return f"MimeTypeValidator({','.join(self.accept)!r})"

    def _accepts(self, mime_type: str) -> bool:
        for accepted in self.accept:
            if accepted in ("text/plain", DEFAULT_CONTENT_TYPE):
                return True
            if accepted.endswith("/*") and mime_type.startswith(accepted.rstrip("*")):
                return True
            if mime_type == accepted:
                return True
        return False

    def validate(self, file_header: FileHeader, location: str) -> str:
        """Return the file's media type, raising :class:`ErrorDetail` if it is not accepted.

        Without a declared Content-Type the type is detected from the file's first bytes.
        """
        mime_type = file_header.content_type
        if not mime_type:
            with _open(file_header, location) as stream:
                head = stream.read(_INFER_LEN)
            if not head:
                raise ErrorDetail(message="Failed to infer file media type", location=location)
            mime_type = detect_content_type(head)
        if self._accepts(mime_type):
            return mime_type
        raise ErrorDetail(
            message=f"Invalid mime type: got {mime_type}, expected {','.join(self.accept)}",
            location=location,
            value=mime_type,
        )


def read_file(file_header: FileHeader, location: str, validator: MimeTypeValidator) -> FormFile:
    """Validate and open one uploaded file."""
    content_type = validator.validate(file_header, location)
    return FormFile(
        file=_open(file_header, location),
        content_type=content_type,
        is_set=True,
        size=file_header.size,
        filename=file_header.filename,
    )


def read_single_file(
    files: Mapping[str, Sequence[FileHeader]],
    key: str,
    required: bool = False,
    content_type: str = DEFAULT_CONTENT_TYPE,
) -> FormFile:
    """Read the single file sent under ``key``; an unset FormFile if optional and absent."""
    headers = files.get(key, ())
    if not headers:
        if required:
            raise ErrorDetail(message="File required", location=key)
        return FormFile()
    if len(headers) == 1:
        return read_file(headers[0], key, MimeTypeValidator(content_type))
    raise ErrorDetail(message="Multiple files received but only one was expected", location=key)


def read_multiple_files(
    files: Mapping[str, Sequence[FileHeader]],
    key: str,
    required: bool = False,
    content_type: str = DEFAULT_CONTENT_TYPE,
) -> tuple[list[FormFile], list[ErrorDetail]]:
    """Read every file sent under ``key``, collecting errors instead of stopping at the first.

    Files that fail validation stay in the list as unset entries.
    """
    headers = files.get(key, ())
    if required and not headers:
        return [], [ErrorDetail(message="At least one file is required", location=key)]
    validator = MimeTypeValidator(content_type)
    result: list[FormFile] = []
    errors: list[ErrorDetail] = []
    for index, header in enumerate(headers):
        try:
            result.append(read_file(header, f"{key}[{index}]", validator))
        except ErrorDetail as err:
            errors.append(err)
            result.append(FormFile())
    return result, errors