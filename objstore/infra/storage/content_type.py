"""Content type resolution for uploaded objects.

The type is taken from the object path's extension when the standard
extension table knows it. Otherwise the leading bytes of the content are
sniffed against a table of magic numbers and text heuristics, following the
WHATWG MIME sniffing rules.
"""

from __future__ import annotations

import mimetypes
import posixpath
from dataclasses import dataclass
from typing import IO, Callable

from objstore.common.context import Context, check
from objstore.common.errors import ReadError
from objstore.infra.storage.streams import ChainedReader

SNIFF_LEN = 512

TEXT_PLAIN_UTF8 = "text/plain; charset=utf-8"
OCTET_STREAM = "application/octet-stream"

# Leading bytes skipped before matching markup signatures.
_WHITESPACE = b"\t\n\x0c\r "
# Bytes that mark content as binary rather than text.
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def _strip_whitespace(data: bytes) -> bytes:
    return data.lstrip(_WHITESPACE)


@dataclass(frozen=True)
class _Exact:
    sig: bytes
    content_type: str

    def match(self, data: bytes) -> str | None:
        return self.content_type if data.startswith(self.sig) else None


@dataclass(frozen=True)
class _Masked:
    mask: bytes
    pattern: bytes
    content_type: str
    skip_whitespace: bool = False

    def match(self, data: bytes) -> str | None:
        if self.skip_whitespace:
            data = _strip_whitespace(data)
        if len(data) < len(self.pattern):
            return None
        for mask_byte, pattern_byte, data_byte in zip(self.mask, self.pattern, data):
            if data_byte & mask_byte != pattern_byte:
                return None
        return self.content_type


@dataclass(frozen=True)
class _Html:
    tag: bytes

    def match(self, data: bytes) -> str | None:
        data = _strip_whitespace(data)
        if len(data) < len(self.tag) + 1:
            return None
        if data[: len(self.tag)].upper() != self.tag:
            return None
        if data[len(self.tag)] not in b" >":
            return None
        return "text/html; charset=utf-8"


def _match_mp4(data: bytes) -> str | None:
    if len(data) < 12:
        return None
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0:
        return None
    if data[4:8] != b"ftyp":
        return None
    for start in range(8, box_size, 4):
        if start == 12:
            # minor version, not a brand
            continue
        if data[start : start + 3] == b"mp4":
            return "video/mp4"
    return None


def _match_text(data: bytes) -> str | None:
    if any(byte in _BINARY_BYTES for byte in data):
        return None
    return TEXT_PLAIN_UTF8


_HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

_SNIFFERS: tuple[Callable[[bytes], str | None], ...] = (
    *(_Html(tag).match for tag in _HTML_TAGS),
    _Masked(b"\xff\xff\xff\xff\xff", b"<?xml", "text/xml; charset=utf-8", True).match,
    _Exact(b"%PDF-", "application/pdf").match,
    _Exact(b"%!PS-Adobe-", "application/postscript").match,
    # UTF BOMs
    _Masked(b"\xff\xff\x00\x00", b"\xfe\xff\x00\x00", "text/plain; charset=utf-16be").match,
    _Masked(b"\xff\xff\x00\x00", b"\xff\xfe\x00\x00", "text/plain; charset=utf-16le").match,
    _Masked(b"\xff\xff\xff\x00", b"\xef\xbb\xbf\x00", TEXT_PLAIN_UTF8).match,
    # images
    _Exact(b"\x00\x00\x01\x00", "image/x-icon").match,
    _Exact(b"\x00\x00\x02\x00", "image/x-icon").match,
    _Exact(b"BM", "image/bmp").match,
    _Exact(b"GIF87a", "image/gif").match,
    _Exact(b"GIF89a", "image/gif").match,
    _Masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WEBPVP",
        "image/webp",
    ).match,
    _Exact(b"\x89PNG\x0d\x0a\x1a\x0a", "image/png").match,
    _Exact(b"\xff\xd8\xff", "image/jpeg").match,
    # audio and video
    _Masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"FORM\x00\x00\x00\x00AIFF",
        "audio/aiff",
    ).match,
    _Masked(b"\xff\xff\xff", b"ID3", "audio/mpeg").match,
    _Masked(b"\xff\xff\xff\xff\xff", b"OggS\x00", "application/ogg").match,
    _Masked(
        b"\xff\xff\xff\xff\xff\xff\xff\xff",
        b"MThd\x00\x00\x00\x06",
        "audio/midi",
    ).match,
    _Masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00AVI ",
        "video/avi",
    ).match,
    _Masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WAVE",
        "audio/wave",
    ).match,
    _match_mp4,
    _Exact(b"\x1a\x45\xdf\xa3", "video/webm").match,
    # fonts
    _Masked(
        b"\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00"
        b"\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00"
        b"\x00\x00\xff\xff",
        b"\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00"
        b"\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00"
        b"\x00\x00LP",
        "application/vnd.ms-fontobject",
    ).match,
    _Exact(b"\x00\x01\x00\x00", "font/ttf").match,
    _Exact(b"OTTO", "font/otf").match,
    _Exact(b"ttcf", "font/collection").match,
    _Exact(b"wOFF", "font/woff").match,
    _Exact(b"wOF2", "font/woff2").match,
    # archives
    _Exact(b"\x1f\x8b\x08", "application/x-gzip").match,
    _Exact(b"PK\x03\x04", "application/zip").match,
    _Exact(b"Rar!\x1a\x07\x00", "application/x-rar-compressed").match,
    _Exact(b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed").match,
    _Exact(b"\x00\x61\x73\x6d", "application/wasm").match,
    _match_text,
)


def type_by_extension(path: str) -> str | None:
    """Return the MIME type registered for the extension of path, if any."""
    _, ext = posixpath.splitext(posixpath.basename(path))
    if not ext:
        return None
    if not mimetypes.inited:
        mimetypes.init()
    return mimetypes.types_map.get(ext) or mimetypes.types_map.get(ext.lower())


def detect_content_type(data: bytes) -> str | None:
    """Sniff the MIME type of the leading bytes of some content.

    At most the first 512 bytes are considered. Empty input yields None;
    anything else yields a type, ``application/octet-stream`` when no
    signature or text heuristic matches.
    """
    if not data:
        return None
    data = bytes(data[:SNIFF_LEN])
    for sniff in _SNIFFERS:
        content_type = sniff(data)
        if content_type:
            return content_type
    return OCTET_STREAM


def read_probe(content: IO[bytes], size: int = SNIFF_LEN) -> bytes:
    """Read up to size bytes, stopping early only at end of stream."""
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        try:
            chunk = content.read(remaining)
        except (OSError, ValueError) as exc:
            raise ReadError(f"Failed to read content for type detection: {exc}") from exc
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def resolve_content_type(
    path: str,
    content: IO[bytes],
    *,
    ctx: Context | None = None,
) -> tuple[str | None, IO[bytes]]:
    """Pick the content type for an upload and the stream to upload.

    Returns the type (None when nothing could be determined) and a reader
    that yields exactly the bytes of the original content.
    """
    content_type = type_by_extension(path)
    if content_type:
        return content_type, ChainedReader(content, ctx=ctx)

    check(ctx)
    probe = read_probe(content)
    return detect_content_type(probe), ChainedReader(probe, content, ctx=ctx)
