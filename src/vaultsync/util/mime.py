from __future__ import annotations

FOLDER_MIME: str = "application/vnd.google-apps.folder"
DEFAULT_MIME: str = "application/octet-stream"

MIME_TYPE_BY_EXTENSION: dict[str, str] = {
    # Text
    "md": "text/markdown",
    "txt": "text/plain",
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "ts": "application/typescript",
    "json": "application/json",
    "xml": "application/xml",
    "yaml": "text/yaml",
    "yml": "text/yaml",
    "csv": "text/csv",
    "svg": "image/svg+xml",
    # Images
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "ico": "image/x-icon",
    # Documents
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Archives
    "zip": "application/zip",
    "gz": "application/gzip",
    "tar": "application/x-tar",
    # Audio/Video
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "webm": "video/webm",
    # Fonts
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
}

BINARY_EXTENSIONS: frozenset[str] = frozenset({
    "png", "jpg", "jpeg", "gif", "webp", "bmp", "ico", "svg",
    "pdf", "doc", "docx", "xls", "xlsx", "pptx",
    "zip", "gz", "tar", "7z", "rar",
    "mp3", "mp4", "wav", "ogg", "webm",
    "woff", "woff2", "ttf", "otf",
    "exe", "dll", "so", "dylib",
})

_BINARY_APPLICATION_TYPES: frozenset[str] = frozenset({
    "application/pdf",
    "application/zip",
    "application/gzip",
    "application/x-tar",
    "application/x-gzip",
    "application/x-bzip2",
    "application/x-7z-compressed",
    "application/x-rar-compressed",
    "application/octet-stream",
    "application/wasm",
})

_BINARY_APPLICATION_PREFIXES: tuple[str, ...] = (
    "application/vnd.openxmlformats-",
    "application/vnd.ms-",
    "application/vnd.oasis.opendocument.",
)

_BINARY_MEDIA_PREFIXES: tuple[str, ...] = ("image/", "video/", "audio/", "font/")


def is_folder(mime_type: str) -> bool:
    return mime_type == FOLDER_MIME


def _extension(path: str) -> str:
    name = path.lower().rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1]


def get_mime_type(path: str) -> str:
    """MIME type from the file extension; octet-stream when unknown."""
    return MIME_TYPE_BY_EXTENSION.get(_extension(path), DEFAULT_MIME)


def is_binary_extension(path: str) -> bool:
    """Whether a vault path must be transferred as raw bytes."""
    return _extension(path) in BINARY_EXTENSIONS


def is_binary_mime_type(mime_type: str | None) -> bool:
    if not mime_type:
        return False
    if mime_type.startswith(_BINARY_MEDIA_PREFIXES):
        return True
    if mime_type in _BINARY_APPLICATION_TYPES:
        return True
    return mime_type.startswith(_BINARY_APPLICATION_PREFIXES)


def looks_like_binary(content: str) -> bool:
    """
    Heuristic for decoded text that is really binary data.

    True when at least 10% of the first 512 characters are control characters
    other than tab, LF and CR.
    """
    sample = content[:512]
    if not sample:
        return False
    control = sum(1 for ch in sample if ord(ch) < 32 and ch not in "\t\n\r")
    return control / len(sample) >= 0.1
