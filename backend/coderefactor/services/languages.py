"""
Language tags and filename-based language detection.
"""
import os
from typing import Set

DEFAULT_LANGUAGE = "javascript"

SUPPORTED_LANGUAGES: Set[str] = {"javascript", "typescript", "react", "nodejs", "json"}

ALLOWED_CODE_EXTENSIONS: Set[str] = {".js", ".jsx", ".ts", ".tsx", ".json"}

# Batch files are classified by extension only
EXT_TO_LANG = {
    ".jsx": "react",
    ".tsx": "react",
    ".ts": "typescript",
    ".json": "json",
}

# Name fragments that mark a plain .js upload as server-side code
NODEJS_NAME_HINTS = ("server", "api")


def get_extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower()


def has_allowed_extension(filename: str) -> bool:
    return get_extension(filename) in ALLOWED_CODE_EXTENSIONS


def detect_upload_language(filename: str) -> str:
    """
    Infer the language of a single uploaded file.

    JSX/TSX wins over TypeScript, and a filename mentioning "server" or
    "api" is treated as Node.js. Everything else is plain JavaScript.
    """
    lower_name = (filename or "").lower()

    if lower_name.endswith((".tsx", ".jsx")):
        return "react"
    if lower_name.endswith(".ts"):
        return "typescript"
    if any(hint in lower_name for hint in NODEJS_NAME_HINTS):
        return "nodejs"
    return DEFAULT_LANGUAGE


def detect_batch_language(filename: str) -> str:
    """Infer the language of an archive member from its extension"""
    return EXT_TO_LANG.get(get_extension(filename or ""), DEFAULT_LANGUAGE)
