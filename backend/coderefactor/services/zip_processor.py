"""
Zip archive processing.
Extracts code files from uploaded archives and packages refactored files
into a downloadable project archive with a README manifest.
"""

import zipfile
import zlib
import io
import os
from typing import Dict, Iterable, List, Sequence, Tuple
from dataclasses import dataclass, asdict
import logging

from coderefactor.services.languages import has_allowed_extension

logger = logging.getLogger(__name__)


@dataclass
class BatchFileEntry:
    """A code file extracted from an uploaded archive"""
    path: str
    name: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


# Security limits
MAX_FILES_IN_ARCHIVE = 10000
MAX_TOTAL_UNCOMPRESSED_SIZE = 500 * 1024 * 1024  # 500MB
MAX_PATH_DEPTH = 50
MAX_PATH_COMPONENT_LENGTH = 255

# Raised by ZipFile.read for damaged, encrypted or unsupported entries
UNREADABLE_ENTRY_ERRORS = (zlib.error, RuntimeError, NotImplementedError, EOFError)

OUTPUT_SOURCE_DIR = "src"
OUTPUT_ARCHIVE_NAME = "refactored-project.zip"
README_HEADER = (
    "# Refactored Project\n\n"
    "This project was generated by CodeRefactor AI.\n\n"
    "## Files:\n"
)


class ZipSecurityError(Exception):
    """Raised when a zip file fails security validation"""
    pass


def validate_zip_path(filename: str) -> None:
    """
    Validate a zip entry path for security issues.

    Checks for:
    - Null bytes
    - Absolute paths
    - Directory traversal (.. components)
    - Excessive path depth
    - Overly long path components

    Raises:
        ZipSecurityError: If the path fails validation
    """
    if '\x00' in filename:
        raise ZipSecurityError(f"Null byte in filename: {repr(filename)}")

    if filename.startswith('/') or filename.startswith('\\'):
        raise ZipSecurityError(f"Absolute path not allowed: {filename}")

    # Windows drive letter
    if len(filename) > 1 and filename[1] == ':':
        raise ZipSecurityError(f"Windows absolute path not allowed: {filename}")

    normalized = filename.replace('\\', '/')
    components = normalized.split('/')

    if len(components) > MAX_PATH_DEPTH:
        raise ZipSecurityError(f"Path too deep ({len(components)} levels): {filename}")

    for component in components:
        if component == '..':
            raise ZipSecurityError(f"Directory traversal not allowed: {filename}")

        if len(component) > MAX_PATH_COMPONENT_LENGTH:
            raise ZipSecurityError(f"Path component too long ({len(component)} chars): {component[:50]}...")


def is_symlink(zip_info: zipfile.ZipInfo) -> bool:
    """
    Check if a zip entry is a symbolic link.

    Symlinks carry a Unix mode with the 0o120000 bit in the high 16 bits
    of external_attr.
    """
    unix_mode = (zip_info.external_attr >> 16) & 0xFFFF
    return (unix_mode & 0o170000) == 0o120000


def validate_zip_archive(zf: zipfile.ZipFile) -> None:
    """
    Validate an entire zip archive for security issues.

    Checks:
    - Total number of files
    - Total uncompressed size
    - Each file path
    - Symlinks

    Raises:
        ZipSecurityError: If the archive fails validation
    """
    info_list = zf.infolist()

    if len(info_list) > MAX_FILES_IN_ARCHIVE:
        raise ZipSecurityError(
            f"Too many files in archive: {len(info_list)} (max: {MAX_FILES_IN_ARCHIVE})"
        )

    total_size = 0
    for info in info_list:
        validate_zip_path(info.filename)

        if is_symlink(info):
            raise ZipSecurityError(f"Symlinks not allowed: {info.filename}")

        total_size += info.file_size
        if total_size > MAX_TOTAL_UNCOMPRESSED_SIZE:
            raise ZipSecurityError(
                f"Total uncompressed size exceeds limit: {total_size} bytes "
                f"(max: {MAX_TOTAL_UNCOMPRESSED_SIZE})"
            )


def extract_code_files(zip_data: bytes) -> List[BatchFileEntry]:
    """
    Return every non-directory entry with an allowed code extension.

    Raises:
        zipfile.BadZipFile: If the data is not a zip archive or an entry
            cannot be decompressed
        ZipSecurityError: If the archive fails security validation
    """
    entries: List[BatchFileEntry] = []

    with zipfile.ZipFile(io.BytesIO(zip_data), 'r') as zf:
        validate_zip_archive(zf)

        for info in zf.infolist():
            if info.is_dir() or not has_allowed_extension(info.filename):
                continue

            try:
                raw = zf.read(info.filename)
            except UNREADABLE_ENTRY_ERRORS as e:
                raise zipfile.BadZipFile(f"Cannot read {info.filename}: {e}") from e

            content = raw.decode('utf-8', errors='replace')
            entries.append(BatchFileEntry(
                path=info.filename,
                name=os.path.basename(info.filename),
                content=content,
            ))

    logger.info(f"Extracted {len(entries)} code files from archive")
    return entries


def output_path(name: str) -> str:
    """Archive path of a refactored file"""
    path = f"{OUTPUT_SOURCE_DIR}/{name}"
    validate_zip_path(path)
    return path


def build_readme(files: Iterable[tuple]) -> str:
    """README manifest listing each output path and its character count"""
    lines = [f"- {path} ({len(content)} chars)\n" for path, content in files]
    return README_HEADER + "".join(lines)


def build_refactored_archive(files: Sequence[Tuple[str, str]]) -> bytes:
    """
    Package refactored sources under src/ plus a README.md manifest.

    The manifest lists every input. When names repeat, the archive holds
    one entry per path with the last content given for it.

    Args:
        files: (file name, final content) pairs in output order

    Returns:
        The zip archive bytes
    """
    packaged = [(output_path(name), content) for name, content in files]
    contents: Dict[str, str] = dict(packaged)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zf:
        for path, content in contents.items():
            zf.writestr(path, content.encode('utf-8'))
        zf.writestr("README.md", build_readme(packaged).encode('utf-8'))

    return buffer.getvalue()
