"""
Tests for archive extraction and packaging
"""
import io
import zipfile

import pytest

from conftest import make_damaged_zip, make_zip
from coderefactor.services.zip_processor import (
    ZipSecurityError,
    build_readme,
    build_refactored_archive,
    extract_code_files,
    validate_zip_path,
)


class TestExtractCodeFiles:

    def test_keeps_only_allowed_code_files(self, sample_zip):
        entries = extract_code_files(sample_zip)

        paths = [entry.path for entry in entries]
        assert paths == [
            "project/index.js",
            "project/components/App.jsx",
            "project/types.ts",
            "project/package.json",
        ]

    def test_entry_has_basename_and_content(self, sample_zip):
        entries = extract_code_files(sample_zip)
        app = next(entry for entry in entries if entry.name == "App.jsx")
        assert app.path == "project/components/App.jsx"
        assert app.content.startswith("export default function App()")
        assert app.to_dict() == {"path": app.path, "name": "App.jsx", "content": app.content}

    def test_no_code_files_returns_empty_list(self):
        assert extract_code_files(make_zip({"logo.png": "x", "docs/": ""})) == []

    def test_rejects_directory_traversal(self):
        data = make_zip({"../evil.js": "alert(1)"})
        with pytest.raises(ZipSecurityError):
            extract_code_files(data)

    def test_rejects_symlinks(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            info = zipfile.ZipInfo("link.js")
            info.external_attr = 0o120777 << 16
            zf.writestr(info, "/etc/passwd")
        with pytest.raises(ZipSecurityError):
            extract_code_files(buffer.getvalue())

    def test_corrupt_data_raises_bad_zip(self):
        with pytest.raises(zipfile.BadZipFile):
            extract_code_files(b"definitely not a zip archive")

    def test_damaged_entry_raises_bad_zip(self):
        with pytest.raises(zipfile.BadZipFile, match="index.js"):
            extract_code_files(make_damaged_zip("index.js"))


class TestValidateZipPath:

    @pytest.mark.parametrize("path", ["/etc/passwd", "C:\\boot.ini", "a/../../b.js", "bad\x00.js"])
    def test_rejects_unsafe_paths(self, path):
        with pytest.raises(ZipSecurityError):
            validate_zip_path(path)

    def test_accepts_nested_relative_path(self):
        validate_zip_path("src/components/App.tsx")


class TestBuildRefactoredArchive:

    def test_files_are_placed_under_src_with_readme(self):
        archive = build_refactored_archive([
            ("service.ts", "export const a = 1;"),
            ("App.jsx", "export default () => null;"),
        ])

        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            assert zf.namelist() == ["src/service.ts", "src/App.jsx", "README.md"]
            assert zf.read("src/service.ts").decode() == "export const a = 1;"
            readme = zf.read("README.md").decode()

        assert readme.startswith("# Refactored Project")
        assert "## Files:" in readme
        assert "- src/service.ts (19 chars)" in readme
        assert "- src/App.jsx (26 chars)" in readme

    def test_readme_counts_characters_not_bytes(self):
        readme = build_readme([("src/i18n.js", "const s = 'héllo';")])
        assert "- src/i18n.js (18 chars)" in readme

    def test_rejects_traversal_in_output_name(self):
        with pytest.raises(ZipSecurityError):
            build_refactored_archive([("../escape.js", "x")])

    def test_repeated_names_keep_last_content_and_list_every_input(self):
        archive = build_refactored_archive([
            ("index.js", "first"),
            ("index.js", "second!"),
        ])

        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            assert zf.namelist() == ["src/index.js", "README.md"]
            assert zf.read("src/index.js").decode() == "second!"
            readme = zf.read("README.md").decode()

        assert "- src/index.js (5 chars)" in readme
        assert "- src/index.js (7 chars)" in readme
