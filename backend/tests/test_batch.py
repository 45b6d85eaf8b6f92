"""
Tests for batch refactoring: archive output and per-file preview output
"""
import io
import zipfile

import pytest

from coderefactor.api.schemas import BatchFile
from coderefactor.services.batch import (
    BatchRefactorError,
    refactor_for_preview,
    refactor_to_archive,
)
from coderefactor.services.refactor import RefactorResult
from coderefactor.services.zip_processor import ZipSecurityError


class EmptyOutputService:
    """Provider that claims success but returns no code"""

    async def refactor(self, code, language="javascript", settings=None):
        return RefactorResult(success=True, refactored_code="")


def files(*pairs):
    return [BatchFile(name=name, content=content) for name, content in pairs]


class TestRefactorToArchive:

    @pytest.mark.asyncio
    async def test_failed_file_keeps_original_content_silently(self, fake_service):
        archive = await refactor_to_archive(fake_service, files(
            ("good.ts", "export const a = 1;"),
            ("bad.js", "FAIL here"),
        ))

        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            assert zf.read("src/good.ts").decode() == "// refactored as typescript\nexport const a = 1;"
            assert zf.read("src/bad.js").decode() == "FAIL here"
            readme = zf.read("README.md").decode()

        assert "- src/bad.js (9 chars)" in readme

    @pytest.mark.asyncio
    async def test_files_processed_in_order_with_detected_languages(self, fake_service):
        await refactor_to_archive(fake_service, files(
            ("a.ts", "1"), ("b.jsx", "2"), ("c.json", "3"), ("d.js", "4"),
        ))

        assert [call["language"] for call in fake_service.calls] == [
            "typescript", "react", "json", "javascript",
        ]
        assert [call["code"] for call in fake_service.calls] == ["1", "2", "3", "4"]

    @pytest.mark.asyncio
    async def test_unsafe_name_rejected_before_any_provider_call(self, fake_service):
        with pytest.raises(ZipSecurityError):
            await refactor_to_archive(fake_service, files(
                ("a.js", "var a;"),
                ("../evil.js", "var b;"),
            ))

        assert fake_service.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_names_all_listed_in_readme(self, fake_service):
        archive = await refactor_to_archive(fake_service, files(
            ("util.js", "FAIL a"),
            ("util.js", "FAIL bb"),
        ))

        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            assert zf.read("src/util.js").decode() == "FAIL bb"
            readme = zf.read("README.md").decode()

        assert readme.count("- src/util.js") == 2
        assert len(fake_service.calls) == 2


class TestRefactorForPreview:

    @pytest.mark.asyncio
    async def test_partial_failure_reports_error_per_file(self, fake_service):
        results = await refactor_for_preview(fake_service, files(
            ("ok.js", "var a;"),
            ("broken.js", "FAIL now"),
        ))

        ok, broken = results
        assert ok.error is None
        assert ok.refactored_code.startswith("// refactored as javascript")
        assert broken.error == "Provider failed on FAIL now"
        assert broken.refactored_code == "FAIL now"
        assert broken.to_dict() == {
            "name": "broken.js",
            "refactoredCode": "FAIL now",
            "error": "Provider failed on FAIL now",
        }

    @pytest.mark.asyncio
    async def test_all_failed_raises_with_joined_details(self, fake_service):
        with pytest.raises(BatchRefactorError) as exc_info:
            await refactor_for_preview(fake_service, files(
                ("one.js", "FAIL one"),
                ("two.js", "FAIL two"),
            ))

        assert exc_info.value.details == "Provider failed on FAIL one; Provider failed on FAIL two"
        assert len(exc_info.value.errors) == 2

    @pytest.mark.asyncio
    async def test_empty_output_counts_as_unknown_error(self):
        with pytest.raises(BatchRefactorError) as exc_info:
            await refactor_for_preview(EmptyOutputService(), files(("a.js", "var a;")))

        assert exc_info.value.details == "Unknown error"
