"""
Shared fixtures for CodeRefactor API tests
"""
import io
import os
import struct
import zipfile
from typing import Dict, List, Optional

# Must be set before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LLM_API_KEY"] = "test-api-key"
os.environ["RATE_LIMIT_MAX"] = "100000"
os.environ["DEBUG"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from coderefactor.api.dependencies import get_refactor_service
from coderefactor.main import app
from coderefactor.services.refactor import (
    RefactorResult,
    RefactorSettings,
    calculate_metrics,
)

FAILURE_MARKER = "FAIL"


class FakeRefactorService:
    """
    Stands in for RefactorService.

    Code containing FAIL produces a provider failure; anything else is
    returned with a leading comment line.
    """

    def __init__(self):
        self.calls: List[Dict] = []

    async def refactor(
        self,
        code: str,
        language: str = "javascript",
        settings: Optional[RefactorSettings] = None,
    ) -> RefactorResult:
        self.calls.append({"code": code, "language": language, "settings": settings})

        if FAILURE_MARKER in code:
            return RefactorResult.failure(f"Provider failed on {code.strip()}", 503)

        refactored = f"// refactored as {language}\n{code}"
        return RefactorResult(
            success=True,
            refactored_code=refactored,
            metrics=calculate_metrics(code, refactored),
            token_usage={"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
        )


@pytest.fixture
def fake_service() -> FakeRefactorService:
    return FakeRefactorService()


@pytest_asyncio.fixture
async def client(fake_service: FakeRefactorService):
    """HTTP client against the app with the provider replaced by a fake"""
    app.dependency_overrides[get_refactor_service] = lambda: fake_service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def make_zip(entries: Dict[str, str]) -> bytes:
    """Build an in-memory zip; names ending in / become directories"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def make_damaged_zip(name: str = "index.js") -> bytes:
    """Valid directory and headers, but the entry's deflate stream is broken"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(name, "const value = 1;\n" * 50)
    data = bytearray(buffer.getvalue())

    # Local header is 30 bytes plus name and extra field
    name_length, extra_length = struct.unpack("<HH", data[26:30])
    start = 30 + name_length + extra_length
    # BFINAL=1 with reserved block type 3
    data[start] = 0xFF
    return bytes(data)


@pytest.fixture
def sample_zip() -> bytes:
    return make_zip({
        "project/": "",
        "project/index.js": "var a = 1;\n",
        "project/components/App.jsx": "export default function App() { return null; }\n",
        "project/types.ts": "export type Id = string;\n",
        "project/package.json": '{"name": "demo"}\n',
        "project/logo.png": "not really a png",
        "project/README.md": "# Demo\n",
    })
