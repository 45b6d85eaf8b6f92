"""
Refactor service backed by an OpenAI-compatible chat completion API

Supports any OpenAI-compatible endpoint, for example:
- Groq (https://api.groq.com/openai/v1)
- Ollama (http://localhost:11434/v1)
- vLLM (http://localhost:8000/v1)

Flow:
    code + language + settings -> prompt -> completion -> fence cleanup -> metrics

The quality score attached to each result is a text heuristic (comment
markers, async usage, relative length). It does not measure semantic
code quality and should only be shown as a rough indicator.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
import re
import time

import openai
from openai import AsyncOpenAI

from coderefactor.core.config import Settings
from coderefactor.core.logging import get_logger, log_llm_request
from coderefactor.services.languages import DEFAULT_LANGUAGE

# Structured logger for the refactor service
refactor_logger = get_logger("coderefactor.refactor_service")

UNKNOWN_ERROR_CODE = "UNKNOWN_ERROR"

LANGUAGE_INSTRUCTIONS = {
    "javascript": "JavaScript ES6+",
    "typescript": "TypeScript with proper type annotations",
    "react": "React functional components with hooks",
    "nodejs": "Node.js with modern async/await patterns",
    "json": "JSON with consistent formatting and structure",
}
FALLBACK_INSTRUCTION = "JavaScript"

CORE_DIRECTIVES = (
    "Fix bad naming conventions (variables, functions, etc.)",
    "Remove any unnecessary or dead code",
    "Improve logic readability and structure",
    "Add meaningful inline comments to explain complex logic",
    "Format the code using Prettier and ESLint rules (Airbnb-style guide)",
    "Convert callbacks to async/await where needed",
    "Make the code modular, readable, and production-ready",
)

# Numbered 8-10 regardless of which ones are enabled
OPTIONAL_DIRECTIVES = (
    ("add_comments", 8, "Add helpful comments explaining the logic"),
    ("improve_naming", 9, "Ensure all variables and functions have descriptive names"),
    ("remove_dead_code", 10, "Remove any unused imports, variables, or functions"),
)

# Generation parameters, fixed for deterministic output
TOP_P = 1
FREQUENCY_PENALTY = 0
PRESENCE_PENALTY = 0

OPENING_FENCE = re.compile(r"^```[\w-]*\n")
CLOSING_FENCE = re.compile(r"\n```$")

BASE_QUALITY_SCORE = 3.0
MIN_QUALITY_SCORE = 1.0
MAX_QUALITY_SCORE = 5.0
ASYNC_BONUS = 0.5
COMMENT_BONUS = 0.3
NAMING_BONUS = 0.2
NAMING_LENGTH_RATIO = 0.8


@dataclass
class RefactorSettings:
    """Optional switches that add directives to the prompt"""
    add_comments: bool = False
    improve_naming: bool = False
    remove_dead_code: bool = False


@dataclass
class RefactorMetrics:
    original_lines: int
    refactored_lines: int
    lines_reduced: int
    compression_ratio: float
    quality_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalLines": self.original_lines,
            "refactoredLines": self.refactored_lines,
            "linesReduced": self.lines_reduced,
            "compressionRatio": self.compression_ratio,
            "qualityScore": self.quality_score,
        }


@dataclass
class RefactorError:
    message: str
    code: Union[int, str] = UNKNOWN_ERROR_CODE

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "code": self.code}


@dataclass
class RefactorResult:
    """
    Outcome of one refactor call.

    Successful results carry refactored_code and metrics, failed ones carry
    error. token_usage is whatever usage block the provider returned.
    """
    success: bool
    refactored_code: Optional[str] = None
    metrics: Optional[RefactorMetrics] = None
    token_usage: Optional[Dict[str, Any]] = None
    error: Optional[RefactorError] = None

    @classmethod
    def failure(cls, message: str, code: Union[int, str] = UNKNOWN_ERROR_CODE) -> "RefactorResult":
        return cls(success=False, error=RefactorError(message=message, code=code))

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error.to_dict() if self.error else None}
        return {
            "success": True,
            "refactoredCode": self.refactored_code,
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "tokenUsage": self.token_usage,
        }


def build_prompt(
    code: str,
    language: str,
    settings: Optional[RefactorSettings] = None,
) -> str:
    """Build the single user message sent to the provider"""
    settings = settings or RefactorSettings()
    instruction = LANGUAGE_INSTRUCTIONS.get(language, FALLBACK_INSTRUCTION)

    directives = [f"{i}. {text}" for i, text in enumerate(CORE_DIRECTIVES, start=1)]
    extra = [
        f"{number}. {text}"
        for attr, number, text in OPTIONAL_DIRECTIVES
        if getattr(settings, attr)
    ]

    sections = [
        f"You are a world-class senior software engineer who strictly follows modern "
        f"{instruction} best practices. Your task is to refactor the following code snippet to:",
        "\n".join(directives),
    ]
    if extra:
        sections.append("\n".join(extra))
    sections.extend([
        "You MUST return ONLY the refactored code, with no explanations or extra text, "
        "and preserve the functionality.",
        f"Original code:\n```{language}\n{code}\n```",
        "Refactored code:",
    ])
    return "\n\n".join(sections)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence, if present, and trim"""
    cleaned = (text or "").strip()
    cleaned = OPENING_FENCE.sub("", cleaned, count=1)
    cleaned = CLOSING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def count_code_lines(code: str) -> int:
    """Count lines that contain something other than whitespace"""
    return sum(1 for line in code.split("\n") if line.strip())


def estimate_quality_score(original_code: str, refactored_code: str) -> float:
    """
    Heuristic quality estimate in [1.0, 5.0].

    Starts from a 3.0 baseline and adds fixed bonuses for surface signals:
    async/await replacing callback code, more `//` comments than before,
    and output that is not much shorter than the input (a stand-in for
    longer, more descriptive names).
    """
    score = BASE_QUALITY_SCORE

    uses_async_await = "async" in refactored_code and "await" in refactored_code
    if uses_async_await and "callback" in original_code:
        score += ASYNC_BONUS
    if refactored_code.count("//") > original_code.count("//"):
        score += COMMENT_BONUS
    if len(refactored_code) > len(original_code) * NAMING_LENGTH_RATIO:
        score += NAMING_BONUS

    return min(MAX_QUALITY_SCORE, max(MIN_QUALITY_SCORE, score))


def calculate_metrics(original_code: str, refactored_code: str) -> RefactorMetrics:
    original_lines = count_code_lines(original_code)
    refactored_lines = count_code_lines(refactored_code)

    return RefactorMetrics(
        original_lines=original_lines,
        refactored_lines=refactored_lines,
        lines_reduced=max(0, original_lines - refactored_lines),
        compression_ratio=refactored_lines / original_lines if original_lines > 0 else 1.0,
        quality_score=estimate_quality_score(original_code, refactored_code),
    )


def _provider_error_message(body: Any) -> Optional[str]:
    """Pull `error.message` out of a provider error body"""
    if not isinstance(body, dict):
        return None
    inner = body.get("error", body)
    if isinstance(inner, dict) and inner.get("message"):
        return str(inner["message"])
    return None


def _usage_to_dict(usage: Any) -> Optional[Dict[str, Any]]:
    if usage is None:
        return None
    if hasattr(usage, "model_dump"):
        return usage.model_dump(exclude_none=True)
    return dict(usage)


class RefactorService:
    """Refactor code through an OpenAI-compatible chat completion endpoint"""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        timeout: float = 30,
        max_tokens: int = 4000,
        temperature: float = 0.1,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

        self.client = client or AsyncOpenAI(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            max_retries=0,
        )

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[AsyncOpenAI] = None) -> "RefactorService":
        """Create a service from the process configuration captured at startup"""
        return cls(
            base_url=settings.LLM_API_BASE_URL,
            api_key=settings.LLM_API_KEY,
            model=settings.LLM_MODEL,
            timeout=settings.LLM_TIMEOUT,
            max_tokens=settings.LLM_MAX_TOKENS,
            temperature=settings.LLM_TEMPERATURE,
            client=client,
        )

    async def refactor(
        self,
        code: str,
        language: str = DEFAULT_LANGUAGE,
        settings: Optional[RefactorSettings] = None,
    ) -> RefactorResult:
        """
        Refactor a snippet.

        Never raises: provider, transport and response-shape failures are
        all returned as a failed RefactorResult.
        """
        prompt = build_prompt(code, language, settings)
        start = time.perf_counter()

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                top_p=TOP_P,
                frequency_penalty=FREQUENCY_PENALTY,
                presence_penalty=PRESENCE_PENALTY,
                stream=False,
            )
            content = response.choices[0].message.content or ""
        except openai.APIStatusError as e:
            message = _provider_error_message(e.body) or e.message or str(e)
            return self._failed(language, start, message, e.status_code)
        except openai.APIError as e:
            return self._failed(language, start, e.message or str(e), UNKNOWN_ERROR_CODE)
        except Exception as e:
            return self._failed(language, start, str(e) or type(e).__name__, UNKNOWN_ERROR_CODE)

        refactored_code = strip_code_fences(content)
        token_usage = _usage_to_dict(getattr(response, "usage", None))

        log_llm_request(
            model=self.model,
            language=language,
            duration_ms=(time.perf_counter() - start) * 1000,
            input_tokens=(token_usage or {}).get("prompt_tokens", 0),
            output_tokens=(token_usage or {}).get("completion_tokens", 0),
            logger=refactor_logger,
        )

        return RefactorResult(
            success=True,
            refactored_code=refactored_code,
            metrics=calculate_metrics(code, refactored_code),
            token_usage=token_usage,
        )

    def _failed(self, language: str, start: float, message: str, code: Union[int, str]) -> RefactorResult:
        log_llm_request(
            model=self.model,
            language=language,
            duration_ms=(time.perf_counter() - start) * 1000,
            error=message,
            error_code=code,
            logger=refactor_logger,
        )
        return RefactorResult.failure(message, code)
