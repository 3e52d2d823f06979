"""Solution suggestions for recorded issues.

Two interchangeable backends sit behind ``SuggestionProvider``: a keyword
table that needs nothing external, and an OpenAI-compatible chat model.
``SuggestionService`` wraps whichever is configured, bounds every call in
time and turns any failure into a fixed fallback answer.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from bug_journal.config import settings
from bug_journal.services.llm import LLMError, chat_completion, message_content

logger = logging.getLogger(__name__)

SUMMARY_MAX_CHARS = 150


class SuggestionProviderError(Exception):
    """The backend could not produce a usable answer."""


@dataclass(frozen=True)
class Suggestion:
    suggestion: str
    explanation: str | None = None
    resources: tuple[str, ...] = ()


UNAVAILABLE = Suggestion(
    suggestion="Unable to generate suggestion at this time.",
    explanation="There was an error connecting to the suggestion service. Please try again later.",
)
NO_DESCRIPTION = Suggestion(
    suggestion="Unable to generate suggestion: no description provided.",
    explanation="Describe the problem so a solution can be suggested.",
)
SUMMARY_UNAVAILABLE = "Unable to generate summary at this time."
SUMMARY_NO_DESCRIPTION = "Unable to generate summary: no description provided."


class SuggestionProvider(ABC):
    """Capability interface for suggestion backends."""

    name = "base"

    @abstractmethod
    async def suggest(
        self,
        description: str,
        steps_to_reproduce: str | None = None,
        title: str | None = None,
    ) -> Suggestion:
        """Propose a fix for the described problem."""
        raise NotImplementedError

    @abstractmethod
    async def summarize(self, description: str) -> str:
        """Condense a description into a short summary."""
        raise NotImplementedError


GENERIC_SOLUTION = (
    "Try debugging step by step and isolating the problematic code. Add logging around "
    "the failing path to track the flow and the values of variables during execution."
)

KEYWORD_SOLUTIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("undefined", "null", "none", "reference", "not defined", "nonetype"),
        "Check variable initialization and scope. Make sure every value is defined before use "
        "and that you are not reading attributes or properties of a null/None object.",
    ),
    (
        ("syntax", "unexpected", "token", "indentation", "parse"),
        "Look for syntax errors such as missing brackets, colons, semicolons or quotation marks, "
        "and check for typos in variable or function names.",
    ),
    (
        ("async", "promise", "await", "then", "coroutine", "event loop"),
        "Make sure asynchronous calls are awaited. Check that async functions are not called "
        "without await and that promise chains and async/await are not mixed inconsistently.",
    ),
    (
        ("render", "component", "react", "props", "state", "hook"),
        "Verify the component lifecycle and state management. Do not update state during "
        "render and check the dependency arrays of your effects.",
    ),
    (
        ("api", "fetch", "request", "response", "server", "timeout", "cors"),
        "Check the endpoint URL and the request format. Handle non-2xx responses explicitly "
        "and add error handling for network failures.",
    ),
    (
        ("database", "sql", "query", "migration", "constraint", "deadlock"),
        "Inspect the failing query and the schema it runs against. Confirm migrations are "
        "applied and that constraints match the data being written.",
    ),
    (
        ("import", "module", "dependency", "package", "version"),
        "Check that the dependency is installed in the active environment and that its "
        "version matches what the code expects. Reinstall from a clean lock file if in doubt.",
    ),
)

TECHNICAL_TERMS = (
    "API", "HTTP", "REST", "GraphQL", "JWT", "OAuth",
    "React", "Vue", "Angular", "DOM", "CSS", "HTML",
    "Node.js", "Express", "MongoDB", "SQL", "PostgreSQL",
    "Docker", "Kubernetes", "CI/CD", "Git",
    "async", "await", "Promise", "callback", "thread",
    "null pointer", "memory leak", "stack overflow", "race condition",
)


def technical_terms(text: str) -> list[str]:
    lowered = text.lower()
    return [term for term in TECHNICAL_TERMS if term.lower() in lowered]


def _keyword_matches(keywords: tuple[str, ...], text: str, words: list[str]) -> int:
    count = 0
    for keyword in keywords:
        if " " in keyword:
            if keyword in text:
                count += 1
        elif any(keyword in word for word in words):
            count += 1
    return count


class StaticSuggestionProvider(SuggestionProvider):
    """Deterministic picker over ``KEYWORD_SOLUTIONS``: most keyword hits wins."""

    name = "static"

    async def suggest(
        self,
        description: str,
        steps_to_reproduce: str | None = None,
        title: str | None = None,
    ) -> Suggestion:
        text = " ".join(part for part in (title, description, steps_to_reproduce) if part).lower()
        words = text.split()

        best_solution, best_matches = GENERIC_SOLUTION, 0
        for keywords, solution in KEYWORD_SOLUTIONS:
            matches = _keyword_matches(keywords, text, words)
            if matches > best_matches:
                best_solution, best_matches = solution, matches

        terms = technical_terms(text)
        if terms:
            explanation = f"Suggested from the terms found in the description: {', '.join(terms)}."
        elif best_matches:
            explanation = "Suggested from keywords found in the description."
        else:
            explanation = "No known pattern matched; this is a general debugging approach."
        return Suggestion(suggestion=best_solution, explanation=explanation)

    async def summarize(self, description: str) -> str:
        text = " ".join(description.split())
        if len(text) > SUMMARY_MAX_CHARS:
            return text[: SUMMARY_MAX_CHARS - 3] + "..."
        return text


SUGGESTION_PROMPT = """You are an expert developer assistant who helps analyze bugs and provides suggestions.
Analyze the following bug and provide:
1. A potential solution suggestion
2. A brief explanation of why the issue might be occurring
3. Optional: up to 3 relevant resources (documentation, articles) that could help

Bug title: {title}
Bug description: {description}
Steps to reproduce: {steps}

Respond with JSON only, in this format:
{{
  "suggestion": "Clear, specific solution steps to try",
  "explanation": "Brief technical explanation of the likely underlying cause",
  "resources": ["Resource 1", "Resource 2", "Resource 3"]
}}"""

SUMMARY_SYSTEM_PROMPT = (
    "You are a technical writing assistant who summarizes bug reports into concise "
    "descriptions. Keep summaries clear, technical and under 100 words."
)


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        content = content.split("```")[1]
        if content.startswith("json"):
            content = content[4:]
        content = content.strip()
    return content


class LLMSuggestionProvider(SuggestionProvider):
    """Asks an OpenAI-compatible chat model for a JSON suggestion."""

    name = "llm"

    async def suggest(
        self,
        description: str,
        steps_to_reproduce: str | None = None,
        title: str | None = None,
    ) -> Suggestion:
        prompt = SUGGESTION_PROMPT.format(
            title=title or "(none)",
            description=description,
            steps=steps_to_reproduce or "(none)",
        )
        try:
            choice = await chat_completion([{"role": "user", "content": prompt}], json_mode=True)
            parsed = json.loads(_strip_code_fence(message_content(choice)))
        except json.JSONDecodeError as e:
            raise SuggestionProviderError(f"Invalid JSON from LLM: {e}") from e
        except LLMError as e:
            raise SuggestionProviderError(str(e)) from e

        if not isinstance(parsed, dict):
            raise SuggestionProviderError("LLM answer is not a JSON object")
        resources = parsed.get("resources") or []
        if not isinstance(resources, list):
            resources = []
        return Suggestion(
            suggestion=str(parsed.get("suggestion") or "No suggestion available"),
            explanation=str(parsed.get("explanation") or "No explanation available"),
            resources=tuple(str(r) for r in resources[:3]),
        )

    async def summarize(self, description: str) -> str:
        messages = [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": f"Summarize this technical issue into a brief description: {description}"},
        ]
        try:
            choice = await chat_completion(messages, max_tokens=150)
        except LLMError as e:
            raise SuggestionProviderError(str(e)) from e
        summary = message_content(choice)
        if not summary:
            raise SuggestionProviderError("Empty summary from LLM")
        return summary


class SuggestionService:
    """Time-bounded, failure-proof front for a ``SuggestionProvider``."""

    def __init__(self, provider: SuggestionProvider, timeout: float) -> None:
        self.provider = provider
        self.timeout = timeout

    async def suggest(
        self,
        description: str | None,
        steps_to_reproduce: str | None = None,
        title: str | None = None,
    ) -> Suggestion:
        if not description or not description.strip():
            return NO_DESCRIPTION
        try:
            return await asyncio.wait_for(
                self.provider.suggest(description, steps_to_reproduce, title),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Suggestion timed out", extra={"provider": self.provider.name, "timeout": self.timeout})
        except Exception as e:
            logger.warning("Suggestion failed", extra={"provider": self.provider.name, "error": str(e)})
        return UNAVAILABLE

    async def summarize(self, description: str | None) -> str:
        if not description or not description.strip():
            return SUMMARY_NO_DESCRIPTION
        try:
            return await asyncio.wait_for(self.provider.summarize(description), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Summary timed out", extra={"provider": self.provider.name, "timeout": self.timeout})
        except Exception as e:
            logger.warning("Summary failed", extra={"provider": self.provider.name, "error": str(e)})
        return SUMMARY_UNAVAILABLE


def get_suggestion_provider(backend: str | None = None) -> SuggestionProvider:
    backend = (backend or settings.suggestion_backend).lower().strip()
    if backend == "llm":
        if not settings.llm_api_key:
            logger.warning("suggestion_backend=llm but llm_api_key is empty")
        return LLMSuggestionProvider()
    if backend != "static":
        logger.warning("Unknown suggestion backend, using static", extra={"backend": backend})
    return StaticSuggestionProvider()


def get_suggestion_service() -> SuggestionService:
    return SuggestionService(get_suggestion_provider(), settings.suggestion_timeout_seconds)
