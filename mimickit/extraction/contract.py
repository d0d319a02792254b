"""Schema-validated extraction from a free-form text generation service."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, List, Literal, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..logging import get_logger
from ..prompting.constants import SYSTEM_PROMPT
from .repair import DRIFT_RULES, DriftRule, repair

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)


class TextRunner(Protocol):
    def run(self, prompt: str, *, system: str | None = None) -> str: ...


@dataclass
class ExtractionOutcome(Generic[ModelT]):
    """Validated value plus how it was obtained."""

    value: ModelT
    source: Literal["live", "fallback"]
    attempts: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def live(self) -> bool:
        return self.source == "live"


def recover_json_candidate(text: str) -> str:
    """Pull the most likely JSON document out of a free-form response."""
    fenced = _FENCED_JSON.search(text)
    if fenced and fenced.group(1).strip():
        return fenced.group(1).strip()
    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        return text[first : last + 1]
    return text.strip()


class ExtractionContract:
    """Dispatches prompts, recovers JSON, validates, repairs and falls back.

    ``extract`` never raises for service or validation problems; those are
    logged and absorbed. Only an invalid fallback value escapes, since that is
    a bug in the fallback producer rather than a runtime condition.
    """

    def __init__(
        self,
        runner: TextRunner | None = None,
        *,
        max_retries: int = 2,
        repair_rules: Iterable[DriftRule] = DRIFT_RULES,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be zero or greater")
        self.runner = runner
        self.max_retries = max_retries
        self.repair_rules = tuple(repair_rules)
        self.system_prompt = system_prompt
        self.logger = get_logger("extraction")

    @property
    def configured(self) -> bool:
        return self.runner is not None

    def extract(
        self,
        prompt: str,
        schema: Type[ModelT],
        fallback: Callable[[], Any],
        *,
        max_retries: Optional[int] = None,
        label: str = "extraction",
    ) -> ExtractionOutcome[ModelT]:
        retries = self.max_retries if max_retries is None else max_retries
        errors: List[str] = []
        attempts = 0

        if self.runner is None:
            self.logger.debug("No generation service configured; using fallback for %s", label)
            return self._fallback(schema, fallback, attempts, errors)

        for attempt in range(retries + 1):
            attempts += 1
            try:
                response = self.runner.run(prompt, system=self.system_prompt)
            except Exception as exc:
                self._record(errors, label, attempt, f"service call failed: {exc}")
                continue

            candidate = recover_json_candidate(response or "")
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError as exc:
                self._record(errors, label, attempt, f"response was not valid JSON: {exc.msg}")
                continue
            except RecursionError:
                self._record(errors, label, attempt, "response JSON is nested too deeply")
                continue

            try:
                value = self._validate(schema, parsed, label, attempt)
            except ValidationError as exc:
                self._record(
                    errors,
                    label,
                    attempt,
                    f"schema validation failed ({exc.error_count()} error(s))",
                )
                continue
            except RecursionError:
                self._record(errors, label, attempt, "response JSON is nested too deeply")
                continue
            return ExtractionOutcome(value=value, source="live", attempts=attempts, errors=errors)

        self.logger.warning(
            "Generation service exhausted %d attempt(s) for %s; using deterministic fallback",
            attempts,
            label,
        )
        return self._fallback(schema, fallback, attempts, errors)

    def _validate(self, schema: Type[ModelT], parsed: Any, label: str, attempt: int) -> ModelT:
        """Validate ``parsed``, retrying once after drift repair.

        Raises the first ``ValidationError`` when the repaired value is still invalid.
        """
        try:
            return schema.model_validate(parsed)
        except ValidationError as exc:
            first_error = exc
        repaired = repair(parsed, self.repair_rules)
        try:
            value = schema.model_validate(repaired)
        except ValidationError:
            raise first_error from None
        self.logger.debug("Drift repair recovered %s on attempt %d", label, attempt + 1)
        return value

    def _record(self, errors: List[str], label: str, attempt: int, message: str) -> None:
        errors.append(message)
        self.logger.warning("Extraction attempt %d for %s failed: %s", attempt + 1, label, message)

    @staticmethod
    def _fallback(
        schema: Type[ModelT],
        fallback: Callable[[], Any],
        attempts: int,
        errors: List[str],
    ) -> ExtractionOutcome[ModelT]:
        produced = fallback()
        if isinstance(produced, BaseModel):
            produced = produced.model_dump(by_alias=True)
        value = schema.model_validate(produced)
        return ExtractionOutcome(value=value, source="fallback", attempts=attempts, errors=errors)


__all__ = ["ExtractionContract", "ExtractionOutcome", "TextRunner", "recover_json_candidate"]
