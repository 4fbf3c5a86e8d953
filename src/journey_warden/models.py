"""Core data models for Journey Warden."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class JourneyFrontmatter(BaseModel):
    """Front matter of a parsed Journey document."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    title: str
    status: str = "clarified"
    tier: str = "regression"
    scope: str = "default"
    actor: str = "user"
    revision: int | None = None
    tags: list[str] = Field(default_factory=list)
    modules: dict[str, list[str]] = Field(
        default_factory=lambda: {"foundation": [], "feature": []}
    )
    data: dict[str, str] | None = None
    completion: list[dict[str, Any]] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)


class AcceptanceCriterion(BaseModel):
    id: str
    title: str
    steps: list[str] = Field(default_factory=list)
    raw_content: str = Field(default="", alias="rawContent")

    model_config = ConfigDict(populate_by_name=True)


class ProceduralStep(BaseModel):
    number: int
    text: str
    linked_ac: str | None = Field(default=None, alias="linkedAC")

    model_config = ConfigDict(populate_by_name=True)


class ParsedJourney(BaseModel):
    """Journey content as handed over by the external loader."""

    model_config = ConfigDict(populate_by_name=True)

    frontmatter: JourneyFrontmatter
    acceptance_criteria: list[AcceptanceCriterion] = Field(
        default_factory=list, alias="acceptanceCriteria"
    )
    procedural_steps: list[ProceduralStep] = Field(
        default_factory=list, alias="proceduralSteps"
    )
    source_path: str = Field(default="", alias="sourcePath")
    body: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "ParsedJourney":
        return cls.model_validate(data)


class FailureCategory(Enum):
    """Healing-relevant failure categories."""

    SELECTOR = "selector"
    TIMING = "timing"
    NAVIGATION = "navigation"
    DATA = "data"
    AUTH = "auth"
    ENV = "env"
    SCRIPT = "script"
    UNKNOWN = "unknown"


class FixType(Enum):
    """Every fix the engine knows about, including the forbidden ones."""

    SELECTOR_REFINE = "selector-refine"
    ADD_EXACT = "add-exact"
    MISSING_AWAIT = "missing-await"
    NAVIGATION_WAIT = "navigation-wait"
    WEB_FIRST_ASSERTION = "web-first-assertion"
    TIMEOUT_INCREASE = "timeout-increase"
    DATA_ISOLATION = "data-isolation"

    ADD_SLEEP = "add-sleep"
    REMOVE_ASSERTION = "remove-assertion"
    WEAKEN_ASSERTION = "weaken-assertion"
    FORCE_CLICK = "force-click"
    BYPASS_AUTH = "bypass-auth"

    @property
    def is_forbidden(self) -> bool:
        return self in FORBIDDEN_FIXES


FORBIDDEN_FIXES = frozenset({
    FixType.ADD_SLEEP,
    FixType.REMOVE_ASSERTION,
    FixType.WEAKEN_ASSERTION,
    FixType.FORCE_CLICK,
    FixType.BYPASS_AUTH,
})


@dataclass(frozen=True)
class ErrorLocation:
    file: str
    line: int
    column: int | None = None


@dataclass(frozen=True)
class FailureClassification:
    """A classified test failure."""

    category: FailureCategory
    confidence: float
    explanation: str
    suggestion: str
    is_test_issue: bool
    message: str
    fingerprint: str
    matched_keywords: tuple[str, ...] = ()
    selector: str | None = None
    expected_value: str | None = None
    actual_value: str | None = None
    location: ErrorLocation | None = None
    error_kind: str = "UNKNOWN"

    def to_dict(self) -> dict:
        data = {
            "category": self.category.value,
            "confidence": round(self.confidence, 3),
            "explanation": self.explanation,
            "suggestion": self.suggestion,
            "isTestIssue": self.is_test_issue,
            "message": self.message,
            "fingerprint": self.fingerprint,
            "matchedKeywords": list(self.matched_keywords),
            "errorKind": self.error_kind,
        }
        if self.selector:
            data["selector"] = self.selector
        if self.expected_value:
            data["expectedValue"] = self.expected_value
        if self.actual_value:
            data["actualValue"] = self.actual_value
        if self.location:
            data["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        return data
