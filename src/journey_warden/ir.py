"""Intermediate representation for normalized journeys.

Everything here is immutable. A normalization pass builds a fresh tree of
these objects and nothing mutates it afterwards.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class LocatorStrategy(Enum):
    """How a UI target is located, ordered from most to least preferred."""

    ROLE = "role"
    LABEL = "label"
    PLACEHOLDER = "placeholder"
    TEXT = "text"
    TESTID = "testid"
    CSS = "css"

    @property
    def priority(self) -> int:
        """Lower is better."""
        return STRATEGY_PRIORITY.index(self)


STRATEGY_PRIORITY = (
    LocatorStrategy.ROLE,
    LocatorStrategy.LABEL,
    LocatorStrategy.PLACEHOLDER,
    LocatorStrategy.TEXT,
    LocatorStrategy.TESTID,
    LocatorStrategy.CSS,
)


@dataclass(frozen=True)
class LocatorSpec:
    """A UI target."""

    strategy: LocatorStrategy
    value: str
    name: str | None = None
    exact: bool | None = None
    level: int | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"strategy": self.strategy.value, "value": self.value}
        options = {
            k: v
            for k, v in (("name", self.name), ("exact", self.exact), ("level", self.level))
            if v is not None
        }
        if options:
            data["options"] = options
        return data


def choose_locator(candidates: list[LocatorSpec]) -> LocatorSpec | None:
    """Pick the highest-priority locator among equivalent candidates."""
    if not candidates:
        return None
    return min(candidates, key=lambda loc: loc.strategy.priority)


class ValueKind(Enum):
    LITERAL = "literal"
    ACTOR = "actor"
    RUN_ID = "runId"
    GENERATED = "generated"
    TEST_DATA = "testData"


@dataclass(frozen=True)
class ValueSpec:
    """A literal or derived value typed into the page."""

    kind: ValueKind
    value: str | None = None

    def __post_init__(self):
        if self.kind is ValueKind.RUN_ID:
            if self.value is not None:
                raise ValueError("runId values carry no payload")
        elif self.value is None:
            raise ValueError(f"{self.kind.value} values need a payload")

    def to_dict(self) -> dict:
        data = {"type": self.kind.value}
        if self.value is not None:
            data["value"] = self.value
        return data


class PrimitiveKind(Enum):
    ACTION = "action"
    ASSERTION = "assertion"


class PrimitiveType(Enum):
    """Closed set of automation commands."""

    # Navigation
    GOTO = "goto"
    WAIT_FOR_URL = "waitForURL"
    RELOAD = "reload"
    GO_BACK = "goBack"
    GO_FORWARD = "goForward"

    # Waits
    WAIT_FOR_VISIBLE = "waitForVisible"
    WAIT_FOR_HIDDEN = "waitForHidden"
    WAIT_FOR_TIMEOUT = "waitForTimeout"
    WAIT_FOR_NETWORK_IDLE = "waitForNetworkIdle"
    WAIT_FOR_LOADING_COMPLETE = "waitForLoadingComplete"
    WAIT_FOR_RESPONSE = "waitForResponse"

    # Interaction
    CLICK = "click"
    DBLCLICK = "dblclick"
    RIGHT_CLICK = "rightClick"
    FILL = "fill"
    SELECT = "select"
    CHECK = "check"
    UNCHECK = "uncheck"
    PRESS = "press"
    HOVER = "hover"
    FOCUS = "focus"
    CLEAR = "clear"
    UPLOAD = "upload"

    # Assertions
    EXPECT_VISIBLE = "expectVisible"
    EXPECT_NOT_VISIBLE = "expectNotVisible"
    EXPECT_HIDDEN = "expectHidden"
    EXPECT_TEXT = "expectText"
    EXPECT_VALUE = "expectValue"
    EXPECT_CHECKED = "expectChecked"
    EXPECT_ENABLED = "expectEnabled"
    EXPECT_DISABLED = "expectDisabled"
    EXPECT_URL = "expectURL"
    EXPECT_TITLE = "expectTitle"
    EXPECT_COUNT = "expectCount"
    EXPECT_CONTAINS_TEXT = "expectContainsText"

    # Signals
    EXPECT_TOAST = "expectToast"
    DISMISS_MODAL = "dismissModal"
    ACCEPT_ALERT = "acceptAlert"
    DISMISS_ALERT = "dismissAlert"

    # Composition
    CALL_MODULE = "callModule"

    BLOCKED = "blocked"

    @property
    def is_assertion(self) -> bool:
        return self.value.startswith("expect")

    @property
    def kind(self) -> PrimitiveKind:
        return PrimitiveKind.ASSERTION if self.is_assertion else PrimitiveKind.ACTION

    @property
    def is_interaction(self) -> bool:
        return self in INTERACTION_TYPES


INTERACTION_TYPES = frozenset({
    PrimitiveType.CLICK,
    PrimitiveType.DBLCLICK,
    PrimitiveType.RIGHT_CLICK,
    PrimitiveType.FILL,
    PrimitiveType.SELECT,
    PrimitiveType.CHECK,
    PrimitiveType.UNCHECK,
    PrimitiveType.HOVER,
    PrimitiveType.FOCUS,
    PrimitiveType.CLEAR,
    PrimitiveType.UPLOAD,
})


class ToastType(Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


_LOCATOR = ("locator",)

# Fields each primitive type needs to render without further lookups
REQUIRED_FIELDS: dict[PrimitiveType, tuple[str, ...]] = {
    PrimitiveType.GOTO: ("url",),
    PrimitiveType.WAIT_FOR_URL: ("pattern",),
    PrimitiveType.RELOAD: (),
    PrimitiveType.GO_BACK: (),
    PrimitiveType.GO_FORWARD: (),
    PrimitiveType.WAIT_FOR_VISIBLE: _LOCATOR,
    PrimitiveType.WAIT_FOR_HIDDEN: _LOCATOR,
    PrimitiveType.WAIT_FOR_TIMEOUT: ("ms",),
    PrimitiveType.WAIT_FOR_NETWORK_IDLE: (),
    PrimitiveType.WAIT_FOR_LOADING_COMPLETE: (),
    PrimitiveType.WAIT_FOR_RESPONSE: ("pattern",),
    PrimitiveType.CLICK: _LOCATOR,
    PrimitiveType.DBLCLICK: _LOCATOR,
    PrimitiveType.RIGHT_CLICK: _LOCATOR,
    PrimitiveType.FILL: ("locator", "value"),
    PrimitiveType.SELECT: ("locator", "option"),
    PrimitiveType.CHECK: _LOCATOR,
    PrimitiveType.UNCHECK: _LOCATOR,
    PrimitiveType.PRESS: ("key",),
    PrimitiveType.HOVER: _LOCATOR,
    PrimitiveType.FOCUS: _LOCATOR,
    PrimitiveType.CLEAR: _LOCATOR,
    PrimitiveType.UPLOAD: ("locator", "files"),
    PrimitiveType.EXPECT_VISIBLE: _LOCATOR,
    PrimitiveType.EXPECT_NOT_VISIBLE: _LOCATOR,
    PrimitiveType.EXPECT_HIDDEN: _LOCATOR,
    PrimitiveType.EXPECT_TEXT: ("locator", "text"),
    PrimitiveType.EXPECT_VALUE: ("locator", "text"),
    PrimitiveType.EXPECT_CHECKED: _LOCATOR,
    PrimitiveType.EXPECT_ENABLED: _LOCATOR,
    PrimitiveType.EXPECT_DISABLED: _LOCATOR,
    PrimitiveType.EXPECT_URL: ("pattern",),
    PrimitiveType.EXPECT_TITLE: ("title",),
    PrimitiveType.EXPECT_COUNT: ("locator", "count"),
    PrimitiveType.EXPECT_CONTAINS_TEXT: ("locator", "text"),
    PrimitiveType.EXPECT_TOAST: ("toast_type",),
    PrimitiveType.DISMISS_MODAL: (),
    PrimitiveType.ACCEPT_ALERT: (),
    PrimitiveType.DISMISS_ALERT: (),
    PrimitiveType.CALL_MODULE: ("module", "method"),
    PrimitiveType.BLOCKED: ("reason", "source_text"),
}


@dataclass(frozen=True)
class Primitive:
    """One automation command."""

    type: PrimitiveType
    locator: LocatorSpec | None = None
    value: ValueSpec | None = None
    url: str | None = None
    pattern: str | None = None
    text: str | None = None
    title: str | None = None
    message: str | None = None
    toast_type: ToastType | None = None
    key: str | None = None
    option: str | None = None
    count: int | None = None
    ms: int | None = None
    module: str | None = None
    method: str | None = None
    args: tuple[str, ...] = ()
    files: tuple[str, ...] = ()
    timeout: int | None = None
    signal: str | None = None
    wait_for_load: bool = False
    exact: bool = False
    reason: str | None = None
    source_text: str | None = None

    def __post_init__(self):
        missing = [
            name
            for name in REQUIRED_FIELDS[self.type]
            if getattr(self, name) in (None, ())
        ]
        if missing:
            raise ValueError(f"{self.type.value} primitive is missing {', '.join(missing)}")

    @property
    def is_assertion(self) -> bool:
        return self.type.is_assertion

    @property
    def is_blocked(self) -> bool:
        return self.type is PrimitiveType.BLOCKED

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"type": self.type.value}
        for f in fields(self):
            if f.name == "type":
                continue
            value = getattr(self, f.name)
            if value is None or value == () or (value is False and f.default is False):
                continue
            if isinstance(value, (LocatorSpec, ValueSpec)):
                value = value.to_dict()
            elif isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = list(value)
            data[_camel(f.name)] = value
        return data


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def blocked(reason: str, source_text: str) -> Primitive:
    return Primitive(PrimitiveType.BLOCKED, reason=reason, source_text=source_text)


@dataclass(frozen=True)
class IRStep:
    """One step of a journey, with actions and assertions kept apart."""

    id: str
    description: str
    actions: tuple[Primitive, ...] = ()
    assertions: tuple[Primitive, ...] = ()
    source_text: str = ""
    notes: tuple[str, ...] = ()

    @property
    def has_blocked(self) -> bool:
        return any(p.is_blocked for p in self.actions)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "description": self.description,
            "actions": [p.to_dict() for p in self.actions],
            "assertions": [p.to_dict() for p in self.assertions],
            "sourceText": self.source_text,
        }
        if self.notes:
            data["notes"] = list(self.notes)
        return data


class CompletionType(Enum):
    URL = "url"
    TOAST = "toast"
    ELEMENT = "element"
    TITLE = "title"
    API = "api"


@dataclass(frozen=True)
class CompletionSignal:
    type: CompletionType
    value: str
    exact: bool = False
    state: str | None = None
    timeout: int | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"type": self.type.value, "value": self.value}
        options = {}
        if self.exact:
            options["exact"] = True
        if self.state:
            options["state"] = self.state
        if self.timeout is not None:
            options["timeout"] = self.timeout
        if options:
            data["options"] = options
        return data


@dataclass(frozen=True)
class ModuleDependencies:
    foundation: tuple[str, ...] = ()
    feature: tuple[str, ...] = ()


@dataclass(frozen=True)
class JourneyData:
    strategy: str = "create"
    cleanup: str = "required"


@dataclass(frozen=True)
class IRJourney:
    """A normalized journey ready for code generation."""

    id: str
    title: str
    tier: str
    scope: str
    actor: str
    tags: tuple[str, ...] = ()
    module_dependencies: ModuleDependencies = field(default_factory=ModuleDependencies)
    data: JourneyData | None = None
    completion: tuple[CompletionSignal, ...] = ()
    steps: tuple[IRStep, ...] = ()
    source_path: str = ""
    revision: int | None = None
    prerequisites: tuple[str, ...] = ()

    @property
    def assertion_count(self) -> int:
        return sum(len(step.assertions) for step in self.steps)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "tier": self.tier,
            "scope": self.scope,
            "actor": self.actor,
            "tags": list(self.tags),
            "moduleDependencies": {
                "foundation": list(self.module_dependencies.foundation),
                "feature": list(self.module_dependencies.feature),
            },
            "completion": [c.to_dict() for c in self.completion],
            "steps": [s.to_dict() for s in self.steps],
            "sourcePath": self.source_path,
        }
        if self.data is not None:
            data["data"] = {"strategy": self.data.strategy, "cleanup": self.data.cleanup}
        if self.revision is not None:
            data["revision"] = self.revision
        if self.prerequisites:
            data["prerequisites"] = list(self.prerequisites)
        return data
