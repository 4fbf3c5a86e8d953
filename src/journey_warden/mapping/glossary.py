"""Synonym glossary used to normalize step text before pattern matching."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import yaml


@dataclass(frozen=True)
class GlossaryEntry:
    canonical: str
    synonyms: tuple[str, ...]


@dataclass(frozen=True)
class Glossary:
    """Immutable glossary value. Build one and pass it where it is needed."""

    entries: tuple[GlossaryEntry, ...] = ()
    module_methods: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self):
        lookup: dict[str, str] = {}
        for entry in self.entries:
            for synonym in entry.synonyms:
                lookup.setdefault(synonym.lower(), entry.canonical)
        object.__setattr__(self, "_lookup", MappingProxyType(lookup))
        object.__setattr__(self, "module_methods", MappingProxyType(dict(self.module_methods)))

    def canonical_term(self, term: str) -> str | None:
        """Canonical form of a synonym, or None when the term is unknown."""
        return self._lookup.get(term.lower())

    def is_synonym_of(self, term: str, canonical: str) -> bool:
        term = term.lower()
        return term == canonical.lower() or self._lookup.get(term) == canonical.lower()

    def synonyms_for(self, canonical: str) -> tuple[str, ...]:
        for entry in self.entries:
            if entry.canonical == canonical.lower():
                return entry.synonyms
        return ()

    def normalize_step_text(self, text: str) -> str:
        """Lowercase, swap single-word synonyms for canonical terms, keep quoted text."""
        tokens = re.findall(r"(['\"][^'\"]+['\"])|(\S+)", text)
        out = []
        for quoted, word in tokens:
            if quoted:
                out.append(quoted)
                continue
            lowered = word.lower()
            out.append(self._lookup.get(lowered, lowered))
        return " ".join(out)

    def find_module_method(self, text: str) -> tuple[str, str] | None:
        """Longest module phrase contained in the text, as (module, method)."""
        lowered = text.lower()
        best: tuple[str, str] | None = None
        best_len = 0
        for phrase, target in self.module_methods.items():
            if phrase in lowered and len(phrase) > best_len:
                module, _, method = target.partition(".")
                best = (module, method)
                best_len = len(phrase)
        return best

    def merge(self, other: "Glossary") -> "Glossary":
        """Extend this glossary with another one. The other side wins on conflicts."""
        by_canonical = {e.canonical: list(e.synonyms) for e in self.entries}
        for entry in other.entries:
            merged = by_canonical.setdefault(entry.canonical, [])
            merged.extend(s for s in entry.synonyms if s not in merged)
        return Glossary(
            entries=tuple(GlossaryEntry(c, tuple(s)) for c, s in by_canonical.items()),
            module_methods={**self.module_methods, **other.module_methods},
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Glossary":
        entries = tuple(
            GlossaryEntry(item["canonical"].lower(), tuple(s.lower() for s in item.get("synonyms", [])))
            for item in data.get("entries", [])
        )
        methods = {}
        for item in data.get("moduleMethods", data.get("module_methods", [])):
            methods[item["phrase"].lower()] = f"{item['module']}.{item['method']}"
        return cls(entries=entries, module_methods=methods)


def _entries(table: dict[str, list[str]]) -> tuple[GlossaryEntry, ...]:
    return tuple(GlossaryEntry(k, tuple(v)) for k, v in table.items())


DEFAULT_GLOSSARY = Glossary(
    entries=_entries({
        "click": ["press", "tap", "select", "hit"],
        "enter": ["type", "fill", "input", "write"],
        "navigate": ["go", "open", "visit", "browse"],
        "see": ["view", "observe", "notice", "find"],
        "visible": ["displayed", "shown", "present"],
        "button": ["btn", "action", "cta"],
        "field": ["input", "textbox", "text field", "text input"],
        "dropdown": ["select", "combo", "combobox", "selector", "picker"],
        "checkbox": ["check", "tick", "toggle"],
        "login": ["log in", "sign in", "authenticate"],
        "logout": ["log out", "sign out", "exit"],
        "submit": ["send", "save", "confirm", "ok"],
        "cancel": ["close", "dismiss", "abort", "back"],
        "success": ["passed", "completed", "done", "finished"],
        "error": ["failure", "failed", "problem", "issue"],
        "toast": ["notification", "message", "alert", "snackbar"],
        "modal": ["dialog", "popup", "overlay", "lightbox"],
        "user": ["customer", "visitor", "member", "client"],
        "page": ["screen", "view", "section"],
        "form": ["questionnaire", "survey", "wizard"],
    }),
    module_methods={
        "log in": "auth.login",
        "login": "auth.login",
        "sign in": "auth.login",
        "log out": "auth.logout",
        "logout": "auth.logout",
        "sign out": "auth.logout",
        "navigate to": "navigation.goToPath",
        "go to": "navigation.goToPath",
        "open": "navigation.goToPath",
        "fill form": "forms.fillForm",
        "submit form": "forms.submitForm",
        "wait for": "waits.waitForSignal",
    },
)


def load_glossary(path: Path | None, base: Glossary = DEFAULT_GLOSSARY) -> Glossary:
    """Load a YAML glossary file and merge it over the base glossary."""
    if path is None or not path.exists():
        return base
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if "glossary" in raw:
        raw = raw["glossary"]
    return base.merge(Glossary.from_dict(raw))
