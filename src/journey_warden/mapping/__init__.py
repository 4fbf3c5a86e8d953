"""Step text to primitive mapping."""

from .glossary import DEFAULT_GLOSSARY, Glossary, load_glossary
from .matcher import (
    FixSuggestion,
    MatchOptions,
    MatchResult,
    StepMatch,
    Unmatched,
    get_mapping_stats,
    match_step,
    match_steps,
    suggest_fix,
)

__all__ = [
    "DEFAULT_GLOSSARY",
    "FixSuggestion",
    "Glossary",
    "MatchOptions",
    "MatchResult",
    "StepMatch",
    "Unmatched",
    "get_mapping_stats",
    "load_glossary",
    "match_step",
    "match_steps",
    "suggest_fix",
]
