"""Syntax checks for generated Playwright tests: a tree-sitter parse plus API heuristics."""

import re
from dataclasses import dataclass, field
from typing import Iterator

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from .base import Dimension, DimensionScore, SubScore, clamp, line_of, percent

TYPESCRIPT = Language(tree_sitter_typescript.language_typescript())
PARSE_ERROR_SNIPPET = 30
PLAYWRIGHT_IMPORTS = ("@playwright/test", "playwright")

TEST_BLOCK_PATTERNS = (
    re.compile(r"test\s*\(\s*['\"`]"),
    re.compile(r"test\.describe\s*\(\s*['\"`]"),
    re.compile(r"test\.(?:beforeEach|afterEach|beforeAll|afterAll)\s*\("),
)

FIXTURE_PATTERNS = (
    re.compile(r"\{\s*page\s*[,}]"),
    re.compile(r",\s*page\s*\}"),
    re.compile(r"\{\s*(?:browser|context|request)\s*\}"),
)


@dataclass(frozen=True)
class DeprecatedApi:
    pattern: re.Pattern
    api: str
    suggestion: str


DEPRECATED_APIS = (
    DeprecatedApi(re.compile(r"page\.waitForTimeout\s*\(\s*\d+\s*\)"),
                  "waitForTimeout with fixed delay", "Use waitForSelector or expect assertions"),
    DeprecatedApi(re.compile(r"page\.\$\("), "page.$()", "Use page.locator()"),
    DeprecatedApi(re.compile(r"page\.\$\$\("), "page.$$()", "Use page.locator().all()"),
    DeprecatedApi(re.compile(r"page\.waitForSelector\("),
                  "waitForSelector", "Use locator.waitFor() or expect assertions"),
    DeprecatedApi(re.compile(r"elementHandle\."), "ElementHandle", "Use Locator API instead"),
    DeprecatedApi(re.compile(r"page\.click\("), "page.click()", "Use locator.click()"),
    DeprecatedApi(re.compile(r"page\.fill\("), "page.fill()", "Use locator.fill()"),
    DeprecatedApi(re.compile(r"page\.type\("), "page.type()",
                  "Use locator.fill() or locator.pressSequentially()"),
)

ERROR_PATTERNS = (
    (re.compile(r"await\s+await\s+"), "Duplicate await"),
)

WARNING_PATTERNS = (
    (re.compile(r"//\s*TODO", re.I), "TODO comment found, implementation incomplete",
     "Complete the TODO items"),
    (re.compile(r"console\.log\("), "console.log in test code", "Remove debug statements"),
    (re.compile(r"\.only\s*\("), ".only() will skip other tests", "Remove .only() before committing"),
    (re.compile(r"\.skip\s*\("), ".skip() found, test will not run",
     "Remove .skip() or add explanation"),
    (re.compile(r":\s*any\b"), 'Use of "any" type', "Add proper type annotations"),
    (re.compile(r"\bas\s+any\b"), "Type assertion to any", "Use proper type instead"),
)

ARROW_PARAMS = re.compile(r"\(([^()]*)\)\s*(?::\s*[\w<>\[\]|, ]+?)?\s*=>")
FUNCTION_PARAMS = re.compile(r"\bfunction\s*\w*\s*\(([^()]*)\)")
RETURN_TYPE = re.compile(r"\)\s*:\s*[\w<>\[\]]+\s*(?:=>|\{)")
HARD_WAIT = re.compile(r"waitForTimeout\s*\(\s*\d{4,}")


@dataclass(frozen=True)
class SyntaxIssue:
    line: int
    column: int
    message: str
    code: str
    severity: str = "error"


@dataclass(frozen=True)
class SyntaxNote:
    """A non-fatal finding with a suggested remedy."""

    line: int
    message: str
    suggestion: str


@dataclass(frozen=True)
class PlaywrightCheck:
    has_valid_imports: bool
    uses_test_fixtures: bool
    has_valid_test_blocks: bool
    api_usage_score: float
    deprecated_apis: tuple[str, ...] = ()


@dataclass(frozen=True)
class SyntaxResult:
    valid: bool
    score: float
    compiles: bool
    type_inference_score: float
    playwright: PlaywrightCheck
    errors: tuple[SyntaxIssue, ...] = field(default_factory=tuple)
    warnings: tuple[SyntaxNote, ...] = field(default_factory=tuple)


def _error_nodes(node: Node) -> Iterator[Node]:
    if node.type == "ERROR" or node.is_missing:
        yield node
        return
    for child in node.children:
        if child.has_error or child.is_missing:
            yield from _error_nodes(child)


def parse_errors(code: str) -> list[SyntaxIssue]:
    """Parse the code as TypeScript and report every ERROR and MISSING node."""
    source = code.encode("utf-8")
    tree = Parser(TYPESCRIPT).parse(source)
    if not tree.root_node.has_error:
        return []

    issues = []
    for node in _error_nodes(tree.root_node):
        line, column = node.start_point[0] + 1, node.start_point[1] + 1
        if node.is_missing:
            issues.append(SyntaxIssue(line, column, f"Missing '{node.type}'", "TS_MISSING"))
            continue
        snippet = source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
        snippet = " ".join(snippet.split())[:PARSE_ERROR_SNIPPET]
        issues.append(SyntaxIssue(line, column, f"Unexpected '{snippet}'", "TS_PARSE_ERROR"))
    return issues


def _pattern_errors(code: str) -> list[SyntaxIssue]:
    issues = []
    for pattern, message in ERROR_PATTERNS:
        for m in pattern.finditer(code):
            line_start = code.rfind("\n", 0, m.start()) + 1
            issues.append(SyntaxIssue(line_of(code, m.start()), m.start() - line_start + 1,
                                      message, "PATTERN_ERROR"))
    return issues


def _pattern_warnings(code: str) -> list[SyntaxNote]:
    return [
        SyntaxNote(line_of(code, m.start()), message, suggestion)
        for pattern, message, suggestion in WARNING_PATTERNS
        for m in pattern.finditer(code)
    ]


def type_inference_score(code: str) -> float:
    """Rough measure of how much of the code is explicitly typed.

    Destructured parameters such as ``({ page })`` are fixtures and are not
    expected to carry annotations.
    """
    score = 1.0
    score -= 0.1 * len(re.findall(r":\s*any\b", code))

    typed = untyped = 0
    for m in [*ARROW_PARAMS.finditer(code), *FUNCTION_PARAMS.finditer(code)]:
        for param in m.group(1).split(","):
            param = param.strip()
            if not param or param[0] in "{[":
                continue
            if ":" in param:
                typed += 1
            else:
                untyped += 1
    if typed + untyped:
        score -= 0.2 * untyped / (typed + untyped)

    if RETURN_TYPE.search(code):
        score += 0.1
    return clamp(score)


def get_deprecated_apis(code: str) -> list[DeprecatedApi]:
    return [api for api in DEPRECATED_APIS if api.pattern.search(code)]


def api_usage_score(code: str, deprecated_count: int) -> float:
    score = 1.0 - 0.15 * deprecated_count
    if ".locator(" in code or "getBy" in code:
        score += 0.1
    if "expect(" in code and ").to" in code:
        score += 0.1
    if "test.step(" in code:
        score += 0.05
    score -= 0.2 * len(HARD_WAIT.findall(code))
    return clamp(score)


def check_playwright(code: str) -> PlaywrightCheck:
    deprecated = get_deprecated_apis(code)
    return PlaywrightCheck(
        has_valid_imports=any(
            f"from '{imp}'" in code or f'from "{imp}"' in code for imp in PLAYWRIGHT_IMPORTS
        ),
        uses_test_fixtures=any(p.search(code) for p in FIXTURE_PATTERNS),
        has_valid_test_blocks=any(p.search(code) for p in TEST_BLOCK_PATTERNS),
        api_usage_score=api_usage_score(code, len(deprecated)),
        deprecated_apis=tuple(api.api for api in deprecated),
    )


def _syntax_score(
    errors: list[SyntaxIssue],
    warnings: list[SyntaxNote],
    compiles: bool,
    inference: float,
    playwright: PlaywrightCheck,
) -> float:
    score = 1.0
    score -= 0.3 * sum(1 for e in errors if e.severity == "error")
    score -= 0.05 * len(warnings)
    if not compiles:
        score -= 0.4
    score *= 0.7 + 0.3 * inference

    if not playwright.has_valid_imports:
        score -= 0.2
    if not playwright.has_valid_test_blocks:
        score -= 0.3
    if not playwright.uses_test_fixtures:
        score -= 0.1
    score *= 0.7 + 0.3 * playwright.api_usage_score
    return clamp(score)


def validate_syntax(code: str) -> SyntaxResult:
    """Validate generated test code without invoking a compiler.

    The code "compiles" when the TypeScript parse tree has no ERROR or
    MISSING nodes. The regex tables only feed warnings and API usage.
    """
    compile_errors = parse_errors(code)
    errors = compile_errors + _pattern_errors(code)
    warnings = _pattern_warnings(code)
    compiles = not compile_errors
    inference = type_inference_score(code)
    playwright = check_playwright(code)

    return SyntaxResult(
        valid=not any(e.severity == "error" for e in errors),
        score=_syntax_score(errors, warnings, compiles, inference, playwright),
        compiles=compiles,
        type_inference_score=inference,
        playwright=playwright,
        errors=tuple(errors),
        warnings=tuple(warnings),
    )


def quick_syntax_check(code: str) -> bool:
    """Cheap structural check: a test block exists and the code parses."""
    if "test(" not in code and "test.describe(" not in code:
        return False
    return not parse_errors(code)


def _reasoning(result: SyntaxResult) -> str:
    reasons = []
    if result.errors:
        reasons.append(f"{len(result.errors)} syntax error(s) found")
    if result.warnings:
        reasons.append(f"{len(result.warnings)} warning(s)")
    if not result.compiles:
        reasons.append("Code does not parse")
    if not result.playwright.has_valid_imports:
        reasons.append("Missing Playwright imports")
    if not result.playwright.has_valid_test_blocks:
        reasons.append("No valid test blocks found")
    if result.playwright.deprecated_apis:
        reasons.append(f"{len(result.playwright.deprecated_apis)} deprecated API(s) used")
    return "; ".join(reasons) or "Syntax is valid"


def syntax_dimension(result: SyntaxResult, weight: float = 0.25) -> DimensionScore:
    pw = result.playwright
    return DimensionScore(
        dimension=Dimension.SYNTAX,
        score=result.score,
        weight=weight,
        reasoning=_reasoning(result),
        sub_scores=(
            SubScore("Parse", 1.0 if result.compiles else 0.0,
                     "Code parses" if result.compiles else "Parse errors found"),
            SubScore("Type Inference", result.type_inference_score,
                     f"Type coverage: {percent(result.type_inference_score)}"),
            SubScore("Playwright API Usage", pw.api_usage_score,
                     f"API correctness: {percent(pw.api_usage_score)}"),
            SubScore("Test Structure", 1.0 if pw.has_valid_test_blocks else 0.3,
                     "Valid test blocks" if pw.has_valid_test_blocks else "Missing test blocks"),
        ),
    )
