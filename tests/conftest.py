"""Shared fixtures: a small journey, fake verify functions and sample test code."""

import pytest

from journey_warden.healing.loop import VerifyResult, VerifyStatus
from journey_warden.models import ParsedJourney

SELECTOR_FAILURE = (
    "Error: locator.click: Timeout 30000ms exceeded.\n"
    "Call log:\n"
    "  - waiting for locator('.submit-btn')"
)

CSS_TEST_CODE = """import { test, expect } from '@playwright/test';

test('user can sign in', async ({ page }) => {
  await page.goto('/login');
  await page.locator('.submit-btn').click();
  await expect(page).toHaveURL(/dashboard/);
});
"""

GOOD_TEST_CODE = """import { test, expect } from '@playwright/test';

test('user can sign in', async ({ page }) => {
  await test.step('Open login', async () => {
    await page.goto('/login');
  });
  await page.getByLabel('Email').fill('qa@example.com');
  await page.getByTestId('sign-in').click();
  await expect(page).toHaveURL(/dashboard/);
});
"""


@pytest.fixture
def journey_data() -> dict:
    """Three acceptance criteria; the second has one bullet nothing maps."""
    return {
        "frontmatter": {
            "id": "JRN-0001",
            "title": "User signs in",
            "tier": "smoke",
            "scope": "auth",
            "actor": "standard-user",
            "tags": ["@auth"],
            "completion": [{"type": "url", "value": "/dashboard"}],
        },
        "acceptanceCriteria": [
            {
                "id": "AC-1",
                "title": "Login page opens",
                "steps": ["User navigates to /login", "User sees 'Sign in'"],
            },
            {
                "id": "AC-2",
                "title": "Credentials are submitted",
                "steps": [
                    "Click Submit `(role=button, name=Submit)`",
                    "Perform the quarterly reconciliation",
                ],
            },
            {
                "id": "AC-3",
                "title": "Dashboard is shown",
                "steps": ["The url should contain /dashboard"],
            },
        ],
        "proceduralSteps": [],
        "sourcePath": "journeys/JRN-0001.md",
    }


@pytest.fixture
def parsed_journey(journey_data) -> ParsedJourney:
    return ParsedJourney.from_dict(journey_data)


class ScriptedVerify:
    """Verify function that replays a script of results, repeating the last one."""

    def __init__(self, *results: VerifyResult):
        self.results = list(results)
        self.calls = 0

    def __call__(self) -> VerifyResult:
        result = self.results[min(self.calls, len(self.results) - 1)]
        self.calls += 1
        return result


def failed(*texts: str) -> VerifyResult:
    return VerifyResult(VerifyStatus.FAILED, texts)


PASSED = VerifyResult(VerifyStatus.PASSED)


class MemoryFiles:
    """In-memory read/write functions for the healing loop."""

    def __init__(self, files: dict[str, str]):
        self.files = dict(files)
        self.writes: list[tuple[str, str]] = []

    def read(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write(self, path: str, code: str) -> None:
        self.files[path] = code
        self.writes.append((path, code))


@pytest.fixture
def memory_files() -> MemoryFiles:
    return MemoryFiles({"tests/login.spec.ts": CSS_TEST_CODE})
