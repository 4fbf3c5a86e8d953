"""Tests for ARIA extraction from HTML and aria snapshots."""

import pytest

from journey_warden.analyzer.aria import (
    AriaInfo,
    aria_info_from_node,
    extract_aria_info,
    find_aria_node,
    parse_aria_snapshot,
)

PAGE = """
<html><body>
  <header><h1>Acme</h1></header>
  <form>
    <label for="email">Email address</label>
    <input id="email" type="email" placeholder="you@example.com">
    <label><input type="checkbox" class="remember"> Remember me</label>
    <button class="submit-btn" data-testid="sign-in">Sign <b>in</b></button>
    <input type="submit" class="alt-submit" value="Continue">
  </form>
  <span id="caption">Close dialog</span>
  <div class="close" role="button" aria-labelledby="caption"></div>
  <a class="docs" href="/docs" title="Documentation">?</a>
  <a class="anchor">no href</a>
  <div role="heading" aria-level="3" class="section">Billing</div>
</body></html>
"""

SNAPSHOT = """- banner:
  - heading "Acme" [level=1]
- main:
  - text: Welcome back
  - button "Sign in" [disabled]
  - link "Say \\"hi\\""
  - checkbox "Remember me" [checked=false]
"""


class TestExtractAriaInfo:
    def test_button_name_from_content(self):
        info = extract_aria_info(PAGE, ".submit-btn")
        assert info == AriaInfo(role="button", name="Sign in", test_id="sign-in")

    def test_input_label(self):
        info = extract_aria_info(PAGE, "#email")
        assert info.role == "textbox"
        assert info.label == "Email address"
        assert info.name == "Email address"
        assert info.placeholder == "you@example.com"

    def test_wrapping_label(self):
        info = extract_aria_info(PAGE, ".remember")
        assert (info.role, info.name) == ("checkbox", "Remember me")

    def test_submit_input_value(self):
        assert extract_aria_info(PAGE, ".alt-submit").name == "Continue"

    def test_labelledby(self):
        info = extract_aria_info(PAGE, ".close")
        assert (info.role, info.name) == ("button", "Close dialog")

    def test_links(self):
        assert extract_aria_info(PAGE, ".docs") == AriaInfo(role="link", name="Documentation")
        assert extract_aria_info(PAGE, ".anchor").role is None

    def test_heading_levels(self):
        assert extract_aria_info(PAGE, "h1").level == 1
        section = extract_aria_info(PAGE, ".section")
        assert (section.role, section.level) == ("heading", 3)

    @pytest.mark.parametrize("selector", [".missing", "div[["])
    def test_no_match(self, selector):
        assert extract_aria_info(PAGE, selector) is None

    def test_is_empty(self):
        assert AriaInfo().is_empty
        assert not AriaInfo(test_id="x").is_empty


class TestAriaSnapshot:
    def test_parse(self):
        nodes = parse_aria_snapshot(SNAPSHOT)
        assert [(n.role, n.depth) for n in nodes] == [
            ("banner", 0), ("heading", 1), ("main", 0), ("button", 1), ("link", 1), ("checkbox", 1),
        ]
        assert nodes[1].level == 1
        assert nodes[3].attributes == {"disabled": "true"}
        assert nodes[4].name == 'Say "hi"'
        assert nodes[5].attributes == {"checked": "false"}

    def test_find_node(self):
        nodes = parse_aria_snapshot(SNAPSHOT)
        assert find_aria_node(nodes, role="button").name == "Sign in"
        assert find_aria_node(nodes, name="sign in").role == "button"
        assert find_aria_node(nodes, role="button", name="Cancel") is None

    def test_info_from_node(self):
        heading = find_aria_node(parse_aria_snapshot(SNAPSHOT), role="heading")
        assert aria_info_from_node(heading) == AriaInfo(role="heading", name="Acme", level=1)
