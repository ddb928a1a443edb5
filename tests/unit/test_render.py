"""
Unit tests for command and prompt template rendering.
"""

from datetime import datetime
from unittest.mock import patch

import pytest

from blunderbuss.domain import Harness, Selection
from blunderbuss.exceptions import RenderError
from blunderbuss.render import TemplateRenderer, build_template_context, render_template
from tests.fixtures import make_ticket


class TestRenderTemplate:
    def test_substitutes_fields(self):
        assert render_template("go {{.A}} {{ .B }}", {"A": 1, "B": "x"}) == "go 1 x"

    def test_formats_values(self):
        ctx = {"Flag": True, "None": None, "When": datetime(2025, 1, 2, 3, 4, 5)}
        assert render_template("{{.Flag}}|{{.None}}|{{.When}}", ctx) == "true||2025-01-02T03:04:05"

    def test_unknown_field(self):
        with pytest.raises(RenderError, match="unknown field .Missing"):
            render_template("{{.Missing}}", {}, "cmd")

    def test_malformed_placeholder(self):
        with pytest.raises(RenderError, match="malformed"):
            render_template("echo {{Model}}", {"Model": "m"})

    def test_plain_text_untouched(self):
        assert render_template("echo hi", {}) == "echo hi"


class TestContext:
    def test_fields_from_selection(self):
        sel = Selection(
            ticket=make_ticket("bb-1", "Title", priority=0),
            harness=Harness("oc", "x"),
            model="m",
            agent="a",
        )
        ctx = build_template_context(sel, "/repo", branch="main", dry_run=True)
        assert ctx["TicketID"] == "bb-1"
        assert ctx["TicketPriority"] == 0
        assert ctx["HarnessName"] == "oc"
        assert ctx["RepoPath"] == "/repo"
        assert ctx["Branch"] == "main"
        assert ctx["DryRun"] is True
        assert ctx["Prompt"] == ""

    def test_empty_selection(self):
        ctx = build_template_context(Selection())
        assert ctx["TicketID"] == ""
        assert ctx["HarnessName"] == ""


class TestTemplateRenderer:
    def render(self, harness, **kwargs):
        sel = Selection(ticket=make_ticket("bb-2", "Do thing"), harness=harness, model="sonnet", agent="")
        with patch.object(TemplateRenderer, "current_branch", return_value="feat"):
            return TemplateRenderer(**kwargs).render(sel, "/repo", "bb-2")

    def test_prompt_feeds_command(self):
        harness = Harness(
            "claude",
            command_template="claude --model {{.Model}} '{{.Prompt}}'",
            prompt_template="Work on {{.TicketID}} on {{.Branch}}",
            env={"FOO": "1"},
        )
        spec = self.render(harness)
        assert spec.prompt == "Work on bb-2 on feat"
        assert spec.command == "claude --model sonnet 'Work on bb-2 on feat'"
        assert spec.window_name == "bb-2"
        assert spec.work_dir == "/repo"
        assert spec.env == {"FOO": "1"}

    def test_error_names_the_harness(self):
        with pytest.raises(RenderError, match="command_template for harness 'bad'"):
            self.render(Harness("bad", command_template="{{.Nope}}"))

    def test_requires_ticket_and_harness(self):
        with pytest.raises(RenderError):
            TemplateRenderer().render(Selection(), "/repo", "x")

    def test_current_branch_without_path(self):
        assert TemplateRenderer.current_branch("") == ""
