"""Tests for the Markdown document codec."""

from __future__ import annotations

import pytest
import yaml

from plansync import markdown
from plansync.errors import ValidationError
from plansync.types.sync import DocumentPlan, DocumentTask, PlanDocument

V3_DOC = """\
---
format_version: 3
description: Ship the thing
completed: false
tasks:
  - name: Design
    status: in_progress
    priority: 10
  - name: Build
    parent: Design
    blocked_by: [Design]
    acceptance_criteria: |
      compiles
      passes tests
facts:
  - name: Stack
    description: Python
---

# Launch

Plan body here.
"""

V2_DOC = """\
---
tasks:
  - name: Old
    completed: true
  - name: New
---
# Legacy
"""


class TestSplitFrontMatter:
    def test_no_front_matter(self) -> None:
        meta, body = markdown.split_front_matter("# Title\n")
        assert meta == {}
        assert body == "# Title\n"

    def test_empty_front_matter(self) -> None:
        meta, body = markdown.split_front_matter("---\n---\n# T\n")
        assert meta == {}
        assert body == "# T\n"

    def test_invalid_yaml(self) -> None:
        with pytest.raises(ValidationError, match="Invalid YAML"):
            markdown.split_front_matter("---\ntasks: [unclosed\n---\n")

    def test_non_mapping(self) -> None:
        with pytest.raises(ValidationError, match="mapping"):
            markdown.split_front_matter("---\n- a\n- b\n---\n")


class TestParse:
    def test_v3_document(self) -> None:
        doc = markdown.parse(V3_DOC)
        assert doc["plan"]["name"] == "Launch"
        assert doc["plan"]["description"] == "Ship the thing"
        assert doc["plan"]["content"] == "Plan body here."
        design, build = doc["tasks"]
        assert design == {"name": "Design", "status": "in_progress", "priority": 10}
        assert build["parent"] == "Design"
        assert build["blocked_by"] == ["Design"]
        assert build["acceptance_criteria"] == "compiles\npasses tests\n"
        assert doc["facts"] == [{"name": "Stack", "description": "Python", "content": ""}]

    def test_v2_document_keeps_completed_flag(self) -> None:
        doc = markdown.parse(V2_DOC)
        assert doc["plan"]["name"] == "Legacy"
        assert doc["tasks"][0]["completed"] is True
        assert "status" not in doc["tasks"][0]

    def test_name_falls_back_to_front_matter(self) -> None:
        doc = markdown.parse("---\nname: From meta\n---\nJust text\n")
        assert doc["plan"]["name"] == "From meta"
        assert doc["plan"]["content"] == "Just text"

    def test_tasks_must_be_mappings(self) -> None:
        with pytest.raises(ValidationError, match="list of mappings"):
            markdown.parse("---\ntasks: [a, b]\n---\n# P\n")

    def test_content_indentation_is_kept(self) -> None:
        doc = markdown.parse("---\n---\n# P\n\n    indented code\n\nmore\n\n")
        assert doc["plan"]["content"] == "    indented code\n\nmore"

    def test_indented_code_line_is_not_a_heading(self) -> None:
        doc = markdown.parse("    # not a title\n# Real\n\nbody\n")
        assert doc["plan"]["name"] == "Real"
        assert doc["plan"]["content"] == "    # not a title\n\nbody"

    def test_numeric_names_become_text(self) -> None:
        doc = markdown.parse(
            "---\ntasks:\n  - name: 2024\n  - name: Next\n    blocked_by: [2024]\n"
            "facts:\n  - name: 42\n---\n# P\n"
        )
        assert doc["tasks"][0]["name"] == "2024"
        assert doc["tasks"][1]["blocked_by"] == ["2024"]
        assert doc["facts"][0]["name"] == "42"

    def test_non_scalar_name_is_passed_through(self) -> None:
        doc = markdown.parse("---\ntasks:\n  - name: [a, b]\n---\n# P\n")
        assert doc["tasks"][0]["name"] == ["a", "b"]


class TestRender:
    def _doc(self) -> PlanDocument:
        return PlanDocument(
            plan=DocumentPlan(name="Launch", description="", content="Body", completed=False),
            tasks=[
                DocumentTask(name="A", status="completed", priority=100, description="line one\nline two"),
                DocumentTask(name="B", status="pending", priority=3, blocked_by=["A"], blocks=[]),
            ],
            facts=[],
        )

    def test_layout(self) -> None:
        text = markdown.render_document(self._doc())
        assert text.startswith("---\nformat_version: 3\n")
        assert "\n---\n\n# Launch\n\nBody\n" in text
        assert text.endswith("Body\n")

    def test_task_front_matter(self) -> None:
        meta, _ = markdown.split_front_matter(markdown.render_document(self._doc()))
        a, b = meta["tasks"]
        assert a == {"name": "A", "description": "line one\nline two", "completed": True, "status": "completed"}
        assert b == {"name": "B", "status": "pending", "priority": 3, "blocked_by": ["A"]}
        assert "facts" not in meta

    def test_multiline_strings_use_block_style(self) -> None:
        text = markdown.render_document(self._doc())
        assert "description: |-\n" in text or "description: |\n" in text

    def test_front_matter_is_safe_yaml(self) -> None:
        meta, _ = markdown.split_front_matter(markdown.render_document(self._doc()))
        assert yaml.safe_dump(meta)

    def test_parse_render_parse_is_stable(self) -> None:
        first = markdown.parse(V3_DOC)
        again = markdown.parse(markdown.render_document(first))
        assert again["plan"]["name"] == first["plan"]["name"]
        assert [t["name"] for t in again["tasks"]] == ["Design", "Build"]
        assert again["tasks"][1]["blocked_by"] == ["Design"]
        assert again["tasks"][0]["priority"] == 10

    def test_indented_content_survives_render(self) -> None:
        doc = PlanDocument(plan=DocumentPlan(name="P", content="    indented code\n\nmore"), tasks=[], facts=[])
        again = markdown.parse(markdown.render_document(doc))
        assert again["plan"]["content"] == "    indented code\n\nmore"
