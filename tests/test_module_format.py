"""
Tests for the module text format and import/export.
"""
import pytest

from coursevault.core.exceptions import ValidationError
from coursevault.models import KnowledgePoint
from coursevault.schemas import QuestionInput
from coursevault.utils.module_format import ModuleFormat

from helpers import content_block, kp_block, question


EXPORTED = """---
title: Intro
description: First steps
---

[//]: # (content)
Welcome.

[//]: # (question)
What is 2 + 2?

[//]: # (choice)
3

[//]: # (choice correct)
4

[//]: # (explanation)
Arithmetic.
"""


class TestExport:
    def test_renders_front_matter_and_sections(self):
        text = ModuleFormat.export(
            "Intro",
            "First steps",
            ["Welcome.", QuestionInput(text="What is 2 + 2?", choices=["3", "4"], correct_choice_index=1, explanation="Arithmetic.")],
        )
        assert text == EXPORTED

    def test_explanation_is_omitted_when_empty(self):
        text = ModuleFormat.export("T", "D", [QuestionInput(text="q", choices=["a"], correct_choice_index=0)])
        assert "(explanation)" not in text


class TestParse:
    def test_parses_exported_text(self):
        draft = ModuleFormat.parse(EXPORTED)
        assert draft.title == "Intro"
        assert draft.description == "First steps"
        assert draft.pieces[0] == "Welcome."
        q = draft.pieces[1]
        assert q.text == "What is 2 + 2?"
        assert q.choices == ["3", "4"]
        assert q.correct_choice_index == 1
        assert q.explanation == "Arithmetic."

    def test_multiline_content_is_kept(self):
        draft = ModuleFormat.parse("---\ntitle: T\ndescription: D\n---\n[//]: # (content)\nline one\n\nline two\n")
        assert draft.pieces == ["line one\n\nline two"]

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "[//]: # (content)\nno front matter\n",
            "---\ntitle: T\ndescription: D\n[//]: # (content)\nunclosed\n",
            "---\ntitle: T\n---\n[//]: # (content)\nno description\n",
            "---\ntitle: T\ndescription: D\n---\n[//]: # (question)\nq\n[//]: # (content)\nc\n",
            "---\ntitle: T\ndescription: D\n---\n[//]: # (question)\nq\n[//]: # (choice)\na\n",
            "---\ntitle: T\ndescription: D\n---\n[//]: # (choice correct)\na\n",
            "---\ntitle: T\ndescription: D\n---\nstray text\n[//]: # (content)\nc\n",
        ],
    )
    def test_malformed_input(self, text):
        with pytest.raises(ValidationError):
            ModuleFormat.parse(text)


class TestImportExport:
    def test_export_uses_first_latest_question(self, authoring, teacher, course, module_ids):
        kp = authoring.create_knowledge_point(
            teacher.id, course.id, "KP", [question("first?", explanation="why"), question("second?")]
        )
        authoring.edit_module(teacher.id, module_ids[0], "Intro", "Start", [content_block("hello"), kp_block(kp.id)])
        text = authoring.export_module(teacher.id, module_ids[0])
        assert "first?" in text
        assert "second?" not in text
        assert "[//]: # (choice correct)\nright" in text

    def test_import_creates_knowledge_points(self, db, authoring, teacher, module_ids):
        version = authoring.import_module(teacher.id, module_ids[0], EXPORTED)
        assert version.title == "Intro"
        assert version.version_number == 2
        kp = db.query(KnowledgePoint).one()
        assert kp.name == "What is 2 + 2?"
        module = authoring.get_module_for_edit(teacher.id, module_ids[0])
        assert [b["type"] for b in module["blocks"]] == ["content", "knowledge_point"]

    def test_round_trip(self, authoring, teacher, module_ids):
        authoring.import_module(teacher.id, module_ids[0], EXPORTED)
        assert authoring.export_module(teacher.id, module_ids[0]) == EXPORTED

    def test_malformed_import_writes_nothing(self, db, authoring, teacher, module_ids):
        with pytest.raises(ValidationError):
            authoring.import_module(teacher.id, module_ids[0], "---\ntitle: T\n")
        assert db.query(KnowledgePoint).count() == 0
