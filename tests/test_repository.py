"""
Unit tests for persistence helpers
"""
import pytest

from smartnotes.models import MCQ, Material, SmartNote
from smartnotes.services.errors import MaterialNotFound
from smartnotes.services.repository import (
    create_material,
    delete_material,
    fetch_material_text,
    insert_mcq,
    insert_note,
    list_mcqs,
    list_notes,
    note_to_prompt_dict,
    update_note,
)


class TestNotes:
    def test_generated_note_mapped_to_columns(self, session):
        material = create_material(session, "Mauryas", "text")
        row = insert_note(session, material.id, {
            "topic": "  Ashoka ",
            "subtopic": "Dhamma",
            "content": "Edicts",
            "examRelevance": "upsc",
            "importance": "9",
            "memoryTechnique": {"type": "Story", "technique": "Ashoka ka Dhamma"},
            "examTips": ["Rock edicts", "Pillar edicts"],
        })
        assert row.topic == "Ashoka"
        assert row.exam_relevance == "UPSC"
        assert row.importance == 5
        assert row.memory_technique["type"] == "Story"
        assert row.exam_tips == "Rock edicts\nPillar edicts"

    def test_defaults(self, session):
        material = create_material(session, "Mauryas", "text")
        row = insert_note(session, material.id, {"topic": "Bindusara"})
        assert row.importance == 3
        assert row.exam_relevance == "BOTH"
        assert row.content == ""

    def test_prompt_dict_round_trip_keys(self, session):
        material = create_material(session, "Mauryas", "text")
        row = insert_note(session, material.id, {"topic": "Ashoka", "examRelevance": "SSC", "importance": 4})
        assert note_to_prompt_dict(row)["examRelevance"] == "SSC"

    def test_listing_order_and_filter(self, session):
        material = create_material(session, "Mauryas", "text")
        for topic, relevance, importance in [("B", "SSC", 2), ("A", "UPSC", 5), ("C", "BOTH", 5)]:
            insert_note(session, material.id, {"topic": topic, "examRelevance": relevance, "importance": importance})

        assert [n.topic for n in list_notes(session, material.id)] == ["A", "C", "B"]
        assert [n.topic for n in list_notes(session, material.id, "ssc")] == ["C", "B"]
        assert len(list_notes(session, material.id, "unknown")) == 3


class TestMaterials:
    def test_missing_material(self, session):
        with pytest.raises(MaterialNotFound):
            fetch_material_text(session, 42)

    def test_delete_cascades(self, session):
        material = create_material(session, "Mauryas", "The text")
        insert_note(session, material.id, {"topic": "Ashoka"})
        insert_mcq(session, material.id, {"question": "Q?", "options": ["a", "b", "c", "d"], "answer": "a"},
                   "Medium", "SSC CGL")
        assert len(list_mcqs(session, material.id)) == 1

        delete_material(session, material.id)

        assert session.query(SmartNote).count() == 0
        assert session.query(MCQ).count() == 0
        with pytest.raises(MaterialNotFound):
            delete_material(session, material.id)

    def test_mcq_defaults(self, session):
        material = create_material(session, "Mauryas", "text")
        row = insert_mcq(session, material.id, {"question": "Q?", "options": ["a", "b", "c", "d"], "answer": "a"},
                         "Easy", "SSC CGL")
        assert row.level == "Easy"
        assert row.pyq_context == "SSC CGL style question"
        assert row.importance is None


class TestTimestamps:
    def test_new_rows_carry_utc_timezone(self):
        material = Material(title="Mauryas", raw_text="text")
        note = SmartNote(material_id=1, topic="Ashoka")
        assert material.created_at.tzinfo is not None
        assert note.created_at.utcoffset().total_seconds() == 0
        assert note.updated_at is None

    def test_rows_with_aware_timestamps_persist(self, session):
        material = create_material(session, "Mauryas", "text")
        row = insert_note(session, material.id, {"topic": "Ashoka"})
        assert row.id is not None
        assert row.created_at is not None


class TestNonFiniteImportance:
    @pytest.mark.parametrize("value", [float("inf"), "Infinity", "NaN"])
    def test_note_gets_default_importance(self, session, value):
        material = create_material(session, "Mauryas", "text")
        row = insert_note(session, material.id, {"topic": "Ashoka", "importance": value})
        assert row.importance == 3

    def test_mcq_importance_left_empty(self, session):
        material = create_material(session, "Mauryas", "text")
        row = insert_mcq(session, material.id, {"question": "Q?", "options": ["a", "b", "c", "d"],
                                                "answer": "a", "importance": float("inf")}, "Easy", "SSC")
        assert row.importance is None


class TestUpdateNote:
    def test_fields_replaced_and_timestamp_set(self, session):
        material = create_material(session, "Mauryas", "text")
        row = insert_note(session, material.id, {"topic": "Ashoka", "subtopic": "Dhamma", "content": "old"})

        updated = update_note(session, row.id, {"content": "Edicts in Prakrit", "subtopic": None})

        assert updated.content == "Edicts in Prakrit"
        assert updated.subtopic is None
        assert updated.topic == "Ashoka"
        assert updated.updated_at is not None

    def test_unknown_note(self, session):
        assert update_note(session, 404, {"topic": "x"}) is None

    def test_only_text_fields_editable(self, session):
        material = create_material(session, "Mauryas", "text")
        row = insert_note(session, material.id, {"topic": "Ashoka"})
        with pytest.raises(ValueError):
            update_note(session, row.id, {"importance": 5})
