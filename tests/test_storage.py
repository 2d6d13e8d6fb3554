# tests/test_storage.py
import json
import os
import time

import pytest

from docsight.models import (
    Analysis,
    DocumentRecord,
    EntitiesField,
    SentimentField,
    SummaryField,
    TopicsField,
)
from docsight.storage.document_store import DocumentStore
from docsight.storage.mind_map_store import MindMapStore
from docsight.storage.question_queue import QuestionQueue


def make_record(doc_id, filename="report.txt", summary="A report", topics=None,
                status="processed", created_at=None, confidence=0.8):
    return DocumentRecord(
        id=doc_id,
        filename=filename,
        size=100,
        upload_date=created_at or "2024-01-01T00:00:00",
        status=status,
        created_at=created_at,
        analysis=Analysis(
            summary=SummaryField(text=summary, confidence=confidence),
            topics=TopicsField(items=topics or [], confidence=confidence),
            entities=EntitiesField(confidence=confidence),
            sentiment=SentimentField(confidence=confidence),
            overall_confidence=confidence,
        ),
        content="Full text of the report.",
    )


@pytest.fixture
def store(tmp_path):
    return DocumentStore(str(tmp_path))


class TestDocumentStore:

    def test_save_and_get_round_trip(self, store):
        record = store.save(make_record("doc_1", topics=["energy"]))

        assert store.get("doc_1") == record
        assert record.created_at is not None
        assert record.updated_at is not None

    def test_missing_document(self, store):
        assert store.get("doc_missing") is None

    def test_save_upserts_by_id(self, store):
        store.save(make_record("doc_1", summary="first"))
        store.save(make_record("doc_1", summary="second"))

        records = store.load_all()

        assert len(records) == 1
        assert records[0].analysis.summary.text == "second"

    def test_list_newest_first(self, store):
        store.save(make_record("doc_old", created_at="2024-01-01T00:00:00"))
        store.save(make_record("doc_new", created_at="2024-06-01T00:00:00"))

        assert [r.id for r in store.list_documents()] == ["doc_new", "doc_old"]

    def test_delete_removes_record_and_upload(self, store):
        store.save(make_record("doc_1"))
        path = store.save_uploaded_file("doc_1", "report.TXT", b"hello")

        assert path.endswith("doc_1.txt")
        assert os.path.exists(path)

        assert store.delete("doc_1") is True
        assert store.get("doc_1") is None
        assert store.list_documents() == []
        assert not os.path.exists(path)

    def test_delete_unknown_returns_false(self, store):
        assert store.delete("doc_unknown") is False

    def test_search_matches_filename_summary_and_topics(self, store):
        store.save(make_record("doc_1", filename="solar.txt", summary="About panels"))
        store.save(make_record("doc_2", filename="wind.txt", summary="Turbines", topics=["Renewables"]))
        store.save(make_record("doc_3", filename="tax.txt", summary="Tax rules"))

        assert [r.id for r in store.search("SOLAR")] == ["doc_1"]
        assert [r.id for r in store.search("turbines")] == ["doc_2"]
        assert [r.id for r in store.search("renew")] == ["doc_2"]
        assert store.search("nothing matches") == []
        assert len(store.search("")) == 3

    def test_corrupted_file_loads_as_empty(self, store):
        with open(store.path, "w", encoding="utf-8") as f:
            f.write("{not json")

        assert store.load_all() == []

    def test_non_list_file_loads_as_empty(self, store):
        with open(store.path, "w", encoding="utf-8") as f:
            f.write('{"id": "doc_1"}')

        assert store.load_all() == []

    def test_malformed_records_skipped(self, store):
        store.save(make_record("doc_1"))

        with open(store.path, "r", encoding="utf-8") as f:
            content = f.read()

        with open(store.path, "w", encoding="utf-8") as f:
            f.write(content.rstrip()[:-1] + ', {"filename": "no id"}]')

        assert [r.id for r in store.load_all()] == ["doc_1"]

    def test_stats(self, store):
        store.save(make_record("doc_1", topics=["energy", "cost"], confidence=0.9))
        store.save(make_record("doc_2", topics=["energy"], status="pending_validation", confidence=0.5))

        stats = store.stats()

        assert stats.total_documents == 2
        assert stats.processed == 1
        assert stats.pending_validation == 1
        assert stats.human_reviewed == 0
        assert stats.popular_topics[0].topic == "energy"
        assert stats.popular_topics[0].count == 2
        assert stats.average_confidence == pytest.approx(0.7)
        assert stats.storage["documents_file_bytes"] > 0

    def test_stats_empty_store(self, store):
        stats = store.stats()

        assert stats.total_documents == 0
        assert stats.average_confidence == 0.0
        assert stats.popular_topics == []


class TestMindMapStore:

    def test_save_get_and_list(self, tmp_path):
        store = MindMapStore(str(tmp_path))

        store.save({"id": "mindmap_a", "type": "document", "created_at": "2024-01-01",
                    "document_ids": ["doc_1"], "categories": []})
        store.save({"id": "mindmap_b", "type": "multi-document-categorization",
                    "created_at": "2024-02-01", "document_ids": ["doc_1", "doc_2"],
                    "categories": ["Innovation"]})

        assert store.get("mindmap_a")["type"] == "document"

        listing = store.list()

        assert [m["id"] for m in listing] == ["mindmap_b", "mindmap_a"]
        assert listing[0]["total_documents"] == 2
        assert listing[0]["categories"] == ["Innovation"]

    def test_missing_and_unsafe_ids(self, tmp_path):
        store = MindMapStore(str(tmp_path))

        assert store.get("mindmap_missing") is None
        assert store.get("../documents") is None

        with pytest.raises(ValueError):
            store.save({"id": "../escape"})


class TestQuestionQueue:

    def test_pending_sorted_by_priority_then_newest(self, tmp_path):
        queue = QuestionQueue(str(tmp_path))

        low = queue.add("doc_1", ["Low?"], "low")
        time.sleep(0.01)
        high_old = queue.add("doc_1", ["High old?"], "high")
        time.sleep(0.01)
        medium = queue.add("doc_2", ["Medium?"], "medium")
        time.sleep(0.01)
        high_new = queue.add("doc_2", ["High new?"], "high")

        assert [i.id for i in queue.pending()] == [high_new.id, high_old.id, medium.id, low.id]

    def test_answer_marks_item_answered(self, tmp_path):
        queue = QuestionQueue(str(tmp_path))

        item = queue.add("doc_1", ["Who wrote it?"])

        assert item.id.startswith("q_")
        assert item.priority == "medium"

        answered = queue.answer(item.id, {"Who wrote it?": "The board"})

        assert answered.status == "answered"
        assert answered.answered_at is not None
        assert queue.pending() == []

    def test_answer_unknown_returns_none(self, tmp_path):
        queue = QuestionQueue(str(tmp_path))

        assert queue.answer("q_missing", {}) is None

    def test_malformed_item_does_not_wipe_queue(self, tmp_path):
        queue = QuestionQueue(str(tmp_path))
        kept = queue.add("doc_1", ["Kept?"], "high")

        with open(queue.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        data.append({"id": "q_broken", "priority": "high"})
        data.append("not an item")

        with open(queue.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

        assert [i.id for i in queue.pending()] == [kept.id]

        added = queue.add("doc_2", ["New?"], "low")

        assert [i.id for i in queue.pending()] == [kept.id, added.id]
