import json
import threading
from unittest.mock import patch

import pytest

from indexer.corpus_store import CorpusStore, PendingQueueStore
from pipelines.chunker import Chunk
from pipelines.errors import StoreWriteError


@pytest.fixture
def chunks():
    return [
        Chunk(content="Create a form by opening the Form Builder", url="https://x/forms",
              title="Forms", section="Creating a Form"),
        Chunk(content="Überblick über Datenquellen", url="https://x/data", title="Data", section=None),
        Chunk(content="Second part of the forms page", url="https://x/forms",
              title="Forms", section="Creating a Form"),
    ]


class TestCorpusStore:

    def test_missing_file_is_empty_corpus(self, tmp_path):
        store = CorpusStore(tmp_path / "documents.json")
        assert store.load() == []
        assert not store.is_loaded

    def test_corrupt_file_is_empty_corpus(self, tmp_path):
        path = tmp_path / "documents.json"
        path.write_text("{not json", encoding="utf-8")
        assert CorpusStore(path).load() == []

    def test_wrong_shape_is_empty_corpus(self, tmp_path):
        path = tmp_path / "documents.json"
        path.write_text(json.dumps({"content": "x"}), encoding="utf-8")
        assert CorpusStore(path).load() == []

        path.write_text(json.dumps([{"metadata": {"url": "https://x"}}]), encoding="utf-8")
        assert CorpusStore(path).load() == []

    def test_save_then_load_round_trip(self, tmp_path, chunks):
        path = tmp_path / "data" / "documents.json"
        CorpusStore(path).save(chunks)

        reloaded = CorpusStore(path).load()
        assert reloaded == chunks

        CorpusStore(path).save(reloaded)
        assert CorpusStore(path).load() == chunks

    def test_file_format_is_utf8_json_records(self, tmp_path, chunks):
        path = tmp_path / "documents.json"
        CorpusStore(path).save(chunks[:2])
        raw = path.read_text(encoding="utf-8")
        assert "Überblick" in raw
        data = json.loads(raw)
        assert data[0] == {
            "content": "Create a form by opening the Form Builder",
            "metadata": {"url": "https://x/forms", "title": "Forms", "section": "Creating a Form"},
        }
        assert "section" not in data[1]["metadata"]

    def test_load_is_cached(self, tmp_path, chunks):
        path = tmp_path / "documents.json"
        CorpusStore(path).save(chunks)
        store = CorpusStore(path)
        first = store.load()
        path.write_text("[]", encoding="utf-8")
        assert store.load() == first
        store.invalidate()
        assert store.load() == []

    def test_concurrent_first_load_reads_once(self, tmp_path, chunks):
        path = tmp_path / "documents.json"
        CorpusStore(path).save(chunks)
        store = CorpusStore(path)

        with patch.object(CorpusStore, "_read", autospec=True, side_effect=lambda self: list(chunks)) as read:
            threads = [threading.Thread(target=store.load) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert read.call_count == 1
        assert store.load() == chunks

    def test_merge_appends_and_preserves_order(self, tmp_path, chunks):
        store = CorpusStore(tmp_path / "documents.json")
        existing = chunks[:2]
        new = [Chunk(content="New page", url="https://x/new", title="New")]
        assert store.merge(existing, new) == existing + new

    def test_merge_skips_cross_run_duplicates(self, tmp_path, chunks):
        store = CorpusStore(tmp_path / "documents.json")
        existing = [chunks[0]]
        new = [
            Chunk(content="Re-derived", url="https://x/forms", title="Forms", section="Creating a Form"),
            Chunk(content="Part 1", url="https://x/big", title="Big", section="Long"),
            Chunk(content="Part 2", url="https://x/big", title="Big", section="Long"),
        ]
        merged = store.merge(existing, new)
        assert merged == [chunks[0], new[1], new[2]]

    def test_save_failure_raises_store_write_error(self, tmp_path, chunks):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file", encoding="utf-8")
        store = CorpusStore(blocker / "documents.json")
        with pytest.raises(StoreWriteError):
            store.save(chunks)

    def test_failed_save_leaves_previous_file_intact(self, tmp_path, chunks):
        path = tmp_path / "documents.json"
        CorpusStore(path).save(chunks[:1])
        with patch("indexer.corpus_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StoreWriteError):
                CorpusStore(path).save(chunks)
        assert CorpusStore(path).load() == chunks[:1]
        assert [p.name for p in tmp_path.iterdir()] == ["documents.json"]

    def test_crawled_urls(self, tmp_path, chunks):
        store = CorpusStore(tmp_path / "documents.json")
        store.save(chunks)
        assert store.crawled_urls() == {"https://x/forms", "https://x/data"}


class TestPendingQueueStore:

    def test_round_trip(self, tmp_path):
        store = PendingQueueStore(tmp_path / "queue.json")
        store.save(["https://x/a", "https://x/b"])
        assert store.load() == ["https://x/a", "https://x/b"]

    def test_missing_or_corrupt_is_empty(self, tmp_path):
        path = tmp_path / "queue.json"
        assert PendingQueueStore(path).load() == []
        path.write_text("oops", encoding="utf-8")
        assert PendingQueueStore(path).load() == []
        path.write_text('{"a": 1}', encoding="utf-8")
        assert PendingQueueStore(path).load() == []

    def test_non_string_entries_dropped(self, tmp_path):
        path = tmp_path / "queue.json"
        path.write_text('["https://x/a", 3, null, ""]', encoding="utf-8")
        assert PendingQueueStore(path).load() == ["https://x/a"]
