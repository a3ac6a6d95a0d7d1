import json

import pytest

from config.ingest_config import IngestConfig
from indexer.corpus_store import CorpusStore, PendingQueueStore
from pipelines.errors import StoreWriteError
from pipelines.ingest import build_scopes, configured_seeds, run_ingestion, select_start_urls
from sources.loader import SourceConfig

from conftest import FILLER, FakePageLoader, doc_page

BASE = "https://docs.example.com"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DOCGROUND_CONFIG", "DOCGROUND_MAX_PAGES", "DOCGROUND_CORPUS_PATH", "DOCGROUND_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config(tmp_path):
    return IngestConfig(
        config_path=str(tmp_path / "missing.yaml"),
        overrides={
            "storage": {
                "corpus_path": str(tmp_path / "data" / "documents.json"),
                "queue_path": str(tmp_path / "data" / "pending_queue.json"),
            },
            "crawl": {"max_pages": 10, "concurrency": 2},
            "chunking": {"max_chunk_size": 1000},
        },
    )


@pytest.fixture
def sources():
    return [SourceConfig(name="docs", base_urls=[BASE])]


@pytest.fixture
def site():
    return {
        BASE: doc_page("Home", links=["/forms", "/data"], body=FILLER),
        f"{BASE}/forms": doc_page("Forms", sections={"Creating a Form": FILLER, "Sharing": FILLER}),
        f"{BASE}/data": doc_page("Data", body=FILLER, links=["/data/sources"]),
        f"{BASE}/data/sources": doc_page("Sources", body=FILLER),
    }


class TestRunIngestion:

    @pytest.mark.asyncio
    async def test_first_run_builds_corpus(self, config, sources, site):
        report = await run_ingestion(config, sources, loader=FakePageLoader(site))

        chunks = CorpusStore(config.corpus_path).load()
        assert report.stats.successful == 4
        assert report.new_chunks == len(chunks) == report.total_chunks
        assert not report.resumed
        assert report.pending == 0
        assert {c.url for c in chunks} == set(site)
        assert {c.section for c in chunks if c.url == f"{BASE}/forms"} == {"Creating a Form", "Sharing"}
        assert json.loads(config.queue_path.read_text(encoding="utf-8")) == []

    @pytest.mark.asyncio
    async def test_budget_leftovers_resume_next_run(self, config, sources, site):
        first = FakePageLoader(site)
        report = await run_ingestion(config, sources, loader=first, max_pages=1)
        assert first.requested == [BASE]
        assert report.pending == 2
        assert PendingQueueStore(config.queue_path).load() == [f"{BASE}/forms", f"{BASE}/data"]

        second = FakePageLoader(site)
        report = await run_ingestion(config, sources, loader=second)
        assert report.resumed
        assert BASE not in second.requested
        assert sorted(second.requested) == [f"{BASE}/data", f"{BASE}/data/sources", f"{BASE}/forms"]
        assert report.pending == 0

        urls = [c.url for c in CorpusStore(config.corpus_path).load()]
        assert urls[0] == BASE
        assert set(urls) == set(site)

    @pytest.mark.asyncio
    async def test_crawled_pages_are_not_refetched(self, config, sources, site):
        await run_ingestion(config, sources, loader=FakePageLoader(site))
        before = CorpusStore(config.corpus_path).load()

        again = FakePageLoader(site)
        report = await run_ingestion(config, sources, loader=again)

        assert again.requested == []
        assert report.new_chunks == 0
        assert CorpusStore(config.corpus_path).load() == before

    @pytest.mark.asyncio
    async def test_failed_pages_are_reported_not_fatal(self, config, sources, site):
        del site[f"{BASE}/data"]
        report = await run_ingestion(config, sources, loader=FakePageLoader(site))
        assert [e.url for e in report.errors] == [f"{BASE}/data"]
        assert report.stats.successful == 2

    @pytest.mark.asyncio
    async def test_unwritable_corpus_is_fatal(self, tmp_path, sources, site):
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory", encoding="utf-8")
        config = IngestConfig(
            config_path=str(tmp_path / "missing.yaml"),
            overrides={"storage": {
                "corpus_path": str(blocker / "documents.json"),
                "queue_path": str(tmp_path / "queue.json"),
            }},
        )
        with pytest.raises(StoreWriteError):
            await run_ingestion(config, sources, loader=FakePageLoader(site))

    @pytest.mark.asyncio
    async def test_sources_required(self, config):
        with pytest.raises(ValueError):
            await run_ingestion(config, [], loader=FakePageLoader({}))


class TestSeeding:

    def test_persisted_queue_wins_over_seeds(self):
        assert select_start_urls(["https://x/a"], ["https://x"]) == ["https://x/a"]
        assert select_start_urls([], ["https://x"]) == ["https://x"]

    def test_seeds_and_scopes_from_sources(self):
        sources = [
            SourceConfig(name="a", base_urls=["https://a.example.com"], seeds=["https://a.example.com/start"],
                         include=["/docs/**"]),
            SourceConfig(name="b", base_urls=["https://b.example.com"]),
        ]
        assert configured_seeds(sources) == ["https://a.example.com/start", "https://b.example.com"]
        scopes = build_scopes(sources)
        assert [s.base_url for s in scopes] == ["https://a.example.com", "https://b.example.com"]
        assert scopes[0].include == ["/docs/**"]
