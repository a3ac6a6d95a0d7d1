import json
import logging

from config.ingest_config import IngestConfig
from observability.logging import (
    QUIET_LOGGERS,
    ColoredFormatter,
    JSONFormatter,
    get_structured_logger,
    log_performance,
    setup_logging,
    setup_logging_from_config,
)
from observability.prometheus_metrics import (
    get_metrics_summary,
    record_chunks,
    record_corpus_size,
    record_page,
    render_metrics,
)


def make_record(**extra):
    record = logging.LogRecord("pipelines.crawler", logging.WARNING, __file__, 10, "Failed %s", ("x",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:

    def test_json_formatter_includes_context(self):
        line = JSONFormatter("docground").format(make_record(ctx_url="https://x/a", ctx_kind="timeout"))
        entry = json.loads(line)
        assert entry["message"] == "Failed x"
        assert entry["level"] == "WARNING"
        assert entry["service"] == "docground"
        assert entry["ctx_url"] == "https://x/a"
        assert entry["ctx_kind"] == "timeout"

    def test_structured_logger_prefixes_context(self, caplog):
        slog = get_structured_logger("tests.structured", component="crawler")
        with caplog.at_level(logging.WARNING, logger="tests.structured"):
            slog.warning("Failed to crawl", url="https://x/a")
        record = caplog.records[-1]
        assert record.ctx_component == "crawler"
        assert record.ctx_url == "https://x/a"

    def test_log_performance_warns_when_slow(self, caplog):
        @log_performance(logger_name="tests.perf", threshold_ms=-1)
        def work(value):
            return value * 2

        with caplog.at_level(logging.WARNING, logger="tests.perf"):
            assert work(21) == 42
        assert "Slow call:" in caplog.text
        assert "work took" in caplog.text

    def test_setup_logging_writes_json_file(self, tmp_path):
        log_file = tmp_path / "logs" / "docground.log"
        root = logging.getLogger()
        saved = list(root.handlers), root.level
        try:
            setup_logging(level="DEBUG", log_file=str(log_file))
            logging.getLogger("tests.file").info("hello file")
            for handler in root.handlers:
                handler.flush()
            entry = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
            assert entry["message"] == "hello file"
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])


    def test_console_format_shows_crawl_context(self):
        line = ColoredFormatter(use_colors=False).format(make_record(ctx_url="https://x/a", ctx_kind="timeout"))
        assert line.endswith("| Failed x | url=https://x/a kind=timeout")

    def test_config_driven_setup_quiets_access_logs(self, tmp_path):
        config = IngestConfig(config_path=str(tmp_path / "absent.yaml"),
                              overrides={"logging": {"level": "DEBUG", "json": True}})
        root = logging.getLogger()
        saved = list(root.handlers), root.level
        try:
            setup_logging_from_config(config)
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            for name in QUIET_LOGGERS:
                assert logging.getLogger(name).level == logging.WARNING
        finally:
            root.handlers[:] = saved[0]
            root.setLevel(saved[1])


class TestMetrics:

    def test_counters_move(self):
        before = get_metrics_summary().get("docground_pages_processed_total{outcome=rejected}", 0)
        record_page("rejected")
        after = get_metrics_summary()["docground_pages_processed_total{outcome=rejected}"]
        assert after == before + 1

    def test_corpus_gauge_and_exposition(self):
        record_corpus_size(42)
        record_chunks(3)
        assert get_metrics_summary()["docground_corpus_chunks"] == 42
        text = render_metrics().decode("utf-8")
        assert "docground_corpus_chunks 42.0" in text
        assert "docground_chunks_created_total" in text
