"""
Tests for logging_setup and logging_decorators.

Log records are captured with a temporary loguru sink.
"""

import pytest
from loguru import logger

import logging_setup
from conversations import Message
from logging_decorators import log_call


@pytest.fixture
def records():
    captured = []
    sink_id = logger.add(lambda m: captured.append(m.record), level="TRACE", format="{message}")
    yield captured
    logger.remove(sink_id)


def _messages(records):
    return [r["message"] for r in records]


class TestLogCall:

    def test_sync_entry_and_exit(self, records):
        @log_call("adder")
        def add(a, b):
            return a + b

        assert add(1, 2) == 3
        msgs = _messages(records)
        assert any(m.startswith("→ adder args={'a': 1, 'b': 2}") for m in msgs)
        assert any(m.startswith("✓ adder done") for m in msgs)

    @pytest.mark.asyncio
    async def test_async_awaited_inside_wrapper(self, records):
        @log_call("fetch", level="INFO")
        async def fetch(x):
            return [x, x]

        assert await fetch(5) == [5, 5]
        done = [r for r in records if r["message"].startswith("✓ fetch done")]
        assert done and "'items': 2" in done[0]["message"]
        assert done[0]["level"].name == "INFO"

    @pytest.mark.asyncio
    async def test_async_failure_reraised(self, records):
        @log_call("boom")
        async def boom():
            raise RuntimeError("bad")

        with pytest.raises(RuntimeError):
            await boom()
        assert any(m.startswith("✗ boom failed") and "RuntimeError: bad" in m for m in _messages(records))

    def test_user_content_redacted(self, records):
        @log_call("send")
        def send(text, message):
            return None

        send("secret words", Message.user("private"))
        entry = next(m for m in _messages(records) if m.startswith("→ send"))
        assert "secret words" not in entry
        assert "private" not in entry
        assert "<Message user len=7>" in entry

    def test_long_args_truncated(self, records):
        @log_call("echo", arg_max_len=5)
        def echo(value):
            return value

        echo("abcdefghij")
        entry = next(m for m in _messages(records) if m.startswith("→ echo"))
        assert "abcde...(+5 chars)" in entry

    def test_not_wrapped_twice(self):
        @log_call("once")
        def f():
            return 1

        assert log_call("twice")(f) is f


class TestConfigureLogging:

    def test_file_sink(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        logging_setup.configure_logging("debug", console=False, log_file=log_file)
        logger.debug("hello file")
        cfg = logging_setup.current_config()
        assert cfg["sinks"] == 1
        assert log_file.read_text(encoding="utf-8").strip().endswith("hello file")
        logging_setup.configure_logging(console=False, log_file=False)
        assert logging_setup.current_config()["sinks"] == 0

    def test_directory_gets_app_log(self, tmp_path):
        assert logging_setup._coerce_log_file(tmp_path / "d").endswith("app.log")

    @pytest.mark.parametrize("raw,expected", [("warn", "WARNING"), ("bogus", "INFO"), ("trace", "TRACE")])
    def test_resolve_level(self, raw, expected):
        assert logging_setup._resolve_level(raw) == expected

    def test_env_level(self, monkeypatch):
        monkeypatch.setenv("CHATPANE_LOG_LEVEL", "error")
        assert logging_setup._resolve_level(None) == "ERROR"
