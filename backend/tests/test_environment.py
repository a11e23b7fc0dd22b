"""Tests for the per-execution environment and the executor-facing view."""
import pytest

from scrapeflow.engine.environment import (
    Environment, ExecutionEnvironment, LogCollector, LogLevel,
)


class FakeBrowser:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.close_calls = 0

    async def close(self):
        self.close_calls += 1
        if self.error:
            raise self.error


class TestLogCollector:
    def test_records_in_order_with_levels(self):
        log = LogCollector()
        log.info("starting")
        log.warning("slow page")
        log.error("boom")

        records = log.get_all()
        assert [(r.level, r.message) for r in records] == [
            (LogLevel.INFO, "starting"),
            (LogLevel.WARNING, "slow page"),
            (LogLevel.ERROR, "boom"),
        ]
        assert records[0].timestamp <= records[2].timestamp

    def test_get_all_returns_copy(self):
        log = LogCollector()
        log.info("a")
        log.get_all().clear()
        assert len(log.get_all()) == 1


class TestExecutionEnvironment:
    def test_missing_input_reads_as_empty(self):
        env = ExecutionEnvironment(Environment(), "n1", LogCollector())
        assert env.get_input("Selector") == ""

    def test_outputs_visible_to_other_nodes(self):
        environment = Environment()
        ExecutionEnvironment(environment, "a", LogCollector()).set_output("HTML", "<p/>")
        assert environment.node("a").outputs == {"HTML": "<p/>"}
        assert environment.node("b").outputs == {}

    def test_browser_and_page_are_shared(self):
        environment = Environment()
        first = ExecutionEnvironment(environment, "a", LogCollector())
        second = ExecutionEnvironment(environment, "b", LogCollector())
        first.set_browser("browser")
        first.set_page("page")
        assert second.get_browser() == "browser"
        assert second.get_page() == "page"

    def test_credentials_resolved_through_environment(self):
        environment = Environment(credentials={"c1": "sk-test"}.get)
        env = ExecutionEnvironment(environment, "a", LogCollector())
        assert env.get_credential("c1") == "sk-test"
        assert env.get_credential("other") is None

    def test_no_credential_resolver(self):
        env = ExecutionEnvironment(Environment(), "a", LogCollector())
        assert env.get_credential("c1") is None


class TestClose:
    @pytest.mark.asyncio
    async def test_closes_browser_and_clears_handles(self):
        browser = FakeBrowser()
        environment = Environment(browser=browser, page="page")
        await environment.close()
        assert browser.close_calls == 1
        assert environment.browser is None
        assert environment.page is None

    @pytest.mark.asyncio
    async def test_close_failure_is_swallowed(self):
        browser = FakeBrowser(error=RuntimeError("already closed"))
        environment = Environment(browser=browser, page="page")
        await environment.close()
        assert environment.browser is None

        await environment.close()
        assert browser.close_calls == 1

    @pytest.mark.asyncio
    async def test_close_without_browser(self):
        await Environment().close()
