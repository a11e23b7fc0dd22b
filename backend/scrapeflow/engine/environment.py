"""Per-execution scratch space, the per-node view handed to executors, and log collection."""
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

CredentialResolver = Callable[[str], str | None]


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class LogRecord:
    message: str
    level: LogLevel
    timestamp: datetime


class LogCollector:
    """Collects leveled log lines for one phase; flushed when the phase finalizes."""

    def __init__(self):
        self._records: list[LogRecord] = []

    def _add(self, level: LogLevel, message: str) -> None:
        self._records.append(LogRecord(message=message, level=level, timestamp=datetime.now(UTC)))

    def info(self, message: str) -> None:
        self._add(LogLevel.INFO, message)

    def warning(self, message: str) -> None:
        self._add(LogLevel.WARNING, message)

    def error(self, message: str) -> None:
        self._add(LogLevel.ERROR, message)

    def get_all(self) -> list[LogRecord]:
        return list(self._records)


@dataclass
class NodeState:
    inputs: dict[str, str] = field(default_factory=dict)
    outputs: dict[str, str] = field(default_factory=dict)


@dataclass
class Environment:
    """Runtime-only state for a single execution. Never shared across executions."""
    phases: dict[str, NodeState] = field(default_factory=dict)
    browser: Any = None
    page: Any = None
    credentials: CredentialResolver | None = None

    def node(self, node_id: str) -> NodeState:
        if node_id not in self.phases:
            self.phases[node_id] = NodeState()
        return self.phases[node_id]

    async def close(self) -> None:
        """Release shared handles. Best-effort: failures are logged, never raised."""
        if self.browser is None:
            return
        try:
            await self.browser.close()
        except Exception:
            logger.exception("Failed to close browser")
        finally:
            self.browser = None
            self.page = None


class ExecutionEnvironment:
    """View of the shared Environment scoped to one node, passed to its executor."""

    def __init__(self, environment: Environment, node_id: str, log: LogCollector):
        self._environment = environment
        self._state = environment.node(node_id)
        self.node_id = node_id
        self.log = log

    def get_input(self, name: str) -> str:
        return self._state.inputs.get(name, "")

    def set_output(self, name: str, value: str) -> None:
        self._state.outputs[name] = value

    def get_browser(self) -> Any:
        return self._environment.browser

    def set_browser(self, browser: Any) -> None:
        self._environment.browser = browser

    def get_page(self) -> Any:
        return self._environment.page

    def set_page(self, page: Any) -> None:
        self._environment.page = page

    def get_credential(self, credential_id: str) -> str | None:
        """Decrypted value of one of the run owner's stored credentials."""
        if self._environment.credentials is None:
            return None
        return self._environment.credentials(credential_id)
