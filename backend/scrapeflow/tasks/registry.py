"""Executor registry with auto-discovery."""
import importlib
import pkgutil
from typing import TYPE_CHECKING, Awaitable, Callable

from .base import TaskType

if TYPE_CHECKING:
    from ..engine.environment import ExecutionEnvironment

ExecutorFn = Callable[["ExecutionEnvironment"], Awaitable[bool]]


class ExecutorRegistry:
    """Singleton registry mapping TaskType members to async executor functions."""

    _executors: dict[TaskType, ExecutorFn] = {}

    @classmethod
    def register(cls, task_type: TaskType):
        """Decorator to register an executor.

        Usage:
            @ExecutorRegistry.register(TaskType.PAGE_TO_HTML)
            async def page_to_html(env: ExecutionEnvironment) -> bool:
                ...
        """
        def decorator(fn: ExecutorFn) -> ExecutorFn:
            cls._executors[TaskType(task_type)] = fn
            return fn
        return decorator

    @classmethod
    def get(cls, task_type: TaskType | str) -> ExecutorFn:
        try:
            return cls._executors[TaskType(task_type)]
        except (KeyError, ValueError):
            raise KeyError(f"No executor registered for task type: {task_type}") from None

    @classmethod
    def all(cls) -> dict[TaskType, ExecutorFn]:
        return dict(cls._executors)

    @classmethod
    def missing(cls) -> set[TaskType]:
        return set(TaskType) - set(cls._executors)

    @classmethod
    def ensure_complete(cls) -> None:
        """Every TaskType must have an executor once discovery has run."""
        missing = cls.missing()
        if missing:
            names = sorted(t.value for t in missing)
            raise RuntimeError(f"No executor registered for task types: {names}")

    @classmethod
    def discover(cls, package_name: str) -> None:
        """Import all modules in the given package to trigger @register decorators."""
        package = importlib.import_module(package_name)
        if not hasattr(package, "__path__"):
            return
        for _, module_name, _ in pkgutil.iter_modules(package.__path__):
            if module_name.startswith("_") or module_name in ("base", "registry", "catalog"):
                continue
            importlib.import_module(f"{package_name}.{module_name}")

    @classmethod
    def clear(cls) -> None:
        cls._executors.clear()
