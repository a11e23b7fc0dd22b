"""Auto-discover all executor modules on import."""
from .registry import ExecutorRegistry

ExecutorRegistry.discover("scrapeflow.tasks")
ExecutorRegistry.ensure_complete()
