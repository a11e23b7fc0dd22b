"""Shared test fixtures for ScrapeFlow backend tests."""
import sys
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

# Ensure the scrapeflow package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from scrapeflow.engine.graph import Edge, Graph, NodeInstance, dump_definition
from scrapeflow.repository import WorkflowRepository
from scrapeflow.tasks.base import TaskType

TITLE_HTML = "<html><body><h1 class='title'>Hello ScrapeFlow</h1><p>body</p></body></html>"


def node(node_id: str, task_type: TaskType, **inputs: str) -> NodeInstance:
    return NodeInstance(id=node_id, task_type=task_type, inputs=dict(inputs))


def edge(source: str, output: str, target: str, input_name: str) -> Edge:
    return Edge(
        id=f"{source}-{target}-{input_name}", source=source, source_handle=output,
        target=target, target_handle=input_name,
    )


@pytest.fixture
def engine():
    """In-memory SQLite kept alive on a single shared connection."""
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def repo(engine):
    r = WorkflowRepository(engine)
    r.create_schema()
    return r


@pytest.fixture
def scrape_graph():
    """Launch(url) -> PageToHtml -> ExtractText(selector=.title)."""
    return Graph(
        nodes=[
            node("launch", TaskType.LAUNCH_BROWSER, **{"Website Url": "https://example.com"}),
            node("html", TaskType.PAGE_TO_HTML),
            node("extract", TaskType.EXTRACT_TEXT_FROM_ELEMENT, Selector=".title"),
        ],
        edges=[
            edge("launch", "Web page", "html", "Web page"),
            edge("html", "HTML", "extract", "Html"),
        ],
    )


@pytest.fixture
def scrape_definition(scrape_graph):
    return dump_definition(scrape_graph)
