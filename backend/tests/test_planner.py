"""Tests for the plan compiler: entry points, phase ordering, input validation."""
import pytest

from conftest import edge, node
from scrapeflow.engine.graph import Graph
from scrapeflow.engine.planner import (
    ExecutionPlan, PlanErrorKind, PlanValidationError, compile_plan, get_invalid_inputs,
)
from scrapeflow.tasks.base import TaskDefinition, TaskParam, TaskParamType, TaskType
from scrapeflow.tasks.catalog import TASK_CATALOG

LAUNCH = {"Website Url": "https://example.com"}


def _errors(graph: Graph) -> dict[str, list[str]]:
    with pytest.raises(PlanValidationError) as exc_info:
        compile_plan(graph)
    assert exc_info.value.kind == PlanErrorKind.INVALID_INPUTS
    return {m.node_id: m.inputs for m in exc_info.value.invalid_elements}


class TestEntryPoint:
    def test_no_entry_point(self):
        graph = Graph(nodes=[
            node("html", TaskType.PAGE_TO_HTML),
            node("extract", TaskType.EXTRACT_TEXT_FROM_ELEMENT, Selector="h1"),
        ])
        with pytest.raises(PlanValidationError) as exc_info:
            compile_plan(graph)
        assert exc_info.value.kind == PlanErrorKind.NO_ENTRY_POINT

    def test_empty_graph_has_no_entry_point(self):
        with pytest.raises(PlanValidationError) as exc_info:
            compile_plan(Graph())
        assert exc_info.value.kind == PlanErrorKind.NO_ENTRY_POINT

    def test_multiple_entry_points_rejected(self):
        graph = Graph(nodes=[
            node("a", TaskType.LAUNCH_BROWSER, **LAUNCH),
            node("b", TaskType.LAUNCH_BROWSER, **LAUNCH),
        ])
        with pytest.raises(PlanValidationError) as exc_info:
            compile_plan(graph)
        assert exc_info.value.kind == PlanErrorKind.MULTIPLE_ENTRY_POINTS
        assert [m.node_id for m in exc_info.value.invalid_elements] == ["a", "b"]

    def test_entry_point_alone(self):
        plan = compile_plan(Graph(nodes=[node("a", TaskType.LAUNCH_BROWSER, **LAUNCH)]))
        assert len(plan.phases) == 1
        assert [n.id for n in plan.phases[0].nodes] == ["a"]

    def test_entry_point_without_url_is_invalid(self):
        graph = Graph(nodes=[node("a", TaskType.LAUNCH_BROWSER)])
        assert _errors(graph) == {"a": ["Website Url"]}


class TestPhases:
    def test_linear_chain(self, scrape_graph):
        plan = compile_plan(scrape_graph)
        assert [p.number for p in plan.phases] == [1, 2, 3]
        assert [[n.id for n in p.nodes] for p in plan.phases] == [["launch"], ["html"], ["extract"]]

    def test_entry_point_first_even_when_listed_last(self, scrape_graph):
        scrape_graph.nodes.reverse()
        plan = compile_plan(scrape_graph)
        assert plan.phases[0].nodes[0].id == "launch"

    def test_siblings_share_a_phase(self, scrape_graph):
        scrape_graph.nodes.append(node("extract2", TaskType.EXTRACT_TEXT_FROM_ELEMENT, Selector="p"))
        scrape_graph.edges.append(edge("html", "HTML", "extract2", "Html"))
        plan = compile_plan(scrape_graph)
        assert {n.id for n in plan.phases[2].nodes} == {"extract", "extract2"}

    def test_every_edge_goes_forward(self, scrape_graph):
        scrape_graph.nodes.extend([
            node("read", TaskType.READ_PROPERTY_FROM_JSON, **{"Property name": "x"}),
            node("hook", TaskType.DELIVER_VIA_WEBHOOK, **{"Target URL": "https://hook"}),
        ])
        scrape_graph.edges.extend([
            edge("extract", "Extracted text", "read", "JSON"),
            edge("read", "Property value", "hook", "Body"),
        ])
        plan = compile_plan(scrape_graph)
        for e in scrape_graph.edges:
            assert plan.phase_of(e.source) < plan.phase_of(e.target)

    def test_every_node_planned_once(self, scrape_graph):
        plan = compile_plan(scrape_graph)
        ids = [n.id for _, n in plan.iter_nodes()]
        assert sorted(ids) == sorted(n.id for n in scrape_graph.nodes)

    def test_static_value_needs_no_upstream(self):
        graph = Graph(nodes=[
            node("a", TaskType.LAUNCH_BROWSER, **LAUNCH),
            node("hook", TaskType.DELIVER_VIA_WEBHOOK, **{"Target URL": "https://hook", "Body": "{}"}),
        ])
        plan = compile_plan(graph)
        assert plan.phase_of("hook") == 2

    def test_plan_round_trips_through_storage_format(self, scrape_graph):
        plan = compile_plan(scrape_graph)
        restored = ExecutionPlan.from_list(plan.to_list())
        assert [(num, n.id, n.task_type) for num, n in restored.iter_nodes()] == \
            [(num, n.id, n.task_type) for num, n in plan.iter_nodes()]


class TestInvalidInputs:
    def test_blank_selector_reported(self, scrape_graph):
        scrape_graph.nodes[2].inputs["Selector"] = ""
        assert _errors(scrape_graph) == {"extract": ["Selector"]}

    def test_dangling_edge_reported(self):
        graph = Graph(
            nodes=[
                node("a", TaskType.LAUNCH_BROWSER, **LAUNCH),
                node("extract", TaskType.EXTRACT_TEXT_FROM_ELEMENT, Selector="h1"),
            ],
            edges=[edge("ghost", "HTML", "extract", "Html")],
        )
        assert _errors(graph) == {"extract": ["Html"]}

    def test_all_problems_reported_together(self, scrape_graph):
        scrape_graph.nodes[2].inputs["Selector"] = ""
        scrape_graph.nodes.append(node("hook", TaskType.DELIVER_VIA_WEBHOOK, Body="{}"))
        errors = _errors(scrape_graph)
        assert errors == {"extract": ["Selector"], "hook": ["Target URL"]}

    def test_downstream_of_invalid_node_reported(self, scrape_graph):
        scrape_graph.nodes[2].inputs["Selector"] = ""
        scrape_graph.nodes.append(
            node("read", TaskType.READ_PROPERTY_FROM_JSON, **{"Property name": "x"})
        )
        scrape_graph.edges.append(edge("extract", "Extracted text", "read", "JSON"))
        errors = _errors(scrape_graph)
        assert errors["extract"] == ["Selector"]
        assert errors["read"] == ["JSON"]

    def test_cycle_reported_as_invalid_inputs(self):
        graph = Graph(
            nodes=[
                node("a", TaskType.LAUNCH_BROWSER, **LAUNCH),
                node("r1", TaskType.READ_PROPERTY_FROM_JSON, **{"Property name": "x"}),
                node("r2", TaskType.READ_PROPERTY_FROM_JSON, **{"Property name": "y"}),
            ],
            edges=[
                edge("r1", "Property value", "r2", "JSON"),
                edge("r2", "Property value", "r1", "JSON"),
            ],
        )
        assert _errors(graph) == {"r1": ["JSON"], "r2": ["JSON"]}

    def test_last_edge_into_an_input_wins(self):
        graph = Graph(
            nodes=[
                node("a", TaskType.LAUNCH_BROWSER, **LAUNCH),
                node("html", TaskType.PAGE_TO_HTML),
                node("extract", TaskType.EXTRACT_TEXT_FROM_ELEMENT, Selector="h1"),
            ],
            edges=[
                edge("a", "Web page", "html", "Web page"),
                edge("html", "HTML", "extract", "Html"),
                edge("ghost", "HTML", "extract", "Html"),
            ],
        )
        assert _errors(graph) == {"extract": ["Html"]}


class TestOptionalInputs:
    @pytest.fixture
    def optional_body(self, monkeypatch):
        monkeypatch.setitem(TASK_CATALOG, TaskType.DELIVER_VIA_WEBHOOK, TaskDefinition(
            type=TaskType.DELIVER_VIA_WEBHOOK,
            label="Deliver via Webhook",
            credits=1,
            inputs=(
                TaskParam("Target URL", TaskParamType.STRING, required=True),
                TaskParam("Body", TaskParamType.STRING),
            ),
        ))

    def test_unconnected_optional_input_resolved(self, optional_body):
        hook = node("hook", TaskType.DELIVER_VIA_WEBHOOK, **{"Target URL": "https://hook"})
        assert get_invalid_inputs(hook, Graph(nodes=[hook]), set()) == []

    def test_optional_input_waits_for_its_edge(self, optional_body):
        hook = node("hook", TaskType.DELIVER_VIA_WEBHOOK, **{"Target URL": "https://hook"})
        graph = Graph(nodes=[hook], edges=[edge("up", "Extracted text", "hook", "Body")])
        assert get_invalid_inputs(hook, graph, set()) == ["Body"]
        assert get_invalid_inputs(hook, graph, {"up"}) == []
