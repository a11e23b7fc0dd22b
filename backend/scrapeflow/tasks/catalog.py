"""Static task catalog: one definition per TaskType."""
from .base import TaskDefinition, TaskOutput, TaskParam, TaskParamType, TaskType

S = TaskParamType.STRING
BROWSER = TaskParamType.BROWSER_INSTANCE

_WEB_PAGE_OUT = TaskOutput("Web page", BROWSER)


TASK_CATALOG: dict[TaskType, TaskDefinition] = {
    TaskType.LAUNCH_BROWSER: TaskDefinition(
        type=TaskType.LAUNCH_BROWSER,
        label="Launch browser",
        description="Start a headless browser and open a website.",
        is_entry_point=True,
        credits=5,
        inputs=(
            TaskParam("Website Url", S, required=True, hide_handle=True,
                      helper_text="eg: https://github.com/"),
        ),
        outputs=(_WEB_PAGE_OUT,),
    ),
    TaskType.PAGE_TO_HTML: TaskDefinition(
        type=TaskType.PAGE_TO_HTML,
        label="Get html from page",
        credits=2,
        inputs=(TaskParam("Web page", BROWSER, required=True),),
        outputs=(TaskOutput("HTML", S), _WEB_PAGE_OUT),
    ),
    TaskType.EXTRACT_TEXT_FROM_ELEMENT: TaskDefinition(
        type=TaskType.EXTRACT_TEXT_FROM_ELEMENT,
        label="Extract text from element",
        credits=2,
        inputs=(
            TaskParam("Html", S, required=True, variant="textarea"),
            TaskParam("Selector", S, required=True),
        ),
        outputs=(TaskOutput("Extracted text", S),),
    ),
    TaskType.FILL_INPUT: TaskDefinition(
        type=TaskType.FILL_INPUT,
        label="Fill input elements",
        credits=1,
        inputs=(
            TaskParam("Web page", BROWSER, required=True),
            TaskParam("Selector", S, required=True),
            TaskParam("Value", S, required=True),
        ),
        outputs=(_WEB_PAGE_OUT,),
    ),
    TaskType.CLICK_ELEMENT: TaskDefinition(
        type=TaskType.CLICK_ELEMENT,
        label="Click element",
        credits=1,
        inputs=(
            TaskParam("webpage", BROWSER, required=True),
            TaskParam("Selector", S, required=True),
        ),
        outputs=(_WEB_PAGE_OUT,),
    ),
    TaskType.WAIT_FOR_ELEMENT: TaskDefinition(
        type=TaskType.WAIT_FOR_ELEMENT,
        label="Wait for element",
        credits=1,
        inputs=(
            TaskParam("webpage", BROWSER, required=True),
            TaskParam("Selector", S, required=True),
            TaskParam("Visibility", TaskParamType.SELECT, required=True, hide_handle=True,
                      options=(("Visible", "visible"), ("Hidden", "hidden"))),
        ),
        outputs=(_WEB_PAGE_OUT,),
    ),
    TaskType.DELIVER_VIA_WEBHOOK: TaskDefinition(
        type=TaskType.DELIVER_VIA_WEBHOOK,
        label="Deliver via Webhook",
        credits=1,
        inputs=(
            TaskParam("Target URL", S, required=True),
            TaskParam("Body", S, required=True),
        ),
    ),
    TaskType.EXTRACT_DATA_WITH_AI: TaskDefinition(
        type=TaskType.EXTRACT_DATA_WITH_AI,
        label="Extract data with AI",
        credits=4,
        inputs=(
            TaskParam("Content", S, required=True),
            TaskParam("Credentials", TaskParamType.CREDENTIAL, required=True),
            TaskParam("Prompt", S, required=True, variant="textarea"),
        ),
        outputs=(TaskOutput("Extracted data", S),),
    ),
    TaskType.READ_PROPERTY_FROM_JSON: TaskDefinition(
        type=TaskType.READ_PROPERTY_FROM_JSON,
        label="Read property from JSON object",
        credits=1,
        inputs=(
            TaskParam("JSON", S, required=True),
            TaskParam("Property name", S, required=True),
        ),
        outputs=(TaskOutput("Property value", S),),
    ),
    TaskType.ADD_PROPERTY_TO_JSON: TaskDefinition(
        type=TaskType.ADD_PROPERTY_TO_JSON,
        label="Add property to JSON",
        credits=1,
        inputs=(
            TaskParam("JSON", S, required=True),
            TaskParam("Property name", S, required=True),
            TaskParam("Property value", S, required=True),
        ),
        outputs=(TaskOutput("Updated JSON", S),),
    ),
    TaskType.NAVIGATE_URL: TaskDefinition(
        type=TaskType.NAVIGATE_URL,
        label="Navigate Url",
        credits=2,
        inputs=(
            TaskParam("webpage", BROWSER, required=True),
            TaskParam("URL", S, required=True),
        ),
        outputs=(_WEB_PAGE_OUT,),
    ),
    TaskType.SCROLL_TO_ELEMENT: TaskDefinition(
        type=TaskType.SCROLL_TO_ELEMENT,
        label="Scroll to element",
        credits=1,
        inputs=(
            TaskParam("webpage", BROWSER, required=True),
            TaskParam("Selector", S, required=True),
        ),
        outputs=(_WEB_PAGE_OUT,),
    ),
}

_missing = set(TaskType) - set(TASK_CATALOG)
if _missing:
    raise RuntimeError(f"Task catalog is missing definitions for: {sorted(t.value for t in _missing)}")


def get_task_definition(task_type: TaskType | str) -> TaskDefinition:
    """Catalog lookup. Unknown types are a programming error and raise KeyError."""
    try:
        return TASK_CATALOG[TaskType(task_type)]
    except ValueError:
        raise KeyError(f"Unknown task type: {task_type}") from None


def all_definitions() -> list[TaskDefinition]:
    return list(TASK_CATALOG.values())


def calculate_workflow_cost(task_types) -> int:
    """Total credits for running one node of each given task type."""
    return sum(get_task_definition(t).credits for t in task_types)
