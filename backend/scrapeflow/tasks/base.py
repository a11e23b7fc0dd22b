"""Task type and parameter definitions shared by the catalog and executors."""
from dataclasses import dataclass, field
from enum import Enum


class TaskType(str, Enum):
    LAUNCH_BROWSER = "LAUNCH_BROWSER"
    PAGE_TO_HTML = "PAGE_TO_HTML"
    EXTRACT_TEXT_FROM_ELEMENT = "EXTRACT_TEXT_FROM_ELEMENT"
    FILL_INPUT = "FILL_INPUT"
    CLICK_ELEMENT = "CLICK_ELEMENT"
    WAIT_FOR_ELEMENT = "WAIT_FOR_ELEMENT"
    DELIVER_VIA_WEBHOOK = "DELIVER_VIA_WEBHOOK"
    EXTRACT_DATA_WITH_AI = "EXTRACT_DATA_WITH_AI"
    READ_PROPERTY_FROM_JSON = "READ_PROPERTY_FROM_JSON"
    ADD_PROPERTY_TO_JSON = "ADD_PROPERTY_TO_JSON"
    NAVIGATE_URL = "NAVIGATE_URL"
    SCROLL_TO_ELEMENT = "SCROLL_TO_ELEMENT"


class TaskParamType(str, Enum):
    STRING = "STRING"
    BROWSER_INSTANCE = "BROWSER_INSTANCE"
    SELECT = "SELECT"
    CREDENTIAL = "CREDENTIAL"


@dataclass(frozen=True)
class TaskParam:
    name: str
    type: TaskParamType
    required: bool = False
    hide_handle: bool = False  # True = value only settable in the editor
    helper_text: str = ""
    variant: str | None = None
    options: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class TaskOutput:
    name: str
    type: TaskParamType


@dataclass(frozen=True)
class TaskDefinition:
    """Static catalog entry describing one task type."""
    type: TaskType
    label: str
    inputs: tuple[TaskParam, ...] = ()
    outputs: tuple[TaskOutput, ...] = ()
    credits: int = 0
    is_entry_point: bool = False
    description: str = field(default="", compare=False)

    def get_input(self, name: str) -> TaskParam | None:
        for param in self.inputs:
            if param.name == name:
                return param
        return None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "label": self.label,
            "description": self.description,
            "credits": self.credits,
            "is_entry_point": self.is_entry_point,
            "inputs": [
                {
                    "name": p.name,
                    "type": p.type.value,
                    "required": p.required,
                    "hide_handle": p.hide_handle,
                    "helper_text": p.helper_text,
                    "variant": p.variant,
                    "options": [{"label": l, "value": v} for l, v in p.options],
                }
                for p in self.inputs
            ],
            "outputs": [{"name": o.name, "type": o.type.value} for o in self.outputs],
        }
