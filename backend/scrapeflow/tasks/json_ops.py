"""JSON property read/write tasks."""
import json
from typing import TYPE_CHECKING

from .base import TaskType
from .registry import ExecutorRegistry

if TYPE_CHECKING:
    from ..engine.environment import ExecutionEnvironment


@ExecutorRegistry.register(TaskType.READ_PROPERTY_FROM_JSON)
async def read_property_from_json(env: "ExecutionEnvironment") -> bool:
    json_data = env.get_input("JSON")
    if not json_data:
        env.log.error("input-> JSON not defined")
    property_name = env.get_input("Property name")
    if not property_name:
        env.log.error("input-> Property name not defined")

    try:
        data = json.loads(json_data)
    except json.JSONDecodeError as exc:
        env.log.error(f"Invalid JSON: {exc}")
        return False
    if not isinstance(data, dict) or property_name not in data:
        env.log.error(f"Property {property_name} not found in JSON")
        return False

    value = data[property_name]
    env.set_output("Property value", value if isinstance(value, str) else json.dumps(value))
    return True


@ExecutorRegistry.register(TaskType.ADD_PROPERTY_TO_JSON)
async def add_property_to_json(env: "ExecutionEnvironment") -> bool:
    json_data = env.get_input("JSON")
    if not json_data:
        env.log.error("input-> JSON not defined")
    property_name = env.get_input("Property name")
    if not property_name:
        env.log.error("input-> Property name not defined")
    property_value = env.get_input("Property value")
    if not property_value:
        env.log.error("input-> Property value not defined")

    try:
        data = json.loads(json_data)
    except json.JSONDecodeError as exc:
        env.log.error(f"Invalid JSON: {exc}")
        return False
    if not isinstance(data, dict):
        env.log.error("JSON input is not an object")
        return False

    data[property_name] = property_value
    env.set_output("Updated JSON", json.dumps(data))
    return True
