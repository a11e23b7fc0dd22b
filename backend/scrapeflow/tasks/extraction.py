"""Data extraction tasks: CSS-selector text extraction and LLM-based extraction."""
from typing import TYPE_CHECKING

import lxml.html
from lxml.etree import ParserError
from openai import AsyncOpenAI

from ..config import settings
from .base import TaskType
from .registry import ExecutorRegistry

if TYPE_CHECKING:
    from ..engine.environment import ExecutionEnvironment

EXTRACTION_SYSTEM_PROMPT = (
    "You are a web scraper helper that extracts data from HTML or text. You will be "
    "given a piece of text or HTML content as input and also the prompt with the data "
    "you have to extract. The response should always be only the extracted data as a "
    "JSON array or object, without any additional words or explanations. Analyze the "
    "input carefully and extract data precisely based on the prompt. If no data is "
    "found, return an empty JSON array. Work only with the provided content and ensure "
    "the output is always a valid JSON array without any surrounding text."
)


@ExecutorRegistry.register(TaskType.EXTRACT_TEXT_FROM_ELEMENT)
async def extract_text_from_element(env: "ExecutionEnvironment") -> bool:
    selector = env.get_input("Selector")
    if not selector:
        env.log.error("Selector not defined")
        return False
    html = env.get_input("Html")
    if not html:
        env.log.error("Html not defined")
        return False

    try:
        document = lxml.html.fromstring(html)
    except ParserError as exc:
        env.log.error(f"Cannot parse html: {exc}")
        return False

    elements = document.cssselect(selector)
    if not elements:
        env.log.error("Element not found")
        return False

    text = "".join(el.text_content() for el in elements)
    if not text:
        env.log.error("Element has no text")
        return False

    env.set_output("Extracted text", text)
    return True


@ExecutorRegistry.register(TaskType.EXTRACT_DATA_WITH_AI)
async def extract_data_with_ai(env: "ExecutionEnvironment") -> bool:
    credential_id = env.get_input("Credentials")
    if not credential_id:
        env.log.error("input-> credentials not defined")
    prompt = env.get_input("Prompt")
    if not prompt:
        env.log.error("input-> prompt not defined")
    content = env.get_input("Content")
    if not content:
        env.log.error("input-> content not defined")

    api_key = env.get_credential(credential_id) if credential_id else None
    if not api_key:
        env.log.error("credential not found")
        return False

    client = AsyncOpenAI(api_key=api_key, base_url=settings.openai_base_url)
    response = await client.chat.completions.create(
        model=settings.openai_model,
        messages=[
            {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
            {"role": "user", "content": content},
            {"role": "user", "content": prompt},
        ],
        temperature=1,
    )

    if response.usage is not None:
        env.log.info(f"Prompt tokens: {response.usage.prompt_tokens}")
        env.log.info(f"Completion tokens: {response.usage.completion_tokens}")

    result = response.choices[0].message.content if response.choices else None
    if not result:
        env.log.error("no response from AI")
        return False

    env.set_output("Extracted data", result)
    return True
