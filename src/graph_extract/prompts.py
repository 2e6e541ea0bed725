from __future__ import annotations

from .exceptions import InvalidConfiguration
from .schemas import ExtractionRequest, Segment


PLACEHOLDER = "{user_text}"

SYSTEM_PROMPT = (
    "You are a helpful assistant. Your task is to extract relationships from the "
    "provided text and format them as a list of connections. Respond ONLY with the "
    "connections within <nodes>...</nodes> tags, where each connection is inside a "
    "<node> tag like this: <node><from_node>ENTITY_A</from_node>"
    "<relationship>RELATIONSHIP_TYPE</relationship><to_node>ENTITY_B</to_node></node>. "
    "Do not include explanations or any other text outside the <nodes> tags."
)

USER_PROMPT_TEMPLATE = "Extract the relationships from the following text:\n\n" + PLACEHOLDER


def validate_template(template: str) :
    if not template or PLACEHOLDER not in template:
        raise InvalidConfiguration(
            f"User prompt template must contain the {PLACEHOLDER} placeholder"
        )


def render_user_prompt(template: str, text: str) :
    # Plain replacement: braces inside the segment text stay untouched.
    validate_template(template)
    return template.replace(PLACEHOLDER, text)


def build_request(segment: Segment, config) :
    return ExtractionRequest(
        system_prompt=config.system_prompt,
        user_prompt=render_user_prompt(config.user_prompt_template, segment.text),
    )
