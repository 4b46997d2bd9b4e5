"""
Structured extraction: ask the model for a schema-shaped answer and validate it.

Flow:
1. Add the prompt, the JSON schema and worked examples to the prompt session
   and request a JSON object from the primary model (tools disabled).
2. Repair cheap formatting problems (markdown fences, Python literals) without
   a model call, then validate with pydantic.
3. On failure, hand the invalid output and the validation error to the fixing
   model, up to ``max_retries`` times (at most ``max_retries + 1`` model calls).
4. Still invalid: raise SchemaViolationError. Values are never clamped or
   defaulted, so anything returned satisfies the schema by construction.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel, ValidationError

from yacho.errors import SchemaViolationError, TransportError

if TYPE_CHECKING:
    from yacho.graph.context import RunContext

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

JSON_RESPONSE_FORMAT = {"type": "json_object"}

FIXING_SYSTEM_PROMPT = (
    "You fix malformed structured outputs. Return only valid JSON matching the schema."
)


def _heuristic_repair(text: str) -> Any | None:
    """
    Attempt to recover JSON without a model call.

    Handles common errors:
    - Markdown code blocks
    - Prose around the JSON object
    - Python booleans/None (True -> true)
    """
    if not isinstance(text, str):
        return None

    text = re.sub(r"^```(?:json)?\s*", "", text, flags=re.MULTILINE)
    text = re.sub(r"\s*```$", "", text, flags=re.MULTILINE)
    text = text.strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    match = re.search(r"\{.*\}", text, re.DOTALL)
    if match:
        candidate = match.group(0)
        candidate = re.sub(r"\bTrue\b", "true", candidate)
        candidate = re.sub(r"\bFalse\b", "false", candidate)
        candidate = re.sub(r"\bNone\b", "null", candidate)
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            return None

    return None


def parse_structured(text: str, schema: type[T], payload: dict[str, Any] | None = None) -> T:
    """
    Validate a model reply against ``schema``.

    ``payload`` is the provider's already-decoded JSON, when it has one.

    Raises:
        ValueError: The reply holds no JSON object
        ValidationError: The JSON does not satisfy the schema
    """
    data = payload if payload is not None else _heuristic_repair(text)
    if data is None:
        raise ValueError("Response is not a JSON object")
    return schema.model_validate(data)


def _describe_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in e['loc']) or '<root>'}: {e['msg']}" for e in error.errors()
        )
    return str(error)


def build_structured_prompt(prompt: str, schema: type[BaseModel], examples: Sequence[BaseModel]) -> str:
    """Prompt text followed by the JSON schema and worked examples."""
    schema_json = json.dumps(schema.model_json_schema(), indent=2, ensure_ascii=False)
    parts = [
        prompt,
        "",
        "Respond with a single JSON object that matches this JSON schema:",
        schema_json,
    ]
    if examples:
        parts.append("")
        parts.append("Examples of valid responses:")
        parts.extend(example.model_dump_json() for example in examples)
    return "\n".join(parts)


def build_fixing_prompt(schema: type[BaseModel], invalid_output: str, error: str) -> str:
    schema_json = json.dumps(schema.model_json_schema(), indent=2, ensure_ascii=False)
    return f"""Fix this output so that it matches the expected schema.

VALIDATION ERRORS:
{error}

EXPECTED SCHEMA:
{schema_json}

INVALID OUTPUT:
{invalid_output}

Keep every value that is already valid. Do not invent values outside the allowed ranges.
Return ONLY valid JSON matching the expected schema. No explanations, no markdown."""


async def extract_structured(
    ctx: RunContext,
    schema: type[T],
    prompt: str,
    *,
    examples: Sequence[BaseModel] = (),
    max_retries: int = 2,
    fixing_model: str | None = None,
) -> T:
    """
    Obtain a schema-valid ``schema`` instance from the model.

    Args:
        ctx: Run context; the prompt and the accepted answer are added to its session
        schema: Pydantic model the answer must satisfy
        prompt: Instruction for the primary model
        examples: Worked examples shown to the model
        max_retries: Maximum number of fixing attempts after the first answer,
            so at most ``max_retries + 1`` model calls are made in total
        fixing_model: Model used for fixing; defaults to the provider's model

    Returns:
        The validated result

    Raises:
        SchemaViolationError: No valid answer after ``max_retries`` fixing attempts
        TransportError: The primary request failed
    """
    schema_name = schema.__name__
    ctx.session.add_user_message(build_structured_prompt(prompt, schema, examples))

    response = await ctx.request_llm(
        allow_tools=False,
        response_format=JSON_RESPONSE_FORMAT,
        record=False,
    )
    output = response.content
    payload = response.structured
    attempts = 1

    while True:
        try:
            result = parse_structured(output, schema, payload)
            break
        except (ValueError, ValidationError) as e:
            last_error = _describe_error(e)

        logger.warning(f"⚠ Invalid {schema_name} (attempt {attempts}): {last_error}")
        if attempts > max_retries:
            raise SchemaViolationError(schema_name, attempts, last_error, output)

        attempts += 1
        logger.info(f"🧹 Fixing {schema_name} with {fixing_model or 'default model'}")
        try:
            fixed = await ctx.request_llm(
                allow_tools=False,
                messages=[
                    {"role": "system", "content": FIXING_SYSTEM_PROMPT},
                    {"role": "user", "content": build_fixing_prompt(schema, output, last_error)},
                ],
                model=fixing_model,
                response_format=JSON_RESPONSE_FORMAT,
                record=False,
            )
        except TransportError as e:
            # A failed fixing call uses up the attempt; keep the previous output
            logger.warning(f"⚠ Fixing call failed: {e}")
            payload = None
            continue
        output = fixed.content
        payload = fixed.structured

    logger.info(f"✓ Valid {schema_name} after {attempts} attempt(s)")
    ctx.session.add_assistant_message(
        result.model_dump_json(),
        structured=result.model_dump(),
    )
    return result
