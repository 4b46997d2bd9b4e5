"""Scripted model replies for running the agent offline (``yacho run --mock``)."""

from yacho.identifier.tools import ASK_USER_TOOL_NAME
from yacho.llm.mock import MockLLMProvider
from yacho.llm.provider import LLMResponse, ToolCall

WHITE_EYE_JSON = (
    '{"reliabilityScore": 72, "birdName": "メジロ (Zosterops japonicus)", '
    '"description": "Small olive-green bird with a distinct white eye ring, often seen on '
    'plum and cherry blossoms."}'
)

WHITE_EYE_CONFIRMED_JSON = (
    '{"reliabilityScore": 95, "birdName": "メジロ (Zosterops japonicus)", '
    '"description": "Olive-green back, white belly with yellowish flanks and a white eye ring. '
    'Feeds on nectar in small flocks."}'
)


def build_mock_llm() -> MockLLMProvider:
    """A white-eye identification that asks the user one question."""
    return MockLLMProvider(
        [
            "1. メジロ (Japanese White-eye)\n2. ウグイス (Japanese Bush Warbler)\n3. カワラヒワ (Oriental Greenfinch)",
            WHITE_EYE_JSON,
            "It is most likely a Japanese White-eye (メジロ).",
            LLMResponse(
                content="",
                tool_calls=[
                    ToolCall.create(
                        "call_ask_1",
                        ASK_USER_TOOL_NAME,
                        message="Was the belly white, and was it feeding on flowers?",
                    )
                ],
            ),
            "Thanks, that helps.",
            "1. メジロ (Japanese White-eye)\n2. ウグイス (Japanese Bush Warbler)",
            WHITE_EYE_CONFIRMED_JSON,
            "This is a Japanese White-eye (メジロ, Zosterops japonicus): the white eye ring and "
            "its habit of visiting blossoms for nectar are decisive.",
        ],
        model="mock-gpt-4.1",
    )
