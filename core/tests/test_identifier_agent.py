"""
End-to-end tests for BirdIdentificationAgent with a scripted model.

Covers:
- full identification: candidates, structured result, nag to use tools,
  asking the user, feeding the answer back, final answer
- exit tool, missing API key, schema violations, cancellation, step limit
- candidate-history toggle and photo input
- answers from the UI: only during a run, never carried into the next one
"""

import asyncio
import json
import threading

import pytest

from yacho.chat.events import (
    AssistantEvent,
    StructuredEvent,
    ToolCallLogEvent,
    UserEvent,
    UserImageEvent,
)
from yacho.credentials import StaticApiKeyProvider
from yacho.errors import (
    ConfigurationError,
    RunCancelledError,
    SchemaViolationError,
    StepLimitExceededError,
    UserInputError,
)
from yacho.identifier import prompts
from yacho.identifier.agent import BirdIdentificationAgent
from yacho.identifier.demo import build_mock_llm
from yacho.identifier.schemas import BirdIdentification
from yacho.llm.mock import MockLLMProvider
from yacho.llm.provider import LLMResponse, ToolCall

SIGHTING = "小さな緑色の鳥を見ました。目の周りが白かったです。"
QUESTION = "Did it look like a sparrow, or was it greener?"
CANDIDATES = "1. メジロ\n2. ウグイス\n3. カワラヒワ"


def _identification(score, name="メジロ (Zosterops japonicus)"):
    return json.dumps(
        {"reliabilityScore": score, "birdName": name, "description": "白いアイリング。"},
        ensure_ascii=False,
    )


def _tool_response(name, call_id="call_1", **arguments):
    return LLMResponse(content="", tool_calls=[ToolCall.create(call_id, name, **arguments)])


def _full_script():
    return [
        CANDIDATES,
        _identification(72),
        "It looks like a Japanese White-eye.",
        _tool_response("__ask_user_in_ui__", message=QUESTION),
        "Thanks for the detail.",
        CANDIDATES,
        _identification(85),
        "This is a Japanese White-eye (メジロ).",
    ]


async def _wait_for_question(agent):
    for _ in range(2000):
        if agent.user_input.has_waiter:
            return
        await asyncio.sleep(0.001)
    raise AssertionError("agent never waited for the user")


async def _wait_until_running(agent):
    for _ in range(2000):
        if agent.is_running:
            return
        await asyncio.sleep(0.001)
    raise AssertionError("agent never started")


@pytest.mark.asyncio
async def test_full_identification_round_trip(config):
    llm = MockLLMProvider(_full_script())
    agent = BirdIdentificationAgent(config=config, llm=llm)
    assistant_prompts = []

    run_task = asyncio.create_task(
        agent.run(SIGHTING, on_assistant_message=lambda: assistant_prompts.append(True))
    )
    await _wait_for_question(agent)
    agent.submit_user_input("sparrow")
    answer = await asyncio.wait_for(run_task, timeout=5.0)

    assert answer == "This is a Japanese White-eye (メジロ)."
    assert assistant_prompts == [True]

    events = agent.chat.events
    assert events[0] == UserEvent(SIGHTING)
    assert isinstance(events[1], StructuredEvent)
    assert events[1].result == BirdIdentification(
        reliabilityScore=72, birdName="メジロ (Zosterops japonicus)", description="白いアイリング。"
    )
    assert events[2] == ToolCallLogEvent("Used tool: __ask_user_in_ui__", tool_name="__ask_user_in_ui__")
    assert events[3] == AssistantEvent(QUESTION)
    assert events[4] == UserEvent("sparrow")
    assert isinstance(events[5], StructuredEvent)
    assert events[5].result.reliabilityScore == 85
    assert events[6:] == (
        AssistantEvent("This is a Japanese White-eye (メジロ)."),
        AssistantEvent("Identified a wild bird. Chat finished"),
    )

    result = agent.last_result
    assert result.success is True
    assert result.path.count("execute_tool") == 1
    assert result.path.count("send_tool_result") == 1
    assert result.path.count("give_feedback") == 1
    assert agent.last_context.tool_call_count == 1
    assert llm.remaining == 0


@pytest.mark.asyncio
async def test_prompts_sent_to_the_model(config):
    llm = MockLLMProvider(_full_script())
    agent = BirdIdentificationAgent(config=config, llm=llm)

    run_task = asyncio.create_task(agent.run(SIGHTING))
    await _wait_for_question(agent)
    agent.submit_user_input("sparrow")
    await asyncio.wait_for(run_task, timeout=5.0)

    candidates, structured, final, feedback, tool_result, second_candidates, _, _ = llm.requests

    assert candidates.messages[0] == {"role": "system", "content": prompts.IDENTIFY_SYSTEM_PROMPT}
    assert candidates.tool_names == []
    assert candidates.last_user_content == prompts.candidate_list_prompt([SIGHTING])

    assert structured.tool_names == []
    assert structured.response_format == {"type": "json_object"}
    assert structured.last_user_content.startswith(prompts.structured_prompt(CANDIDATES))

    assert final.last_user_content == prompts.FINAL_ANSWER_PROMPT
    assert final.tool_names == ["__ask_user_in_ui__", "__exit__"]

    assert feedback.last_user_content == (
        "Don't chat with plain text! Call one of the available tools, instead: "
        "__ask_user_in_ui__, __exit__."
    )

    assert tool_result.messages[0]["content"] == prompts.TOOL_RESULT_SYSTEM_PROMPT
    assert tool_result.messages[-1] == {
        "role": "tool",
        "tool_call_id": "call_1",
        "content": "sparrow",
    }

    assert second_candidates.last_user_content == prompts.candidate_list_prompt([SIGHTING, "sparrow"])
    # History is kept: the earlier turns are part of the second candidate request
    assert len(second_candidates.messages) > len(candidates.messages)


@pytest.mark.asyncio
async def test_candidate_listing_without_history(config):
    config.preserve_candidate_history = False
    llm = MockLLMProvider(_full_script())
    agent = BirdIdentificationAgent(config=config, llm=llm)

    run_task = asyncio.create_task(agent.run(SIGHTING))
    await _wait_for_question(agent)
    agent.submit_user_input("sparrow")
    await asyncio.wait_for(run_task, timeout=5.0)

    second_candidates = llm.requests[5]
    assert [m["role"] for m in second_candidates.messages] == ["system", "user"]
    assert second_candidates.messages[0]["content"] == prompts.TOOL_RESULT_SYSTEM_PROMPT
    assert second_candidates.last_user_content == prompts.candidate_list_prompt([SIGHTING, "sparrow"])


@pytest.mark.asyncio
async def test_exit_tool_finishes_with_chat_finished(config):
    llm = MockLLMProvider(
        [CANDIDATES, _identification(40), _tool_response("__exit__")]
    )
    agent = BirdIdentificationAgent(config=config, llm=llm)

    answer = await agent.run(SIGHTING)

    assert answer == "Chat finished"
    assert not any(isinstance(e, ToolCallLogEvent) for e in agent.chat.events)
    assert agent.chat.events[-2:] == (
        AssistantEvent("Chat finished"),
        AssistantEvent("Identified a wild bird. Chat finished"),
    )


@pytest.mark.asyncio
async def test_prose_before_any_tool_call_never_finishes(config):
    llm = MockLLMProvider(
        [
            CANDIDATES,
            _identification(60),
            "Probably a white-eye.",
            "I really think it is a white-eye.",
            _tool_response("__exit__"),
        ]
    )
    agent = BirdIdentificationAgent(config=config, llm=llm)

    answer = await agent.run(SIGHTING)

    assert answer == "Chat finished"
    assert agent.last_result.path[-2:] == ["give_feedback", "give_feedback"]
    assert llm.requests[3].last_user_content.startswith("Don't chat with plain text!")
    assert llm.requests[4].last_user_content.startswith("Don't chat with plain text!")


@pytest.mark.asyncio
async def test_missing_api_key_fails_before_any_model_call(config):
    llm = MockLLMProvider(_full_script())
    agent = BirdIdentificationAgent(config=config, llm=llm, api_key_provider=StaticApiKeyProvider(""))

    with pytest.raises(ConfigurationError) as exc_info:
        await agent.run(SIGHTING)

    assert llm.requests == []
    assert agent.chat.events == (
        UserEvent(SIGHTING),
        AssistantEvent(exc_info.value.user_message),
    )


@pytest.mark.asyncio
async def test_schema_violation_is_rendered_into_chat(config):
    out_of_range = _identification(150)
    llm = MockLLMProvider([CANDIDATES, out_of_range, out_of_range, out_of_range])
    agent = BirdIdentificationAgent(config=config, llm=llm)

    with pytest.raises(SchemaViolationError) as exc_info:
        await agent.run(SIGHTING)

    assert exc_info.value.attempts == 3
    assert llm.requests[2].model == "test-fixer"
    assert not any(isinstance(e, StructuredEvent) for e in agent.chat.events)
    assert agent.chat.events[-1] == AssistantEvent(exc_info.value.user_message)
    assert agent.last_result.status == "failed"


@pytest.mark.asyncio
async def test_cancel_while_waiting_for_user(config):
    llm = MockLLMProvider(_full_script())
    agent = BirdIdentificationAgent(config=config, llm=llm)

    run_task = asyncio.create_task(agent.run(SIGHTING))
    await _wait_for_question(agent)
    agent.cancel()

    with pytest.raises(RunCancelledError):
        await asyncio.wait_for(run_task, timeout=5.0)

    assert agent.last_result.status == "cancelled"
    assert agent.is_running is False
    types = [e.type for e in agent.chat.events]
    assert types == ["user", "structured", "tool_call", "assistant", "assistant"]
    # The prompt history of the run survives cancellation
    assert agent.last_context.session.message_count > 0


@pytest.mark.asyncio
async def test_only_one_run_at_a_time(config):
    agent = BirdIdentificationAgent(config=config, llm=MockLLMProvider(_full_script()))

    run_task = asyncio.create_task(agent.run(SIGHTING))
    await _wait_for_question(agent)

    with pytest.raises(RuntimeError):
        await agent.run("another bird")

    agent.submit_user_input("sparrow")
    await asyncio.wait_for(run_task, timeout=5.0)


@pytest.mark.asyncio
async def test_endless_chatter_hits_the_step_limit(config):
    config.max_steps = 8
    llm = MockLLMProvider([CANDIDATES, _identification(50)], default="Just chatting.")
    agent = BirdIdentificationAgent(config=config, llm=llm)

    with pytest.raises(StepLimitExceededError):
        await agent.run(SIGHTING)

    assert agent.last_result.steps_executed == 8


@pytest.mark.asyncio
async def test_photo_is_sent_with_the_first_candidate_request(config):
    llm = MockLLMProvider([CANDIDATES, _identification(40), _tool_response("__exit__")])
    agent = BirdIdentificationAgent(config=config, llm=llm)
    photo = b"\x89PNG\r\n\x1a\nfake"

    await agent.run("この鳥は何ですか？", image=photo)

    assert agent.chat.events[0] == UserImageEvent(photo, "この鳥は何ですか？")
    content = llm.requests[0].messages[-1]["content"]
    assert content[0]["type"] == "text"
    assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")
    # Only the first request carries the image
    assert isinstance(llm.requests[1].messages[-1]["content"], str)


@pytest.mark.asyncio
async def test_mock_demo_script_runs_to_completion(config):
    agent = BirdIdentificationAgent(config=config, llm=build_mock_llm())

    run_task = asyncio.create_task(agent.run("A small green bird with a white eye ring"))
    await _wait_for_question(agent)
    agent.submit_user_input("Yes, white belly, on a plum tree")
    answer = await asyncio.wait_for(run_task, timeout=5.0)

    assert "White-eye" in answer


@pytest.mark.asyncio
async def test_submit_without_a_running_identification_is_rejected(config):
    agent = BirdIdentificationAgent(config=config, llm=MockLLMProvider(_full_script()))

    with pytest.raises(UserInputError):
        agent.submit_user_input("too early")

    assert agent.chat.events == ()
    assert agent.user_input.has_value is False


@pytest.mark.asyncio
async def test_unrequested_answer_does_not_leak_into_next_run(config):
    llm = MockLLMProvider([CANDIDATES, _identification(40), _tool_response("__exit__")], delay=0.01)
    agent = BirdIdentificationAgent(config=config, llm=llm)

    first_run = asyncio.create_task(agent.run(SIGHTING))
    await _wait_until_running(agent)
    agent.submit_user_input("typed during the first run")
    assert await asyncio.wait_for(first_run, timeout=5.0) == "Chat finished"
    assert agent.user_input.has_value is False

    llm.add(
        CANDIDATES,
        _identification(60),
        _tool_response("__ask_user_in_ui__", call_id="call_2", message=QUESTION),
        "Noted.",
        CANDIDATES,
        _identification(90),
        "It is a Japanese White-eye.",
    )
    second_run = asyncio.create_task(agent.run("Another small green bird"))
    await _wait_for_question(agent)
    await asyncio.sleep(0.05)
    assert not second_run.done()

    agent.submit_user_input("fresh answer")
    answer = await asyncio.wait_for(second_run, timeout=5.0)

    assert answer == "It is a Japanese White-eye."
    tool_messages = [
        m for request in llm.requests for m in request.messages if m.get("role") == "tool"
    ]
    assert tool_messages[0] == {"role": "tool", "tool_call_id": "call_2", "content": "fresh answer"}


@pytest.mark.asyncio
async def test_concurrent_answers_append_one_user_event(config):
    agent = BirdIdentificationAgent(config=config, llm=MockLLMProvider(_full_script()))

    run_task = asyncio.create_task(agent.run(SIGHTING))
    await _wait_for_question(agent)

    accepted = []

    def answer(text):
        try:
            agent.submit_user_input(text)
        except UserInputError:
            return
        accepted.append(text)

    # The loop is blocked while the threads run, so nothing consumes the first answer
    threads = [threading.Thread(target=answer, args=(f"answer {i}",)) for i in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(accepted) == 1
    user_events = [e for e in agent.chat.events if isinstance(e, UserEvent)]
    assert user_events == [UserEvent(SIGHTING), UserEvent(accepted[0])]

    await asyncio.wait_for(run_task, timeout=5.0)
