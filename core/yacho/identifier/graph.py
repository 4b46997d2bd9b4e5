"""
Bird-identification strategy graph.

    update_system_prompt → evaluate_bird ─┬─ tool call ──────────────→ execute_tool → send_tool_result ─┐
                               ↑          ├─ prose, no tools used yet → give_feedback ⟲ (until a tool call)
                               │          └─ prose, tools used ───────→ Finish
                               └───────────────────────────────────────────────────────────────────────┘

evaluate_bird is itself a graph:

    build_candidate_prompt → request_candidate_list → build_structured_prompt
        → structured_extraction → build_final_prompt → request_final_answer → Finish

A call to the exit tool from any model turn finishes the run with "Chat finished".
"""

from __future__ import annotations

from typing import Any

from yacho.graph.context import RunContext
from yacho.graph.edge import FINISH_NODE, EdgeCondition, EdgeSpec, GraphSpec
from yacho.graph.node import SubgraphNode, node
from yacho.graph.structured import extract_structured
from yacho.identifier import prompts
from yacho.identifier.schemas import BirdIdentification
from yacho.identifier.tools import EXIT_TOOL_NAME, EXIT_VALUE
from yacho.llm.provider import LLMResponse, ToolCall, ToolResult

STRUCTURED_NODE_ID = "structured_extraction"

# Run-state keys
USER_MESSAGES = "user_messages"
PENDING_IMAGES = "pending_images"
IDENTIFICATION = "identification"


# --- Outer graph nodes -------------------------------------------------------


@node("update_system_prompt")
def update_system_prompt(ctx: RunContext, text: str) -> str:
    """Install the identification system prompt."""
    ctx.session.replace_system_prompt(prompts.IDENTIFY_SYSTEM_PROMPT)
    return text


@node("execute_tool")
async def execute_tool(ctx: RunContext, calls: list[ToolCall]) -> list[ToolResult]:
    """Dispatch every requested tool call, in order."""
    return await ctx.tools.dispatch_all(calls, ctx)


@node("send_tool_result")
async def send_tool_result(ctx: RunContext, results: list[ToolResult]) -> str:
    """Report tool results to the model; the results become the next user input."""
    ctx.session.replace_system_prompt(prompts.TOOL_RESULT_SYSTEM_PROMPT)
    for result in results:
        ctx.session.add_tool_result(result.tool_call_id, result.content, is_error=result.is_error)
    await ctx.request_llm(allow_tools=True)
    return "\n".join(result.content for result in results)


@node("give_feedback")
async def give_feedback(ctx: RunContext, value: Any) -> LLMResponse:
    """Nag the model into calling a tool instead of chatting."""
    ctx.session.add_user_message(prompts.feedback_prompt(ctx.tools.get_registered_names()))
    return await ctx.request_llm(allow_tools=True)


# --- evaluate_bird subgraph nodes --------------------------------------------


@node("build_candidate_prompt")
def build_candidate_prompt(ctx: RunContext, text: str) -> str:
    user_messages = ctx.state.setdefault(USER_MESSAGES, [])
    user_messages.append(text)
    return prompts.candidate_list_prompt(user_messages)


@node("request_candidate_list")
async def request_candidate_list(ctx: RunContext, prompt: str) -> LLMResponse:
    """Ask for about three candidates, tools disabled."""
    images = ctx.state.pop(PENDING_IMAGES, None)
    message = ctx.session.add_user_message(prompt, images=images)
    if ctx.config.preserve_candidate_history:
        return await ctx.request_llm(allow_tools=False)

    # Only the accumulated user input, without earlier model turns
    messages = [{"role": "system", "content": ctx.session.system_prompt}, message.to_llm_dict()]
    return await ctx.request_llm(allow_tools=False, messages=messages)


@node("build_structured_prompt")
def build_structured_prompt(ctx: RunContext, response: LLMResponse) -> str:
    return prompts.structured_prompt(response.content)


@node(STRUCTURED_NODE_ID)
async def structured_extraction(ctx: RunContext, prompt: str) -> BirdIdentification:
    """Pick one top candidate as a validated BirdIdentification."""
    result = await extract_structured(
        ctx,
        BirdIdentification,
        prompt,
        examples=prompts.EXAMPLES,
        max_retries=ctx.config.structured_retries,
        fixing_model=ctx.config.fixing_model,
    )
    ctx.state[IDENTIFICATION] = result
    return result


@node("build_final_prompt")
def build_final_prompt(ctx: RunContext, result: BirdIdentification) -> str:
    return prompts.FINAL_ANSWER_PROMPT


@node("request_final_answer")
async def request_final_answer(ctx: RunContext, prompt: str) -> LLMResponse:
    """Final prose answer. Tools stay enabled so the model can ask the user."""
    ctx.session.add_user_message(prompt)
    return await ctx.request_llm(allow_tools=True)


# --- Graphs ------------------------------------------------------------------


def _tool_calls(ctx: RunContext, response: LLMResponse) -> list[ToolCall]:
    return response.tool_calls


def _content(ctx: RunContext, response: LLMResponse) -> str:
    return response.content


def build_evaluate_bird_graph(max_steps: int = 50) -> GraphSpec:
    chain = [
        build_candidate_prompt,
        request_candidate_list,
        build_structured_prompt,
        structured_extraction,
        build_final_prompt,
        request_final_answer,
    ]
    edges = [
        EdgeSpec(id=f"{src.id}-to-{dst.id}", source=src.id, target=dst.id)
        for src, dst in zip(chain, chain[1:], strict=False)
    ]
    edges.append(
        EdgeSpec(id="request_final_answer-to-finish", source=request_final_answer.id, target=FINISH_NODE)
    )
    return GraphSpec(
        id="evaluate-bird",
        entry_node=build_candidate_prompt.id,
        nodes=chain,
        edges=edges,
        max_steps=max_steps,
        description="List candidates, pick one as structured data, then answer in prose",
    )


def build_identification_graph(max_steps: int = 50) -> GraphSpec:
    """Outer identification graph (fresh spec; nodes are stateless and shared)."""
    evaluate_bird = SubgraphNode("evaluate_bird", build_evaluate_bird_graph(max_steps))

    edges = [
        EdgeSpec(
            id="update-to-evaluate",
            source=update_system_prompt.id,
            target=evaluate_bird.id,
        ),
        EdgeSpec(
            id="evaluate-to-execute",
            source=evaluate_bird.id,
            target=execute_tool.id,
            condition=EdgeCondition.ON_TOOL_CALL,
            transform=_tool_calls,
        ),
        EdgeSpec(
            id="evaluate-to-feedback",
            source=evaluate_bird.id,
            target=give_feedback.id,
            condition=EdgeCondition.ON_ASSISTANT_MESSAGE,
            predicate=lambda ctx, response: ctx.tool_call_count == 0,
            description="Prose before any tool was used",
        ),
        EdgeSpec(
            id="evaluate-to-finish",
            source=evaluate_bird.id,
            target=FINISH_NODE,
            condition=EdgeCondition.ON_ASSISTANT_MESSAGE,
            predicate=lambda ctx, response: ctx.tool_call_count > 0,
            transform=_content,
        ),
        EdgeSpec(
            id="feedback-to-feedback",
            source=give_feedback.id,
            target=give_feedback.id,
            condition=EdgeCondition.ON_ASSISTANT_MESSAGE,
        ),
        EdgeSpec(
            id="feedback-to-execute",
            source=give_feedback.id,
            target=execute_tool.id,
            condition=EdgeCondition.ON_TOOL_CALL,
            transform=_tool_calls,
        ),
        EdgeSpec(id="execute-to-send", source=execute_tool.id, target=send_tool_result.id),
        EdgeSpec(id="send-to-evaluate", source=send_tool_result.id, target=evaluate_bird.id),
    ]

    return GraphSpec(
        id="bird-identification",
        entry_node=update_system_prompt.id,
        nodes=[update_system_prompt, evaluate_bird, execute_tool, send_tool_result, give_feedback],
        edges=edges,
        max_steps=max_steps,
        exit_tool_name=EXIT_TOOL_NAME,
        exit_value=EXIT_VALUE,
        description="Identify a wild bird from the user's description, asking questions as needed",
    )
