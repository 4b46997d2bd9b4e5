"""
CLI entry point for the bird-identification agent.

Runs one identification in the terminal. When the agent asks a question the
CLI prompts for an answer and feeds it back into the waiting run.
"""

import asyncio
import json
import sys
from pathlib import Path

import click

from yacho.chat.events import UserEvent, UserImageEvent, render_event
from yacho.config import RuntimeConfig
from yacho.errors import YachoError
from yacho.identifier.agent import BirdIdentificationAgent
from yacho.identifier.demo import build_mock_llm
from yacho.observability import configure_logging


def setup_logging(verbose=False, debug=False):
    """Configure logging for execution visibility."""
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    else:
        level = "WARNING"
    configure_logging(level=level)


def _print_new_events(agent: BirdIdentificationAgent, cursor: int) -> int:
    events = agent.chat.read_since(cursor)
    for event in events:
        # The user already sees what they typed
        if isinstance(event, UserEvent | UserImageEvent):
            continue
        click.echo(render_event(event))
    return cursor + len(events)


async def _run_chat(agent: BirdIdentificationAgent, message: str, image: bytes | None) -> str:
    run_task = asyncio.create_task(agent.run(message, image=image))
    cursor = 0
    try:
        while not run_task.done():
            cursor = _print_new_events(agent, cursor)
            if agent.user_input.has_waiter and not agent.user_input.has_value:
                answer = await asyncio.to_thread(click.prompt, "You")
                agent.submit_user_input(answer)
            else:
                await asyncio.sleep(0.05)
        return await run_task
    finally:
        _print_new_events(agent, cursor)


@click.group()
@click.version_option(version="0.1.0")
def cli():
    """Yacho - identify wild birds in Japan by chatting with an expert agent."""
    pass


@cli.command()
@click.argument("message")
@click.option(
    "--image",
    "-i",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Photo of the bird",
)
@click.option("--model", "-m", type=str, default=None, help="Override the primary model")
@click.option("--mock", is_flag=True, help="Run with scripted model replies (no API key needed)")
@click.option("--verbose", "-v", is_flag=True, help="Show execution details")
@click.option("--debug", is_flag=True, help="Show debug logging")
def run(message, image, model, mock, verbose, debug):
    """Identify a bird from MESSAGE."""
    setup_logging(verbose=verbose, debug=debug)

    config = RuntimeConfig()
    if model:
        config.model = model
    agent = BirdIdentificationAgent(config=config, llm=build_mock_llm() if mock else None)
    image_bytes = image.read_bytes() if image else None

    try:
        asyncio.run(_run_chat(agent, message, image_bytes))
    except YachoError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        agent.cancel()
        sys.exit(130)


@cli.command()
@click.option("--json", "output_json", is_flag=True)
def info(output_json):
    """Show agent information."""
    config = RuntimeConfig()
    agent = BirdIdentificationAgent(config=config, llm=build_mock_llm())
    graph = agent.graph
    info_data = {
        "name": graph.id,
        "description": graph.description,
        "model": config.model,
        "fixing_model": config.fixing_model,
        "nodes": [n.id for n in graph.nodes],
        "entry_node": graph.entry_node,
        "tools": agent.tools.get_registered_names(),
        "max_steps": graph.max_steps,
    }
    if output_json:
        click.echo(json.dumps(info_data, indent=2, ensure_ascii=False))
    else:
        click.echo(f"Agent: {info_data['name']}")
        click.echo(f"Description: {info_data['description']}")
        click.echo(f"Model: {info_data['model']} (fixing: {info_data['fixing_model']})")
        click.echo(f"\nNodes: {', '.join(info_data['nodes'])}")
        click.echo(f"Entry: {info_data['entry_node']}")
        click.echo(f"Tools: {', '.join(info_data['tools'])}")
        click.echo(f"Max steps: {info_data['max_steps']}")


if __name__ == "__main__":
    cli()
