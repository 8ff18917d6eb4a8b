"""
Main CLI entry point for Grimoire.

Runs the HTTP service and offers an interactive text chat against a running
service.
"""

import asyncio
import logging
from typing import Optional

import click
import uvicorn

from .. import __version__
from ..books.types import Book
from ..client.http import GrimoireClient
from ..client.session import BookChat
from ..conversation.log import ConversationLog
from ..core.config import Config
from ..core.exceptions import ConfigurationError, GrimoireError
from ..core.logging import configure_logging
from ..web.app import create_app
from .config import config_commands

logger = logging.getLogger(__name__)


def _load_config() -> Config:
    try:
        return Config.from_env()
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        raise click.Abort()


@click.group()
@click.version_option(version=__version__)
@click.option("--debug", "-d", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """
    Grimoire CLI

    Talk with the protagonist or author of a book, by text or voice.
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--host", help="Bind address (defaults to api.host)")
@click.option("--port", type=int, help="Port (defaults to api.port)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Run the Grimoire HTTP service."""
    config = _load_config()
    level = "DEBUG" if ctx.obj.get("debug") else config.monitoring.log_level
    configure_logging(level, json_format=config.monitoring.json_logs)

    uvicorn.run(
        create_app(config),
        host=host or config.api.host,
        port=port or config.api.port,
        log_level=level.lower(),
    )


@cli.command()
@click.argument("title")
@click.option("--author", help="Book author")
@click.option("--backend-url", help="Service URL (defaults to GRIMOIRE_BACKEND_URL)")
@click.option(
    "--conversation-id", help="Continue an existing conversation instead of starting one"
)
@click.pass_context
def chat(
    ctx: click.Context,
    title: str,
    author: Optional[str],
    backend_url: Optional[str],
    conversation_id: Optional[str],
) -> None:
    """Chat with a book from the terminal. An empty line ends the session."""
    config = _load_config()
    configure_logging(
        "DEBUG" if ctx.obj.get("debug") else "WARNING", json_format=False
    )

    try:
        asyncio.run(
            _chat_loop(
                config,
                Book(title=title, author=author),
                backend_url or config.client.backend_url,
                conversation_id,
            )
        )
    except GrimoireError as e:
        click.echo(f"Error: {e}", err=True)
        raise click.Abort()


async def _chat_loop(
    config: Config, book: Book, backend_url: str, conversation_id: Optional[str]
) -> None:
    async with GrimoireClient(backend_url, config.client.timeout_s) as client:
        async with ConversationLog(config.conversation.store_path) as log:
            if conversation_id:
                session = BookChat(client, log, conversation_id)
                book = session.book
            else:
                session = await BookChat.start(client, log, book)

            click.echo(
                f"Talking with '{book.title}' "
                f"(conversation {session.conversation_id})"
            )
            while True:
                question = click.prompt(
                    "You", default="", show_default=False, prompt_suffix="> "
                )
                if not question.strip():
                    break
                reply = await session.ask(question)
                click.echo(f"{reply.persona.name}> {reply.answer}")
                if not reply.recorded:
                    click.echo("(this exchange could not be saved)", err=True)


cli.add_command(config_commands, name="config")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
