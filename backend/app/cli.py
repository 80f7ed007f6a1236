"""Typer-based CLI for chatting with the agent and serving the API."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
import uvicorn

from app.core.config import get_settings
from app.core.db import dispose_engine
from app.core.logging import get_logger, setup_logging
from app.services import agent
from app.services.errors import AgentError

app = typer.Typer(help="Dynamic table agent utilities")
logger = get_logger(__name__)

_EXIT_WORDS = {"exit", "quit"}


async def _chat_loop(context: agent.AgentContext) -> None:
    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, ">> ")).strip()
            except EOFError:
                break

            if not user_input:
                continue
            if user_input.lower() in _EXIT_WORDS:
                break

            try:
                output = await agent.run_agent(user_input, context=context)
            except AgentError as exc:
                typer.secho(str(exc), fg=typer.colors.RED)
                continue
            except Exception as exc:
                logger.exception("cli.chat.failed", exc_info=exc)
                typer.secho(f"Request failed: {exc}", fg=typer.colors.RED)
                continue
            typer.echo(output)
    finally:
        await dispose_engine()


@app.command()
def chat(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show tool activity logs."),
):
    """Start an interactive chat session in the terminal."""

    setup_logging(logging.INFO if verbose else logging.WARNING, json_output=False)
    settings = get_settings()

    try:
        context = agent.build_agent_context(settings)
    except RuntimeError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    typer.secho("Type 'exit' to leave.", fg=typer.colors.CYAN)
    asyncio.run(_chat_loop(context))


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to settings)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (defaults to settings)."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes."),
):
    """Run the HTTP API with uvicorn."""

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


if __name__ == "__main__":  # pragma: no cover
    app()
