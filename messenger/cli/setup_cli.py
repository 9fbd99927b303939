"""Typer CLI for pushing thread settings and looking up profiles."""

import os

os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

import asyncio
from pathlib import Path

import httpx
import typer
from dotenv import load_dotenv

from messenger.client import Messenger
from messenger.config import Settings
from messenger.models.send_models import CallToActionsItem, ThreadState
from messenger.services.graph_api import GraphAPIError

app = typer.Typer(help="Configure the Messenger page behind this webhook.")


def _load_env() -> None:
    """Load .env then .env.local from the working directory."""
    load_dotenv(Path.cwd() / ".env")
    load_dotenv(Path.cwd() / ".env.local", override=True)


def _messenger(token: str | None) -> Messenger:
    _load_env()
    settings = Settings()
    if token:
        settings = settings.model_copy(update={"facebook_page_access_token": token})
    if not settings.facebook_page_access_token:
        typer.echo(
            "✗ No page access token. Set FACEBOOK_PAGE_ACCESS_TOKEN or pass --token.",
            err=True,
        )
        raise typer.Exit(1)
    return Messenger(settings)


def _run(coro):
    try:
        return asyncio.run(coro)
    except GraphAPIError as e:
        typer.echo(f"✗ {e}", err=True)
        raise typer.Exit(1)
    except httpx.HTTPError as e:
        typer.echo(f"✗ Could not reach the Graph API: {e}", err=True)
        raise typer.Exit(1)


def _parse_menu_item(raw: str) -> CallToActionsItem:
    """Parse ``TITLE=PAYLOAD`` or ``TITLE=https://...`` into a menu item."""
    title, sep, target = raw.partition("=")
    if not sep or not title or not target:
        raise typer.BadParameter(f"expected TITLE=PAYLOAD or TITLE=URL, got {raw!r}")
    if target.startswith(("http://", "https://")):
        return CallToActionsItem(type="web_url", title=title, url=target)
    return CallToActionsItem(type="postback", title=title, payload=target)


TokenOption = typer.Option(None, "--token", help="Page access token override")


@app.command()
def greeting(text: str, token: str | None = TokenOption):
    """Set the greeting text shown before a conversation starts."""
    bot = _messenger(token)
    _run(bot.greeting_setting(text))
    typer.echo("✓ Greeting updated")


@app.command("get-started")
def get_started(payload: str, token: str | None = TokenOption):
    """Show a Get Started button that posts back PAYLOAD."""
    bot = _messenger(token)
    _run(
        bot.call_to_actions_setting(
            ThreadState.NEW_THREAD, [CallToActionsItem(payload=payload)]
        )
    )
    typer.echo("✓ Get Started button configured")


@app.command()
def menu(
    item: list[str] = typer.Option(
        [], "--item", "-i", help="Menu entry as TITLE=PAYLOAD or TITLE=URL"
    ),
    token: str | None = TokenOption,
):
    """Replace the persistent menu (no --item removes it)."""
    actions = [_parse_menu_item(raw) for raw in item]
    bot = _messenger(token)
    _run(bot.call_to_actions_setting(ThreadState.EXISTING_THREAD, actions))
    if actions:
        typer.echo(f"✓ Persistent menu set with {len(actions)} item(s)")
    else:
        typer.echo("✓ Persistent menu removed")


@app.command()
def profile(user_id: str, token: str | None = TokenOption):
    """Print the public profile of USER_ID."""
    bot = _messenger(token)
    result = _run(bot.profile_by_id(user_id))
    typer.echo(f"id:          {result.id}")
    typer.echo(f"name:        {result.name or '-'}")
    typer.echo(f"profile_pic: {result.profile_pic or '-'}")


if __name__ == "__main__":
    app()
