"""check command: run a compliance check on a post."""

from __future__ import annotations

import asyncio
import base64
import mimetypes
from pathlib import Path

import click
from rich.console import Console

from safepost_cli.factory import build_checker
from safepost_cli.render import print_result, print_rewrites, usage_line
from safepost_core.config import get_analyzer
from safepost_core.errors import AnalysisError, QuotaExceededError
from safepost_core.models import ComplianceStatus, ImageInput

console = Console()


def _load_image(image_path: str) -> ImageInput:
    mime_type, _ = mimetypes.guess_type(image_path)
    if not mime_type or not mime_type.startswith("image/"):
        raise click.UsageError(f"{image_path} does not look like an image file.")
    data = base64.b64encode(Path(image_path).read_bytes()).decode("ascii")
    return ImageInput(base64=data, mime_type=mime_type)


async def _run_check(checker, content, content_type, platform, image, rewrite):
    """Load state, run one check, optionally fetch rewrites, then wait for the store."""
    await checker.load()
    rewrites = None
    try:
        result = await checker.run_check(content, content_type=content_type, platform=platform, image=image)
        if result is not None and rewrite:
            if result.status is ComplianceStatus.COMPLIANT:
                console.print("[green]This post is already compliant; no rewrites needed.[/green]")
            else:
                try:
                    rewrites = await checker.suggest_rewrites()
                except AnalysisError as e:
                    console.print(f"[yellow]{e}[/yellow]")
    finally:
        # The record is written in the background; let it land before the loop closes.
        await checker.wait_for_sync()
    return result, rewrites


@click.command("check")
@click.argument("content", required=False)
@click.option(
    "--file",
    "file_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read the post text from a file instead of the argument.",
)
@click.option(
    "--image",
    "image_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Image attached to the post (PNG, JPEG, GIF or WebP).",
)
@click.option("--content-type", default=None, help="Kind of content, e.g. social_media_post. Overrides config file.")
@click.option("--platform", default=None, help="Target platform, e.g. instagram. Overrides config file.")
@click.option(
    "--model",
    type=click.Choice(["anthropic", "openai"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option("--rewrite", is_flag=True, help="Also suggest compliant rewrites when issues are found.")
@click.pass_context
def check_cmd(
    ctx,
    content: str | None,
    file_path: str | None,
    image_path: str | None,
    content_type: str | None,
    platform: str | None,
    model: str | None,
    rewrite: bool,
):
    """Check a healthcare social media post against Ahpra advertising rules.

    The check counts toward your plan's monthly allowance. The result is kept
    so `safepost last` can show it again.

    \b
    Required environment variables:
      ANTHROPIC_API_KEY    Required when using --model anthropic
      OPENAI_API_KEY       Required when using --model openai
    """
    config = dict(ctx.obj["config"])
    if model:
        config["model"] = model

    if content and file_path:
        raise click.UsageError("Pass the post text as an argument or with --file, not both.")
    if file_path:
        content = Path(file_path).read_text()
    if not content or not content.strip():
        raise click.UsageError("Provide the post text as an argument or with --file.")

    if config["model"] == "anthropic" and not config.get("anthropic_api_key"):
        raise click.UsageError("ANTHROPIC_API_KEY environment variable is not set.")
    if config["model"] == "openai" and not config.get("openai_api_key"):
        raise click.UsageError("OPENAI_API_KEY environment variable is not set.")

    image = _load_image(image_path) if image_path else None
    checker = build_checker(config, ctx.obj["store"], ctx.obj["user_id"], analyzer=get_analyzer(config))

    with console.status("Analyzing post..."):
        try:
            result, rewrites = asyncio.run(_run_check(checker, content, content_type, platform, image, rewrite))
        except QuotaExceededError as e:
            console.print(f"[red]{e}[/red]")
            console.print(f"[dim]{usage_line(checker.plan, checker.usage)}[/dim]")
            ctx.exit(1)

    if result is None:
        console.print(f"[red]{checker.error}[/red]")
        ctx.exit(1)

    print_result(console, result)
    if rewrites is not None:
        console.print("\n[bold]Compliant alternatives[/bold]")
        print_rewrites(console, rewrites)
    console.print(f"\n[dim]{usage_line(checker.plan, checker.usage)}[/dim]")
