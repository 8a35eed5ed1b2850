"""Command-line interface for docselect."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from docselect import __version__
from docselect.config import (
    ProjectConfig,
    find_project_root,
    get_docselect_dir,
    load_config,
    save_config,
    set_config_value,
)
from docselect.exceptions import DocSelectError
from docselect.ui.console import Console

console = Console()


def _get_project_root(path: str | None = None) -> Path:
    """Find the project root or error."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return root

    root = find_project_root()
    if root is None:
        console.error(
            "No docselect project found. Run 'docselect init' first, "
            "or specify a path with --path."
        )
        sys.exit(1)
    return root


def _load(root: Path) -> ProjectConfig:
    try:
        return load_config(root)
    except DocSelectError as e:
        console.error(str(e))
        sys.exit(1)


def _load_documents(root: Path, config: ProjectConfig):
    """Load the context documents of a project."""
    from docselect.store.loader import DocumentLoader

    loader = DocumentLoader(config.context_path(root), config.loader)
    try:
        documents = loader.load()
    except DocSelectError as e:
        console.error(str(e))
        sys.exit(1)

    for name in loader.skipped:
        console.warning(f"Skipped unreadable document: {name}")
    return documents


def _parse_preferences(values: tuple[str, ...]) -> dict[str, float] | None:
    """Parse repeated ``category=weight`` options."""
    if not values:
        return None
    prefs: dict[str, float] = {}
    for item in values:
        category, sep, weight = item.partition("=")
        try:
            if not sep or not category.strip():
                raise ValueError(item)
            prefs[category.strip()] = float(weight)
        except ValueError:
            raise click.BadParameter(
                f"Expected CATEGORY=WEIGHT, got '{item}'", param_hint="--prefer"
            ) from None
    return prefs


@click.group()
@click.version_option(version=__version__, prog_name="docselect")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """docselect - pick the project documents that belong in an AI prompt."""
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console.console, show_path=False)],
    )


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--max-tokens", default=None, type=int, help="Default token budget.")
@click.option("--max-documents", default=None, type=int, help="Default document limit.")
def init(path: str | None, max_tokens: int | None, max_documents: int | None):
    """Initialize docselect for a project and create its context directory."""
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(1)

    console.banner()
    console.info(f"Initializing docselect for: {root}")

    config = _load(root)
    config.name = config.name or root.name
    config.root_path = str(root)
    if max_tokens is not None:
        config.selection.max_tokens = max_tokens
    if max_documents is not None:
        config.selection.max_documents = max_documents

    save_config(root, config)
    console.success(f"Configuration saved to {get_docselect_dir(root).name}/")

    context_dir = config.context_path(root)
    context_dir.mkdir(parents=True, exist_ok=True)
    count = len(_load_documents(root, config))
    console.success(f"Context directory: {context_dir} ({count} documents)")


@main.command("list")
@click.option("--path", "-p", default=None, help="Path to the project root.")
def list_documents(path: str | None):
    """List the context documents of the project."""
    root = _get_project_root(path)
    config = _load(root)
    documents = _load_documents(root, config)

    if not documents:
        console.warning(f"No context documents found in {config.context_path(root)}")
        return
    console.show_documents(documents)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--work-context", "-w", default=None, help="What you are working on.")
@click.option("--file", "-f", "current_file", default=None, help="File you are working on.")
@click.option("--max-tokens", "-t", default=None, type=int, help="Token budget.")
@click.option("--max-documents", "-n", default=None, type=int, help="Document limit.")
@click.option(
    "--prefer", multiple=True, metavar="CATEGORY=WEIGHT",
    help="Category weight (can specify multiple).",
)
@click.option("--semantic", is_flag=True, help="Expand domain keywords in the work context.")
@click.option(
    "--format", "output_format",
    type=click.Choice(["summary", "context", "json"]),
    default="summary",
    help="Output format.",
)
def select(
    path: str | None,
    work_context: str | None,
    current_file: str | None,
    max_tokens: int | None,
    max_documents: int | None,
    prefer: tuple[str, ...],
    semantic: bool,
    output_format: str,
):
    """Select the context documents that best fit the current work.

    Documents are scored against the work context, the current file, their
    category and their age, then packed into the token and document budgets.

    Examples:

        docselect select -w "add OAuth login" -f src/auth/login.ts

        docselect select -w "checkout flow" --prefer requirements=2 --format context
    """
    from docselect.selection.engine import ContextSelector
    from docselect.store.loader import load_project_info
    from docselect.validation import validate_and_truncate_context

    root = _get_project_root(path)
    config = _load(root)
    documents = _load_documents(root, config)

    options = config.selection.to_options(
        work_context=work_context,
        current_file=current_file,
        max_tokens=max_tokens,
        max_documents=max_documents,
        category_preferences=_parse_preferences(prefer),
    )

    scoring = config.scoring
    if semantic:
        scoring = scoring.model_copy(update={"semantic_expansion": True})

    selector = ContextSelector(scoring)
    result = selector.select(documents, options)

    project = load_project_info(root, config.name, config.description)
    formatted = result.render(project)

    if output_format == "json":
        payload = result.model_dump(mode="json", by_alias=True)
        payload["formattedContext"] = formatted
        click.echo(json.dumps(payload, indent=2))
        return

    if output_format == "context":
        click.echo(formatted)
        return

    console.show_selection(result)
    if result.message:
        console.info(result.message)

    if formatted:
        check = validate_and_truncate_context(
            formatted, config.validation.provider, config.validation.max_length
        )
        if not check.is_valid:
            console.warning(check.warning)


@main.command()
@click.argument("source", type=click.File("r"))
@click.option("--provider", default=None, help="AI provider (google, openai, ...).")
@click.option("--limit", default=None, type=int, help="Custom character limit.")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--output", "-o", type=click.File("w"), default=None,
              help="Write the (possibly truncated) context here.")
def validate(source, provider: str | None, limit: int | None, path: str | None, output):
    """Check formatted context (a file, or - for stdin) against provider limits."""
    from docselect.validation import get_context_limits, validate_and_truncate_context

    if provider is None or limit is None:
        root = Path(path).resolve() if path else find_project_root()
        if root is not None:
            config = _load(root)
            provider = provider or config.validation.provider
            limit = limit or config.validation.max_length
    provider = provider or "google"

    content = source.read()
    result = validate_and_truncate_context(content, provider, limit)
    max_length = limit or get_context_limits(provider).max_length

    if result.is_valid:
        console.success(
            f"Context fits: {result.original_length:,} / {max_length:,} chars ({provider})"
        )
    else:
        console.warning(result.warning)

    if output is not None:
        output.write(result.truncated_content if result.truncated_content is not None else content)

    if not result.is_valid:
        sys.exit(2)


# =========================================================================
# Config Management
# =========================================================================

@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Manage docselect configuration."""
    root = _get_project_root(path)
    config = _load(root)

    if action == "show":
        console.console.print_json(json.dumps(config.model_dump(), indent=2))
    elif action == "get":
        if not key:
            console.error("Usage: docselect config get <key>")
            sys.exit(1)
        data = config.model_dump()
        for part in key.split("."):
            if isinstance(data, dict) and part in data:
                data = data[part]
            else:
                console.error(f"Unknown key: {key}")
                sys.exit(1)
        console.console.print(f"{key} = {data}")
    elif action == "set":
        if not key or value is None:
            console.error("Usage: docselect config set <key> <value>")
            sys.exit(1)
        try:
            # Try to parse as JSON for non-string values
            try:
                parsed_value = json.loads(value)
            except json.JSONDecodeError:
                parsed_value = value

            config = set_config_value(config, key, parsed_value)
            save_config(root, config)
            console.success(f"Set {key} = {parsed_value}")
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(1)
        except DocSelectError as e:
            console.error(str(e))
            sys.exit(1)


if __name__ == "__main__":
    main()
