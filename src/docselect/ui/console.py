"""Rich-powered console output for docselect."""

from __future__ import annotations

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table

from docselect import __version__
from docselect.selection.models import ContextDocument, SelectionResult, SelectionStatus


class Console:
    """Terminal output for docselect using Rich."""

    def __init__(self) -> None:
        self.console = RichConsole()

    def banner(self) -> None:
        """Show the docselect banner."""
        self.console.print(
            Panel(
                f"[bold cyan]docselect[/bold cyan] [dim]v{__version__}[/dim]\n"
                "[dim]Budgeted context selection for AI prompts[/dim]",
                border_style="cyan",
                padding=(1, 2),
            )
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def show_documents(self, documents: list[ContextDocument]) -> None:
        """Display loaded documents in a table."""
        table = Table(title="Context Documents", border_style="cyan")
        table.add_column("ID", style="bold", no_wrap=True)
        table.add_column("Title")
        table.add_column("Category", style="magenta")
        table.add_column("Tags", style="dim")
        table.add_column("Modified", justify="right")

        for doc in documents:
            modified = doc.last_modified.strftime("%Y-%m-%d %H:%M") if doc.last_modified else "-"
            table.add_row(doc.id or "-", doc.title, doc.category, ", ".join(doc.tags), modified)

        self.console.print(table)

    def show_selection(self, result: SelectionResult) -> None:
        """Display a selection summary with per-document scores."""
        color = {
            SelectionStatus.COMPLETE: "green",
            SelectionStatus.BUDGET_LIMITED: "yellow",
            SelectionStatus.NO_DOCUMENTS: "red",
        }[result.status]

        self.console.print(
            Panel(
                f"[bold]Status:[/bold] [{color}]{result.status.value}[/{color}]\n"
                f"[bold]Tokens:[/bold] {result.total_tokens:,} / {result.token_budget:,} "
                f"({result.budget_used_pct:.0f}%)\n"
                f"[bold]Documents:[/bold] {len(result.selected_documents)} selected "
                f"(limit {result.document_budget}) from {result.total_documents} candidates\n"
                f"[bold]Skipped:[/bold] {result.skipped_documents} malformed",
                title="[bold]Context Selection[/bold]",
                border_style=color,
            )
        )

        if not result.selected_documents:
            return

        table = Table(border_style="cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("ID", style="bold", no_wrap=True)
        table.add_column("Category", style="magenta")
        table.add_column("Score", justify="right", style="cyan")
        table.add_column("Keywords", justify="right")
        table.add_column("File", justify="right")
        table.add_column("Recency", justify="right")
        table.add_column("Weight", justify="right")

        for i, doc in enumerate(result.selected_documents, 1):
            b = doc.score_breakdown
            table.add_row(
                str(i),
                doc.id or "-",
                doc.category,
                f"{doc.relevance_score or 0.0:.3f}",
                f"{b.keyword_overlap:.2f}" if b else "-",
                f"{b.file_bonus:.2f}" if b else "-",
                f"{b.recency:.3f}" if b else "-",
                f"{b.category_weight:.2f}" if b else "-",
            )

        self.console.print(table)
