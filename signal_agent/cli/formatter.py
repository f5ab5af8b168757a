"""
Output formatting for the command line.
"""
import json
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from signal_agent.data.data_structures import AgentRun, SignalRecord
from signal_agent.signal_generation import SignalAnalysis

console = Console()

_RUN_STATUS_STYLES = {"success": "green", "partial": "yellow", "failed": "red"}


class OutputFormatter:
    """Format signals, analyses and runs for display."""

    @staticmethod
    def _color_code_signal(signal: str) -> str:
        """Apply color coding to signals based on type."""
        if signal == "BUY":
            return "[green]BUY[/green]"
        elif signal == "SELL":
            return "[red]SELL[/red]"
        elif signal == "HOLD":
            return "[yellow]HOLD[/yellow]"
        return f"[dim]{signal}[/dim]"

    @staticmethod
    def _signed(value: float) -> str:
        return f"{'+' if value >= 0 else ''}{value:.2f}%"

    @staticmethod
    def format_signals_table(records: List[SignalRecord], title: str = "Latest Signals") -> None:
        """
        Print stored signals as a table.

        Args:
            records: Signals to show, in display order
            title: Table title
        """
        if not records:
            console.print("[yellow]No signals to display[/yellow]")
            return

        table = Table(title=title, show_header=True, header_style="bold magenta")
        table.add_column("Token", style="cyan", no_wrap=True)
        table.add_column("Signal", no_wrap=True)
        table.add_column("Confidence", justify="right")
        table.add_column("Price", justify="right")
        table.add_column("1h", justify="right")
        table.add_column("6h", justify="right")
        table.add_column("24h", justify="right")
        table.add_column("Generated", style="dim")

        for record in records:
            table.add_row(
                record.token,
                OutputFormatter._color_code_signal(record.signal),
                f"{record.confidence}%",
                f"${record.price_at_signal:,.2f}",
                OutputFormatter._signed(record.change_1h),
                OutputFormatter._signed(record.change_6h),
                OutputFormatter._signed(record.change_24h),
                record.timestamp[:19],
            )

        console.print(table)

    @staticmethod
    def format_analysis(analysis: SignalAnalysis, points: int) -> None:
        """Print one offline engine analysis as a panel."""
        decision = analysis.decision
        changes = analysis.changes
        border_style = {"BUY": "green", "SELL": "red"}.get(decision.signal_type.value, "yellow")

        content = (
            f"[bold]Signal:[/bold] {OutputFormatter._color_code_signal(decision.signal_type.value)}    "
            f"[bold]Confidence:[/bold] {decision.confidence}%\n"
            f"\n"
            f"[bold]Changes:[/bold] 1h {OutputFormatter._signed(changes.change_1h)}  "
            f"6h {OutputFormatter._signed(changes.change_6h)}  "
            f"24h {OutputFormatter._signed(changes.change_24h)}\n"
            f"[bold]History:[/bold] {points} points\n"
            f"\n"
            f"[bold]Rationale:[/bold]\n{decision.rationale}"
        )
        console.print(Panel(content, title=f"[*] {analysis.token} Analysis", border_style=border_style))

    @staticmethod
    def format_run(run: AgentRun) -> None:
        style = _RUN_STATUS_STYLES.get(run.status, "dim")
        console.print(
            f"[{style}]Run {run.status.upper()}[/{style}] "
            f"signals: {run.signals_generated}/{run.prices_fetched} "
            f"AI calls: {run.ai_calls_made} "
            f"duration: {run.duration_ms}ms"
        )
        if run.error:
            console.print(f"[dim]{run.error}[/dim]")

    @staticmethod
    def format_json(results: List[Dict[str, Any]]) -> str:
        if len(results) == 1:
            return json.dumps(results[0], indent=2)
        return json.dumps(results, indent=2)

    @staticmethod
    def print_header(title: str) -> None:
        console.print(Panel(f"[bold]{title}[/bold]", border_style="cyan"))

    @staticmethod
    def print_progress(message: str, emoji: str = "[*]") -> None:
        """Print a progress message."""
        console.print(f"{emoji} {message}", style="dim")

    @staticmethod
    def print_success(message: str) -> None:
        """Print a success message."""
        console.print(f"[OK] {message}", style="green")

    @staticmethod
    def print_error(message: str) -> None:
        """Print an error message."""
        console.print(f"[ERROR] {message}", style="red bold")

    @staticmethod
    def print_warning(message: str) -> None:
        """Print a warning message."""
        console.print(f"[WARN] {message}", style="yellow")
