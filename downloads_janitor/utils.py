"""
Utility functions for the Downloads Janitor.

Includes:
- Console output helpers
- Rules table rendering
- JSON load helper
"""

import json
from pathlib import Path
from typing import Any
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

# Global console instance
console = Console()

def print_header(title: str, subtitle: str = ""):
    """Print a styled header."""
    console.print(Panel(f"[bold blue]{title}[/bold blue]\n[italic]{subtitle}[/italic]", expand=False))

def print_rules_table(rules: list, index_items: list[tuple[str, str]]):
    """
    Print the configured rules and the effective extension lookup.

    Args:
        rules: Rule objects in registration order.
        index_items: (extension, destination) pairs from the built index.
    """
    table = Table(title="Configured Rules")
    table.add_column("#", style="dim")
    table.add_column("Extensions", style="cyan")
    table.add_column("Destination", style="magenta")

    for i, rule in enumerate(rules, 1):
        table.add_row(str(i), escape(", ".join(rule.extensions)), escape(rule.destination))

    console.print(table)

    if not index_items:
        print_warning("Extension index is empty - no files will be moved.")
        return

    lookup = Table(title="Effective Lookup (last rule wins)")
    lookup.add_column("Extension", style="cyan")
    lookup.add_column("Destination", style="green")
    for ext, destination in index_items:
        lookup.add_row(escape(ext), escape(destination))
    console.print(lookup)

def print_info(msg: str):
    console.print(f"[bold cyan]INFO:[/bold cyan] {msg}")

def print_error(msg: str):
    console.print(f"[bold red]ERROR:[/bold red] {msg}")

def print_warning(msg: str):
    console.print(f"[bold yellow]WARNING:[/bold yellow] {msg}")

def print_success(msg: str):
    console.print(f"[bold green]SUCCESS:[/bold green] {msg}")


def load_json(path: Path) -> Any:
    """
    Load data from a JSON file.

    Args:
        path: The input file path.

    Returns:
        The deserialized data.
    """
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)
