"""
Interactive main menu shown by ``run`` without a mode flag.
"""

from __future__ import annotations

from enum import Enum

import click


class MenuChoice(str, Enum):
    FULL = "full"
    STEP_BY_STEP = "step_by_step"
    REMOVE = "remove"
    EXIT = "exit"


_ENTRIES = (
    ("1", "Full Installation", MenuChoice.FULL),
    ("2", "Step-by-step Installation", MenuChoice.STEP_BY_STEP),
    ("3", "Remove Existing Installation", MenuChoice.REMOVE),
    ("4", "Exit", MenuChoice.EXIT),
)


def show_menu() -> MenuChoice:
    """Show the menu until a valid entry is picked.  Ctrl-C → Exit."""
    while True:
        click.echo()
        click.secho("🧰 ERPNext Installation", fg="cyan", bold=True)
        for key, label, _ in _ENTRIES:
            click.echo(f"   {key}) {label}")
        try:
            answer = click.prompt("Select option", default="", show_default=False).strip()
        except click.Abort:
            return MenuChoice.EXIT

        for key, _, choice in _ENTRIES:
            if answer == key:
                return choice
        click.secho("❌ Invalid option", fg="red")
