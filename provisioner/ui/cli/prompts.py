"""
Terminal prompter — the interactive Prompter backed by click.

Ctrl-C / EOF at any prompt aborts the run (``KeyboardInterrupt``) so the
install use case can report it and exit 1.
"""

from __future__ import annotations

import click

from provisioner.core.services.prompter import Prompter


class ClickPrompter(Prompter):
    @property
    def interactive(self) -> bool:
        return True

    def confirm(self, question: str, default: bool) -> bool:
        try:
            return click.confirm(click.style(question, fg="yellow"), default=default)
        except click.Abort:
            raise KeyboardInterrupt from None

    def ask(self, question: str, default: str) -> str:
        try:
            return click.prompt(question, default=default or None, show_default=bool(default))
        except click.Abort:
            raise KeyboardInterrupt from None

    def ask_secret(self, question: str) -> str:
        try:
            return click.prompt(question, hide_input=True, confirmation_prompt=True)
        except click.Abort:
            raise KeyboardInterrupt from None

    def choose(self, question: str, options: list[str], default: int = 0) -> int:
        click.secho(question, fg="cyan")
        for number, label in enumerate(options, start=1):
            click.echo(f"  {number}) {label}")
        try:
            picked = click.prompt(
                "Enter choice",
                type=click.IntRange(1, len(options)),
                default=default + 1,
            )
        except click.Abort:
            raise KeyboardInterrupt from None
        return picked - 1
