"""Workbench command completer for prompt_toolkit.

Completes command names, dig action names, and the ``none`` position
keyword.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prompt_toolkit.completion import Completer, Completion

from mcpacketfix.console import COMMANDS, DIG_ACTIONS

if TYPE_CHECKING:
    from collections.abc import Iterable

    from prompt_toolkit.completion import CompleteEvent
    from prompt_toolkit.document import Document

# Local REPL commands that are not handled by the workbench
LOCAL_COMMANDS = {"exit", "quit"}

# Choices offered per (command, argument index)
_ARGUMENT_CHOICES: dict[str, list[list[str]]] = {
    "dig": [DIG_ACTIONS, ["none"]],
    "player": [["none"]],
}


class WorkbenchCompleter(Completer):
    """Completer for workbench command lines."""

    def __init__(self, commands: Iterable[str] = COMMANDS) -> None:
        self.commands = sorted(commands)

    def get_completions(
        self,
        document: Document,
        complete_event: CompleteEvent,  # noqa: ARG002
    ) -> Iterable[Completion]:
        """Yield completions based on the current input."""
        text = document.text_before_cursor
        words = text.split()

        # If text ends with a space, the user is starting a new word
        typing_new_word = text.endswith(" ") if text else True

        if not words or (len(words) == 1 and not typing_new_word):
            prefix = words[0] if words else ""
            yield from self._complete_command(prefix)
            return

        choices = _ARGUMENT_CHOICES.get(words[0].lower())
        if choices is None:
            return

        # words[0] is the command, so the argument index is len(words) - 2
        # unless we're typing a new word
        if typing_new_word:
            arg_index = len(words) - 1
            prefix = ""
        else:
            arg_index = len(words) - 2
            prefix = words[-1]

        if arg_index < len(choices):
            yield from _complete_choice(choices[arg_index], prefix)

    def _complete_command(self, prefix: str) -> Iterable[Completion]:
        """Yield command name completions matching the prefix."""
        prefix_lower = prefix.lower()

        for cmd in self.commands:
            if cmd.startswith(prefix_lower):
                yield Completion(cmd, start_position=-len(prefix))

        for cmd in sorted(LOCAL_COMMANDS):
            if cmd.startswith(prefix_lower):
                yield Completion(cmd, start_position=-len(prefix))


def _complete_choice(options: list[str], prefix: str) -> Iterable[Completion]:
    prefix_lower = prefix.lower()
    for option in options:
        if option.startswith(prefix_lower):
            yield Completion(option, start_position=-len(prefix))
