"""Interactive workbench REPL using prompt_toolkit."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from prompt_toolkit.key_binding import KeyBindings

if TYPE_CHECKING:
    from prompt_toolkit.key_binding.key_processor import KeyPressEvent

    from mcpacketfix.console import Workbench

from mcpacketfix.completer import LOCAL_COMMANDS, WorkbenchCompleter
from mcpacketfix.config import HISTORY_FILE, ensure_config_dir
from mcpacketfix.console import ConsoleError


def _create_key_bindings() -> KeyBindings:
    """Create custom key bindings for the REPL.

    Ctrl+C and Ctrl+D behavior:
    - If the current line has text, abandon it and start fresh
    - If the current line is empty, exit the application
    """
    kb = KeyBindings()

    def _abandon_or_exit(event: KeyPressEvent, exception: type[BaseException]) -> None:
        buffer = event.app.current_buffer
        if buffer.text:
            print()
            buffer.reset()
            event.app.renderer.reset()  # Force prompt redraw
        else:
            event.app.exit(exception=exception)

    @kb.add("c-c")
    def _(event: KeyPressEvent) -> None:
        _abandon_or_exit(event, KeyboardInterrupt)

    @kb.add("c-d")
    def _(event: KeyPressEvent) -> None:
        _abandon_or_exit(event, EOFError)

    return kb


def run_repl(workbench: Workbench) -> None:
    """Run the interactive workbench loop until the user exits."""
    ensure_config_dir()

    session: PromptSession[str] = PromptSession(
        history=FileHistory(str(HISTORY_FILE)),
        completer=WorkbenchCompleter(),
        complete_while_typing=False,
        key_bindings=_create_key_bindings(),
    )

    while True:
        try:
            text = session.prompt(
                HTML("<ansigreen>packetfix</ansigreen>> "),
            ).strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye.")
            break

        if not text:
            continue

        if text in LOCAL_COMMANDS:
            print("Goodbye.")
            break

        execute_line(workbench, text)


def execute_line(workbench: Workbench, text: str) -> bool:
    """Run one workbench command, printing its output or error.

    Returns True if the command succeeded.
    """
    try:
        output = workbench.execute(text)
    except ConsoleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return False
    if output:
        print(output)
    return True
