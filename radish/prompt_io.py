from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol

SKIP_ANSWER = "-"


class PromptIO(Protocol):
    def print(self, text: str = "") -> None: ...

    def input(self, prompt: str = "") -> str: ...


class ConsolePromptIO:
    def print(self, text: str = "") -> None:
        print(text)

    def input(self, prompt: str = "") -> str:
        return input(prompt)


@dataclass(slots=True)
class BufferPromptIO:
    """Scripted answers for tests; every prompt shown is recorded."""

    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    prompts: List[str] = field(default_factory=list)

    def print(self, text: str = "") -> None:
        self.outputs.append(text)

    def input(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise AssertionError(f"No scripted answer left for prompt {prompt!r}")
        return self.inputs.pop(0)


def ask(prompt_io: PromptIO, prompt: str, default: Optional[str] = None) -> Optional[str]:
    """Prompt with ``default`` substituted for ``%%``.

    An empty answer accepts the default and ``-`` clears the value.
    """
    shown = prompt.replace("%%", default if default else " ")
    answer = prompt_io.input(shown).strip()
    if answer == SKIP_ANSWER:
        return None
    if not answer:
        return default or None
    return answer


def confirm(prompt_io: PromptIO, prompt: str, *, default: bool) -> bool:
    """Single-letter yes/no question; anything but the opposite letter keeps ``default``."""
    answer = prompt_io.input(prompt).strip().lower()[:1]
    if default:
        return answer != "n"
    return answer == "y"
