"""Operator prompts over standard input.

Every interactive question in a provisioning run goes through a Prompter so
the input stream can be scripted in tests. Answers are normalized by
stripping surrounding whitespace only; matching is case-sensitive.
"""

from __future__ import annotations

import sys
from typing import Mapping, Optional, TextIO, TypeVar

from rpi_usb_share.domain.models import PromptState
from rpi_usb_share.logging import LoggerFactory
from rpi_usb_share.storage.exceptions import SetupAborted


log = LoggerFactory.for_setup(job_id="-")

AFFIRMATIVE = frozenset({"y", "yes"})
INVALID_OPTION_MESSAGE = "Invalid option. Please try again."

T = TypeVar("T")


def normalize_token(raw: Optional[str]) -> str:
    if raw is None:
        return ""
    return raw.strip()


def is_affirmative(raw: Optional[str]) -> bool:
    return normalize_token(raw) in AFFIRMATIVE


class Prompter:
    """Reads operator answers from a stream and writes messages to another."""

    def __init__(
        self,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
    ) -> None:
        self._stdin = stdin
        self._stdout = stdout
        self.input_closed = False

    @property
    def stdin(self) -> TextIO:
        return self._stdin if self._stdin is not None else sys.stdin

    @property
    def stdout(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    def say(self, message: str = "") -> None:
        self.stdout.write(f"{message}\n")
        self.stdout.flush()

    def ask(self, prompt: str) -> str:
        """Print a prompt on its own line and return the normalized answer.

        End of input reads as an empty answer, which no prompt accepts as
        affirmative.
        """
        self.say(prompt)
        line = self.stdin.readline()
        if not line:
            self.input_closed = True
        answer = normalize_token(line)
        log.debug(f"Prompt {prompt!r} answered {answer!r}")
        return answer

    def confirm(self, prompt: str) -> bool:
        return is_affirmative(self.ask(prompt))

    def choose(self, prompt: str, options: Mapping[str, T]) -> T:
        """Re-prompt until the answer is one of the option tokens.

        Raises:
            SetupAborted: If standard input closes before a valid answer
        """
        state = PromptState.PROMPTING
        answer = ""
        while state is PromptState.PROMPTING:
            answer = self.ask(prompt)
            if answer in options:
                state = PromptState.RESOLVED
            elif self.input_closed:
                state = PromptState.ABORTED
            else:
                self.say(INVALID_OPTION_MESSAGE)
        if state is PromptState.ABORTED:
            raise SetupAborted("prompt", "standard input closed")
        return options[answer]
