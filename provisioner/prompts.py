# provisioner/prompts.py
# -*- coding: utf-8 -*-
"""
Sources of interactive operator input.

The provisioner is often started from a pipe or another tool whose stdin
is not the operator, so prompts are read from the controlling terminal
device rather than from inherited stdin.
Tests substitute a ScriptedInputSource.
"""

import logging
import select
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Iterable, List, Optional, Union

from provisioner.errors import InputUnavailableError

module_logger = logging.getLogger(__name__)


class InputSource(ABC):
    """Something that can answer a prompt with one line of text."""

    @abstractmethod
    def read_line(
        self, prompt: str, timeout: Optional[float] = None
    ) -> Optional[str]:
        """
        Show ``prompt`` and return the answer without its line ending.

        Returns None when the source is exhausted (EOF) or ``timeout``
        seconds pass without an answer.

        Raises:
            InputUnavailableError: The source cannot be reached at all.
        """


class TerminalInputSource(InputSource):
    """Reads from the controlling terminal (``/dev/tty``) directly."""

    def __init__(
        self,
        tty_path: Union[str, Path] = "/dev/tty",
        logger: Optional[logging.Logger] = None,
    ):
        self.tty_path = Path(tty_path)
        self.logger = logger or module_logger

    def read_line(
        self, prompt: str, timeout: Optional[float] = None
    ) -> Optional[str]:
        try:
            with open(
                self.tty_path, "r", encoding="utf-8", errors="replace"
            ) as reader, open(
                self.tty_path, "a", encoding="utf-8"
            ) as writer:
                return self._prompt(reader, writer, prompt, timeout)
        except OSError as e:
            raise InputUnavailableError(
                f"No controlling terminal available at {self.tty_path} "
                f"({e.strerror}). Run the provisioner from an interactive shell."
            ) from e

    def _prompt(self, reader, writer, prompt: str, timeout: Optional[float]):
        writer.write(prompt)
        writer.flush()
        if timeout is not None:
            ready, _, _ = select.select([reader], [], [], timeout)
            if not ready:
                writer.write("\n")
                writer.flush()
                self.logger.debug(
                    f"No answer within {timeout}s for prompt: {prompt.strip()}"
                )
                return None
        line = reader.readline()
        if line == "":
            return None
        return line.rstrip("\r\n")


class ScriptedInputSource(InputSource):
    """
    Answers prompts from a prepared sequence.

    A None entry behaves like a timeout; running out of answers behaves
    like EOF.
    """

    def __init__(self, answers: Iterable[Optional[str]]):
        self._answers = deque(answers)
        self.prompts: List[str] = []

    def read_line(
        self, prompt: str, timeout: Optional[float] = None
    ) -> Optional[str]:
        self.prompts.append(prompt)
        if not self._answers:
            return None
        return self._answers.popleft()
