"""
Go source formatting through external tools (goimports, gofmt).
"""

import logging
import subprocess
from typing import List, Sequence

from .errors import GenerationError

logger = logging.getLogger(__name__)

DEFAULT_FORMATTERS = ("goimports", "gofmt")


class FormatterChain:
    """
    Pipes source through the first formatter that accepts it.

    Each tool reads the source on stdin and writes the result on stdout.
    A tool that is not installed is skipped; a tool that rejects the source
    hands over to the next one.  When every installed tool rejects the
    source, ``format()`` raises GenerationError.  When none is installed the
    source is returned as is.
    """

    def __init__(self, tools: Sequence[str] = DEFAULT_FORMATTERS):
        self.tools = list(tools)
        self._missing = set()

    def _run(self, tool: str, text: str) -> str:
        result = subprocess.run([tool], input=text, capture_output=True,
                                text=True, check=True)
        return result.stdout

    def format(self, text: str, name: str = "<source>") -> str:
        errors: List[str] = []
        for tool in self.tools:
            if tool in self._missing:
                continue
            try:
                return self._run(tool, text)
            except FileNotFoundError:
                logger.warning("formatter %s not found; skipping it", tool)
                self._missing.add(tool)
            except subprocess.CalledProcessError as e:
                reason = (e.stderr or "").strip() or f"exit status {e.returncode}"
                logger.debug("%s rejected %s: %s", tool, name, reason)
                errors.append(f"{tool}: {reason}")

        if errors:
            raise GenerationError(f"failed to format {name}: {'; '.join(errors)}")
        if self.tools:
            logger.warning("no formatter available; writing %s unformatted", name)
        return text
