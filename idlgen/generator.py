"""
Generator: walks the module tree and writes one Go file per declared type.

Layout: the root module's types go straight into the output directory and
every other module gets a lowercased subdirectory below its parent's, so
``TestMod::S`` lands in ``<out>/testmod/s.go``.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .artifacts import Artifact, describe_module
from .errors import GenerationError
from .formatter import DEFAULT_FORMATTERS, FormatterChain
from .model import Module
from .render import TemplateRenderer
from .types import go_package

logger = logging.getLogger(__name__)


@dataclass
class GeneratorOptions:
    package: str = "generated"
    includes: List[str] = field(default_factory=list)
    fail_fast: bool = False
    formatters: Sequence[str] = DEFAULT_FORMATTERS


@dataclass
class GenerationReport:
    written: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class Generator:
    """
    Drives describe → render → format → write for every artifact.

    By default a failing artifact is recorded and the walk goes on;
    ``GenerationError`` listing every failure is raised once the walk ends.
    With ``fail_fast`` the first failure raises immediately.
    """

    def __init__(self, options: Optional[GeneratorOptions] = None,
                 renderer=None, formatter=None):
        self.options = options or GeneratorOptions()
        self.renderer = renderer or TemplateRenderer()
        self.formatter = formatter or FormatterChain(self.options.formatters)

    def generate(self, root: Module, output_dir: str) -> GenerationReport:
        report = GenerationReport()
        os.makedirs(output_dir, exist_ok=True)
        self._generate_module(root, output_dir, report)
        if report.failed:
            raise GenerationError(
                f"{len(report.failed)} artifact(s) failed to generate: "
                + ", ".join(path for path, _ in report.failed),
                report.failed)
        return report

    def _generate_module(self, module: Module, directory: str, report: GenerationReport):
        if module.name:
            directory = os.path.join(directory, go_package(module.name))
            os.makedirs(directory, exist_ok=True)

        for artifact in describe_module(module, self.options.package,
                                        self.options.includes):
            self._generate_artifact(artifact, directory, report)

        for sub in module.submodules.values():
            self._generate_module(sub, directory, report)

    def _fail(self, report: GenerationReport, path: str, reason: str):
        logger.error("%s: %s", path, reason)
        report.failed.append((path, reason))
        if self.options.fail_fast:
            raise GenerationError(f"{path}: {reason}", report.failed)

    def _generate_artifact(self, artifact: Artifact, directory: str,
                           report: GenerationReport):
        path = os.path.join(directory, artifact.filename)

        try:
            text = self.renderer.render(artifact)
        except GenerationError as e:
            self._fail(report, path, e.message)
            return

        try:
            formatted = self.formatter.format(text, path)
        except GenerationError as e:
            # Keep the raw text around for debugging the template.
            with open(path + ".unformatted", "w", encoding="utf-8") as f:
                f.write(text)
            self._fail(report, path, e.message)
            return

        with open(path, "w", encoding="utf-8") as f:
            f.write(formatted)
        logger.debug("wrote %s", path)
        report.written.append(path)


def generate(root: Module, output_dir: str,
             options: Optional[GeneratorOptions] = None) -> GenerationReport:
    """Generate Go sources for every declared type under ``root``."""
    return Generator(options).generate(root, output_dir)
