"""
Text rendering of artifact records through Jinja2 templates.

The renderer is the only stage that knows Go syntax; anything with a
``render(artifact) -> str`` method can replace it in the generator.
"""

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from .artifacts import Artifact
from .errors import GenerationError

ENV = Environment(
    loader=PackageLoader("idlgen", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)


def params(items) -> str:
    """``a int32, b string`` from a list of GoParam."""
    return ", ".join(f"{p.name} {p.go_type}" for p in items)


def results(items) -> str:
    """Named result list ending in ``err error``."""
    return "(" + ", ".join([f"{p.name} {p.go_type}" for p in items] + ["err error"]) + ")"


def names(items) -> str:
    return ", ".join(p.name for p in items)


def positional(items, prefix: str) -> str:
    """``a0, a1`` for the servant's positional locals."""
    return ", ".join(f"{prefix}{i}" for i in range(len(items)))


def go_slice(items, prefix: str) -> str:
    return "[]interface{}{" + positional(items, prefix) + "}"


ENV.filters.update(params=params, results=results, names=names,
                   positional=positional, go_slice=go_slice)


class TemplateRenderer:
    """Renders each record with the template it names."""

    def __init__(self, env: Environment = ENV):
        self.env = env

    def render(self, artifact: Artifact) -> str:
        if not artifact.template:
            raise TypeError(f"{type(artifact).__name__} names no template")
        try:
            templ = self.env.get_template(artifact.template)
            return templ.render(a=artifact, header=artifact.header)
        except TemplateError as e:
            raise GenerationError(
                f"template {artifact.template} failed for {artifact.name}: {e}") from e
