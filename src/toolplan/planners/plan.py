"""Compiled plans for the template plan compiler.

A plan is an ordered list of capability invocations. Each step stores its
return value in a named output slot; string arguments are Jinja2 templates
that may reference slots produced by earlier steps::

    {
      "steps": [
        {"capability": "get_current_utc_time", "arguments": {}, "output": "now"},
        {"capability": "get_weather_for_city",
         "arguments": {"city_name": "Madrid"}, "output": "weather"},
        {"capability": "create_image_from_text",
         "arguments": {"description": "Madrid at {{ now }}: {{ weather }}"},
         "output": "image"}
      ],
      "result": "{{ image }}"
    }

All reference checks happen in :func:`parse_plan`, so a plan that reaches
execution never refers to a slot that does not exist yet.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Union

from jinja2 import StrictUndefined, Template, TemplateError, TemplateSyntaxError, meta, nodes
from jinja2.sandbox import SandboxedEnvironment
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from toolplan.exceptions import PlanParseError

if TYPE_CHECKING:
    from toolplan.toolkit.registry import CapabilityRegistry

logger = logging.getLogger(__name__)

ArgumentValue = Union[str, bool, int, float, None]

_env = SandboxedEnvironment(
    undefined=StrictUndefined, autoescape=False, keep_trailing_newline=True
)

_ALLOWED_NODES = (
    nodes.Template,
    nodes.Output,
    nodes.TemplateData,
    nodes.Name,
    nodes.Const,
    nodes.Concat,
    nodes.Filter,
    nodes.Keyword,
)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class PlanStep(BaseModel):
    """One capability invocation with its argument bindings."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    capability: str = Field(min_length=1)
    arguments: dict[str, ArgumentValue] = Field(default_factory=dict)
    output: str

    @field_validator("output")
    @classmethod
    def _output_is_identifier(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"output slot {value!r} is not a valid identifier")
        return value

    def references(self) -> set[str]:
        """Slots referenced by this step's templated arguments."""
        refs: set[str] = set()
        for value in self.arguments.values():
            if isinstance(value, str):
                refs |= template_references(value)
        return refs


class Plan(BaseModel):
    """An ordered, acyclic sequence of steps plus an optional result template."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    steps: list[PlanStep] = Field(min_length=1)
    result: str | None = None

    @property
    def outputs(self) -> list[str]:
        return [s.output for s in self.steps]

    def render_text(self) -> str:
        """Readable, one-line-per-step form of the plan."""
        lines = []
        for i, step in enumerate(self.steps, 1):
            args = ", ".join(f"{k}={v!r}" for k, v in step.arguments.items())
            lines.append(f"{i}. {step.output} = {step.capability}({args})")
        if self.result is not None:
            lines.append(f"=> {self.result!r}")
        else:
            lines.append(f"=> {{{{ {self.steps[-1].output} }}}}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.render_text()


def _compile(text: str) -> tuple[Template, set[str]]:
    """Parse, restrict and compile one template; return it with its slot names.

    Only literal text, ``{{ slot }}`` expressions, ``~`` concatenation and
    filters taking literal or slot arguments are accepted. Attribute and
    item access, calls, tests and statement blocks are rejected.

    Raises:
        PlanParseError: On syntax errors, disallowed constructs or unknown
            filters.
    """
    try:
        ast = _env.parse(text)
    except TemplateSyntaxError as exc:
        raise PlanParseError(f"Invalid template {text!r}: {exc.message}") from exc

    for node in ast.find_all(nodes.Node):
        if not isinstance(node, _ALLOWED_NODES):
            raise PlanParseError(
                f"Invalid template {text!r}: {type(node).__name__.lower()} "
                "is not allowed in plan templates"
            )

    try:
        template = _env.from_string(text)
    except TemplateError as exc:
        raise PlanParseError(f"Invalid template {text!r}: {exc.message}") from exc
    return template, set(meta.find_undeclared_variables(ast))


def template_references(text: str) -> set[str]:
    """Variables referenced by a Jinja2 template string.

    Raises:
        PlanParseError: If the template is not a valid plan template.
    """
    return _compile(text)[1]


def _render(text: str, slots: dict[str, str]) -> str:
    template, _ = _compile(text)
    try:
        return template.render(**slots)
    except TemplateError as exc:
        raise PlanParseError(f"Template {text!r} failed to render: {exc}") from exc


def render_value(value: ArgumentValue, slots: dict[str, str]) -> ArgumentValue:
    """Resolve one argument binding against the slots produced so far."""
    if not isinstance(value, str):
        return value
    return _render(value, slots)


def render_result(plan: Plan, slots: dict[str, str]) -> str:
    """Final answer: the rendered result template, or the last step's output."""
    if plan.result is None:
        return slots[plan.steps[-1].output]
    return _render(plan.result, slots)


def extract_json(text: str) -> str:
    """Strip a Markdown code fence around the plan, if there is one."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def parse_plan(text: str, registry: CapabilityRegistry) -> Plan:
    """Parse and validate a plan emitted by the model.

    Raises:
        PlanParseError: If the text is not a JSON plan, a step names an
            unknown capability or undeclared/missing parameters, an output
            slot is reused, a literal argument has the wrong type, or any
            template is malformed or references a slot that is not produced
            by a strictly earlier step.
    """
    try:
        data = json.loads(extract_json(text))
    except json.JSONDecodeError as exc:
        raise PlanParseError(f"Plan is not valid JSON: {exc}", raw=text) from exc

    try:
        plan = Plan.model_validate(data)
    except ValidationError as exc:
        raise PlanParseError(f"Plan is malformed: {exc}", raw=text) from exc

    try:
        validate_plan(plan, registry)
    except PlanParseError as exc:
        exc.raw = text
        raise
    return plan


def validate_plan(plan: Plan, registry: CapabilityRegistry) -> None:
    """Check a structurally valid plan against the registry and slot order."""
    produced: set[str] = set()
    for index, step in enumerate(plan.steps, 1):
        if step.capability not in registry:
            raise PlanParseError(
                f"Step {index} uses unknown capability '{step.capability}'"
            )

        capability = registry.get(step.capability)
        declared = {p.name for p in capability.parameters}
        unexpected = sorted(set(step.arguments) - declared)
        if unexpected:
            raise PlanParseError(
                f"Step {index} passes undeclared argument(s) to "
                f"'{step.capability}': {', '.join(unexpected)}"
            )
        missing = [
            p.name for p in capability.parameters
            if p.required and step.arguments.get(p.name) is None
        ]
        if missing:
            raise PlanParseError(
                f"Step {index} is missing required argument(s) for "
                f"'{step.capability}': {', '.join(missing)}"
            )
        # templates always render to strings
        for param in capability.parameters:
            value = step.arguments.get(param.name)
            if value is not None and not param.accepts(value):
                raise PlanParseError(
                    f"Step {index} passes {type(value).__name__} for "
                    f"'{param.name}' of '{step.capability}', which expects {param.type}"
                )

        dangling = step.references() - produced
        if dangling:
            later = dangling & set(plan.outputs)
            kind = "a later or its own" if later else "an unknown"
            raise PlanParseError(
                f"Step {index} references {kind} slot: {', '.join(sorted(dangling))}"
            )

        if step.output in produced:
            raise PlanParseError(f"Output slot '{step.output}' is produced twice")
        produced.add(step.output)

    if plan.result is not None:
        dangling = template_references(plan.result) - produced
        if dangling:
            raise PlanParseError(
                f"Result references unknown slot: {', '.join(sorted(dangling))}"
            )
    logger.debug("Plan validated: %d step(s)", len(plan.steps))
