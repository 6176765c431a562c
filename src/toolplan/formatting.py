"""Rich rendering of traces, plans and strategy reports.

Rendering is a pure function of the data: nothing here changes global
console state. Rich auto-detects TTY and degrades gracefully when piped.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from toolplan.trace import Role

if TYPE_CHECKING:
    from toolplan.orchestrator.models import StrategyReport
    from toolplan.planners.plan import Plan
    from toolplan.toolkit.registry import CapabilityRegistry
    from toolplan.trace import ExecutionTrace, Message

ROLE_STYLES: dict[Role, str] = {
    Role.SYSTEM: "blue",
    Role.TOOL: "magenta",
    Role.USER: "green",
    Role.ASSISTANT: "yellow",
}

STRATEGY_TITLES: dict[str, str] = {
    "stepwise": "Function Calling Stepwise Planner",
    "template": "Template Plan Compiler",
    "auto_invoke": "Single-Turn Auto-Invoke",
}


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def _message_body(message: Message) -> Text:
    body = Text(message.content or "")
    for tc in message.tool_calls:
        if body:
            body.append("\n")
        body.append(f"-> {tc.name}({json.dumps(tc.arguments)}) [{tc.id}]", style="italic")
    return body


def render_message(message: Message) -> Panel:
    style = ROLE_STYLES.get(message.role, "bright_black")
    title = message.role.value
    if message.role == Role.TOOL:
        title = f"tool {message.name or ''} [{message.tool_call_id}]".replace("  ", " ")
    return Panel(
        _message_body(message),
        title=escape(title),
        title_align="left",
        border_style=style,
    )


def render_trace(trace: ExecutionTrace) -> Group:
    """One role-coloured panel per message, in trace order."""
    if not len(trace):
        return Group(Text("(empty trace)", style="dim"))
    return Group(*(render_message(m) for m in trace))


def render_plan(plan: Plan) -> Panel:
    return Panel(Text(plan.render_text()), title="Compiled plan", title_align="left", border_style="cyan")


def render_tools(registry: CapabilityRegistry) -> Group:
    lines = []
    for cap in registry:
        line = Text()
        line.append(cap.signature(), style="bold")
        line.append(f"\n    {cap.description}")
        lines.append(line)
    return Group(*lines)


def render_report(report: StrategyReport, console: Console) -> None:
    """Print a strategy report: the plan or trace, then the answer and timing."""
    title = STRATEGY_TITLES.get(report.strategy, report.strategy)
    console.print(Rule(f"[yellow]{escape(title)}[/yellow]"))

    if report.plan is not None:
        console.print(render_plan(report.plan))
    console.print("[yellow]The plan is:[/yellow]")
    console.print(render_trace(report.trace))

    if report.succeeded:
        console.print("\n[yellow]Execution result:[/yellow]")
        console.print(Text(report.final_answer or "", style="cyan"))
    else:
        error = report.error
        label = type(error).__name__ if error is not None else "Error"
        console.print(
            f"\n[bold red]{escape(report.outcome.value.capitalize())}:[/bold red] "
            f"{escape(label)}: {escape(str(error))}"
        )

    console.print(
        f"\n[yellow]Execution total time: {report.elapsed_seconds:.1f} seconds[/yellow]"
    )


def format_error(message: str, console: Console) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
