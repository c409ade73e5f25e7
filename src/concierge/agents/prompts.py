"""System prompts for the built-in agents.

Prompts live in a static lookup table. An entry is either a string or a
zero-argument callable returning one, so expensive or templated prompts can
be produced lazily.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from concierge.types.agents import AgentDef

logger = logging.getLogger(__name__)

PromptSource = str | Callable[[], str]

PRIMARY_PROMPT = """\
You are Zen, a personal assistant that manages the user's tasks and calendar.

Handle simple, single-step requests yourself. For anything that needs
planning or several changes, delegate with the `task` tool:
first to `planning` to build a plan, confirm it with the user, then to
`execution` to carry it out. Use `information-collector` when you are
missing facts about the user's existing tasks or schedule.

Keep replies short and conversational. Never invent task or event ids."""

PLANNING_PROMPT = """\
You are a planning specialist. Gather context from the user's tasks and
calendar, then produce a prioritised plan using the Eisenhower Matrix
(urgent/important). You work in read-only mode: do not create, change or
delete anything. Finish with a concise plan the primary agent can show to
the user for confirmation."""

EXECUTION_PROMPT = """\
You are an execution specialist. Carry out the approved plan exactly as
given by creating, updating, completing or deleting tasks and calendar
events. Validate inputs and look up ids before changing anything. Track
multi-step work with the internal todo tools. Report what you changed in a
few lines, including anything that failed."""

INFORMATION_COLLECTOR_PROMPT = """\
You are an information collector. Look through the user's projects, tasks
and calendar to answer the question you were given. Do not change anything.
If something cannot be found, say exactly what is missing so the primary
agent can ask the user."""

RESEARCH_PROMPT = """\
You are a research specialist. Investigate the topic you were given, fetch
web pages where useful and combine what you find with the user's tasks and
calendar. Work in read-only mode and return a short, sourced summary."""

CODE_ANALYSIS_PROMPT = """\
You are a code analysis specialist. Explain code, architecture and technical
documentation you are pointed at. You cannot modify anything. Keep findings
specific and brief."""

BUILTIN_PROMPTS: dict[str, PromptSource] = {
    "primary": PRIMARY_PROMPT,
    "planning": PLANNING_PROMPT,
    "execution": EXECUTION_PROMPT,
    "information-collector": INFORMATION_COLLECTOR_PROMPT,
    "research": RESEARCH_PROMPT,
    "code-analysis": CODE_ANALYSIS_PROMPT,
}


class PromptLibrary:
    """Static lookup of prompt references to prompt text."""

    def __init__(self, prompts: Mapping[str, PromptSource] | None = None) -> None:
        self._prompts: dict[str, PromptSource] = dict(
            BUILTIN_PROMPTS if prompts is None else prompts
        )

    def add(self, ref: str, source: PromptSource) -> None:
        self._prompts[ref] = source

    def __contains__(self, ref: object) -> bool:
        return ref in self._prompts

    def resolve(self, ref: str | None) -> str | None:
        """Return the prompt text for *ref*, or None when it is unknown.

        A callable source is invoked on every resolve; its exceptions
        propagate to the caller.
        """
        if ref is None:
            return None
        source = self._prompts.get(ref)
        if source is None:
            return None
        if callable(source):
            return source()
        return source


def fallback_prompt(agent: AgentDef) -> str:
    """Generic prompt built only from the agent's name and description."""
    return (
        f"You are the {agent.name} agent. {agent.description}\n\n"
        "Complete the task you are given using only the tools available to you. "
        "Be concise and report your findings or actions clearly."
    )
