"""Engine: wires provider, tools, agents and config into a running assistant."""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass

from concierge.agents.dispatcher import Dispatcher
from concierge.agents.loader import load_agents_into
from concierge.agents.prompts import PromptLibrary
from concierge.agents.registry import AgentRegistry
from concierge.core.completion import CompletionService, ProviderCompletionService
from concierge.core.config import load_settings
from concierge.core.orchestrator import Orchestrator
from concierge.integrations.base import (
    GOOGLE_CALENDAR,
    TODOIST,
    CredentialStore,
    StaticCredentialStore,
)
from concierge.integrations.google_calendar import GoogleCalendarClient
from concierge.integrations.todoist import TodoistClient
from concierge.providers.registry import create_provider
from concierge.tools.registry import CalendarBackendFactory, TaskBackendFactory, ToolRegistry
from concierge.types.config import Settings
from concierge.types.messages import Completion, DelegationRequest, DelegationResult
from concierge.types.providers import ChatMessage, ProviderAdapter
from concierge.types.tools import RequestContext, TimeContext

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    """All long-lived collaborators for one process."""

    settings: Settings
    registry: AgentRegistry
    prompts: PromptLibrary
    tools: ToolRegistry
    completion: CompletionService
    dispatcher: Dispatcher
    orchestrator: Orchestrator

    def request_context(self, identity: str = "local", session_id: str | None = None) -> RequestContext:
        """Context stamped with the server clock in the configured timezone."""
        return RequestContext(
            identity=identity,
            time=TimeContext.server_now(self.settings.timezone),
            session_id=session_id or uuid.uuid4().hex,
        )

    async def delegate(
        self,
        subagent_type: str,
        prompt: str,
        description: str | None = None,
        *,
        context: RequestContext | None = None,
    ) -> DelegationResult:
        request = DelegationRequest(subagent_type=subagent_type, prompt=prompt, description=description)
        if context is not None:
            return await self.dispatcher.delegate(request, context)
        async with self._own_session() as ctx:
            return await self.dispatcher.delegate(request, ctx)

    async def chat(
        self,
        message: str,
        *,
        context: RequestContext | None = None,
        history: Sequence[ChatMessage] | None = None,
    ) -> Completion:
        if context is not None:
            return await self.orchestrator.respond(message, context, history)
        async with self._own_session() as ctx:
            return await self.orchestrator.respond(message, ctx, history)

    @asynccontextmanager
    async def _own_session(self) -> AsyncIterator[RequestContext]:
        """A one-off session whose scratch pad is dropped when the call ends."""
        ctx = self.request_context()
        try:
            yield ctx
        finally:
            self.tools.scratch_pad.clear(ctx.session_id or "")


def create_engine(
    settings: Settings | None = None,
    *,
    provider: ProviderAdapter | None = None,
    completion: CompletionService | None = None,
    credentials: CredentialStore | None = None,
    registry: AgentRegistry | None = None,
    prompts: PromptLibrary | None = None,
    task_backend_factory: TaskBackendFactory = TodoistClient,
    calendar_backend_factory: CalendarBackendFactory = GoogleCalendarClient,
) -> Engine:
    """Build an :class:`Engine`.

    Args:
        settings: Resolved settings; loaded from env and config.toml when None.
        provider: Injected provider (tests). Built from settings when None.
        completion: Injected completion service, shared by subagents and the
            primary agent. When None, *provider* is wrapped twice: once with
            ``settings.timeout`` for subagents and once with
            ``settings.primary_timeout`` for the primary turn.
        credentials: Token source. Defaults to the tokens in *settings*.
        registry: Agent registry. Built-ins plus ``settings.agent_files`` when None.
        prompts: Prompt library. Built-in prompts when None.
    """
    from concierge import __version__

    settings = settings or load_settings()
    prompts = prompts if prompts is not None else PromptLibrary()

    if registry is None:
        registry = AgentRegistry()
        if settings.agent_files:
            names = load_agents_into(registry, settings.agent_files, prompts)
            logger.info("Registered custom agents: %s", ", ".join(names))

    primary_completion = completion
    if completion is None:
        if provider is None:
            provider = create_provider(
                settings.provider,
                model=settings.model,
                api_key=settings.api_key,
                base_url=settings.base_url,
            )
        completion = ProviderCompletionService(
            provider,
            max_tokens=settings.max_tokens,
            timeout=settings.timeout,
        )
        # The primary turn awaits its delegations, so its limit encloses theirs
        primary_completion = ProviderCompletionService(
            provider,
            max_tokens=settings.max_tokens,
            timeout=max(settings.primary_timeout, settings.timeout),
        )

    if credentials is None:
        credentials = StaticCredentialStore({
            TODOIST: settings.todoist_token,
            GOOGLE_CALENDAR: settings.google_calendar_token,
        })

    tools = ToolRegistry(
        credentials,
        task_backend_factory=task_backend_factory,
        calendar_backend_factory=calendar_backend_factory,
        version=__version__,
    )
    dispatcher = Dispatcher(
        registry,
        tools,
        completion,
        prompts,
        default_temperature=settings.default_temperature,
        max_retries=settings.max_retries,
    )
    tools.attach_dispatcher(dispatcher)
    orchestrator = Orchestrator(
        registry,
        tools,
        primary_completion,
        prompts,
        default_temperature=settings.default_temperature,
        max_retries=settings.max_retries,
    )
    return Engine(
        settings=settings,
        registry=registry,
        prompts=prompts,
        tools=tools,
        completion=completion,
        dispatcher=dispatcher,
        orchestrator=orchestrator,
    )
