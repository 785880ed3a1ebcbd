"""Collaboration Store - persistence of conversations, outputs and shared data.

The orchestrator persists everything an agent call produces through a
CollaborationStore: the per-agent conversation log, an output record per call,
the latest structured data each agent shared with its peers, collaboration
sessions, and the agent-to-agent message log.

Only the in-memory implementation ships here. A database-backed store
implements the same protocol.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, Protocol, runtime_checkable

from novel_orchestrator.models import (
    AgentOutput,
    CollaborationMessage,
    CollaborationSession,
    ConversationTurn,
)

# Default number of entries returned by a collaboration history query
COLLABORATION_HISTORY_LIMIT = 100


@runtime_checkable
class CollaborationStore(Protocol):
    """Protocol defining the storage the orchestrator needs."""

    async def append_message(
        self, project_id: str, agent_id: str, turn: ConversationTurn
    ) -> None:
        """Append a turn to an agent's conversation log for a project."""
        ...

    async def get_history(
        self, project_id: str, agent_id: str, limit: int
    ) -> list[ConversationTurn]:
        """Return the most recent ``limit`` turns, oldest first."""
        ...

    async def clear_history(self, project_id: str, agent_id: str) -> None:
        """Delete an agent's conversation log for a project."""
        ...

    async def record_output(
        self, project_id: str, agent_id: str, output: AgentOutput
    ) -> None:
        """Store the output of one agent call."""
        ...

    async def list_outputs(
        self, project_id: str, agent_id: str | None = None
    ) -> list[AgentOutput]:
        """Return recorded outputs for a project, oldest first."""
        ...

    async def save_collaboration_data(
        self, project_id: str, agent_id: str, data: dict[str, Any]
    ) -> None:
        """Replace the data an agent shares with its peers."""
        ...

    async def get_collaboration_data(
        self, project_id: str, exclude_agent_id: str | None = None
    ) -> dict[str, dict[str, Any]]:
        """Return shared data keyed by agent id, most recently updated first."""
        ...

    async def save_session(self, session: CollaborationSession) -> None:
        """Insert or replace a collaboration session."""
        ...

    async def get_session(self, session_id: str) -> CollaborationSession | None:
        """Return a session, or None if unknown."""
        ...

    async def append_collaboration_message(
        self, project_id: str, message: CollaborationMessage
    ) -> None:
        """Append an agent-to-agent message to a project's log."""
        ...

    async def get_collaboration_history(
        self,
        project_id: str,
        agent_id: str | None = None,
        limit: int = COLLABORATION_HISTORY_LIMIT,
    ) -> list[CollaborationMessage]:
        """Return messages sent or received by ``agent_id``, newest first."""
        ...


class InMemoryCollaborationStore:
    """In-memory implementation of CollaborationStore.

    Suitable for tests and single-process use. Nothing survives a restart.
    """

    def __init__(self) -> None:
        self._history: dict[tuple[str, str], list[ConversationTurn]] = defaultdict(list)
        self._outputs: dict[str, list[tuple[str, AgentOutput]]] = defaultdict(list)
        # Insertion order tracks update order; re-saving moves an entry to the end
        self._collaboration_data: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self._sessions: dict[str, CollaborationSession] = {}
        self._messages: dict[str, list[CollaborationMessage]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def append_message(
        self, project_id: str, agent_id: str, turn: ConversationTurn
    ) -> None:
        async with self._lock:
            self._history[(project_id, agent_id)].append(turn)

    async def get_history(
        self, project_id: str, agent_id: str, limit: int
    ) -> list[ConversationTurn]:
        if limit <= 0:
            return []
        async with self._lock:
            return list(self._history.get((project_id, agent_id), [])[-limit:])

    async def clear_history(self, project_id: str, agent_id: str) -> None:
        async with self._lock:
            self._history.pop((project_id, agent_id), None)

    async def record_output(
        self, project_id: str, agent_id: str, output: AgentOutput
    ) -> None:
        async with self._lock:
            self._outputs[project_id].append((agent_id, output))

    async def list_outputs(
        self, project_id: str, agent_id: str | None = None
    ) -> list[AgentOutput]:
        async with self._lock:
            return [
                output
                for owner, output in self._outputs.get(project_id, [])
                if agent_id is None or owner == agent_id
            ]

    async def save_collaboration_data(
        self, project_id: str, agent_id: str, data: dict[str, Any]
    ) -> None:
        async with self._lock:
            project_data = self._collaboration_data[project_id]
            project_data.pop(agent_id, None)
            project_data[agent_id] = dict(data)

    async def get_collaboration_data(
        self, project_id: str, exclude_agent_id: str | None = None
    ) -> dict[str, dict[str, Any]]:
        async with self._lock:
            project_data = self._collaboration_data.get(project_id, {})
            return {
                agent_id: dict(data)
                for agent_id, data in reversed(project_data.items())
                if agent_id != exclude_agent_id and data
            }

    async def save_session(self, session: CollaborationSession) -> None:
        async with self._lock:
            self._sessions[session.id] = session.model_copy(deep=True)

    async def get_session(self, session_id: str) -> CollaborationSession | None:
        async with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    async def append_collaboration_message(
        self, project_id: str, message: CollaborationMessage
    ) -> None:
        async with self._lock:
            self._messages[project_id].append(message)

    async def get_collaboration_history(
        self,
        project_id: str,
        agent_id: str | None = None,
        limit: int = COLLABORATION_HISTORY_LIMIT,
    ) -> list[CollaborationMessage]:
        async with self._lock:
            messages = [
                message
                for message in self._messages.get(project_id, [])
                if agent_id is None or message.involves(agent_id)
            ]
        return list(reversed(messages))[:limit]
