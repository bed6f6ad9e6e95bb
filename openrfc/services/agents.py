"""
Agent registry: creates and looks up actor records.
"""

import logging
import threading
import uuid
from typing import Any, Optional

from ..exceptions import ConflictError
from ..models import Agent, AgentCapabilities, AgentType, utcnow
from ..storage.base import Storage
from ..validation import (
    InputValidationError,
    coerce_enum,
    validate_required,
    validate_string_length,
)

logger = logging.getLogger("openrfc.services.agents")

_CAPABILITY_FIELDS = ("can_edit", "can_comment", "can_approve")


class AgentService:
    def __init__(self, storage: Storage):
        self.storage = storage
        self._lock = threading.Lock()

    def create_agent(
        self,
        agent_type: AgentType,
        name: str,
        capabilities: Optional[dict[str, Any]] = None,
        agent_id: Optional[str] = None,
    ) -> Agent:
        """
        Register a new agent.

        Args:
            agent_type: Role of the agent; decides default capabilities.
            name: Display name.
            capabilities: Partial override of the role defaults, e.g.
                ``{"can_comment": False}``.
            agent_id: Explicit id. A fresh uuid4 is used when omitted.

        Returns:
            The stored Agent.
        """
        agent_type = coerce_enum(agent_type, AgentType, "agent_type")
        validate_required(name, "name")
        validate_string_length(name, "name", max_length=255)

        if agent_id is not None:
            validate_required(agent_id, "agent_id")

        resolved = AgentCapabilities.for_type(agent_type)
        for key, value in (capabilities or {}).items():
            if key not in _CAPABILITY_FIELDS:
                raise InputValidationError(
                    f"Unknown capability '{key}' "
                    f"(expected one of: {', '.join(_CAPABILITY_FIELDS)})",
                    field="capabilities",
                    value=key,
                )
            setattr(resolved, key, bool(value))

        agent = Agent(
            id=agent_id or str(uuid.uuid4()),
            type=agent_type,
            name=name,
            capabilities=resolved,
            created_at=utcnow(),
        )
        with self._lock:
            if self.storage.agents.get_by_id(agent.id) is not None:
                raise ConflictError(f"Agent with id {agent.id} already exists")
            created = self.storage.agents.create(agent)
        logger.debug("Created %s agent %s (%s)", agent_type.value, created.id, name)
        return created

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        return self.storage.agents.get_by_id(agent_id)

    def list_agents(self) -> list[Agent]:
        return self.storage.agents.list()
