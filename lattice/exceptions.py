"""Custom exception hierarchy for lattice.

Every public failure carries a stable ``code`` string; the API boundary
reports that code instead of raising.
"""


class LatticeError(Exception):
    """Base for all lattice errors."""

    code = "lattice_error"


class InvalidAgentTypeError(LatticeError):
    """The requested agent type is not one of the known kinds."""

    code = "invalid_agent_type"


class InvalidAgentConfigError(LatticeError):
    """Agent configuration overrides are out of range."""

    code = "invalid_config"


class AgentNotFoundError(LatticeError):
    """No agent with the given ID exists."""

    code = "agent_not_found"


class AgentNotActiveError(LatticeError):
    """The agent is paused."""

    code = "agent_not_active"


class AgentsFrozenError(LatticeError):
    """All agents are globally frozen."""

    code = "agents_frozen"


class MalformedRecordError(LatticeError):
    """A record is missing data a scan or ingestion step needs."""

    code = "malformed_record"


class RepairError(LatticeError):
    """An auto-repair could not be applied to its target record."""

    code = "repair_failed"
