"""Exceptions raised by the agent-skills engine.

Per-agent failures during fan-out are not raised; they are collected in the
report objects returned by the synchronizer and the propagator.
"""


class SkillsError(Exception):
    """Base class for all agent-skills errors."""


class SkillNotFoundError(SkillsError):
    """Raised when a skill cannot be located (canonical store or project)."""

    def __init__(self, name: str, where: str = "canonical store"):
        self.name = name
        self.where = where
        super().__init__(f"skill not found in {where}: {name}")


class SkillExistsError(SkillsError):
    """Raised when creating a skill whose name is already taken."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"skill already exists: {name}")


class AgentNotFoundError(SkillsError):
    """Raised when an agent name is not in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'agent "{name}" not found')


class AgentConflictError(SkillsError):
    """Raised when a custom agent name collides with an existing agent."""

    def __init__(self, name: str, existing: str):
        self.name = name
        self.existing = existing
        super().__init__(f'agent name "{name}" conflicts with existing agent "{existing}"')


class AgentDirectoryNotEmptyError(SkillsError):
    """Raised when disabling a project agent whose directory still holds skills."""

    def __init__(self, path, count: int):
        self.path = path
        self.count = count
        super().__init__(f"agent directory is not empty, contains {count} items: {path}")


class InvalidSourceError(SkillsError):
    """Raised for a malformed skill source (expected owner/repo@skill)."""


class FetchError(SkillsError):
    """Raised when remote content (git clone, HTTP) cannot be retrieved."""
