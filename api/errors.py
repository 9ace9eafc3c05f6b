"""Domain exceptions for the legal agent pipeline.

Routers translate these into ``HTTPException`` responses; background tasks
record them on the entity they were processing.
"""

from __future__ import annotations


class LegalAgentError(Exception):
    """Base class for all legal agent errors."""


class NotFoundError(LegalAgentError):
    """A query, document or user does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")


class InvalidInputError(LegalAgentError):
    """Submitted input failed validation. No entity is created."""


class InvalidTransitionError(LegalAgentError):
    """A status change that the entity lifecycle does not allow."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid status transition: {current} -> {target}")


class ResponderFailure(LegalAgentError):
    """A responder could not produce a result."""


class ProcessingTimeout(LegalAgentError):
    """An entity task ran past its time limit."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"Processing timed out after {seconds:g} seconds")


class DeliveryFailure(LegalAgentError):
    """A result could not be delivered on its channel."""
