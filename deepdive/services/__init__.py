"""Services attached to the event bus."""

from .persona_update import (
    PersonaUpdateResult,
    PersonaUpdateService,
    get_persona_update_service,
    reset_persona_update_service,
)

__all__ = [
    "PersonaUpdateResult",
    "PersonaUpdateService",
    "get_persona_update_service",
    "reset_persona_update_service",
]
