"""Display filters applied by consumers of session events."""

from dataclasses import dataclass

from killmonitor.parsing.models import CombatEvent
from killmonitor.session.models import Classification, SessionEvent

# Substrings that mark an actor name as an NPC or a game system entity.
NPC_MARKERS = ("unknown", "aimodule", "pu_", "npc_", "kopion_")


def is_npc_name(name: str) -> bool:
    """Check whether an actor name looks like an NPC rather than a player."""
    lowered = name.lower()
    return any(marker in lowered for marker in NPC_MARKERS)


def involves_npc(event: CombatEvent) -> bool:
    return is_npc_name(event.killer) or is_npc_name(event.victim)


@dataclass(frozen=True)
class EventFilter:
    """Decides which session events a user wants to see.

    Attributes:
        show_all: Also show events with NPCs and events between other players.
        killer_mode: Show kills made by the monitored player, not only deaths.
    """

    show_all: bool = False
    killer_mode: bool = False

    def accepts(self, event: SessionEvent) -> bool:
        if not self.show_all and involves_npc(event.event):
            return False
        if event.classification is Classification.SELF_DIED:
            return True
        if event.classification is Classification.SELF_KILLED:
            return self.killer_mode
        return self.show_all
