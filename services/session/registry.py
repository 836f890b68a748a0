from collections import defaultdict
from typing import Dict, FrozenSet, Optional, Set

from core.config.settings import SessionSettings
from core.logging import get_logger
from core.trading.ledger_models import Participant


class SessionRegistry:
    """
    Tracks which participants are currently identified.

    Membership is a set: a participant identifying again, or from a second
    connection, does not change it. Each connection is remembered so that a
    participant leaves the set only when their last connection goes away.
    """

    def __init__(self, settings: Optional[SessionSettings] = None):
        self.settings = settings or SessionSettings()
        self._connections: Dict[Participant, Set[str]] = defaultdict(set)
        self._identity_by_connection: Dict[str, Participant] = {}
        self.logger = get_logger("services.session.registry", component="session")

    def identify(self, participant: str, connection_id: str) -> bool:
        """Bind ``connection_id`` to ``participant``.

        Returns True only when the member set changed composition.

        Raises:
            UnknownOwnerError: ``participant`` is not on the team.
        """
        member = Participant.parse(participant)
        before = self.members()

        previous = self._identity_by_connection.get(connection_id)
        if previous is not None and previous != member:
            self._detach(connection_id, previous)

        self._identity_by_connection[connection_id] = member
        self._connections[member].add(connection_id)

        changed = self.members() != before
        self.logger.info("Participant identified",
                         participant=member.value,
                         connection_id=connection_id,
                         membership_changed=changed)
        return changed

    def release(self, connection_id: str) -> bool:
        """Forget a closed connection. Returns True if membership changed."""
        member = self._identity_by_connection.pop(connection_id, None)
        if member is None or not self.settings.prune_on_disconnect:
            return False
        before = self.members()
        self._detach(connection_id, member)
        return self.members() != before

    def participant_for(self, connection_id: str) -> Optional[Participant]:
        return self._identity_by_connection.get(connection_id)

    def members(self) -> FrozenSet[Participant]:
        return frozenset(member for member, conns in self._connections.items() if conns)

    def _detach(self, connection_id: str, member: Participant) -> None:
        conns = self._connections.get(member)
        if conns is None:
            return
        conns.discard(connection_id)
        if not conns:
            del self._connections[member]
