"""
Session manager for handling one wizard per client
"""

from typing import Callable, Dict, Optional

from ..gateway import ContentGateway
from ..wizard import CampaignWizard


class SessionManager:
    """Keeps a campaign wizard per client id"""

    def __init__(self, gateway_factory: Optional[Callable[[], ContentGateway]] = None):
        self.sessions: Dict[str, CampaignWizard] = {}
        self.gateway_factory = gateway_factory or ContentGateway

    def create(self, client_id: str) -> CampaignWizard:
        """
        Return the client's wizard, creating it on first use

        Args:
            client_id: Unique identifier for the client

        Returns:
            The client's CampaignWizard
        """
        if client_id not in self.sessions:
            self.sessions[client_id] = CampaignWizard(self.gateway_factory())
            print(f"Session {client_id} created")
        return self.sessions[client_id]

    def get(self, client_id: str) -> Optional[CampaignWizard]:
        return self.sessions.get(client_id)

    def close(self, client_id: str) -> bool:
        """
        Drop a client session

        Args:
            client_id: Unique identifier for the client

        Returns:
            True if a session was removed
        """
        if client_id in self.sessions:
            del self.sessions[client_id]
            print(f"Session {client_id} closed")
            return True
        return False

    def is_active(self, client_id: str) -> bool:
        return client_id in self.sessions


session_manager = SessionManager()


def get_session_manager() -> SessionManager:
    """FastAPI dependency; overridden in tests"""
    return session_manager
