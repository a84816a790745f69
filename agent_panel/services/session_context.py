"""Per-agent identity and cached agent record."""

from typing import Callable, Optional

from agent_panel.models.agent import AgentRecord
from agent_panel.models.registration import VerifiedIdentity
from agent_panel.services.agent_store import AgentStore
from agent_panel.services.identity_gateway import IdentityGateway
from agent_panel.services.profile_editor import load_profile
from agent_panel.utils.errors import SessionRequiredError
from agent_panel.utils.logging import get_structured_logger, mask_user_id

logger = get_structured_logger(__name__)

SessionListener = Callable[[Optional[VerifiedIdentity], Optional[AgentRecord]], None]

SIGNED_OUT = "SIGNED_OUT"


class SessionContext:
    """
    Holds the verified identity and a cached copy of its agent record.

    One instance belongs to one agent. The HTTP handlers build one per
    request with ``from_access_token``; such an instance never attaches to
    auth-state events.

    Consumers register listeners with ``subscribe``; every identity or profile
    change is pushed to them. ``attach`` owns a single auth-state subscription
    on the gateway so that a sign-out elsewhere clears the identity here.
    ``logout`` tears down both the gateway subscription and all listeners.
    """

    def __init__(self, gateway: Optional[IdentityGateway] = None, store: Optional[AgentStore] = None):
        self.gateway = gateway or IdentityGateway()
        self.store = store or AgentStore()
        self.identity: Optional[VerifiedIdentity] = None
        self.profile: Optional[AgentRecord] = None
        self._listeners: list[SessionListener] = []
        self._gateway_unsubscribe: Optional[Callable[[], None]] = None

    @classmethod
    async def from_access_token(cls, access_token: Optional[str], gateway: Optional[IdentityGateway] = None,
                                store: Optional[AgentStore] = None) -> "SessionContext":
        """Session for the agent a bearer token belongs to."""
        session = cls(gateway=gateway, store=store)
        session.identity = await session.gateway.resolve_access_token(access_token)
        return session

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.identity, self.profile)
            except Exception as e:
                logger.error("Session listener failed", exc_info=True, error=str(e))

    def attach(self) -> None:
        """Start watching the gateway's auth state (idempotent)."""
        if self._gateway_unsubscribe is None:
            self._gateway_unsubscribe = self.gateway.watch_auth_state(self._on_auth_state_change)

    def _on_auth_state_change(self, event, session) -> None:
        if str(getattr(event, "value", event)) == SIGNED_OUT and self.identity is not None:
            logger.info("Signed out by identity provider", user_id=mask_user_id(self.identity.user_id))
            self.clear()

    def establish(self, identity: VerifiedIdentity, profile: Optional[AgentRecord] = None) -> None:
        """Set the current identity after a completed wizard and start watching auth state."""
        self.identity = identity
        self.profile = profile
        self.attach()
        logger.info("Session established", user_id=mask_user_id(identity.user_id))
        self._notify()

    def update_profile(self, profile: AgentRecord) -> None:
        """Replace the cached record after a persisted change."""
        self.profile = profile
        self._notify()

    def require_identity(self) -> VerifiedIdentity:
        if self.identity is None:
            raise SessionRequiredError()
        return self.identity

    async def refresh(self) -> AgentRecord:
        """Reload the record from the store (assigning a reference code if missing)."""
        identity = self.require_identity()
        self.profile = await load_profile(identity.user_id, self.store)
        self._notify()
        return self.profile

    async def require_profile(self) -> AgentRecord:
        """Cached record, loaded on first use."""
        self.require_identity()
        if self.profile is None or not self.profile.reference_code:
            return await self.refresh()
        return self.profile

    def clear(self) -> None:
        self.identity = None
        self.profile = None
        self._notify()

    async def logout(self) -> None:
        """Sign out, clear the identity and drop every subscription."""
        user_id = self.identity.user_id if self.identity else None
        access_token = self.identity.access_token if self.identity else None
        try:
            await self.gateway.sign_out(access_token)
        finally:
            self.clear()
            if self._gateway_unsubscribe is not None:
                self._gateway_unsubscribe()
                self._gateway_unsubscribe = None
            self._listeners.clear()
        logger.info("Logged out", user_id=mask_user_id(user_id) if user_id else None)

