"""Role router: maps identity changes to a destination screen."""

import asyncio
from collections.abc import Callable

import structlog

from app.core.channel import Subscription
from app.schemas.auth import Identity
from app.schemas.routing import Destination, RouteDecision, RouterState
from app.services.identity_service import IdentityService
from app.services.profile_service import ProfileService

logger = structlog.get_logger(__name__)

ROLE_DESTINATIONS: dict[str, Destination] = {
    "doctor": Destination.DOCTOR_DASHBOARD,
    "patient": Destination.PATIENT_DASHBOARD,
    "nurse": Destination.NURSE_DASHBOARD,
    "responsible": Destination.RESPONSIBLE_DASHBOARD,
    "responsibleparty": Destination.RESPONSIBLE_DASHBOARD,
}

DEFAULT_DESTINATION = Destination.PATIENT_DASHBOARD

RouteListener = Callable[[RouteDecision], None]


def normalize_role(role: str | None) -> str | None:
    """Lower-case and trim a role string; blank becomes None."""
    if role is None:
        return None
    normalized = role.strip().lower()
    return normalized or None


def select_destination(role: str | None) -> Destination:
    """Pick the dashboard for a role. Unknown and missing roles get the patient dashboard."""
    normalized = normalize_role(role)
    if normalized is None:
        return DEFAULT_DESTINATION
    return ROLE_DESTINATIONS.get(normalized, DEFAULT_DESTINATION)


class RoleRouter:
    """
    Decides a destination for every identity-change event.

    Each event bumps a generation counter. A lookup still in flight when a
    newer event arrives is cancelled, and any result whose generation is no
    longer current is discarded, so the latest event always wins.
    """

    def __init__(self, identity_service: IdentityService, profile_service: ProfileService):
        """Initialize router with its identity and profile services."""
        self.identity_service = identity_service
        self.profile_service = profile_service
        self._generation = 0
        self._current = RouteDecision(
            state=RouterState.UNAUTHENTICATED,
            destination=Destination.SIGN_IN,
        )
        self._changed = asyncio.Event()
        self._listeners: list[RouteListener] = []
        self._subscription: Subscription[Identity | None] | None = None
        self._consumer: asyncio.Task | None = None
        self._lookup: asyncio.Task | None = None

    @property
    def current(self) -> RouteDecision:
        """Latest decision."""
        return self._current

    @property
    def state(self) -> RouterState:
        """Current router state."""
        return self._current.state

    @property
    def generation(self) -> int:
        """Number of identity events seen so far."""
        return self._generation

    @property
    def running(self) -> bool:
        """True while the router is consuming identity changes."""
        return self._consumer is not None and not self._consumer.done()

    def add_listener(self, listener: RouteListener) -> Callable[[], None]:
        """
        Register a callback for every decision.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _apply(self, decision: RouteDecision) -> None:
        self._current = decision
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()

        logger.info(
            "route_decision",
            state=decision.state.value,
            destination=decision.destination.value if decision.destination else None,
            uid=decision.uid,
            role=decision.role,
            generation=decision.generation,
        )

        for listener in list(self._listeners):
            try:
                listener(decision)
            except Exception:
                logger.exception("route_listener_failed", generation=decision.generation)

    async def handle(self, identity: Identity | None) -> RouteDecision | None:
        """
        Route one identity-change event.

        Args:
            identity: The new identity, or None after a sign-out

        Returns:
            The applied decision, or None if a newer event superseded this one
        """
        self._generation += 1
        generation = self._generation

        if identity is None:
            decision = RouteDecision(
                state=RouterState.UNAUTHENTICATED,
                destination=Destination.SIGN_IN,
                generation=generation,
            )
            self._apply(decision)
            return decision

        self._apply(
            RouteDecision(
                state=RouterState.AUTHENTICATED_RESOLVING,
                uid=identity.uid,
                generation=generation,
            )
        )

        role = normalize_role(await self.profile_service.get_role(identity.uid))

        if generation != self._generation:
            logger.info(
                "route_lookup_discarded",
                uid=identity.uid,
                generation=generation,
                current_generation=self._generation,
            )
            return None

        decision = RouteDecision(
            state=RouterState.AUTHENTICATED_ROUTED,
            destination=select_destination(role),
            uid=identity.uid,
            role=role,
            generation=generation,
        )
        self._apply(decision)
        return decision

    def _dispatch(self, identity: Identity | None) -> None:
        if self._lookup is not None and not self._lookup.done():
            self._lookup.cancel()
        self._lookup = asyncio.create_task(self.handle(identity))
        self._lookup.add_done_callback(self._lookup_done)

    def _lookup_done(self, task: asyncio.Task) -> None:
        """Settle on the default dashboard if the current lookup task failed."""
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return

        current = self._current
        logger.error(
            "route_lookup_failed",
            uid=current.uid,
            generation=current.generation,
            error_type=type(error).__name__,
            error=str(error),
        )

        if (
            task is self._lookup
            and current.state == RouterState.AUTHENTICATED_RESOLVING
            and current.generation == self._generation
        ):
            self._apply(
                RouteDecision(
                    state=RouterState.AUTHENTICATED_ROUTED,
                    destination=DEFAULT_DESTINATION,
                    uid=current.uid,
                    generation=current.generation,
                )
            )

    async def _consume(self, subscription: Subscription[Identity | None]) -> None:
        async for identity in subscription:
            self._dispatch(identity)

    async def start(self) -> RouteDecision:
        """
        Subscribe to identity changes and route the current identity.

        Returns:
            The first settled decision
        """
        if self.running:
            return self._current

        baseline = self._generation
        self._subscription = self.identity_service.identity_changes()
        self._consumer = asyncio.create_task(self._consume(self._subscription))
        return await self.wait_for_route(after_generation=baseline)

    async def wait_for_route(self, after_generation: int) -> RouteDecision:
        """
        Wait for a settled decision newer than a given generation.

        Args:
            after_generation: Generation observed before the triggering action

        Returns:
            The first settled decision with a higher generation
        """
        while not (
            self._current.generation > after_generation and self._current.is_settled
        ):
            await self._changed.wait()
        return self._current

    async def stop(self) -> None:
        """Stop consuming identity changes and cancel any in-flight lookup."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

        for task in (self._lookup, self._consumer):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._lookup = None
        self._consumer = None
