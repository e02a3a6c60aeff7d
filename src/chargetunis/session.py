"""Payment session workflow for a selected charging station."""

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union

from .exceptions import InvalidTransitionError, SessionBusyError, TransportFailure
from .gateway import NetworkGateway
from .logging_utils import log_error, log_session_transition
from .models import CardInput, PaymentIntent, PaymentResult, Station, format_amount
from .plugins.base import ChargePlugin, PluginHook, PluginHost

logger = logging.getLogger(__name__)

DEFAULT_KWH = 10


class SessionStep(str, Enum):
    IDLE = "idle"
    DETAILS = "details"
    CONFIRMING = "confirming"
    RESULT = "result"


@dataclass(frozen=True)
class Idle:
    """No station bound."""

    step: ClassVar[SessionStep] = SessionStep.IDLE


@dataclass(frozen=True)
class Details:
    """The user is choosing how much energy to buy."""

    step: ClassVar[SessionStep] = SessionStep.DETAILS

    station: Station
    kwh: float = DEFAULT_KWH

    @property
    def estimate(self) -> float:
        """Client-side estimate; the intent's amount is authoritative."""
        return self.kwh * self.station.price_tnd_per_kwh

    @property
    def estimate_display(self) -> str:
        return format_amount(self.estimate)


@dataclass(frozen=True)
class Confirming:
    """An intent exists and the user is entering card details."""

    step: ClassVar[SessionStep] = SessionStep.CONFIRMING

    station: Station
    kwh: float
    intent: PaymentIntent
    card: CardInput

    @property
    def amount_display(self) -> str:
        return self.intent.amount_display


@dataclass(frozen=True)
class Result:
    """Terminal state; only ``close`` leaves it."""

    step: ClassVar[SessionStep] = SessionStep.RESULT

    station: Station
    kwh: float
    result: PaymentResult


SessionState = Union[Idle, Details, Confirming, Result]


class PaymentSession(PluginHost):
    """
    Finite-state payment workflow bound to one station at a time.

    Steps run Idle -> Details -> Confirming -> Result, with ``back()``
    returning from Confirming to Details and ``close()`` returning to Idle
    from anywhere. Transport failures never escape the actions: they become
    a ``failed`` PaymentResult and the session moves to Result.

    At most one call per action may be in flight; a second invocation raises
    ``SessionBusyError`` without reaching the gateway. Opening a different
    station or closing the session starts a new generation, and a response
    belonging to an earlier generation is discarded when it lands. Result is
    terminal: a response landing while a Result is shown is discarded too.
    """

    def __init__(
        self,
        gateway: NetworkGateway,
        plugins: list[ChargePlugin] | None = None,
        default_kwh: float = DEFAULT_KWH,
    ):
        self.gateway = gateway
        self.default_kwh = default_kwh
        self._state: SessionState = Idle()
        self._card: Optional[CardInput] = None
        self._generation = 0
        self._in_flight: set[str] = set()
        self._register_plugins(plugins)

    # Read-only views for presentation code

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def step(self) -> SessionStep:
        return self._state.step

    @property
    def loading(self) -> bool:
        return bool(self._in_flight)

    @property
    def station(self) -> Optional[Station]:
        return getattr(self._state, "station", None)

    @property
    def intent(self) -> Optional[PaymentIntent]:
        return getattr(self._state, "intent", None)

    @property
    def card(self) -> Optional[CardInput]:
        return self._card

    @property
    def result(self) -> Optional[PaymentResult]:
        return getattr(self._state, "result", None)

    # Synchronous transitions

    def open(self, station: Station) -> SessionState:
        """Bind ``station`` and enter Details, resetting any previous workflow."""
        if self.station == station and not isinstance(self._state, Idle):
            return self._state
        self._discard()
        self._card = CardInput()
        self._transition(Details(station=station, kwh=self.default_kwh))
        return self._state

    def set_kwh(self, kwh: float) -> SessionState:
        """Change the requested energy. The backend validates the range."""
        state = self._require(Details, "set_kwh")
        self._state = dataclasses.replace(state, kwh=kwh)
        return self._state

    def update_card(self, **fields) -> SessionState:
        """Edit card fields (number, exp_month, exp_year, cvc)."""
        state = self._require(Confirming, "update_card")
        self._card = dataclasses.replace(state.card, **fields)
        self._state = dataclasses.replace(state, card=self._card)
        return self._state

    def back(self) -> SessionState:
        """Return from Confirming to Details, keeping the energy quantity."""
        state = self._require(Confirming, "back")
        self._transition(Details(station=state.station, kwh=state.kwh))
        return self._state

    def close(self) -> SessionState:
        """Return to Idle, discarding intent, card and result."""
        self._discard()
        return self._state

    # Remote actions

    async def create_intent(self) -> SessionState:
        """
        Ask the backend for a payment intent.

        Moves to Confirming on success, or straight to Result with a
        ``failed`` outcome on transport failure.
        """
        state = self._require(Details, "create_intent")
        generation = self._claim("create_intent")
        event_data = {
            "call_id": self._next_call_id(),
            "station_id": state.station.id,
            "kwh": state.kwh,
            "price_tnd_per_kwh": state.station.price_tnd_per_kwh,
        }
        intent: Optional[PaymentIntent] = None
        outcome: Optional[PaymentResult] = None
        try:
            await self._execute_plugin_hooks(PluginHook.BEFORE_CREATE_INTENT, event_data)
            try:
                intent = await self.gateway.create_intent(
                    state.station.id, state.kwh, state.station.price_tnd_per_kwh
                )
            except TransportFailure as e:
                log_error(
                    logger,
                    "create_intent_error",
                    f"Payment intent failed: {e.message}",
                    station_id=state.station.id,
                )
                outcome = PaymentResult.failed(e.message)
        finally:
            self._in_flight.discard("create_intent")

        if self._is_superseded(generation, "create_intent"):
            await self._execute_plugin_hooks(
                PluginHook.AFTER_CREATE_INTENT, {**event_data, "stale": True}, result=intent or outcome
            )
            return self._state

        if intent is not None:
            self._transition(
                Confirming(
                    station=state.station,
                    kwh=state.kwh,
                    intent=intent,
                    card=self._card or CardInput(),
                ),
                amount_tnd=intent.amount_tnd,
            )
        else:
            self._transition(Result(station=state.station, kwh=state.kwh, result=outcome))

        await self._execute_plugin_hooks(
            PluginHook.AFTER_CREATE_INTENT, event_data, result=intent or outcome
        )
        return self._state

    async def confirm_payment(self) -> SessionState:
        """
        Confirm the current intent with the entered card.

        Always ends in Result: either the backend's verdict verbatim or a
        locally synthesized ``failed`` outcome for transport failures and
        card expiry values that are not numbers.
        """
        state = self._require(Confirming, "confirm_payment")
        generation = self._claim("confirm_payment")
        event_data = {
            "call_id": self._next_call_id(),
            "station_id": state.station.id,
            "kwh": state.kwh,
            "amount_tnd": state.intent.amount_tnd,
        }
        try:
            await self._execute_plugin_hooks(PluginHook.BEFORE_CONFIRM_PAYMENT, event_data)
            outcome = await self._send_confirmation(state)
        finally:
            self._in_flight.discard("confirm_payment")

        if self._is_superseded(generation, "confirm_payment"):
            await self._execute_plugin_hooks(
                PluginHook.AFTER_CONFIRM_PAYMENT, {**event_data, "stale": True}, result=outcome
            )
            return self._state

        self._transition(
            Result(station=state.station, kwh=state.kwh, result=outcome),
            status=outcome.status.value,
            transaction_id=outcome.transaction_id,
        )
        await self._execute_plugin_hooks(
            PluginHook.AFTER_CONFIRM_PAYMENT, event_data, result=outcome
        )
        return self._state

    # Helpers

    async def _send_confirmation(self, state: Confirming) -> PaymentResult:
        card = state.card
        try:
            # Input fields hand over strings
            exp_month, exp_year = int(card.exp_month), int(card.exp_year)
        except (TypeError, ValueError):
            log_error(
                logger,
                "confirm_payment_error",
                "Card expiry is not a number",
                station_id=state.station.id,
            )
            return PaymentResult.failed("Invalid card expiry date")

        try:
            return await self.gateway.confirm_payment(
                state.intent.client_secret,
                card.number,
                exp_month,
                exp_year,
                card.cvc,
            )
        except TransportFailure as e:
            log_error(
                logger,
                "confirm_payment_error",
                f"Payment confirmation failed: {e.message}",
                station_id=state.station.id,
            )
            return PaymentResult.failed(e.message)

    def _require(self, state_type: type, action: str):
        if not isinstance(self._state, state_type):
            raise InvalidTransitionError(f"Cannot {action} while session is {self.step.value}")
        return self._state

    def _claim(self, action: str) -> int:
        if action in self._in_flight:
            raise SessionBusyError(f"{action} is already in progress")
        self._in_flight.add(action)
        return self._generation

    def _is_superseded(self, generation: int, action: str) -> bool:
        """A response is dropped once its generation ended or a Result is showing."""
        if generation != self._generation:
            reason = "stale"
        elif isinstance(self._state, Result):
            reason = "terminal"
        else:
            return False
        logger.info(
            f"Discarding {reason} {action} response",
            extra={
                "event_type": "stale_response",
                "event_data": {"action": action, "generation": generation, "reason": reason},
            },
        )
        return True

    def _discard(self):
        station = self.station
        self._generation += 1
        self._card = None
        if not isinstance(self._state, Idle):
            self._transition(Idle(), from_station=station.id if station else None)

    def _transition(self, new_state: SessionState, **fields):
        old_step = self._state.step
        self._state = new_state
        station = getattr(new_state, "station", None)
        log_session_transition(
            logger,
            old_step.value,
            new_state.step.value,
            station_id=station.id if station else None,
            **fields,
        )
