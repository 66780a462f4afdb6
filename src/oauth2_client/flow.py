"""
Grant flow state machine.

One GrantFlow instance drives one inbound request through
extract input -> send grant -> validate -> persist, and is then finished by
the caller with one of the terminal states. Flows never retry.
"""

import logging
from enum import Enum, auto

from starlette.requests import Request

from oauth2_client.errors import GrantFlowTransitionError
from oauth2_client.grants.sender import GrantSender
from oauth2_client.grants.strategies import GrantStrategy
from oauth2_client.shared.auth import IssuedAuthorization, validate_issued_authorization
from oauth2_client.shared.cookies import CookieTokenStore, TokenCookie

logger = logging.getLogger(__name__)


class GrantFlowState(Enum):
    """Grant flow states."""

    IDLE = auto()
    EXTRACTING_INPUT = auto()
    AWAITING_GRANT_RESPONSE = auto()
    VALIDATING_ISSUED_AUTH = auto()
    PERSISTING_TOKENS = auto()
    EMITTING_RESPONSE = auto()
    EMITTING_ERROR = auto()
    REDIRECTING_TO_INVALIDATION = auto()


FAILURE_STATES = frozenset(
    {GrantFlowState.EMITTING_ERROR, GrantFlowState.REDIRECTING_TO_INVALIDATION}
)
TERMINAL_STATES = FAILURE_STATES | {GrantFlowState.EMITTING_RESPONSE}

VALID_TRANSITIONS: dict[GrantFlowState, frozenset[GrantFlowState]] = {
    GrantFlowState.IDLE: frozenset({GrantFlowState.EXTRACTING_INPUT}),
    GrantFlowState.EXTRACTING_INPUT: frozenset(
        {GrantFlowState.AWAITING_GRANT_RESPONSE} | FAILURE_STATES
    ),
    GrantFlowState.AWAITING_GRANT_RESPONSE: frozenset(
        {GrantFlowState.VALIDATING_ISSUED_AUTH} | FAILURE_STATES
    ),
    GrantFlowState.VALIDATING_ISSUED_AUTH: frozenset(
        {GrantFlowState.PERSISTING_TOKENS} | FAILURE_STATES
    ),
    GrantFlowState.PERSISTING_TOKENS: frozenset(
        {GrantFlowState.EMITTING_RESPONSE} | FAILURE_STATES
    ),
    GrantFlowState.EMITTING_RESPONSE: frozenset(),
    GrantFlowState.EMITTING_ERROR: frozenset(),
    GrantFlowState.REDIRECTING_TO_INVALIDATION: frozenset(),
}


class GrantFlow:
    """Per-request grant flow driven by a grant strategy."""

    def __init__(
        self,
        strategy: GrantStrategy,
        sender: GrantSender,
        store: CookieTokenStore,
    ):
        self.strategy = strategy
        self.sender = sender
        self.store = store
        self.state = GrantFlowState.IDLE
        self.cookies: list[TokenCookie] = []

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition_to(self, new_state: GrantFlowState) -> None:
        if new_state not in VALID_TRANSITIONS[self.state]:
            raise GrantFlowTransitionError(
                f"Invalid transition from {self.state} to {new_state}"
            )
        logger.debug(f"Transitioning from {self.state} to {new_state}")
        self.state = new_state

    async def run(self, request: Request) -> IssuedAuthorization:
        """
        Obtain, validate and persist an authorization for the request.

        On success the flow rests in PERSISTING_TOKENS with `cookies` holding
        the writes to apply to the response. Any OAuth2Error propagates and
        leaves the flow in the state that failed.
        """
        self.transition_to(GrantFlowState.EXTRACTING_INPUT)
        grant_input = await self.strategy.extract_input(request)

        self.transition_to(GrantFlowState.AWAITING_GRANT_RESPONSE)
        content = await self.sender.send(
            self.strategy.build_grant_fields(grant_input), request
        )

        self.transition_to(GrantFlowState.VALIDATING_ISSUED_AUTH)
        issued = validate_issued_authorization(content)
        logger.debug("Authorization issued from server")

        self.transition_to(GrantFlowState.PERSISTING_TOKENS)
        self.cookies = self.store.persist(request, issued)
        return issued

    def finish(self, state: GrantFlowState) -> None:
        self.transition_to(state)
