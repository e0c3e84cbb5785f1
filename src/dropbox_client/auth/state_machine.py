"""
OAuth state machine for the Dropbox client.

The machine advances a client through the AuthStep values. Two steps wait on
the outside world (the authorize redirect and the token exchange), so the
successor of a step is computed after each step finishes instead of being
read from a fixed table. Each step produces a continuation:

    Pending(next_step)  advance now, to next_step or to the step the
                        CredentialStore implies
    Waiting(start)      hand control to a driver/network hook; the hook
                        resumes the loop with the next continuation
    Done(error, result) stop and report to the authenticate() caller

A small trampoline runs continuations so that hooks completing synchronously
do not recurse.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from ..core.config import AuthOptions
from ..core.events import EventSource
from ..utils.errors import AuthError, AuthErrorKind, AuthorizationError, ValidationError
from .credential_store import CredentialStore
from .steps import AuthStep

logger = logging.getLogger(__name__)

AuthCallback = Callable[[Optional[AuthError], Any], None]


@dataclass
class Pending:
    """Advance the machine. next_step None means "whatever the store implies"."""

    next_step: Optional[AuthStep] = None
    error: Optional[AuthError] = None


@dataclass
class Waiting:
    """Wait for an external event; start(resume) must eventually resume the loop."""

    start: Callable[["_Resumption"], None]


@dataclass
class Done:
    """Finish the current authenticate() run."""

    error: Optional[AuthError]
    result: Any


Continuation = Union[Pending, Waiting, Done]


class _Resumption:
    """
    The resume callable handed to a Waiting hook.

    Only the first call counts, and only while the run it belongs to is
    still the machine's current run.
    """

    def __init__(self, machine: "AuthStateMachine") -> None:
        self.machine = machine
        self.generation = machine._generation
        self.waiting = True
        self.completed = False
        self.result: Optional[Continuation] = None

    def _ignored(self) -> bool:
        if self.generation != self.machine._generation:
            logger.warning("Ignoring a completion from an abandoned authentication run")
            return True
        if self.completed:
            logger.warning("Ignoring a second completion of the same auth step")
            return True
        return False

    def __call__(self, next_continuation: Continuation) -> None:
        if self._ignored():
            return
        self.completed = True
        self.result = next_continuation
        if not self.waiting:
            self.machine._run(next_continuation)

    def deferred(self, build: Callable[..., Continuation]) -> Callable[..., None]:
        """Callback resuming with build(*args); build only runs on the first call."""

        def complete(*args: Any) -> None:
            if self._ignored():
                return
            self(build(*args))

        return complete


class AuthStateMachine:
    """
    Drives one client through the OAuth handshake.

    Attributes:
        step: The current AuthStep. Usually equal to store.step(), except
            right after a forced transition to ERROR or SIGNED_OFF.
        error: The error that put the machine in ERROR, if any.
        driver: The AuthDriver supplied by the embedding application.
        in_flight: True while an authenticate() run is active. A run parked
            on a hook that never completes is abandoned by reset() or
            set_credentials().
    """

    def __init__(
        self, client: Any, store: CredentialStore, on_step_change: EventSource
    ) -> None:
        self.client = client
        self.store = store
        self.on_step_change = on_step_change
        self.driver: Any = None
        self.step = store.step()
        self.error: Optional[AuthError] = None
        self.in_flight = False

        self._generation = 0
        self._running = 0
        self._last_step: Optional[AuthStep] = self.step
        self._interactive = True
        self._callback: Optional[AuthCallback] = None

    # Public entry points

    def authenticate(
        self,
        options: Optional[AuthOptions] = None,
        callback: Optional[AuthCallback] = None,
    ) -> None:
        """
        Run the machine until it finishes or waits on an interactive step.

        Args:
            options: AuthOptions; interactive=False only uses cached state.
            callback: Called as callback(error, client) when the run ends.

        Raises:
            ValidationError: If no driver is set and the client is not
                authenticated, if the machine is in ERROR, or if another
                run is already in flight.
        """
        options = options or AuthOptions()
        if self.in_flight:
            raise ValidationError("An authentication run is already in progress")
        if self.driver is None and self.step is not AuthStep.DONE:
            raise ValidationError("Call set_auth_driver() before authenticate()")
        if self.step is AuthStep.ERROR:
            raise ValidationError("Client is in the error state; call reset() first")

        logger.debug(
            f"Authenticating from step {self.step.name} "
            f"(interactive={options.interactive})"
        )
        self.in_flight = True
        self._interactive = options.interactive
        self._callback = callback
        self._run(None)

    def reset(self) -> None:
        """Forget the user's authorization and leave any ERROR state."""
        self._abandon_parked_run()
        self.store.reset()
        self.error = None
        self._set_step(self.store.step())

    def set_credentials(self, credentials: Any) -> None:
        """Replace the stored credentials, publishing a step change if any."""
        self.store.set_credentials(credentials)
        self._abandon_parked_run()
        step = self.store.step()
        self.error = self.store.error() if step is AuthStep.ERROR else None
        self._set_step(step)

    def force_error(self, error: AuthError, then: Callable[[], None]) -> None:
        """
        Put the machine in ERROR because its credentials stopped working.

        The step-change event fires and the driver's on_auth_step_change hook
        runs before then() is called.
        """
        logger.warning(f"Forcing authentication error state: {error}")
        self.error = error
        self._set_step(AuthStep.ERROR)
        self._hand_to_driver(then)

    def signed_off(self, then: Callable[[], None]) -> None:
        """Record a completed sign-out and notify listeners and the driver."""
        self.store.reset()
        self.error = None
        self._set_step(AuthStep.SIGNED_OFF)
        self._hand_to_driver(then)

    def _abandon_parked_run(self) -> None:
        """
        Drop a run that waits on a hook which may never complete.

        Calls made from inside a running hook leave the run alone; the
        trampoline picks up the new store state on its next step.
        """
        if not self.in_flight or self._running:
            return
        logger.warning("Abandoning an unfinished authentication run")
        self._generation += 1
        self.in_flight = False
        self._callback = None

    # Trampoline

    def _run(self, continuation: Optional[Continuation]) -> None:
        self._running += 1
        try:
            self._trampoline(continuation)
        except Exception:
            # A failing hook or callback must not leave the guard set
            self.in_flight = False
            self._callback = None
            raise
        finally:
            self._running -= 1

    def _trampoline(self, continuation: Optional[Continuation]) -> None:
        if continuation is None:
            continuation = self._iterate()
        while True:
            if isinstance(continuation, Done):
                self._finish(continuation)
                return

            if isinstance(continuation, Pending):
                self._advance(continuation)
                continuation = self._iterate()
                continue

            resume = _Resumption(self)
            continuation.start(resume)
            resume.waiting = False
            if not resume.completed:
                # The hook completes later and re-enters _run through resume()
                return
            continuation = resume.result

    def _finish(self, done: Done) -> None:
        self.in_flight = False
        callback, self._callback = self._callback, None
        if done.error is not None:
            logger.info(f"Authentication finished with error: {done.error}")
        else:
            logger.info(f"Authentication finished at step {self.step.name}")
        if callback:
            callback(done.error, done.result)

    def _advance(self, pending: Pending) -> None:
        if pending.next_step is None:
            step = self.store.step()
            if step is AuthStep.ERROR:
                self.error = self.store.error()
        else:
            step = pending.next_step
            if pending.error is not None:
                self.error = pending.error
        self._set_step(step)

    def _set_step(self, step: AuthStep) -> None:
        old_step = self.step
        self.step = step
        self.store.invalidate()
        if step is not old_step:
            logger.debug(f"Auth step {old_step.name} -> {step.name}")
            self.on_step_change.dispatch(self.client)

    def _hand_to_driver(self, then: Callable[[], None]) -> None:
        self._last_step = self.step
        hook = getattr(self.driver, "on_auth_step_change", None)
        if hook is None:
            then()
        else:
            hook(self.client, then)

    def _iterate(self) -> Continuation:
        """Let the driver see a step change, then act on the current step."""
        if self.step is not self._last_step:
            self._last_step = self.step
            hook = getattr(self.driver, "on_auth_step_change", None)
            if hook is not None:
                return Waiting(
                    lambda resume: hook(self.client, lambda: resume(Pending()))
                )
        return self._act(self.step)

    # Steps

    def _act(self, step: AuthStep) -> Continuation:
        if step is AuthStep.RESET:
            return self._act_reset()
        if step is AuthStep.PARAM_SET:
            return self._act_param_set()
        if step is AuthStep.PARAM_LOADED:
            return self._act_param_loaded()
        if step is AuthStep.AUTHORIZED:
            return self._act_authorized()
        if step is AuthStep.DONE:
            return Done(None, self.client)
        if step is AuthStep.SIGNED_OFF:
            # Silent hop: RESET is not reported as a separate step change
            self.step = AuthStep.RESET
            self.store.reset()
            self.error = None
            self.store.invalidate()
            return self._iterate()
        return Done(self.error, self.client)

    def _act_reset(self) -> Continuation:
        if not self._interactive:
            return Done(None, self.client)

        get_state_param = getattr(self.driver, "get_state_param", None)
        if get_state_param is None:
            self.store.set_auth_state_param(self.store.random_auth_state_param())
            return Pending()

        def chosen(state_param: str) -> Continuation:
            if self.store.step() is AuthStep.RESET:
                self.store.set_auth_state_param(state_param)
            return Pending()

        def start(resume: _Resumption) -> None:
            get_state_param(resume.deferred(chosen))

        return Waiting(start)

    def _act_param_set(self) -> Continuation:
        if not self._interactive:
            return Done(None, self.client)

        authorize_url = self.client.authorize_url()
        state_param = self.store.auth_state_param()
        logger.info("Starting the authorize redirect")

        def start(resume: _Resumption) -> None:
            self.driver.do_authorize(
                authorize_url,
                state_param,
                self.client,
                resume.deferred(self._redirect_done),
            )

        return Waiting(start)

    def _act_param_loaded(self) -> Continuation:
        resume_authorize = getattr(self.driver, "resume_authorize", None)
        state_param = self.store.auth_state_param()
        if resume_authorize is None:
            # Re-setting the same value demotes PARAM_LOADED to PARAM_SET
            self.store.set_auth_state_param(state_param)
            return Pending()

        logger.info("Resuming a previously started authorize redirect")

        def start(resume: _Resumption) -> None:
            resume_authorize(
                state_param,
                self.client,
                resume.deferred(self._redirect_done),
            )

        return Waiting(start)

    def _act_authorized(self) -> Continuation:
        logger.info("Exchanging the authorization code for an access token")

        def exchanged(
            error: Optional[AuthError], payload: Any = None, meta: Any = None
        ) -> Continuation:
            if error is not None:
                return Pending(AuthStep.ERROR, error)
            return self._token_done(payload)

        def start(resume: _Resumption) -> None:
            self.client.get_access_token(resume.deferred(exchanged))

        return Waiting(start)

    def _redirect_done(self, params: Any) -> Continuation:
        if not self.store.process_redirect_params(params or {}):
            return Pending(
                AuthStep.ERROR,
                AuthorizationError(
                    "The authorize redirect carried no authorization result",
                    kind=AuthErrorKind.INVALID_PARAM,
                    raw_response=params,
                ),
            )
        return Pending()

    def _token_done(self, payload: Any) -> Continuation:
        token = None
        if isinstance(payload, dict):
            token = payload.get("access_token") or payload.get("token")
        if not token:
            return Pending(
                AuthStep.ERROR,
                AuthorizationError(
                    "The token endpoint returned no access token",
                    kind=AuthErrorKind.INVALID_PARAM,
                    raw_response=payload,
                ),
            )
        self.store.process_redirect_params(
            {
                "access_token": token,
                "token_type": payload.get("token_type", "bearer"),
                "uid": payload.get("uid"),
            }
        )
        return Pending()
