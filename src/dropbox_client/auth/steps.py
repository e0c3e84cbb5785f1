"""Authentication steps of the client's OAuth state machine."""

from enum import Enum


class AuthStep(Enum):
    """Where a client is in the OAuth handshake."""

    ERROR = "error"
    RESET = "reset"
    PARAM_SET = "param_set"
    PARAM_LOADED = "param_loaded"
    AUTHORIZED = "authorized"
    DONE = "done"
    SIGNED_OFF = "signed_off"
