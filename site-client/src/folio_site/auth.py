"""Admin authentication against Firebase Auth."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Callable

import requests

logger = logging.getLogger(__name__)

SIGN_IN_WITH_PASSWORD_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

DEFAULT_ERROR = "Verification failed. Please check your credentials."

_ERROR_MESSAGES = {
    "EMAIL_NOT_FOUND": "No admin account exists for that email.",
    "INVALID_PASSWORD": "Wrong password.",
    "INVALID_LOGIN_CREDENTIALS": "Wrong email or password.",
    "INVALID_EMAIL": "That email address is not valid.",
    "USER_DISABLED": "This account has been disabled.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Try again later.",
}


class AuthenticationError(Exception):
    """Sign-in was rejected. The message is safe to show to the user."""


@dataclass(frozen=True)
class Session:
    uid: str
    email: str
    id_token: str
    refresh_token: str = ""


AuthListener = Callable[[Session | None], None]


def _error_message(response: requests.Response) -> str:
    try:
        code = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return DEFAULT_ERROR
    # Codes may carry detail after " : "
    code = str(code).split(" : ")[0].strip()
    return _ERROR_MESSAGES.get(code, DEFAULT_ERROR)


class FirebaseIdentityProvider:
    """Email/password sign-in with an auth-state stream."""

    def __init__(
        self,
        api_key: str,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ):
        self._api_key = api_key
        self._http = session or requests.Session()
        self._timeout = timeout
        self._listeners: list[AuthListener] = []
        self.current: Session | None = None

    def on_auth_state_changed(self, callback: AuthListener) -> Callable[[], None]:
        """Register a listener. It is called now with the current state and
        again after every sign-in and sign-out. Returns an unsubscribe function.
        """
        self._listeners.append(callback)
        callback(self.current)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_current(self, session: Session | None) -> None:
        self.current = session
        for listener in list(self._listeners):
            listener(session)

    def sign_in_with_email_and_password(self, email: str, password: str) -> Session:
        try:
            response = self._http.post(
                SIGN_IN_WITH_PASSWORD_URL,
                params={"key": self._api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error("Network error during sign-in: %s", e)
            raise AuthenticationError("Sign-in service is unavailable. Try again later.") from e

        if response.status_code != 200:
            message = _error_message(response)
            logger.info("Sign-in rejected for %s: %s", email, message)
            raise AuthenticationError(message)

        try:
            data = response.json()
            session = Session(
                uid=data.get("localId", ""),
                email=data.get("email", email),
                id_token=data["idToken"],
                refresh_token=data.get("refreshToken", ""),
            )
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Unreadable sign-in response for %s", email, exc_info=True)
            raise AuthenticationError(DEFAULT_ERROR) from e

        logger.info("Signed in as %s", session.email)
        self._set_current(session)
        return session

    def sign_out(self) -> None:
        if self.current is not None:
            logger.info("Signed out %s", self.current.email)
        self._set_current(None)


class AuthState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class AdminView(StrEnum):
    CONSOLE = "console"
    LOGIN = "login"


class AuthGate:
    """Decides what the admin route shows.

    The state only follows the provider's auth-state stream; the gate keeps
    no session of its own.
    """

    def __init__(self, provider: FirebaseIdentityProvider):
        self._provider = provider
        self.state = AuthState.UNAUTHENTICATED
        self.user: Session | None = None
        self.error = ""
        self.signing_in = False
        self._unsubscribe = provider.on_auth_state_changed(self._on_auth_state)

    def _on_auth_state(self, session: Session | None) -> None:
        self.user = session
        self.state = AuthState.AUTHENTICATED if session else AuthState.UNAUTHENTICATED

    @property
    def admin_view(self) -> AdminView:
        if self.state == AuthState.AUTHENTICATED:
            return AdminView.CONSOLE
        return AdminView.LOGIN

    def login(self, email: str, password: str) -> bool:
        """Try to sign in. On failure ``error`` holds a readable message."""
        self.error = ""
        self.signing_in = True
        try:
            self._provider.sign_in_with_email_and_password(email, password)
        except AuthenticationError as e:
            self.error = str(e)
            return False
        finally:
            self.signing_in = False
        return True

    def logout(self) -> None:
        self._provider.sign_out()

    def close(self) -> None:
        self._unsubscribe()
