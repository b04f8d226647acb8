"""Error taxonomy shared by the data layer and the page controllers."""

from __future__ import annotations


class HobblyError(Exception):
    """Base class for every error a page controller knows how to render."""

    @property
    def user_message(self) -> str:
        return str(self) or "Something went wrong."


class ValidationError(HobblyError):
    """Client-side form check failed; never sent to the backend.

    ``errors`` maps a form field to the message shown next to it.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))

    @property
    def user_message(self) -> str:
        return "Please correct the errors above."


AUTH_MESSAGES = {
    "invalid_credentials": "Invalid email or password.",
    "email_not_confirmed": "Please check your email and confirm your account.",
    "rate_limited": "Too many login attempts. Please try again later.",
    "not_authenticated": "You need to sign in first.",
    "user_exists": "An account with this email already exists.",
    "weak_password": "The password does not meet the requirements.",
}


class AuthError(HobblyError):
    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        super().__init__(detail or code)

    @property
    def user_message(self) -> str:
        return AUTH_MESSAGES.get(
            self.code, self.detail or "An error occurred during sign in."
        )


class PermissionDenied(HobblyError):
    @property
    def user_message(self) -> str:
        return str(self) or "You do not have permission to do that."


class NotFound(HobblyError):
    @property
    def user_message(self) -> str:
        return str(self) or "Not found."


class NetworkError(HobblyError):
    @property
    def user_message(self) -> str:
        return "Could not reach the server. Please try again."


class BackendError(HobblyError):
    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return "The server returned an error. Please try again."
