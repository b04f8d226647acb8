"""Client-side form checks.

Each ``validate_*`` function collects every problem it finds and raises a
single :class:`~hobbly_bot.core.errors.ValidationError` mapping field names to
messages, so forms can show all errors at once.
"""

from __future__ import annotations

import re

from .errors import ValidationError
from .models import ActivityFormData

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[+]?[1-9]\d{1,14}$")
SPECIAL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
PHONE_NOISE_RE = re.compile(r"[\s\-()]")

MIN_PASSWORD_LENGTH = 8
MAX_IMAGE_BYTES = 5 * 1024 * 1024


def _raise_if(errors: dict[str, str]) -> None:
    if errors:
        raise ValidationError(errors)


def email_error(email: str) -> str | None:
    if not email.strip():
        return "Email is required"
    if not EMAIL_RE.match(email.strip()):
        return "Please enter a valid email address"
    return None


def password_error(password: str) -> str | None:
    if not password:
        return "Password is required"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not re.search(r"\d", password):
        return "Password must contain at least one number"
    if not SPECIAL_RE.search(password):
        return "Password must contain at least one special character"
    return None


def phone_error(phone: str | None) -> str | None:
    if not phone or not phone.strip():
        return None
    if not PHONE_RE.match(PHONE_NOISE_RE.sub("", phone)):
        return "Please enter a valid phone number"
    return None


def full_name_error(full_name: str) -> str | None:
    if not full_name.strip():
        return "Full name is required"
    if len(full_name.strip()) < 2:
        return "Full name must be at least 2 characters"
    return None


def validate_sign_in(email: str, password: str) -> None:
    if not email.strip() or not password:
        raise ValidationError({"form": "Please fill in all fields"})
    if msg := email_error(email):
        raise ValidationError({"email": msg})


def validate_sign_up(
    *,
    full_name: str,
    email: str,
    password: str,
    confirm_password: str,
    phone: str | None = None,
    agree_to_terms: bool = True,
) -> None:
    errors: dict[str, str] = {}
    if msg := full_name_error(full_name):
        errors["full_name"] = msg
    if msg := email_error(email):
        errors["email"] = msg
    if msg := password_error(password):
        errors["password"] = msg
    if not confirm_password:
        errors["confirm_password"] = "Confirm password is required"
    elif password != confirm_password:
        errors["confirm_password"] = "Passwords do not match"
    if msg := phone_error(phone):
        errors["phone"] = msg
    if not agree_to_terms:
        errors["agree_to_terms"] = "You must agree to the Terms of Service to continue"
    _raise_if(errors)


def validate_profile(full_name: str, phone: str | None) -> None:
    errors: dict[str, str] = {}
    if msg := full_name_error(full_name):
        errors["full_name"] = msg
    if msg := phone_error(phone):
        errors["phone"] = msg
    _raise_if(errors)


def validate_new_password(password: str, confirm_password: str) -> None:
    errors: dict[str, str] = {}
    if msg := password_error(password):
        errors["password"] = msg
    if password != confirm_password:
        errors["confirm_password"] = "Passwords do not match"
    _raise_if(errors)


def validate_activity(form: ActivityFormData) -> None:
    errors: dict[str, str] = {}
    if not form.title.strip():
        errors["title"] = "Title is required"
    if not form.description.strip():
        errors["description"] = "Description is required"
    if not form.category_id.strip():
        errors["category_id"] = "Category is required"
    if not form.location.strip():
        errors["location"] = "Location is required"
    if msg := email_error(form.contact_email):
        errors["contact_email"] = msg
    if msg := phone_error(form.contact_phone):
        errors["contact_phone"] = msg
    if form.price < 0:
        errors["price"] = "Price cannot be negative"
    if form.max_participants is not None and form.max_participants < 1:
        errors["max_participants"] = "At least one participant is required"
    if (
        form.min_age is not None
        and form.max_age is not None
        and form.min_age > form.max_age
    ):
        errors["max_age"] = "Maximum age must not be below minimum age"
    if form.start_date and form.end_date and form.start_date > form.end_date:
        errors["end_date"] = "End date must be after the start date"
    _raise_if(errors)


def validate_image(content_type: str | None, size: int) -> None:
    if not content_type or not content_type.startswith("image/"):
        raise ValidationError({"image": "Please select a valid image file"})
    if size > MAX_IMAGE_BYTES:
        raise ValidationError({"image": "Image size must be less than 5MB"})
