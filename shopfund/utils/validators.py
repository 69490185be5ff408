import re

# at least five letters anywhere in the name
USERNAME_RE = re.compile(r"^(?=(?:.*[A-Za-z]){5,}).{5,}$")
EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
PASSWORD_RE = re.compile(r"^(?=.*?[A-Z])(?=.*?[a-z])(?=.*?[0-9])(?=.*?[#?!@$%^&*-]).{8,}$")


def is_username_valid(username: str) -> bool:
    return bool(USERNAME_RE.match(username or ""))


def is_email_valid(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def is_strong_password(password: str) -> bool:
    return bool(PASSWORD_RE.match(password or ""))


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()
