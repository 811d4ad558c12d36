import re
import secrets
import string
from datetime import datetime, timezone
from typing import Optional

from .config import settings

_NON_DIGITS = re.compile(r"\D")

# Ambiguous glyphs (0/O, 1/l/I) are left out of generated passwords
PASSWORD_UPPER = "ABCDEFGHJKLMNPQRSTUVWXYZ"
PASSWORD_LOWER = "abcdefghijkmnopqrstuvwxyz"
PASSWORD_DIGITS = "23456789"
PASSWORD_SYMBOLS = "!@#$%^&*"
MIN_PASSWORD_LENGTH = 12


# =========================
# Phone Handling
# =========================
def normalize_phone(phone: Optional[str], country_code: Optional[str] = None) -> str:
    """Convert a caller-supplied phone string into canonical ``+<digits>`` form.

    Returns an empty string when the input holds no digits at all.
    Normalizing an already-canonical number returns it unchanged.
    """
    cc = country_code if country_code is not None else settings.DEFAULT_COUNTRY_CODE
    raw = str(phone or "").strip()
    digits = _NON_DIGITS.sub("", raw)
    if not digits:
        return ""
    if len(digits) == 10:
        return f"+{cc}{digits}"
    if len(digits) == len(cc) + 10 and digits.startswith(cc):
        return f"+{digits}"
    if len(digits) == 11 and digits.startswith("0"):
        return f"+{cc}{digits[1:]}"
    # explicit international form, or unknown shape passed through as-is
    return f"+{digits}"


def national_digits(phone: str) -> str:
    """Trailing ten (national) digits of a phone number."""
    return _NON_DIGITS.sub("", phone or "")[-10:]


def mask_phone(phone: str, visible_digits: int = 4) -> str:
    if not phone:
        return ""
    if len(phone) <= visible_digits:
        return phone
    return "*" * (len(phone) - visible_digits) + phone[-visible_digits:]


# =========================
# OTP Generation
# =========================
def generate_otp(length: int = 6) -> str:
    """Uniformly random numeric code, always exactly ``length`` digits (zero-padded)."""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def mask_code(code: str) -> str:
    if not code:
        return ""
    if len(code) <= 2:
        return "*" * len(code)
    return "*" * (len(code) - 2) + code[-2:]


def compose_message(template: str, otp: str) -> str:
    """Fill the ``{otp}`` placeholder of an SMS template."""
    if "{otp}" in (template or ""):
        return template.replace("{otp}", otp)
    return f"Your OTP is {otp}."


# =========================
# Credentials
# =========================
def generate_password(length: int = 14) -> str:
    """High-entropy password containing upper, lower, digit and symbol characters."""
    length = max(length, MIN_PASSWORD_LENGTH)
    classes = [PASSWORD_UPPER, PASSWORD_LOWER, PASSWORD_DIGITS, PASSWORD_SYMBOLS]
    alphabet = "".join(classes)
    chars = [secrets.choice(c) for c in classes]
    chars += [secrets.choice(alphabet) for _ in range(length - len(chars))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def alias_email_for(phone: str, domain: Optional[str] = None) -> str:
    """Deterministic, non-deliverable email used as the identity key for a phone."""
    domain = domain or settings.ALIAS_EMAIL_DOMAIN
    return f"agent.{_NON_DIGITS.sub('', phone or '')}@{domain}"


# =========================
# Time
# =========================
def utc_now() -> datetime:
    """Timezone-aware current UTC time; all stored timestamps use it."""
    return datetime.now(timezone.utc)
