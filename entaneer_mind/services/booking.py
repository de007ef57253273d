import re

CLIENT_ID_DIGITS = 9
PHONE_DIGITS = 10
MAX_DESCRIPTION_LENGTH = 600

_PHONE_SEPARATORS = re.compile(r'[\s-]')


class BookingValidationError(ValueError):
    """A client-entered identity field has the wrong shape."""


def _require_digits(value: str, length: int) -> bool:
    return re.fullmatch(rf'[0-9]{{{length}}}', value) is not None


def validate_client_id(value: str) -> str:
    normalized = (value or '').strip()
    if not _require_digits(normalized, CLIENT_ID_DIGITS):
        raise BookingValidationError(f'Student ID must be exactly {CLIENT_ID_DIGITS} digits.')
    return normalized


def validate_phone(value: str) -> str:
    normalized = _PHONE_SEPARATORS.sub('', value or '')
    if not _require_digits(normalized, PHONE_DIGITS):
        raise BookingValidationError(f'Phone number must be exactly {PHONE_DIGITS} digits.')
    return normalized


def validate_description(value: str) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise BookingValidationError('Please describe your concern.')
    if len(normalized) > MAX_DESCRIPTION_LENGTH:
        raise BookingValidationError(f'Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer.')
    return normalized


def case_code_for(user) -> str:
    # Kept apart from the CASE-NNNN codes of seeded mock bookings.
    return user.case_code or f'CLIENT-{user.id:06d}'
