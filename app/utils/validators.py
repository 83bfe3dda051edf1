"""
Input validators and normalizers for Brazilian documents and profile data.
"""
import re
from datetime import date
from typing import Optional

CNPJ_WEIGHTS_FIRST = [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]
CNPJ_WEIGHTS_SECOND = [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2]

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
INSTAGRAM_HANDLE_RE = re.compile(r'^(?!.*\.\.)[a-z0-9._]{1,30}$')


def only_digits(value) -> str:
    return re.sub(r'\D', '', str(value or ''))


def _cnpj_check_digit(digits: str, weights: list) -> int:
    total = sum(int(d) * w for d, w in zip(digits, weights))
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def validate_cnpj(value) -> bool:
    """
    Validate a CNPJ by its two check digits.

    Accepts formatted ('11.222.333/0001-81') or bare input.
    """
    cnpj = only_digits(value)
    if len(cnpj) != 14:
        return False
    if cnpj == cnpj[0] * 14:
        return False

    first = _cnpj_check_digit(cnpj[:12], CNPJ_WEIGHTS_FIRST)
    if first != int(cnpj[12]):
        return False

    second = _cnpj_check_digit(cnpj[:13], CNPJ_WEIGHTS_SECOND)
    return second == int(cnpj[13])


def format_cnpj(value) -> str:
    """Format 14 digits as XX.XXX.XXX/XXXX-XX; other input is returned unchanged."""
    cnpj = only_digits(value)
    if len(cnpj) != 14:
        return value
    return f'{cnpj[:2]}.{cnpj[2:5]}.{cnpj[5:8]}/{cnpj[8:12]}-{cnpj[12:]}'


def clean_cep(value) -> Optional[str]:
    """Return the 8 CEP digits, or None when the input is not a CEP."""
    cep = only_digits(value)
    return cep if len(cep) == 8 else None


def validate_email(value) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value.strip()))


def clean_instagram_handle(value) -> Optional[str]:
    """'@Ana.Cria ' -> 'ana.cria'; None when it cannot be an Instagram username."""
    handle = str(value or '').strip().lstrip('@').lower()
    if 'instagram.com/' in handle:
        handle = handle.rstrip('/').rsplit('/', 1)[-1]
    return handle if INSTAGRAM_HANDLE_RE.match(handle) else None


def calculate_age(date_of_birth: date, today: date = None) -> int:
    """Age in whole years on `today`."""
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def is_at_least_18(date_of_birth: date, today: date = None) -> bool:
    if not date_of_birth:
        return False
    return calculate_age(date_of_birth, today) >= 18


def parse_age_range(value: str):
    """
    Parse '18-24' -> (18, 24) and '55+' -> (55, None).

    Returns None for wildcards and unparseable values.
    """
    if not value:
        return None
    value = value.strip().lower()
    if value in ('todas', 'all'):
        return None
    if value.endswith('+'):
        try:
            return int(value[:-1]), None
        except ValueError:
            return None
    parts = value.split('-')
    if len(parts) != 2:
        return None
    try:
        low, high = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if low > high:
        return None
    return low, high


def parse_date(value) -> Optional[date]:
    """Parse an ISO date string (YYYY-MM-DD); raises ValueError when malformed."""
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
