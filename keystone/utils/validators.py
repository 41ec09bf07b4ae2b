from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from email_validator import validate_email as email_validator, EmailNotValidError

from keystone.errors import ValidationError


def validate_email(email):
    """Validate email address"""
    try:
        email_validator(email, check_deliverability=False)
        return True
    except EmailNotValidError:
        return False


def validate_password(password):
    """Validate password strength"""
    if not password:
        return False

    # Minimum 8 characters
    if len(password) < 8:
        return False

    return True


def require_fields(data, *fields):
    """Raise a ValidationError naming every missing or blank field"""
    missing = [f for f in fields if data.get(f) is None or str(data.get(f)).strip() == '']
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")


def parse_date(value, field):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).split('T')[0], '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a date in YYYY-MM-DD format')


def parse_int(value, field, minimum=None, maximum=None, default=None):
    if value is None or str(value).strip() == '':
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a whole number')
    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} must be at least {minimum}')
    if maximum is not None and number > maximum:
        raise ValidationError(f'{field} must be at most {maximum}')
    return number


def parse_money(value, field, default=None):
    if value is None or str(value).strip() == '':
        return default
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f'{field} must be a number')
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f'{field} must be a non-negative amount')
    return amount


def parse_choice(value, field, choices):
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(str(c) for c in choices)}")
    return value


def parse_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('true', '1', 'yes', 'on')
