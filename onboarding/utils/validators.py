from email_validator import EmailNotValidError, validate_email as check_email


def validate_email(email) -> bool:
    if not isinstance(email, str):
        return False
    try:
        check_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()
