"""
Form validation and display formatting (CPF, e-mail, phone, currency).
"""

import re

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def is_valid_cpf(cpf: str) -> bool:
    """Checks the two CPF verification digits."""
    digits = _digits(cpf)
    if len(digits) != 11 or digits == digits[0] * 11:
        return False

    for length in (9, 10):
        total = sum(int(d) * (length + 1 - i) for i, d in enumerate(digits[:length]))
        check = (total * 10) % 11
        if check == 10:
            check = 0
        if check != int(digits[length]):
            return False
    return True


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def format_cpf(cpf: str) -> str:
    """'12345678909' → '123.456.789-09'; anything else is returned as is."""
    if not cpf:
        return ""
    digits = _digits(cpf)
    if len(digits) != 11:
        return cpf
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def format_phone(phone: str) -> str:
    """'+5511987654321' → '+55 (11) 98765-4321'."""
    if not phone:
        return ""
    digits = _digits(phone)
    if len(digits) == 13 and digits.startswith("55"):
        return f"+55 ({digits[2:4]}) {digits[4:9]}-{digits[9:]}"
    return phone


def format_currency(value: float) -> str:
    """Brazilian real: 1234.5 → 'R$ 1.234,50'."""
    text = f"{abs(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if value < 0 else ""
    return f"{sign}R$ {text}"
