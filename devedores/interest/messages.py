"""Collection message templating and Brazilian formatting helpers.

Only the text is built here. Delivering it (WhatsApp or otherwise) is the
job of an external transport.
"""

import re
from datetime import datetime
from decimal import Decimal

from devedores.interest.engine import evaluate_debt
from devedores.models import Client, Debt
from devedores.utils import parse_datetime, round_currency, utcnow

DEFAULT_TEMPLATE = (
    "Olá {NOME}, identificamos que sua dívida no valor de {VALOR_ORIGINAL} "
    "venceu há {MESES_ATRASO} meses. O valor atualizado para pagamento é de "
    "{VALOR_CORRIGIDO}. Entre em contato conosco para regularizar sua situação."
)

_NON_DIGITS = re.compile(r"\D")
_PHONE_RE = re.compile(r"^(55)?(\d{10,11})$")


def format_brl(value: Decimal) -> str:
    """Format an amount as Brazilian reais, e.g. ``R$ 1.060,90``."""
    rounded = round_currency(Decimal(value))
    sign = "-" if rounded < 0 else ""
    grouped = f"{abs(rounded):,.2f}"
    return f"{sign}R$ " + grouped.replace(",", "_").replace(".", ",").replace("_", ".")


def format_date(value: datetime) -> str:
    return parse_datetime(value).strftime("%d/%m/%Y")


def format_cpf(cpf: str) -> str:
    """Format 11 CPF digits as ``XXX.XXX.XXX-XX``; other input is returned as-is."""
    digits = _NON_DIGITS.sub("", cpf)
    if len(digits) != 11:
        return cpf
    return f"{digits[:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:]}"


def is_valid_phone(phone: str) -> bool:
    """Whether a phone is a Brazilian number, with or without the 55 prefix."""
    return bool(_PHONE_RE.match(_NON_DIGITS.sub("", phone)))


def format_phone(phone: str) -> str:
    """Digits-only number with the 55 country code added when missing."""
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) in (10, 11):
        return f"55{digits}"
    return digits


def build_collection_message(
    client: Client,
    debt: Debt,
    template: str | None = None,
    now: datetime | None = None,
) -> str:
    """Render a collection message for one debt.

    Supported placeholders: ``{NOME}``, ``{VALOR_ORIGINAL}``,
    ``{MESES_ATRASO}``, ``{VALOR_CORRIGIDO}`` and ``{DATA_VENCIMENTO}``.
    """
    evaluation = evaluate_debt(debt, now or utcnow())
    replacements = {
        "{NOME}": client.name,
        "{VALOR_ORIGINAL}": format_brl(debt.amount),
        "{MESES_ATRASO}": str(evaluation.months_overdue),
        "{VALOR_CORRIGIDO}": format_brl(evaluation.corrected_amount),
        "{DATA_VENCIMENTO}": format_date(debt.due_date),
    }
    message = template or DEFAULT_TEMPLATE
    for placeholder, value in replacements.items():
        message = message.replace(placeholder, value)
    return message
