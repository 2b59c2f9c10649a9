"""Document codec shared by the local medium and the synced file.

The wire keys are the ones written by the browser app (``clientes``,
``dividas``, ``configuracoes.ultimaAtualizacao``...) so existing
``devedores.json`` files keep loading.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from devedores.models import Client, Debt, DebtStatus, Document, Payment, Settings
from devedores.utils import parse_datetime, round_currency, to_decimal

DEFAULT_MONTHLY_RATE = Decimal("3")
DEFAULT_GRACE_MONTHS = 2


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        return float(round_currency(value))
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def serialize_rate(value: Decimal) -> float:
    """Serialize a percentage rate; rates keep their precision, unlike money."""
    return float(value)


# --- Encoding ---


def encode_debt(debt: Debt) -> dict[str, Any]:
    return {
        "id": debt.debt_id,
        "clienteId": debt.client_id,
        "valor": serialize_value(debt.amount),
        "dataVencimento": serialize_value(debt.due_date),
        "dataCriacao": serialize_value(debt.issued_at),
        "descricao": debt.description,
        "status": serialize_value(debt.status),
        "juros": serialize_rate(debt.monthly_rate),
        "mesInicioJuros": debt.grace_months,
        "valorAtualizado": serialize_value(debt.adjusted_amount),
        "createdAt": serialize_value(debt.created_at),
        "updatedAt": serialize_value(debt.updated_at),
    }


def encode_payment(payment: Payment) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": payment.payment_id,
        "clienteId": payment.client_id,
        "dividaId": payment.debt_id,
        "valor": serialize_value(payment.amount),
        "data": serialize_value(payment.paid_on),
        "createdAt": serialize_value(payment.created_at),
        "updatedAt": serialize_value(payment.updated_at),
    }
    if payment.note is not None:
        data["observacao"] = payment.note
    return data


def encode_client(client: Client) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": client.client_id,
        "nome": client.name,
        "cpf": client.tax_id,
        "telefone": client.phone,
    }
    if client.email is not None:
        data["email"] = client.email
    if client.address is not None:
        data["endereco"] = client.address
    data.update(
        {
            "createdAt": serialize_value(client.created_at),
            "updatedAt": serialize_value(client.updated_at),
            "dividas": [encode_debt(debt) for debt in client.debts],
            "pagamentos": [encode_payment(payment) for payment in client.payments],
        }
    )
    return data


def encode_document(document: Document) -> dict[str, Any]:
    """Convert a document to its JSON-ready wire shape."""
    return {
        "clientes": [encode_client(client) for client in document.clients],
        "configuracoes": {
            "ultimaAtualizacao": serialize_value(document.settings.last_updated),
            "versao": document.settings.version,
            "usuario": document.settings.owner,
        },
    }


def dumps(document: Document, pretty: bool = False) -> str:
    """Serialize a document to a JSON string."""
    data = encode_document(document)
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, ensure_ascii=False)


# --- Decoding ---


def decode_debt(data: dict[str, Any]) -> Debt:
    amount = to_decimal(data["valor"])
    created_at = parse_datetime(data["createdAt"])
    return Debt(
        debt_id=data["id"],
        client_id=data["clienteId"],
        amount=amount,
        due_date=parse_datetime(data["dataVencimento"]),
        issued_at=parse_datetime(data.get("dataCriacao") or data["createdAt"]),
        description=data.get("descricao", ""),
        status=DebtStatus(data["status"]),
        monthly_rate=to_decimal(data.get("juros", DEFAULT_MONTHLY_RATE)),
        grace_months=int(data.get("mesInicioJuros", DEFAULT_GRACE_MONTHS)),
        adjusted_amount=to_decimal(data.get("valorAtualizado", amount)),
        created_at=created_at,
        updated_at=parse_datetime(data.get("updatedAt") or data["createdAt"]),
    )


def decode_payment(data: dict[str, Any]) -> Payment:
    return Payment(
        payment_id=data["id"],
        client_id=data["clienteId"],
        debt_id=data["dividaId"],
        amount=to_decimal(data["valor"]),
        paid_on=parse_datetime(data["data"]),
        created_at=parse_datetime(data["createdAt"]),
        updated_at=parse_datetime(data.get("updatedAt") or data["createdAt"]),
        note=data.get("observacao"),
    )


def decode_client(data: dict[str, Any]) -> Client:
    return Client(
        client_id=data["id"],
        name=data["nome"],
        tax_id=data.get("cpf", ""),
        phone=data.get("telefone", ""),
        email=data.get("email"),
        address=data.get("endereco"),
        created_at=parse_datetime(data["createdAt"]),
        updated_at=parse_datetime(data.get("updatedAt") or data["createdAt"]),
        debts=[decode_debt(item) for item in data.get("dividas", [])],
        payments=[decode_payment(item) for item in data.get("pagamentos", [])],
    )


def decode_document(data: dict[str, Any]) -> Document:
    """Build a document from its wire shape.

    Raises
    ------
    KeyError, TypeError, ValueError
        When required fields are missing or malformed.
    """
    if not isinstance(data, dict):
        raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
    settings_data = data["configuracoes"]
    settings = Settings(
        last_updated=parse_datetime(settings_data["ultimaAtualizacao"]),
        version=settings_data.get("versao", "1.0.0"),
        owner=settings_data.get("usuario", ""),
    )
    return Document(
        settings=settings,
        clients=[decode_client(item) for item in data.get("clientes", [])],
    )


# Everything json.loads or decode_document can raise on bad input
DECODE_ERRORS = (KeyError, TypeError, ValueError, ArithmeticError)


def loads(text: str) -> Document:
    """Parse a JSON string into a document."""
    return decode_document(json.loads(text))
