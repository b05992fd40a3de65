"""Data models for the expense log domain."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

__all__ = [
    "ENTREPRENEURSHIP_CATEGORIES",
    "EXPENSE_TYPES",
    "PAYMENT_METHODS",
    "PERSONAL_CATEGORIES",
    "PERSONAL_TYPE",
    "ExpenseDraft",
    "ExpenseRecord",
    "categories_for_type",
]

PERSONAL_TYPE = "Personal"

EXPENSE_TYPES: Tuple[str, ...] = (PERSONAL_TYPE, "Belyou", "Sherman Morgan", "Men Shop")

PERSONAL_CATEGORIES: Tuple[str, ...] = (
    "gastos_fijos",
    "comida",
    "transporte",
    "gustos",
    "salud",
    "ahorro",
    "viajes",
)

ENTREPRENEURSHIP_CATEGORIES: Tuple[str, ...] = (
    "insumos",
    "publicidad",
    "mantenimiento",
    "pagos_producto",
    "envios",
    "otro",
)

PAYMENT_METHODS: Tuple[str, ...] = ("credit", "cash")

# Keys written by the browser client before the store moved server side.
_LEGACY_KEYS = {
    "fecha": "date",
    "gasto": "amount",
    "descripcion": "description",
    "tipo": "type",
    "categoria": "category",
    "formaPago": "payment_method",
    "paymentMethod": "payment_method",
}


def categories_for_type(expense_type: Optional[str]) -> Tuple[str, ...]:
    """Return the categories a record of ``expense_type`` may use."""
    if not expense_type:
        return ()
    if expense_type == PERSONAL_TYPE:
        return PERSONAL_CATEGORIES
    return ENTREPRENEURSHIP_CATEGORIES


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass(frozen=True)
class ExpenseRecord:
    id: int
    date: str
    amount: str
    type: str
    category: str
    payment_method: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the record to JSON-friendly natives."""
        return {
            "id": self.id,
            "date": self.date,
            "amount": self.amount,
            "description": self.description,
            "type": self.type,
            "category": self.category,
            "payment_method": self.payment_method,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExpenseRecord":
        """Hydrate a record from JSON-native data, accepting the legacy client keys."""
        normalized = dict(data)
        for legacy, current in _LEGACY_KEYS.items():
            if legacy in normalized and current not in normalized:
                normalized[current] = normalized.pop(legacy)
        return cls(
            id=int(normalized["id"]),
            date=_text(normalized.get("date")),
            amount=_text(normalized.get("amount")),
            type=_text(normalized.get("type")),
            category=_text(normalized.get("category")),
            payment_method=_text(normalized.get("payment_method")),
            description=_text(normalized.get("description")),
        )


@dataclass(frozen=True)
class ExpenseDraft:
    """Partially filled expense form.

    Drafts are immutable; every edit returns a new draft. Picking a different
    ``type`` clears ``category`` because the option list changes with it.
    """

    date: str = ""
    amount: str = ""
    description: str = ""
    type: str = ""
    category: str = ""
    payment_method: str = ""

    def with_field(self, name: str, value: Any) -> "ExpenseDraft":
        if name not in self.__dataclass_fields__:
            raise KeyError(f"Unknown form field: {name}")
        changes: Dict[str, str] = {name: _text(value)}
        if name == "type" and changes["type"] != self.type:
            changes["category"] = ""
        return replace(self, **changes)

    def category_options(self) -> Tuple[str, ...]:
        return categories_for_type(self.type)

    def to_payload(self) -> Dict[str, str]:
        return {
            "date": self.date,
            "amount": self.amount,
            "description": self.description,
            "type": self.type,
            "category": self.category,
            "payment_method": self.payment_method,
        }
