"""CSV and printable HTML renderings of an expense list."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence, Tuple

from jinja2 import Environment, select_autoescape

from .models import ExpenseRecord
from .validators import parse_amount_lenient, quantize_two_decimals

# (header, record attribute)
CSV_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("Fecha", "date"),
    ("Descripción", "description"),
    ("Tipo", "type"),
    ("Categoría", "category"),
    ("Forma de Pago", "payment_method"),
    ("Monto", "amount"),
)

PAYMENT_LABELS = {"credit": "Crédito", "cash": "Efectivo"}

_env = Environment(autoescape=select_autoescape(default_for_string=True, default=True))

_REPORT_TEMPLATE = _env.from_string(
    """<!DOCTYPE html>
<html lang="es">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
  body { font-family: Arial, sans-serif; margin: 24px; }
  table { border-collapse: collapse; width: 100%; }
  th, td { border: 1px solid #ccc; padding: 6px 8px; text-align: left; }
  th { background: #f0f0f7; }
  td.amount, th.amount { text-align: right; }
  tfoot td { font-weight: bold; }
</style>
</head>
<body>
<h1>{{ title }}</h1>
{% if rows %}
<table>
  <thead>
    <tr><th>Fecha</th><th>Descripción</th><th>Tipo</th><th>Categoría</th><th>Forma de Pago</th><th class="amount">Monto</th></tr>
  </thead>
  <tbody>
  {% for row in rows %}
    <tr><td>{{ row.date }}</td><td>{{ row.description }}</td><td>{{ row.type }}</td><td>{{ row.category }}</td><td>{{ row.payment }}</td><td class="amount">${{ row.amount }}</td></tr>
  {% endfor %}
  </tbody>
  <tfoot>
    <tr><td colspan="5">Total</td><td class="amount">${{ total }}</td></tr>
  </tfoot>
</table>
{% else %}
<p>No hay gastos registrados.</p>
{% endif %}
</body>
</html>
"""
)


def to_csv(
    records: Iterable[ExpenseRecord],
    columns: Sequence[Tuple[str, str]] = CSV_COLUMNS,
) -> str:
    """Comma-joined rows under a header line.

    Values are written as-is: commas inside a description are not quoted.
    """
    lines = [",".join(header for header, _ in columns)]
    for record in records:
        lines.append(",".join(str(getattr(record, attr) or "") for _, attr in columns))
    return "\n".join(lines) + "\n"


def to_report_markup(records: Iterable[ExpenseRecord], title: str, total: Decimal) -> str:
    rows = [
        {
            "date": record.date,
            "description": record.description,
            "type": record.type,
            "category": record.category,
            "payment": PAYMENT_LABELS.get(record.payment_method, record.payment_method),
            "amount": f"{quantize_two_decimals(parse_amount_lenient(record.amount)):.2f}",
        }
        for record in records
    ]
    return _REPORT_TEMPLATE.render(title=title, rows=rows, total=f"{total:.2f}")


def export_filename(today: date, window: str, extension: str = "csv") -> str:
    return f"gastos_{today.isoformat()}_{window}.{extension}"
