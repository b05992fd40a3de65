"""Flask boundary exposing the expense store, aggregates and exports to the form."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS

from gastos import aggregation
from gastos.config import Settings
from gastos.exceptions import PersistenceWriteError, ValidationError
from gastos.export import export_filename, to_csv, to_report_markup
from gastos.models import EXPENSE_TYPES, PAYMENT_METHODS, categories_for_type
from gastos.storage import JSONFileStorage, KeyValueStorage
from gastos.store import ExpenseStore, records_to_dicts
from gastos.validators import parse_record_date


class QueryError(ValueError):
    """Raised for malformed query string parameters."""


def create_app(
    data_dir: Optional[Path] = None,
    *,
    storage: Optional[KeyValueStorage] = None,
    clock: Optional[Callable[[], int]] = None,
    today: Optional[Callable[[], date]] = None,
    settings: Optional[Settings] = None,
) -> Flask:
    app = Flask(__name__)
    # Weekday totals must keep their Monday-first order.
    app.json.sort_keys = False
    settings = settings or Settings.from_env()

    if settings.is_dev:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
    elif settings.allowed_origins:
        CORS(app, resources={r"/*": {"origins": list(settings.allowed_origins)}}, supports_credentials=True)
    else:
        CORS(app)

    if storage is None:
        storage = JSONFileStorage(Path(data_dir or settings.data_dir))
    store = ExpenseStore(storage, settings.storage_key, clock=clock, autosave=settings.autosave)
    app.extensions["expense_store"] = store
    current_day = today or date.today

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    def _handle_error(exc: Exception, status: int, message: str):
        app.logger.error("%s: %s", message, exc)
        return jsonify({"error": message, "details": str(exc)}), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _handle_error(exc, 400, "Validation error")

    @app.errorhandler(QueryError)
    def handle_query_error(exc: QueryError):
        return _handle_error(exc, 400, "Invalid query")

    @app.errorhandler(PersistenceWriteError)
    def handle_persistence_error(exc: PersistenceWriteError):
        return _handle_error(exc, 500, "Persistence error")

    def _json_body() -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError("Request content must be application/json")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data

    def _window() -> str:
        window = request.args.get("window") or aggregation.WINDOW_ALL
        if window not in aggregation.WINDOWS:
            raise QueryError(f"window must be one of: {', '.join(aggregation.WINDOWS)}")
        return window

    def _reference_date() -> date:
        raw = request.args.get("date")
        if not raw:
            return current_day()
        parsed = parse_record_date(raw)
        if parsed is None:
            raise QueryError("date must use the YYYY-MM-DD format")
        return parsed

    def _money(payload: Dict[str, Any]) -> Dict[str, Any]:
        # Decimals travel as two-decimal strings, as in the stored amounts.
        def convert(value: Any) -> Any:
            if isinstance(value, dict):
                return {key: convert(item) for key, item in value.items()}
            if isinstance(value, Decimal):
                return f"{value:.2f}"
            return value

        return convert(payload)

    @app.get("/options")
    def options():
        return _success({
            "types": list(EXPENSE_TYPES),
            "categories": {t: list(categories_for_type(t)) for t in EXPENSE_TYPES},
            "payment_methods": list(PAYMENT_METHODS),
            "windows": list(aggregation.WINDOWS),
        })

    @app.get("/expenses")
    def list_expenses():
        window = _window()
        records = aggregation.filter_by_window(store.list(), window, _reference_date())
        return _success({
            "items": records_to_dicts(records),
            "total": f"{aggregation.grand_total(records):.2f}",
        })

    @app.post("/expenses")
    def create_expense():
        payload = _json_body()
        records = store.add(payload)
        return _success(records[-1].to_dict(), 201)

    @app.delete("/expenses/<int:record_id>")
    def delete_expense(record_id: int):
        store.remove(record_id)
        return _success({}, 204)

    @app.post("/save")
    def save():
        store.save()
        return _success({"saved": True, "count": len(store.list())})

    @app.get("/summary")
    def summary():
        payload = aggregation.summary(store.list(), _reference_date(), _window())
        return _success(_money(payload))

    @app.get("/export/csv")
    def export_csv():
        window = _window()
        reference = _reference_date()
        records = aggregation.filter_by_window(store.list(), window, reference)
        filename = export_filename(current_day(), window)
        return Response(
            to_csv(records),
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/export/report")
    def export_report():
        window = _window()
        reference = _reference_date()
        records = aggregation.filter_by_window(store.list(), window, reference)
        title = "Reporte de Gastos" if window == aggregation.WINDOW_ALL else "Reporte de Gastos (semana)"
        markup = to_report_markup(records, title, aggregation.grand_total(records))
        return Response(markup, mimetype="text/html")

    return app
