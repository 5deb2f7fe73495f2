"""
CSV Import/Export Service

Imports budget lines and expenses from spreadsheet exports, and exports
expenses and budget-vs-actual summaries back to CSV text.

Imports never abort on a bad row: each row is validated and written
through the store's normal command path, failures are collected as
"Row N: ..." messages (N counts the header as row 1) and the batch
carries on.
"""

import csv
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import Iterable, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from shootledger.audit.logger import AuditLogger, get_logger
from shootledger.config import Settings
from shootledger.models.entities import BudgetLine, EntityKind, PaymentMethod
from shootledger.models.filters import ExpenseFilter
from shootledger.models.reports import DepartmentSummary
from shootledger.services.storage import StorageError
from shootledger.store import ProductionStore
from shootledger.validation import wrap_schema_error


BUDGET_COLUMNS = ["Department", "LineItem", "BudgetAmountINR", "Notes"]
EXPENSE_COLUMNS = [
    "Date", "Department", "LineItem", "Vendor", "Description", "AmountINR",
    "TaxRatePct", "PaymentMethod", "PaidBy", "Reimbursable", "ShootDay",
    "AttachmentFileName",
]
EXPENSE_EXPORT_COLUMNS = [
    "Date", "Department", "LineItem", "Vendor", "Description", "AmountINR",
    "TaxRatePct", "PaymentMethod", "Status", "Reimbursable", "ShootDay",
    "CreatedBy", "CreatedAt",
]
BUDGET_VS_ACTUAL_COLUMNS = [
    "Department", "BudgetAmountINR", "ActualAmountINR", "VarianceINR",
    "VariancePercent", "ExpenseCount",
]

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_YES = {"y", "yes"}


class ImportResult(BaseModel):
    success: bool
    message: str
    imported: int = 0
    errors: list[str] = Field(default_factory=list)


class RowError(ValueError):
    """A row that cannot be imported; the message becomes "Row N: ..."."""
    pass


def parse_amount(raw: Optional[str]) -> Optional[Decimal]:
    """'₹15,000.50' → Decimal('15000.50'); None when nothing numeric is left."""
    cleaned = _NON_NUMERIC.sub("", raw or "")
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return None


def _cell(row: dict, *names: str) -> str:
    """First non-empty value among the column aliases."""
    for name in names:
        value = row.get(name)
        if value and value.strip():
            return value.strip()
    return ""


class CsvService:
    """
    CSV adapter over the production store.

    All reads and writes go through the store's public API; the service
    keeps no state of its own.
    """

    def __init__(
        self,
        store: ProductionStore,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._store = store
        self._audit = audit_logger
        self._settings = settings or store.settings
        self._logger = get_logger(__name__)

    # =========================================================================
    # IMPORT
    # =========================================================================

    def import_budget_csv(self, project_id: str, text: str) -> ImportResult:
        """
        Import budget lines.

        Departments are matched by name, case-insensitively, and created
        (with a zero budget) when missing.

        Raises:
            NotFoundError: If the project does not exist
        """
        self._store.get_project(project_id)
        reader = csv.DictReader(StringIO(text))
        if not reader.fieldnames:
            return self._parse_failure("budget", "No header row")

        departments = {d.name.lower(): d for d in self._store.get_departments(project_id)}
        imported = 0
        errors: list[str] = []

        for row_number, row in enumerate(reader, start=2):
            if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
                continue
            try:
                department_name = _cell(row, "Department")
                line_item = _cell(row, "LineItem")
                amount = parse_amount(_cell(row, "BudgetAmountINR", "BudgetAmount"))
                if not department_name or not line_item or amount is None:
                    raise RowError("Missing required fields (Department, LineItem, BudgetAmountINR)")

                try:
                    BudgetLine.model_validate({
                        "project_id": project_id,
                        "department_id": "unassigned",
                        "line_item": line_item,
                        "budget_amount": amount,
                    })
                except PydanticValidationError as e:
                    raise wrap_schema_error(EntityKind.BUDGET_LINE, e) from e

                department = departments.get(department_name.lower())
                if department is None:
                    department = self._store.add_department(
                        project_id=project_id,
                        name=department_name,
                    )
                    departments[department_name.lower()] = department

                self._store.add_budget_line(
                    project_id=project_id,
                    department_id=department.id,
                    line_item=line_item,
                    budget_amount=amount,
                )
                imported += 1
            except (RowError, StorageError) as e:
                errors.append(f"Row {row_number}: {e}")

        return self._finish("budget", project_id, "budget line(s)", imported, errors)

    def import_expense_csv(
        self,
        project_id: str,
        text: str,
        created_by: Optional[str] = None,
    ) -> ImportResult:
        """
        Import expenses.

        Department is required and must already exist. LineItem, Vendor
        and ShootDay (a date) are matched when present and ignored when
        they match nothing. Every expense is imported as submitted.

        Raises:
            NotFoundError: If the project does not exist
        """
        self._store.get_project(project_id)
        reader = csv.DictReader(StringIO(text))
        if not reader.fieldnames:
            return self._parse_failure("expense", "No header row")

        created_by = created_by or self._settings.app.default_user_id
        departments = {d.name.lower(): d for d in self._store.get_departments(project_id)}
        budget_lines = {l.line_item.lower(): l for l in self._store.get_budget_lines(project_id)}
        vendors = {v.name.lower(): v for v in self._store.get_vendors()}
        shoot_days = {d.date.isoformat(): d for d in self._store.get_shoot_days(project_id)}

        imported = 0
        errors: list[str] = []

        for row_number, row in enumerate(reader, start=2):
            if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
                continue
            try:
                raw_date = _cell(row, "Date")
                department_name = _cell(row, "Department")
                description = _cell(row, "Description")
                amount = parse_amount(_cell(row, "AmountINR", "Amount"))
                if not raw_date or not department_name or not description or amount is None or amount <= 0:
                    raise RowError("Missing required fields (Date, Department, Description, AmountINR)")

                try:
                    expense_date = date.fromisoformat(raw_date)
                except ValueError:
                    raise RowError(f'Invalid date "{raw_date}". Use YYYY-MM-DD')

                method = _cell(row, "PaymentMethod")
                if method not in {m.value for m in PaymentMethod}:
                    raise RowError("Invalid payment method. Must be Cash, UPI, Card, or Transfer")

                department = departments.get(department_name.lower())
                if department is None:
                    raise RowError(f'Department "{department_name}" not found')

                line = budget_lines.get(_cell(row, "LineItem").lower())
                vendor = vendors.get(_cell(row, "Vendor").lower())
                shoot_day = shoot_days.get(_cell(row, "ShootDay"))
                tax_rate = parse_amount(_cell(row, "TaxRatePct")) or Decimal("0")
                paid_by = _cell(row, "PaidBy")

                self._store.add_expense(
                    project_id=project_id,
                    department_id=department.id,
                    budget_line_id=line.id if line and line.department_id == department.id else None,
                    vendor_id=vendor.id if vendor else None,
                    shoot_day_id=shoot_day.id if shoot_day else None,
                    date=expense_date,
                    description=description,
                    amount=amount,
                    tax_rate=tax_rate,
                    payment_method=method,
                    reimbursable=_cell(row, "Reimbursable").lower() in _YES,
                    attachment_uri=_cell(row, "AttachmentFileName") or None,
                    notes=f"Paid by {paid_by}" if paid_by else None,
                    created_by=created_by,
                )
                imported += 1
            except (RowError, StorageError) as e:
                errors.append(f"Row {row_number}: {e}")

        return self._finish("expense", project_id, "expense(s)", imported, errors, created_by)

    def _finish(
        self,
        import_type: str,
        project_id: str,
        noun: str,
        imported: int,
        errors: list[str],
        actor_id: Optional[str] = None,
    ) -> ImportResult:
        if imported:
            message = f"Successfully imported {imported} {noun}"
            if errors:
                message += f" with {len(errors)} error(s)"
        else:
            message = f"No {noun.replace('(s)', 's')} imported"

        self._logger.info(
            "csv_import_completed",
            import_type=import_type,
            project_id=project_id,
            imported=imported,
            errors=len(errors),
        )
        if self._audit:
            self._audit.log_import(import_type, project_id, imported, len(errors), actor_id)

        return ImportResult(
            success=not errors,
            message=message,
            imported=imported,
            errors=errors,
        )

    def _parse_failure(self, import_type: str, reason: str) -> ImportResult:
        self._logger.warning("csv_parse_failed", import_type=import_type, reason=reason)
        return ImportResult(
            success=False,
            message=f"CSV parsing error: {reason}",
            errors=[reason],
        )

    # =========================================================================
    # EXPORT
    # =========================================================================

    def export_expenses_csv(self, project_id: str, filter: Optional[ExpenseFilter] = None) -> str:
        """All matching expenses, cancelled ones included unless filtered out."""
        self._store.get_project(project_id)
        departments = {d.id: d.name for d in self._store.get_departments(project_id)}
        budget_lines = {l.id: l.line_item for l in self._store.get_budget_lines(project_id)}
        vendors = {v.id: v.name for v in self._store.get_vendors()}
        shoot_days = {d.id: d.date.isoformat() for d in self._store.get_shoot_days(project_id)}

        rows = [
            {
                "Date": e.date.isoformat(),
                "Department": departments.get(e.department_id, ""),
                "LineItem": budget_lines.get(e.budget_line_id, "") if e.budget_line_id else "",
                "Vendor": vendors.get(e.vendor_id, "") if e.vendor_id else "",
                "Description": e.description,
                "AmountINR": self._money(e.amount),
                "TaxRatePct": self._money(e.tax_rate),
                "PaymentMethod": e.payment_method.value,
                "Status": e.status.value,
                "Reimbursable": "Y" if e.reimbursable else "N",
                "ShootDay": shoot_days.get(e.shoot_day_id, "") if e.shoot_day_id else "",
                "CreatedBy": e.created_by,
                "CreatedAt": e.created_at.isoformat(),
            }
            for e in self._store.get_expenses(project_id, filter)
        ]
        return self._write(EXPENSE_EXPORT_COLUMNS, rows)

    def export_budget_vs_actual_csv(self, summaries: Iterable[DepartmentSummary]) -> str:
        rows = [
            {
                "Department": s.department_name,
                "BudgetAmountINR": self._money(s.budget_amount),
                "ActualAmountINR": self._money(s.actual_amount),
                "VarianceINR": self._money(s.variance),
                "VariancePercent": self._money(s.variance_percent),
                "ExpenseCount": s.expense_count,
            }
            for s in summaries
        ]
        return self._write(BUDGET_VS_ACTUAL_COLUMNS, rows)

    # =========================================================================
    # TEMPLATES
    # =========================================================================

    def budget_import_template(self) -> str:
        return self._write(BUDGET_COLUMNS, [
            {
                "Department": "Pre-Production",
                "LineItem": "Script Development",
                "BudgetAmountINR": "25000",
                "Notes": "Writer fees and script revisions",
            },
            {
                "Department": "Production",
                "LineItem": "Equipment Rental",
                "BudgetAmountINR": "120000",
                "Notes": "Camera, lighting, sound equipment",
            },
            {
                "Department": "Post-Production",
                "LineItem": "Editing",
                "BudgetAmountINR": "50000",
                "Notes": "Video editing and post-production",
            },
        ])

    def expense_import_template(self) -> str:
        return self._write(EXPENSE_COLUMNS, [
            {
                "Date": "2024-01-15",
                "Department": "Production",
                "LineItem": "Equipment Rental",
                "Vendor": "Camera House Mumbai",
                "Description": "Camera equipment rental - Day 1",
                "AmountINR": "15000",
                "TaxRatePct": "18",
                "PaymentMethod": "Transfer",
                "PaidBy": "Producer",
                "Reimbursable": "N",
                "ShootDay": "2024-01-15",
                "AttachmentFileName": "receipt_001.jpg",
            },
            {
                "Date": "2024-01-15",
                "Department": "Production",
                "LineItem": "Catering",
                "Vendor": "Catering Express",
                "Description": "Lunch catering for crew",
                "AmountINR": "3500",
                "TaxRatePct": "5",
                "PaymentMethod": "Cash",
                "PaidBy": "Assistant Director",
                "Reimbursable": "Y",
                "ShootDay": "2024-01-15",
                "AttachmentFileName": "",
            },
        ])

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _money(self, value) -> str:
        return f"{value:.{self._settings.reports.csv_decimal_places}f}"

    @staticmethod
    def _write(columns: list[str], rows: list[dict]) -> str:
        buffer = StringIO()
        writer = csv.DictWriter(buffer, fieldnames=columns, lineterminator="\n")
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue()
