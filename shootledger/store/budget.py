"""
Budget & spend commands: projects, departments, budget lines, vendors
and expenses.
"""

from typing import Any, Mapping, Optional

from shootledger.models.entities import (
    BudgetLine,
    Department,
    EntityKind,
    Expense,
    ExpenseStatus,
    Project,
    Vendor,
    utc_now,
)
from shootledger.models.filters import BudgetLineFilter, ExpenseFilter
from shootledger.services.storage import ConflictError
from shootledger.store.base import ProductionStoreBase, command, merge_input
from shootledger.validation import check_expense_transition, require_same_scope


class BudgetMixin(ProductionStoreBase):
    """Typed commands and queries for the budget side of a production."""

    # =========================================================================
    # PROJECTS
    # =========================================================================

    @command
    def add_project(self, data: Optional[Mapping[str, Any]] = None, **fields) -> Project:
        data = merge_input(data, fields)
        data.setdefault("currency", self._settings.app.default_currency)
        if isinstance(data["currency"], str):
            data["currency"] = data["currency"].strip().upper()
        project = self._build(EntityKind.PROJECT, data)
        return self._insert(EntityKind.PROJECT, project)

    @command
    def update_project(self, project_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> Project:
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.PROJECT, project_id)
        merged = self._merge(EntityKind.PROJECT, current, patch)
        merged = merged.model_copy(update={"updated_at": utc_now()})
        return self._replace(EntityKind.PROJECT, merged, sorted(patch))

    @command
    def delete_project(self, project_id: str) -> None:
        self._require(EntityKind.PROJECT, project_id)
        self._ensure_no_dependents(EntityKind.PROJECT, project_id, {
            EntityKind.DEPARTMENT: "project_id",
            EntityKind.BUDGET_LINE: "project_id",
            EntityKind.EXPENSE: "project_id",
            EntityKind.PETTY_CASH_FLOAT: "project_id",
            EntityKind.SHOOT_DAY: "project_id",
            EntityKind.CREW: "project_id",
            EntityKind.PROP: "project_id",
        })
        self._remove(EntityKind.PROJECT, project_id)

    def get_project(self, project_id: str) -> Project:
        return self.get(EntityKind.PROJECT, project_id)

    def get_projects(self) -> list[Project]:
        return self.query(EntityKind.PROJECT)

    # =========================================================================
    # DEPARTMENTS
    # =========================================================================

    @command
    def add_department(self, data: Optional[Mapping[str, Any]] = None, **fields) -> Department:
        department = self._build(EntityKind.DEPARTMENT, merge_input(data, fields))
        self._require(EntityKind.PROJECT, department.project_id, field="project_id")
        return self._insert(EntityKind.DEPARTMENT, department)

    @command
    def update_department(self, department_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> Department:
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.DEPARTMENT, department_id)
        merged = self._merge(EntityKind.DEPARTMENT, current, patch)
        return self._replace(EntityKind.DEPARTMENT, merged, sorted(patch))

    @command
    def delete_department(self, department_id: str) -> None:
        self._require(EntityKind.DEPARTMENT, department_id)
        self._ensure_no_dependents(EntityKind.DEPARTMENT, department_id, {
            EntityKind.BUDGET_LINE: "department_id",
            EntityKind.EXPENSE: "department_id",
        })
        self._remove(EntityKind.DEPARTMENT, department_id)

    def get_department(self, department_id: str) -> Department:
        return self.get(EntityKind.DEPARTMENT, department_id)

    def get_departments(self, project_id: Optional[str] = None) -> list[Department]:
        if project_id is None:
            return self.query(EntityKind.DEPARTMENT)
        return self.query(EntityKind.DEPARTMENT, project_id=project_id)

    # =========================================================================
    # BUDGET LINES
    # =========================================================================

    @command
    def add_budget_line(self, data: Optional[Mapping[str, Any]] = None, **fields) -> BudgetLine:
        line = self._build(EntityKind.BUDGET_LINE, merge_input(data, fields))
        self._check_budget_line_refs(line)
        return self._insert(EntityKind.BUDGET_LINE, line)

    @command
    def update_budget_line(self, line_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> BudgetLine:
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.BUDGET_LINE, line_id)
        merged = self._merge(EntityKind.BUDGET_LINE, current, patch)
        if merged.department_id != current.department_id:
            self._check_budget_line_refs(merged)
            booked = self._children(EntityKind.EXPENSE, "budget_line_id", line_id)
            if booked:
                raise ConflictError(
                    f"Cannot move budget_line {line_id} to another department: "
                    f"{len(booked)} expense(s) are booked against it",
                    entity_type=EntityKind.BUDGET_LINE.value,
                    entity_id=line_id,
                    details={"dependents": {EntityKind.EXPENSE.value: len(booked)}},
                )
        return self._replace(EntityKind.BUDGET_LINE, merged, sorted(patch))

    @command
    def delete_budget_line(self, line_id: str) -> None:
        self._require(EntityKind.BUDGET_LINE, line_id)
        self._ensure_no_dependents(EntityKind.BUDGET_LINE, line_id, {
            EntityKind.EXPENSE: "budget_line_id",
        })
        self._remove(EntityKind.BUDGET_LINE, line_id)

    def get_budget_line(self, line_id: str) -> BudgetLine:
        return self.get(EntityKind.BUDGET_LINE, line_id)

    def get_budget_lines(
        self,
        project_id: Optional[str] = None,
        filter: Optional[BudgetLineFilter] = None,
    ) -> list[BudgetLine]:
        equals = {}
        if project_id is not None:
            equals["project_id"] = project_id
        if filter is not None and filter.department_id:
            equals["department_id"] = filter.department_id
        return self.query(EntityKind.BUDGET_LINE, **equals)

    def _check_budget_line_refs(self, line: BudgetLine) -> None:
        self._require(EntityKind.PROJECT, line.project_id, field="project_id")
        department = self._require(EntityKind.DEPARTMENT, line.department_id, field="department_id")
        require_same_scope(
            EntityKind.BUDGET_LINE, "department_id",
            line.project_id, department.project_id, line.id,
        )

    # =========================================================================
    # VENDORS
    # =========================================================================

    @command
    def add_vendor(self, data: Optional[Mapping[str, Any]] = None, **fields) -> Vendor:
        vendor = self._build(EntityKind.VENDOR, merge_input(data, fields))
        return self._insert(EntityKind.VENDOR, vendor)

    @command
    def update_vendor(self, vendor_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> Vendor:
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.VENDOR, vendor_id)
        merged = self._merge(EntityKind.VENDOR, current, patch)
        return self._replace(EntityKind.VENDOR, merged, sorted(patch))

    @command
    def delete_vendor(self, vendor_id: str) -> None:
        self._require(EntityKind.VENDOR, vendor_id)
        self._ensure_no_dependents(EntityKind.VENDOR, vendor_id, {
            EntityKind.EXPENSE: "vendor_id",
            EntityKind.PROP: "owner_vendor_id",
        })
        self._remove(EntityKind.VENDOR, vendor_id)

    def get_vendor(self, vendor_id: str) -> Vendor:
        return self.get(EntityKind.VENDOR, vendor_id)

    def get_vendors(self) -> list[Vendor]:
        return self.query(EntityKind.VENDOR)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    @command
    def add_expense(self, data: Optional[Mapping[str, Any]] = None, **fields) -> Expense:
        data = merge_input(data, fields)
        data.setdefault("created_by", self._settings.app.default_user_id)
        expense = self._build(EntityKind.EXPENSE, data)
        self._check_expense_refs(expense)
        self._ensure_day_open(expense.shoot_day_id, EntityKind.EXPENSE)
        return self._insert(EntityKind.EXPENSE, expense, actor_id=expense.created_by)

    @command
    def update_expense(self, expense_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> Expense:
        """
        Patch an expense.

        Raises:
            NotFoundError: Unknown expense or referenced parent
            LockedError: The expense's current or target shoot day is locked
            ValidationError: Schema errors, backwards status moves, or any
                             patch to a cancelled expense
        """
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.EXPENSE, expense_id)
        self._ensure_day_open(current.shoot_day_id, EntityKind.EXPENSE, expense_id)
        merged = self._merge(EntityKind.EXPENSE, current, patch)
        check_expense_transition(expense_id, current.status, merged.status)
        self._check_expense_refs(merged)
        if merged.shoot_day_id != current.shoot_day_id:
            self._ensure_day_open(merged.shoot_day_id, EntityKind.EXPENSE, expense_id)

        updated = self._replace(EntityKind.EXPENSE, merged, sorted(patch), actor_id=current.created_by)
        if updated.status == ExpenseStatus.CANCELLED and self._audit:
            self._audit.log_expense_cancelled(
                expense_id, str(current.amount), current.status.value, current.created_by
            )
        return updated

    @command
    def cancel_expense(self, expense_id: str) -> Expense:
        """Soft-cancel an expense. The record stays queryable."""
        return self._cancel_expense(expense_id)

    @command
    def delete_expense(self, expense_id: str) -> None:
        """Expenses are never removed; deleting one cancels it."""
        self._cancel_expense(expense_id)

    def _cancel_expense(self, expense_id: str) -> Expense:
        current = self._require(EntityKind.EXPENSE, expense_id)
        self._ensure_day_open(current.shoot_day_id, EntityKind.EXPENSE, expense_id)
        check_expense_transition(expense_id, current.status, ExpenseStatus.CANCELLED)

        cancelled = current.model_copy(update={"status": ExpenseStatus.CANCELLED})
        self._repos[EntityKind.EXPENSE].replace(cancelled)
        self._logger.info(
            "expense_cancelled",
            expense_id=expense_id,
            previous_status=current.status.value,
        )
        if self._audit:
            self._audit.log_expense_cancelled(
                expense_id, str(current.amount), current.status.value, current.created_by
            )
        return cancelled

    def get_expense(self, expense_id: str) -> Expense:
        return self.get(EntityKind.EXPENSE, expense_id)

    def get_expenses(
        self,
        project_id: Optional[str] = None,
        filter: Optional[ExpenseFilter] = None,
    ) -> list[Expense]:
        equals = {"project_id": project_id} if project_id is not None else {}
        predicate = filter.matches if filter is not None else None
        return self.query(EntityKind.EXPENSE, predicate, **equals)

    def _check_expense_refs(self, expense: Expense) -> None:
        """Every parent exists and lives in the expense's project."""
        self._require(EntityKind.PROJECT, expense.project_id, field="project_id")

        department = self._require(EntityKind.DEPARTMENT, expense.department_id, field="department_id")
        require_same_scope(
            EntityKind.EXPENSE, "department_id",
            expense.project_id, department.project_id, expense.id,
        )

        if expense.budget_line_id:
            line = self._require(EntityKind.BUDGET_LINE, expense.budget_line_id, field="budget_line_id")
            require_same_scope(
                EntityKind.EXPENSE, "budget_line_id",
                expense.department_id, line.department_id, expense.id,
            )

        if expense.vendor_id:
            self._require(EntityKind.VENDOR, expense.vendor_id, field="vendor_id")

        if expense.shoot_day_id:
            day = self._require(EntityKind.SHOOT_DAY, expense.shoot_day_id, field="shoot_day_id")
            require_same_scope(
                EntityKind.EXPENSE, "shoot_day_id",
                expense.project_id, day.project_id, expense.id,
            )
