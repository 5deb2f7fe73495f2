"""
Main Orchestrator for shootledger

This module ties the components together for a caller (UI, API, script):
1. A ProductionSession that carries the caller's current project and user
2. A factory that wires store, report engine, audit logging and adapters

DESIGN DECISION: There is no process-wide "current project".
The selection lives on the session object the caller owns, so two
sessions over the same store can work on different projects, and
tests never leak state into each other.
"""

from datetime import date
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

from shootledger.analytics import ReportEngine
from shootledger.audit import AuditLogger, get_logger
from shootledger.config import Settings, get_settings
from shootledger.demo import seed_demo_data
from shootledger.models.entities import Department, Expense, Project, ShootDay
from shootledger.models.filters import ExpenseFilter
from shootledger.models.reports import DailyCostReport, ProjectSummary
from shootledger.services.exports import CsvService, PdfReportService
from shootledger.services.storage import InMemoryAuditStorage, ValidationError
from shootledger.store import ProductionStore


class ProductionSession:
    """
    A caller's working context: who is acting and on which project.

    Scoped helpers default to the current project and raise
    ValidationError when none has been selected.
    """

    def __init__(self, store: ProductionStore, reports: ReportEngine, user_id: str):
        self._store = store
        self._reports = reports
        self._user_id = user_id
        self._current_project_id: Optional[str] = None

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def current_project_id(self) -> Optional[str]:
        return self._current_project_id

    def set_current_project(self, project_id: str) -> Project:
        """
        Raises:
            NotFoundError: If the project does not exist
        """
        project = self._store.get_project(project_id)
        self._current_project_id = project.id
        return project

    def get_current_project(self) -> Optional[Project]:
        if self._current_project_id is None:
            return None
        return self._store.get_project(self._current_project_id)

    def _require_project(self) -> str:
        if self._current_project_id is None:
            raise ValidationError(
                "No project selected",
                entity_type="project",
                details={"hint": "call set_current_project first"},
            )
        return self._current_project_id

    # Scoped helpers

    def expenses(self, filter: Optional[ExpenseFilter] = None) -> list[Expense]:
        return self._store.get_expenses(self._require_project(), filter)

    def departments(self) -> list[Department]:
        return self._store.get_departments(self._require_project())

    def shoot_days(self) -> list[ShootDay]:
        return self._store.get_shoot_days(self._require_project())

    def project_summary(self) -> ProjectSummary:
        return self._reports.project_summary(self._require_project())

    def daily_cost_report(self, report_date: Union[date, str]) -> DailyCostReport:
        return self._reports.daily_cost_report(self._require_project(), report_date)

    def add_expense(self, data: Optional[Mapping[str, Any]] = None, **fields) -> Expense:
        """Add an expense to the current project, created by the session user."""
        values = dict(data or {})
        values.update(fields)
        values["project_id"] = self._require_project()
        values["created_by"] = self._user_id
        return self._store.add_expense(values)


class AppComponents(BaseModel):
    """Everything a caller needs, wired together."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: Settings
    store: ProductionStore
    reports: ReportEngine
    audit_logger: AuditLogger
    audit_storage: InMemoryAuditStorage
    csv: CsvService
    pdf: PdfReportService

    def session(self, user_id: Optional[str] = None) -> ProductionSession:
        return ProductionSession(
            self.store,
            self.reports,
            user_id or self.settings.app.default_user_id,
        )


def create_app_components(
    settings: Optional[Settings] = None,
    today: Optional[Callable[[], date]] = None,
    with_demo_data: bool = False,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to get_settings().
        today: Clock for derived date state. Defaults to the UTC date.
        with_demo_data: Seed the store with the sample short film.
    """
    settings = settings or get_settings()
    audit_storage = InMemoryAuditStorage()
    audit_logger = AuditLogger(audit_storage, enabled=settings.app.audit_enabled)

    store = ProductionStore(audit_logger=audit_logger, today=today, settings=settings)
    reports = ReportEngine(store, settings)

    if with_demo_data:
        project = seed_demo_data(store)
        get_logger(__name__).info("demo_data_seeded", project_id=project.id)

    return AppComponents(
        settings=settings,
        store=store,
        reports=reports,
        audit_logger=audit_logger,
        audit_storage=audit_storage,
        csv=CsvService(store, audit_logger, settings),
        pdf=PdfReportService(reports, audit_logger, settings),
    )
