"""
Shared fixtures.

Every store runs on a fixed clock so overdue logic is deterministic.
"""

from datetime import date
from decimal import Decimal

import pytest

from shootledger.analytics import ReportEngine
from shootledger.audit import AuditLogger
from shootledger.demo import seed_demo_data
from shootledger.models.entities import PaymentMethod
from shootledger.services.storage import InMemoryAuditStorage
from shootledger.store import ProductionStore


TODAY = date(2024, 1, 15)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage, enabled=True)


@pytest.fixture
def store(audit_logger):
    return ProductionStore(audit_logger=audit_logger, today=lambda: TODAY)


@pytest.fixture
def reports(store):
    return ReportEngine(store)


@pytest.fixture
def project(store):
    return store.add_project(title="Test Film", total_budget=Decimal("100000"))


@pytest.fixture
def department(store, project):
    return store.add_department(project_id=project.id, name="Production", budget_amount=Decimal("60000"))


@pytest.fixture
def shoot_day(store, project):
    return store.add_shoot_day(project_id=project.id, date=TODAY, location="Studio A")


@pytest.fixture
def make_expense(store, project, department):
    """Factory for expenses in the test project."""
    def _make(amount="1000", **fields):
        data = {
            "project_id": project.id,
            "department_id": department.id,
            "date": TODAY,
            "description": "Test expense",
            "amount": Decimal(amount),
            "payment_method": PaymentMethod.CASH,
        }
        data.update(fields)
        return store.add_expense(data)
    return _make


@pytest.fixture
def demo_store(audit_logger):
    store = ProductionStore(audit_logger=audit_logger, today=lambda: TODAY)
    project = seed_demo_data(store)
    return store, project
