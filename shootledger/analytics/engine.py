"""
Report Engine

DESIGN DECISION: Reports are DETERMINISTIC and read-only.
Every call re-reads the store and recomputes from scratch; nothing is
cached, so a report always reflects the latest accepted command.

GUARANTEES:
- Only aggregates real records from the store
- Cancelled expenses never count towards money totals
- Empty data yields zeroed reports, never an error
- Percentages never divide by zero (they read 0 instead)

An unknown project or shoot day id is a caller error and raises
NotFoundError.
"""

from collections import Counter, OrderedDict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Union

from shootledger.audit.logger import get_logger
from shootledger.config import Settings
from shootledger.models.entities import (
    CheckoutStatus,
    CrewFeedback,
    Expense,
    PropCheckout,
    ScheduleItem,
    ScheduleStatus,
    TxnType,
    utc_date,
)
from shootledger.models.filters import ExpenseFilter
from shootledger.models.reports import (
    BudgetVsActualRow,
    CrewPerformanceReport,
    DailyCostReport,
    DelayReason,
    DepartmentSpend,
    DepartmentSummary,
    FeedbackSummary,
    IssueCount,
    OpenCheckoutEntry,
    OverdueReturnEntry,
    PaymentMethodTotal,
    ProductionDaySummary,
    ProjectSummary,
    PropsCustodyReport,
    PropsStatusCounts,
    RatingBucket,
    ReturnedEntry,
    ScheduleAdherenceReport,
    ScheduleProgress,
    TimeVariance,
)
from shootledger.services.storage import ValidationError
from shootledger.store import ProductionStore
from shootledger.validation import time_to_minutes


UNKNOWN_DEPARTMENT = "Unknown"
UNKNOWN_PROP = "Unknown Prop"
UNKNOWN_DELAY = "Unknown delay"
DEFAULT_CONDITION = "Good"

_ACTIVE = ExpenseFilter(include_cancelled=False)


def percent(part, whole) -> float:
    """part / whole × 100, or 0 when whole is zero."""
    if not whole:
        return 0.0
    return float(Decimal(part) / Decimal(whole) * 100)


def total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, Decimal("0"))


def delay_reason(notes: Optional[str]) -> Optional[str]:
    """
    Reason text from a schedule note that mentions a delay.

    "Slight delay due to lighting setup" → "due to lighting setup".
    Returns None when the note does not mention a delay.
    """
    if not notes:
        return None
    # Case-insensitive, and later mentions of "delay" stay in the reason
    position = notes.lower().find("delay")
    if position < 0:
        return None
    return notes[position + len("delay"):].strip() or UNKNOWN_DELAY


class ReportEngine:
    """
    Computes every summary report from a ProductionStore.

    The engine holds no state besides its store and settings, so the
    same instance can serve any number of projects.
    """

    def __init__(self, store: ProductionStore, settings: Optional[Settings] = None):
        self._store = store
        self._settings = settings or store.settings
        self._logger = get_logger(__name__)

    @property
    def store(self) -> ProductionStore:
        return self._store

    # =========================================================================
    # BUDGET VARIANCE
    # =========================================================================

    def project_summary(self, project_id: str) -> ProjectSummary:
        """
        Budget vs spend for a project and each of its departments.

        Department budgets are the sum of their budget lines.
        """
        project = self._store.get_project(project_id)
        expenses = self._store.get_expenses(project_id, _ACTIVE)
        budget_lines = self._store.get_budget_lines(project_id)

        summaries = []
        for department in self._store.get_departments(project_id):
            dept_expenses = [e for e in expenses if e.department_id == department.id]
            budget = total(l.budget_amount for l in budget_lines if l.department_id == department.id)
            actual = total(e.amount for e in dept_expenses)
            summaries.append(DepartmentSummary(
                department_id=department.id,
                department_name=department.name,
                budget_amount=budget,
                actual_amount=actual,
                variance=actual - budget,
                variance_percent=percent(actual - budget, budget),
                expense_count=len(dept_expenses),
            ))

        spent = total(e.amount for e in expenses)
        summary = ProjectSummary(
            project_id=project.id,
            currency=project.currency,
            total_budget=project.total_budget,
            total_spent=spent,
            remaining_budget=project.total_budget - spent,
            variance=spent - project.total_budget,
            variance_percent=percent(spent - project.total_budget, project.total_budget),
            expense_count=len(expenses),
            department_summaries=summaries,
        )

        self._logger.debug(
            "project_summary_computed",
            project_id=project_id,
            total_spent=str(spent),
            departments=len(summaries),
        )
        return summary

    def top_departments_by_spend(self, project_id: str, limit: Optional[int] = None) -> list[DepartmentSummary]:
        if limit is None:
            limit = self._settings.reports.top_departments_limit
        summaries = self.project_summary(project_id).department_summaries
        return sorted(summaries, key=lambda s: s.actual_amount, reverse=True)[:limit]

    def budget_vs_actual(self, project_id: str) -> list[BudgetVsActualRow]:
        """One chart row per department."""
        return [
            BudgetVsActualRow(
                department=s.department_name,
                budget=s.budget_amount,
                actual=s.actual_amount,
                variance=s.variance,
            )
            for s in self.project_summary(project_id).department_summaries
        ]

    def payment_method_breakdown(self, project_id: str) -> list[PaymentMethodTotal]:
        """Spend per payment method, in first-seen order."""
        self._store.get_project(project_id)
        amounts: "OrderedDict[str, Decimal]" = OrderedDict()
        counts: Counter = Counter()
        for expense in self._store.get_expenses(project_id, _ACTIVE):
            method = expense.payment_method
            amounts[method] = amounts.get(method, Decimal("0")) + expense.amount
            counts[method] += 1
        return [
            PaymentMethodTotal(payment_method=method, amount=amount, count=counts[method])
            for method, amount in amounts.items()
        ]

    def reimbursable_expenses(self, project_id: str) -> list[Expense]:
        self._store.get_project(project_id)
        return self._store.get_expenses(
            project_id,
            ExpenseFilter(reimbursable=True, include_cancelled=False),
        )

    # =========================================================================
    # DAILY COST REPORT
    # =========================================================================

    def daily_cost_report(self, project_id: str, report_date: Union[date, str]) -> DailyCostReport:
        """
        Everything spent on one calendar day: expenses dated that day plus
        petty cash debits from the project's floats.

        Credits dated that day are listed but never summed.
        """
        if isinstance(report_date, str):
            try:
                report_date = date.fromisoformat(report_date)
            except ValueError as e:
                raise ValidationError(
                    f"Invalid report date {report_date!r}. Use YYYY-MM-DD",
                    details={"date": report_date},
                ) from e

        project = self._store.get_project(project_id)
        expenses = self._store.get_expenses(
            project_id,
            ExpenseFilter(date_from=report_date, date_to=report_date, include_cancelled=False),
        )
        txns = [
            txn for txn in self._store.get_petty_cash_txns(project_id=project_id)
            if txn.date == report_date
        ]
        debits = [txn for txn in txns if txn.type == TxnType.DEBIT]

        names = {d.id: d.name for d in self._store.get_departments(project_id)}
        rows: "OrderedDict[str, DepartmentSpend]" = OrderedDict()
        for expense in expenses:
            row = rows.get(expense.department_id)
            if row is None:
                row = rows[expense.department_id] = DepartmentSpend(
                    department_id=expense.department_id,
                    department_name=names.get(expense.department_id, UNKNOWN_DEPARTMENT),
                )
            row.amount += expense.amount
            row.count += 1

        by_department = list(rows.values())
        petty_cash_total = total(txn.amount for txn in debits)
        if debits:
            by_department.append(DepartmentSpend(
                department_name=self._settings.reports.petty_cash_group_label,
                amount=petty_cash_total,
                count=len(debits),
            ))

        expense_total = total(e.amount for e in expenses)
        return DailyCostReport(
            project_id=project.id,
            date=report_date,
            currency=project.currency,
            expense_total=expense_total,
            petty_cash_total=petty_cash_total,
            total_spent=expense_total + petty_cash_total,
            expenses_by_department=by_department,
            expenses=expenses,
            petty_cash_txns=txns,
        )

    # =========================================================================
    # PRODUCTION DAY
    # =========================================================================

    def production_day_summary(self, shoot_day_id: str) -> ProductionDaySummary:
        """
        One-page status of a shoot day: spend against the project's
        department budgets, schedule progress, crew feedback and props.
        """
        day = self._store.get_shoot_day(shoot_day_id)
        expenses = self._store.get_expenses(
            day.project_id,
            ExpenseFilter(shoot_day_id=shoot_day_id, include_cancelled=False),
        )
        items = self._store.get_schedule_items(shoot_day_id)
        feedback = self._store.get_feedback_responses(shoot_day_id)
        checkouts = self._store.get_prop_checkouts(shoot_day_id)

        budget = total(d.budget_amount for d in self._store.get_departments(day.project_id))
        spent = total(e.amount for e in expenses)
        done = _count_status(items, ScheduleStatus.DONE)

        return ProductionDaySummary(
            shoot_day_id=day.id,
            date=day.date,
            location=day.location or "",
            call_time=day.call_time or "",
            wrap_time=day.wrap_time or "",
            status=day.status,
            total_budget=budget,
            total_spent=spent,
            variance=spent - budget,
            variance_percent=percent(spent - budget, budget),
            schedule_progress=ScheduleProgress(
                total=len(items),
                completed=done,
                in_progress=_count_status(items, ScheduleStatus.IN_PROGRESS),
                dropped=_count_status(items, ScheduleStatus.DROPPED),
                percentage=percent(done, len(items)),
            ),
            crew_feedback=FeedbackSummary(
                total_responses=len(feedback),
                average_rating=_average_rating(feedback),
                top_issues=[
                    tag for tag, _ in
                    _tag_counts(feedback).most_common(self._settings.reports.top_feedback_tags)
                ],
            ),
            props_status=PropsStatusCounts(
                total=len(checkouts),
                checked_out=_count_status(checkouts, CheckoutStatus.OUT),
                returned=_count_status(checkouts, CheckoutStatus.RETURNED),
                overdue=_count_status(checkouts, CheckoutStatus.OVERDUE),
            ),
        )

    def schedule_adherence_report(self, shoot_day_id: str) -> ScheduleAdherenceReport:
        """
        Planned vs actual shot durations for a shoot day.

        Only items with all four times recorded contribute to the time
        variance and to the delay reasons.
        """
        day = self._store.get_shoot_day(shoot_day_id)
        items = self._store.get_schedule_items(shoot_day_id)

        over_time = 0
        under_time = 0
        blocked: list[str] = []
        delays: "OrderedDict[str, DelayReason]" = OrderedDict()

        for item in items:
            if not (item.planned_start and item.planned_end and item.actual_start and item.actual_end):
                continue
            planned = time_to_minutes(item.planned_end) - time_to_minutes(item.planned_start)
            actual = time_to_minutes(item.actual_end) - time_to_minutes(item.actual_start)
            variance = actual - planned
            if variance > 0:
                over_time += variance
            else:
                under_time += abs(variance)

            reason = delay_reason(item.notes)
            if reason is None:
                continue
            if reason not in delays:
                blocked.append(reason)
                delays[reason] = DelayReason(reason=reason, count=0, total_delay=0)
            delays[reason].count += 1
            delays[reason].total_delay += abs(variance)

        top_delays = sorted(delays.values(), key=lambda d: d.total_delay, reverse=True)
        done = _count_status(items, ScheduleStatus.DONE)

        return ScheduleAdherenceReport(
            shoot_day_id=day.id,
            date=day.date,
            total_shots=len(items),
            completed_shots=done,
            dropped_shots=_count_status(items, ScheduleStatus.DROPPED),
            completion_percentage=percent(done, len(items)),
            time_variance=TimeVariance(
                over_time=over_time,
                under_time=under_time,
                average_delay=over_time / len(items) if items else 0.0,
            ),
            blocked_reasons=blocked,
            top_delays=top_delays[:self._settings.reports.top_delay_limit],
        )

    def props_custody_report(self, shoot_day_id: str) -> PropsCustodyReport:
        """Who holds which prop, what is late, and what came back today."""
        day = self._store.get_shoot_day(shoot_day_id)
        today = self._store.today()
        names = {p.id: p.name for p in self._store.get_props(day.project_id)}
        checkouts = self._store.get_prop_checkouts(shoot_day_id)

        open_checkouts = []
        overdue_returns = []
        returned_today = []
        for checkout in checkouts:
            prop_name = names.get(checkout.prop_id, UNKNOWN_PROP)
            if checkout.status == CheckoutStatus.OUT:
                open_checkouts.append(OpenCheckoutEntry(
                    checkout_id=checkout.id,
                    prop_name=prop_name,
                    checked_out_by=checkout.checked_out_by,
                    due_return=checkout.due_return,
                    days_overdue=checkout.days_overdue(today),
                    condition=checkout.checkout_condition or DEFAULT_CONDITION,
                ))
            elif checkout.status == CheckoutStatus.OVERDUE:
                overdue_returns.append(OverdueReturnEntry(
                    checkout_id=checkout.id,
                    prop_name=prop_name,
                    checked_out_by=checkout.checked_out_by,
                    due_return=checkout.due_return,
                    days_overdue=checkout.days_overdue(today),
                ))
            elif _returned_on(checkout, today):
                returned_today.append(ReturnedEntry(
                    checkout_id=checkout.id,
                    prop_name=prop_name,
                    returned_by=checkout.checked_out_by,
                    return_condition=checkout.return_condition or DEFAULT_CONDITION,
                    returned_at=checkout.returned_at.isoformat(),
                ))

        return PropsCustodyReport(
            shoot_day_id=day.id,
            date=day.date,
            open_checkouts=open_checkouts,
            overdue_returns=overdue_returns,
            returned_today=returned_today,
        )

    def crew_performance_report(self, shoot_day_id: str) -> CrewPerformanceReport:
        day = self._store.get_shoot_day(shoot_day_id)
        feedback = self._store.get_feedback_responses(shoot_day_id)
        responses = len(feedback)

        if not responses:
            return CrewPerformanceReport(shoot_day_id=day.id, date=day.date)

        ratings = Counter(f.rating for f in feedback)
        anonymous = sum(1 for f in feedback if f.is_anonymous)
        top_issues = _tag_counts(feedback).most_common(self._settings.reports.top_issue_limit)

        return CrewPerformanceReport(
            shoot_day_id=day.id,
            date=day.date,
            total_responses=responses,
            average_rating=_average_rating(feedback),
            rating_distribution=[
                RatingBucket(rating=r, count=ratings[r], percentage=percent(ratings[r], responses))
                for r in range(1, 6)
            ],
            top_issues=[
                IssueCount(tag=tag, count=count, percentage=percent(count, responses))
                for tag, count in top_issues
            ],
            anonymous_responses=anonymous,
            named_responses=responses - anonymous,
        )


def _count_status(records: Iterable[Union[ScheduleItem, PropCheckout]], status) -> int:
    return sum(1 for r in records if r.status == status)


def _average_rating(feedback: list[CrewFeedback]) -> float:
    if not feedback:
        return 0.0
    return sum(f.rating for f in feedback) / len(feedback)


def _tag_counts(feedback: Iterable[CrewFeedback]) -> Counter:
    # Counter keeps first-seen order, so most_common breaks ties by it
    counts: Counter = Counter()
    for response in feedback:
        counts.update(response.tags)
    return counts


def _returned_on(checkout: PropCheckout, day: date) -> bool:
    return (
        checkout.status == CheckoutStatus.RETURNED
        and checkout.returned_at is not None
        and utc_date(checkout.returned_at) == day
    )
