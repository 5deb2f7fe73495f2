"""
Demo data for a fresh store: a small short-film production with one
shoot day in progress.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from shootledger.models.entities import (
    CheckoutStatus,
    ExpenseStatus,
    PaymentMethod,
    Project,
    ScheduleStatus,
    TxnType,
)
from shootledger.store import ProductionStore


DEPARTMENTS = [
    ("Pre-Production", Decimal("100000")),
    ("Production", Decimal("250000")),
    ("Post-Production", Decimal("100000")),
    ("Marketing & Distribution", Decimal("30000")),
    ("Admin & Misc", Decimal("20000")),
]

BUDGET_LINES = {
    "Pre-Production": [
        ("Script Development", Decimal("25000")),
        ("Location Scouting", Decimal("35000")),
        ("Casting", Decimal("40000")),
    ],
    "Production": [
        ("Equipment Rental", Decimal("120000")),
        ("Crew Payments", Decimal("80000")),
        ("Catering", Decimal("30000")),
        ("Transportation", Decimal("20000")),
    ],
    "Post-Production": [
        ("Editing", Decimal("50000")),
        ("Sound Design", Decimal("30000")),
        ("Color Grading", Decimal("20000")),
    ],
}

CREW = [
    ("Rajesh Kumar", "Director", "9876543210"),
    ("Priya Sharma", "Producer", "9876543211"),
    ("Amit Singh", "Cinematographer", "9876543212"),
    ("Sneha Patel", "Sound Engineer", "9876543213"),
    ("Vikram Joshi", "Assistant Director", "9876543214"),
]

VENDORS = [
    ("Camera House Mumbai", "27AABCU9603R1ZM", ["9876543210"]),
    ("Prime Focus Sound", None, ["9876543211"]),
    ("Catering Express", "27AABCU9603R1ZN", ["9876543212"]),
]


def seed_demo_data(store: ProductionStore, today: Optional[date] = None) -> Project:
    """
    Populate `store` with the sample short film and return its project.

    All dates are relative to `today` (the store's clock by default).
    """
    today = today or store.today()

    project = store.add_project(
        title="Sample Short Film",
        currency="INR",
        start_date=today,
        end_date=today + timedelta(days=30),
        total_budget=Decimal("500000"),
    )

    departments = {
        name: store.add_department(project_id=project.id, name=name, budget_amount=amount)
        for name, amount in DEPARTMENTS
    }
    for department_name, lines in BUDGET_LINES.items():
        for line_item, amount in lines:
            store.add_budget_line(
                project_id=project.id,
                department_id=departments[department_name].id,
                line_item=line_item,
                budget_amount=amount,
            )

    shoot_day = store.add_shoot_day(
        project_id=project.id,
        date=today,
        location="Studio A, Film City",
        call_time="08:00",
        wrap_time="18:00",
        weather_note="Clear skies, 25°C",
        notes="Principal photography - Interior scenes",
    )

    crew = [
        store.add_crew(project_id=project.id, name=name, role=role, contact=contact)
        for name, role, contact in CREW
    ]
    vendors = [
        store.add_vendor(name=name, gstin=gstin, contacts=contacts)
        for name, gstin, contacts in VENDORS
    ]

    props = [
        store.add_prop(
            project_id=project.id,
            name=name,
            category=category,
            serial_no=serial_no,
            owner_vendor_id=vendors[vendor_index].id,
            notes="Professional grade equipment",
        )
        for name, category, serial_no, vendor_index in [
            ("Canon EOS R5", "Camera", "CN001", 0),
            ("Rode Microphone", "Audio", "RD001", 1),
            ("LED Panel Light", "Lighting", "LP001", 0),
            ("Tripod", "Support", "TP001", 0),
        ]
    ]

    for item in [
        {
            "scene": "Scene 1",
            "shot": "Shot A",
            "description": "Opening dialogue between protagonist and antagonist",
            "planned_start": "09:00",
            "planned_end": "10:30",
            "actual_start": "09:15",
            "actual_end": "10:45",
            "assignees": ["Rajesh Kumar", "Amit Singh"],
            "status": ScheduleStatus.DONE,
            "notes": "Slight delay due to lighting setup",
        },
        {
            "scene": "Scene 1",
            "shot": "Shot B",
            "description": "Close-up reaction shot",
            "planned_start": "10:30",
            "planned_end": "11:00",
            "actual_start": "10:45",
            "actual_end": "11:15",
            "assignees": ["Amit Singh", "Sneha Patel"],
            "status": ScheduleStatus.DONE,
            "notes": "Completed on time",
        },
        {
            "scene": "Scene 2",
            "shot": "Shot A",
            "description": "Establishing shot of location",
            "planned_start": "11:00",
            "planned_end": "12:00",
            "assignees": ["Amit Singh", "Vikram Joshi"],
            "status": ScheduleStatus.IN_PROGRESS,
            "notes": "Currently shooting",
        },
        {
            "scene": "Scene 2",
            "shot": "Shot B",
            "description": "Wide angle action sequence",
            "planned_start": "12:00",
            "planned_end": "13:30",
            "assignees": ["Rajesh Kumar", "Amit Singh", "Sneha Patel"],
            "status": ScheduleStatus.PLANNED,
            "notes": "Scheduled for after lunch",
        },
    ]:
        store.add_schedule_item(item, shoot_day_id=shoot_day.id)

    store.add_crew_feedback(
        shoot_day_id=shoot_day.id,
        crew_id=crew[0].id,
        rating=4,
        tags=["coordination", "setup"],
        notes="Good communication, but lighting setup took longer than expected",
    )
    store.add_crew_feedback(
        shoot_day_id=shoot_day.id,
        crew_id=crew[1].id,
        rating=5,
        tags=["comms"],
        notes="Excellent coordination and clear instructions",
    )
    store.add_crew_feedback(
        shoot_day_id=shoot_day.id,
        is_anonymous=True,
        rating=3,
        tags=["delays", "sound"],
        notes="Some audio issues with background noise",
    )

    for prop, holder, due_in_days, condition in [
        (props[0], "Amit Singh", 2, "Excellent condition, fully functional"),
        (props[1], "Sneha Patel", 1, "Good condition, minor wear"),
        (props[2], "Vikram Joshi", -1, "Good condition"),
    ]:
        store.add_prop_checkout(
            prop_id=prop.id,
            shoot_day_id=shoot_day.id,
            checked_out_by=holder,
            due_return=today + timedelta(days=due_in_days),
            checkout_condition=condition,
            status=CheckoutStatus.OUT,
        )

    production = departments["Production"]
    for description, amount, method, status, vendor, reimbursable in [
        ("Camera equipment rental - Day 1", "15000", PaymentMethod.TRANSFER, ExpenseStatus.APPROVED, vendors[0], False),
        ("Lunch catering for crew", "3500", PaymentMethod.CASH, ExpenseStatus.PAID, vendors[2], False),
        ("Transportation - Location to studio", "1200", PaymentMethod.UPI, ExpenseStatus.SUBMITTED, None, True),
    ]:
        store.add_expense(
            project_id=project.id,
            department_id=production.id,
            vendor_id=vendor.id if vendor else None,
            shoot_day_id=shoot_day.id,
            date=today,
            description=description,
            amount=Decimal(amount),
            tax_rate=Decimal("18"),
            payment_method=method,
            status=status,
            reimbursable=reimbursable,
        )

    float_ = store.add_petty_cash_float(
        project_id=project.id,
        owner_user_id="assistant_director",
        issued_amount=Decimal("10000"),
    )
    for description, amount in [
        ("Tea/coffee for crew", "800"),
        ("Parking fees", "500"),
        ("Miscellaneous snacks", "900"),
    ]:
        store.add_petty_cash_txn(
            float_id=float_.id,
            date=today,
            description=description,
            amount=Decimal(amount),
            type=TxnType.DEBIT,
        )

    return project
