"""
Plain comma-separated export and import rows for expenses and income.

Cells are joined with "," and rows with "\\n" with no quoting or escaping, so
a free-text field that contains a comma shifts every later column of its row.
Existing spreadsheets and import scripts rely on this exact layout.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from bookkeeper.domain.errors import ValidationFailure
from bookkeeper.domain.models import Expense, Income, PaymentMethod

EXPENSE_CSV_HEADER = [
    "Date",
    "Amount",
    "VAT",
    "Category",
    "Purchaser",
    "Company",
    "User",
    "Reimbursed",
]
INCOME_CSV_HEADER = [
    "Date",
    "Room",
    "Name",
    "Bill",
    "Paid",
    "Outstanding",
    "Payment Methods",
    "User",
]

CURRENCY_SYMBOL = "£"


def format_amount(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def parse_amount(text: str) -> float:
    """Parse a numeric cell; anything unparseable or non-finite counts as 0."""
    cleaned = text.strip().lstrip(CURRENCY_SYMBOL).strip()
    try:
        value = float(cleaned)
    except ValueError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def format_payment_methods(methods: Iterable[PaymentMethod]) -> str:
    return "; ".join(f"{m.type}: {format_amount(m.amount)}" for m in methods)


def parse_payment_methods(text: str) -> List[PaymentMethod]:
    methods = []
    for entry in text.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        if ":" not in entry:
            raise ValidationFailure(f"Malformed payment method entry: {entry!r}")
        type_, amount = entry.split(":", 1)
        methods.append(PaymentMethod(type=type_.strip(), amount=parse_amount(amount)))
    return methods


def _join(rows: List[List[str]]) -> str:
    return "\n".join(",".join(row) for row in rows)


def expenses_to_csv(expenses: Iterable[Expense]) -> str:
    rows = [EXPENSE_CSV_HEADER]
    for e in expenses:
        rows.append(
            [
                e.date,
                format_amount(e.amount),
                format_amount(e.vat),
                e.category,
                e.purchaser,
                e.company,
                e.username,
                "Yes" if e.is_reimbursed else "No",
            ]
        )
    return _join(rows)


def income_to_csv(incomes: Iterable[Income]) -> str:
    rows = [INCOME_CSV_HEADER]
    for i in incomes:
        rows.append(
            [
                i.date,
                i.room,
                i.name,
                format_amount(i.bill),
                format_amount(i.paid),
                format_amount(i.outstanding),
                format_payment_methods(i.payment_methods),
                i.username,
            ]
        )
    return _join(rows)


def split_rows(text: str) -> List[List[str]]:
    """Split CSV text into cell lists, dropping blank lines and a header row."""
    rows = []
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        rows.append(line.split(","))
    if rows and rows[0][0].strip() == "Date":
        rows = rows[1:]
    return rows


@dataclass
class ExpenseRow:
    date: str
    amount: float
    vat: float
    category: str
    purchaser: str
    company: str


@dataclass
class IncomeRow:
    date: str
    room: str
    name: str
    bill: float
    paid: float
    payment_methods: List[PaymentMethod]


def _cell(cells: List[str], index: int) -> Optional[str]:
    return cells[index].strip() if index < len(cells) else None


def parse_expense_row(cells: List[str]) -> ExpenseRow:
    if len(cells) < 4:
        raise ValidationFailure(f"Expected at least 4 columns, got {len(cells)}")
    date = cells[0].strip()
    if not date:
        raise ValidationFailure("Missing date")
    return ExpenseRow(
        date=date,
        amount=parse_amount(cells[1]),
        vat=parse_amount(cells[2]),
        category=cells[3].strip(),
        purchaser=_cell(cells, 4) or "",
        company=_cell(cells, 5) or "",
    )


def parse_income_row(cells: List[str]) -> IncomeRow:
    if len(cells) < 5:
        raise ValidationFailure(f"Expected at least 5 columns, got {len(cells)}")
    date = cells[0].strip()
    if not date:
        raise ValidationFailure("Missing date")
    # Column 5 (outstanding) is derived and recomputed on create
    return IncomeRow(
        date=date,
        room=cells[1].strip(),
        name=cells[2].strip(),
        bill=parse_amount(cells[3]),
        paid=parse_amount(cells[4]),
        payment_methods=parse_payment_methods(_cell(cells, 6) or ""),
    )
