# bookkeeper/domain/models.py
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class PaymentType(Enum):
    CARD = "Card"
    CASH = "Cash"
    WECHAT = "WeChat"
    CREDIT = "Credit"


class Director(Enum):
    DIEGO = "Diego"
    LEO = "Leo"
    SAULO = "Saulo"
    WARREN = "Warren"


PAYMENT_TYPES: List[str] = [t.value for t in PaymentType]
DIRECTORS: List[str] = [d.value for d in Director]
ROOMS: List[str] = [f"K{i}" for i in range(1, 11)] + ["Bar"]


@dataclass
class Expense:
    id: str
    user_id: str
    username: str
    date: str
    amount: float
    vat: float
    category: str
    purchaser: str
    company: str
    created_at: str
    receipt_path: Optional[str] = None
    is_reimbursed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Expense":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            username=data["username"],
            date=data["date"],
            amount=float(data["amount"]),
            vat=float(data.get("vat", 0.0)),
            category=data.get("category", ""),
            purchaser=data.get("purchaser", ""),
            company=data.get("company", ""),
            created_at=data["created_at"],
            receipt_path=data.get("receipt_path"),
            is_reimbursed=bool(data.get("is_reimbursed", False)),
        )


@dataclass
class PaymentMethod:
    type: str
    amount: float
    wechat_cny: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentMethod":
        return cls(
            type=data["type"],
            amount=float(data["amount"]),
            wechat_cny=data.get("wechat_cny"),
        )


@dataclass
class Income:
    id: str
    user_id: str
    username: str
    date: str
    room: str
    name: str
    bill: float
    paid: float
    outstanding: float
    created_at: str
    payment_methods: List[PaymentMethod] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Income":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            username=data["username"],
            date=data["date"],
            room=data["room"],
            name=data.get("name", ""),
            bill=float(data["bill"]),
            paid=float(data["paid"]),
            outstanding=float(data["outstanding"]),
            created_at=data["created_at"],
            payment_methods=[
                PaymentMethod.from_dict(pm) for pm in data.get("payment_methods", [])
            ],
        )


@dataclass
class BalanceOverride:
    payment_type: str
    amount: float
    updated_at: str


@dataclass
class DirectorLoanOverride:
    director: str
    amount: float
    updated_at: str


@dataclass
class BalanceEntry:
    calculated: float
    final: float
    override: Optional[float] = None


@dataclass
class BalanceSnapshot:
    balances: Dict[str, BalanceEntry]
    director_loans: Dict[str, BalanceEntry]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class User:
    id: str
    username: str
    hashed_password: str
    is_admin: bool = False

    def public(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username, "is_admin": self.is_admin}


@dataclass
class Session:
    id: str
    user_id: str
    username: str
    is_admin: bool
    created_at: str


@dataclass
class ImportResult:
    succeeded: int = 0
    failed: int = 0
