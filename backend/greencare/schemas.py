import json
import datetime as dt
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, BeforeValidator, EmailStr, Field, field_validator

SERVICE_OPTIONS = (
    "Landscaping",
    "Garden Maintenance",
    "Tree Care",
    "Lawn Care",
    "Irrigation",
    "Design Consultation",
)

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

PaymentStatus = Literal["paid", "pending", "overdue"]
SalaryStatus = Literal["paid", "pending"]
SalaryType = Literal["monthly", "weekly", "daily"]
ProjectStatus = Literal["active", "completed", "cancelled"]
InvoiceStatus = Literal["draft", "sent", "paid", "overdue"]
Month = Literal[MONTHS]


def coerce_int(value, default: int = 0) -> int:
    """Form-style numeric coercion: numeric strings become ints, junk becomes ``default``."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        d = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    if not d.is_finite():
        return default
    return int(d.to_integral_value(rounding=ROUND_HALF_UP))


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_services(services):
    unknown = [s for s in services if s not in SERVICE_OPTIONS]
    if unknown:
        raise ValueError(f"unknown service(s): {', '.join(unknown)}")
    # set semantics, stable order
    return list(dict.fromkeys(services))


Cents = Annotated[int, BeforeValidator(coerce_int), Field(ge=0)]
Quantity = Annotated[int, BeforeValidator(lambda v: coerce_int(v, default=1)), Field(ge=1)]
OptionalEmail = Annotated[Optional[EmailStr], BeforeValidator(_blank_to_none)]
OptionalDate = Annotated[Optional[dt.date], BeforeValidator(_blank_to_none)]


# ---- Companies ----
class CompanyBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    contact_person: str = ""
    email: OptionalEmail = None
    phone: Optional[str] = None
    address: Optional[str] = None
    location: Optional[str] = None
    fixed_salary_cents: Cents = 0
    services: List[str] = Field(default_factory=list)

    @field_validator("services", mode="before")
    @classmethod
    def load_services(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = json.loads(v) if v.strip().startswith("[") else [v]
        return v

    @field_validator("services")
    @classmethod
    def check_services(cls, v):
        return _check_services(v)


class CompanyCreate(CompanyBase):
    pass


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    contact_person: Optional[str] = None
    email: OptionalEmail = None
    phone: Optional[str] = None
    address: Optional[str] = None
    location: Optional[str] = None
    fixed_salary_cents: Optional[Cents] = None
    services: Optional[List[str]] = None

    @field_validator("services")
    @classmethod
    def check_services(cls, v):
        return None if v is None else _check_services(v)


class CompanyOut(CompanyBase):
    id: int
    email: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


# ---- Payments ----
class PaymentCreate(BaseModel):
    company_id: int
    amount_cents: Cents = 0
    date: dt.date
    reference: Optional[str] = None
    status: PaymentStatus = "pending"


class PaymentUpdate(BaseModel):
    company_id: Optional[int] = None
    amount_cents: Optional[Cents] = None
    date: Optional[dt.date] = None
    reference: Optional[str] = None
    status: Optional[PaymentStatus] = None


class PaymentOut(PaymentCreate):
    id: int
    created_at: Optional[dt.datetime] = None


# ---- Labor ----
class LaborCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    photo_url: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Optional[str] = None
    salary_type: SalaryType = "monthly"
    salary_amount_cents: Cents = 0


class LaborUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    photo_url: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Optional[str] = None
    salary_type: Optional[SalaryType] = None
    salary_amount_cents: Optional[Cents] = None


class LaborOut(LaborCreate):
    id: int
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class LaborExpenseCreate(BaseModel):
    labor_id: int
    purpose: str = Field(min_length=1, max_length=300)
    amount_cents: Cents = 0
    date: dt.date


class LaborExpenseUpdate(BaseModel):
    purpose: Optional[str] = Field(default=None, min_length=1, max_length=300)
    amount_cents: Optional[Cents] = None
    date: Optional[dt.date] = None


class LaborExpenseOut(LaborExpenseCreate):
    id: int
    created_at: Optional[dt.datetime] = None


# ---- Salary payments ----
class SalaryPaymentIn(BaseModel):
    labor_id: int
    month: Optional[Month] = None               # default: current month
    year: Optional[int] = Field(default=None, ge=1900, le=2999)
    amount_cents: Optional[Cents] = None        # default: worker salary
    status: SalaryStatus = "paid"
    payment_date: OptionalDate = None


class SalaryPaymentOut(BaseModel):
    id: int
    labor_id: int
    month: str
    year: int
    amount_cents: int
    status: SalaryStatus
    payment_date: Optional[dt.date] = None
    created_at: Optional[dt.datetime] = None


# ---- Side projects ----
class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    location: Optional[str] = None
    cost_cents: Cents = 0
    profit_cents: Cents = 0
    start_date: dt.date
    end_date: OptionalDate = None
    status: ProjectStatus = "active"


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    location: Optional[str] = None
    cost_cents: Optional[Cents] = None
    profit_cents: Optional[Cents] = None
    start_date: Optional[dt.date] = None
    end_date: OptionalDate = None
    status: Optional[ProjectStatus] = None


class ProjectOut(ProjectCreate):
    id: int
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class ProjectExpenseCreate(BaseModel):
    project_id: int
    description: str = Field(min_length=1, max_length=300)
    amount_cents: Cents = 0
    date: dt.date


class ProjectExpenseUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=300)
    amount_cents: Optional[Cents] = None
    date: Optional[dt.date] = None


class ProjectExpenseOut(ProjectExpenseCreate):
    id: int
    created_at: Optional[dt.datetime] = None


# ---- Invoices ----
class InvoiceItemIn(BaseModel):
    description: str = Field(min_length=1, max_length=300)
    quantity: Quantity = 1
    rate_cents: Cents = 0


class InvoiceItemOut(InvoiceItemIn):
    amount_cents: int


class InvoiceCreate(BaseModel):
    company_id: int
    items: List[InvoiceItemIn] = Field(min_length=1)
    status: InvoiceStatus = "draft"
    issue_date: OptionalDate = None
    due_date: OptionalDate = None


class InvoiceUpdate(BaseModel):
    company_id: Optional[int] = None
    items: Optional[List[InvoiceItemIn]] = Field(default=None, min_length=1)
    status: Optional[InvoiceStatus] = None
    email_sent: Optional[bool] = None
    issue_date: OptionalDate = None
    due_date: OptionalDate = None


class InvoiceOut(BaseModel):
    id: int
    invoice_number: str
    company_id: int
    company_name: Optional[str] = None
    amount_cents: int
    status: InvoiceStatus
    email_sent: bool = False
    issue_date: Optional[dt.date] = None
    due_date: Optional[dt.date] = None
    items: List[InvoiceItemOut] = Field(default_factory=list)
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


# ---- Settings ----
class SettingsIn(BaseModel):
    company_name: str = Field(min_length=1, max_length=200)
    company_email: OptionalEmail = None
    company_phone: Optional[str] = None
    company_address: Optional[str] = None
    currency: str = Field(default="USD", min_length=3, max_length=3)
    tax_rate: float = Field(default=0, ge=0, le=100)
    invoice_prefix: str = Field(default="INV", min_length=1, max_length=12, pattern=r"^[A-Za-z0-9]+$")


class SettingsOut(SettingsIn):
    id: Optional[int] = None
    company_email: Optional[str] = None
    updated_at: Optional[dt.datetime] = None


DEFAULT_SETTINGS = {
    "company_name": "GreenCare Agency",
    "company_email": "admin@greencare.com",
    "company_phone": "+1 (555) 123-4567",
    "company_address": "123 Garden Street, Green City, GC 12345",
    "currency": "USD",
    "tax_rate": 0,
    "invoice_prefix": "INV",
}


# ---- Stats / reports ----
class Stats(BaseModel):
    total_income: int = 0
    weekly_income: int = 0
    monthly_income: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    one_time_projects: int = 0
    permanent_clients: int = 0
    active_workers: int = 0
    pending_salaries: int = 0
    monthly_payroll: int = 0
    total_expenses: int = 0
    net_profit: int = 0
    paid_invoices: int = 0
    unpaid_invoices: int = 0


class CompanySummary(BaseModel):
    company_id: int
    name: str
    paid_total_cents: int
    payments_count: int
    last_payment: Optional[PaymentOut] = None


class WorkerSummary(BaseModel):
    labor_id: int
    name: str
    expenses_total_cents: int
    expenses_count: int
    monthly_salary_cents: int
    current_salary_status: SalaryStatus


class ProjectSummary(BaseModel):
    project_id: int
    name: str
    status: ProjectStatus
    cost_cents: int
    profit_cents: int
    expenses_cents: int
    net_profit_cents: int


class InvoiceSummary(BaseModel):
    total_value_cents: int
    count: int
    paid_count: int
    overdue_count: int


class MonthlyPoint(BaseModel):
    month: str                                  # YYYY-MM
    income_cents: int
    expenses_cents: int
    profit_cents: int


class ExpenseBreakdown(BaseModel):
    salaries_paid_cents: int
    labor_expenses_cents: int
    project_expenses_cents: int
    total_cents: int
