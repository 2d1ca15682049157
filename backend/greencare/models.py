from sqlalchemy import (
    JSON, BigInteger, Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint,
)
from sqlalchemy.sql import func

from greencare.db import Base


class Company(Base):
    __tablename__ = "companies"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    contact_person = Column(String, nullable=False, default="")
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    location = Column(String, nullable=True)
    fixed_salary_cents = Column(BigInteger, nullable=False, default=0)
    services = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class Payment(Base):
    __tablename__ = "payments"
    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False, default=0)
    date = Column(Date, nullable=False)
    reference = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending")       # paid/pending/overdue
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Labor(Base):
    __tablename__ = "labor"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    photo_url = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    role = Column(String, nullable=True)
    salary_type = Column(String, nullable=False, default="monthly")  # monthly/weekly/daily
    salary_amount_cents = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class LaborExpense(Base):
    __tablename__ = "labor_expenses"
    id = Column(Integer, primary_key=True, index=True)
    labor_id = Column(Integer, ForeignKey("labor.id"), nullable=False, index=True)
    purpose = Column(String, nullable=False)
    amount_cents = Column(BigInteger, nullable=False, default=0)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SalaryPayment(Base):
    __tablename__ = "salary_payments"
    id = Column(Integer, primary_key=True, index=True)
    labor_id = Column(Integer, ForeignKey("labor.id"), nullable=False, index=True)
    month = Column(String, nullable=False)                            # ex: June
    year = Column(Integer, nullable=False)
    amount_cents = Column(BigInteger, nullable=False, default=0)
    status = Column(String, nullable=False, default="pending")       # paid/pending
    payment_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    __table_args__ = (
        UniqueConstraint("labor_id", "month", "year", name="uq_salary_labor_period"),
    )


class SideProject(Base):
    __tablename__ = "side_projects"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    location = Column(String, nullable=True)
    cost_cents = Column(BigInteger, nullable=False, default=0)
    profit_cents = Column(BigInteger, nullable=False, default=0)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="active")       # active/completed/cancelled
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ProjectExpense(Base):
    __tablename__ = "project_expenses"
    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("side_projects.id"), nullable=False, index=True)
    description = Column(String, nullable=False)
    amount_cents = Column(BigInteger, nullable=False, default=0)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Invoice(Base):
    __tablename__ = "invoices"
    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String, unique=True, index=True, nullable=False)  # ex: INV-2025-0001
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False, default=0)
    status = Column(String, nullable=False, default="draft")         # draft/sent/paid/overdue
    email_sent = Column(Boolean, nullable=False, default=False)
    issue_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class InvoiceLine(Base):
    __tablename__ = "invoice_lines"
    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    rate_cents = Column(BigInteger, nullable=False, default=0)
    amount_cents = Column(BigInteger, nullable=False, default=0)


class InvoiceCounter(Base):
    __tablename__ = "invoice_counters"
    prefix = Column(String, primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)


class Settings(Base):
    __tablename__ = "settings"
    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String, nullable=False)
    company_email = Column(String, nullable=True)
    company_phone = Column(String, nullable=True)
    company_address = Column(String, nullable=True)
    currency = Column(String, nullable=False, default="USD")
    tax_rate = Column(Float, nullable=False, default=0)
    invoice_prefix = Column(String, nullable=False, default="INV")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
