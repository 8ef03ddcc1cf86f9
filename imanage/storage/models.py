from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Customer:
    id: str
    name: str
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Vendor:
    id: str
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    bank_details: Optional[str] = None
    payment_terms: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Employee:
    id: str
    name: str
    employee_code: Optional[str] = None
    role: Optional[str] = None
    payment_type: Optional[str] = None  # "hourly" | "monthly"
    hourly_rate: Optional[float] = None
    salary: Optional[float] = None
    overtime_rate: Optional[float] = None
    bank_details: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class Vehicle:
    id: str
    vehicle_number: str
    vehicle_type: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    purchase_price: Optional[float] = None
    purchase_date: Optional[str] = None
    current_value: Optional[float] = None
    fuel_type: Optional[str] = None
    status: Optional[str] = "active"
    base_price: Optional[float] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class QuoteItem:
    id: str
    quote_id: str
    serial_number: Optional[int] = None
    vehicle_type_id: Optional[str] = None
    vehicle_type_label: Optional[str] = None
    description: Optional[str] = None
    rental_basis: Optional[str] = None  # "hourly" | "monthly"
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    tax_percent: Optional[float] = None
    line_tax_amount: Optional[float] = None
    line_total: Optional[float] = None


@dataclass
class Quote:
    id: str
    number: str
    date: str
    valid_until: Optional[str] = None
    currency: Optional[str] = None
    customer_id: Optional[str] = None
    sub_total: Optional[float] = None
    total_tax: Optional[float] = None
    total: Optional[float] = None
    terms: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    items: List[QuoteItem] = field(default_factory=list)


@dataclass
class PurchaseOrderItem:
    id: str
    purchase_order_id: str
    serial_number: Optional[int] = None
    description: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    tax_percent: Optional[float] = None
    line_total: Optional[float] = None


@dataclass
class PurchaseOrder:
    id: str
    number: str
    date: str
    vendor_id: str
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    amount: Optional[float] = None
    currency: Optional[str] = None
    status: Optional[str] = None  # "draft" | "sent" | "accepted"
    terms: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    items: List[PurchaseOrderItem] = field(default_factory=list)


@dataclass
class InvoiceItem:
    id: str
    invoice_id: str
    serial_number: Optional[int] = None
    description: Optional[str] = None
    quantity: Optional[float] = None
    unit_price: Optional[float] = None
    tax_percent: Optional[float] = None
    line_total: Optional[float] = None


@dataclass
class Invoice:
    id: str
    number: str
    date: str
    due_date: Optional[str] = None
    customer_id: Optional[str] = None
    vendor_id: Optional[str] = None
    purchase_order_id: Optional[str] = None
    quote_id: Optional[str] = None
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    amount_received: Optional[float] = 0
    status: Optional[str] = None  # "draft" | "invoice_sent" | "payment_received"
    terms: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    items: List[InvoiceItem] = field(default_factory=list)


@dataclass
class Payslip:
    id: str
    month: Optional[str] = None  # YYYY-MM
    year: Optional[int] = None
    employee_id: Optional[str] = None
    base_salary: Optional[float] = None
    overtime_hours: Optional[float] = None
    overtime_rate: Optional[float] = None
    overtime_pay: Optional[float] = None
    deductions: Optional[float] = None
    deduction_remarks: Optional[str] = None
    net_pay: Optional[float] = None
    status: Optional[str] = None  # "draft" | "processed" | "paid"
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class ExpenseCategory:
    id: str
    name: str
    is_custom: bool = False
    created_at: Optional[str] = None


@dataclass
class VehicleTransaction:
    id: str
    vehicle_id: str
    transaction_type: str  # "expense" | "revenue"
    amount: float
    date: str
    month: str  # YYYY-MM
    category: Optional[str] = None
    description: Optional[str] = None
    employee_id: Optional[str] = None
    invoice_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
