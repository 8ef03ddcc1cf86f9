from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from imanage.service.errors import ValidationError
from imanage.storage.schema import EntityType

MAX_ID_LENGTH = 128
MAX_TEXT_LENGTH = 65536
MAX_ITEMS = 1000

_MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str


class RecordIn(BaseModel):
    """Fields shared by every writable record.

    Unknown keys (timestamps echoed back by clients, camel-cased leftovers)
    are ignored rather than rejected.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: Optional[str] = Field(default=None, min_length=1, max_length=MAX_ID_LENGTH)


class CustomerIn(RecordIn):
    name: str = Field(..., min_length=1, max_length=512)
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)


class VendorIn(RecordIn):
    name: str = Field(..., min_length=1, max_length=512)
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    bank_details: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    payment_terms: Optional[str] = None


class EmployeeIn(RecordIn):
    # employee ids are assigned by the business, not generated
    id: str = Field(..., min_length=1, max_length=MAX_ID_LENGTH)
    name: str = Field(..., min_length=1, max_length=512)
    employee_code: Optional[str] = None
    role: Optional[str] = None
    payment_type: Optional[Literal["hourly", "monthly"]] = None
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    salary: Optional[float] = Field(default=None, ge=0)
    overtime_rate: Optional[float] = Field(default=None, ge=0)
    bank_details: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)


class VehicleIn(RecordIn):
    vehicle_number: str = Field(..., min_length=1, max_length=64)
    vehicle_type: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    color: Optional[str] = None
    purchase_price: Optional[float] = Field(default=None, ge=0)
    purchase_date: Optional[str] = None
    current_value: Optional[float] = Field(default=None, ge=0)
    fuel_type: Optional[str] = None
    status: Optional[Literal["active", "inactive", "maintenance", "sold"]] = "active"
    base_price: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    notes: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)


class LineItemIn(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: Optional[str] = Field(default=None, min_length=1, max_length=MAX_ID_LENGTH)
    serial_number: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    quantity: Optional[float] = Field(default=None, ge=0)
    unit_price: Optional[float] = None
    tax_percent: Optional[float] = Field(default=None, ge=0, le=100)
    line_total: Optional[float] = None


class QuoteItemIn(LineItemIn):
    vehicle_type_id: Optional[str] = None
    vehicle_type_label: Optional[str] = None
    rental_basis: Optional[Literal["hourly", "monthly"]] = None
    line_tax_amount: Optional[float] = None


class QuoteIn(RecordIn):
    number: str = Field(..., min_length=1, max_length=64)
    date: str = Field(..., min_length=1)
    valid_until: Optional[str] = None
    currency: Optional[str] = Field(default=None, max_length=8)
    customer_id: Optional[str] = None
    sub_total: Optional[float] = None
    total_tax: Optional[float] = None
    total: Optional[float] = None
    terms: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    notes: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    items: Optional[List[QuoteItemIn]] = Field(default=None, max_length=MAX_ITEMS)


class PurchaseOrderIn(RecordIn):
    number: str = Field(..., min_length=1, max_length=64)
    date: str = Field(..., min_length=1)
    vendor_id: str = Field(..., min_length=1)
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    amount: Optional[float] = None
    currency: Optional[str] = Field(default=None, max_length=8)
    status: Optional[Literal["draft", "sent", "accepted"]] = None
    terms: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    notes: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    items: Optional[List[LineItemIn]] = Field(default=None, max_length=MAX_ITEMS)


class InvoiceIn(RecordIn):
    number: str = Field(..., min_length=1, max_length=64)
    date: str = Field(..., min_length=1)
    due_date: Optional[str] = None
    customer_id: Optional[str] = None
    vendor_id: Optional[str] = None
    purchase_order_id: Optional[str] = None
    quote_id: Optional[str] = None
    subtotal: Optional[float] = None
    tax: Optional[float] = None
    total: Optional[float] = None
    amount_received: Optional[float] = Field(default=0, ge=0)
    status: Optional[Literal["draft", "invoice_sent", "payment_received"]] = None
    terms: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    notes: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    items: Optional[List[LineItemIn]] = Field(default=None, max_length=MAX_ITEMS)


class PayslipIn(RecordIn):
    employee_id: str = Field(..., min_length=1)
    month: str = Field(..., pattern=_MONTH_PATTERN)
    year: Optional[int] = None
    base_salary: Optional[float] = Field(default=None, ge=0)
    overtime_hours: Optional[float] = Field(default=None, ge=0)
    overtime_rate: Optional[float] = Field(default=None, ge=0)
    overtime_pay: Optional[float] = Field(default=None, ge=0)
    deductions: Optional[float] = Field(default=None, ge=0)
    deduction_remarks: Optional[str] = None
    net_pay: Optional[float] = None
    status: Optional[Literal["draft", "processed", "paid"]] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)


class ExpenseCategoryIn(RecordIn):
    name: str = Field(..., min_length=1, max_length=128)
    is_custom: bool = True


class VehicleTransactionIn(RecordIn):
    vehicle_id: str = Field(..., min_length=1)
    transaction_type: Literal["expense", "revenue"]
    amount: float = Field(..., ge=0)
    date: str = Field(..., min_length=1)
    month: Optional[str] = Field(default=None, pattern=_MONTH_PATTERN)
    category: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    employee_id: Optional[str] = None
    invoice_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _derive_month(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("month") and isinstance(data.get("date"), str):
            data = {**data, "month": data["date"][:7]}
        return data


RECORD_SCHEMAS: Dict[EntityType, Type[RecordIn]] = {
    EntityType.CUSTOMER: CustomerIn,
    EntityType.VENDOR: VendorIn,
    EntityType.EMPLOYEE: EmployeeIn,
    EntityType.VEHICLE: VehicleIn,
    EntityType.QUOTE: QuoteIn,
    EntityType.PURCHASE_ORDER: PurchaseOrderIn,
    EntityType.INVOICE: InvoiceIn,
    EntityType.PAYSLIP: PayslipIn,
    EntityType.EXPENSE_CATEGORY: ExpenseCategoryIn,
    EntityType.VEHICLE_TRANSACTION: VehicleTransactionIn,
}


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "invalid request body"


def validate_record(entity: EntityType, data: Any) -> Dict[str, Any]:
    """Validate a JSON body for ``entity`` and return the storable fields.

    Raises the service ``ValidationError`` (400) with a readable message.
    """
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    schema = RECORD_SCHEMAS[entity]
    try:
        model = schema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            _describe(exc),
            detail={"fields": [".".join(str(p) for p in err["loc"]) for err in exc.errors()]},
        ) from exc
    return model.model_dump()
