from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BillItemCategory(str, Enum):
    CONSULTATION = "Consultation"
    MEDICATION = "Medication"
    ROOM = "Room"
    PROCEDURE = "Procedure"
    TEST = "Test"
    OTHER = "Other"


class BillItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: str
    quantity: int = 1
    unit_price: Decimal = Field(default=Decimal("0"), alias="unitPrice")
    category: BillItemCategory = BillItemCategory.CONSULTATION

    @field_validator("description")
    @classmethod
    def _description_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Description is required")
        return v

    @field_validator("quantity")
    @classmethod
    def _positive_quantity(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be positive")
        return v

    @field_validator("unit_price")
    @classmethod
    def _non_negative_price(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("Unit price cannot be negative")
        return v

    @property
    def amount(self) -> Decimal:
        return self.unit_price * self.quantity


class BillTotals(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total_amount: Decimal = Field(alias="totalAmount")
    paid_amount: Decimal = Field(default=Decimal("0"), alias="paidAmount")

    @property
    def balance(self) -> Decimal:
        return self.total_amount - self.paid_amount


def compute_bill_totals(
    items: list[BillItem],
    tax: Decimal | int | str = 0,
    discount: Decimal | int | str = 0,
    paid_amount: Decimal | int | str = 0,
) -> BillTotals:
    subtotal = sum((item.amount for item in items), Decimal("0"))
    tax_value = Decimal(str(tax or 0))
    discount_value = Decimal(str(discount or 0))
    return BillTotals(
        subtotal=subtotal,
        tax=tax_value,
        discount=discount_value,
        total_amount=subtotal + tax_value - discount_value,
        paid_amount=Decimal(str(paid_amount or 0)),
    )
