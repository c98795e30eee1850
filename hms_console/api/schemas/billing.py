import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from hms_console.models.billing import BillItem


class BillTotalsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: list[BillItem] = Field(default_factory=list)
    tax: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    paid_amount: Decimal = Field(default=Decimal("0"), alias="paidAmount")


class BillRequest(BillTotalsRequest):
    patient: str
    bill_date: dt.date | None = Field(default=None, alias="billDate")
    due_date: dt.date | None = Field(default=None, alias="dueDate")
    notes: str | None = None


class PaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Decimal
    payment_method: str = Field(default="Cash", alias="paymentMethod")
    payment_date: str | None = Field(default=None, alias="paymentDate")
