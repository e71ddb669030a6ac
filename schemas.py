"""
Wire schemas for the sales backend.

Each model mirrors a JSON document exchanged with the backend. Field names on
the wire are camelCase; use ``model_dump(by_alias=True)`` when sending.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ProductSnapshot(BaseModel):
    """A product as the backend sees it at lookup time (read only)"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(..., description="Product id")
    name: str = Field("", description="Display name")
    price: Decimal = Field(Decimal(0), ge=0, description="Unit price")
    available_quantity: int = Field(0, alias="availableQuantity", description="Units in stock")
    vat_rate: Optional[Decimal] = Field(None, alias="vatRate", ge=0, le=100, description="VAT percent")

    @field_validator("price", "available_quantity", mode="before")
    @classmethod
    def _missing_is_zero(cls, v):
        return 0 if v is None else v

    @field_validator("name", mode="before")
    @classmethod
    def _missing_name(cls, v):
        return "" if v is None else v


class SaleLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(..., alias="productId")
    quantity: int = Field(..., ge=1)


class SalePayload(BaseModel):
    """What crosses the boundary on finalize: ids and quantities only"""
    model_config = ConfigDict(populate_by_name=True)

    line_items: List[SaleLine] = Field(default_factory=list, alias="lineItems")
    payment_method: str = Field(..., alias="paymentMethod")


class SaleResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    sale_id: Optional[int] = Field(None, alias="saleId")
    error: Optional[str] = None
    # decoded after the sale is recorded, see receipts.decode_receipt
    receipt_base64: Optional[str] = Field(None, alias="receiptBase64")

    @model_validator(mode="after")
    def _check_outcome(self):
        if self.success and self.sale_id is None:
            raise ValueError("successful sale without saleId")
        if not self.success:
            # a failed sale has no id or receipt, whatever the backend sent
            self.sale_id = None
            self.receipt_base64 = None
        return self
