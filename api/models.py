"""
Pydantic response models for the API.

Optional fields default to None so that rows with NULL columns still
serialize. Fields named ``_id`` use an alias because pydantic reserves
leading underscores; FastAPI serializes responses by alias.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ── Transaction records ───────────────────────────────────────────────────────

class TransactionOut(BaseModel):
    """A single stored transaction record."""
    model_config = ConfigDict(populate_by_name=True)

    record_id: int = Field(..., alias="_id", description="Store-generated record id", examples=[1])
    id: int | None = Field(None, description="Dataset identifier", examples=[1])
    title: str | None = Field(None, description="Product title", examples=["Fjallraven - Foldsack No. 1 Backpack"])
    price: float | None = Field(None, description="Sale price", examples=[329.85])
    description: str | None = Field(None, description="Product description")
    category: str | None = Field(None, description="Product category", examples=["men's clothing"])
    image: str | None = Field(None, description="Image URI")
    sold: bool | None = Field(None, description="Whether the item sold", examples=[False])
    dateOfSale: str | None = Field(
        None, description="UTC timestamp of the sale", examples=["2021-11-27T14:59:54.000Z"],
    )


# ── Reports ───────────────────────────────────────────────────────────────────

class StatisticsOut(BaseModel):
    """Response body for GET /statistics."""
    totalSaleAmount: float = Field(0, description="Sum of price over month-matching records", examples=[27048.48])
    totalSoldItems: int = Field(0, description="Month-matching records with sold = true", examples=[8])
    totalNotSoldItems: int = Field(0, description="Month-matching records with sold = false", examples=[4])


class BucketOut(BaseModel):
    """One group of a grouped count (price band or category)."""
    model_config = ConfigDict(populate_by_name=True)

    group: str | None = Field(..., alias="_id", description="Group key", examples=["0-100"])
    count: int = Field(..., description="Records in the group", examples=[3])


# ── Status messages ───────────────────────────────────────────────────────────

class MessageOut(BaseModel):
    """Static status message (import and combined-data endpoints)."""
    message: str = Field(..., examples=["Successfully imported data"])


class ErrorResponse(BaseModel):
    """Static error body returned for any server-side failure."""
    error: str = Field(..., description="Short error category", examples=["Internal Server Error"])
