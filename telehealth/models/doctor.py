from decimal import Decimal

from sqlmodel import Field, SQLModel


class Doctor(SQLModel, table=True):
    """Doctor profile attached to a user account. Owns availability and slots."""

    __tablename__ = "doctors"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    specialty_primary: str | None = None
    consultation_fee: Decimal = Field(default=Decimal("500.00"), max_digits=10, decimal_places=2)
    is_verified: bool = False
