from enum import Enum

from sqlmodel import Field, SQLModel


class Role(str, Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class UserBase(SQLModel):
    email: str = Field(unique=True, index=True)
    full_name: str | None = None
    role: Role = Field(default=Role.PATIENT)
    is_active: bool = True


class User(UserBase, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)


class UserPublic(SQLModel):
    id: int
    email: str
    full_name: str | None = None
    role: Role
