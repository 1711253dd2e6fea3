"""Secret ORM model — named values written into .env files on request."""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from secret_mcp.database import Base


class Secret(Base):
    __tablename__ = "secrets"

    id: Mapped[str] = mapped_column(String, primary_key=True)  # uuid4
    name: Mapped[str] = mapped_column(String, unique=True)  # .env variable name
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    value: Mapped[str] = mapped_column(Text)
    created_at: Mapped[int] = mapped_column(Integer)  # epoch seconds
    updated_at: Mapped[int] = mapped_column(Integer)
