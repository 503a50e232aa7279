"""SQLAlchemy ORM model for the durable mapping store.

Data Model Layout
=================
::
    shortened_urls table
    ├─ id (BIGINT PRIMARY KEY, autoincrement)
    ├─ domain (VARCHAR(255) NOT NULL)
    ├─ code (VARCHAR(9) NOT NULL)
    ├─ original_url (TEXT NOT NULL)
    └─ UNIQUE (domain, code)  -- unique_domain_code

Key Behaviours
===============
- (domain, code) is unique; the same code may exist under different domains.
- Rows are written once and never updated or deleted.
- id is a surrogate key with no meaning to the lookup logic.

Classes:
    ShortenedURL:  One durable (domain, code) -> original_url mapping.
"""

from sqlalchemy import BigInteger, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from shortlink.codegen import CODE_LENGTH
from shortlink.database import Base

__all__ = ["ShortenedURL"]


class ShortenedURL(Base):
    __tablename__ = "shortened_urls"
    __table_args__ = (UniqueConstraint("domain", "code", name="unique_domain_code"),)

    # SQLite only assigns rowids to INTEGER primary keys
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(CODE_LENGTH), nullable=False)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<ShortenedURL(id={self.id}, domain='{self.domain}', code='{self.code}')>"
