"""Sales catalogue models - clients and job descriptions.

Independent of the candidate state machine. Client interviews reference
them by name/title only, so renames do not rewrite interview history.
"""

import datetime as dt
import uuid

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from talent_pipeline.models.base import Base, TimestampMixin


class Client(Base, TimestampMixin):
    """Hiring client maintained by the sales team."""

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    active_positions: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    # Non-empty list of Technology values
    technologies: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("active_positions >= 0", name="ck_client_active_positions"),
    )


class JobDescription(Base, TimestampMixin):
    """Open position received from a client."""

    __tablename__ = "job_descriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    client: Mapped[str] = mapped_column(String(255), nullable=False)
    technology: Mapped[str] = mapped_column(String(20), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(10), nullable=False)
    received_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    deadline: Mapped[dt.date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    file_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("deadline > received_date", name="ck_job_description_deadline"),
    )
