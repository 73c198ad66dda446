"""Sales catalogue: clients and job descriptions.

Maintained by the sales team, independent of the candidate state machine.
Client interviews copy the client name and job description title as soft
references, so deleting a catalogue entry never touches interview history.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from talent_pipeline.core.auth import Role, SessionContext, require_role
from talent_pipeline.core.errors import (
    ConflictError,
    DependencyUnavailableError,
    NotFoundError,
    ValidationError,
)
from talent_pipeline.core.file_validation import (
    DOCUMENT_MIMES,
    Attachment,
    validate_attachment,
)
from talent_pipeline.models.client import Client, JobDescription
from talent_pipeline.services.object_store import (
    ObjectStore,
    ObjectStoreError,
    get_object_store,
)
from talent_pipeline.services.pipeline_types import ResourceType, Technology

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class ClientInput:
    """Fields for creating a client.

    Attributes:
        name: Unique client name.
        contact_email: Sales contact at the client.
        active_positions: Open positions (>= 0).
        technologies: Non-empty list of Technology values.
    """

    name: str
    contact_email: str
    active_positions: int
    technologies: list[str]


@dataclass(frozen=True)
class JobDescriptionInput:
    """Fields for creating a job description."""

    title: str
    client: str
    technology: str
    resource_type: str
    received_date: date
    deadline: date
    description: str


def _validated_client(data: ClientInput) -> ClientInput:
    name = data.name.strip() if data.name else ""
    if not name:
        raise ValidationError("name is required", field="name")
    email = data.contact_email.strip() if data.contact_email else ""
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError(
            "contact_email must be a valid email address", field="contact_email"
        )
    if isinstance(data.active_positions, bool) or data.active_positions < 0:
        raise ValidationError(
            "active_positions must be zero or more", field="active_positions"
        )
    if not data.technologies:
        raise ValidationError(
            "At least one technology is required", field="technologies"
        )
    try:
        technologies = [Technology.from_string(t).value for t in data.technologies]
    except ValueError as exc:
        raise ValidationError(str(exc), field="technologies") from exc
    return ClientInput(
        name=name,
        contact_email=email,
        active_positions=data.active_positions,
        technologies=list(dict.fromkeys(technologies)),
    )


def _validated_job_description(data: JobDescriptionInput) -> JobDescriptionInput:
    for field in ("title", "client", "description"):
        if not str(getattr(data, field) or "").strip():
            raise ValidationError(f"{field} is required", field=field)
    try:
        technology = Technology.from_string(data.technology).value
    except ValueError as exc:
        raise ValidationError(str(exc), field="technology") from exc
    try:
        resource_type = ResourceType.from_string(data.resource_type).value
    except ValueError as exc:
        raise ValidationError(str(exc), field="resource_type") from exc
    if data.deadline <= data.received_date:
        raise ValidationError(
            "deadline must be after received_date", field="deadline"
        )
    return JobDescriptionInput(
        title=data.title.strip(),
        client=data.client.strip(),
        technology=technology,
        resource_type=resource_type,
        received_date=data.received_date,
        deadline=data.deadline,
        description=data.description.strip(),
    )


# =============================================================================
# Clients
# =============================================================================


async def create_client(
    db: AsyncSession,
    ctx: SessionContext,
    data: ClientInput,
) -> Client:
    """Add a client to the catalogue.

    Raises:
        AuthorizationError: Caller is not SALES.
        ValidationError: Invalid field.
        ConflictError: A client with this name exists (DUPLICATE_CLIENT).
    """
    require_role(ctx, [Role.SALES], "manage clients")
    data = _validated_client(data)

    existing = await db.execute(select(Client.id).where(Client.name == data.name))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("DUPLICATE_CLIENT", f"Client '{data.name}' already exists")

    client = Client(
        name=data.name,
        contact_email=data.contact_email,
        active_positions=data.active_positions,
        technologies=data.technologies,
    )
    db.add(client)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(
            "DUPLICATE_CLIENT", f"Client '{data.name}' already exists"
        ) from exc
    logger.info("Created client %s", data.name)
    return client


async def list_clients(db: AsyncSession) -> list[Client]:
    result = await db.execute(select(Client).order_by(Client.name))
    return list(result.scalars().all())


async def delete_client(
    db: AsyncSession,
    ctx: SessionContext,
    client_id: uuid.UUID,
) -> None:
    """Remove a client. Interviews that named it keep the name."""
    require_role(ctx, [Role.SALES], "manage clients")
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", str(client_id))
    await db.delete(client)
    await db.commit()
    logger.info("Deleted client %s", client.name)


# =============================================================================
# Job descriptions
# =============================================================================


async def create_job_description(
    db: AsyncSession,
    ctx: SessionContext,
    data: JobDescriptionInput,
    *,
    file: Attachment | None = None,
    store: ObjectStore | None = None,
) -> JobDescription:
    """Add a job description, optionally with its PDF.

    Raises:
        AuthorizationError: Caller is not SALES.
        ValidationError: Invalid field or deadline not after received date.
        UnsupportedFileTypeError: File is not a PDF.
        DependencyUnavailableError: Object store failed.
    """
    require_role(ctx, [Role.SALES], "manage job descriptions")
    data = _validated_job_description(data)
    mime_type = (
        validate_attachment(file, DOCUMENT_MIMES, field="file") if file else None
    )
    store = store or get_object_store()

    file_ref = None
    if file is not None and mime_type is not None:
        try:
            file_ref = await store.put(file.content, mime_type, file.filename)
        except ObjectStoreError as exc:
            raise DependencyUnavailableError("object_store") from exc

    job_description = JobDescription(
        title=data.title,
        client=data.client,
        technology=data.technology,
        resource_type=data.resource_type,
        received_date=data.received_date,
        deadline=data.deadline,
        description=data.description,
        file_ref=file_ref,
        file_name=file.filename if file else None,
    )
    db.add(job_description)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        if file_ref is not None:
            await store.delete(file_ref)
        raise
    logger.info("Created job description %r for %s", data.title, data.client)
    return job_description


async def list_job_descriptions(
    db: AsyncSession,
    *,
    client: str | None = None,
) -> list[JobDescription]:
    """Job descriptions ordered by deadline, optionally for one client."""
    stmt = select(JobDescription)
    if client:
        stmt = stmt.where(JobDescription.client == client)
    result = await db.execute(stmt.order_by(JobDescription.deadline))
    return list(result.scalars().all())


async def delete_job_description(
    db: AsyncSession,
    ctx: SessionContext,
    job_description_id: uuid.UUID,
    *,
    store: ObjectStore | None = None,
) -> None:
    """Remove a job description and its stored file."""
    require_role(ctx, [Role.SALES], "manage job descriptions")
    job_description = await db.get(JobDescription, job_description_id)
    if job_description is None:
        raise NotFoundError("JobDescription", str(job_description_id))
    file_ref = job_description.file_ref
    await db.delete(job_description)
    await db.commit()
    if file_ref:
        store = store or get_object_store()
        try:
            await store.delete(file_ref)
        except ObjectStoreError:
            logger.warning("Could not delete job description file %s", file_ref)
