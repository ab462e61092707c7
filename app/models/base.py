import uuid as uuid_pkg

from sqlalchemy import text
from sqlmodel import Field, SQLModel


class UUIDMixin(SQLModel):
    """Mixin providing a UUID primary key generated by the database."""

    id: uuid_pkg.UUID = Field(
        default_factory=uuid_pkg.uuid4,
        primary_key=True,
        nullable=False,
        sa_column_kwargs={"server_default": text("gen_random_uuid()")},
    )


class IntegrationScopedMixin(SQLModel):
    """Mixin for source rows owned by one GitHub integration."""

    integration_id: uuid_pkg.UUID = Field(nullable=False, index=True)
