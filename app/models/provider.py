"""Service provider, local service manager, and catalogue models."""

import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class ServiceStatus(enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"


class ProviderStatus(enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"
    BANNED = "banned"


class Service(Base):
    """Catalogue entry a provider can offer (e.g. "Toilet Repair")."""
    __tablename__ = "services"

    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[ServiceStatus] = mapped_column(
        Enum(ServiceStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=ServiceStatus.APPROVED,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )


class LocalServiceManager(Base):
    """Regional moderator. Exactly one LSM per region."""
    __tablename__ = "local_service_managers"

    lsm_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    region: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    closed_deals_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ServiceProvider(Base):
    __tablename__ = "service_providers"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, nullable=False
    )
    lsm_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("local_service_managers.lsm_id", ondelete="RESTRICT"), nullable=False
    )
    business_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    status: Mapped[ProviderStatus] = mapped_column(
        Enum(ProviderStatus, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=ProviderStatus.PENDING,
    )
    rating: Mapped[Decimal] = mapped_column(
        Numeric(3, 2), nullable=False, default=Decimal("0.00")
    )
    total_jobs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Missed response deadlines; LSM is asked to review at the configured limit
    warnings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    earning: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )


class ProviderService(Base):
    __tablename__ = "provider_services"
    __table_args__ = (
        UniqueConstraint("provider_id", "service_id", name="uq_provider_services_provider_service"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("service_providers.provider_id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.service_id", ondelete="CASCADE"), nullable=False
    )


class ServiceArea(Base):
    __tablename__ = "service_areas"
    __table_args__ = (
        UniqueConstraint("provider_id", "zipcode", name="uq_service_areas_provider_zipcode"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("service_providers.provider_id", ondelete="CASCADE"), nullable=False
    )
    zipcode: Mapped[str] = mapped_column(String(10), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
