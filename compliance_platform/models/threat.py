"""
STRIDE threat modeling models: assets, threat models, threats and mitigations.
"""
import enum

from sqlalchemy import Column, Integer, String, DateTime, Date, Text, Float, ForeignKey, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from compliance_platform.core.database import Base, enum_values
from compliance_platform.models.risk import RiskLevel


class AssetType(str, enum.Enum):
    """Data-flow diagram element types."""
    DATA_STORE = "data_store"
    PROCESS = "process"
    EXTERNAL_ENTITY = "external_entity"
    DATA_FLOW = "data_flow"
    TRUST_BOUNDARY = "trust_boundary"


class Criticality(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class StrideCategory(str, enum.Enum):
    """STRIDE threat classification."""
    SPOOFING = "S"
    TAMPERING = "T"
    REPUDIATION = "R"
    INFORMATION_DISCLOSURE = "I"
    DENIAL_OF_SERVICE = "D"
    ELEVATION_OF_PRIVILEGE = "E"


class RatingLevel(str, enum.Enum):
    """Five-step qualitative scale used for threat likelihood and impact."""
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class ThreatModelStatus(str, enum.Enum):
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    ARCHIVED = "archived"


class ThreatStatus(str, enum.Enum):
    IDENTIFIED = "identified"
    MITIGATED = "mitigated"
    ACCEPTED = "accepted"
    TRANSFERRED = "transferred"


class MitigationStrategy(str, enum.Enum):
    ELIMINATE = "eliminate"
    REDUCE = "reduce"
    TRANSFER = "transfer"
    ACCEPT = "accept"


class MitigationImplementationStatus(str, enum.Enum):
    PROPOSED = "proposed"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    IMPLEMENTED = "implemented"
    VERIFIED = "verified"
    REJECTED = "rejected"


# Statuses that stamp completed_at
COMPLETED_MITIGATION_STATUSES = frozenset({
    MitigationImplementationStatus.IMPLEMENTED,
    MitigationImplementationStatus.VERIFIED,
})


class EffectivenessRating(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXCELLENT = "excellent"


class Asset(Base):
    """Reusable component referenced by threats."""
    __tablename__ = "assets"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    asset_name = Column(String(255), nullable=False)
    asset_type = Column(
        Enum(AssetType, values_callable=enum_values, native_enum=False, length=50),
        nullable=False,
        index=True,
    )
    description = Column(Text, nullable=True)
    criticality = Column(
        Enum(Criticality, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=Criticality.MEDIUM,
    )
    owner = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    threats = relationship("Threat", back_populates="asset")


class ThreatModel(Base):
    """A STRIDE threat model for one system."""
    __tablename__ = "threat_models"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    model_name = Column(String(255), nullable=False)
    model_version = Column(String(50), nullable=False, default="1.0")
    system_name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    scope = Column(Text, nullable=True)
    status = Column(
        Enum(ThreatModelStatus, values_callable=enum_values, native_enum=False, length=50),
        nullable=False,
        default=ThreatModelStatus.DRAFT,
        index=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    threats = relationship("Threat", back_populates="threat_model", cascade="all, delete-orphan")


class Threat(Base):
    """An identified threat, scored with the risk register's scoring model."""
    __tablename__ = "threats"

    id = Column(Integer, primary_key=True, index=True)
    threat_model_id = Column(Integer, ForeignKey("threat_models.id", ondelete="CASCADE"), nullable=False, index=True)
    asset_id = Column(Integer, ForeignKey("assets.id"), nullable=True, index=True)
    stride_category = Column(
        Enum(StrideCategory, values_callable=enum_values, native_enum=False, length=10),
        nullable=False,
        index=True,
    )

    threat_title = Column(String(500), nullable=False)
    threat_description = Column(Text, nullable=True)
    impact_description = Column(Text, nullable=True)

    likelihood = Column(
        Enum(RatingLevel, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=RatingLevel.MEDIUM,
    )
    impact = Column(
        Enum(RatingLevel, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=RatingLevel.MEDIUM,
    )
    risk_score = Column(Integer, nullable=False)
    risk_level = Column(
        Enum(RiskLevel, values_callable=enum_values, native_enum=False, length=50),
        nullable=False,
        index=True,
    )
    status = Column(
        Enum(ThreatStatus, values_callable=enum_values, native_enum=False, length=50),
        nullable=False,
        default=ThreatStatus.IDENTIFIED,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    threat_model = relationship("ThreatModel", back_populates="threats")
    asset = relationship("Asset", back_populates="threats")
    mitigations = relationship("ThreatMitigation", back_populates="threat", cascade="all, delete-orphan")


class ThreatMitigation(Base):
    """A countermeasure planned or applied against one threat."""
    __tablename__ = "threat_mitigations"

    id = Column(Integer, primary_key=True, index=True)
    threat_id = Column(Integer, ForeignKey("threats.id", ondelete="CASCADE"), nullable=False, index=True)

    mitigation_title = Column(String(500), nullable=False)
    mitigation_description = Column(Text, nullable=True)
    mitigation_strategy = Column(
        Enum(MitigationStrategy, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=MitigationStrategy.REDUCE,
    )
    implementation_status = Column(
        Enum(MitigationImplementationStatus, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=MitigationImplementationStatus.PROPOSED,
        index=True,
    )
    priority = Column(
        Enum(Criticality, values_callable=enum_values, native_enum=False, length=20),
        nullable=False,
        default=Criticality.MEDIUM,
    )

    assigned_to = Column(String(255), nullable=True)
    estimated_effort = Column(String(100), nullable=True)
    cost_estimate = Column(Float, nullable=True)
    implementation_date = Column(Date, nullable=True)
    verification_method = Column(Text, nullable=True)
    effectiveness_rating = Column(
        Enum(EffectivenessRating, values_callable=enum_values, native_enum=False, length=20),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    threat = relationship("Threat", back_populates="mitigations")
