"""
SQLAlchemy ORM models for the Content Orchestrator database.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    ForeignKey,
    Float,
    Boolean,
    Enum as SQLEnum,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# Enums
class ParsingStatus(str, enum.Enum):
    """Lifecycle of a brand document through parsing and AI structuring."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentCategory(str, enum.Enum):
    """Categories that select the AI structuring prompt."""

    CLINICAL = "clinical"
    SAFETY_INFORMATION = "safety-information"
    MARKETING = "marketing"
    COMPETITIVE_INTELLIGENCE = "competitive-intelligence"
    REGULATORY = "regulatory"
    BRAND_GUIDELINES = "brand-guidelines"
    PRESCRIBING_INFORMATION = "prescribing-information"
    OTHER = "other"


class ReviewStatus(str, enum.Enum):
    """MLR review state of a clinical claim."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ValidationStatus(str, enum.Enum):
    """State of a detected success pattern."""

    DISCOVERED = "discovered"
    VALIDATED = "validated"
    RETIRED = "retired"


class ProjectStatus(str, enum.Enum):
    """Localization project workflow state."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Models
class User(Base):
    """User account (identity supplied by the frontend auth provider)."""

    __tablename__ = "users"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    brands = relationship("Brand", back_populates="user", cascade="all, delete-orphan")


class Brand(Base):
    """Brand profile that scopes documents, claims, themes and localization work."""

    __tablename__ = "brands"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    brand_name = Column(String(255), nullable=False)
    company = Column(String(255), nullable=False)
    therapeutic_area = Column(String(255), nullable=False)
    indication = Column(Text, nullable=True)
    # FDA-approved indication wording used in claim suggestions
    fda_indication = Column(Text, nullable=True)
    primary_color = Column(String(20), default="#1F3A93", nullable=False)
    secondary_color = Column(String(20), default="#FFFFFF", nullable=False)
    accent_color = Column(String(20), default="#00A19A", nullable=False)
    font_family = Column(String(100), nullable=True)
    logo_url = Column(String(1024), nullable=True)
    # forbidden_terms, caution_terms, tone, key_messages
    guidelines = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="brands")
    documents = relationship("BrandDocument", back_populates="brand", cascade="all, delete-orphan")
    claims = relationship("Claim", back_populates="brand", cascade="all, delete-orphan")
    content_modules = relationship("ContentModule", back_populates="brand", cascade="all, delete-orphan")
    themes = relationship("Theme", back_populates="brand", cascade="all, delete-orphan")
    element_performance = relationship(
        "ContentElementPerformance", back_populates="brand", cascade="all, delete-orphan"
    )
    attributions = relationship("PerformanceAttribution", back_populates="brand", cascade="all, delete-orphan")
    success_patterns = relationship("SuccessPattern", back_populates="brand", cascade="all, delete-orphan")
    tm_entries = relationship("TranslationMemoryEntry", back_populates="brand", cascade="all, delete-orphan")
    localization_projects = relationship(
        "LocalizationProject", back_populates="brand", cascade="all, delete-orphan"
    )


class BrandDocument(Base):
    """Uploaded brand document with extracted text and AI-structured sections."""

    __tablename__ = "brand_documents"

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    document_title = Column(String(512), nullable=False)
    document_category = Column(
        SQLEnum(DocumentCategory, values_callable=_enum_values), default=DocumentCategory.OTHER, nullable=False
    )
    document_type = Column(String(50), nullable=False)  # pdf, docx, txt
    drug_name = Column(String(255), nullable=True)
    original_filename = Column(String(255), nullable=False)
    file_path = Column(String(1024), nullable=False)
    file_size_bytes = Column(Integer, nullable=True)
    page_count = Column(Integer, nullable=True)
    version = Column(String(50), nullable=True)
    content_text = Column(Text, nullable=True)  # Full extracted text
    parsed_data = Column(JSON, nullable=True)  # AI-structured sections keyed by category
    extraction_metadata = Column(JSON, nullable=True)
    parsing_status = Column(
        SQLEnum(ParsingStatus, values_callable=_enum_values),
        default=ParsingStatus.PENDING,
        nullable=False,
        index=True,
    )
    parsing_progress = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    brand = relationship("Brand", back_populates="documents")


class Claim(Base):
    """Clinical claim available for citation in generated content."""

    __tablename__ = "claims"

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    source_document_id = Column(
        Integer, ForeignKey("brand_documents.id", ondelete="SET NULL"), nullable=True, index=True
    )
    claim_id_display = Column(String(50), nullable=False, index=True)  # e.g. CML-0001
    claim_text = Column(Text, nullable=False)
    claim_type = Column(String(100), nullable=False)  # efficacy, safety, indication, ...
    source_section = Column(String(255), nullable=True)
    review_status = Column(
        SQLEnum(ReviewStatus, values_callable=_enum_values), default=ReviewStatus.PENDING, nullable=False
    )
    regulatory_status = Column(String(100), nullable=True)
    confidence_score = Column(Float, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    brand = relationship("Brand", back_populates="claims")


class ContentModule(Base):
    """Reusable, MLR-approvable block of copy."""

    __tablename__ = "content_modules"

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    module_type = Column(String(100), nullable=False)  # headline, body, safety, cta, ...
    module_text = Column(Text, nullable=False)
    tone_variant = Column(String(100), nullable=True)
    length_variant = Column(String(50), nullable=True)
    linked_claims = Column(JSON, nullable=True)  # list of claim_id_display values
    mlr_approved = Column(Boolean, default=False, nullable=False)
    mlr_approved_at = Column(DateTime(timezone=True), nullable=True)
    usage_score = Column(Float, default=0.0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    brand = relationship("Brand", back_populates="content_modules")


class Theme(Base):
    """Saved campaign theme in the brand theme library."""

    __tablename__ = "themes"

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    key_message = Column(Text, nullable=False)
    call_to_action = Column(String(255), nullable=True)
    tone = Column(String(100), default="professional", nullable=False)
    category = Column(String(100), default="campaign", nullable=False)
    status = Column(String(50), default="draft", nullable=False)
    performance_prediction = Column(JSON, nullable=True)
    rationale = Column(Text, nullable=True)
    best_for_assets = Column(JSON, nullable=True)
    supporting_claims = Column(JSON, nullable=True)
    confidence_score = Column(Float, default=0.0, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    brand = relationship("Brand", back_populates="themes")


class ContentElementPerformance(Base):
    """Aggregated performance of one content element value (e.g. tone=empathetic)."""

    __tablename__ = "content_element_performance"

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    element_type = Column(String(100), nullable=False, index=True)  # tone, cta_type, complexity
    element_value = Column(String(255), nullable=False)
    avg_performance_score = Column(Float, default=0.0, nullable=False)
    avg_engagement_rate = Column(Float, nullable=True)
    avg_conversion_rate = Column(Float, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)
    top_performing_audience = Column(String(255), nullable=True)
    top_performing_channel = Column(String(255), nullable=True)
    last_calculated = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    brand = relationship("Brand", back_populates="element_performance")


class PerformanceAttribution(Base):
    """One measured engagement result attributed to an audience segment and date."""

    __tablename__ = "performance_attribution"

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    audience_segment = Column(String(255), nullable=True, index=True)
    engagement_rate = Column(Float, nullable=True)
    measurement_date = Column(Date, nullable=False, index=True)
    source_system = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    brand = relationship("Brand", back_populates="attributions")


class SuccessPattern(Base):
    """Content success pattern discovered from performance data."""

    __tablename__ = "success_patterns"
    __table_args__ = (UniqueConstraint("brand_id", "pattern_name", name="uq_success_pattern_brand_name"),)

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    pattern_name = Column(String(255), nullable=False)
    pattern_type = Column(String(100), nullable=False)  # element_combination, audience_match, temporal
    pattern_description = Column(Text, nullable=True)
    pattern_rules = Column(JSON, nullable=False)
    sample_size = Column(Integer, default=0, nullable=False)
    avg_performance_lift = Column(Float, default=0.0, nullable=False)
    confidence_score = Column(Float, default=0.0, nullable=False)
    applicable_audiences = Column(JSON, nullable=True)
    applicable_channels = Column(JSON, nullable=True)
    therapeutic_context = Column(String(255), nullable=True)
    validation_status = Column(
        SQLEnum(ValidationStatus, values_callable=_enum_values),
        default=ValidationStatus.DISCOVERED,
        nullable=False,
    )
    retired_at = Column(DateTime(timezone=True), nullable=True)
    retirement_reason = Column(Text, nullable=True)
    discovered_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    brand = relationship("Brand", back_populates="success_patterns")


class TranslationMemoryEntry(Base):
    """Approved source/target segment pair reused across localization work."""

    __tablename__ = "translation_memory"

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(
        Integer, ForeignKey("localization_projects.id", ondelete="SET NULL"), nullable=True, index=True
    )
    source_text = Column(Text, nullable=False)
    target_text = Column(Text, nullable=False)
    source_language = Column(String(20), nullable=False, index=True)
    target_language = Column(String(20), nullable=False, index=True)
    domain_context = Column(String(255), nullable=True)
    market = Column(String(100), nullable=True)
    match_type = Column(String(50), default="exact", nullable=False)
    quality_score = Column(Float, default=0.8, nullable=False)
    confidence_level = Column(Float, default=0.85, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)
    last_used = Column(DateTime(timezone=True), nullable=True)
    cultural_adaptations = Column(JSON, nullable=True)
    regulatory_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    brand = relationship("Brand", back_populates="tm_entries")


class LocalizationProject(Base):
    """Glocalization project adapting one source asset to several markets."""

    __tablename__ = "localization_projects"

    id = Column(Integer, primary_key=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    project_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    project_type = Column(String(100), default="localization", nullable=False)
    source_content_type = Column(String(100), nullable=False)  # email, brochure, website, ...
    source_content = Column(JSON, nullable=True)
    target_markets = Column(JSON, nullable=False)
    target_languages = Column(JSON, nullable=False)
    channels = Column(JSON, nullable=True)
    status = Column(
        SQLEnum(ProjectStatus, values_callable=_enum_values), default=ProjectStatus.DRAFT, nullable=False
    )
    priority_level = Column(String(50), default="medium", nullable=False)
    complexity = Column(JSON, nullable=True)
    regulatory_assessment = Column(JSON, nullable=True)
    estimated_timeline = Column(Integer, nullable=True)  # days
    total_budget = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    brand = relationship("Brand", back_populates="localization_projects")


class MLRAnalysisResult(Base):
    """Stored MLR readiness analysis, keyed by content hash for reuse."""

    __tablename__ = "mlr_analysis_results"

    id = Column(Integer, primary_key=True, index=True)
    content_asset_id = Column(String(255), nullable=True, index=True)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="SET NULL"), nullable=True, index=True)
    content_hash = Column(String(64), nullable=False, index=True)
    analysis_type = Column(String(50), default="readiness", nullable=False)
    results = Column(JSON, nullable=False)
    mlr_readiness_score = Column(Integer, nullable=True)
    critical_issues_count = Column(Integer, default=0, nullable=False)
    warnings_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class ContentValidationResult(Base):
    """Stored result of validating content against prescribing information."""

    __tablename__ = "content_validation_results"

    id = Column(Integer, primary_key=True, index=True)
    asset_id = Column(String(255), nullable=True, index=True)
    validation_type = Column(String(100), nullable=False)
    validation_data = Column(JSON, nullable=False)
    overall_status = Column(String(50), nullable=True)
    compliance_score = Column(Float, nullable=True)
    issues_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class DataSource(Base):
    """Registry entry for an external data feed (CRM, email platform, analytics)."""

    __tablename__ = "data_source_registry"

    id = Column(Integer, primary_key=True, index=True)
    source_system = Column(String(255), nullable=False)
    source_type = Column(String(100), nullable=False)
    api_endpoint = Column(String(1024), nullable=True)
    authentication_type = Column(String(100), nullable=True)
    sync_frequency = Column(String(100), nullable=True)
    sync_schedule = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    consecutive_failures = Column(Integer, default=0, nullable=False)
    last_successful_sync = Column(DateTime(timezone=True), nullable=True)
    last_failed_sync = Column(DateTime(timezone=True), nullable=True)
    expected_schema = Column(JSON, nullable=True)
    validation_rules = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
