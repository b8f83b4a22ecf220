"""Database and schema models for the Content Orchestrator."""
from app.models.database_models import (
    User,
    Brand,
    BrandDocument,
    Claim,
    ContentModule,
    Theme,
    ContentElementPerformance,
    PerformanceAttribution,
    SuccessPattern,
    TranslationMemoryEntry,
    LocalizationProject,
    MLRAnalysisResult,
    ContentValidationResult,
    DataSource,
    DocumentCategory,
    ParsingStatus,
    ProjectStatus,
    ReviewStatus,
    ValidationStatus,
)
from app.models.schemas import (
    BrandCreateRequest,
    BrandResponse,
    BrandDocumentResponse,
    BrandDocumentUploadResponse,
    ClaimResponse,
    ContentModuleResponse,
    ThemeResponse,
    LocalizationProjectResponse,
    TMEntryResponse,
    SuccessPatternResponse,
    DataSourceResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "User",
    "Brand",
    "BrandDocument",
    "Claim",
    "ContentModule",
    "Theme",
    "ContentElementPerformance",
    "PerformanceAttribution",
    "SuccessPattern",
    "TranslationMemoryEntry",
    "LocalizationProject",
    "MLRAnalysisResult",
    "ContentValidationResult",
    "DataSource",
    "DocumentCategory",
    "ParsingStatus",
    "ProjectStatus",
    "ReviewStatus",
    "ValidationStatus",
    # Pydantic schemas
    "BrandCreateRequest",
    "BrandResponse",
    "BrandDocumentResponse",
    "BrandDocumentUploadResponse",
    "ClaimResponse",
    "ContentModuleResponse",
    "ThemeResponse",
    "LocalizationProjectResponse",
    "TMEntryResponse",
    "SuccessPatternResponse",
    "DataSourceResponse",
    "HealthCheckResponse",
]
