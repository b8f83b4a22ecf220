"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any, Literal
from datetime import date, datetime

from app.models.database_models import (
    DocumentCategory,
    ParsingStatus,
    ProjectStatus,
    ReviewStatus,
    ValidationStatus,
)


# Brand Schemas
class BrandCreateRequest(BaseModel):
    """Schema for creating a new brand."""

    brand_name: str = Field(..., min_length=1, max_length=255)
    company: str = Field(..., min_length=1, max_length=255)
    therapeutic_area: str = Field(..., min_length=1, max_length=255)
    indication: Optional[str] = None
    fda_indication: Optional[str] = None
    primary_color: str = "#1F3A93"
    secondary_color: str = "#FFFFFF"
    accent_color: str = "#00A19A"
    font_family: Optional[str] = None
    logo_url: Optional[str] = None
    guidelines: Optional[Dict[str, Any]] = None


class BrandUpdateRequest(BaseModel):
    """Partial brand update; omitted fields are left unchanged."""

    brand_name: Optional[str] = Field(None, min_length=1, max_length=255)
    company: Optional[str] = Field(None, min_length=1, max_length=255)
    therapeutic_area: Optional[str] = Field(None, min_length=1, max_length=255)
    indication: Optional[str] = None
    fda_indication: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    accent_color: Optional[str] = None
    font_family: Optional[str] = None
    logo_url: Optional[str] = None
    guidelines: Optional[Dict[str, Any]] = None


class BrandResponse(BaseModel):
    """Schema for brand responses."""

    id: int
    brand_name: str
    company: str
    therapeutic_area: str
    indication: Optional[str] = None
    fda_indication: Optional[str] = None
    primary_color: str
    secondary_color: str
    accent_color: str
    font_family: Optional[str] = None
    logo_url: Optional[str] = None
    guidelines: Optional[Dict[str, Any]] = None
    document_count: int = 0
    claim_count: int = 0
    theme_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Brand Document Schemas
class BrandDocumentUploadResponse(BaseModel):
    """Schema for document upload response."""

    id: int
    document_title: str
    document_category: DocumentCategory
    document_type: str
    parsing_status: ParsingStatus
    page_count: Optional[int] = None
    word_count: int = 0
    message: str


class BrandDocumentResponse(BaseModel):
    """Schema for brand document list/detail responses."""

    id: int
    brand_id: int
    document_title: str
    document_category: DocumentCategory
    document_type: str
    drug_name: Optional[str] = None
    original_filename: str
    file_size_bytes: Optional[int] = None
    page_count: Optional[int] = None
    version: Optional[str] = None
    parsing_status: ParsingStatus
    parsing_progress: int = 0
    error_message: Optional[str] = None
    parsed_data: Optional[Dict[str, Any]] = None
    extraction_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DocumentProcessResponse(BaseModel):
    """Result of AI structuring a brand document."""

    success: bool
    message: str
    document_id: int
    parsing_status: ParsingStatus
    sections_extracted: int = 0
    total_content_length: int = 0
    processing_time_seconds: int = 0
    claims_created: int = 0
    error: Optional[str] = None


# Claim Schemas
class ClaimCreateRequest(BaseModel):
    """Schema for adding a claim to the brand claim library."""

    claim_text: str = Field(..., min_length=1)
    claim_type: str = Field("efficacy", min_length=1, max_length=100)
    source_document_id: Optional[int] = None
    source_section: Optional[str] = None
    regulatory_status: Optional[str] = None
    confidence_score: Optional[float] = Field(None, ge=0.0, le=1.0)


class ClaimUpdateRequest(BaseModel):
    """Partial claim update."""

    claim_text: Optional[str] = Field(None, min_length=1)
    claim_type: Optional[str] = None
    review_status: Optional[ReviewStatus] = None
    regulatory_status: Optional[str] = None


class ClaimResponse(BaseModel):
    """Schema for claim responses."""

    id: int
    brand_id: int
    source_document_id: Optional[int] = None
    claim_id_display: str
    claim_text: str
    claim_type: str
    source_section: Optional[str] = None
    review_status: ReviewStatus
    regulatory_status: Optional[str] = None
    confidence_score: Optional[float] = None
    usage_count: int = 0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContentModuleCreateRequest(BaseModel):
    """Schema for creating a content module."""

    module_type: str = Field(..., min_length=1, max_length=100)
    module_text: str = Field(..., min_length=1)
    tone_variant: Optional[str] = None
    length_variant: Optional[str] = None
    linked_claims: List[str] = []


class ContentModuleUpdateRequest(BaseModel):
    """Partial content module update."""

    module_text: Optional[str] = Field(None, min_length=1)
    tone_variant: Optional[str] = None
    length_variant: Optional[str] = None
    linked_claims: Optional[List[str]] = None
    mlr_approved: Optional[bool] = None


class ContentModuleResponse(BaseModel):
    """Schema for content module responses."""

    id: int
    brand_id: int
    module_type: str
    module_text: str
    tone_variant: Optional[str] = None
    length_variant: Optional[str] = None
    linked_claims: Optional[List[str]] = None
    mlr_approved: bool = False
    mlr_approved_at: Optional[datetime] = None
    usage_score: float = 0.0
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Claims Validation Schemas
class ClaimValidationRequest(BaseModel):
    """Content to scan for promotional claims."""

    content: str
    asset_type: str = "Email"
    region: str = "US"
    target_audience: str = "HCP"
    mode: Literal["full", "realtime"] = "full"


class DetectedClaimSchema(BaseModel):
    """A promotional claim found in content."""

    id: str
    text: str
    type: str
    severity: str
    reason: str
    suggestion: str
    start: int
    end: int
    context: str
    required_evidence: List[str]
    category: str
    is_overridden: bool = False
    override_reason: Optional[str] = None
    confidence: float
    brand_compliance: str


class ClaimValidationSummary(BaseModel):
    valid: int
    warnings: int
    failures: int


class ClaimHighlight(BaseModel):
    id: str
    start: int
    end: int
    type: str
    severity: str
    message: str


class ClaimValidationResponse(BaseModel):
    """Claims found in content, ranked by risk."""

    claims: List[DetectedClaimSchema]
    summary: Optional[ClaimValidationSummary] = None
    highlights: Optional[List[ClaimHighlight]] = None


# MLR Schemas
class MLRReadinessRequest(BaseModel):
    """Content submitted for a pre-MLR readiness check."""

    content: str = Field(..., min_length=1)
    content_asset_id: Optional[str] = None
    brand_id: Optional[int] = None
    asset_type: str = "Email"
    region: str = "US"


class PIValidationRequest(BaseModel):
    """Content to validate against linked prescribing information documents."""

    content: str = Field(..., min_length=1)
    linked_pi_ids: List[int] = []
    asset_id: Optional[str] = None
    brand_id: Optional[int] = None


class MLRAnalysisResultResponse(BaseModel):
    """Stored MLR analysis row."""

    id: int
    content_asset_id: Optional[str] = None
    brand_id: Optional[int] = None
    content_hash: str
    analysis_type: str
    mlr_readiness_score: Optional[int] = None
    critical_issues_count: int = 0
    warnings_count: int = 0
    results: Dict[str, Any]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Theme Schemas
class StoryContext(BaseModel):
    """Story analysis that theme generation builds on."""

    occasion_type: Optional[str] = None
    occasion_name: Optional[str] = None
    audience_type: str = "HCP"
    audience_segments: List[str] = []
    activities: List[str] = []
    region: Optional[str] = None
    primary_goal: Optional[str] = None


class ThemeGenerateRequest(BaseModel):
    story: StoryContext = StoryContext()
    save: bool = False


class PerformancePrediction(BaseModel):
    engagement_rate: float = 25
    confidence: float = 75
    basis: str = "Based on similar campaigns"


class GeneratedTheme(BaseModel):
    """Theme option returned by the theme generator."""

    name: str
    key_message: str
    tone: str = "professional"
    cta: str = "Learn more"
    performance_prediction: PerformancePrediction = PerformancePrediction()
    best_for_assets: List[str] = []
    supporting_claims: List[str] = []
    rationale: str = "Theme aligns with audience preferences"


class ThemeGenerateResponse(BaseModel):
    themes: List[GeneratedTheme]
    fallback_used: bool = False
    saved_theme_ids: List[int] = []


class ThemeCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    key_message: str = Field(..., min_length=1)
    description: Optional[str] = None
    call_to_action: Optional[str] = None
    tone: str = "professional"
    category: str = "campaign"
    performance_prediction: Optional[Dict[str, Any]] = None
    rationale: Optional[str] = None
    best_for_assets: List[str] = []
    supporting_claims: List[str] = []
    confidence_score: float = Field(0.0, ge=0.0, le=100.0)


class ThemeUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    key_message: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    call_to_action: Optional[str] = None
    tone: Optional[str] = None
    status: Optional[str] = None
    rationale: Optional[str] = None


class ThemeResponse(BaseModel):
    id: int
    brand_id: int
    name: str
    description: Optional[str] = None
    key_message: str
    call_to_action: Optional[str] = None
    tone: str
    category: str
    status: str
    performance_prediction: Optional[Dict[str, Any]] = None
    rationale: Optional[str] = None
    best_for_assets: Optional[List[str]] = None
    supporting_claims: Optional[List[str]] = None
    confidence_score: float = 0.0
    usage_count: int = 0
    version: int = 1
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Workshop Schemas
class InitialContentRequest(BaseModel):
    """Inputs for first-draft content generation."""

    asset_type: str = "email"
    target_audience: str = "Physician-PrimaryCare"
    objective: str = "Raise awareness"
    theme_id: Optional[int] = None
    core_message: Optional[str] = None
    key_benefits: List[str] = []
    call_to_action: Optional[str] = None
    indication: Optional[str] = None


class InitialContentResponse(BaseModel):
    content: Dict[str, Any]
    sophistication_level: str
    citations_used: List[str] = []
    used_claims: List[ClaimResponse] = []
    forbidden_terms_found: List[str] = []
    fallback_used: bool = False


class BriefEnhanceRequest(BaseModel):
    """Raw creative brief to be enriched."""

    brief: str = Field(..., min_length=1)
    asset_type: Optional[str] = None
    target_audience: Optional[str] = None
    channels: List[str] = []


class EnhancedBrief(BaseModel):
    objective: str
    key_messages: List[str] = []
    audience_insights: List[str] = []
    proof_points: List[str] = []
    tone: str = "professional"
    mandatories: List[str] = []
    channel_recommendations: List[str] = []
    summary: str = ""


class MarketingVisualRequest(BaseModel):
    prompt: str
    frame_number: Optional[int] = None


class MarketingVisualResponse(BaseModel):
    image_url: str
    frame_number: Optional[int] = None


class TranslationRequest(BaseModel):
    """AI translation request, optionally leveraging the brand translation memory."""

    source_text: str = Field(..., min_length=1)
    source_language: str = Field(..., min_length=2)
    target_language: str = Field(..., min_length=2)
    therapeutic_area: Optional[str] = None
    use_tm_leverage: bool = True
    save_to_tm: bool = False
    project_id: Optional[int] = None


class WordBreakdown(BaseModel):
    word: str
    type: Literal["exact", "fuzzy", "new"]
    tm_entry_id: Optional[int] = None
    match_score: Optional[int] = None
    tm_source_text: Optional[str] = None


class AIScores(BaseModel):
    medical: float
    brand: float
    cultural: float
    reasoning: List[str]


class TMStats(BaseModel):
    exact_words: int
    fuzzy_words: int
    new_words: int
    total_words: int
    leverage_percentage: float


class TranslationResponse(BaseModel):
    translated_text: str
    full_analysis: str
    word_level_breakdown: List[WordBreakdown]
    ai_scores: AIScores
    review_flags: List[str]
    tm_stats: TMStats
    tm_entry_id: Optional[int] = None


# Localization Schemas
class ComplexityRequest(BaseModel):
    """Content and market scope to score for localization complexity."""

    content: Any
    target_markets: List[str] = []
    target_languages: List[str] = []
    asset_type: str = "email"
    channels: List[str] = []


class RegulatoryRiskRequest(BaseModel):
    content: Any
    target_markets: List[str] = Field(..., min_length=1)
    target_languages: List[str] = Field(..., min_length=1)
    asset_type: str = "email"
    therapeutic_area: str = "general"


class LocalizationProjectCreateRequest(BaseModel):
    project_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    project_type: str = "localization"
    source_content_type: str = "email"
    source_content: Any = None
    target_markets: List[str] = Field(..., min_length=1)
    target_languages: List[str] = Field(..., min_length=1)
    channels: List[str] = []
    priority_level: str = "medium"


class LocalizationProjectUpdateRequest(BaseModel):
    project_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority_level: Optional[str] = None
    source_content: Any = None
    target_markets: Optional[List[str]] = None
    target_languages: Optional[List[str]] = None


class LocalizationProjectResponse(BaseModel):
    id: int
    brand_id: int
    project_name: str
    description: Optional[str] = None
    project_type: str
    source_content_type: str
    source_content: Any = None
    target_markets: List[str]
    target_languages: List[str]
    channels: Optional[List[str]] = None
    status: ProjectStatus
    priority_level: str
    complexity: Optional[Dict[str, Any]] = None
    regulatory_assessment: Optional[Dict[str, Any]] = None
    estimated_timeline: Optional[int] = None
    total_budget: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Translation Memory Schemas
class TMEntryCreateRequest(BaseModel):
    source_text: str = Field(..., min_length=1)
    target_text: str = Field(..., min_length=1)
    source_language: str = Field(..., min_length=2)
    target_language: str = Field(..., min_length=2)
    domain_context: Optional[str] = None
    market: Optional[str] = None
    project_id: Optional[int] = None


class TMEntryResponse(BaseModel):
    id: int
    brand_id: int
    project_id: Optional[int] = None
    source_text: str
    target_text: str
    source_language: str
    target_language: str
    domain_context: Optional[str] = None
    market: Optional[str] = None
    match_type: str
    quality_score: float
    confidence_level: Optional[float] = None
    usage_count: int = 0
    last_used: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TMSearchRequest(BaseModel):
    source_text: str = Field(..., min_length=1)
    source_language: str
    target_language: str
    min_match_percentage: Optional[int] = Field(None, ge=0, le=100)
    max_results: Optional[int] = Field(None, ge=1, le=100)
    include_fuzzy: bool = True
    include_semantic: bool = True
    domain_filter: Optional[str] = None
    quality_threshold: Optional[float] = Field(None, ge=0.0, le=1.0)


class TMBestMatchesRequest(BaseModel):
    source_texts: List[str] = Field(..., min_length=1)
    source_language: str
    target_language: str


# Success Pattern Schemas
class ElementPerformanceIn(BaseModel):
    element_type: str = Field(..., min_length=1)
    element_value: str = Field(..., min_length=1)
    avg_performance_score: float
    usage_count: int = Field(0, ge=0)
    avg_engagement_rate: Optional[float] = None
    avg_conversion_rate: Optional[float] = None


class AttributionIn(BaseModel):
    audience_segment: Optional[str] = None
    engagement_rate: Optional[float] = None
    measurement_date: date
    source_system: Optional[str] = None


class PerformanceIngestRequest(BaseModel):
    elements: List[ElementPerformanceIn] = []
    attributions: List[AttributionIn] = []


class PerformanceIngestResponse(BaseModel):
    elements_stored: int
    attributions_stored: int


class SuccessPatternResponse(BaseModel):
    id: int
    brand_id: int
    pattern_name: str
    pattern_type: str
    pattern_description: Optional[str] = None
    pattern_rules: Dict[str, Any]
    sample_size: int
    avg_performance_lift: float
    confidence_score: float
    applicable_audiences: Optional[List[str]] = None
    applicable_channels: Optional[List[str]] = None
    therapeutic_context: Optional[str] = None
    validation_status: ValidationStatus
    retired_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PatternDetectionResponse(BaseModel):
    detected: int
    element_combination: int
    audience_match: int
    temporal: int
    patterns: List[SuccessPatternResponse]


class PatternRetireRequest(BaseModel):
    reason: Optional[str] = None


# ROI Schemas
class ROICalculateRequest(BaseModel):
    """Calculator inputs; anything omitted comes from the scenario defaults."""

    scenario: Literal["base", "conservative", "aggressive"] = "base"
    inputs: Dict[str, float] = {}


# Export Schemas
class ProjectPlanExportRequest(BaseModel):
    brand_id: int
    project_id: int
    start_date: Optional[date] = None


# Data Source Schemas
class DataSourceCreateRequest(BaseModel):
    source_system: str = Field(..., min_length=1, max_length=255)
    source_type: str = Field(..., min_length=1, max_length=100)
    api_endpoint: Optional[str] = None
    authentication_type: Optional[str] = None
    sync_frequency: Optional[str] = None
    sync_schedule: Optional[Dict[str, Any]] = None
    expected_schema: Optional[Dict[str, Any]] = None
    validation_rules: Optional[Dict[str, Any]] = None
    is_active: bool = True


class DataSourceUpdateRequest(BaseModel):
    api_endpoint: Optional[str] = None
    authentication_type: Optional[str] = None
    sync_frequency: Optional[str] = None
    sync_schedule: Optional[Dict[str, Any]] = None
    expected_schema: Optional[Dict[str, Any]] = None
    validation_rules: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class SyncResultRequest(BaseModel):
    success: bool
    message: Optional[str] = None


class DataSourceResponse(BaseModel):
    id: int
    source_system: str
    source_type: str
    api_endpoint: Optional[str] = None
    authentication_type: Optional[str] = None
    sync_frequency: Optional[str] = None
    sync_schedule: Optional[Dict[str, Any]] = None
    is_active: bool
    consecutive_failures: int
    last_successful_sync: Optional[datetime] = None
    last_failed_sync: Optional[datetime] = None
    expected_schema: Optional[Dict[str, Any]] = None
    validation_rules: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Dashboard Schemas
class BrandDashboardResponse(BaseModel):
    brand_id: int
    brand_name: str
    documents_by_status: Dict[str, int]
    documents_by_category: Dict[str, int]
    claims_by_review_status: Dict[str, int]
    modules_total: int
    modules_approved: int
    themes_total: int
    active_patterns: int
    tm_entries: int
    projects_by_status: Dict[str, int]
    latest_mlr_score: Optional[int] = None


# Health Check Schema
class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database: str
    ai_gateway: str
    timestamp: datetime
