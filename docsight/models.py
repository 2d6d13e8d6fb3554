# docsight/models.py
from pydantic import BaseModel, Field, validator
from typing import Any, Dict, List, Optional


# ============================================================
# ANALYSIS
# ============================================================

class SummaryField(BaseModel):
    text: str = ""
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    needs_review: bool = False
    reasoning: Optional[str] = None


class TopicsField(BaseModel):
    items: List[str] = []
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    needs_review: bool = False
    reasoning: Optional[str] = None


class Entity(BaseModel):
    name: str
    type: str = "entity"
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)


class EntitiesField(BaseModel):
    items: List[Entity] = []
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    needs_review: bool = False
    reasoning: Optional[str] = None


class SentimentField(BaseModel):
    value: str = "neutral"
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    needs_review: bool = False
    indicators: List[str] = []


class Analysis(BaseModel):
    """LLM analysis of a document; every field carries a confidence score."""
    summary: SummaryField = Field(default_factory=SummaryField)
    topics: TopicsField = Field(default_factory=TopicsField)
    entities: EntitiesField = Field(default_factory=EntitiesField)
    sentiment: SentimentField = Field(default_factory=SentimentField)
    overall_confidence: float = Field(0.0, ge=0.0, le=1.0)


class TextExcerpt(BaseModel):
    type: str
    label: str
    text: str
    highlight: str


# ============================================================
# CONCEPT GRAPHS
# ============================================================

class ConceptNode(BaseModel):
    id: str
    name: str
    type: str = "supporting"
    definition: str = ""


class ConceptEdge(BaseModel):
    source: str
    target: str
    type: str = "related"
    description: str = ""
    evidence: str = ""


class ConceptGraph(BaseModel):
    nodes: List[ConceptNode] = []
    edges: List[ConceptEdge] = []


# ============================================================
# DOCUMENTS
# ============================================================

class DocumentRecord(BaseModel):
    """The persisted document entity."""
    id: str
    filename: str
    size: int = 0
    upload_date: str
    source_type: str = "upload"
    url: Optional[str] = None
    status: str = "pending_validation"
    analysis: Analysis = Field(default_factory=Analysis)
    questions: List[str] = []
    human_reviewed: bool = False
    text_excerpts: List[TextExcerpt] = []
    content: str = ""
    metadata: Optional[Dict[str, Any]] = None
    concept_graph: Optional[ConceptGraph] = None
    chunks_indexed: int = 0
    user_comments: str = ""
    question_answers: Dict[str, str] = {}
    validated_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DocumentSummary(BaseModel):
    """Document listing entry, without the full text and metadata."""
    id: str
    filename: str
    size: int
    upload_date: str
    source_type: str
    status: str
    human_reviewed: bool
    summary: str
    topics: List[str]
    overall_confidence: float
    chunks_indexed: int


class UploadResponse(BaseModel):
    success: bool = True
    status: str
    requires_review: bool
    document: DocumentRecord
    next_steps: List[str] = []


class ListDocumentsResponse(BaseModel):
    success: bool = True
    documents: List[DocumentSummary]
    total: int


class SearchDocumentsResponse(ListDocumentsResponse):
    query: Optional[str] = None


class DocumentResponse(BaseModel):
    success: bool = True
    document: DocumentRecord
    message: Optional[str] = None


class UpdateAnalysisRequest(BaseModel):
    analysis: Analysis
    human_reviewed: bool = False


class DeleteDocumentResponse(BaseModel):
    success: bool
    document_id: str
    message: str


class TopicCount(BaseModel):
    topic: str
    count: int


class DocumentStats(BaseModel):
    total_documents: int
    pending_validation: int
    processed: int
    human_reviewed: int
    popular_topics: List[TopicCount]
    average_confidence: float
    storage: Dict[str, Any]


class StatsResponse(BaseModel):
    success: bool = True
    stats: DocumentStats


class HealthResponse(BaseModel):
    status: str
    total_documents: int
    total_chunks: int
    total_vectors: int
    llm: Dict[str, bool]
    vector_backend: str


# ============================================================
# AI
# ============================================================

class AskRequest(BaseModel):
    question: str = Field(..., min_length=3, max_length=2000)
    document_id: Optional[str] = None
    mode: str = "single"

    @validator("question")
    def validate_question(cls, v):
        if not v.strip():
            raise ValueError("Question cannot be empty or only whitespace")
        return v.strip()

    @validator("mode")
    def validate_mode(cls, v):
        if v not in ("single", "all"):
            raise ValueError("mode must be 'single' or 'all'")
        return v


class AskResponse(BaseModel):
    answer: str
    document_id: Optional[str] = None
    confidence_score: float = Field(..., ge=0.0, le=1.0)
    refused: bool
    sources_used: int
    reasoning: Optional[str] = None


class InsightsRequest(BaseModel):
    document_id: Optional[str] = None
    analysis: Optional[Analysis] = None


class ClarifyRequest(BaseModel):
    text: str = Field(..., min_length=1)
    context: Optional[str] = None


class ExplainRequest(BaseModel):
    section: str = Field(..., min_length=1)


class SectionExplainRequest(BaseModel):
    document_id: str
    section_title: str = Field(..., min_length=1)
    section_text: str = Field(..., min_length=1)


class TextRequest(BaseModel):
    text: Optional[str] = None
    document_id: Optional[str] = None


class DocumentRequest(BaseModel):
    document_id: str = Field(..., min_length=1)


class ReasoningChainRequest(BaseModel):
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    document_id: Optional[str] = None
    graph: Optional[ConceptGraph] = None


class ReasoningStep(BaseModel):
    source: str
    target: str
    relationship: str


class ReasoningChainResponse(BaseModel):
    found: bool
    path: List[str]
    steps: List[ReasoningStep]
    message: str


# ============================================================
# VALIDATION
# ============================================================

class ValidationUpdateRequest(BaseModel):
    summary: Optional[SummaryField] = None
    topics: Optional[TopicsField] = None
    entities: Optional[EntitiesField] = None
    sentiment: Optional[SentimentField] = None
    question_answers: Dict[str, str] = {}
    user_comments: str = ""


class PendingDocument(BaseModel):
    id: str
    filename: str
    status: str
    created_at: Optional[str]
    questions_count: int
    confidence_issues: List[str]


class QueueQuestionsRequest(BaseModel):
    questions: List[str] = Field(..., min_items=1)
    priority: str = "medium"

    @validator("priority")
    def validate_priority(cls, v):
        if v not in ("high", "medium", "low"):
            raise ValueError("priority must be high, medium or low")
        return v


class QueueItem(BaseModel):
    id: str
    document_id: str
    questions: List[str]
    priority: str
    status: str = "pending"
    answers: Dict[str, str] = {}
    created_at: str
    answered_at: Optional[str] = None


class AnswerQueueRequest(BaseModel):
    answers: Dict[str, str]


# ============================================================
# MIND MAPS
# ============================================================

class CategorizeRequest(BaseModel):
    document_ids: List[str] = Field(..., min_items=1)


class AnalyzeFactorRequest(BaseModel):
    concept: Dict[str, Any]
    factor_key: str
    factor_value: Any = None
    category: str
    relationships: List[Dict[str, Any]] = []
    all_concepts: List[Dict[str, Any]] = []


# ============================================================
# WEB
# ============================================================

class WebAnalyzeRequest(BaseModel):
    url: str = Field(..., min_length=8)
    save_to_history: bool = False

    @validator("url")
    def validate_url(cls, v):
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v


class MetadataQueryRequest(BaseModel):
    query: str = Field(..., min_length=1)
    limit: int = Field(5, ge=1, le=50)
