"""Pydantic request/response schemas and stored payload types.

Defines the public contracts used by the FastAPI endpoints:
- Message / AgentName / AgentSelection: conversation and routing types.
- MediumArticleUpload / LinkedInPostUpload: ingestion inputs per content type.
- ArticleUploadResponse / PostUploadResponse: ingestion outputs.
- SelectAgentRequest, ChatRequest, RagTestRequest/RagTestResponse.

Also defines the payload stored with every vector point as a tagged union
discriminated on ``contentType``: ArticlePayload ("medium") and PostPayload
("linkedin").
"""
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator


class AgentName(str, Enum):
    """Routable agents."""
    LINKEDIN = "linkedin"
    RAG = "rag"


Role = Literal["user", "assistant", "system"]

_http_url = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    """Validate ``value`` as an http(s) URL but keep the caller's exact text."""
    try:
        _http_url.validate_python(value)
    except ValueError:
        raise ValueError("Invalid URL format")
    return value


WebUrl = Annotated[str, AfterValidator(_check_url)]


class Message(BaseModel):
    """One conversation turn."""
    role: Role
    content: str = Field(..., min_length=1)


class AgentSelection(BaseModel):
    """Routing decision extracted from a conversation.

    Attributes:
        agent: Agent that should handle the request.
        query: Refined, actionable version of the user's request (never empty).
    """
    agent: AgentName
    query: str

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("query must not be empty")
        return v


class SelectAgentRequest(BaseModel):
    """Request body for the agent selection endpoint."""
    messages: List[Message] = Field(..., min_length=1)


class ChatRequest(BaseModel):
    """Request body for the generation endpoint.

    Attributes:
        messages: Full conversation, oldest first.
        agent: Agent chosen by the selection endpoint.
        query: Refined query produced by the selection endpoint.
    """
    messages: List[Message] = Field(..., min_length=1)
    agent: AgentName
    query: str = Field(..., min_length=1)


class MediumArticleUpload(BaseModel):
    """Long-form article to be chunked, embedded and stored."""
    text: str = Field(..., min_length=1, description="Article text is required")
    title: str = Field(..., min_length=1, description="Article title is required")
    url: WebUrl
    author: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    language: str = "en"


class LinkedInPostUpload(BaseModel):
    """Short-form post stored as a single point (no chunking)."""
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1, description="Post text is required")
    author: str = Field(..., min_length=1)
    link: WebUrl
    date: str = Field(..., min_length=1)
    num_reactions: int = Field(default=0, ge=0, strict=True, alias="numReactions")


class ArticleUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    chunks_created: int = Field(..., alias="chunksCreated")
    chunks_uploaded: int = Field(..., alias="chunksUploaded")
    text_length: int = Field(..., alias="textLength")
    title: str


class PostUploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    text_length: int = Field(..., alias="textLength")
    author: str


class RagTestRequest(BaseModel):
    """Request body for the retrieval-only diagnostic endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., min_length=1)
    top_k: Optional[int] = Field(default=None, ge=1, le=100, alias="topK")
    collection: Optional[str] = None


class RagTestMatch(BaseModel):
    id: str
    score: float
    payload: Dict[str, Any]


class RagTestResponse(BaseModel):
    query: str
    collection: str
    matches: List[RagTestMatch]


class ArticlePayload(BaseModel):
    """Payload of one article chunk."""
    model_config = ConfigDict(populate_by_name=True)

    content_type: Literal["medium"] = Field(default="medium", alias="contentType")
    content: str
    source: str
    chunk_index: int = Field(..., alias="chunkIndex")
    title: str
    author: str
    date: str
    language: str = "en"
    url: str


class PostPayload(BaseModel):
    """Payload of one short social post."""
    model_config = ConfigDict(populate_by_name=True)

    content_type: Literal["linkedin"] = Field(default="linkedin", alias="contentType")
    content: str
    author: str
    url: str
    date: str
    likes: int = 0


Payload = Annotated[Union[ArticlePayload, PostPayload], Field(discriminator="content_type")]

_payload_adapter: TypeAdapter = TypeAdapter(Payload)


def parse_payload(data: Mapping[str, Any]) -> Union[ArticlePayload, PostPayload]:
    """Recover the typed payload variant from a stored mapping.

    Raises:
        pydantic.ValidationError: If ``contentType`` is missing/unknown or fields are invalid.
    """
    return _payload_adapter.validate_python(dict(data))
