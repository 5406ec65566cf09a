from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ColumnInfo(ApiModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    type: str = "string"  # "number" or "string"


class SummaryStats(ApiModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None
    median: Optional[float] = None
    std_dev: Optional[float] = Field(None, alias="stdDev")
    unique_count: Optional[int] = Field(None, alias="uniqueCount")
    null_count: int = Field(0, alias="nullCount")
    total_count: int = Field(0, alias="totalCount")

    @property
    def is_numeric(self) -> bool:
        return self.mean is not None


class ChartSpec(ApiModel):
    type: str = ""
    title: str = ""
    x: str = ""
    y: str = ""
    y2: str = ""
    z: str = ""
    category: str = ""
    value: str = ""
    group_by: str = Field("", alias="groupBy")
    stacked: bool = False
    aggregate: str = ""
    bins: int = 0
    columns: List[str] = Field(default_factory=list)
    data: Optional[List[Dict[str, Any]]] = None

    @field_validator(
        "type", "title", "x", "y", "y2", "z", "category", "value", "group_by", "aggregate",
        mode="before",
    )
    @classmethod
    def _null_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("stacked", mode="before")
    @classmethod
    def _null_to_false(cls, v):
        return False if v is None else v

    @field_validator("bins", mode="before")
    @classmethod
    def _null_to_zero(cls, v):
        return 0 if v is None else v

    @field_validator("columns", mode="before")
    @classmethod
    def _null_to_list(cls, v):
        return [] if v is None else v


class UploadResponse(ApiModel):
    file_id: str = Field(..., alias="fileId")
    file_name: Optional[str] = Field(None, alias="fileName")
    columns: List[ColumnInfo]
    summary: Dict[str, SummaryStats]


class AnalyzeRequest(ApiModel):
    file_id: str = Field("", alias="fileId")
    prompt: str = ""


class AnalyzeResponse(ApiModel):
    insights: str
    charts: List[ChartSpec] = Field(default_factory=list)
    chart_status: Optional[str] = Field(None, alias="chartStatus")
    chart_message: Optional[str] = Field(None, alias="chartMessage")
    retry_attempts: Optional[int] = Field(None, alias="retryAttempts")


class SuggestionsRequest(ApiModel):
    file_id: str = Field("", alias="fileId")
    columns: List[ColumnInfo] = Field(default_factory=list)
    summary: Dict[str, SummaryStats] = Field(default_factory=dict)


class ChatMessage(ApiModel):
    role: str
    content: str


class ContextualSuggestionsRequest(ApiModel):
    file_id: str = Field("", alias="fileId")
    recent_chats: List[ChatMessage] = Field(default_factory=list, alias="recentChats")


class SuggestionsResponse(ApiModel):
    suggestions: List[str]


class DatasetSummary(ApiModel):
    id: str
    name: Optional[str] = None
    columns: List[str]
    row_count: int = Field(0, alias="rowCount")


class ErrorResponse(ApiModel):
    error: str
    request_id: Optional[str] = Field(None, alias="requestId")
    status: Optional[int] = None
    type: Optional[str] = None
