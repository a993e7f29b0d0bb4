from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from observability.diagnostics import ResponseDiagnostic


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueryWithContextRequest(CamelModel):
    """
    API request for a context-augmented query.

    This is the external contract: clients send this.
    """
    prompt: str = Field(..., min_length=1, description="User's natural-language question")
    data_source_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("dataSourceId", "databaseConnectionId", "data_source_id"),
        description="Logical data source to pull context from",
    )
    model: Optional[str] = Field(default=None, description="Provider model name")
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, gt=0)


class CrossValidationVerdict(CamelModel):
    """
    Verdict returned by the cross-validation service.

    Every field is optional; the service may omit what it could not score.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    hallucinations_detected: Optional[bool] = None
    supported_claims: Optional[int] = Field(default=None, ge=0)
    total_claims: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _supported_within_total(self) -> "CrossValidationVerdict":
        if (
            self.supported_claims is not None
            and self.total_claims is not None
            and self.supported_claims > self.total_claims
        ):
            raise ValueError("supportedClaims cannot exceed totalClaims")
        return self


class CrossValidationRequest(CamelModel):
    """Body POSTed to the cross-validation service."""
    prompt: str
    response: str
    data_source_id: str
    tokens_used: int = Field(..., ge=0)
    cost_usd: float = Field(..., ge=0.0)
    latency_ms: int = Field(..., ge=0)
    provider: str


class QueryWithContextResponse(CamelModel):
    """
    API response for a context-augmented query.

    Verdict fields are None when cross-validation was unavailable;
    verification_available says which case applies.
    """

    # --- Payload ---
    response: str = Field(..., description="AI answer text")
    success: bool = Field(default=True)
    context: str = Field(default="", description="Context block actually sent to the provider")

    # --- Verdict (cross-validation) ---
    confidence_score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    hallucinations_detected: Optional[bool] = None
    supported_claims: Optional[int] = Field(default=None, ge=0)
    total_claims: Optional[int] = Field(default=None, ge=0)
    verification_available: bool = Field(default=False)

    # --- Trace metrics ---
    trace_id: str = Field(..., description="Trace ID for observability")
    tokens_used: int = Field(default=0, ge=0)
    cost_usd: float = Field(default=0.0, ge=0.0)
    latency_ms: int = Field(default=0, ge=0)
    provider: str = Field(default="unknown")

    # --- Advisory diagnostics ---
    diagnostic: ResponseDiagnostic = Field(default=ResponseDiagnostic.OK)
    diagnostic_hint: Optional[str] = None
