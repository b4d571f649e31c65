"""Detection data structures: auth components and pipeline results."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

ComponentType = Literal["traditional", "oauth", "passwordless"]
DetectionMethod = Literal["ai", "pattern", "heuristic"]


class ComponentDetails(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    fields: list[str] = Field(default_factory=list)  # traditional
    providers: list[str] = Field(default_factory=list)  # oauth
    method: str = ""  # passwordless
    selector: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("selector", "playwrightSelector", "playwright_selector"),
    )

    @field_validator("providers", mode="before")
    @classmethod
    def normalize_providers(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [str(p).strip().lower() for p in v if str(p).strip()]

    @field_validator("fields", mode="before")
    @classmethod
    def normalize_fields(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [str(f).strip() for f in v if str(f).strip()]

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("selector", mode="before")
    @classmethod
    def blank_selector_is_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class AuthComponent(BaseModel):
    """A detected authentication affordance.

    Frozen: the snippet is attached once by the resolver through
    :meth:`with_snippet`, which returns a new instance.
    """

    model_config = ConfigDict(frozen=True)

    type: ComponentType
    details: ComponentDetails = Field(default_factory=ComponentDetails)
    snippet: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def lowercase_type(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    def with_snippet(self, snippet: str) -> AuthComponent:
        return self.model_copy(update={"snippet": snippet})

    @property
    def label(self) -> str:
        if self.type == "oauth":
            return f"OAuth: {', '.join(self.details.providers) or 'unknown provider'}"
        if self.type == "passwordless":
            return f"Passwordless ({self.details.method or 'unknown'})"
        return "Traditional login"


class AIDetectionResponse(BaseModel):
    """Validated shape of the inference service's answer."""

    found: bool = False
    components: list[AuthComponent] = Field(default_factory=list)


class OAuthButton(BaseModel):
    """Best-scoring control for one provider, from the heuristic scan."""

    model_config = ConfigDict(frozen=True)

    brand: str
    score: int
    html: str
    text: str = ""


class DetectionMetadata(BaseModel):
    has_traditional: bool = False
    has_oauth: bool = False
    brands: list[str] = Field(default_factory=list)
    count: int = 0  # scored elements kept above the threshold


class DetectionResult(BaseModel):
    success: bool = True
    url: str = ""
    found: bool = False
    components: list[AuthComponent] = Field(default_factory=list)
    detection_method: DetectionMethod = "pattern"
    message: Optional[str] = None
    error: Optional[str] = None
    html: Optional[str] = None  # combined widget snippet (offline strategy only)
    oauth_buttons: list[OAuthButton] = Field(default_factory=list)  # offline strategy only
    metadata: Optional[DetectionMetadata] = None  # offline strategy only

    @model_validator(mode="after")
    def found_matches_components(self) -> DetectionResult:
        self.found = len(self.components) > 0
        return self

    @classmethod
    def failure(cls, url: str, error: str, method: DetectionMethod = "pattern") -> DetectionResult:
        return cls(success=False, url=url, detection_method=method, error=error)
