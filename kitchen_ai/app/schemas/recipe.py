from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _lenient_number(value: object) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


class IngredientItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    amount: Optional[float] = 0
    unit: str = ""
    optional: Optional[bool] = None

    # Models sometimes answer "1/2" or "a pinch" despite the prompt
    @field_validator("amount", mode="before")
    @classmethod
    def _coerce_amount(cls, value: object) -> float:
        number = _lenient_number(value)
        return 0.0 if number is None else number


class RecipeResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    description: Optional[str] = None
    ingredients: list[IngredientItem] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    servings: Optional[float] = None
    prepTime: Optional[float] = None
    cookTime: Optional[float] = None
    difficulty: Optional[str] = None
    cuisine: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None
    confidence: float = 0.0

    @field_validator("servings", "prepTime", "cookTime", mode="before")
    @classmethod
    def _coerce_optional_number(cls, value: object) -> Optional[float]:
        return _lenient_number(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: object) -> float:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            return 0.0
        return min(1.0, max(0.0, float(value)))


class DetectedItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    estimatedAmount: float = 0
    unit: str = ""
    confidence: float = 0
    estimatedCalories: float = 0


class PortionAnalysis(BaseModel):
    model_config = ConfigDict(extra="ignore")

    detectedItems: list[DetectedItem] = Field(default_factory=list)
    suggestedServings: float = 0
    totalEstimatedCalories: float = 0
    recommendations: list[str] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "PortionAnalysis":
        return cls(
            detectedItems=[],
            suggestedServings=0,
            totalEstimatedCalories=0,
            recommendations=["Unable to analyze the image. Please try again with a clearer photo."],
        )


class SubstitutionSuggestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    originalIngredient: str
    substitute: str
    ratio: str = "1:1"
    notes: str = ""
    impactOnTaste: str = "minimal"


class SubstitutionResult(BaseModel):
    model_config = ConfigDict(extra="ignore")

    canMake: bool = False
    confidenceScore: float = 0
    missingIngredients: list[str] = Field(default_factory=list)
    availableIngredients: list[str] = Field(default_factory=list)
    substitutions: list[SubstitutionSuggestion] = Field(default_factory=list)
    modifiedInstructions: Optional[list[str]] = None
    tips: list[str] = Field(default_factory=list)


class ImageRecipe(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    ingredients: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    cuisine: Optional[str] = None
    estimatedTime: Optional[float] = None
