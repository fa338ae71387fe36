# kitchen_ai/app/services/extraction_pipeline.py
"""
Batch (non-streaming) extraction on top of the Gemini failover client.

Failure policy per operation:
    extract / extract_from_bundle / extract_from_text / extract_from_video
        {"error": ...} payload -> None, every other failure propagates.
    generate_recipe_from_image
        propagates (including MediaValidationError for a bad image).
    analyze_portion / analyze_substitutions / get_cooking_tips
        never raise for media, provider or parse failures; they return a sentinel.
    All operations
        GeminiConfigurationError always propagates, nothing is attempted.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from kitchen_ai.app.config import Settings, settings as default_settings
from kitchen_ai.app.domain.models import ContentBundle, ExtractionContext, MediaPart
from kitchen_ai.app.schemas.recipe import (
    ImageRecipe,
    IngredientItem,
    PortionAnalysis,
    RecipeResult,
    SubstitutionResult,
)
from kitchen_ai.services.errors import (
    ExtractionTimeoutError,
    GeminiConfigurationError,
    ResponseParseError,
    ServiceError,
)
from kitchen_ai.services.gemini_client import GeminiFailoverClient, GenerationRequest
from kitchen_ai.services.ingest import ContentBundleAssembler
from kitchen_ai.services.parsing import extract_json, is_no_recipe
from kitchen_ai.services.prompts import (
    build_cooking_tips_prompt,
    build_image_recipe_prompt,
    build_portion_prompt,
    build_recipe_prompt,
    build_substitution_prompt,
    build_text_recipe_prompt,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_COOKING_TIPS = ["Cook with love and patience!"]
SUBSTITUTION_FAILURE_TIP = "Unable to analyze ingredients. Please try again."
_TIPS_ADAPTER = TypeAdapter(list[str])


# =============================================================================
# Response parsing
# =============================================================================

def validate_payload(model_cls: Type[ModelT], payload: Any, raw_text: str) -> ModelT:
    try:
        return model_cls.model_validate(payload)
    except ValidationError as error:
        raise ResponseParseError(
            f"{model_cls.__name__} payload failed validation: {error.error_count()} error(s)",
            raw_text=raw_text,
        ) from error


def parse_recipe_response(text: str) -> RecipeResult | None:
    """
    Turn raw model text into a recipe.

    Returns None when the model answered with an explicit {"error": ...} payload.
    Raises ResponseParseError when the text is not a usable recipe object.
    """
    payload = extract_json(text)
    if is_no_recipe(payload):
        logger.info("Gemini found no recipe: %s", payload.get("error"))
        return None
    return validate_payload(RecipeResult, payload, text)


def apply_portion_defaults(analysis: PortionAnalysis) -> PortionAnalysis:
    if analysis.suggestedServings < 1:
        analysis.suggestedServings = 1
    if analysis.detectedItems and analysis.totalEstimatedCalories <= 0:
        analysis.totalEstimatedCalories = sum(item.estimatedCalories or 0 for item in analysis.detectedItems)
    return analysis


def build_request(prompt: str, media_parts: Sequence[MediaPart]) -> GenerationRequest:
    return [prompt, *media_parts] if media_parts else prompt


# =============================================================================
# Pipeline
# =============================================================================

class ExtractionPipeline:
    def __init__(
        self,
        client: GeminiFailoverClient,
        assembler: ContentBundleAssembler,
        config: Settings = default_settings,
    ) -> None:
        self.client = client
        self.assembler = assembler
        self.timeout_seconds = config.EXTRACTION_TIMEOUT_SECONDS
        self.text_max_chars = config.TEXT_EXTRACTION_MAX_CHARS
        self.portion_retries = max(0, config.PORTION_ANALYSIS_RETRIES)
        self.portion_retry_delay = config.PORTION_RETRY_DELAY_SECONDS

    async def generate(self, request: GenerationRequest) -> str:
        try:
            return await asyncio.wait_for(self.client.generate(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as error:
            raise ExtractionTimeoutError(self.timeout_seconds) from error

    # -------------------------------------------------------------------------
    # Recipe extraction
    # -------------------------------------------------------------------------

    async def extract(self, context: ExtractionContext) -> RecipeResult | None:
        prompt = build_recipe_prompt(context)
        response = await self.generate(build_request(prompt, context.media_parts))
        return parse_recipe_response(response)

    async def extract_from_bundle(self, bundle: ContentBundle) -> RecipeResult | None:
        context = await self.assembler.assemble(bundle)
        return await self.extract(context)

    async def extract_from_video(
        self,
        video_path: str,
        platform: str = "video",
        source_url: str | None = None,
    ) -> RecipeResult | None:
        bundle = ContentBundle(
            platform=platform,
            source_url=source_url or video_path,
            video_local_path=video_path,
        )
        return await self.extract_from_bundle(bundle)

    async def extract_from_text(self, text: str, text_format: str | None = None) -> RecipeResult | None:
        prompt = build_text_recipe_prompt(text[: self.text_max_chars], text_format)
        response = await self.generate(prompt)
        return parse_recipe_response(response)

    async def generate_recipe_from_image(self, image_uri: str) -> ImageRecipe:
        image_part = await self.assembler.encoder.build_image_part(image_uri)
        response = await self.generate([build_image_recipe_prompt(), image_part])
        return validate_payload(ImageRecipe, extract_json(response), response)

    # -------------------------------------------------------------------------
    # Sentinel-backed helpers
    # -------------------------------------------------------------------------

    async def analyze_portion(
        self,
        image_uri: str,
        target_ingredients: Sequence[IngredientItem] | None = None,
        ingredient_hints: Sequence[str] | None = None,
    ) -> PortionAnalysis:
        try:
            image_part = await self.assembler.encoder.build_image_part(image_uri)
        except (ServiceError, httpx.HTTPError, OSError) as error:
            logger.error("Could not load image for portion analysis: %s", error)
            return PortionAnalysis.empty()

        request = build_request(build_portion_prompt(target_ingredients, ingredient_hints), [image_part])
        total_attempts = self.portion_retries + 1

        for attempt in range(total_attempts):
            try:
                response = await self.generate(request)
                analysis = validate_payload(PortionAnalysis, extract_json(response), response)
                return apply_portion_defaults(analysis)
            except GeminiConfigurationError:
                raise
            except ServiceError as error:
                logger.warning(
                    "Portion analysis attempt %d/%d failed: %s", attempt + 1, total_attempts, error,
                )
                if attempt < total_attempts - 1:
                    await asyncio.sleep(self.portion_retry_delay)

        logger.error("Portion analysis exhausted %d attempts, returning empty analysis", total_attempts)
        return PortionAnalysis.empty()

    async def analyze_substitutions(
        self,
        recipe_ingredients: Sequence[IngredientItem],
        available_ingredients: Sequence[str],
    ) -> SubstitutionResult:
        try:
            response = await self.generate(build_substitution_prompt(recipe_ingredients, available_ingredients))
            return validate_payload(SubstitutionResult, extract_json(response), response)
        except GeminiConfigurationError:
            raise
        except ServiceError as error:
            logger.error("Error analyzing substitutions: %s", error)
            return SubstitutionResult(
                canMake=False,
                confidenceScore=0,
                missingIngredients=[item.name for item in recipe_ingredients],
                availableIngredients=[],
                substitutions=[],
                tips=[SUBSTITUTION_FAILURE_TIP],
            )

    async def get_cooking_tips(
        self,
        recipe_name: str,
        difficulty: str,
        ingredients: Sequence[IngredientItem],
    ) -> list[str]:
        try:
            response = await self.generate(build_cooking_tips_prompt(recipe_name, difficulty, ingredients))
            payload = extract_json(response)
            try:
                return _TIPS_ADAPTER.validate_python(payload)
            except ValidationError as error:
                raise ResponseParseError("Cooking tips payload is not a list of strings", raw_text=response) from error
        except GeminiConfigurationError:
            raise
        except ServiceError as error:
            logger.error("Error getting cooking tips: %s", error)
            return list(DEFAULT_COOKING_TIPS)
