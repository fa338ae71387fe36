from __future__ import annotations

from typing import Sequence

from kitchen_ai.app.domain.models import ExtractionContext
from kitchen_ai.app.schemas.recipe import IngredientItem

NOTE_MARKER = ">> "
JSON_FENCE_OPEN = "```json"
FENCE = "```"
NO_RECIPE_CONTRACT = 'If you truly cannot identify any recipe: {"error": "reason", "confidence": 0}'
JSON_ONLY = "Only respond with valid JSON, no additional text."

RECIPE_JSON_SHAPE = """{
  "title": "Recipe Name",
  "description": "Brief appealing description of the dish",
  "ingredients": [{"name": "ingredient", "amount": 1, "unit": "cup", "optional": false}],
  "instructions": ["Step 1: ...", "Step 2: ..."],
  "servings": 4,
  "prepTime": 15,
  "cookTime": 30,
  "difficulty": "easy|medium|hard",
  "cuisine": "italian|mexican|chinese|american|indian|japanese|thai|mediterranean|etc",
  "category": "dinner|lunch|breakfast|dessert|snack|appetizer|side|drink",
  "tags": ["tag1", "tag2"],
  "confidence": 0.85
}"""

CAPTION_AUTHORITY_RULE = (
    "- IMPORTANT: The caption/description contains a WRITTEN RECIPE with ingredients and instructions. "
    "Treat the caption as the PRIMARY authoritative source for ingredient names, amounts, and cooking steps. "
    "Use the video only to fill in gaps or add details not mentioned in the caption "
    "(e.g. visual techniques, timing cues). Do NOT override caption amounts or steps with guesses from the video."
)
VIDEO_AUTHORITY_RULE = (
    "- If the video shows steps not mentioned in text, include them.\n"
    "- If text mentions ingredients not visible in video, include those too.\n"
    "- If information conflicts, prefer the video content."
)
OUTPUT_RULES = (
    '- Convert ALL amounts to numbers (e.g. "1/2" -> 0.5, "a pinch" -> 0.125, "two" -> 2).\n'
    "- If amounts are not specified, estimate reasonable household quantities.\n"
    "- Instructions should be clear, actionable steps.\n"
    "- Estimate prep/cook times if not explicitly stated.\n"
    "- Set confidence 0-1: >=0.85 for well-documented recipes, 0.5-0.7 for reconstructed ones."
)


def _media_intro(context: ExtractionContext) -> str:
    if not context.has_media:
        return ""
    if context.used_video:
        return (
            "A COOKING VIDEO is attached. Watch it carefully: observe every ingredient shown, every cooking "
            "step, listen to all audio/voiceover, and read any text overlays."
        )
    return "A THUMBNAIL IMAGE is attached. Use it to identify the dish and its likely ingredients."


def _authority_rule(context: ExtractionContext) -> str:
    return CAPTION_AUTHORITY_RULE if context.caption_is_authoritative else VIDEO_AUTHORITY_RULE


def build_recipe_prompt(context: ExtractionContext) -> str:
    return f"""You are a world-class culinary AI. Extract a complete, detailed recipe from the provided content (sourced from {context.platform}).

{_media_intro(context)}

AVAILABLE CONTEXT:
{context.context_text}

INSTRUCTIONS:
- Combine ALL available information (video, text, captions, structured data) to produce the most complete recipe possible.
{_authority_rule(context)}
{OUTPUT_RULES}

Return ONLY valid JSON:
{RECIPE_JSON_SHAPE}

{NO_RECIPE_CONTRACT}"""


def build_streaming_recipe_prompt(context: ExtractionContext) -> str:
    caption_focus = (
        "Since the caption contains a written recipe, focus your observations on confirming/noting the "
        "caption details and any extra visual details from the video."
        if context.caption_is_authoritative
        else ""
    )
    return f"""You are a world-class culinary AI. Extract a complete, detailed recipe from the provided content (sourced from {context.platform}).

{_media_intro(context)}

AVAILABLE CONTEXT:
{context.context_text}

IMPORTANT OUTPUT FORMAT:
First, write your observation notes as you analyze the content. Each observation MUST be on its own line and start with "{NOTE_MARKER}". These are your real-time thinking notes. Write 4-8 short observations about what you see/hear.
{caption_focus}

Example observations:
{NOTE_MARKER}Looks like a creamy pasta dish with garlic
{NOTE_MARKER}Chef is using fettuccine noodles in boiling water
{NOTE_MARKER}I see butter and minced garlic being sauteed

INSTRUCTIONS:
- Combine ALL available information (video, text, captions, structured data) to produce the most complete recipe possible.
{_authority_rule(context)}
{OUTPUT_RULES}

After your observations, return the recipe as a JSON code block:
{JSON_FENCE_OPEN}
{RECIPE_JSON_SHAPE}
{FENCE}

{NO_RECIPE_CONTRACT}"""


def build_text_recipe_prompt(text: str, text_format: str | None = None) -> str:
    format_hint = f" (in {text_format} format)" if text_format else ""
    return f"""You are a recipe extraction expert. The following content{format_hint} contains recipe information.
Extract the recipe and return ONLY valid JSON:

{RECIPE_JSON_SHAPE}

All amounts must be numbers (convert fractions like "1/2" to 0.5).
{NO_RECIPE_CONTRACT}

Content:
{text}"""


def build_image_recipe_prompt() -> str:
    return f"""Analyze this food image and generate a recipe that would create this dish.

Respond with a JSON object:
{{
  "title": string (name of the dish),
  "ingredients": string[] (list of ingredients with amounts),
  "instructions": string[] (step by step cooking instructions),
  "cuisine": string (type of cuisine),
  "estimatedTime": number (total cooking time in minutes)
}}

{JSON_ONLY}"""


def _format_amounts(ingredients: Sequence[IngredientItem]) -> str:
    return "\n".join(f"- {item.amount:g} {item.unit} {item.name}" for item in ingredients)


def build_portion_prompt(
    target_ingredients: Sequence[IngredientItem] | None = None,
    ingredient_hints: Sequence[str] | None = None,
) -> str:
    context_prompt = ""
    if target_ingredients:
        context_prompt = (
            "\nThe user is preparing this recipe which requires:\n"
            f"{_format_amounts(target_ingredients)}\n\n"
            "Please compare what you see to what the recipe needs."
        )
    if ingredient_hints:
        context_prompt += (
            "\n\nUSER-PROVIDED INGREDIENT CORRECTIONS:\n"
            f"The user has indicated this food contains the following ingredients: {', '.join(ingredient_hints)}.\n"
            "Use this as strong guidance when identifying items and estimating portions and calories.\n"
            "Re-examine the image with this context and adjust your estimates accordingly."
        )

    return f"""You are a culinary and nutrition expert analyzing a photo of food. This could be raw ingredients, a prepared dish, a snack, a beverage, or any type of food item.

Your job is to identify ALL food items visible in the image.
{context_prompt}

IMPORTANT RULES:
- Always identify at least one food item if any food is visible
- For prepared dishes, identify the dish as a whole AND its likely components
- Always provide calorie estimates, even if uncertain
- Always estimate serving size based on visual cues (plate size, container, hand for scale, etc.)

Respond with a JSON object in this exact format:
{{
  "detectedItems": [
    {{
      "name": string,
      "estimatedAmount": number,
      "unit": string (cups, oz, pieces, servings, plate, bowl, etc.),
      "confidence": number (0-100),
      "estimatedCalories": number
    }}
  ],
  "suggestedServings": number (minimum 1),
  "totalEstimatedCalories": number (sum of all detected items),
  "recommendations": string[]
}}

{JSON_ONLY}"""


def build_substitution_prompt(
    recipe_ingredients: Sequence[IngredientItem],
    available_ingredients: Sequence[str],
) -> str:
    recipe_lines = "\n".join(
        f"- {item.amount:g} {item.unit} {item.name}{' (optional)' if item.optional else ''}"
        for item in recipe_ingredients
    )
    available_lines = "\n".join(f"- {name}" for name in available_ingredients)
    return f"""You are a professional chef assistant. Analyze the following recipe ingredients and available ingredients to suggest substitutions.

RECIPE INGREDIENTS:
{recipe_lines}

AVAILABLE INGREDIENTS:
{available_lines}

Please analyze and respond with a JSON object in this exact format:
{{
  "canMake": boolean,
  "confidenceScore": number (0-100),
  "missingIngredients": string[],
  "availableIngredients": string[],
  "substitutions": [
    {{
      "originalIngredient": string,
      "substitute": string,
      "ratio": string,
      "notes": string,
      "impactOnTaste": "minimal" | "moderate" | "significant"
    }}
  ],
  "tips": string[]
}}

{JSON_ONLY}"""


def build_cooking_tips_prompt(
    recipe_name: str,
    difficulty: str,
    ingredients: Sequence[IngredientItem],
) -> str:
    key_ingredients = ", ".join(item.name for item in ingredients[:5])
    return f"""You are a helpful cooking assistant. Provide 3-5 practical cooking tips for making "{recipe_name}" (difficulty: {difficulty}).

Key ingredients: {key_ingredients}

Respond with a JSON array of strings, each being a helpful tip:
["tip 1", "tip 2", "tip 3"]

{JSON_ONLY}"""
