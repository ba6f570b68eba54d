"""
Prompt construction.

Turns a PromptSpec into the instruction text sent to every provider. The
output depends only on the spec, so the same spec always yields the same
text.
"""
from typing import Dict, List

from eyeris.domain.prompt_spec import (
    AnalysisConfig,
    CategoryKind,
    ContentCategory,
    PromptFormat,
    PromptSpec,
)

JSON_REQUIRED_KEYS = (
    "classification",
    "content",
    "analysis",
    "extracted_data",
    "insights",
    "dynamic_extensions",
)

JSON_TEMPLATE = """SYSTEM INSTRUCTION - STRICT JSON OUTPUT REQUIRED
===================================================
You are an image analysis system operating in STRICT JSON MODE.
YOU MUST FOLLOW THESE RULES WITHOUT EXCEPTION:

1. Output MUST be pure, valid, parseable JSON
2. NO prose, NO explanations, NO markdown
3. NO text before the opening {
4. NO text after the closing }
5. MUST maintain proper JSON syntax
6. ALL strings MUST be properly escaped
7. NEVER use JavaScript-style comments
8. NEVER use trailing commas
9. ALL arrays must be properly closed
10. ALL objects must be properly closed
11. MUST use double quotes for keys and strings
12. Numbers must be valid JSON numbers

VALIDATION STEPS - You MUST:
1. Start response with {
2. End response with }
3. Verify all arrays have matching []
4. Verify all objects have matching {}
5. Ensure all strings use "quotes"
6. Validate number formats
7. Confirm no trailing commas
8. Check for proper escaping

REQUIRED OUTPUT STRUCTURE:
{
    "classification": {
        "primary_category": "string",
        "secondary_categories": ["string"],
        "confidence": 0.0-1.0,
        "discovered_categories": [{
            "name": "string",
            "confidence": 0.0-1.0,
            "reasoning": "string"
        }]
    },
    "content": {
        "main_elements": [{
            "type": "string",
            "description": "string",
            "location": "string",
            "relationships": [{
                "related_to": "string",
                "type": "string"
            }]
        }],
        "context": {
            "setting": "string",
            "purpose": "string",
            "time_period": "string"
        }
    },
    "analysis": {
        "visual": {
            "composition": {
                "layout": "string",
                "style": "string"
            },
            "colors": [{
                "name": "string",
                "hex": "string",
                "dominance": 0.0-1.0
            }]
        },
        "semantic": {
            "themes": ["string"],
            "emotional_tone": {
                "primary": "string",
                "confidence": 0.0-1.0
            },
            "symbolism": [{
                "symbol": "string",
                "meaning": "string"
            }]
        },
        "technical": {
            "quality": "string",
            "creation_method": "string",
            "notable_characteristics": ["string"]
        }
    },
    "extracted_data": {
        "text": [{
            "content": "string",
            "location": "string",
            "purpose": "string"
        }],
        "data_points": [{
            "type": "string",
            "value": "string"
        }]
    },
    "insights": {
        "key_observations": ["string"],
        "unusual_elements": ["string"],
        "suggestions": ["string"]
    },
    "dynamic_extensions": {}
}

DATA TYPE REQUIREMENTS:
- Strings: Must be valid UTF-8, properly escaped
- Numbers: Must be valid JSON numbers
- Arrays: Must be valid, even if empty []
- Objects: Must be valid, even if empty {}
- Booleans: Must be true or false (lowercase)
- Nulls: Must be null (lowercase)

CONFIDENCE SCORES:
- MUST be between 0.0 and 1.0
- MUST be decimal numbers
- MUST NOT be strings
- Examples: 0.95, 0.7, 0.32

COLOR CODES:
- MUST be valid hex codes
- MUST include # prefix
- MUST be 6 characters after #
- Example: #FF5733

ARRAYS:
- MUST use [] brackets
- MUST separate items with commas
- MUST NOT have trailing comma
- Empty arrays are valid: []

REMEMBER:
1. This is a programmatic interface
2. Output will be parsed by code
3. ANY deviation from JSON structure will cause errors
4. NO human-readable explanations allowed
5. ALL analysis must fit within this structure

BEGIN ANALYSIS NOW WITH OPENING { AND END WITH CLOSING }"""

# Order matters: toggles are emitted in this order.
TOGGLE_INSTRUCTIONS = (
    ("extract_text", "Transcribe all visible text exactly as written."),
    ("detect_faces", "Note any people or faces, their expressions and positions, without identifying individuals."),
    ("identify_brands", "Identify brands, logos and products that appear."),
    ("analyze_layout", "Describe the layout and how elements are arranged."),
    ("extract_data", "Extract structured data such as numbers, dates, prices and labels."),
    ("color_analysis", "Describe the dominant colors and the overall palette."),
    ("spatial_analysis", "Explain the spatial relationships between the main elements."),
    ("semantic_analysis", "Explain the meaning, themes and purpose of the image."),
    ("detect_emotions", "Describe the emotional tone and any emotions shown."),
    ("identify_patterns", "Point out repeated patterns, textures or motifs."),
    ("historical_context", "Place the image in its historical context where possible."),
    ("cultural_analysis", "Note cultural references and their significance."),
    ("technical_details", "Comment on technical quality, medium and how the image was made."),
    ("accessibility_analysis", "Write a short alt-text description suitable for screen readers."),
)

_DIGITAL = "Identify the interface or platform, visible controls, on-screen text and the state of the application."
_DOCUMENTS = "Transcribe key fields such as names, dates, amounts and identifiers exactly as written, and describe the document structure."
_VISUAL = "Describe the subject, style and composition, and any message or humor the image conveys."
_INSTRUCTIONAL = "Lay out the steps, components or ingredients in order and explain how they relate."
_DATA_VIZ = "Report the axes, labels, series and the values or trends the visualization shows."
_LOCATION = "Describe the spatial layout, scale, landmarks and orientation."
_SPECIAL = "Use precise domain terminology, report figures and measurements exactly, and flag anything that needs expert review."

CATEGORY_GUIDANCE: Dict[CategoryKind, str] = {
    CategoryKind.SCREENSHOT: _DIGITAL,
    CategoryKind.USER_INTERFACE: _DIGITAL,
    CategoryKind.SOCIAL_MEDIA_POST: "Report the author, post text, engagement counts and any attached media.",
    CategoryKind.DIGITAL_ART: _VISUAL,
    CategoryKind.WEBSITE: _DIGITAL,
    CategoryKind.SOFTWARE: _DIGITAL,
    CategoryKind.VIDEO_GAME: "Describe the game scene, HUD elements, characters and the apparent game state.",
    CategoryKind.DOCUMENT: _DOCUMENTS,
    CategoryKind.RECEIPT: "List the merchant, date, each line item with its price, taxes and the total.",
    CategoryKind.BUSINESS_CARD: "Extract the name, title, company, phone numbers, email and address.",
    CategoryKind.INVOICE: "Extract the invoice number, parties, dates, line items, totals and payment terms.",
    CategoryKind.FORM: "List each field label with its filled-in value, and note empty fields.",
    CategoryKind.IDENTIFICATION: _DOCUMENTS,
    CategoryKind.CERTIFICATE: _DOCUMENTS,
    CategoryKind.PHOTO: _VISUAL,
    CategoryKind.ARTWORK: _VISUAL,
    CategoryKind.ILLUSTRATION: _VISUAL,
    CategoryKind.MEME: _VISUAL,
    CategoryKind.COMIC: "Follow the panels in reading order and transcribe the dialogue.",
    CategoryKind.ADVERTISEMENT: "Identify the product, the offer, the target audience and the call to action.",
    CategoryKind.POSTER: _VISUAL,
    CategoryKind.RECIPE: "List the ingredients with quantities and the preparation steps in order.",
    CategoryKind.TUTORIAL: _INSTRUCTIONAL,
    CategoryKind.DIAGRAM: _INSTRUCTIONAL,
    CategoryKind.BLUEPRINT: _INSTRUCTIONAL,
    CategoryKind.SCHEMATIC: _INSTRUCTIONAL,
    CategoryKind.MANUAL: _INSTRUCTIONAL,
    CategoryKind.GUIDE: _INSTRUCTIONAL,
    CategoryKind.CHART: _DATA_VIZ,
    CategoryKind.GRAPH: _DATA_VIZ,
    CategoryKind.DASHBOARD: _DATA_VIZ,
    CategoryKind.INFOGRAPHIC: _DATA_VIZ,
    CategoryKind.TIMELINE: "List the events in chronological order with their dates.",
    CategoryKind.FLOWCHART: "Walk through each node and decision in flow order.",
    CategoryKind.MIND_MAP: "Describe the central idea and each branch hierarchically.",
    CategoryKind.MAP: _LOCATION,
    CategoryKind.FLOOR_PLAN: "List the rooms, their dimensions where labeled, and how they connect.",
    CategoryKind.ARCHITECTURE: _LOCATION,
    CategoryKind.LANDSCAPE: _LOCATION,
    CategoryKind.SATELLITE: _LOCATION,
    CategoryKind.MEDICAL: _SPECIAL,
    CategoryKind.SCIENTIFIC: _SPECIAL,
    CategoryKind.TECHNICAL: _SPECIAL,
    CategoryKind.EDUCATIONAL: _SPECIAL,
    CategoryKind.LEGAL: _SPECIAL,
    CategoryKind.FINANCIAL: _SPECIAL,
}


def _format_text(spec: PromptSpec) -> str:
    fmt = spec.format
    if fmt == PromptFormat.CONCISE:
        return "Briefly describe what you see in this image."
    if fmt == PromptFormat.DETAILED:
        return (
            "Describe this image in detail, including all visual elements, colors, "
            "composition, and any notable features."
        )
    if fmt == PromptFormat.LIST:
        return "List the main elements and features present in this image."
    if fmt == PromptFormat.JSON:
        return JSON_TEMPLATE
    if fmt == PromptFormat.CATEGORY_SPECIFIC:
        return f"Analyze this {spec.category} image with relevant domain-specific details."
    if fmt == PromptFormat.CUSTOM:
        lines = ["Analyze this image for the following aspects:"]
        lines.extend(f"- {trait}" for trait in spec.traits)
        return "\n".join(lines)
    if fmt == PromptFormat.DISCOVERY:
        return "Discover and describe all interesting aspects of this image."
    if fmt == PromptFormat.PLATFORM_SPECIFIC:
        return f"Analyze this {spec.platform} content with platform-specific considerations."
    raise ValueError(f"Unsupported prompt format: {fmt}")


def _toggle_lines(config: AnalysisConfig) -> List[str]:
    return [text for field, text in TOGGLE_INSTRUCTIONS if getattr(config, field)]


def category_guidance(category: ContentCategory) -> str:
    if category.kind == CategoryKind.DISCOVERED:
        text = f"This image appears to be a {category.name}"
        if category.confidence is not None:
            text += f" (confidence {category.confidence:.2f})"
        text += "."
        if category.traits:
            text += " Pay particular attention to: " + ", ".join(category.traits) + "."
        return text

    label = category.kind.value.replace("_", " ")
    text = f"This image is a {label}. {CATEGORY_GUIDANCE[category.kind]}"
    if category.platform:
        text += f" It was captured on {category.platform}; account for that platform's conventions."
    return text


def build_prompt(spec: PromptSpec) -> str:
    """
    Builds the instruction text for a spec.

    The format template comes first. Enabled toggles, category guidance and
    configured custom traits are appended after it, in that order.
    """
    sections = [_format_text(spec)]

    toggles = _toggle_lines(spec.config)
    if toggles:
        sections.append("Additionally:\n" + "\n".join(f"- {line}" for line in toggles))

    if spec.config.content_category is not None:
        sections.append(category_guidance(spec.config.content_category))

    if spec.config.custom_traits:
        numbered = "\n".join(
            f"{index}. {trait}" for index, trait in enumerate(spec.config.custom_traits, start=1)
        )
        sections.append("Evaluate each of these traits explicitly:\n" + numbered)

    return "\n\n".join(sections)
