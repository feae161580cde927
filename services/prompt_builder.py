"""
Prompt composition for the image provider.

The provider has no native temperature, seed or size parameters for this
model, so all of them are folded into the instruction text. Target size is
stated twice (a leading directive and a closing requirements block) because
the renderer does not follow it reliably.
"""

from dataclasses import dataclass

# Simplified ratio -> human label
RATIO_LABELS = {
    "16:9": "widescreen/cinematic",
    "9:16": "vertical/mobile",
    "4:3": "standard/classic",
    "3:4": "portrait",
    "21:9": "ultra-wide/cinematic",
    "1:1": "square/Instagram",
}

CREATIVE_GUIDANCE = (
    (0.5, "Create a precise, realistic, and highly detailed image with photographic accuracy."),
    (1.0, "Create a balanced image with natural style and moderate artistic interpretation."),
    (1.5, "Create an artistic and creative image with stylized elements and imaginative details."),
)
EXPERIMENTAL_GUIDANCE = (
    "Create a highly imaginative, surreal, and experimental image with bold artistic choices."
)

EDIT_STYLES = (
    (0.5, "photorealistic, highly detailed"),
    (1.0, "realistic, natural"),
    (1.5, "artistic, creative"),
)
EXPERIMENTAL_EDIT_STYLE = "experimental, imaginative"
DEFAULT_EDIT_STYLE = "photorealistic, high quality"

SEGMENTATION_TEMPLATE = """Analyze this image and create a segmentation mask for: {query}

Return a JSON object with this exact structure:
{{
  "masks": [
    {{
      "label": "description of the segmented object",
      "box_2d": [x, y, width, height],
      "mask": "base64-encoded binary mask image"
    }}
  ]
}}

Only segment the specific object or region requested. The mask should be a binary PNG where white pixels (255) indicate the selected region and black pixels (0) indicate the background."""


@dataclass
class PromptSettings:
    """Structured generation settings that shape the prompt."""

    temperature: float | None = None
    seed: int | None = None
    width: int | None = None
    height: int | None = None


def gcd(a: int, b: int) -> int:
    """Greatest common divisor (Euclid)."""
    while b:
        a, b = b, a % b
    return a


def simplify_ratio(width: int, height: int) -> str:
    """Reduce width:height to lowest terms, e.g. (1920, 1080) -> '16:9'."""
    divisor = gcd(width, height)
    return f"{width // divisor}:{height // divisor}"


def ratio_label(ratio: str) -> str | None:
    """Human label for a recognised ratio, None otherwise."""
    return RATIO_LABELS.get(ratio)


def creative_guidance(temperature: float | None) -> str | None:
    """Map temperature to a creative-tier instruction."""
    if temperature is None:
        return None
    for upper, guidance in CREATIVE_GUIDANCE:
        if temperature <= upper:
            return guidance
    return EXPERIMENTAL_GUIDANCE


def edit_style(temperature: float | None) -> str:
    """Map temperature to the short style phrase used by edit prompts."""
    if temperature is None:
        return DEFAULT_EDIT_STYLE
    for upper, style in EDIT_STYLES:
        if temperature <= upper:
            return style
    return EXPERIMENTAL_EDIT_STYLE


def build_generation_prompt(prompt: str, settings: PromptSettings) -> str:
    """
    Build the text instruction for a generation request.

    Args:
        prompt: Free-form user prompt
        settings: Temperature, seed and target size

    Returns:
        The literal text sent to the provider
    """
    guidance = creative_guidance(settings.temperature)
    seed_hint = f"Style reference: {settings.seed}" if settings.seed is not None else None

    if settings.width and settings.height:
        width, height = settings.width, settings.height
        ratio = simplify_ratio(width, height)
        label = ratio_label(ratio) or "aspect ratio"

        sections = [f"[{ratio} {label}, {width}×{height}px, full frame, no borders]"]
        if guidance:
            sections.append(guidance)
        sections.append(prompt)

        requirements = [
            "CRITICAL REQUIREMENTS:",
            f"• The image MUST be exactly {width}×{height} pixels",
            f"• The image MUST fill the entire {ratio} frame edge-to-edge",
            "• NO white borders, NO black bars, NO letterboxing, NO empty space",
            "• Content should extend to all edges",
        ]
        if seed_hint:
            requirements.append(f"• {seed_hint}")
        sections.append("\n".join(requirements))
        return "\n\n".join(sections)

    if guidance or seed_hint:
        sections = [s for s in (guidance, prompt, seed_hint) if s]
        return "\n\n".join(sections)

    return prompt


def build_edit_prompt(instruction: str, settings: PromptSettings, has_mask: bool = False) -> str:
    """Build the text instruction for an edit request."""
    parts = [
        f"Edit the image: {instruction}",
        f"maintain {edit_style(settings.temperature)} quality",
        "seamless integration with original",
    ]
    if has_mask:
        parts.append("edit only the masked areas (white pixels), preserve unmasked regions exactly")
    if settings.seed is not None:
        parts.append(f"consistent style seed: {settings.seed}")
    return ", ".join(parts)


def build_segmentation_prompt(query: str) -> str:
    """Build the text instruction for a segmentation request."""
    return SEGMENTATION_TEMPLATE.format(query=query)
