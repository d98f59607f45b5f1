"""
Static prompts and the hairstyle catalog.
"""
from typing import Optional

DEFAULT_TEMPLATE_PROMPT = "Generate an AI-enhanced image"
TEMPLATE_PROMPT_SUFFIX = ". Create a professional quality image based on this description."

_KEEP_FACE = "Keep the person's face, features, and skin tone exactly the same."

HAIRSTYLES = {
    101: {
        "name": "Classic Pompadour",
        "description": "Timeless volume and sophistication",
        "face_shapes": ["oval", "square", "rectangular"],
        "prompt": (
            "Transform this person's hairstyle into a CLASSIC POMPADOUR. Create a voluminous, "
            "swept-back style with height on top, short sides, and a polished finish. "
            f"{_KEEP_FACE} Generate a professional, high-quality portrait showing the complete head and hair."
        ),
    },
    102: {
        "name": "Modern Quiff",
        "description": "Contemporary style with height",
        "face_shapes": ["round", "oval", "heart"],
        "prompt": (
            "Transform this person's hairstyle into a MODERN QUIFF. Create a textured, voluminous "
            "front section swept upward and back, with shorter sides. "
            f"{_KEEP_FACE} Generate a stylish, contemporary portrait showing the complete head and hair."
        ),
    },
    103: {
        "name": "Textured Crop",
        "description": "Low-maintenance and trendy",
        "face_shapes": ["square", "round", "oval"],
        "prompt": (
            "Transform this person's hairstyle into a TEXTURED CROP. Create a short, choppy style "
            "with texture on top and shorter sides. Low-maintenance and modern. "
            f"{_KEEP_FACE} Generate a trendy portrait showing the complete head and hair."
        ),
    },
    104: {
        "name": "Side Part",
        "description": "Professional and clean",
        "face_shapes": ["oval", "rectangular", "diamond"],
        "prompt": (
            "Transform this person's hairstyle into a CLASSIC SIDE PART. Create a clean, professional "
            "style with a defined side part, neatly combed, and shorter sides. "
            f"{_KEEP_FACE} Generate a polished portrait showing the complete head and hair."
        ),
    },
    105: {
        "name": "Slick Back",
        "description": "Elegant and refined",
        "face_shapes": ["oval", "square", "rectangular"],
        "prompt": (
            "Transform this person's hairstyle into a SLICK BACK style. Create a smooth, combed-back "
            "look with shine, longer on top, and shorter sides. Elegant and refined. "
            f"{_KEEP_FACE} Generate a sophisticated portrait showing the complete head and hair."
        ),
    },
    106: {
        "name": "Buzz Cut",
        "description": "Bold and minimalist",
        "face_shapes": ["oval", "square", "diamond"],
        "prompt": (
            "Transform this person's hairstyle into a BUZZ CUT. Create a very short, uniform length "
            "all over the head (about 1/4 inch). Clean, bold, minimalist. "
            f"{_KEEP_FACE} Generate a sharp portrait showing the complete head and hair."
        ),
    },
    107: {
        "name": "Crew Cut",
        "description": "Military-inspired classic",
        "face_shapes": ["square", "oval", "rectangular"],
        "prompt": (
            "Transform this person's hairstyle into a CREW CUT. Create a short, tapered style with "
            "slightly more length on top (about 1 inch), fading down the sides. Military-inspired. "
            f"{_KEEP_FACE} Generate a clean portrait showing the complete head and hair."
        ),
    },
    108: {
        "name": "French Crop",
        "description": "Stylish with short fringe",
        "face_shapes": ["round", "heart", "oval"],
        "prompt": (
            "Transform this person's hairstyle into a FRENCH CROP. Create a short style with a "
            "cropped fringe/bangs, textured top, and short sides. Stylish and modern. "
            f"{_KEEP_FACE} Generate a fashionable portrait showing the complete head and hair."
        ),
    },
}

FACE_ANALYSIS_PROMPT = """Analyze this person's face shape. Determine if the face is:
- Oval (balanced proportions, slightly longer than wide)
- Round (similar width and length, soft angles)
- Square (strong jawline, similar width throughout)
- Rectangular/Oblong (longer face with straight sides)
- Heart (wider forehead, narrow chin)
- Diamond (narrow forehead and chin, wider cheekbones)

Respond with ONLY the face shape name (lowercase), followed by a brief 2-sentence explanation of why this shape suits certain hairstyles. Format: "SHAPE: explanation here\""""

SUGGESTIONS_PROMPT = (
    "You are an expert image editor. Analyze this generated image and suggest 3-4 specific, "
    "creative ways the user could enhance or refine it. Each suggestion should be a single concise "
    "sentence (10-15 words) that describes a clear visual improvement. Focus on: lighting changes, "
    "style modifications, background alterations, color adjustments, or artistic enhancements. "
    "Return ONLY a JSON array of strings, nothing else. Example: "
    "[\"Add dramatic sunset lighting with warm orange tones\", "
    "\"Change background to futuristic cityscape at night\", "
    "\"Make colors more vibrant and saturated\", \"Add soft bokeh blur to the background\"]"
)

FALLBACK_SUGGESTIONS = [
    "Add cinematic lighting with dramatic shadows",
    "Enhance colors for a more vibrant look",
    "Change background to match the theme better",
    "Apply artistic filter for unique style",
]


def build_template_prompt(custom_prompt: Optional[str], template_prompt: Optional[str]) -> str:
    """Prompt for a template generation: user override, else the stored prompt, else a default."""
    base = (custom_prompt or "").strip() or (template_prompt or "").strip() or DEFAULT_TEMPLATE_PROMPT
    return f"{base}{TEMPLATE_PROMPT_SUFFIX}"


def build_refine_prompt(request: str) -> str:
    return (
        "You are an expert image editor. The user wants to refine this image with the following "
        f"request: \"{request}\". Please generate an improved version of this image that incorporates "
        "the user's refinement request. Keep the core elements and composition similar to the "
        "original, but apply the requested changes thoughtfully."
    )


OUTFIT_PROMPT = (
    "Create a professional e-commerce fashion photo. Take the outfit/clothing from the FIRST image "
    "and place it on the person shown in the SECOND image.\n\n"
    "Generate a realistic, full-body portrait showing the person from the second image wearing the "
    "outfit from the first image. The person's face, skin tone, and body type should remain exactly "
    "the same. Only the clothing should change.\n\n"
    "Ensure proper fit, natural lighting, and realistic shadows. Generate a complete, high-quality "
    "image showing the full transformation."
)


def build_outfit_prompt(outfit_prompt: Optional[str] = None) -> str:
    """Try-on prompt: the outfit template's own prompt when set, else the stock one."""
    return (outfit_prompt or "").strip() or OUTFIT_PROMPT
