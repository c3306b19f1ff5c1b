"""
Scene templates for product marketing videos.

Product scripts follow a fixed hook -> benefits -> call-to-action structure
so mock generation stays predictable; each style only changes the wording
and the visual keywords.
"""

from typing import Dict, List, Any
import copy


STYLE_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "professional": {
        "style_keywords": "clean studio lighting, crisp focus, modern composition",
        "hook": "Meet {product_name}. {product_description}",
        "benefit": "{benefit}.",
        "cta": "{call_to_action}.",
        "hook_visual": "Hero shot of {product_name} on a clean surface",
        "benefit_visual": "{product_name} in use, highlighting: {benefit}",
        "cta_visual": "{product_name} with brand colors and call to action",
    },
    "friendly": {
        "style_keywords": "warm natural light, cozy, inviting",
        "hook": "Say hello to {product_name}! {product_description}",
        "benefit": "You'll love this: {benefit}.",
        "cta": "{call_to_action}!",
        "hook_visual": "Smiling people enjoying {product_name} at home",
        "benefit_visual": "Everyday moment showing {benefit}",
        "cta_visual": "Friendly close-up of {product_name} with a warm backdrop",
    },
    "energetic": {
        "style_keywords": "bold colors, dynamic motion, high contrast",
        "hook": "Ready for something new? {product_name} is here. {product_description}",
        "benefit": "{benefit}!",
        "cta": "Don't wait. {call_to_action}!",
        "hook_visual": "Fast camera push-in on {product_name}, vibrant colors",
        "benefit_visual": "Action shot illustrating {benefit}",
        "cta_visual": "Bold product shot of {product_name}, dynamic lighting",
    },
    "calm": {
        "style_keywords": "soft pastel tones, slow motion, serene",
        "hook": "Take a breath. This is {product_name}. {product_description}",
        "benefit": "{benefit}.",
        "cta": "When you're ready, {call_to_action_lower}.",
        "hook_visual": "Slow pan across {product_name} in soft morning light",
        "benefit_visual": "Peaceful scene showing {benefit}",
        "cta_visual": "{product_name} resting in a calm natural setting",
    },
}

# Benefit scenes per product video length
MAX_BENEFIT_SCENES = {30: 3, 60: 5, 90: 7}


def get_style_template(style: str) -> Dict[str, Any]:
    """
    Return the template for a style, falling back to "professional".

    Example:
        >>> get_style_template("energetic")["cta"]
        "Don't wait. {call_to_action}!"
    """
    return copy.deepcopy(STYLE_TEMPLATES.get(style, STYLE_TEMPLATES["professional"]))


def fill_template(text: str, **values: str) -> str:
    """
    Replace {placeholders} in a template string.

    Unknown placeholders are left as-is.

    Example:
        >>> fill_template("Meet {product_name}.", product_name="Honey")
        'Meet Honey.'
    """
    filled = text
    for key, value in values.items():
        filled = filled.replace("{" + key + "}", value)
    return filled


def get_available_styles() -> List[str]:
    return list(STYLE_TEMPLATES.keys())
