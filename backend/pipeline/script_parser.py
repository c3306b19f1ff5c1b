"""
Deterministic script writing and parsing.

- build_product_scenes(): hook, one scene per benefit, call to action
- parse_script(): splits a written script into scenes on blank lines or
  "Scene N: TITLE" headings, typing scenes from heading keywords or position

Durations follow a ~2.5 words/second speaking rate.
"""

import math
import re
from typing import List, Optional

from pipeline.error_handler import ValidationError
from pipeline.templates import MAX_BENEFIT_SCENES, fill_template, get_style_template
from services.providers import SceneDraft

WORDS_PER_SECOND = 2.5
MIN_SCENE_DURATION = 3.0

SCENE_HEADING = re.compile(r"^\s*scene\s+\d+\s*[:.\-]\s*(.*)$", re.IGNORECASE)

HEADING_TYPES = [
    (("hook", "opening"), "hook"),
    (("intro", "introduction"), "intro"),
    (("call to action", "cta", "closing", "outro"), "cta"),
    (("process", "steps", "how it works"), "process"),
    (("brand", "about us"), "brand"),
    (("benefit",), "benefit"),
    (("feature",), "feature"),
    (("testimonial", "review"), "testimonial"),
]


def estimate_duration(narration: str) -> float:
    """
    Seconds needed to speak `narration`, never below MIN_SCENE_DURATION.

    Example:
        >>> estimate_duration("one two three four five six seven eight nine ten")
        4.0
    """
    words = len(narration.split())
    return max(MIN_SCENE_DURATION, float(math.ceil(words / WORDS_PER_SECOND)))


def _type_from_heading(heading: str) -> Optional[str]:
    lowered = heading.lower()
    for keywords, scene_type in HEADING_TYPES:
        if any(k in lowered for k in keywords):
            return scene_type
    return None


def _visual_direction(narration: str, style_keywords: str) -> str:
    first_sentence = re.split(r"(?<=[.!?])\s+", narration.strip())[0]
    return f"{first_sentence.rstrip('.!?')}, {style_keywords}"


def _split_blocks(script: str) -> List[tuple]:
    """
    Return (heading, body) tuples. Headings come from "Scene N: TITLE" lines.
    """
    blocks = []
    heading = None
    lines: List[str] = []

    def flush():
        body = " ".join(l.strip() for l in lines if l.strip())
        if body:
            blocks.append((heading, body))

    for line in script.splitlines():
        match = SCENE_HEADING.match(line)
        if match:
            flush()
            heading = match.group(1).strip()
            lines = []
            continue
        if not line.strip():
            flush()
            heading = None
            lines = []
            continue
        lines.append(line)
    flush()
    return blocks


def _scale_durations(drafts: List[SceneDraft], target_duration: float) -> None:
    total = sum(d.duration for d in drafts)
    if total <= 0:
        return
    factor = target_duration / total
    for draft in drafts:
        draft.duration = max(MIN_SCENE_DURATION, round(draft.duration * factor, 1))


def parse_script(script: str, style: str = "professional", target_duration: Optional[float] = None) -> List[SceneDraft]:
    """
    Split a written script into scene drafts.

    Raises:
        ValidationError: If the script has no narration text
    """
    blocks = _split_blocks(script)
    if not blocks:
        raise ValidationError("Script contains no narration", field="script")

    keywords = get_style_template(style)["style_keywords"]
    drafts = []
    last = len(blocks) - 1
    for index, (heading, body) in enumerate(blocks):
        scene_type = _type_from_heading(heading) if heading else None
        if scene_type is None:
            if index == 0 and last > 0:
                scene_type = "hook"
            elif index == last and last > 0:
                scene_type = "cta"
            else:
                scene_type = "explanation"
        drafts.append(SceneDraft(
            type=scene_type,
            narration=body,
            visualDirection=_visual_direction(body, keywords),
            duration=estimate_duration(body),
        ))

    if target_duration:
        _scale_durations(drafts, target_duration)
    return drafts


def build_product_scenes(
    product_name: str,
    product_description: str,
    benefits: List[str],
    call_to_action: str,
    duration: int,
    style: str = "professional",
) -> List[SceneDraft]:
    """
    Hook, up to MAX_BENEFIT_SCENES benefit scenes, and a call to action,
    with the video length split evenly between them.
    """
    template = get_style_template(style)
    keywords = template["style_keywords"]
    values = {
        "product_name": product_name,
        "product_description": product_description.strip(),
        "call_to_action": call_to_action.rstrip(".!"),
        "call_to_action_lower": call_to_action.rstrip(".!").lower(),
    }

    selected = benefits[:MAX_BENEFIT_SCENES.get(duration, 3)]
    scene_count = len(selected) + 2
    per_scene = round(duration / scene_count, 1)

    drafts = [SceneDraft(
        type="hook",
        narration=fill_template(template["hook"], **values),
        visualDirection=f"{fill_template(template['hook_visual'], **values)}, {keywords}",
        duration=per_scene,
    )]
    for benefit in selected:
        benefit_values = dict(values, benefit=benefit.rstrip("."))
        drafts.append(SceneDraft(
            type="benefit",
            narration=fill_template(template["benefit"], **benefit_values),
            visualDirection=f"{fill_template(template['benefit_visual'], **benefit_values)}, {keywords}",
            duration=per_scene,
        ))
    drafts.append(SceneDraft(
        type="cta",
        narration=fill_template(template["cta"], **values),
        visualDirection=f"{fill_template(template['cta_visual'], **values)}, {keywords}",
        duration=per_scene,
    ))
    return drafts
