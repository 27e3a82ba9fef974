"""Map a generation config to the directives handed to the optimizer."""

from pydantic import BaseModel

from .models import Framework, GenerationConfig, PromptMode


class InstructionPayload(BaseModel):
    """Structured directives for the optimize call."""

    role: str
    mode_label: str
    framework_directive: str
    tone_directive: str
    focus_directive: str
    placeholder_directive: str
    negative_directive: str = ""

    def render(self) -> str:
        """Render the payload as a system instruction."""
        guidelines = [
            self.framework_directive,
            self.tone_directive,
            self.focus_directive,
            self.placeholder_directive,
        ]
        if self.negative_directive:
            guidelines.append(self.negative_directive)
        guidelines.append(
            "RETURN ONLY THE OPTIMIZED PROMPT. Do not include "
            '"Here is your prompt" or a markdown code block wrapper. '
            "Just the raw text.",
        )
        numbered = "\n".join(
            f"{i}. {line}" for i, line in enumerate(guidelines, start=1)
        )
        return (
            f"{self.role}\n"
            "Your goal is to take a raw, likely vague, user idea and rewrite it "
            "into a highly effective, structured prompt.\n\n"
            f"CURRENT MODE: {self.mode_label}\n\n"
            f"GUIDELINES:\n{numbered}"
        )


def role_for(mode: PromptMode) -> str:
    match mode:
        case PromptMode.TEXT:
            return (
                "You are a world-class Prompt Engineer and AI Optimization "
                "Specialist."
            )
        case PromptMode.VIDEO:
            return (
                "You are an expert Video AI Director and Prompt Engineer for "
                "models like Google Veo, Sora, and Runway Gen-3."
            )
        case PromptMode.IMAGE:
            return (
                "You are an expert Art Director, Historian, and Generative Image "
                "Specialist for models like Gemini Image, Midjourney, and Flux."
            )


def mode_label(mode: PromptMode) -> str:
    match mode:
        case PromptMode.TEXT:
            return "TEXT/CHAT GENERATION"
        case PromptMode.IMAGE:
            return "IMAGE GENERATION"
        case PromptMode.VIDEO:
            return "VIDEO GENERATION"


def focus_for(mode: PromptMode) -> str:
    match mode:
        case PromptMode.TEXT:
            return (
                "Ensure clarity, specificity, and constraints are explicitly "
                "defined."
            )
        case PromptMode.VIDEO:
            return (
                "Focus intensely on PHOTOREALISM. Use keywords like 'raw "
                "footage', 'shot on film', '4k', 'highly detailed', 'live "
                "action'. Avoid 'CGI', '3D render', 'synthetic' looks. Describe "
                "Lighting, Camera Angles, and Motion/Physics."
            )
        case PromptMode.IMAGE:
            return (
                "Focus on PHOTOREALISM and Composition. Use keywords like "
                "'photograph', 'f/1.8', '8k', 'sharp focus', 'raw style'. "
                "IMPORTANT: Explicitly decouple the subject's Ethnicity from "
                "their Attire/Armor if they differ. Prevent generation bias."
            )


def framework_directive(framework: Framework, is_visual: bool) -> str:
    match framework:
        case Framework.COSTAR:
            return (
                "Use the CO-STAR framework: Define Context, Objective, Style, "
                "Tone, Audience, and Response format clearly."
            )
        case Framework.CLEAR:
            return (
                "Use the CLEAR framework: Be Concise, Logical, Explicit, "
                "Adaptive, and Reflective."
            )
        case Framework.VISUAL if is_visual:
            return (
                "Use the VISUAL framework: Detail Visuals, Illumination "
                "(lighting), Subject, Usage (context/action), Angles "
                "(camera/viewpoint), and Lenses (depth/style)."
            )
        case Framework.VISUAL:
            return (
                "Use the VISUAL framework: Detail Visuals, Illumination, "
                "Subject, Usage, Angles, and Lenses."
            )
        case Framework.HISTORICAL:
            return (
                "Use the HISTORICAL framework (Period, Authenticity, Wares, "
                "Ethnography, Setting): 1) Identify the target Era. "
                "2) FACT-CHECK Wares: Ensure Armor, Weapons, and Clothing are "
                "historically accurate to the region/date, OR explicitly noted "
                "if they are cross-cultural imports. 3) Ethnography: Explicitly "
                "decouple the subject's ethnicity from their attire and region, "
                "describing physical ethnicity when it contradicts the typical "
                "setting. 4) Use precise period-accurate nomenclature "
                "(e.g. 'Sallet' not 'Helmet')."
            )


def placeholder_directive(include_variables: bool) -> str:
    if include_variables:
        return (
            "Identify dynamic parts of the prompt and replace them with "
            "bracketed placeholders like [INSERT_TOPIC]."
        )
    return "Do not use bracketed placeholders; write every value out in full."


def negative_directive(constraint: str | None) -> str:
    if not constraint:
        return ""
    return (
        "CRITICAL CONSTRAINT - STRICTLY AVOID / NEGATIVE PROMPT: "
        f'"{constraint}". The final prompt MUST explicitly negate these '
        "elements or structure the description to exclude them entirely."
    )


def select_instructions(config: GenerationConfig) -> InstructionPayload:
    """Pick the optimizer directives for ``config``."""
    return InstructionPayload(
        role=role_for(config.mode),
        mode_label=mode_label(config.mode),
        framework_directive=framework_directive(
            config.framework,
            config.mode.is_visual,
        ),
        tone_directive=f"Adopt a {config.tone.value} tone for the output.",
        focus_directive=focus_for(config.mode),
        placeholder_directive=placeholder_directive(config.include_variables),
        negative_directive=negative_directive(config.negative_constraint),
    )
