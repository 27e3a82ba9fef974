"""Trailing flag tokens appended to assembled prompts.

Downstream tools parse these positionally, so each helper returns either
an empty string or a token with its leading space.
"""

from .models import AspectRatio


def aspect_ratio_flag(aspect_ratio: AspectRatio) -> str:
    match aspect_ratio:
        case AspectRatio.LANDSCAPE:
            return " --ar 16:9"
        case AspectRatio.PORTRAIT:
            return " --ar 9:16"


def seed_flag(seed: str) -> str:
    return f" --seed {seed}" if seed else ""


def motion_flag(strength: str) -> str:
    return f" --motion {strength}" if strength else ""


def duration_flag(seconds: str) -> str:
    return f" ( {seconds}s )" if seconds else ""


def negative_flag(constraint: str | None) -> str:
    return f" --no {constraint}" if constraint else ""
