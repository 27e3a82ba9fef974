"""Pydantic data models for PromptCraft."""

import math
from enum import Enum

from pydantic import BaseModel, Field, PrivateAttr, field_validator

DEFAULT_NEGATIVE_CONSTRAINT = (
    "CGI, 3D render, cartoon, anime, drawing, painting, bad quality"
)


class PromptMode(str, Enum):
    """Target modality of the prompt."""

    TEXT = "Text"
    IMAGE = "Image"
    VIDEO = "Video"

    @property
    def is_visual(self) -> bool:
        match self:
            case PromptMode.IMAGE | PromptMode.VIDEO:
                return True
            case PromptMode.TEXT:
                return False


class Framework(str, Enum):
    """Prompt optimization framework."""

    COSTAR = "CO-STAR"
    CLEAR = "CLEAR"
    VISUAL = "VISUAL"
    HISTORICAL = "HISTORICAL"


class Tone(str, Enum):
    """Tone requested from the optimizer."""

    PROFESSIONAL = "Professional"
    CREATIVE = "Creative"
    CINEMATIC = "Cinematic"
    HYPER_REAL = "Hyper-Realistic"
    WHIMSICAL = "Whimsical"
    AUTHENTIC = "Historically Authentic"


class AspectRatio(str, Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class InputMode(str, Enum):
    RAW = "raw"
    STRUCTURED = "structured"


class ActiveTab(str, Enum):
    EDITOR = "editor"
    TEST = "test"


class BuilderGroup(str, Enum):
    """Field group of the scene descriptor used for assembly."""

    WORLD = "world"
    CAMERA = "camera"
    SEQUENCING = "sequencing"


class ShotFocus(str, Enum):
    """Function of a sequencing shot."""

    TRANSITION = "Transition"
    CROWD = "Crowd"
    DETAIL = "Detail"
    HERO = "Hero"


class Stage(str, Enum):
    OPTIMIZE = "optimize"
    TEST = "test"
    ANALYZE = "analyze"


class StageStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


def _check_numeric(value: str) -> str:
    value = value.strip()
    if not value:
        return value
    try:
        number = float(value)
    except ValueError:
        msg = f"Expected a number, got {value!r}"
        raise ValueError(msg) from None
    if not math.isfinite(number):
        msg = f"Expected a finite number, got {value!r}"
        raise ValueError(msg)
    if number < 0:
        msg = f"Expected a non-negative number, got {value!r}"
        raise ValueError(msg)
    return value


class GenerationConfig(BaseModel):
    """Global generation configuration."""

    mode: PromptMode = PromptMode.TEXT
    framework: Framework = Framework.COSTAR
    tone: Tone = Tone.PROFESSIONAL
    include_variables: bool = False
    negative_constraint: str | None = DEFAULT_NEGATIVE_CONSTRAINT
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE


class WorldFields(BaseModel):
    """World & authenticity fields."""

    race: str = ""
    costume: str = ""
    props: str = ""
    period: str = "Medieval Era, 13th Century"
    location: str = "Vast Steppe Grasslands"
    visual_style: str = "Epic Historical Film"
    lighting: str = "Cinematic Volumetric Lighting"
    story: str = ""
    seed: str = ""

    @field_validator("seed")
    @classmethod
    def check_numeric(cls, value: str) -> str:
        return _check_numeric(value)


class CameraFields(BaseModel):
    """Cinematography fields."""

    framing: str = "Wide Shot"
    movement: str = "Static Camera"
    rig: str = "Steadicam Smooth"
    lens: str = "35mm Lens"
    lighting: str = "Cinematic Volumetric Lighting"
    duration: str = "5"
    seed: str = ""
    story: str = ""  # Falls back to the world story when empty

    @field_validator("duration", "seed")
    @classmethod
    def check_numeric(cls, value: str) -> str:
        return _check_numeric(value)


class SequencingFields(BaseModel):
    """Shot sequencing fields."""

    focus: ShotFocus = ShotFocus.TRANSITION
    motion: str = "Falcon Aerial Chase"
    framing: str = ""
    direction: str = ""
    altitude: str = ""
    density: str = ""
    atmosphere: str = "Battlefield Smoke"
    strength: str = "10"
    duration: str = "10"
    seed: str = ""

    @field_validator("strength", "duration", "seed")
    @classmethod
    def check_numeric(cls, value: str) -> str:
        return _check_numeric(value)


class SceneDescriptor(BaseModel):
    """Structured scene fields, one sibling group per builder tab."""

    world: WorldFields = Field(default_factory=WorldFields)
    camera: CameraFields = Field(default_factory=CameraFields)
    sequencing: SequencingFields = Field(default_factory=SequencingFields)

    def group(self, group: BuilderGroup) -> BaseModel:
        match group:
            case BuilderGroup.WORLD:
                return self.world
            case BuilderGroup.CAMERA:
                return self.camera
            case BuilderGroup.SEQUENCING:
                return self.sequencing


def on_mode_change(
    old_mode: PromptMode,
    new_mode: PromptMode,
    config: GenerationConfig,
) -> GenerationConfig:
    """Return ``config`` switched to ``new_mode`` with forced framework/tone.

    Visual modes always land on VISUAL/Cinematic and text mode on
    CO-STAR/Professional, whatever the user had picked before.
    """
    match new_mode:
        case PromptMode.IMAGE | PromptMode.VIDEO:
            framework, tone = Framework.VISUAL, Tone.CINEMATIC
        case PromptMode.TEXT:
            framework, tone = Framework.COSTAR, Tone.PROFESSIONAL
    return config.model_copy(
        update={"mode": new_mode, "framework": framework, "tone": tone},
    )


def input_mode_for(mode: PromptMode) -> InputMode:
    match mode:
        case PromptMode.VIDEO:
            return InputMode.STRUCTURED
        case PromptMode.TEXT | PromptMode.IMAGE:
            return InputMode.RAW


class SessionSnapshot(BaseModel):
    """Persisted subset of a session."""

    descriptor: SceneDescriptor = Field(default_factory=SceneDescriptor)
    config: GenerationConfig = Field(default_factory=GenerationConfig)
    raw_input: str = ""
    optimized_output: str = ""
    active_input_mode: InputMode = InputMode.RAW


class SessionTicket(BaseModel):
    """Identity of a session at the moment a stage started."""

    epoch: int
    mode: PromptMode


class GenerationSession(BaseModel):
    """Mutable state of one prompt-crafting session."""

    descriptor: SceneDescriptor = Field(default_factory=SceneDescriptor)
    config: GenerationConfig = Field(default_factory=GenerationConfig)
    raw_input: str = ""
    optimized_output: str = ""
    test_result: str = ""
    analysis_result: str = ""
    active_input_mode: InputMode = InputMode.RAW
    active_group: BuilderGroup = BuilderGroup.WORLD
    active_tab: ActiveTab = ActiveTab.EDITOR
    stages: dict[Stage, StageStatus] = Field(
        default_factory=lambda: {stage: StageStatus.IDLE for stage in Stage},
    )

    _epoch: int = PrivateAttr(default=0)

    @property
    def epoch(self) -> int:
        return self._epoch

    def ticket(self) -> SessionTicket:
        return SessionTicket(epoch=self._epoch, mode=self.config.mode)

    def is_current(self, ticket: SessionTicket) -> bool:
        return ticket.epoch == self._epoch and ticket.mode == self.config.mode

    def clear_results(self) -> None:
        self.test_result = ""
        self.analysis_result = ""

    def set_mode(self, mode: PromptMode) -> None:
        """Switch modality; invalidates anything produced for the old mode."""
        if mode == self.config.mode:
            return
        self.config = on_mode_change(self.config.mode, mode, self.config)
        self.active_input_mode = input_mode_for(mode)
        self.clear_results()
        self._epoch += 1

    def apply_assembly(self, prompt: str) -> None:
        """Seed both prompt slots with an assembled prompt."""
        self.raw_input = prompt
        self.optimized_output = prompt
        self.active_tab = ActiveTab.EDITOR

    def to_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            descriptor=self.descriptor.model_copy(deep=True),
            config=self.config.model_copy(),
            raw_input=self.raw_input,
            optimized_output=self.optimized_output,
            active_input_mode=self.active_input_mode,
        )

    def restore(self, snapshot: SessionSnapshot) -> None:
        """Replace persisted fields with ``snapshot``.

        Results from the previous state are dropped and in-flight stages
        become stale.
        """
        self.descriptor = snapshot.descriptor.model_copy(deep=True)
        self.config = snapshot.config.model_copy()
        self.raw_input = snapshot.raw_input
        self.optimized_output = snapshot.optimized_output
        self.active_input_mode = snapshot.active_input_mode
        self.clear_results()
        self._epoch += 1

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot) -> "GenerationSession":
        session = cls()
        session.restore(snapshot)
        return session


class GatewayConfig(BaseModel):
    """Model names and polling limits for the Gemini gateway."""

    text_model: str = "gemini-2.5-flash"
    image_model: str = "gemini-2.5-flash-image"
    video_model: str = "veo-3.1-fast-generate-preview"
    analysis_model: str = "gemini-2.5-flash"
    temperature: float = 0.7
    video_resolution: str = "720p"
    poll_interval: float = 5.0
    poll_timeout: float = 600.0
