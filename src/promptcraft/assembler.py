"""Compose structured scene fields into a single provider-ready prompt."""

from .flags import (
    aspect_ratio_flag,
    duration_flag,
    motion_flag,
    negative_flag,
    seed_flag,
)
from .models import (
    BuilderGroup,
    CameraFields,
    GenerationConfig,
    SceneDescriptor,
    SequencingFields,
    ShotFocus,
    WorldFields,
)

WORLD_QUALITY = "photorealistic, raw style, 8k resolution, highly detailed"
CINEMATIC_PREFIX = "Cinematic, photorealistic"
FOOTAGE_QUALITY = "8k resolution, raw footage"

DEFAULT_FRAMING = "Wide Shot"
DEFAULT_DENSITY = "Massive Army"


def _join(fragments: list[str]) -> str:
    return ", ".join(fragment for fragment in fragments if fragment)


def _assemble_world(world: WorldFields, config: GenerationConfig) -> str:
    prompt = _join(
        [
            world.visual_style,
            world.race,
            world.costume,
            world.props,
            world.period,
            world.location,
            world.story,
            world.lighting,
            WORLD_QUALITY,
        ],
    )
    return prompt + aspect_ratio_flag(config.aspect_ratio) + seed_flag(world.seed)


def _assemble_camera(
    camera: CameraFields,
    world: WorldFields,
    config: GenerationConfig,
) -> str:
    story = camera.story or world.story
    prompt = _join(
        [
            CINEMATIC_PREFIX,
            story,
            camera.framing,
            camera.movement,
            camera.rig,
            camera.lens,
            camera.lighting,
            FOOTAGE_QUALITY,
        ],
    )
    return (
        prompt
        + aspect_ratio_flag(config.aspect_ratio)
        + duration_flag(camera.duration)
        + seed_flag(camera.seed)
    )


def sequencing_shot(seq: SequencingFields, world: WorldFields) -> tuple[str, str]:
    """Return the effective ``(story, framing)`` for a sequencing shot.

    The shot focus rewrites the world story and picks a framing used
    when none was given explicitly.
    """
    match seq.focus:
        case ShotFocus.TRANSITION:
            move = seq.motion.lower()
            if seq.direction:
                move += f" flying {seq.direction}"
            story = f"Camera follows {move}, transitioning to {world.story}"
            default_framing = "Dynamic POV, Fluid Camera"
        case ShotFocus.CROWD:
            density = seq.density or DEFAULT_DENSITY
            if "Massive" in density and seq.altitude:
                density = f"{density}, {seq.altitude}"
            story = f"{density}, {world.story}"
            default_framing = "Extreme Wide Shot, Drone View"
        case ShotFocus.DETAIL:
            story = f"Extreme detail close-up, {world.story}"
            default_framing = "Low Angle, Ground Level"
        case ShotFocus.HERO:
            story = world.story
            default_framing = DEFAULT_FRAMING
    return story, seq.framing or default_framing


def _assemble_sequencing(
    seq: SequencingFields,
    world: WorldFields,
    config: GenerationConfig,
) -> str:
    story, framing = sequencing_shot(seq, world)
    prompt = _join(
        [
            CINEMATIC_PREFIX,
            story,
            seq.atmosphere,
            framing,
            seq.altitude,
            seq.motion,
            FOOTAGE_QUALITY,
        ],
    )
    return (
        prompt
        + aspect_ratio_flag(config.aspect_ratio)
        + motion_flag(seq.strength)
        + duration_flag(seq.duration)
        + seed_flag(seq.seed)
    )


def assemble(
    descriptor: SceneDescriptor,
    group: BuilderGroup,
    config: GenerationConfig,
) -> str:
    """Build the prompt for ``group`` from the descriptor fields.

    Args:
        descriptor: The scene fields.
        group: Which field group drives the prompt.
        config: Supplies the aspect ratio and negative constraint.

    Returns:
        str: Comma-joined descriptive fragments followed by flag tokens.

    """
    match group:
        case BuilderGroup.WORLD:
            prompt = _assemble_world(descriptor.world, config)
        case BuilderGroup.CAMERA:
            prompt = _assemble_camera(descriptor.camera, descriptor.world, config)
        case BuilderGroup.SEQUENCING:
            prompt = _assemble_sequencing(
                descriptor.sequencing,
                descriptor.world,
                config,
            )
    return prompt + negative_flag(config.negative_constraint)
