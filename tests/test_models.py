"""Tests for the Pydantic models."""

import pytest
from pydantic import ValidationError

from promptcraft.models import (
    CameraFields,
    Framework,
    GenerationConfig,
    GenerationSession,
    InputMode,
    PromptMode,
    SceneDescriptor,
    SequencingFields,
    SessionSnapshot,
    Tone,
    WorldFields,
    on_mode_change,
)


def test_defaults() -> None:
    config = GenerationConfig()
    assert config.mode is PromptMode.TEXT
    assert config.framework is Framework.COSTAR
    assert config.tone is Tone.PROFESSIONAL
    assert config.aspect_ratio.value == "16:9"
    assert "CGI" in config.negative_constraint

    descriptor = SceneDescriptor()
    assert descriptor.world.period == "Medieval Era, 13th Century"
    assert descriptor.camera.duration == "5"
    assert descriptor.sequencing.focus.value == "Transition"


@pytest.mark.parametrize("mode", [PromptMode.IMAGE, PromptMode.VIDEO])
def test_visual_modes_force_visual_cinematic(mode) -> None:
    config = GenerationConfig(framework=Framework.HISTORICAL, tone=Tone.WHIMSICAL)
    updated = on_mode_change(PromptMode.TEXT, mode, config)
    assert updated.mode is mode
    assert updated.framework is Framework.VISUAL
    assert updated.tone is Tone.CINEMATIC
    # Original is untouched
    assert config.framework is Framework.HISTORICAL


def test_text_mode_forces_costar_professional() -> None:
    config = GenerationConfig(
        mode=PromptMode.VIDEO,
        framework=Framework.HISTORICAL,
        tone=Tone.AUTHENTIC,
    )
    updated = on_mode_change(PromptMode.VIDEO, PromptMode.TEXT, config)
    assert updated.framework is Framework.COSTAR
    assert updated.tone is Tone.PROFESSIONAL


def test_mode_change_keeps_other_settings() -> None:
    config = GenerationConfig(include_variables=True, negative_constraint="blur")
    updated = on_mode_change(PromptMode.TEXT, PromptMode.IMAGE, config)
    assert updated.include_variables is True
    assert updated.negative_constraint == "blur"


def test_switch_video_to_text_clears_results() -> None:
    session = GenerationSession()
    session.set_mode(PromptMode.VIDEO)
    session.test_result = "https://example.com/video?key=abc"
    session.analysis_result = "Looks fine"

    session.set_mode(PromptMode.TEXT)

    assert session.test_result == ""
    assert session.analysis_result == ""
    assert session.config.framework is Framework.COSTAR
    assert session.config.tone is Tone.PROFESSIONAL
    assert session.active_input_mode is InputMode.RAW


def test_switch_to_video_forces_structured_input() -> None:
    session = GenerationSession()
    session.set_mode(PromptMode.VIDEO)
    assert session.active_input_mode is InputMode.STRUCTURED

    session.set_mode(PromptMode.IMAGE)
    assert session.active_input_mode is InputMode.RAW


def test_mode_change_invalidates_ticket() -> None:
    session = GenerationSession()
    ticket = session.ticket()
    assert session.is_current(ticket)

    session.set_mode(PromptMode.IMAGE)
    assert not session.is_current(ticket)


def test_reselecting_current_mode_is_a_no_op() -> None:
    session = GenerationSession(test_result="keep", analysis_result="keep too")
    session.config = session.config.model_copy(update={"framework": Framework.CLEAR})
    ticket = session.ticket()

    session.set_mode(PromptMode.TEXT)

    assert session.is_current(ticket)
    assert session.test_result == "keep"
    assert session.analysis_result == "keep too"
    assert session.config.framework is Framework.CLEAR


def test_apply_assembly_seeds_both_prompts() -> None:
    session = GenerationSession()
    session.apply_assembly("A prompt --ar 16:9")
    assert session.raw_input == "A prompt --ar 16:9"
    assert session.optimized_output == "A prompt --ar 16:9"


def test_snapshot_roundtrip() -> None:
    session = GenerationSession(raw_input="idea", optimized_output="better idea")
    session.descriptor.world.costume = "Lamellar Armor"
    session.test_result = "data:image/png;base64,AAAA"

    restored = GenerationSession.from_snapshot(session.to_snapshot())

    assert restored.descriptor == session.descriptor
    assert restored.config == session.config
    assert restored.raw_input == "idea"
    assert restored.optimized_output == "better idea"
    assert restored.test_result == ""


def test_snapshot_is_a_copy() -> None:
    session = GenerationSession()
    snapshot = session.to_snapshot()
    session.descriptor.world.story = "changed"
    assert snapshot.descriptor.world.story == ""


def test_partial_snapshot_fills_defaults() -> None:
    snapshot = SessionSnapshot.model_validate_json('{"raw_input": "hello"}')
    assert snapshot.raw_input == "hello"
    assert snapshot.config == GenerationConfig()


@pytest.mark.parametrize(
    ("model", "field"),
    [
        (CameraFields, "duration"),
        (SequencingFields, "strength"),
        (WorldFields, "seed"),
    ],
)
def test_numeric_fields_reject_text(model, field) -> None:
    with pytest.raises(ValidationError):
        model(**{field: "ten"})


def test_numeric_fields_accept_empty_and_numbers() -> None:
    seq = SequencingFields(strength="", duration="7.5", seed="42")
    assert seq.strength == ""
    assert seq.duration == "7.5"


@pytest.mark.parametrize("value", ["inf", "nan", "-inf", "Infinity"])
def test_numeric_fields_reject_non_finite(value) -> None:
    with pytest.raises(ValidationError, match="finite"):
        CameraFields(duration=value)


def test_numeric_fields_reject_negative() -> None:
    with pytest.raises(ValidationError, match="non-negative"):
        CameraFields(duration="-1")
