from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from promptcraft.cli import app
from promptcraft.models import Framework, InputMode, PromptMode, SessionSnapshot, Tone
from promptcraft.store import SessionStore

runner = CliRunner()


@pytest.fixture
def home(tmp_path):
    return tmp_path / "home"


@pytest.fixture
def mock_service():
    with (
        patch("promptcraft.cli.GeminiService") as mock,
        patch("promptcraft.cli.load_dotenv"),
    ):
        instance = mock.return_value
        instance.api_key = "key"
        instance.optimize = AsyncMock(return_value="A structured prompt")
        instance.generate = AsyncMock(return_value="Model says hi")
        instance.analyze = AsyncMock(return_value="Critique here")
        yield mock


def invoke(home, *args):
    return runner.invoke(app, ["--session-dir", str(home), *args])


def test_build_world_prompt(home) -> None:
    assert invoke(home, "edit", "world", "story", "A warrior rides").exit_code == 0

    result = invoke(home, "build", "world")

    assert result.exit_code == 0
    assert "Assembled" in result.stdout
    session = SessionStore(home).load()
    assert session.raw_input.startswith("Epic Historical Film")
    assert "A warrior rides" in session.raw_input
    assert session.optimized_output == session.raw_input


def test_edit_unknown_field(home) -> None:
    result = invoke(home, "edit", "camera", "colour", "red")
    assert result.exit_code == 1
    assert "Unknown camera field" in result.stdout


def test_edit_invalid_number(home) -> None:
    result = invoke(home, "edit", "sequencing", "strength", "lots")
    assert result.exit_code == 1
    assert SessionStore(home).load().descriptor.sequencing.strength == "10"


def test_mode_switch_resets_framework(home) -> None:
    invoke(home, "configure", "--framework", "HISTORICAL", "--tone", "Whimsical")

    result = invoke(home, "mode", "video")

    assert result.exit_code == 0
    session = SessionStore(home).load()
    assert session.config.mode is PromptMode.VIDEO
    assert session.config.framework is Framework.VISUAL
    assert session.config.tone is Tone.CINEMATIC
    assert session.active_input_mode is InputMode.STRUCTURED


def test_configure(home) -> None:
    result = invoke(
        home,
        "configure",
        "--variables",
        "--negative",
        "blurry",
        "--aspect-ratio",
        "9:16",
    )

    assert result.exit_code == 0
    config = SessionStore(home).load().config
    assert config.include_variables is True
    assert config.negative_constraint == "blurry"
    assert config.aspect_ratio.value == "9:16"


def test_show(home) -> None:
    result = invoke(home, "show")
    assert result.exit_code == 0
    assert "Configuration" in result.stdout
    assert "CO-STAR" in result.stdout


def test_optimize_missing_key(home, monkeypatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with patch("promptcraft.cli.load_dotenv"):
        result = invoke(home, "optimize", "a horse")
    assert result.exit_code == 1
    assert "GEMINI_API_KEY not found" in result.stdout


def test_optimize_success(home, mock_service) -> None:
    result = invoke(home, "optimize", "a horse", "--api-key", "key")

    assert result.exit_code == 0
    assert "A structured prompt" in result.stdout
    session = SessionStore(home).load()
    assert session.raw_input == "a horse"
    assert session.optimized_output == "A structured prompt"


def test_optimize_failure(home, mock_service) -> None:
    from promptcraft.errors import OptimizeError

    mock_service.return_value.optimize.side_effect = OptimizeError("quota")

    result = invoke(home, "optimize", "a horse", "--api-key", "key")

    assert result.exit_code == 1
    assert "quota" in result.stdout
    assert SessionStore(home).load().optimized_output == ""


def test_test_text(home, mock_service) -> None:
    invoke(home, "build", "world")

    result = invoke(home, "test", "--api-key", "key")

    assert result.exit_code == 0
    assert "Model says hi" in result.stdout


def test_test_without_prompt(home, mock_service) -> None:
    result = invoke(home, "test", "--api-key", "key")
    assert result.exit_code == 1
    assert "optimized prompt is empty" in result.stdout


def test_test_image_save_and_analyze(home, mock_service, tmp_path) -> None:
    mock_service.return_value.generate.return_value = "data:image/png;base64,aW1n"
    invoke(home, "mode", "image")
    invoke(home, "build", "world")
    out = tmp_path / "out.png"

    result = invoke(home, "test", "--api-key", "key", "--save", str(out), "--analyze")

    assert result.exit_code == 0
    assert out.read_bytes() == b"img"
    assert "Critique here" in result.stdout


def test_analyze_image_file(home, mock_service, tmp_path) -> None:
    image = tmp_path / "shot.png"
    image.write_bytes(b"png")
    invoke(home, "build", "world")

    result = invoke(home, "analyze", str(image), "--api-key", "key")

    assert result.exit_code == 0
    assert "Critique here" in result.stdout
    image_uri, prompt = mock_service.return_value.analyze.call_args.args
    assert image_uri.startswith("data:image/png;base64,")
    assert prompt.startswith("Epic Historical Film")


def test_analyze_missing_file(home) -> None:
    result = invoke(home, "analyze", "nonexistent.png")
    assert result.exit_code == 1
    assert "File nonexistent.png not found" in result.stdout


def test_export_import(home, tmp_path) -> None:
    invoke(home, "edit", "world", "costume", "Lamellar Armor")
    invoke(home, "build", "world")
    exported = tmp_path / "session.json"

    assert invoke(home, "export", str(exported)).exit_code == 0

    other_home = tmp_path / "other"
    result = invoke(other_home, "import", str(exported))

    assert result.exit_code == 0
    assert "Session loaded successfully!" in result.stdout
    original = SessionStore(home).load()
    imported = SessionStore(other_home).load()
    assert imported.descriptor == original.descriptor
    assert imported.config == original.config
    assert imported.raw_input == original.raw_input
    assert imported.optimized_output == original.optimized_output


def test_import_corrupt_file(home, tmp_path) -> None:
    invoke(home, "build", "world")
    bad = tmp_path / "bad.json"
    bad.write_text("not json at all")

    result = invoke(home, "import", str(bad))

    assert result.exit_code == 1
    assert SessionStore(home).load().raw_input.startswith("Epic Historical Film")


def test_save(home) -> None:
    result = invoke(home, "save")
    assert result.exit_code == 0
    assert SessionStore(home).path.exists()


def test_save_replaces_corrupt_autosave(home) -> None:
    home.mkdir(parents=True)
    store = SessionStore(home)
    store.path.write_text("{not json")

    result = invoke(home, "save")

    assert result.exit_code == 0
    SessionSnapshot.model_validate_json(store.path.read_bytes())


def test_reset(home) -> None:
    invoke(home, "build", "world")

    result = invoke(home, "reset", "--yes")

    assert result.exit_code == 0
    assert not SessionStore(home).path.exists()


def test_import_binary_file(home, tmp_path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_bytes(b"\xff\xfe\x00garbage")

    result = invoke(home, "import", str(bad))

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "Error:" in result.stdout


def test_binary_autosave_does_not_break_commands(home) -> None:
    home.mkdir(parents=True)
    SessionStore(home).path.write_bytes(b"\xff\xfe\x00garbage")

    result = invoke(home, "show")

    assert result.exit_code == 0
    assert "CO-STAR" in result.stdout
