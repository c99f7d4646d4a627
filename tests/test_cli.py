import json

import pytest
from typer.testing import CliRunner

from conftest import FakeGateway
from podai import cli, config
from podai.gateway import TransformationError
from podai.models import PodcastResult
from podai.storage import HistoryStore, KeyValueStore

runner = CliRunner()


@pytest.fixture
def fake_gateway(monkeypatch):
    gateway = FakeGateway(chat_replies=["Glad you asked!"])
    monkeypatch.setattr(cli, "get_gateway", lambda backend, cfg: gateway)
    return gateway


def _stored_history():
    return HistoryStore(KeyValueStore()).list()


def test_version():
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert "podai v" in result.output


def test_personas_lists_catalog():
    result = runner.invoke(cli.app, ["personas"])
    assert result.exit_code == 0
    assert "The Stand-Up" in result.output
    assert "[futurist]" in result.output


def test_run_full_workflow_saves_history(fake_gateway, meeting_mp3, tmp_path):
    scripts = tmp_path / "scripts"
    result = runner.invoke(
        cli.app,
        ["run", str(meeting_mp3), "--persona", "comedian", "--save-script", str(scripts)],
    )

    assert result.exit_code == 0, result.output
    assert "Hello world" in result.output
    assert fake_gateway.transformed in result.output
    items = _stored_history()
    assert [(item.file_name, item.persona_id) for item in items] == [("meeting.mp3", "comedian")]
    assert (scripts / "PodAI_The_Stand-Up_meeting.txt").exists()


def test_run_prompts_for_persona_and_chats(fake_gateway, meeting_mp3):
    result = runner.invoke(
        cli.app,
        ["run", str(meeting_mp3), "--chat"],
        input="2\nWhat was said?\n/exit\n",
    )

    assert result.exit_code == 0, result.output
    assert _stored_history()[0].persona_id == "analyst"
    assert "The Analyst: Glad you asked!" in result.output


def test_run_rejects_non_audio(fake_gateway, tmp_path):
    notes = tmp_path / "notes.txt"
    notes.write_text("hello")
    result = runner.invoke(cli.app, ["run", str(notes), "--persona", "comedian"])

    assert result.exit_code == 1
    assert "Please upload an audio file" in result.output
    assert fake_gateway.calls == []


def test_run_reports_generation_failure(monkeypatch, meeting_mp3):
    gateway = FakeGateway(transform_error=TransformationError("No content generated"))
    monkeypatch.setattr(cli, "get_gateway", lambda backend, cfg: gateway)
    result = runner.invoke(cli.app, ["run", str(meeting_mp3), "--persona", "comedian"])

    assert result.exit_code == 1
    assert "No content generated" in result.output
    assert _stored_history() == []


def test_run_with_unknown_persona(fake_gateway, meeting_mp3):
    result = runner.invoke(cli.app, ["run", str(meeting_mp3), "--persona", "pirate"])
    assert result.exit_code == 1
    assert "Unknown persona: pirate" in result.output


def test_run_without_backend_fails(meeting_mp3):
    result = runner.invoke(cli.app, ["run", str(meeting_mp3), "--persona", "comedian"])
    assert result.exit_code == 1
    assert "No AI backend available" in result.output


def test_folder_lists_valid_files(tmp_path):
    recordings = tmp_path / "recordings"
    recordings.mkdir()
    (recordings / "a.mp3").write_bytes(b"a" * 1024)
    (recordings / "readme.txt").write_text("skip")

    result = runner.invoke(cli.app, ["folder", str(recordings)])
    assert result.exit_code == 0
    assert "a.mp3" in result.output
    assert "readme.txt" not in result.output


def test_folder_without_audio_reports_error(tmp_path):
    (tmp_path / "readme.txt").write_text("skip")
    result = runner.invoke(cli.app, ["folder", str(tmp_path)])
    assert result.exit_code == 1
    assert "No valid audio files found in this folder." in result.output


def test_folder_select_processes_file(fake_gateway, tmp_path):
    recordings = tmp_path / "recordings"
    recordings.mkdir()
    (recordings / "talk.wav").write_bytes(b"RIFF" + b"\x00" * 64)

    result = runner.invoke(cli.app, ["folder", str(recordings), "--select", "1", "--persona", "debater"])
    assert result.exit_code == 0, result.output
    assert _stored_history()[0].file_name == "talk.wav"


def test_history_commands(fake_gateway, tmp_path):
    store = HistoryStore(KeyValueStore())
    item = store.add(PodcastResult("Stored transcript", "Stored take", "storyteller"), "story.mp3")

    listed = runner.invoke(cli.app, ["history", "list"])
    assert listed.exit_code == 0
    assert item.id in listed.output

    shown = runner.invoke(cli.app, ["history", "show", item.id])
    assert "Stored transcript" in shown.output

    loaded = runner.invoke(cli.app, ["history", "load", item.id, "--save-script", str(tmp_path)])
    assert loaded.exit_code == 0, loaded.output
    assert "Stored take" in loaded.output
    assert (tmp_path / "PodAI_The_Narrator_restored_session.txt").exists()

    exported = runner.invoke(cli.app, ["history", "export", str(tmp_path / "exports")])
    assert exported.exit_code == 0
    archive = next((tmp_path / "exports").glob("podai_history_export_*.json"))
    assert json.loads(archive.read_text())[0]["id"] == item.id

    deleted = runner.invoke(cli.app, ["history", "delete", item.id])
    assert deleted.exit_code == 0
    assert _stored_history() == []

    missing = runner.invoke(cli.app, ["history", "show", item.id])
    assert missing.exit_code == 1


def test_history_load_and_random_work_without_api_keys(tmp_path):
    item = HistoryStore(KeyValueStore()).add(PodcastResult("Offline transcript", "Offline take", "minimalist"), "a.mp3")

    loaded = runner.invoke(cli.app, ["history", "load", item.id, "--save-script", str(tmp_path)])
    assert loaded.exit_code == 0, loaded.output
    assert "Offline take" in loaded.output
    assert (tmp_path / "PodAI_The_Essentialist_restored_session.txt").exists()

    restored = runner.invoke(cli.app, ["history", "random"])
    assert restored.exit_code == 0, restored.output
    assert item.id in restored.output

    chatting = runner.invoke(cli.app, ["history", "load", item.id, "--chat"])
    assert chatting.exit_code == 1
    assert "No AI backend available" in chatting.output


def test_history_list_empty():
    result = runner.invoke(cli.app, ["history", "list"])
    assert result.exit_code == 0
    assert "No history yet" in result.output


def test_history_clear_requires_confirmation():
    HistoryStore(KeyValueStore()).add(PodcastResult("t", "c", "comedian"), "x.mp3")

    aborted = runner.invoke(cli.app, ["history", "clear"], input="n\n")
    assert aborted.exit_code == 1
    assert len(_stored_history()) == 1

    cleared = runner.invoke(cli.app, ["history", "clear", "--yes"])
    assert cleared.exit_code == 0
    assert _stored_history() == []


def test_config_updates_and_shows():
    result = runner.invoke(cli.app, ["config", "--backend", "openai", "--history-limit", "10"])
    assert result.exit_code == 0
    assert config.load_config().history_limit == 10

    shown = runner.invoke(cli.app, ["config", "--show"])
    assert json.loads(shown.output)["backend"] == "openai"

    bad = runner.invoke(cli.app, ["config", "--backend", "whisper"])
    assert bad.exit_code == 1


def test_config_rejects_history_limit_above_fifty():
    result = runner.invoke(cli.app, ["config", "--history-limit", "60"])
    assert result.exit_code == 1
    assert "cannot exceed 50" in result.output
    assert config.load_config().history_limit == 50
