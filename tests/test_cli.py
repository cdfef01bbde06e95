"""Tests for CLI commands."""

import json
from pathlib import Path

import pytest

from ember.cli.app import app
from ember.cli.commands import exchange as exchange_command
from ember.config.paths import ENV_VAR, get_ember_home
from tests.conftest import MockLLMProvider, RecordingDiffLauncher, make_controller


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated home, working directory and config file."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv(ENV_VAR, str(home / ".ember"))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("EMBER_MODEL", raising=False)
    monkeypatch.chdir(tmp_path)
    # Handlers bound to the runner's streams would outlive the invocation
    monkeypatch.setattr("ember.logging.configure_logging", lambda **kwargs: None)
    get_ember_home.cache_clear()

    (tmp_path / "ember.toml").write_text(
        f"""
log_file = "{(tmp_path / "log.json").as_posix()}"
save_dir = "{(tmp_path / "saved").as_posix()}"
token_cost = 0.000002

[models.default]
provider = "openai"
model = "gpt-4o-mini"

[models.claude]
provider = "anthropic"
model = "claude-haiku-4-5"
"""
    )
    yield tmp_path
    get_ember_home.cache_clear()


@pytest.fixture
def provider() -> MockLLMProvider:
    return MockLLMProvider(response="Paris.")


@pytest.fixture
def diff() -> RecordingDiffLauncher:
    return RecordingDiffLauncher()


@pytest.fixture(autouse=True)
def fake_controller(monkeypatch, provider, diff):
    monkeypatch.setattr(
        exchange_command,
        "_create_controller",
        lambda config: make_controller(config, provider, diff),
    )


def _log(workspace: Path) -> list[dict]:
    return json.loads((workspace / "log.json").read_text())


class TestAskCommand:
    def test_prints_response(self, cli_runner, workspace, provider):
        result = cli_runner.invoke(app, ["ask", "What", "is", "the", "capital?"])

        assert result.exit_code == 0
        assert "Paris." in result.stdout
        sent = provider.complete_calls[0]["messages"][-1]
        assert sent.content == "What is the capital?"
        assert len(_log(workspace)) == 1

    def test_stats(self, cli_runner, workspace):
        result = cli_runner.invoke(app, ["ask", "--stats", "Hi"])

        assert result.exit_code == 0
        assert "Tokens: 150" in result.stdout
        assert "$0.000300" in result.stdout

    def test_stream(self, cli_runner, workspace, provider):
        result = cli_runner.invoke(app, ["ask", "--stream", "--stats", "Hi"])

        assert result.exit_code == 0
        assert "Mock response" in result.stdout
        assert "estimates when streaming" in result.stdout
        assert provider.stream_calls

    def test_chat_continues(self, cli_runner, workspace, provider):
        cli_runner.invoke(app, ["ask", "first"])
        result = cli_runner.invoke(app, ["ask", "--chat", "second"])

        assert result.exit_code == 0
        sent = provider.complete_calls[1]["messages"]
        assert [m.content for m in sent] == ["first", "Paris.", "second"]

    def test_model_flag(self, cli_runner, workspace, provider, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        result = cli_runner.invoke(app, ["ask", "-m", "claude", "--stats", "Hi"])

        assert result.exit_code == 0
        assert provider.complete_calls[0]["model"] == "claude-haiku-4-5"
        assert "Cost only available for gpt-4o-mini" in result.stdout

    def test_model_from_environment(self, cli_runner, workspace, provider, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        monkeypatch.setenv("EMBER_MODEL", "claude")
        result = cli_runner.invoke(app, ["ask", "Hi"])

        assert result.exit_code == 0
        assert provider.complete_calls[0]["model"] == "claude-haiku-4-5"

    def test_unknown_model(self, cli_runner, workspace, provider):
        result = cli_runner.invoke(app, ["ask", "-m", "nope", "Hi"])

        assert result.exit_code == 1
        assert "Unknown model alias" in result.stdout
        assert provider.complete_calls == []

    def test_missing_api_key(self, cli_runner, workspace, monkeypatch):
        result = cli_runner.invoke(app, ["ask", "-m", "claude", "Hi"])

        assert result.exit_code == 1
        assert "ANTHROPIC_API_KEY" in result.stdout

    def test_dryrun(self, cli_runner, workspace, provider, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY")
        (workspace / "notes.txt").write_text("some notes")
        result = cli_runner.invoke(app, ["ask", "--dryrun", "#import notes.txt"])

        assert result.exit_code == 0
        assert "some notes" in result.stdout
        assert "Estimated request tokens: 3" in result.stdout
        assert provider.complete_calls == []
        assert not (workspace / "log.json").exists()

    def test_directive_error(self, cli_runner, workspace, provider):
        result = cli_runner.invoke(app, ["ask", "#import missing.txt"])

        assert result.exit_code == 1
        assert "#import file missing.txt was not found" in result.stdout
        assert provider.complete_calls == []

    def test_backend_error(self, cli_runner, workspace, provider):
        provider.error = RuntimeError("boom")
        result = cli_runner.invoke(app, ["ask", "Hi"])

        assert result.exit_code == 1
        assert "Error: boom" in result.stdout
        assert _log(workspace)[0]["messages"][-1]["content"] == "Error: boom"

    def test_corrupt_log_with_chat(self, cli_runner, workspace, provider):
        (workspace / "log.json").write_text("oops")
        result = cli_runner.invoke(app, ["ask", "--chat", "Hi"])

        assert result.exit_code == 1
        assert "not valid JSON" in result.stdout
        assert (workspace / "log.json").read_text() == "oops"

    def test_save(self, cli_runner, workspace):
        result = cli_runner.invoke(app, ["ask", "--save", "Hi"])

        assert result.exit_code == 0
        saved = list((workspace / "saved").glob("ember-*.md"))
        assert len(saved) == 1
        assert saved[0].read_text() == "Paris.\n"

    def test_prompt(self, cli_runner, workspace, provider):
        (workspace / "system.txt").write_text("Answer in one word.")
        result = cli_runner.invoke(app, ["ask", "--prompt", "system.txt", "Hi"])

        assert result.exit_code == 0
        first = provider.complete_calls[0]["messages"][0]
        assert first.content == "Answer in one word."

    def test_explicit_missing_config(self, cli_runner, workspace):
        result = cli_runner.invoke(app, ["ask", "-c", "nope.toml", "Hi"])
        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestInputCommand:
    def test_request_from_file(self, cli_runner, workspace, provider, diff):
        (workspace / "app.py").write_text("x = 1\n")
        (workspace / "request.txt").write_text("Improve this:\n#diff app.py\n")
        provider.response = "Sure:\n```python\nx = 2\n```"

        result = cli_runner.invoke(app, ["input", "request.txt"])

        assert result.exit_code == 0
        sent = provider.complete_calls[0]["messages"][-1].content
        assert sent == "Improve this:\nx = 1\n\n"
        assert (workspace / "app.ember.py").read_text() == "x = 2\n"
        assert diff.calls == [(Path("app.ember.py"), "app.py")]

    def test_missing_file(self, cli_runner, workspace):
        result = cli_runner.invoke(app, ["input", "missing.txt"])

        assert result.exit_code == 1
        assert "Cannot read input file" in result.stdout


class TestHistoryCommand:
    def test_empty(self, cli_runner, workspace):
        result = cli_runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "No exchanges" in result.stdout

    def test_lists_entries(self, cli_runner, workspace):
        cli_runner.invoke(app, ["ask", "first"])
        cli_runner.invoke(app, ["ask", "second"])

        result = cli_runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "2 exchanges" in result.stdout
        assert "second" in result.stdout

    def test_limit(self, cli_runner, workspace):
        for word in ("alpha", "bravo", "charlie"):
            cli_runner.invoke(app, ["ask", word])

        result = cli_runner.invoke(app, ["history", "-n", "1"])

        assert "charlie" in result.stdout
        assert "alpha" not in result.stdout

    def test_last(self, cli_runner, workspace):
        cli_runner.invoke(app, ["ask", "first"])

        result = cli_runner.invoke(app, ["history", "--last"])

        assert result.exit_code == 0
        assert "user:" in result.stdout
        assert "Paris." in result.stdout

    def test_corrupt(self, cli_runner, workspace):
        (workspace / "log.json").write_text("{}")
        result = cli_runner.invoke(app, ["history"])
        assert result.exit_code == 1


class TestConfigCommand:
    def test_path(self, cli_runner, workspace):
        result = cli_runner.invoke(app, ["config", "path"])
        assert result.exit_code == 0
        assert "log_file" in result.stdout

    def test_show(self, cli_runner, config_file):
        result = cli_runner.invoke(app, ["config", "show", "--path", str(config_file)])
        assert result.exit_code == 0
        assert "[models.default]" in result.stdout

    def test_show_missing(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            app, ["config", "show", "--path", str(tmp_path / "missing.toml")]
        )
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_validate(self, cli_runner, config_file, workspace):
        result = cli_runner.invoke(
            app, ["config", "validate", "--path", str(config_file)]
        )
        assert result.exit_code == 0
        assert "valid" in result.stdout.lower()
        assert "meld" in result.stdout

    def test_validate_invalid(self, cli_runner, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text('[models.default]\nprovider = "nobody"\nmodel = "x"\n')
        result = cli_runner.invoke(app, ["config", "validate", "--path", str(bad)])
        assert result.exit_code == 1
        assert "validation failed" in result.stdout.lower()

    def test_unknown_action(self, cli_runner):
        result = cli_runner.invoke(app, ["config", "unknown"])
        assert result.exit_code == 1
        assert "Unknown action" in result.stdout
