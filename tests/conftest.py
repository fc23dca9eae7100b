import os
import subprocess
from collections.abc import Generator
from pathlib import Path

import pytest

_PROVIDER_ENV_HINTS = (
    "GEMINI",
    "GOOGLE",
    "OPENAI",
    "OA_KEY",
    "ANTHROPIC",
    "CLAUDE",
    "XAI",
    "GROK",
)


@pytest.fixture(autouse=True)
def reset_config(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> Generator[None, None, None]:
    for key in list(os.environ):
        upper = key.upper()
        if upper.startswith("COMMIC_") or any(h in upper for h in _PROVIDER_ENV_HINTS):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("COMMIC_CONFIG_HOME", str(tmp_path / ".commic"))

    from commic.config import clear_active_config

    clear_active_config()
    yield
    clear_active_config()


# No test may reach a real provider; tests that need HTTP patch httpx.post
# themselves, which takes precedence over this fixture.
@pytest.fixture(autouse=True)
def _block_network(monkeypatch: pytest.MonkeyPatch) -> None:
    import httpx

    def fake_post(url, *args, **kwargs):  # noqa: D401
        raise httpx.ConnectError(f"network disabled in tests: {url}")

    monkeypatch.setattr(httpx, "post", fake_post)


def _git(cmd: list[str], cwd: Path) -> str:
    result = subprocess.run(
        ["git"] + cmd,
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A repository with one seed commit and a clean working tree."""
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(["init", "-q"], repo)
    _git(["config", "user.name", "Tester"], repo)
    _git(["config", "user.email", "tester@example.com"], repo)
    _git(["config", "commit.gpgsign", "false"], repo)
    (repo / "app.py").write_text("print('hello')\n")
    _git(["add", "app.py"], repo)
    _git(["commit", "-q", "-m", "chore: seed"], repo)
    return repo
