import pytest

from fakes import FakeRunner
from remotedeploy.exceptions import RepositoryError
from remotedeploy.models.config import Credential
from remotedeploy.services.repository import RepositoryFetcher, find_build_descriptor

TOKEN = "ghp_tok3n"


def test_clone_uses_token_then_resets_remote(make_config):
    config = make_config()
    runner = FakeRunner()
    result = RepositoryFetcher(config, Credential(TOKEN), runner=runner).fetch()

    clone = runner.git_calls("clone")[0]
    assert clone[:4] == ["git", "clone", "--branch", "main"]
    assert clone[4] == f"https://{TOKEN}@github.com/acme/demo.git"
    assert runner.git_calls("remote")[0] == ["git", "remote", "set-url", "origin", "https://github.com/acme/demo.git"]
    assert result.success
    assert result.data == {"commit": "abc1234", "descriptor": "Dockerfile"}


def test_existing_checkout_is_fast_forwarded(make_config):
    config = make_config(branch="release")
    (config.local_root / ".git").mkdir(parents=True)
    (config.local_root / "docker-compose.yml").write_text("services: {}\n")
    runner = FakeRunner()

    result = RepositoryFetcher(config, Credential(TOKEN), runner=runner).fetch()

    assert not runner.git_calls("clone")
    fetch = runner.git_calls("fetch")[0]
    assert fetch[-1] == "+refs/heads/release:refs/remotes/origin/release"
    assert runner.git_calls("checkout")[0] == ["git", "checkout", "release"]
    assert runner.git_calls("merge")[0] == ["git", "merge", "--ff-only", "origin/release"]
    assert result.data["descriptor"] == "docker-compose.yml"


def test_git_runs_without_prompting(make_config):
    calls = []
    runner = FakeRunner()

    def recording(args, **kwargs):
        calls.append(kwargs)
        return runner(args, **kwargs)

    RepositoryFetcher(make_config(), Credential(TOKEN), runner=recording).fetch()
    assert all(kwargs["env"]["GIT_TERMINAL_PROMPT"] == "0" for kwargs in calls)


def test_clone_failure_is_redacted(make_config, logger):
    runner = FakeRunner()
    runner.fail("clone", stderr=f"fatal: Authentication failed for 'https://{TOKEN}@github.com/acme/demo.git/'")

    with pytest.raises(RepositoryError) as excinfo:
        RepositoryFetcher(make_config(), Credential(TOKEN), logger=logger, runner=runner).fetch()

    assert TOKEN not in excinfo.value.output_excerpt
    assert "Authentication failed" in excinfo.value.output_excerpt
    logger.close()
    assert TOKEN not in logger.log_path.read_text()


def test_missing_build_descriptor(make_config):
    with pytest.raises(RepositoryError, match="No Dockerfile or docker-compose.yml"):
        RepositoryFetcher(make_config(), Credential(TOKEN), runner=FakeRunner(descriptor=None)).fetch()


def test_compose_takes_precedence(tmp_path):
    (tmp_path / "Dockerfile").write_text("FROM scratch\n")
    assert find_build_descriptor(tmp_path) == "Dockerfile"
    (tmp_path / "docker-compose.yaml").write_text("services: {}\n")
    assert find_build_descriptor(tmp_path) == "docker-compose.yaml"
