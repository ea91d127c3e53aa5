"""Tests for the agent-skills command line."""

import json
import shutil

import httpx
import pytest
from typer.testing import CliRunner

from agent_skills import app
from agent_skills.paths import SkillsPaths, load_config

SKILL = "react-best-practices"
SOURCE = "vercel-labs/agent-skills"

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_home(home, monkeypatch, fetcher):
    """Point the CLI at the temporary home and the fake fetcher."""
    monkeypatch.setenv("AGENT_SKILLS_HOME", str(home))
    monkeypatch.setattr("agent_skills.manager.GitFetcher", lambda *args, **kwargs: fetcher)
    return home


def invoke(*args):
    return runner.invoke(app, list(args))


def skill_names():
    result = invoke("list", "--json")
    assert result.exit_code == 0, result.output
    return [r["name"] for r in json.loads(result.output)]


class TestSetup:
    def test_version(self):
        result = invoke("version")

        assert result.exit_code == 0
        assert "Agent Skills" in result.output

    def test_no_command_prints_help(self):
        result = invoke()

        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_init_saves_default_agents(self, home):
        result = invoke("init", "-a", "Cursor", "-a", "Claude Code")

        assert result.exit_code == 0, result.output
        paths = SkillsPaths(home)
        assert paths.store_dir.is_dir()
        assert load_config(paths)["default_agents"] == ["Cursor", "Claude Code"]

        assert invoke("create", "my-skill").exit_code == 0
        assert (home / ".cursor/skills/my-skill").is_symlink()
        assert (home / ".claude/skills/my-skill").is_symlink()

    def test_init_rejects_unknown_agent(self, home):
        result = invoke("init", "-a", "Nope")

        assert result.exit_code == 1
        assert not SkillsPaths(home).config_file.exists()

    def test_init_without_terminal_needs_agents(self):
        assert invoke("init").exit_code == 1


class TestSkillCommands:
    def test_create_and_list(self):
        result = invoke("create", "my-skill", "-d", "Does a thing")

        assert result.exit_code == 0, result.output
        assert skill_names() == ["my-skill"]

    def test_install_remote(self, home):
        result = invoke("install", f"{SOURCE}@{SKILL}", "-a", "Cursor")

        assert result.exit_code == 0, result.output
        assert (home / ".agents/skills" / SKILL / "SKILL.md").exists()
        assert (home / ".cursor/skills" / SKILL).is_symlink()

    def test_install_local_directory(self, tmp_path, make_skill):
        source = make_skill(tmp_path / "src", "team-rules")

        result = invoke("install", str(source))

        assert result.exit_code == 0, result.output
        assert skill_names() == ["team-rules"]

    def test_install_rejects_unknown_source(self):
        result = invoke("install", "not-a-source")

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_show(self):
        invoke("create", "my-skill", "-d", "Does a thing")

        result = invoke("show", "my-skill", "--raw")

        assert result.exit_code == 0
        assert "name: my-skill" in result.output

    def test_show_unknown_skill(self):
        result = invoke("show", "missing")

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_link_and_links(self, home):
        invoke("create", "my-skill")

        result = invoke("link", "my-skill", "-a", "Cursor", "-a", "Claude Code")
        assert result.exit_code == 0, result.output

        result = invoke("links", "my-skill", "--json")
        assert sorted(json.loads(result.output)) == ["Claude Code", "Cursor"]

        invoke("link", "my-skill", "--none")
        assert json.loads(invoke("links", "my-skill", "--json").output) == []

    def test_link_without_agents_outside_terminal(self):
        invoke("create", "my-skill")

        result = invoke("link", "my-skill")

        assert result.exit_code == 1

    def test_update_needs_a_name(self):
        assert invoke("update").exit_code == 1

    def test_update(self):
        invoke("install", f"{SOURCE}@{SKILL}")

        result = invoke("update", SKILL)

        assert result.exit_code == 0, result.output

    def test_remove(self, home):
        invoke("create", "my-skill", "-a", "Cursor")

        result = invoke("remove", "my-skill")

        assert result.exit_code == 0, result.output
        assert skill_names() == []
        assert not (home / ".cursor/skills/my-skill").exists()

    def test_remove_parent_directory_is_refused(self, home):
        invoke("create", "my-skill")

        result = invoke("remove", "..")

        assert result.exit_code == 1
        assert "invalid skill name" in result.output
        assert skill_names() == ["my-skill"]
        assert (home / ".agents/skills/.skills-lock").exists()

    def test_update_check(self, monkeypatch):
        invoke("install", f"{SOURCE}@{SKILL}")

        def fake_get(url, params=None, headers=None, **kwargs):
            body = [{"sha": "abc1234def", "commit": {"committer": {"date": "2099-01-01T00:00:00Z"}}}]
            return httpx.Response(200, json=body, request=httpx.Request("GET", url))

        monkeypatch.setattr("agent_skills.store.httpx.get", fake_get)

        result = invoke("update", "--check", "--json")

        assert result.exit_code == 0, result.output
        [info] = json.loads(result.output)
        assert info["name"] == SKILL
        assert info["hasUpdate"] is True
        assert info["latestSHA"] == "abc1234def"

    def test_remove_several_with_a_missing_one(self):
        invoke("create", "one")

        result = invoke("remove", "one", "missing")

        assert result.exit_code == 1
        assert skill_names() == []


class TestHealthCommands:
    def test_check_and_repair(self, home):
        invoke("create", "my-skill", "-a", "Cursor")
        assert invoke("check").exit_code == 0

        shutil.rmtree(home / ".agents/skills/my-skill")

        assert invoke("check").exit_code == 1
        report = json.loads(invoke("check", "--json").output)
        assert len(report["broken_links"]) == 1

        assert invoke("repair").exit_code == 0
        assert invoke("check").exit_code == 0


class TestAgentCommands:
    def test_add_list_remove(self):
        result = invoke("agents", "add", "Tool")
        assert result.exit_code == 0, result.output

        agents = {a["name"]: a for a in json.loads(invoke("agents", "list", "--json").output)}
        assert agents["Tool"]["isCustom"] is True
        assert agents["Tool"]["globalPath"] == ".tool/skills"
        assert agents["Cursor"]["isCustom"] is False

        assert invoke("agents", "remove", "Tool").exit_code == 0
        agents = [a["name"] for a in json.loads(invoke("agents", "list", "--json").output)]
        assert "Tool" not in agents

    def test_add_conflicting_name(self):
        result = invoke("agents", "add", "cursor")

        assert result.exit_code == 1

    def test_remove_builtin(self):
        assert invoke("agents", "remove", "Cursor").exit_code == 1


class TestTransferCommands:
    def test_export_and_import_into_another_home(self, tmp_path, monkeypatch):
        invoke("install", f"{SOURCE}@{SKILL}", "-a", "Cursor")
        invoke("agents", "add", "Tool")
        export_path = tmp_path / "skills.yaml"

        result = invoke("export", str(export_path))
        assert result.exit_code == 0, result.output
        assert export_path.exists()

        other_home = tmp_path / "other-home"
        other_home.mkdir()
        monkeypatch.setenv("AGENT_SKILLS_HOME", str(other_home))

        result = invoke("import", str(export_path))

        assert result.exit_code == 0, result.output
        assert skill_names() == [SKILL]
        assert (other_home / ".cursor/skills" / SKILL).is_symlink()
        assert (other_home / ".skills-manager/custom-agents.json").exists()

    def test_import_invalid_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{bad")

        assert invoke("import", str(path)).exit_code == 1


class TestProjectCommands:
    def test_enable_install_list_disable(self, project):
        invoke("create", "my-skill")

        assert invoke("project", "enable", "Cursor", "-p", str(project)).exit_code == 0
        assert (project / ".cursor/skills").is_dir()

        result = invoke("project", "install", "my-skill", "-p", str(project))
        assert result.exit_code == 0, result.output
        assert (project / ".cursor/skills/my-skill").is_symlink()

        data = json.loads(invoke("project", "list", str(project), "--json").output)
        assert [a["name"] for a in data["agents"]] == ["Cursor"]
        assert data["agents"][0]["skillCount"] == 1
        assert [s["name"] for s in data["skills"]] == ["my-skill"]
        assert data["skills"][0]["is_global"] is True

        assert invoke("project", "disable", "Cursor", "-p", str(project)).exit_code == 1
        assert invoke("project", "disable", "Cursor", "-p", str(project), "--force").exit_code == 0
        assert not (project / ".cursor").exists()
        assert (project.parent / "home/.agents/skills/my-skill").is_dir()

    def test_clone_failure_exits_non_zero(self, project, tmp_path):
        invoke("create", "my-skill")
        invoke("project", "install", "my-skill", "-p", str(project), "-a", "Cursor")
        target = tmp_path / "clone-target"
        target.mkdir()
        (target / ".cursor").write_text("not a directory")

        result = invoke("project", "clone", str(project), str(target))

        assert result.exit_code == 1
        assert ".cursor/skills/my-skill" in result.output

    def test_force_disable_failure_is_reported(self, project, monkeypatch):
        invoke("create", "my-skill")
        invoke("project", "install", "my-skill", "-p", str(project), "-a", "Cursor")

        def fail(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr("agent_skills.project.remove_entry", fail)

        result = invoke("project", "disable", "Cursor", "-p", str(project), "--force")

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_install_without_enabled_agents(self, project):
        invoke("create", "my-skill")

        result = invoke("project", "install", "my-skill", "-p", str(project))

        assert result.exit_code == 1

    def test_install_remote_into_project(self, project):
        result = invoke("project", "install", f"{SOURCE}@{SKILL}", "-p", str(project), "-a", "Codex")

        assert result.exit_code == 0, result.output
        copy = project / ".codex/skills" / SKILL
        assert copy.is_dir() and not copy.is_symlink()

    def test_remove_and_clone(self, project, tmp_path):
        invoke("create", "my-skill")
        invoke("project", "install", "my-skill", "-p", str(project), "-a", "Cursor")
        target = tmp_path / "clone-target"
        target.mkdir()

        assert invoke("project", "clone", str(project), str(target)).exit_code == 0
        assert (target / ".cursor/skills/my-skill").is_symlink()

        assert invoke("project", "remove", "my-skill", "-p", str(project)).exit_code == 0
        assert not (project / ".cursor/skills/my-skill").exists()
        assert invoke("project", "remove", "my-skill", "-p", str(project)).exit_code == 1
