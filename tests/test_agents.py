"""Tests for the agent registry and custom agents."""

import json

import pytest

from agent_skills.agents import BUILTIN_AGENTS, AgentDescriptor, AgentRegistry
from agent_skills.errors import AgentConflictError, AgentNotFoundError, SkillsError


class TestBuiltins:
    def test_builtin_table(self):
        registry = AgentRegistry()

        assert "Claude Code" in registry
        assert registry.get("Cursor").global_path == ".cursor/skills"
        assert registry.get("Universal").global_path == ".agents/skills"
        assert len(registry) == len(BUILTIN_AGENTS)

    def test_shared_global_paths_are_allowed(self):
        registry = AgentRegistry()

        assert registry.get("Amp").global_path == registry.get("Replit").global_path

    def test_unknown_agent(self):
        with pytest.raises(AgentNotFoundError):
            AgentRegistry().get("Nope")

    def test_resolve_names_rejects_unknown(self, registry):
        with pytest.raises(AgentNotFoundError):
            registry.resolve_names(["Cursor", "Nope"])


class TestCollisions:
    def test_case_insensitive_duplicate_is_dropped(self):
        registry = AgentRegistry(
            builtins=[AgentDescriptor("Cursor", ".cursor/skills", ".cursor/skills")],
            customs=[AgentDescriptor("cursor", ".other/skills", ".other/skills", is_custom=True)],
        )

        assert registry.names == ["Cursor"]
        assert registry.customs == []


class TestCustomAgents:
    def test_add_custom_uses_slug_paths_and_persists(self, paths):
        registry = AgentRegistry.load(paths)

        agent = registry.add_custom("My Agent")

        assert agent.global_path == ".my-agent/skills"
        assert agent.local_path == ".my-agent/skills"
        reloaded = AgentRegistry.load(paths)
        assert reloaded.get("My Agent").is_custom
        data = json.loads(paths.custom_agents_file.read_text())
        assert data == [{"name": "My Agent", "globalPath": ".my-agent/skills",
                         "localPath": ".my-agent/skills"}]

    def test_add_custom_with_explicit_paths(self, paths):
        registry = AgentRegistry.load(paths)

        agent = registry.add_custom("Tool", global_path=".config/tool/skills", local_path=".tool/skills")

        assert agent.global_dir(paths.home) == paths.home / ".config/tool/skills"

    def test_add_custom_rejects_builtin_name_case_insensitively(self, paths):
        registry = AgentRegistry.load(paths)

        with pytest.raises(AgentConflictError):
            registry.add_custom("claude code")
        assert not paths.custom_agents_file.exists()

    def test_add_custom_rejects_duplicate_custom(self, paths):
        registry = AgentRegistry.load(paths)
        registry.add_custom("Tool")

        with pytest.raises(AgentConflictError):
            registry.add_custom("TOOL")

    def test_add_custom_rejects_empty_name(self, paths):
        with pytest.raises(SkillsError):
            AgentRegistry.load(paths).add_custom("   ")

    def test_remove_custom(self, paths):
        registry = AgentRegistry.load(paths)
        registry.add_custom("Tool")

        registry.remove_custom("Tool")

        assert "Tool" not in AgentRegistry.load(paths)

    def test_builtin_cannot_be_removed(self, paths):
        with pytest.raises(AgentNotFoundError):
            AgentRegistry.load(paths).remove_custom("Cursor")

    def test_malformed_custom_file_is_ignored(self, paths):
        paths.config_dir.mkdir(parents=True)
        paths.custom_agents_file.write_text("{oops")

        registry = AgentRegistry.load(paths)

        assert registry.customs == []
        assert "Cursor" in registry

    def test_known_agents_follow_builtins(self, paths):
        paths.config_dir.mkdir(parents=True)
        paths.known_agents_file.write_text(json.dumps([
            {"name": "Newbie", "globalPath": ".newbie/skills", "localPath": ".newbie/skills"},
        ]))

        registry = AgentRegistry.load(paths)

        assert registry.names[-1] == "Newbie"
        assert not registry.get("Newbie").is_custom
