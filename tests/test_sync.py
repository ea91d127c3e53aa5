"""Tests for global and project fan-out convergence."""

import os

import pytest

from agent_skills.errors import AgentNotFoundError, SkillNotFoundError
from agent_skills.links import link_target
from agent_skills.sync import GlobalSynchronizer, ProjectSynchronizer

SKILL = "react-best-practices"


@pytest.fixture
def sync(paths, registry):
    return GlobalSynchronizer(paths, registry)


def tree_contents(root):
    result = {}
    for dirpath, _, files in os.walk(root):
        for f in files:
            full = os.path.join(dirpath, f)
            with open(full, "rb") as fh:
                result[os.path.relpath(full, root)] = fh.read()
    return result


class TestGlobalSynchronizer:
    def test_links_point_at_canonical_directory(self, sync, home, canonical):
        report = sync.set_desired_agents(SKILL, {"Cursor", "Claude Code"})

        assert sorted(report.added) == ["Claude Code", "Cursor"]
        assert report.removed == []
        for agent_dir in (".cursor/skills", ".claude/skills"):
            link = home / agent_dir / SKILL
            assert link.is_symlink()
            assert link_target(link) == canonical

    def test_second_call_is_a_no_op(self, sync, canonical):
        sync.set_desired_agents(SKILL, {"Cursor", "Claude Code"})

        report = sync.set_desired_agents(SKILL, {"Cursor", "Claude Code"})

        assert report.added == []
        assert report.removed == []
        assert not report.changed

    def test_shrinking_the_set_removes_only_dropped_agents(self, sync, home, canonical):
        sync.set_desired_agents(SKILL, {"Cursor", "Claude Code"})

        report = sync.set_desired_agents(SKILL, {"Cursor"})

        assert report.removed == ["Claude Code"]
        assert report.added == []
        assert (home / ".cursor/skills" / SKILL).is_symlink()
        assert not os.path.lexists(home / ".claude/skills" / SKILL)

    def test_linked_agents(self, sync, canonical):
        sync.set_desired_agents(SKILL, {"Codex"})

        assert sync.linked_agents(SKILL) == ["Codex"]

    def test_agents_sharing_a_directory_converge_together(self, sync, home, canonical):
        report = sync.set_desired_agents(SKILL, {"Amp"})

        assert report.added == ["Amp"]
        assert (home / ".config/agents/skills" / SKILL).is_symlink()
        assert sync.linked_agents(SKILL) == ["Amp", "Replit"]

        report = sync.set_desired_agents(SKILL, set())
        assert report.removed == ["Amp", "Replit"]

    def test_store_agent_is_never_linked(self, sync, canonical):
        report = sync.set_desired_agents(SKILL, {"Universal"})

        assert report.added == []
        assert canonical.is_dir() and not canonical.is_symlink()
        assert sync.linked_agents(SKILL) == []

    def test_unknown_agent_is_rejected_before_any_change(self, sync, home, canonical):
        with pytest.raises(AgentNotFoundError):
            sync.set_desired_agents(SKILL, {"Cursor", "Nope"})

        assert not os.path.lexists(home / ".cursor/skills" / SKILL)

    def test_missing_canonical_skill(self, sync):
        with pytest.raises(SkillNotFoundError):
            sync.set_desired_agents("missing", {"Cursor"})

    def test_disable_preserves_real_directory(self, sync, home, canonical, make_skill):
        user_dir = make_skill(home / ".codex/skills", SKILL, description="hand-made")

        report = sync.set_desired_agents(SKILL, set())

        assert report.removed == []
        assert user_dir.is_dir() and not user_dir.is_symlink()
        assert (user_dir / "SKILL.md").exists()

    def test_enable_skips_real_directory(self, sync, home, canonical, make_skill):
        make_skill(home / ".codex/skills", SKILL)

        report = sync.set_desired_agents(SKILL, {"Codex"})

        assert report.skipped == ["Codex"]
        assert report.added == []
        assert not (home / ".codex/skills" / SKILL).is_symlink()

    def test_stale_link_is_replaced(self, sync, home, canonical, tmp_path):
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        link = home / ".cursor/skills" / SKILL
        link.parent.mkdir(parents=True)
        link.symlink_to(elsewhere)

        report = sync.set_desired_agents(SKILL, {"Cursor"})

        assert report.added == ["Cursor"]
        assert link_target(link) == canonical

    def test_relative_link_counts_as_valid(self, sync, home, canonical):
        link = home / ".cursor/skills" / SKILL
        link.parent.mkdir(parents=True)
        os.symlink(os.path.join("..", "..", ".agents", "skills", SKILL), link)

        report = sync.set_desired_agents(SKILL, {"Cursor"})

        assert report.added == []
        assert sync.linked_agents(SKILL) == ["Cursor"]

    def test_failure_for_one_agent_does_not_stop_others(self, sync, home, canonical):
        # a file where the agent's home directory should be
        (home / ".codex").write_text("not a directory")

        report = sync.set_desired_agents(SKILL, {"Cursor", "Codex"})

        assert report.added == ["Cursor"]
        assert "Codex" in report.failed
        assert not report.ok
        assert (home / ".cursor/skills" / SKILL).is_symlink()


class TestProjectSynchronizer:
    @pytest.fixture
    def psync(self, paths, registry):
        return ProjectSynchronizer(paths, registry)

    def test_local_origin_is_copied(self, psync, project, make_skill):
        source = make_skill(project / ".cursor/skills", "team-rules", description="Team rules",
                            files={"docs/a.md": "alpha"})

        report = psync.set_desired_agents(project, "team-rules", {"Cursor", "Codex"})

        copy = project / ".codex/skills/team-rules"
        assert report.added == ["Codex"]
        assert copy.is_dir() and not copy.is_symlink()
        assert tree_contents(copy) == tree_contents(source)

    def test_global_origin_is_linked(self, psync, project, canonical):
        link = project / ".cursor/skills" / SKILL
        link.parent.mkdir(parents=True)
        link.symlink_to(canonical)

        report = psync.set_desired_agents(project, SKILL, {"Cursor", "Claude Code"})

        new_link = project / ".claude/skills" / SKILL
        assert report.added == ["Claude Code"]
        assert new_link.is_symlink()
        assert link_target(new_link) == canonical

    def test_removal_runs_after_additions(self, psync, project, make_skill):
        make_skill(project / ".cursor/skills", "team-rules")

        report = psync.set_desired_agents(project, "team-rules", {"Codex"})

        assert report.added == ["Codex"]
        assert report.removed == ["Cursor"]
        assert (project / ".codex/skills/team-rules/SKILL.md").exists()
        assert not os.path.lexists(project / ".cursor/skills/team-rules")

    def test_idempotent(self, psync, project, make_skill):
        make_skill(project / ".cursor/skills", "team-rules")
        psync.set_desired_agents(project, "team-rules", {"Cursor", "Codex"})

        report = psync.set_desired_agents(project, "team-rules", {"Cursor", "Codex"})

        assert not report.changed

    def test_missing_source(self, psync, project):
        with pytest.raises(SkillNotFoundError):
            psync.set_desired_agents(project, "nothing-here", {"Cursor"})
