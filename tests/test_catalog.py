"""Tests for the upstream agent catalog."""

import json

import httpx
import pytest

from agent_skills.agents import AgentRegistry
from agent_skills.catalog import AgentCatalog, parse_agents_from_typescript
from agent_skills.errors import FetchError

AGENTS_TS = """\
import { join } from 'path';

export const agents: Record<AgentType, AgentConfig> = {
  amp: {
    name: 'amp',
    displayName: 'Amp',
    skillsDir: '.agents/skills',
    globalSkillsDir: join(configHome, 'agents/skills'),
    detectInstalled: async () => {
      return existsSync(join(configHome, 'amp'));
    },
  },
  'claude-code': {
    name: 'claude-code',
    displayName: 'Claude Code',
    skillsDir: '.claude/skills',
    globalSkillsDir: '~/.claude/skills',
  },
  newbie: {
    name: 'newbie',
    displayName: 'Newbie',
    skillsDir: '.newbie/skills',
  },
  broken: {
    name: 'broken',
  },
};
"""


def make_client(text=AGENTS_TS, status=200):
    def handler(request):
        return httpx.Response(status, text=text)

    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def catalog(paths, registry):
    return AgentCatalog(paths, registry, client=make_client())


class TestParseAgents:
    def test_parses_blocks(self):
        agents = {a.name: a for a in parse_agents_from_typescript(AGENTS_TS)}

        assert list(agents) == ["Amp", "Claude Code", "Newbie"]
        assert agents["Amp"].global_path == ".agents/skills"
        assert agents["Amp"].local_path == ".agents/skills"
        assert agents["Claude Code"].global_path == ".claude/skills"
        assert agents["Newbie"].global_path == ".newbie/skills"


class TestCatalog:
    def test_check_updates_finds_new_agents(self, catalog, paths):
        info = catalog.check_updates()

        assert info.has_update
        assert [a.name for a in info.new_agents] == ["Newbie"]
        cache = json.loads(paths.agent_update_cache_file.read_text())
        assert cache["newAgentNames"] == ["Newbie"]
        assert cache["lastCheckTime"] == info.last_check_time

    def test_names_compare_case_insensitively(self, paths, registry):
        catalog = AgentCatalog(paths, registry, client=make_client(AGENTS_TS.replace("'Amp'", "'AMP'")))

        assert [a.name for a in catalog.check_updates().new_agents] == ["Newbie"]

    def test_apply_updates_adopts_new_agents(self, catalog, paths):
        catalog.check_updates()

        added = catalog.apply_updates()

        assert [a.name for a in added] == ["Newbie"]
        assert "Newbie" in AgentRegistry.load(paths)
        assert catalog.cached().new_agent_names == []

    def test_dismiss(self, catalog):
        catalog.check_updates()

        catalog.dismiss()

        cache = catalog.cached()
        assert cache.dismissed_at > 0
        assert cache.new_agent_names == []

    def test_http_error(self, paths, registry):
        catalog = AgentCatalog(paths, registry, client=make_client(status=500))

        with pytest.raises(FetchError):
            catalog.check_updates()
        assert not paths.agent_update_cache_file.exists()
