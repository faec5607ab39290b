from dataclasses import dataclass, field

import pytest

from projvars.core import properties as P
from projvars.core.engine import DERIVED_SOURCE_NAME, OverwriteMode, ResolutionEngine, select_primary
from projvars.core.interfaces import Candidate, SourceError, SourceKind
from projvars.sources.env import EnvSource
from projvars.sources.overrides import MappingSource, OverridesSource


@dataclass
class RecordingSource:
    """Serves fixed values and remembers which properties it was asked for."""

    name: str
    values: dict
    kind: str = SourceKind.FILE
    alternative: bool = False
    asked: list = field(default_factory=list)

    def retrieve(self, prop):
        self.asked.append(prop)
        return self.values.get(prop.key)


@dataclass
class FailingSource:
    name: str = "broken"
    kind: str = SourceKind.FILE
    alternative: bool = False
    prop_specific: bool = True
    calls: int = 0

    def retrieve(self, prop):
        self.calls += 1
        raise SourceError(self.name, "boom", prop=prop if self.prop_specific else None)


def test_select_primary_prefers_rank_then_first():
    a = Candidate(P.NAME, "a", "s1", SourceKind.FILE, 2)
    b = Candidate(P.NAME, "b", "s2", SourceKind.FILE, 2)
    c = Candidate(P.NAME, "c", "s3", SourceKind.FILE, 1)
    assert select_primary([c, a, b]) is a
    assert select_primary([]) is None


def test_mode_all_keeps_highest_priority_and_records_everything():
    high = RecordingSource("high", {"VERSION": "1.0"})
    low = RecordingSource("low", {"VERSION": "2.0"})
    resolved = ResolutionEngine([high, low], overwrite=OverwriteMode.ALL, derive=False).resolve()
    assert resolved.primary(P.VERSION) == "1.0"
    assert [c.value for c in resolved.candidates(P.VERSION)] == ["1.0", "2.0"]
    assert resolved.get(P.VERSION).source == "high"


def test_mode_none_does_not_query_lower_sources():
    high = RecordingSource("high", {"VERSION": "1.0"})
    low = RecordingSource("low", {"VERSION": "2.0", "NAME": "proj"})
    resolved = ResolutionEngine([high, low], overwrite="none", derive=False).resolve()
    assert P.VERSION not in low.asked
    assert P.NAME in low.asked
    assert resolved.primary(P.NAME) == "proj"
    assert len(resolved.candidates(P.VERSION)) == 1


def test_mode_main_skips_derived_values_for_resolved_properties():
    src = RecordingSource("src", {"REPO_CLONE_URL": "git@github.com:user/repo.git", "REPO_WEB_URL": "https://example.com/x"})
    resolved = ResolutionEngine([src], overwrite="main").resolve()
    assert resolved.primary(P.REPO_WEB_URL) == "https://example.com/x"
    assert all(c.source != DERIVED_SOURCE_NAME for c in resolved.candidates(P.REPO_WEB_URL))
    # gaps are still filled by derivation
    assert resolved.primary(P.REPO_ISSUES_URL) == "https://github.com/user/repo/issues"


def test_mode_alternative_records_derived_but_not_lower_main_sources():
    high = RecordingSource("high", {"REPO_CLONE_URL": "git@github.com:user/repo.git", "REPO_WEB_URL": "https://example.com/x"})
    low = RecordingSource("low", {"REPO_WEB_URL": "https://example.com/y"})
    resolved = ResolutionEngine([high, low], overwrite="alternative").resolve()
    assert P.REPO_WEB_URL not in low.asked
    sources = [c.source for c in resolved.candidates(P.REPO_WEB_URL)]
    assert sources == ["high", DERIVED_SOURCE_NAME]
    assert resolved.primary(P.REPO_WEB_URL) == "https://example.com/x"


def test_derived_candidates_are_alternative_and_rank_lowest():
    src = RecordingSource("src", {"REPO_CLONE_URL": "https://gitlab.com/group/proj.git", "NAME": "My Proj"})
    resolved = ResolutionEngine([src]).resolve()
    web = resolved.get(P.REPO_WEB_URL)
    assert web.value == "https://gitlab.com/group/proj"
    assert web.primary.alternative is True
    assert web.primary.rank == 0
    assert resolved.primary(P.NAME_MACHINE_READABLE) == "My_Proj"


def test_name_derived_from_machine_readable_name():
    src = RecordingSource("src", {"NAME_MACHINE_READABLE": "tool_x"})
    resolved = ResolutionEngine([src]).resolve()
    assert resolved.primary(P.NAME) == "tool_x"


def test_machine_name_derived_from_web_url_when_no_name():
    src = RecordingSource("src", {"REPO_CLONE_URL": "git@github.com:user/fancy.tool.git"})
    resolved = ResolutionEngine([src]).resolve()
    assert resolved.primary(P.NAME_MACHINE_READABLE) == "fancy_tool"
    # second derivation pass turns the machine name into a name
    assert resolved.primary(P.NAME) == "fancy_tool"


def test_resolve_is_idempotent():
    sources = [
        RecordingSource("a", {"VERSION": "1.0", "REPO_CLONE_URL": "git@github.com:user/repo.git"}),
        RecordingSource("b", {"VERSION": "0.9", "NAME": "repo"}),
    ]
    engine = ResolutionEngine(sources)
    first = engine.resolve()
    second = engine.resolve()
    assert dict(first.entries) == dict(second.entries)
    for prop in first:
        assert first.candidates(prop) == second.candidates(prop)


def test_property_specific_errors_are_recorded_and_do_not_abort():
    broken = FailingSource()
    ok = RecordingSource("ok", {"VERSION": "1.0"})
    resolved = ResolutionEngine([broken, ok], derive=False).resolve()
    assert resolved.primary(P.VERSION) == "1.0"
    assert len(resolved.errors) == len(P.ALL_PROPERTIES)
    assert resolved.errors[0].source == "broken"


def test_source_wide_error_disables_source_for_the_run():
    broken = FailingSource(prop_specific=False)
    resolved = ResolutionEngine([broken, RecordingSource("ok", {"NAME": "x"})], derive=False).resolve()
    assert broken.calls == 1
    assert len(resolved.errors) == 1
    assert resolved.primary(P.NAME) == "x"


@pytest.mark.parametrize("mode", OverwriteMode.CHOICES)
def test_cli_override_beats_environment_in_every_mode(mode):
    sources = [
        OverridesSource({"PROJECT_NAME": "from-cli"}),
        EnvSource({"PROJECT_NAME": "from-env"}),
    ]
    resolved = ResolutionEngine(sources, overwrite=mode).resolve()
    assert resolved.primary(P.NAME) == "from-cli"


def test_as_dict_uses_prefix_and_schema_order():
    src = MappingSource("m", {"VERSION": "1", "NAME": "n", "BUILD_ARCH": "x86"})
    resolved = ResolutionEngine([src], derive=False).resolve()
    assert list(resolved.as_dict()) == ["PROJECT_BUILD_ARCH", "PROJECT_NAME", "PROJECT_VERSION"]
    assert resolved.as_dict("X_", only=[P.NAME]) == {"X_NAME": "n"}


def test_empty_string_is_a_value():
    src = MappingSource("m", {"BUILD_TAG": ""})
    resolved = ResolutionEngine([src], derive=False).resolve()
    assert P.BUILD_TAG in resolved
    assert resolved.primary(P.BUILD_TAG) == ""
    assert P.BUILD_BRANCH not in resolved


def test_invalid_mode_rejected():
    with pytest.raises(ValueError):
        ResolutionEngine([], overwrite="sometimes")
