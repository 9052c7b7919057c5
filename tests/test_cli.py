import json

import pytest

from ralph.cli import build_parser, main
from ralph.loop import build_prompt
from ralph.prd import load


def _write_prd(path, stories, name="Demo"):
    path.write_text(json.dumps({"name": name, "userStories": stories}), encoding="utf-8")
    return str(path)


def _story(story_id, title, priority=1, depends_on=None, passes=False):
    return {
        "id": story_id,
        "title": title,
        "acceptanceCriteria": ["it works"],
        "priority": priority,
        "passes": passes,
        "dependsOn": depends_on or [],
    }


@pytest.fixture
def prd_path(tmp_path):
    return _write_prd(
        tmp_path / "prd.json",
        [
            _story("US-001", "First", priority=1),
            _story("US-002", "Second", priority=2, depends_on=["US-001"]),
        ],
    )


@pytest.fixture
def outside_repo(tmp_path, monkeypatch):
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_init_writes_valid_prd(tmp_path, capsys):
    target = tmp_path / "new.json"
    assert main(["init", "My Project", "Something nice", "--prd", str(target)]) == 0
    prd = load(target)
    assert prd.name == "My Project"
    assert prd.description == "Something nice"
    assert prd.branch_name == "my-project"
    assert [s.id for s in prd.user_stories] == ["US-001"]
    assert target.read_text(encoding="utf-8").endswith("}\n")
    assert f"Created PRD at {target}" in capsys.readouterr().err


def test_init_default_path(outside_repo):
    assert main(["init", "Demo"]) == 0
    assert load(outside_repo / "prd.json").name == "Demo"


def test_init_requires_name(capsys):
    assert main(["init"]) == 1
    assert "requires at least 1 arg(s), only received 0" in capsys.readouterr().err


@pytest.mark.parametrize(
    "argv",
    [["run"], ["status"], ["story", "next"], ["story", "prompt"]],
)
def test_commands_require_prd(argv, capsys):
    assert main(argv) == 1
    assert "--prd flag is required" in capsys.readouterr().err


def test_invalid_prd_reported(tmp_path, capsys):
    path = _write_prd(tmp_path / "bad.json", [_story("US-001", "First")], name="")
    assert main(["status", "--prd", path]) == 1
    assert "load prd: validate prd: prd name is required" in capsys.readouterr().err


def test_run_dry_run_outputs_results(prd_path, capsys):
    assert main(["--dry-run", "run", "--prd", prd_path]) == 0
    output = json.loads(capsys.readouterr().out)
    assert output["status"] == "completed"
    assert [r["storyId"] for r in output["results"]] == ["US-001", "US-002"]
    assert all(r["status"] == "skipped" for r in output["results"])
    assert all("error" not in r for r in output["results"])


def test_run_failure_reports_loop_error(tmp_path, capsys):
    assert main(["run", "--prd", str(tmp_path / "missing.json")]) == 1
    assert "ralph loop: load prd:" in capsys.readouterr().err


def test_status_reports_progress(prd_path, outside_repo, capsys):
    assert main(["--prd", prd_path, "status"]) == 0
    output = json.loads(capsys.readouterr().out)
    assert list(output) == sorted(output)
    assert output["completed"] == 0
    assert output["total"] == 2
    assert output["isComplete"] is False
    assert output["isRepo"] is False
    assert output["currentBranch"] == ""
    assert output["branch"] == load(prd_path).work_dir()
    assert output["nextStory"] == {"id": "US-001", "title": "First"}
    assert output["blockedStories"] == [
        {"dependsOn": ["US-001"], "id": "US-002", "title": "Second"}
    ]


def test_status_complete_prd_has_no_next(tmp_path, outside_repo, capsys):
    path = _write_prd(tmp_path / "done.json", [_story("US-001", "First", passes=True)])
    assert main(["status", "--prd", path]) == 0
    output = json.loads(capsys.readouterr().out)
    assert output["isComplete"] is True
    assert "nextStory" not in output
    assert "blockedStories" not in output


def test_story_next_outputs_story_and_prompt(prd_path, capsys):
    assert main(["story", "next", "--prd", prd_path]) == 0
    output = json.loads(capsys.readouterr().out)
    prd = load(prd_path)
    assert output["story"] == prd.user_stories[0].to_dict()
    assert output["prompt"] == build_prompt(prd, prd.user_stories[0])


def test_story_next_when_complete(tmp_path, capsys):
    path = _write_prd(tmp_path / "done.json", [_story("US-001", "First", passes=True)])
    assert main(["story", "next", "--prd", path]) == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "All stories are complete!" in captured.err


def test_story_prompt_for_specific_story(prd_path, capsys):
    assert main(["story", "prompt", "--prd", prd_path, "--story", "US-002"]) == 0
    prd = load(prd_path)
    assert capsys.readouterr().out == build_prompt(prd, prd.find_story("US-002"))


def test_story_prompt_unknown_story(prd_path, capsys):
    assert main(["story", "prompt", "--prd", prd_path, "--story", "US-999"]) == 1
    assert "story US-999 not found" in capsys.readouterr().err


def test_story_prompt_when_complete(tmp_path, capsys):
    path = _write_prd(tmp_path / "done.json", [_story("US-001", "First", passes=True)])
    assert main(["story", "prompt", "--prd", path]) == 1
    assert "all stories are complete" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage: ralph" in capsys.readouterr().out


def test_parser_timeout_flags():
    parser = build_parser()
    args = parser.parse_args(["run", "--timeout", "42", "--no-timeout"])
    assert args.timeout == 42
    assert args.no_timeout is True
    plain = parser.parse_args(["run"])
    assert not hasattr(plain, "timeout")