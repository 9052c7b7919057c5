import json

from ralph.prd import Prd, load
from ralph.slug import slugify
from ralph.template import default_prd


def test_default_fields():
    prd = default_prd("My Project", "A thing")
    assert prd.name == "My Project"
    assert prd.description == "A thing"
    assert prd.branch_name == slugify("My Project")


def test_default_story():
    prd = default_prd("x", "")
    assert [s.id for s in prd.user_stories] == ["US-001"]
    first = prd.user_stories[0]
    assert first.title == "Project scaffolding and setup"
    assert first.acceptance_criteria == [
        "Project structure is created",
        "Build system is configured",
        "Initial commit is made",
    ]
    assert first.priority == 1
    assert first.passes is False
    assert first.depends_on == []


def test_default_is_valid_and_next_story_is_first():
    prd = default_prd("Demo", "")
    prd.validate()
    assert prd.next_story() is prd.user_stories[0]


def test_default_description_omitted_from_json_when_empty():
    data = json.loads(default_prd("Demo", "").to_json())
    assert "description" not in data
    assert Prd.from_dict(data) == default_prd("Demo", "")


def test_default_saves_and_loads(tmp_path):
    path = tmp_path / "prd.json"
    original = default_prd("Round Trip", "desc")
    original.save(path)
    assert load(path) == original


def test_instances_are_independent():
    first = default_prd("a", "")
    second = default_prd("a", "")
    first.user_stories[0].passes = True
    assert second.user_stories[0].passes is False