"""Starter PRD used when scaffolding a new project."""

from .prd import Prd, Story
from .slug import slugify


def default_prd(name: str, description: str = "") -> Prd:
    """Return a starter PRD with one example story."""
    return Prd(
        name=name,
        branch_name=slugify(name),
        description=description,
        user_stories=[
            Story(
                id="US-001",
                title="Project scaffolding and setup",
                description=(
                    "As a developer, I want the project scaffolded so I can start implementing."
                ),
                acceptance_criteria=[
                    "Project structure is created",
                    "Build system is configured",
                    "Initial commit is made",
                ],
                priority=1,
                passes=False,
                notes="",
                depends_on=[],
            )
        ],
    )