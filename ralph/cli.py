"""Command line interface for the PRD-driven agent loop."""

from __future__ import annotations

import argparse
import functools
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from . import gitops
from .gitops import GitError
from .loop import LoopError, Options, build_prompt
from .loop import run as run_loop
from .prd import PrdError, Story, load
from .template import default_prd

DEFAULT_TIMEOUT = 300
DEFAULT_OUTPUT = "./prd.json"

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class _CommandError(Exception):
    """A command failed; the message is shown to the user."""


@dataclass
class _Settings:
    prd_path: str
    agent: str
    dry_run: bool
    timeout: int


def _settings(args: argparse.Namespace) -> _Settings:
    timeout = getattr(args, "timeout", DEFAULT_TIMEOUT)
    if getattr(args, "no_timeout", False):
        timeout = 0
    return _Settings(
        prd_path=getattr(args, "prd", ""),
        agent=getattr(args, "agent", ""),
        dry_run=getattr(args, "dry_run", False),
        timeout=timeout,
    )


def _encode(obj: Any) -> str:
    text = json.dumps(obj, indent=2, ensure_ascii=False)
    for char, escaped in _JSON_ESCAPES.items():
        text = text.replace(char, escaped)
    return text + "\n"


def _sorted(mapping: dict[str, Any]) -> dict[str, Any]:
    return dict(sorted(mapping.items()))


def _emit(obj: Any) -> None:
    sys.stdout.write(_encode(obj))


def _require_prd(settings: _Settings) -> str:
    if not settings.prd_path:
        raise _CommandError("--prd flag is required")
    return settings.prd_path


def _load(settings: _Settings):
    path = _require_prd(settings)
    try:
        return load(path)
    except PrdError as exc:
        raise _CommandError(f"load prd: {exc}") from exc


def _cmd_init(args: argparse.Namespace) -> int:
    positional = args.args
    if not positional:
        raise _CommandError("requires at least 1 arg(s), only received 0")
    name = positional[0]
    description = positional[1] if len(positional) > 1 else ""
    output_path = _settings(args).prd_path or DEFAULT_OUTPUT

    text = default_prd(name, description).to_json() + "\n"
    try:
        Path(output_path).write_text(text, encoding="utf-8")
    except OSError as exc:
        raise _CommandError(f"write: {exc}") from exc
    print(f"Created PRD at {output_path}", file=sys.stderr)
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    settings = _settings(args)
    path = _require_prd(settings)
    try:
        results = run_loop(
            Options(
                prd_path=path,
                agent_cmd=settings.agent,
                dry_run=settings.dry_run,
                timeout=settings.timeout,
            )
        )
    except LoopError as exc:
        raise _CommandError(f"ralph loop: {exc}") from exc

    status = "failed" if any(r.status == "failed" for r in results) else "completed"
    _emit({"results": [r.to_dict() for r in results], "status": status})
    return 0


def _cmd_status(args: argparse.Namespace) -> int:
    prd = _load(_settings(args))
    completed, total = prd.progress()
    next_story = prd.next_story()
    blocked = prd.blocked_stories()

    work_dir = "."
    try:
        branch = gitops.current_branch(work_dir)
    except GitError:
        branch = ""

    output: dict[str, Any] = {
        "name": prd.name,
        "description": prd.description,
        "branch": prd.work_dir(),
        "currentBranch": branch,
        "isRepo": gitops.is_repo(work_dir),
        "completed": completed,
        "total": total,
        "isComplete": prd.is_complete(),
    }
    if next_story is not None:
        output["nextStory"] = {"id": next_story.id, "title": next_story.title}
    if blocked:
        output["blockedStories"] = [
            {"dependsOn": list(s.depends_on), "id": s.id, "title": s.title} for s in blocked
        ]
    _emit(_sorted(output))
    return 0


def _cmd_story_next(args: argparse.Namespace) -> int:
    prd = _load(_settings(args))
    story = prd.next_story()
    if story is None:
        if prd.is_complete():
            print("All stories are complete!", file=sys.stderr)
            return 0
        print(
            "No stories available - all remaining stories are blocked by dependencies.",
            file=sys.stderr,
        )
        return 1
    _emit({"prompt": build_prompt(prd, story), "story": story.to_dict()})
    return 0


def _cmd_story_prompt(args: argparse.Namespace) -> int:
    prd = _load(_settings(args))
    target: Story | None
    if args.story:
        target = prd.find_story(args.story)
        if target is None:
            raise _CommandError(f"story {args.story} not found")
    else:
        target = prd.next_story()
        if target is None:
            if prd.is_complete():
                raise _CommandError("all stories are complete")
            raise _CommandError("no available stories (blocked by dependencies)")
    sys.stdout.write(build_prompt(prd, target))
    return 0


def _print_help(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    parser.print_help(sys.stdout)
    return 0


def _global_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    suppress = argparse.SUPPRESS
    common.add_argument("--prd", default=suppress, help="Path to PRD JSON file")
    common.add_argument(
        "--agent", default=suppress, help="Agent CLI command to use (default: auto-detect)"
    )
    common.add_argument(
        "--dry-run", action="store_true", default=suppress, help="Print prompts without executing"
    )
    common.add_argument(
        "--timeout",
        type=int,
        default=suppress,
        help=f"Max seconds per agent execution (default: {DEFAULT_TIMEOUT})",
    )
    common.add_argument(
        "--no-timeout",
        action="store_true",
        default=suppress,
        help="Disable execution timeout (overrides --timeout, runs until agent finishes)",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``ralph`` command."""
    common = _global_options()
    parser = argparse.ArgumentParser(
        prog="ralph",
        description=(
            "Ralph is a minimal, file-based agent loop for autonomous coding. "
            "It reads stories from a PRD JSON file and executes them one at a time, "
            "using files and git as memory for fresh iterations and persistent state."
        ),
        parents=[common],
    )
    commands = parser.add_subparsers(dest="command", title="commands")

    init = commands.add_parser(
        "init",
        parents=[common],
        help="Scaffold a new PRD file",
        description=(
            "Create a new PRD JSON file with starter stories. Provide a project name and "
            f"optional description. The output path can be set with --prd "
            f"(default: {DEFAULT_OUTPUT})."
        ),
    )
    init.add_argument("args", nargs="*", metavar="name [description]")
    init.set_defaults(handler=_cmd_init)

    run = commands.add_parser(
        "run",
        parents=[common],
        help="Execute the PRD agent loop",
        description=(
            "Run the autonomous agent loop against a PRD file. Selects the next available "
            "story, spawns the agent, and commits results. Repeat until all stories pass."
        ),
    )
    run.set_defaults(handler=_cmd_run)

    status = commands.add_parser(
        "status",
        parents=[common],
        help="Show PRD progress and current state",
        description=(
            "Display the current progress of a PRD: completed vs total stories, "
            "blocked stories, and git branch info."
        ),
    )
    status.set_defaults(handler=_cmd_status)

    story = commands.add_parser(
        "story", parents=[common], help="Show or select the next story to work on"
    )
    story.set_defaults(handler=functools.partial(_print_help, story))
    story_commands = story.add_subparsers(dest="story_command", title="commands")

    story_next = story_commands.add_parser(
        "next",
        parents=[common],
        help="Show the next available story",
        description=(
            "Print the highest-priority story that is ready to work on "
            "(not blocked by dependencies)."
        ),
    )
    story_next.set_defaults(handler=_cmd_story_next)

    story_prompt = story_commands.add_parser(
        "prompt",
        parents=[common],
        help="Print the agent prompt for the next story",
        description=(
            "Generate and print the agent prompt for the next available story "
            "without executing anything."
        ),
    )
    story_prompt.add_argument(
        "--story", default="", help="Specific story ID (optional, defaults to next)"
    )
    story_prompt.set_defaults(handler=_cmd_story_prompt)

    parser.set_defaults(handler=functools.partial(_print_help, parser))
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    handler: Callable[[argparse.Namespace], int] = args.handler
    try:
        return handler(args)
    except _CommandError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())