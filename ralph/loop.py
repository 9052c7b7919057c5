"""The agent loop: pick the next story, hand it to an agent, record the outcome."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Any, Iterable

from . import gitops
from .gitops import GitError
from .prd import Prd, PrdError, Story, load

__all__ = ["LoopError", "Options", "Result", "run", "build_prompt", "detect_default_agent"]

AGENT_CANDIDATES = ("opencode", "claude", "codex", "gemini-cli", "cursor")
UNKNOWN_AGENT = "<agent-cli>"


class LoopError(Exception):
    """Raised when the loop stops early; carries the results gathered so far."""

    def __init__(self, message: str, results: Iterable[Result] = ()) -> None:
        super().__init__(message)
        self.results: list[Result] = list(results)


@dataclass
class Options:
    """Settings for one run of the loop."""

    prd_path: str
    agent_cmd: str = ""
    agent_args: list[str] = field(default_factory=list)
    dry_run: bool = False
    work_dir: str = ""
    timeout: int = 0  # seconds per agent execution; 0 means no limit


@dataclass
class Result:
    """Outcome of working on one story: passed, skipped, failed or timedout."""

    story_id: str = ""
    title: str = ""
    status: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON representation; an empty error is omitted."""
        data: dict[str, Any] = {
            "storyId": self.story_id,
            "title": self.title,
            "status": self.status,
        }
        if self.error:
            data["error"] = self.error
        return data


def _log(message: str) -> None:
    print(message, file=sys.stderr)


def run(opts: Options) -> list[Result]:
    """Work through the PRD one story at a time until every story passes."""
    try:
        prd = load(opts.prd_path)
    except PrdError as exc:
        raise LoopError(f"load prd: {exc}") from exc

    work_dir = opts.work_dir or "."
    results: list[Result] = []

    while not prd.is_complete():
        story = prd.next_story()
        if story is None:
            blocked = prd.blocked_stories()
            if blocked:
                ids = " ".join(s.id for s in blocked)
                raise LoopError(f"stories blocked by dependencies: [{ids}]", results)
            break

        _log(f"\n=== Ralph: Working on {story.id}: {story.title} ===")

        if opts.dry_run:
            _log(f"[DRY RUN] Would execute story {story.id}: {story.title}")
            _log(f"[DRY RUN] Prompt:\n{build_prompt(prd, story)}")
            results.append(Result(story_id=story.id, title=story.title, status="skipped"))
            story.passes = True
            continue

        try:
            gitops.ensure_branch(work_dir, prd.work_dir())
        except GitError as exc:
            raise LoopError(f"git branch: {exc}", results) from exc

        failure = _run_agent(
            work_dir, opts.agent_cmd, opts.agent_args, build_prompt(prd, story), opts.timeout
        )
        if failure is not None:
            results.append(failure)
            raise LoopError(f"agent execution for {story.id}: {failure.error}", results)

        story.passes = True

        try:
            prd.save(opts.prd_path)
        except (PrdError, OSError) as exc:
            raise LoopError(f"save prd after {story.id}: {exc}", results) from exc

        try:
            gitops.commit_all(work_dir, f"ralph: {story.id} - {story.title}")
        except GitError as exc:
            raise LoopError(f"git commit for {story.id}: {exc}", results) from exc

        _log(f"\n=== Ralph: {story.id} passed! ===")
        results.append(Result(story_id=story.id, title=story.title, status="passed"))

    return results


def build_prompt(prd: Prd, story: Story) -> str:
    """Return the prompt that asks an agent to implement ``story``."""
    lines = ["You are working on a PRD-driven implementation.", "", f"PRD: {prd.name}"]
    if prd.description:
        lines.append(f"Description: {prd.description}")
    lines += ["", f"=== Current Story: {story.id}: {story.title} ===", ""]
    if story.description:
        lines += ["Description:", story.description, ""]

    lines.append("Acceptance Criteria:")
    lines += [f"- [ ] {criterion}" for criterion in story.acceptance_criteria]
    lines.append("")

    if story.depends_on:
        lines.append("Prerequisites (already completed):")
        for dep_id in story.depends_on:
            lines += [
                f"- {s.id}: {s.title}" for s in prd.user_stories if s.id == dep_id and s.passes
            ]
        lines.append("")

    lines += [
        "Workflow:",
        "1. Read and understand the existing codebase",
        "2. Implement the changes needed to satisfy ALL acceptance criteria",
        "3. Verify your changes meet all criteria",
        "4. Report what you did",
    ]
    return "\n".join(lines) + "\n"


def detect_default_agent() -> str:
    """Return the first known agent command found on PATH."""
    return next((c for c in AGENT_CANDIDATES if shutil.which(c)), UNKNOWN_AGENT)


def _stderr_sink() -> int | None:
    try:
        return sys.stderr.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def _describe_exit(returncode: int) -> str:
    if returncode < 0:
        return f"signal: {-returncode}"
    return f"exit status {returncode}"


def _run_agent(
    work_dir: str | os.PathLike[str],
    cmd_name: str,
    args: list[str],
    prompt: str,
    timeout: int,
) -> Result | None:
    """Run the agent with the prompt on stdin; return a Result only on failure."""
    cmd_name = cmd_name or detect_default_agent()
    sink = _stderr_sink()
    sys.stderr.flush()
    try:
        proc = subprocess.run(
            [cmd_name, *args],
            cwd=work_dir,
            input=prompt,
            text=True,
            stdout=sink,
            stderr=sink,
            timeout=timeout if timeout > 0 else None,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return Result(status="timedout", error=f"timed out after {timeout}s running {cmd_name}")
    except FileNotFoundError:
        reason = f'exec: "{cmd_name}": executable file not found in $PATH'
        return Result(status="failed", error=f"{cmd_name} exited with error: {reason}")
    except OSError as exc:
        return Result(status="failed", error=f"{cmd_name} exited with error: {exc}")
    if proc.returncode != 0:
        return Result(
            status="failed",
            error=f"{cmd_name} exited with error: {_describe_exit(proc.returncode)}",
        )
    return None