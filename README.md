# ralph

Ralph is a minimal, file-based agent loop for autonomous coding. It reads
user stories from a PRD (Product Requirements Document) JSON file and hands
them, one at a time, to a coding agent command. Files and git act as
memory. Each finished story is marked as passing in the PRD file, and the
change is committed on a dedicated branch.

## Installation

```
pip install .
```

This installs the `ralph` command. It needs no third-party libraries. The
`run` command expects `git` and an agent command on `PATH`.

## Usage

Create a starter PRD with one example story:

```
ralph init "My Project" "A short description" --prd ./prd.json
```

Without `--prd`, the file is written to `./prd.json`. Its parent directory
must already exist. The starter PRD sets `branchName` to a slug of the
project name, for example `my-project`.

Show progress, the next available story and any blocked stories as JSON:

```
ralph status --prd ./prd.json
```

Show the next story together with the prompt the agent would receive:

```
ralph story next --prd ./prd.json
ralph story prompt --prd ./prd.json
ralph story prompt --prd ./prd.json --story US-001
```

`story next` prints a JSON object with `story` and `prompt` keys. If every
story passes, it prints a message to standard error and exits with 0. If
the remaining stories are all blocked by dependencies, it exits with 1.
`story prompt` prints only the prompt text, either for the next story or
for the story given with `--story`.

Run the loop:

```
ralph run --prd ./prd.json
ralph run --prd ./prd.json --agent claude --timeout 600
ralph run --prd ./prd.json --no-timeout
ralph run --prd ./prd.json --dry-run
```

For each available story, `run` does the following:

1. Checks out the PRD's branch, creating it if it does not exist. The branch
   is `branchName`, or `ralph/<slug of name>` when `branchName` is not set.
2. Starts the agent command in the current directory and passes the prompt
   on standard input.
3. If the agent exits successfully, marks the story as passing and saves
   the PRD file.
4. Stages and commits all changes with the message `ralph: <id> - <title>`.

The agent's output goes to standard error. When every story passes, `run`
prints a JSON summary to standard output in the form
`{"results": [...], "status": "completed"}`.

The loop stops with an error in these cases:

- the agent fails or times out;
- a git step fails;
- the remaining stories are all blocked.

In that case `run` prints `Error: ralph loop: ...` to standard error and
exits with 1.

With `--dry-run`, `run` does the following:

- prints each prompt to standard error;
- reports each story as `skipped`;
- does not run git or the agent;
- does not write the PRD file.

Every command reports errors as `Error: <message>` on standard error and
exits with 1. This includes a missing `--prd` flag and an invalid PRD file.

### Global options

These are accepted by every command:

| Option         | Meaning                                                     |
|----------------|-------------------------------------------------------------|
| `--prd`        | Path to the PRD JSON file                                   |
| `--agent`      | Agent command to run. Default: the first of `opencode`, `claude`, `codex`, `gemini-cli`, `cursor` found on `PATH` |
| `--dry-run`    | Print prompts without executing anything                    |
| `--timeout`    | Maximum seconds per agent execution (default: 300)          |
| `--no-timeout` | Disable the execution timeout; overrides `--timeout`        |

## PRD format

```json
{
  "name": "My Project",
  "branchName": "my-project",
  "description": "A short description",
  "userStories": [
    {
      "id": "US-001",
      "title": "Project scaffolding and setup",
      "description": "As a developer, I want the project scaffolded.",
      "acceptanceCriteria": ["Project structure is created"],
      "priority": 1,
      "passes": false,
      "notes": "",
      "dependsOn": []
    }
  ]
}
```

Story selection:

- Stories with a lower `priority` number are picked first.
- A story becomes available only once every story in its `dependsOn` list
  passes.

The PRD is validated when it is loaded. Validation requires the following:

- a name;
- at least one story;
- an id and a title for every story;
- unique story ids;
- dependencies that refer to known stories;
- no circular dependencies.

## Library use

```python
from ralph.prd import load
from ralph.loop import Options, LoopError, build_prompt, run

prd = load("prd.json")                # raises ralph.prd.PrdError if invalid
story = prd.next_story()
if story is not None:
    print(build_prompt(prd, story))
print(prd.progress())                 # (completed, total)

try:
    results = run(Options(prd_path="prd.json", agent_cmd="claude",
                          agent_args=["--print"], timeout=600))
except LoopError as exc:
    results = exc.results             # results gathered before the stop
```

The library is organised in these modules:

| Module          | Contents |
|-----------------|----------|
| `ralph.prd`     | The `Prd` and `Story` dataclasses: JSON conversion, `save`, `validate`, `next_story`, `blocked_stories` and `work_dir` |
| `ralph.template` | `default_prd(name, description)` |
| `ralph.slug`    | `slugify` |
| `ralph.gitops`  | `ensure_branch`, `commit_all`, `status`, `current_branch` and `is_repo`. Failures raise `GitError` |

Extra agent arguments can be set only through `Options.agent_args`. The
command line has no option for them.