"""Local stand-in for the agent CLI used by integration tests and demos.

Understands the subset of flags that ``build_cli_args`` renders and answers
in both ``json`` and ``stream-json`` output formats with deterministic
payloads that echo the prompt back.
"""

from __future__ import annotations

import json
import os
import sys
import time
from uuid import uuid4

ECHO_AGENT_VERSION = "echo-agent 1.0.0"
ECHO_COST_USD = 0.0015

_VALUE_FLAGS = {
    "--output-format",
    "--session-id",
    "--resume",
    "--model",
    "--fallback-model",
    "--agent",
    "--permission-mode",
    "--system-prompt",
    "--append-system-prompt",
}


def main(argv: list[str] | None = None) -> int:
    """Emit one deterministic conversation turn."""

    args = list(sys.argv[1:] if argv is None else argv)
    if "--version" in args:
        print(ECHO_AGENT_VERSION)
        return 0

    _log_argv(args)
    options, prompt = _parse(args)
    delay = float(os.getenv("ECHO_AGENT_DELAY_SECONDS", "0") or 0)
    if delay > 0:
        time.sleep(delay)

    session_id = options.get("--session-id") or options.get("--resume") or str(uuid4())
    model = options.get("--model") or "echo-model"
    tokens = len(prompt.split())
    usage = {"input_tokens": tokens, "output_tokens": tokens}
    events = [
        {
            "type": "system",
            "subtype": "init",
            "cwd": os.getcwd(),
            "session_id": session_id,
            "tools": [],
            "model": model,
            "permissionMode": options.get("--permission-mode") or "default",
        },
        {
            "type": "assistant",
            "session_id": session_id,
            "message": {
                "model": model,
                "role": "assistant",
                "content": [{"type": "text", "text": prompt}],
                "usage": usage,
            },
        },
        {
            "type": "result",
            "subtype": "success",
            "is_error": False,
            "result": prompt,
            "session_id": session_id,
            "total_cost_usd": ECHO_COST_USD,
            "duration_ms": int(delay * 1000),
            "num_turns": 1,
            "usage": dict(usage),
        },
    ]

    if options.get("--output-format") == "stream-json":
        for event in events:
            sys.stdout.write(json.dumps(event) + "\n")
            sys.stdout.flush()
    elif "--verbose" in args:
        sys.stdout.write(json.dumps(events))
    else:
        sys.stdout.write(json.dumps(events[-1]))
    sys.stdout.flush()
    return 0


def _parse(args: list[str]) -> tuple[dict[str, str], str]:
    options: dict[str, str] = {}
    prompt = ""
    index = 0
    while index < len(args):
        token = args[index]
        if token == "--":
            prompt = " ".join(args[index + 1 :])
            break
        if token in _VALUE_FLAGS and index + 1 < len(args):
            options[token] = args[index + 1]
            index += 2
            continue
        index += 1
    else:
        if args and not args[-1].startswith("-"):
            prompt = args[-1]
    return options, prompt


def _log_argv(args: list[str]) -> None:
    log_path = os.getenv("ECHO_AGENT_ARGV_LOG")
    if not log_path:
        return
    with open(log_path, "a", encoding="utf-8") as handle:
        handle.write(json.dumps(args) + "\n")


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
