"""Line classifier for jstack output.

The parser is a table driven automaton: every state owns an ordered list of
``(matcher, next_state)`` rules and the first matching rule wins. A matcher is
either a literal line prefix or one of the ``Match`` sentinels.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeAlias


class ParserState(str, Enum):
    """States of the line classifier."""

    START = "start"
    PRELUDE = "prelude"
    BLOCK_START = "block_start"
    BLOCK_SECOND = "block_second"
    TRACE = "trace"
    LOCKED = "locked"
    WAITING_CONCURRENT = "waiting_concurrent"
    WAITING_NOTIFY = "waiting_notify"
    WAITING_SYNCHRONIZED = "waiting_synchronized"
    WAITING_RE_LOCK = "waiting_re_lock"
    ELIMINATED = "eliminated"
    NO_COMPILE_TASK = "no_compile_task"
    BLOCK_END = "block_end"
    OWNED_LOCKS_START = "owned_locks_start"
    OWNED_LOCK = "owned_lock"
    NO_OWNED = "no_owned"
    EPILOGUE = "epilogue"
    END = "end"


class Match(Enum):
    """Non-prefix matchers."""

    ANY = "any"
    EMPTY = "empty"


Matcher: TypeAlias = str | Match
Rule: TypeAlias = tuple[Matcher, ParserState]


class ParseError(ValueError):
    """Raised when no transition is defined for a line in the current state."""

    def __init__(self, line_number: int, line: str, state: ParserState) -> None:
        self.line_number = line_number
        self.line = line
        self.state = state
        super().__init__(
            f"error on line {line_number} - no state transition defined for line:\n{line}"
        )


# Shared by every state inside a thread's stack trace
BLOCK_TRANSITIONS: tuple[Rule, ...] = (
    ("\t- locked", ParserState.LOCKED),
    ("\t- parking to wait for", ParserState.WAITING_CONCURRENT),
    ("\t- waiting on", ParserState.WAITING_NOTIFY),
    ("\t- waiting to lock", ParserState.WAITING_SYNCHRONIZED),
    ("\t- waiting to re-lock", ParserState.WAITING_RE_LOCK),
    ("\t- eliminated ", ParserState.ELIMINATED),
    ("\tat ", ParserState.TRACE),
    ("   No compile task", ParserState.NO_COMPILE_TASK),
    (Match.EMPTY, ParserState.BLOCK_END),
)

TRANSITIONS: dict[ParserState, tuple[Rule, ...]] = {
    # START is virtual: the first line always belongs to the prelude
    ParserState.START: ((Match.ANY, ParserState.PRELUDE),),
    ParserState.PRELUDE: (
        ('"', ParserState.BLOCK_START),
        (Match.ANY, ParserState.PRELUDE),
    ),
    ParserState.BLOCK_START: (
        ("   java.lang.Thread.State:", ParserState.BLOCK_SECOND),
        (Match.EMPTY, ParserState.BLOCK_END),
        # one line blocks, e.g. "VM Thread", may be followed directly by the next header
        ('"', ParserState.BLOCK_START),
    ),
    ParserState.BLOCK_SECOND: BLOCK_TRANSITIONS,
    ParserState.TRACE: BLOCK_TRANSITIONS,
    ParserState.LOCKED: BLOCK_TRANSITIONS,
    ParserState.ELIMINATED: BLOCK_TRANSITIONS,
    ParserState.WAITING_CONCURRENT: BLOCK_TRANSITIONS,
    ParserState.WAITING_NOTIFY: BLOCK_TRANSITIONS,
    ParserState.WAITING_SYNCHRONIZED: BLOCK_TRANSITIONS,
    ParserState.WAITING_RE_LOCK: BLOCK_TRANSITIONS,
    ParserState.NO_COMPILE_TASK: BLOCK_TRANSITIONS,
    ParserState.BLOCK_END: (
        ('"', ParserState.BLOCK_START),
        ("   Locked ownable", ParserState.OWNED_LOCKS_START),
        ("JNI global", ParserState.EPILOGUE),
        (Match.EMPTY, ParserState.BLOCK_END),
    ),
    ParserState.OWNED_LOCKS_START: (
        ("\t- None", ParserState.NO_OWNED),
        ("\t- ", ParserState.OWNED_LOCK),
    ),
    ParserState.NO_OWNED: ((Match.EMPTY, ParserState.BLOCK_END),),
    ParserState.OWNED_LOCK: (
        ("\t- ", ParserState.OWNED_LOCK),
        (Match.EMPTY, ParserState.BLOCK_END),
    ),
    ParserState.EPILOGUE: ((Match.ANY, ParserState.END),),
    ParserState.END: (),
}


def matches(matcher: Matcher, line: str) -> bool:
    """Test a single rule matcher against a line."""
    if matcher is Match.ANY:
        return True
    if matcher is Match.EMPTY:
        return line == ""
    return line.startswith(matcher)


def next_state(state: ParserState, line: str) -> ParserState | None:
    """Return the state selected by the first matching rule, or None."""
    for matcher, target in TRANSITIONS[state]:
        if matches(matcher, line):
            return target
    return None


def classify(state: ParserState, line: str, line_number: int) -> ParserState:
    """Classify ``line`` given the current state; raise ParseError when undefined."""
    target = next_state(state, line)
    if target is None:
        raise ParseError(line_number, line, state)
    return target
