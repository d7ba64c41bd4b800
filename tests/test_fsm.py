import pytest

from jstack_report.fsm import TRANSITIONS, Match, ParserState, ParseError, classify, next_state


def test_start_is_virtual_and_always_moves_to_prelude():
    assert classify(ParserState.START, "anything at all", 1) is ParserState.PRELUDE
    assert classify(ParserState.START, "", 1) is ParserState.PRELUDE


def test_prelude_switches_to_block_on_quoted_header():
    assert next_state(ParserState.PRELUDE, '"main" #1 prio=5') is ParserState.BLOCK_START
    assert next_state(ParserState.PRELUDE, "Full thread dump") is ParserState.PRELUDE


@pytest.mark.parametrize(
    ("line", "expected"),
    [
        ("\t- locked <0x1> (a java.lang.Object)", ParserState.LOCKED),
        ("\t- parking to wait for  <0x1> (a X)", ParserState.WAITING_CONCURRENT),
        ("\t- waiting on <0x1> (a X)", ParserState.WAITING_NOTIFY),
        ("\t- waiting to lock <0x1> (a X)", ParserState.WAITING_SYNCHRONIZED),
        ("\t- waiting to re-lock in wait() <0x1> (a X)", ParserState.WAITING_RE_LOCK),
        ("\t- eliminated <owner is scalar replaced> (a X)", ParserState.ELIMINATED),
        ("\tat java.lang.Thread.run(Thread.java:834)", ParserState.TRACE),
        ("   No compile task", ParserState.NO_COMPILE_TASK),
        ("", ParserState.BLOCK_END),
    ],
)
def test_block_transitions_are_shared_by_trace_states(line, expected):
    for state in (ParserState.BLOCK_SECOND, ParserState.TRACE, ParserState.LOCKED, ParserState.WAITING_NOTIFY):
        assert classify(state, line, 10) is expected


def test_one_line_block_can_be_followed_by_next_header():
    assert next_state(ParserState.BLOCK_START, '"GC Thread#1" os_prio=0') is ParserState.BLOCK_START


def test_owned_locks_section():
    assert next_state(ParserState.BLOCK_END, "   Locked ownable synchronizers:") is ParserState.OWNED_LOCKS_START
    assert next_state(ParserState.OWNED_LOCKS_START, "\t- None") is ParserState.NO_OWNED
    assert next_state(ParserState.OWNED_LOCKS_START, "\t- <0x1> (a X)") is ParserState.OWNED_LOCK
    assert next_state(ParserState.OWNED_LOCK, "") is ParserState.BLOCK_END


def test_epilogue_ends_on_next_line():
    assert next_state(ParserState.BLOCK_END, "JNI global refs: 15, weak refs: 0") is ParserState.EPILOGUE
    assert next_state(ParserState.EPILOGUE, "") is ParserState.END


def test_first_matching_rule_wins():
    # "\t- None" also starts with "\t- "; the earlier rule takes it
    rules = TRANSITIONS[ParserState.OWNED_LOCKS_START]
    assert rules[0] == ("\t- None", ParserState.NO_OWNED)
    assert next_state(ParserState.OWNED_LOCKS_START, "\t- None") is ParserState.NO_OWNED


def test_unclassifiable_line_raises_with_context():
    with pytest.raises(ParseError) as excinfo:
        classify(ParserState.BLOCK_END, "garbage", 42)

    error = excinfo.value
    assert error.line_number == 42
    assert error.line == "garbage"
    assert error.state is ParserState.BLOCK_END
    assert "line 42" in str(error)


def test_parse_error_is_a_value_error():
    assert issubclass(ParseError, ValueError)


def test_end_has_no_transitions():
    assert TRANSITIONS[ParserState.END] == ()
    assert next_state(ParserState.END, "") is None


def test_every_state_has_a_rule_table():
    assert set(TRANSITIONS) == set(ParserState)
    for rules in TRANSITIONS.values():
        for matcher, target in rules:
            assert isinstance(matcher, (str, Match))
            assert isinstance(target, ParserState)
