"""Unit tests for the :mod:`sceneautotest.script_lines` module."""

import pytest

from sceneautotest.errors import ParseError
from sceneautotest.script_lines import LineKind, LineVariant, parse_line, parse_scene


@pytest.mark.parametrize(
    ("raw", "kind", "operands"),
    [
        ("Plain narration.", LineKind.TEXT, ("Plain narration.",)),
        ("*goto Ending", LineKind.GOTO, ("ending",)),
        ("*label Ending", LineKind.LABEL, ("ending",)),
        ("*if (strength > 3) and brave", LineKind.IF, ("(strength > 3) and brave",)),
        ("*elseif blah = 3", LineKind.ELSEIF, ("blah = 3",)),
        ("*elsif blah = 3", LineKind.ELSEIF, ("blah = 3",)),
        ("*else", LineKind.ELSE, ()),
        ("*temp blah", LineKind.TEMP, ("blah",)),
        ("*temp name \"Ada\"", LineKind.TEMP, ("name", '"Ada"')),
        ("*set blah 2", LineKind.SET, ("blah", "2")),
        ("*set strength %+ 10", LineKind.SET, ("strength", "%+ 10")),
        ("*finish", LineKind.FINISH, ()),
        ("*finish Next chapter", LineKind.FINISH, ()),
        ("*ending", LineKind.FINISH, ()),
        ("*goto_scene epilogue", LineKind.FINISH, ("epilogue",)),
        ("*choice", LineKind.CHOICE, ()),
        ("*fake_choice", LineKind.CHOICE, ()),
        ("#Open the door", LineKind.OPTION, ("Open the door",)),
        ("*comment remember to rewrite", LineKind.OTHER, ("remember to rewrite",)),
        ("*page_break", LineKind.OTHER, ()),
    ],
)
def test_lines_are_classified_by_leading_token(raw, kind, operands) -> None:
    line = parse_line(raw, 0)

    assert line.kind is kind
    assert line.operands == operands


def test_directive_names_are_case_insensitive() -> None:
    line = parse_line("*GoTo Baz", 4)

    assert line.kind is LineKind.GOTO
    assert line.directive == "goto"
    assert line.operands == ("baz",)
    assert line.index == 4


def test_indentation_is_measured() -> None:
    line = parse_line("    *finish", 0)

    assert line.indent == 4
    assert line.kind is LineKind.FINISH


def test_fake_choice_is_flagged() -> None:
    assert parse_line("*fake_choice", 0).is_fake_choice
    assert not parse_line("*choice", 0).is_fake_choice


@pytest.mark.parametrize(
    ("raw", "variant"),
    [
        ("*finish", LineVariant.FINISH),
        ("*ending", LineVariant.ENDING),
        ("*goto_scene epilogue", LineVariant.GOTO_SCENE),
        ("*choice", LineVariant.CHOICE),
        ("*Fake_Choice", LineVariant.FAKE_CHOICE),
        ("*goto somewhere", None),
    ],
)
def test_shared_kinds_carry_a_variant(raw, variant) -> None:
    assert parse_line(raw, 0).variant is variant


@pytest.mark.parametrize(
    ("raw", "operands"),
    [
        ("  *if (key) #Unlock the door", ("Unlock the door", "(key)")),
        ("  *selectable_if (gold > 3) #Buy it", ("Buy it", "(gold > 3)")),
        ("  *disable_reuse #Ask again", ("Ask again",)),
        (
            "  *hide_reuse *if ((a) or (b)) #Either",
            ("Either", "((a) or (b))"),
        ),
        (
            "  *if (a) *selectable_if (b) #Both",
            ("Both", "(a) and (b)"),
        ),
    ],
)
def test_option_modifiers_produce_option_lines(raw, operands) -> None:
    line = parse_line(raw, 0)

    assert line.kind is LineKind.OPTION
    assert line.operands == operands
    assert line.indent == 2


def test_if_with_hash_in_condition_stays_a_conditional() -> None:
    line = parse_line('*if name = "#1"', 0)

    assert line.kind is LineKind.IF
    assert line.operands == ('name = "#1"',)


def test_blank_lines_are_blank_text() -> None:
    line = parse_line("   ", 2)

    assert line.kind is LineKind.TEXT
    assert line.is_blank
    assert line.operands == ()


def test_scene_ends_with_a_sentinel_line() -> None:
    script = parse_scene("foo\nbar", name="intro")

    assert script.name == "intro"
    assert len(script) == 3
    assert script.source_line_count == 2
    assert script.end_index == 2
    assert script[2].kind is LineKind.END
    assert [line.index for line in script] == [0, 1, 2]


def test_windows_line_endings_are_tolerated() -> None:
    script = parse_scene("*label start\r\n*goto start\r\n")

    assert script[0].operands == ("start",)
    assert script[1].operands == ("start",)
    assert script[2].is_blank


@pytest.mark.parametrize(
    ("raw", "fragment"),
    [
        ("*", "empty directive"),
        ("*3d", "malformed directive"),
        ("*goto", "exactly one label"),
        ("*goto two words", "exactly one label"),
        ("*label", "exactly one label"),
        ("*if", "requires a condition"),
        ("*elseif", "requires a condition"),
        ("*else if x", "does not accept a condition"),
        ("*set blah", "variable and a value"),
        ("*set 9lives 3", "valid variable name"),
        ("*temp", "requires a variable name"),
        ("*goto_scene", "requires a scene name"),
        ("#", "descriptive text"),
        ("*if (x) #", "descriptive text"),
        (" \tmixed", "mixed tabs and spaces"),
    ],
)
def test_malformed_lines_raise_parse_error(raw, fragment) -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_line(raw, 7)

    assert excinfo.value.line_index == 7
    assert fragment in excinfo.value.message
    assert str(excinfo.value).startswith("line 8:")


def test_parse_scene_stops_at_first_error() -> None:
    with pytest.raises(ParseError) as excinfo:
        parse_scene("ok\n*goto\n*label")

    assert excinfo.value.line_index == 1


def test_parse_scene_rejects_non_string_input() -> None:
    with pytest.raises(TypeError):
        parse_scene(b"foo")  # type: ignore[arg-type]
