import pytest

from npc_mind.ai.actions import (
    ActionType,
    AttackEntity,
    EatFood,
    Follow,
    Idle,
    LookAt,
    MineBlock,
    Respond,
    Wander,
    WalkTo,
    parse_action,
)


@pytest.mark.parametrize("text", [None, "", "   ", "\n\t"])
def test_blank_input_is_idle(text):
    assert parse_action(text) == Idle()


def test_parse_walk_to_two_numbers():
    assert parse_action("Walk to 150 -50") == WalkTo(150, -50)


def test_parse_walk_to_drops_height():
    assert parse_action("Walk to 150 64 -50") == WalkTo(150, -50)


def test_parse_walk_to_decimals_and_case():
    assert parse_action("I'll WALK TO 12.5 -3.25 now") == WalkTo(12.5, -3.25)


def test_malformed_walk_numbers_fall_through():
    # "1.2.3" fails to convert; the follow rule is next in line.
    assert parse_action("walk to 1.2.3 4 then follow Bob") == Follow("Bob")


def test_parse_follow():
    assert parse_action("Follow OnlyOm") == Follow("OnlyOm")


def test_parse_look_at():
    assert parse_action("look at Steve") == LookAt("Steve")


def test_parse_say():
    assert parse_action("Say Hi there!") == Respond("Hi there!")


def test_say_only_first_line():
    assert parse_action("say hello\nwander") == Respond("hello")


def test_parse_respond_with_colon():
    assert parse_action("Respond: nice house") == Respond("nice house")


def test_parse_mine_leaves_location_unresolved():
    action = parse_action("Mine stone")
    assert action == MineBlock("stone")
    assert (action.x, action.y, action.z) == (0, 0, 0)
    assert action.needs_resolution


def test_parse_attack():
    assert parse_action("Attack zombie") == AttackEntity("zombie")


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Idle", Idle()),
        ("I will stand still", Idle()),
        ("do nothing", Idle()),
        ("Let's wait a bit", Idle()),
        ("Wander", Wander()),
        ("explore randomly", Wander()),
        ("time to eat", EatFood()),
    ],
)
def test_keyword_scan(text, expected):
    assert parse_action(text) == expected


def test_follow_beats_keywords():
    assert parse_action("wait, follow Ann") == Follow("Ann")


def test_coordinate_sniff():
    assert parse_action("go over to 10, 20") == WalkTo(10, 20)


def test_gibberish_is_idle():
    assert parse_action("gibberish xyz") == Idle()


def test_action_kinds_and_descriptions():
    assert Follow("Ann").kind is ActionType.FOLLOW_PLAYER
    assert str(Follow("Ann")) == "FOLLOW(Ann)"
    assert str(WalkTo(1, 2)) == "WALK_TO(1.0, 2.0)"
    assert str(Idle()) == "IDLE"
    assert str(Respond("hey")) == "RESPOND: hey"
