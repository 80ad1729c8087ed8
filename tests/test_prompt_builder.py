import pytest

from npc_mind.ai.prompt_builder import PromptBuilder, describe_observation
from npc_mind.core.observation import NEVER, Observation

NOW = 1_000_000


def make_obs(**kw) -> Observation:
    base = dict(nearby_players=("Ann",), x=10.0, y=64.0, z=10.0, world_time=500)
    base.update(kw)
    return Observation(**base)


def test_observation_is_immutable_and_normalised():
    obs = Observation(nearby_players=["Ann", "Bob"], world_time=24500)
    assert obs.nearby_players == ("Ann", "Bob")
    assert obs.world_time == 500
    with pytest.raises(AttributeError):
        obs.x = 3.0  # type: ignore[misc]


@pytest.mark.parametrize(
    "world_time,bucket,day",
    [(0, "morning", True), (5999, "morning", True), (6000, "noon", True),
     (12000, "evening", False), (18000, "night", False), (23999, "night", False)],
)
def test_time_of_day_buckets(world_time, bucket, day):
    obs = Observation(world_time=world_time)
    assert obs.time_of_day() == bucket
    assert obs.is_day_time() is day


def test_time_since_helpers():
    obs = Observation(last_interaction_time_ms=NOW - 5000, taken_at_ms=NOW)
    assert obs.time_since_last_interaction() == 5
    assert obs.time_since_last_action() == NEVER


def test_prompt_mentions_time_and_players():
    prompt = PromptBuilder("Freddy").build_prompt(make_obs())
    assert "morning" in prompt
    assert "Ann" in prompt
    assert "You are Freddy" in prompt
    assert "X=10.0, Y=64.0, Z=10.0" in prompt


def test_prompt_without_players_says_none():
    prompt = PromptBuilder("Freddy").build_prompt(make_obs(nearby_players=()))
    assert "- Nearby players: [none]" in prompt


def test_prompt_examples_are_near_current_position():
    prompt = PromptBuilder("Freddy").build_prompt(make_obs(x=100.0, z=-40.0))
    assert "(115 -60)" in prompt
    assert "(90 -15)" in prompt
    assert "X between 50 and 150, Z between -90 and 10" in prompt


def test_recent_interaction_only_within_five_minutes():
    builder = PromptBuilder("Freddy", clock=lambda: NOW)
    recent = make_obs(last_interaction_player="Bob", last_interaction_time_ms=NOW - 60_000)
    stale = make_obs(last_interaction_player="Bob", last_interaction_time_ms=NOW - 301_000)
    assert "Last interaction: Bob (60 seconds ago)" in builder.build_prompt(recent)
    assert "Last interaction" not in builder.build_prompt(stale)


def test_initial_last_action_is_hidden():
    builder = PromptBuilder("Freddy")
    assert "Last action" not in builder.build_prompt(make_obs(last_action="Initialized"))
    assert "- Last action: WANDER" in builder.build_prompt(make_obs(last_action="WANDER"))


def test_prompt_is_deterministic():
    builder = PromptBuilder("Freddy", clock=lambda: NOW)
    obs = make_obs()
    assert builder.build_prompt(obs) == builder.build_prompt(obs)


def test_simple_prompt_has_no_coordinates():
    prompt = PromptBuilder("Freddy").build_simple_prompt(make_obs(world_time=13000))
    assert "evening" in prompt
    assert "Ann" in prompt
    assert "exactly ONE action" in prompt
    assert "Valid range" not in prompt


def test_describe_observation():
    text = describe_observation(make_obs(last_action="IDLE"))
    assert "Position: (10.0, 64.0, 10.0)" in text
    assert "  - Ann" in text
    assert describe_observation(None) == "OBSERVATION: unavailable"
