from conftest import ScriptedLLM

from npc_mind.ai.actions import EatFood, Follow, Idle, Respond, Wander, WalkTo
from npc_mind.ai.brain import AgentBrain, BrainSnapshot
from npc_mind.core.observation import Observation
from npc_mind.telemetry.telemetry import ListSink, Telemetry

FALLBACK = "⚠️ Freddy is thinking too hard..."


def alone(**kw) -> Observation:
    return Observation(nearby_players=(), x=0.0, y=64.0, z=0.0, **kw)


def with_ann(**kw) -> Observation:
    return Observation(nearby_players=("Ann",), x=0.0, y=64.0, z=0.0, **kw)


def make_brain(*replies, **kw) -> AgentBrain:
    return AgentBrain(ScriptedLLM(*replies, **kw), "Freddy", fallback_reply=FALLBACK)


def test_third_idle_in_a_row_becomes_wander():
    brain = make_brain()
    obs = alone()
    assert brain.refine_action(obs, Idle()) == Idle()
    assert brain.refine_action(obs, Idle()) == Idle()
    assert brain.refine_action(obs, Idle()) == Wander()
    assert brain.idle_streak == 3


def test_idle_with_player_follows_immediately():
    brain = make_brain()
    assert brain.refine_action(with_ann(), Idle()) == Follow("Ann")


def test_repeated_wander_with_player_follows():
    brain = make_brain()
    obs = with_ann()
    assert brain.refine_action(obs, Wander()) == Wander()
    assert brain.refine_action(obs, Wander()) == Wander()
    assert brain.refine_action(obs, Wander()) == Follow("Ann")


def test_wander_alone_never_overridden():
    brain = make_brain()
    for _ in range(5):
        assert brain.refine_action(alone(), Wander()) == Wander()


def test_streaks_reset_each_other():
    brain = make_brain()
    obs = alone()
    brain.refine_action(obs, Idle())
    brain.refine_action(obs, Idle())
    brain.refine_action(obs, Wander())
    assert (brain.idle_streak, brain.wander_streak) == (0, 1)
    brain.refine_action(obs, Idle())
    assert (brain.idle_streak, brain.wander_streak) == (1, 0)


def test_far_walk_target_rejected():
    brain = make_brain()
    assert brain.refine_action(alone(), WalkTo(80, 0)) == Wander()
    assert brain.refine_action(with_ann(), WalkTo(80, 0)) == Follow("Ann")


def test_near_walk_target_resets_streaks():
    brain = make_brain()
    obs = alone()
    brain.refine_action(obs, Idle())
    brain.refine_action(obs, Idle())
    assert brain.refine_action(obs, WalkTo(30, 40)) == WalkTo(30, 40)
    assert (brain.idle_streak, brain.wander_streak) == (0, 0)
    # Streak starts over, so the next Idle passes through.
    assert brain.refine_action(obs, Idle()) == Idle()


def test_other_actions_pass_through():
    brain = make_brain()
    brain.refine_action(alone(), Idle())
    assert brain.refine_action(alone(), EatFood()) == EatFood()
    assert brain.idle_streak == 0


def test_think_end_to_end_idle_reply_follows_player():
    obs = Observation(nearby_players=("Ann",), x=10.0, y=64.0, z=10.0, world_time=500)
    llm = ScriptedLLM("Idle")
    brain = AgentBrain(llm, "Freddy")
    assert brain.think(obs) == Follow("Ann")
    assert "morning" in llm.prompts[0]
    assert "Ann" in llm.prompts[0]


def test_think_emits_prompt_and_reply():
    sink = ListSink()
    brain = make_brain("Say hello")
    assert brain.think(alone(), Telemetry(sink)) == Respond("hello")
    assert len(sink.messages("THINKING")) == 1
    assert sink.messages("LLM_RESPONSE") == ["Say hello"]
    assert brain.current_thought == "Say hello"


def test_empty_reply_is_idle_without_refinement():
    brain = make_brain("")
    assert brain.think(with_ann()) == Idle()
    assert brain.idle_streak == 0
    assert brain.current_thought.startswith("No response")


def test_fallback_placeholder_is_not_a_decision():
    brain = make_brain(FALLBACK)
    assert brain.think(with_ann()) == Idle()
    assert brain.idle_streak == 0


def test_marker_reply_is_not_a_decision():
    assert make_brain("<wait>").think(with_ann()) == Idle()


def test_llm_failure_returns_idle_and_reports_error():
    sink = ListSink()
    brain = make_brain(error=RuntimeError("boom"))
    assert brain.think(alone(), Telemetry(sink)) == Idle()
    assert brain.current_thought == "Error: boom"
    assert sink.messages("ERROR") == ["Brain error: boom"]


def test_simple_prompt_flag():
    llm = ScriptedLLM("Wander")
    brain = AgentBrain(llm, "Freddy", use_simple_prompt=True)
    brain.think(alone())
    assert "exactly ONE action" in llm.prompts[0]
    assert "Valid range" not in llm.prompts[0]


def test_snapshot():
    brain = make_brain()
    brain.set_thought("hmm")
    brain.set_action("WANDER")
    assert brain.snapshot(1.0, 2.0, 3.0) == BrainSnapshot("Freddy", "hmm", "WANDER", 1.0, 2.0, 3.0)
