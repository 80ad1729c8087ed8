import json

from npc_mind.goals import (
    Goal,
    GoalManager,
    GoalStatus,
    GoalStep,
    GoalType,
    StepStatus,
    steps_to_json,
)


def goal_with_steps(n: int = 2) -> Goal:
    goal = Goal(GoalType.GATHER_WOOD, "wood")
    goal.set_steps([GoalStep(f"step {i}") for i in range(n)])
    return goal


# ---------------------------------------------------------------------------
# Goal / GoalStep
# ---------------------------------------------------------------------------

def test_complete_current_step_advances_by_one():
    goal = goal_with_steps(2)
    first = goal.current_step()
    assert goal.complete_current_step() is first
    assert first.status is StepStatus.COMPLETED
    assert goal.current_step_index == 1
    assert goal.current_step().label == "step 1"


def test_complete_current_step_past_end_is_noop():
    goal = goal_with_steps(1)
    goal.complete_current_step()
    assert goal.current_step() is None
    assert goal.complete_current_step() is None
    assert goal.current_step_index == 1
    assert not goal.has_more_steps()


def test_goal_without_steps_has_no_current_step():
    goal = Goal(GoalType.EXPLORE_AREA)
    assert goal.current_step() is None
    assert goal.complete_current_step() is None


def test_terminal_status_is_sticky_and_stamped_once():
    goal = Goal(GoalType.GATHER_STONE, created_at=1000)
    assert goal.set_status(GoalStatus.IN_PROGRESS)
    assert goal.set_status(GoalStatus.COMPLETED, at=5000)
    assert goal.completed_at == 5000
    assert not goal.set_status(GoalStatus.FAILED, at=9000)
    assert goal.status is GoalStatus.COMPLETED
    assert goal.completed_at == 5000
    assert goal.elapsed_ms(now=20_000) == 4000


def test_cancel_is_terminal():
    goal = Goal(GoalType.FARM_CROPS)
    goal.set_status(GoalStatus.CANCELLED, at=42)
    assert goal.is_terminal
    assert goal.completed_at == 42


def test_step_transitions():
    step = GoalStep("dig")
    assert step.start()
    assert not step.start()
    assert step.complete()
    assert not step.fail()
    assert step.status is StepStatus.COMPLETED


def test_dependencies_ignore_self_and_duplicates():
    a, b = GoalStep("a"), GoalStep("b")
    b.add_dependency(a.id)
    b.add_dependency(a.id)
    b.add_dependency(b.id)
    assert b.depends_on == [a.id]


def test_steps_to_json_shape():
    a, b = GoalStep("a"), GoalStep("b")
    b.add_dependency(a.id)
    data = json.loads(steps_to_json([a, b]))
    assert data[1] == {"id": b.id, "label": "b", "status": "PENDING", "dependsOn": [a.id]}


def test_parameters():
    goal = Goal(GoalType.RETURN_HOME)
    goal.set_parameter("x", 5)
    assert goal.get_parameter("x") == 5
    assert goal.get_parameter("missing", "d") == "d"


# ---------------------------------------------------------------------------
# GoalManager
# ---------------------------------------------------------------------------

def test_set_goal_marks_in_progress():
    mgr = GoalManager()
    goal = Goal(GoalType.GATHER_WOOD)
    assert mgr.set_goal(goal)
    assert mgr.current_goal is goal
    assert goal.status is GoalStatus.IN_PROGRESS


def test_set_goal_demotes_in_progress_goal_to_back_of_queue():
    mgr = GoalManager()
    queued = Goal(GoalType.FARM_CROPS)
    first = Goal(GoalType.GATHER_WOOD)
    second = Goal(GoalType.MINE_DIAMONDS)
    mgr.queue_goal(queued)
    mgr.set_goal(first)
    mgr.set_goal(second)

    assert mgr.current_goal is second
    assert mgr.queued_goals() == [queued, first]
    assert first.status is GoalStatus.PENDING
    assert not first.is_terminal
    in_progress = [g for g in mgr.all_goals() if g.status is GoalStatus.IN_PROGRESS]
    assert in_progress == [second]


def test_complete_promotes_next_queued_goal():
    mgr = GoalManager()
    first = Goal(GoalType.GATHER_WOOD)
    second = Goal(GoalType.GATHER_STONE)
    mgr.set_goal(first)
    mgr.queue_goal(second)

    done = mgr.complete_current_goal()
    assert done is first
    assert first.status is GoalStatus.COMPLETED
    assert first.completed_at > 0
    assert mgr.current_goal is second
    assert second.status is GoalStatus.IN_PROGRESS
    assert mgr.completed_goals() == [first]


def test_fail_records_reason_and_empties_when_queue_empty():
    mgr = GoalManager()
    goal = Goal(GoalType.HUNT_ANIMALS)
    mgr.set_goal(goal)
    mgr.fail_current_goal("no animals")
    assert goal.status is GoalStatus.FAILED
    assert goal.get_parameter("failReason") == "no animals"
    assert mgr.current_goal is None


def test_finish_without_goal_is_none():
    mgr = GoalManager()
    assert mgr.complete_current_goal() is None
    assert mgr.cancel_current_goal() is None


def test_finished_goal_cannot_be_reactivated():
    mgr = GoalManager()
    goal = Goal(GoalType.GATHER_WOOD)
    mgr.set_goal(goal)
    mgr.complete_current_goal()
    assert not mgr.set_goal(goal)
    assert mgr.current_goal is None


def test_clear_all_goals():
    mgr = GoalManager()
    mgr.set_goal(Goal(GoalType.GATHER_WOOD))
    mgr.queue_goal(Goal(GoalType.FARM_CROPS))
    mgr.clear_all_goals()
    assert mgr.current_goal is None
    assert mgr.all_goals() == []
