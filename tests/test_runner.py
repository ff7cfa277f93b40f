from __future__ import annotations

import asyncio
import logging

import pytest

from conftest import FAILED, NOT_STARTED, SUCCESS, in_progress
from pageflow.errors import IncorrectStepError, RunnerBusyError, StepContractError
from pageflow.flow import FINISH, PROCEED, JumpToStep, Proceed, fail, jump_to_step
from pageflow.state import RunStatus, StepRunnerState
from pageflow.steps import AsyncProcessStep, OpenPageStep, ProcessStep, ScriptStep, Step

PAGE_1 = "file:///fixtures/page1.html"


def _set(key, value, directive=PROCEED):
    def handler(model):
        model[key] = value
        return directive

    return ProcessStep(handler)


def _must_not_run():
    def handler(model):
        raise AssertionError("This step should not run")

    return ProcessStep(handler)


@pytest.mark.asyncio
async def test_sequential_proceed_publishes_each_index(make_runner):
    runner, states = make_runner([_set("a", 1), _set("b", 2), _set("c", 3)])

    final = await runner.run()

    assert states == [*in_progress(0, 1, 2), SUCCESS]
    assert final == SUCCESS
    assert runner.model == {"a": 1, "b": 2, "c": 3}


@pytest.mark.asyncio
async def test_empty_sequence_succeeds_without_progress(make_runner):
    completed = []
    runner, states = make_runner([], model={"seed": True})

    await runner.run(completed.append)

    assert states == [SUCCESS]
    assert completed == [SUCCESS]
    assert runner.model == {"seed": True}


@pytest.mark.asyncio
async def test_finish_skips_remaining_steps(make_runner):
    runner, states = make_runner(
        [OpenPageStep(PAGE_1, "assertPage1Title"), _set("step2", 123, FINISH), _must_not_run(), _must_not_run()]
    )

    await runner.run()

    assert states == [*in_progress(0, 1), SUCCESS]
    assert runner.model["step2"] == 123


@pytest.mark.asyncio
async def test_failure_keeps_model_of_failing_step(make_runner):
    error = RuntimeError("fail early")
    runner, states = make_runner([_set("step1", 1), _set("step2", 123, fail(error)), _must_not_run()])

    await runner.run()

    assert states == [*in_progress(0, 1), FAILED]
    assert runner.state.status is RunStatus.FAILURE
    assert runner.state.error is error
    assert runner.model == {"step1": 1, "step2": 123}


@pytest.mark.asyncio
async def test_jump_skips_intermediate_step(make_runner):
    runner, states = make_runner(
        [_set("step1", 1), _set("step2", 123, jump_to_step(3)), _must_not_run(), _set("step4", 345)]
    )

    await runner.run()

    assert states == [*in_progress(0, 1, 3), SUCCESS]
    assert runner.model == {"step1": 1, "step2": 123, "step4": 345}


@pytest.mark.asyncio
@pytest.mark.parametrize("target", [4, -1, 100])
async def test_jump_outside_steps_fails_with_incorrect_step(make_runner, target):
    completed = []
    runner, states = make_runner(
        [_set("step1", 1), _set("step2", 123, jump_to_step(target)), _must_not_run(), _must_not_run()]
    )

    await runner.run(completed.append)

    assert states == [*in_progress(0, 1), FAILED]
    assert isinstance(runner.state.error, IncorrectStepError)
    assert runner.state.error == IncorrectStepError()
    assert runner.state.error.target == target
    assert runner.model["step2"] == 123
    assert len(completed) == 1


@pytest.mark.asyncio
async def test_jump_backwards_loops(make_runner):
    counters = {"step1": 0, "step2": 0}

    def first(model):
        model[f"step1-{counters['step1']}"] = counters["step1"]
        counters["step1"] += 1
        return PROCEED

    def second(model):
        model[f"step2-{counters['step2']}"] = counters["step2"]
        counters["step2"] += 1
        return PROCEED if counters["step2"] == 3 else jump_to_step(0)

    runner, states = make_runner([ProcessStep(first), ProcessStep(second)])

    await runner.run()

    assert counters == {"step1": 3, "step2": 3}
    assert states == [*in_progress(0, 1, 0, 1, 0, 1), SUCCESS]
    assert runner.model == {
        "step1-0": 0,
        "step2-0": 0,
        "step1-1": 1,
        "step2-1": 1,
        "step1-2": 2,
        "step2-2": 2,
    }


@pytest.mark.asyncio
async def test_run_with_new_steps_continues_model_and_page(make_runner, fake_page):
    responses = []

    def remember(response, model):
        responses.append(response)
        return PROCEED

    first_steps = [
        OpenPageStep(PAGE_1, "assertPage1Title"),
        ScriptStep("getInnerText", ["h1"], remember),
        ScriptStep("setInnerText", ["h1", "heading changed"]),
        _set("visited", ["page1"]),
    ]
    runner, states = make_runner(first_steps)
    first_completion = []
    await runner.run(first_completion.append)
    assert first_completion == [SUCCESS]

    states.clear()
    second_completion = []
    await runner.run(
        second_completion.append,
        steps=[
            ScriptStep("getInnerText", ["h1"], remember),
            ScriptStep("setInnerText", ["h1", "changing heading 2"]),
            ScriptStep("getInnerText", ["h1"], remember),
        ],
    )

    assert states == [NOT_STARTED, *in_progress(0, 1, 2), SUCCESS]
    assert responses == ["Hello world!", "heading changed", "changing heading 2"]
    assert runner.model == {"visited": ["page1"]}
    assert first_completion == [SUCCESS]
    assert second_completion == [SUCCESS]
    assert len(runner.steps) == 3


@pytest.mark.asyncio
async def test_rerun_without_new_steps_restarts_at_zero(make_runner):
    runner, states = make_runner([_set("a", 1), _set("b", 2)])

    await runner.run()
    await runner.run()

    assert states == [*in_progress(0, 1), SUCCESS, *in_progress(0, 1), SUCCESS]


@pytest.mark.asyncio
async def test_completion_runs_after_observers(make_runner):
    events = []
    runner, _ = make_runner([_set("a", 1)])
    runner.add_observer(lambda state: events.append(("observer", state)))

    await runner.run(lambda state: events.append(("complete", state)))

    assert events == [("observer", StepRunnerState.in_progress(0)), ("observer", SUCCESS), ("complete", SUCCESS)]


@pytest.mark.asyncio
async def test_run_returns_before_any_step_runs(make_runner):
    runner, states = make_runner([_set("a", 1)])

    task = runner.run()

    assert isinstance(task, asyncio.Task)
    assert states == []
    assert runner.is_running
    assert await task == SUCCESS
    assert not runner.is_running


@pytest.mark.asyncio
async def test_run_while_in_progress_is_rejected(make_runner):
    release = asyncio.Event()

    async def slow(model):
        await release.wait()
        return model, PROCEED

    runner, _ = make_runner([AsyncProcessStep(slow)])
    task = runner.run()
    await asyncio.sleep(0)

    with pytest.raises(RunnerBusyError):
        runner.run()
    with pytest.raises(RunnerBusyError):
        runner.run(steps=[])

    release.set()
    assert await task == SUCCESS


@pytest.mark.asyncio
async def test_step_exception_becomes_failure(make_runner):
    class Exploding(Step):
        async def run(self, environment, model):
            model["lost"] = True
            raise ValueError("kaboom")

    runner, states = make_runner([_set("kept", 1), Exploding(), _must_not_run()])

    await runner.run()

    assert states == [*in_progress(0, 1), FAILED]
    assert isinstance(runner.state.error, ValueError)
    assert runner.model == {"kept": 1}


@pytest.mark.asyncio
async def test_step_returning_non_verdict_is_contract_error(make_runner):
    class Sloppy(Step):
        async def run(self, environment, model):
            return "proceed"

    runner, _ = make_runner([Sloppy()])

    await runner.run()

    assert isinstance(runner.state.error, StepContractError)


@pytest.mark.asyncio
async def test_handler_returning_nothing_is_contract_error(make_runner):
    runner, _ = make_runner([ProcessStep(lambda model: None)])

    await runner.run()

    assert isinstance(runner.state.error, StepContractError)


@pytest.mark.asyncio
async def test_model_must_stay_json_like(make_runner):
    class BadModel(Step):
        async def run(self, environment, model):
            return Proceed({"when": object()})

    runner, states = make_runner([_set("ok", 1), BadModel()])

    await runner.run()

    assert states == [*in_progress(0, 1), FAILED]
    assert isinstance(runner.state.error, StepContractError)
    assert runner.model == {"ok": 1}


@pytest.mark.asyncio
async def test_steps_get_private_model_copies(make_runner):
    seen = []

    class Snoop(Step):
        async def run(self, environment, model):
            seen.append(model)
            model["nested"]["count"] += 1
            return Proceed(model)

    runner, _ = make_runner([Snoop(), Snoop()], model={"nested": {"count": 0}})

    await runner.run()

    assert runner.model == {"nested": {"count": 2}}
    assert seen[0] is not seen[1]
    assert seen[0] == {"nested": {"count": 1}}
    assert seen[1] == {"nested": {"count": 2}}
    snapshot = runner.model
    snapshot["nested"]["count"] = 99
    assert runner.model == {"nested": {"count": 2}}


@pytest.mark.asyncio
async def test_failing_observer_does_not_stop_delivery(make_runner, caplog):
    runner, states = make_runner([_set("a", 1)])

    def broken(state):
        raise RuntimeError("observer bug")

    runner.state_observers.insert(0, broken)

    with caplog.at_level(logging.ERROR, logger="pageflow.runner"):
        await runner.run()

    assert states == [*in_progress(0), SUCCESS]
    assert "state observer" in caplog.text


def test_seed_model_must_be_json_like(fake_page):
    from pydantic import ValidationError

    from pageflow.runner import StepRunner

    with pytest.raises(ValidationError):
        StepRunner(fake_page, [], model={"bad": object()})


def test_run_requires_event_loop(fake_page):
    from pageflow.runner import StepRunner

    with pytest.raises(RuntimeError):
        StepRunner(fake_page, []).run()


@pytest.mark.asyncio
async def test_completion_callback_can_start_next_run(make_runner):
    runner, states = make_runner([_set("a", 1)])
    follow_up = {}
    second = []

    def chain(state):
        follow_up["task"] = runner.run(second.append, steps=[_set("b", 2)])

    first = await runner.run(chain)

    assert first == SUCCESS
    assert await follow_up["task"] == SUCCESS
    assert second == [SUCCESS]
    assert states == [*in_progress(0), SUCCESS, NOT_STARTED, *in_progress(0), SUCCESS]
    assert runner.model == {"a": 1, "b": 2}


@pytest.mark.asyncio
async def test_observer_cannot_restart_during_terminal_delivery(make_runner):
    runner, _ = make_runner([_set("a", 1)])
    errors = []

    def restart(state):
        if state.is_terminal:
            try:
                runner.run()
            except RunnerBusyError as exc:
                errors.append(exc)

    runner.add_observer(restart)

    await runner.run()

    assert errors == [RunnerBusyError()]


@pytest.mark.asyncio
async def test_non_mapping_model_is_contract_error(make_runner):
    class NoModel(Step):
        async def run(self, environment, model):
            return Proceed(None)

    completed = []
    runner, states = make_runner([_set("ok", 1), NoModel()])

    await runner.run(completed.append)

    assert states == [*in_progress(0, 1), FAILED]
    assert isinstance(runner.state.error, StepContractError)
    assert completed == [FAILED]
    assert runner.model == {"ok": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize("target", [1.0, True, "1", None])
async def test_jump_target_must_be_an_integer(make_runner, target):
    class OddJump(Step):
        async def run(self, environment, model):
            return JumpToStep(target, model)

    runner, states = make_runner([OddJump(), _must_not_run()])

    await runner.run()

    assert states == [*in_progress(0), FAILED]
    assert isinstance(runner.state.error, IncorrectStepError)
    assert runner.state.error.target == target
