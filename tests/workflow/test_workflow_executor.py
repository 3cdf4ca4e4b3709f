"""Unattended runs compiled to LangGraph."""

import pytest

from agentflow.logging.run_logger import RunEventType, RunLogger
from agentflow.workflow.errors import GenerationFailed, MissingInputsError, NoRootFoundError
from agentflow.workflow.templates import create_code_review_template
from agentflow.workflow.workflow_executor import WorkflowExecutor
from agentflow.workflow.workflow_runner import RunState, WorkflowRunner

from builders import ScriptedClient, data_node, edge, make_workflow, obj_schema, service_node

INPUTS = {"challenge_description": "Reverse a list", "code": "xs[::-1]", "language": "python"}
EVALUATION = {"score": 7, "issues": ["no tests"], "reasoning": "Looks fine overall"}


class TestCompile:
    """Primary path extraction"""

    def test_primary_path_follows_first_edges(self):
        executor = WorkflowExecutor(create_code_review_template(), ScriptedClient())
        assert [n.id for n in executor.primary_path()] == [
            "challenge", "submission", "evaluate", "summarize",
        ]
        assert executor.compile() is executor.graph

    def test_revisit_is_rejected(self):
        workflow = make_workflow(
            [data_node("d"), service_node("a"), service_node("b")],
            [edge("d", "a"), edge("a", "b"), edge("b", "a")],
        )
        with pytest.raises(ValueError):
            WorkflowExecutor(workflow, ScriptedClient()).compile()

    def test_no_root(self):
        workflow = make_workflow([service_node("a")], [edge("a", "a")])
        with pytest.raises(NoRootFoundError):
            WorkflowExecutor(workflow, ScriptedClient()).compile()


class TestRun:
    """Executing the compiled graph"""

    async def test_full_run(self):
        client = ScriptedClient([EVALUATION, {"verdict": "Pass"}])
        final = await WorkflowExecutor(create_code_review_template(), client).run(INPUTS)

        assert final["trail"] == ["challenge", "submission", "evaluate", "summarize"]
        assert final["accumulated"]["verdict"] == "Pass"
        assert "reasoning" not in final["accumulated"]
        assert final["display"]["evaluate"] == {"reasoning": "Looks fine overall"}
        assert "reasoning" not in client.requests[1].input_data

    async def test_matches_interactive_run(self):
        executor_final = await WorkflowExecutor(
            create_code_review_template(),
            ScriptedClient([EVALUATION, {"verdict": "Pass"}]),
        ).run(INPUTS)

        runner = WorkflowRunner(
            create_code_review_template(),
            ScriptedClient([EVALUATION, {"verdict": "Pass"}]),
        )
        await runner.start()
        await runner.submit_inputs(INPUTS)
        while runner.state == RunState.STEP_COMPLETE:
            await runner.continue_run()

        assert runner.state == RunState.FINISHED
        assert executor_final["accumulated"] == runner.accumulated_data

    async def test_missing_inputs(self):
        executor = WorkflowExecutor(create_code_review_template(), ScriptedClient())
        with pytest.raises(MissingInputsError) as exc_info:
            await executor.run({"challenge_description": "x"})
        assert exc_info.value.node_id == "submission"

    async def test_generation_failure_propagates_and_is_logged(self):
        run_logger = RunLogger("executor-test")
        workflow = make_workflow([service_node("s", obj_schema("a"))], [])
        executor = WorkflowExecutor(
            workflow, ScriptedClient([GenerationFailed("boom")]), run_logger=run_logger,
        )
        with pytest.raises(GenerationFailed):
            await executor.run()
        events = [e.event for e in run_logger.entries]
        assert RunEventType.STEP_ERROR in events
        assert events[-1] == RunEventType.RUN_END

    async def test_failed_run_counts_finished_steps(self):
        run_logger = RunLogger("executor-steps")
        workflow = make_workflow(
            [data_node("d", "x"), service_node("s1", obj_schema("a")), service_node("s2")],
            [edge("d", "s1"), edge("s1", "s2")],
        )
        client = ScriptedClient([{"a": "1"}, GenerationFailed("boom")])
        executor = WorkflowExecutor(workflow, client, run_logger=run_logger)
        with pytest.raises(GenerationFailed):
            await executor.run({"x": "1"})
        end = run_logger.entries[-1]
        assert end.metadata == {"state": "failed", "steps": 2}
