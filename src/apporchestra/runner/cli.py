"""Command-line entry point."""

import argparse
import sys
from typing import List, Optional

import apporchestra.config as config
from apporchestra.agents import CallableAgent, ResponsePlanner
from apporchestra.core.exceptions import DeadlockError, IncompleteRunError
from apporchestra.core.logger import AgentLogger
from apporchestra.models import AgentType, ExecutionPlan, OrchestrationResult
from apporchestra.orchestrator import Orchestrator
from apporchestra.scheduler import TaskGraph
from .startup import load_requirements, print_configuration, read_plan_file, simulated_output


def print_plan(plan: ExecutionPlan) -> None:
    """Print plan steps and their dependency waves."""
    print(f"\n[Execution plan] (source: {plan.source})")
    for step in plan.steps:
        deps = ", ".join(dep.value for dep in step.dependencies) or "-"
        print(f"  {step.task_id:<20} priority={step.priority:<3} depends on: {deps}")

    print("\n[Execution waves]")
    for i, wave in enumerate(TaskGraph.from_plan(plan).execution_waves(), 1):
        print(f"  Wave {i}: {', '.join(task.agent_type.value for task in wave)}")


def print_summary(result: OrchestrationResult) -> None:
    """Print the outcome of a run."""
    print("\n" + "=" * 60)
    print("Run summary")
    print("=" * 60)
    print(f"  Success: {result.success}")
    print(f"  Completed tasks: {len(result.completed_tasks)}/{len(result.tasks)}")
    for task in result.tasks:
        print(f"    {task.id:<20} {task.status.value}")
    print(f"  Generated files: {len(result.files)}")
    for file in result.files:
        print(f"    {file.path}")
    if result.errors:
        print(f"  Errors: {len(result.errors)}")
        for error in result.errors:
            print(f"    {error}")
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point with command-line argument parsing.

    Returns:
        Process exit code
    """
    parser = argparse.ArgumentParser(
        description="Dependency-aware orchestration of code generation agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                   # Show the fallback plan for sample requirements
  python main.py --requirements app.yaml --simulate
  python main.py --plan-file plan.json --simulate --export-context context.json
        """
    )
    parser.add_argument(
        "--requirements",
        metavar="FILE",
        help="YAML file with the project requirements"
    )
    parser.add_argument(
        "--plan-file",
        metavar="FILE",
        help="Planner response to validate and use (falls back when unusable)"
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Run the schedule with placeholder agents"
    )
    parser.add_argument(
        "--export-context",
        metavar="FILE",
        help="Write the context store export to FILE after the run"
    )
    args = parser.parse_args(argv)

    print_configuration()

    try:
        requirements = load_requirements(args.requirements)
    except (OSError, ValueError) as e:
        print(f"Error: could not load requirements: {e}", file=sys.stderr)
        return 2

    planner = None
    if args.plan_file:
        try:
            planner = ResponsePlanner(read_plan_file(args.plan_file))
        except OSError as e:
            print(f"Error: could not read plan file: {e}", file=sys.stderr)
            return 2

    run_logger = AgentLogger(log_dir=config.LOG_DIR, log_level=config.LOG_LEVEL, sync=config.LOG_FSYNC)

    agents = {
        agent_type: CallableAgent(agent_type, simulated_output)
        for agent_type in AgentType
    }
    orchestrator = Orchestrator(requirements, agents, planner=planner, logger=run_logger)

    exit_code = 0
    try:
        print_plan(orchestrator.analyze_and_plan())
        if args.simulate:
            result = orchestrator.orchestrate()
            print_summary(result)
            exit_code = 0 if result.success else 1
    except IncompleteRunError as e:
        run_logger.error(str(e))
        if e.result is not None:
            print_summary(e.result)
        exit_code = 1
    except DeadlockError as e:
        run_logger.error(str(e))
        exit_code = 1
    finally:
        if args.export_context:
            with open(args.export_context, "w", encoding="utf-8") as f:
                f.write(orchestrator.context_store.export_context())
            print(f"\nContext exported to {args.export_context}")
        run_logger.close()

    return exit_code
