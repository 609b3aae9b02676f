"""PodReaper CLI - disruption-aware random pod killer."""

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import click

from podreaper import __version__
from podreaper.cluster.client import ClusterClient, ClusterSnapshot
from podreaper.cluster.remover import PodRemover, RemovalMode
from podreaper.config.loader import load_config, protection_policy_from_config
from podreaper.errors import PodReaperError, RemovalError, SelectorParseError, SnapshotError
from podreaper.output.generator import ReportGenerator
from podreaper.safety.budget import evaluate_budgets
from podreaper.selection.candidate import CandidateSelector, SelectionResult
from podreaper.selector import compile_selector


def _settings(
    config_path: Optional[str],
    namespace: Optional[str],
    selector: Optional[str],
    mode: Optional[str] = None,
    timeout: Optional[int] = None,
    removal: bool = False,
) -> Dict[str, Any]:
    """Load configuration with CLI overrides, exiting on error."""
    try:
        return load_config(
            config_path,
            overrides={
                "namespace": namespace,
                "selector": selector,
                "mode": mode,
                "timeout": timeout,
            },
            removal=removal,
        )
    except (FileNotFoundError, PodReaperError) as e:
        click.echo(f"Error loading config: {e}", err=True)
        for detail in getattr(e, "errors", []):
            click.echo(f"  {detail}", err=True)
        sys.exit(1)


def _take_snapshot(cfg: Dict[str, Any], echo) -> Tuple[ClusterClient, ClusterSnapshot]:
    """Connect to the cluster and read pods and budgets, exiting on error."""
    try:
        cluster = ClusterClient(cfg["namespace"], timeout=cfg["timeout"])
    except Exception as e:
        click.echo(f"Error connecting to cluster: {e}", err=True)
        sys.exit(1)

    try:
        snapshot = cluster.snapshot()
    except SnapshotError as e:
        click.echo(f"Error reading cluster state: {e}", err=True)
        sys.exit(1)

    echo(f"  Pods: {len(snapshot.pods)}")
    echo(f"  PodDisruptionBudgets: {len(snapshot.budgets)}")
    for budget in snapshot.budgets:
        echo(f"    - {budget.name} ({budget.describe_policy()})")

    return cluster, snapshot


def _echoer(json_output: bool) -> Callable[[str], None]:
    """Progress goes to stderr when stdout carries JSON."""

    def echo(message: str) -> None:
        click.echo(message, err=json_output)

    return echo


def _check_target_selector(selector: str) -> None:
    try:
        compile_selector(selector)
    except SelectorParseError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _print_verdicts(result: SelectionResult, echo) -> None:
    for warning in result.warnings:
        click.echo(f"  WARNING: {warning}", err=True)
    for name, verdict in result.verdicts.items():
        mark = "OK     " if verdict.admit else "BLOCKED"
        echo(f"  {mark} {name}: {verdict.reason}")


def _write_report(report: Dict[str, Any], json_output: bool, output: Optional[str]) -> None:
    if output:
        Path(output).write_text(json.dumps(report, indent=2))
        click.echo(f"  Report written to {output}", err=json_output)
    if json_output:
        click.echo(json.dumps(report, indent=2))


@click.group()
@click.version_option(version=__version__)
def main():
    """PodReaper - disruption-aware random pod killer for chaos testing.

    Picks one running pod that can be removed without violating any
    PodDisruptionBudget and without touching protected pods, then deletes
    or evicts it.
    """
    pass


@main.command()
@click.option("--namespace", "-n", default=None, help="Namespace to target (default: from config or 'default')")
@click.option("--selector", "-l", default=None, help="Label selector for candidate pods")
@click.option(
    "--mode",
    "-m",
    type=click.Choice([m.value for m in RemovalMode], case_sensitive=False),
    default=None,
    help="Removal mode (default: delete)",
)
@click.option("--timeout", "-t", type=int, default=None, help="API request timeout in seconds")
@click.option("--config", "-c", "config_path", type=click.Path(), help="YAML configuration file")
@click.option("--dry-run", is_flag=True, help="Select a pod but do not remove it")
@click.option("--json", "json_output", is_flag=True, help="Output the run report as JSON")
@click.option("--output", "-o", type=click.Path(), help="Write the run report to a JSON file")
def kill(
    namespace: Optional[str],
    selector: Optional[str],
    mode: Optional[str],
    timeout: Optional[int],
    config_path: Optional[str],
    dry_run: bool,
    json_output: bool,
    output: Optional[str],
):
    """Remove one random pod that is safe to disrupt.

    \b
    Examples:
      podreaper kill -n shop -l app=web
      podreaper kill -n shop -l 'app in (web,api),!canary' --mode evict
      podreaper kill -c podreaper.yaml --dry-run --json
    """
    cfg = _settings(config_path, namespace, selector, mode, timeout, removal=True)
    echo = _echoer(json_output)

    _check_target_selector(cfg["selector"])
    removal_mode = RemovalMode(cfg["mode"].lower())

    echo(f"Namespace: {cfg['namespace']}")
    echo(f"Selector: {cfg['selector'] or '<all pods>'}")
    echo(f"Mode: {removal_mode.value} - {removal_mode.describe()}")

    echo("\n[1/3] Reading cluster state...")
    cluster, snapshot = _take_snapshot(cfg, echo)

    echo("\n[2/3] Evaluating disruption safety...")
    picker = CandidateSelector(policy=protection_policy_from_config(cfg))
    result = picker.select_one(snapshot.pods, cfg["selector"], snapshot.budgets)
    _print_verdicts(result, echo)
    echo(f"  Safe to disrupt: {len(result.eligible)} of {len(result.verdicts)} candidate pod(s)")

    removal = None
    echo("\n[3/3] Removing pod...")
    if result.chosen is None:
        echo("  No eligible pod found; nothing to do")
    elif dry_run:
        echo(f"  Dry run: would {removal_mode.value} pod {result.chosen.name}")
    else:
        pod = result.chosen
        echo(f"  Selected pod {pod.name}")
        remover = PodRemover(
            cluster.core_api,
            timeout=cfg["timeout"],
            grace_period=cfg.get("gracePeriodSeconds"),
        )
        try:
            remover.remove(pod, removal_mode)
            removal = {"status": "success", "error": None}
            echo(f"  Pod {pod.name} removed ({removal_mode.value})")
        except RemovalError as e:
            removal = {"status": "failed", "error": str(e)}
            click.echo(f"  Error: {e}", err=True)

    report = ReportGenerator(
        cfg["namespace"],
        cfg["selector"],
        result,
        mode=removal_mode.value if result.chosen else None,
        removal=removal,
    ).generate()
    _write_report(report, json_output, output)

    if removal and removal["status"] != "success":
        sys.exit(1)


@main.command()
@click.option("--namespace", "-n", default=None, help="Namespace to inspect")
@click.option("--selector", "-l", default=None, help="Label selector for candidate pods")
@click.option("--config", "-c", "config_path", type=click.Path(), help="YAML configuration file")
@click.option("--json", "json_output", is_flag=True, help="Output verdicts as JSON")
def check(
    namespace: Optional[str],
    selector: Optional[str],
    config_path: Optional[str],
    json_output: bool,
):
    """Show which pods could be disrupted right now, and why not."""
    cfg = _settings(config_path, namespace, selector)
    echo = _echoer(json_output)

    _check_target_selector(cfg["selector"])

    echo(f"Checking namespace: {cfg['namespace']}")
    _, snapshot = _take_snapshot(cfg, echo)

    picker = CandidateSelector(policy=protection_policy_from_config(cfg))
    result = picker.evaluate(snapshot.pods, cfg["selector"], snapshot.budgets)

    if json_output:
        for warning in result.warnings:
            click.echo(f"WARNING: {warning}", err=True)
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    echo("\nVerdicts:")
    _print_verdicts(result, echo)
    if not result.verdicts:
        echo("  No running pods match the selector")
    echo(f"\nSafe to disrupt: {len(result.eligible)} of {len(result.verdicts)} candidate pod(s)")


@main.command()
@click.option("--namespace", "-n", default=None, help="Namespace to inspect")
@click.option("--config", "-c", "config_path", type=click.Path(), help="YAML configuration file")
@click.option("--json", "json_output", is_flag=True, help="Output budget status as JSON")
def budgets(namespace: Optional[str], config_path: Optional[str], json_output: bool):
    """Show the current status of every PodDisruptionBudget."""
    cfg = _settings(config_path, namespace, None)
    echo = _echoer(json_output)

    echo(f"Namespace: {cfg['namespace']}")
    _, snapshot = _take_snapshot(cfg, echo)

    statuses, skipped = evaluate_budgets(snapshot.budgets, snapshot.pods)
    for budget, error in skipped:
        click.echo(f"  WARNING: skipping budget {budget.name}: {error}", err=True)

    if json_output:
        click.echo(json.dumps(
            {
                "budgets": [s.to_dict() for s in statuses],
                "skipped": [{"name": b.name, "error": str(e)} for b, e in skipped],
            },
            indent=2,
        ))
        return

    if not statuses:
        echo("\nNo evaluable PodDisruptionBudgets")
        return

    echo("\nBudget status:")
    for status in statuses:
        echo(
            f"  {status.budget.name}: matched={status.matched} "
            f"currentHealthy={status.current_healthy} "
            f"desiredHealthy={status.desired_healthy} "
            f"allowedDisruptions={status.allowed_disruptions}"
        )


if __name__ == "__main__":
    main()
