#!/usr/bin/env python3
"""
Bucket Scheduler Fairness Trials

Spawns five CPU-bound workers per trial: worker A alone in bucket 1 and
workers B-E sharing bucket 2. Under a scheduler that gives every bucket an
equal share of the CPU, A runs four times faster than each of B-E, so:

  Subtest 1  A = 15 x base, B-E = base / 2   -> A must finish last
  Subtest 2  A = 3 x base,  B-E = 2 x base   -> A must finish first

Each trial prints workers in the order they finish followed by OK or WRONG.
Verdicts never change the exit status: 0 when all trials ran, 1 on a
harness error (spawn, wait, stray child), 2 on bad usage.

Usage:
  python main.py [options]

Options:
  --env-file PATH        Path to env defaults file (default: .env)
  --base-iters N         Base iteration count (default: 2000000)
  --base-seconds S       Calibrate base iterations to S seconds of work
  --calibration-iters N  Warm-up iterations per worker (default: 2000)
  --settle-seconds S     Sleep between warm-up and workload (default: 1.0)
  --assigner NAME        none | syscall | cgroup (default: none)
  --syscall-nr N         set_bucket syscall number (syscall assigner)
  --cgroup-root PATH     Parent cgroup of the bucket groups (cgroup assigner)
  --cgroup-prefix STR    Bucket group name prefix (default: bucket)
  --cpu N                Pin every worker to CPU N
  --rounds N             Repeat the trial sequence N times (default: 1)
  --simulate / --no-simulate
                         Use the built-in simulated bucket scheduler
  --sim-quantum N        Simulated quantum in iterations (default: 10000)
  --sim-policy NAME      bucket | process (default: bucket)
  --stats / --no-stats   Print simulated CPU accounting

Env keys in .env:
  BASE_NUM_ITERS, BASE_SECONDS, CALIBRATION_ITERS, SETTLE_SECONDS,
  BUCKET_ASSIGNER, SET_BUCKET_SYSCALL, CGROUP_ROOT, CGROUP_PREFIX, PIN_CPU,
  ROUNDS, SIMULATE, SIM_QUANTUM_ITERS, SIM_POLICY, STATS
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from functools import partial
from typing import TextIO

from sched_harness.adapters import (
    CgroupBucketAssigner,
    PinnedBucketAssigner,
    PosixProcessHost,
    create_bucket_assigner,
)
from sched_harness.config import DEFAULT_ENV_FILE, HarnessConfig, load_harness_config
from sched_harness.constants import (
    ASSIGNER_NAMES,
    ASSIGNER_SYSCALL,
    HEAVY_BUCKET,
    LIGHT_BUCKET,
    SIM_POLICIES,
)
from sched_harness.driver import run_trials, standard_trials
from sched_harness.errors import HarnessError
from sched_harness.orchestrator import TrialOrchestrator
from sched_harness.trial import Trial
from sched_harness.worker import run_worker
from sched_harness.workload import iterations_for_seconds, iterations_per_second
from simulator import SimulatedScheduler


def resolve_base_iters(config: HarnessConfig, out: TextIO) -> int:
    """Base iteration count, calibrated on this host when base_seconds is set."""
    if config.base_seconds is None:
        return config.base_iters
    rate = iterations_per_second()
    base_iters = iterations_for_seconds(config.base_seconds, rate)
    print(
        f"Calibrated: {rate:,.0f} iters/s -> base_iters={base_iters} "
        f"({config.base_seconds:g}s)",
        file=out,
    )
    return base_iters


def warn_coarse_quantum(config: HarnessConfig, trials: list[Trial]) -> None:
    """Warn when a simulated quantum swallows a whole worker's demand.

    A worker that finishes inside its first slice never shares the CPU, so
    the finish order reduces to spawn order and says nothing about fairness.
    """
    if not config.simulate:
        return
    for trial in trials:
        largest = max(w.num_iters for w in trial.workers)
        if config.sim_quantum >= largest:
            print(
                f"Warning: {trial.label}: sim quantum {config.sim_quantum} >= largest "
                f"demand {largest}; workers finish in spawn order",
                file=sys.stderr,
            )


def build_orchestrator(
    config: HarnessConfig,
    out: TextIO,
) -> tuple[TrialOrchestrator, SimulatedScheduler | None]:
    """Wire host, assigner and runner for either real or simulated trials."""
    if config.simulate:
        sched = SimulatedScheduler(policy=config.sim_policy, quantum=config.sim_quantum)
        return TrialOrchestrator(sched, sched, runner=sched.run, out=out), sched

    assigner = create_bucket_assigner(
        config.assigner,
        syscall_nr=config.syscall_nr,
        cgroup_root=config.cgroup_root,
        cgroup_prefix=config.cgroup_prefix,
    )
    if isinstance(assigner, CgroupBucketAssigner):
        assigner.prepare((HEAVY_BUCKET, LIGHT_BUCKET))

    runner = partial(
        run_worker,
        calibration_iters=config.calibration_iters,
        settle_seconds=config.settle_seconds,
    )
    if config.cpu is not None:
        assigner = PinnedBucketAssigner(assigner, config.cpu)
    return TrialOrchestrator(PosixProcessHost(), assigner, runner=runner, out=out), None


def run_harness(config: HarnessConfig, out: TextIO | None = None) -> int:
    """Run the standard trial sequence; returns the process exit code."""
    out = out if out is not None else sys.stdout

    base_iters = resolve_base_iters(config, out)
    trials = standard_trials(base_iters)
    warn_coarse_quantum(config, trials)

    try:
        orchestrator, sched = build_orchestrator(config, out)
    except OSError as exc:
        print(f"Error: cannot set up bucket assigner: {exc}", file=sys.stderr)
        return 1

    mode = f"simulated/{config.sim_policy}" if sched is not None else config.assigner
    print(
        f"Running {len(trials)} trial(s) x {config.rounds}: "
        f"base_iters={base_iters}, assigner={mode}"
        + (f", cpu={config.cpu}" if config.cpu is not None and sched is None else ""),
        file=out,
        flush=True,
    )

    try:
        run_trials(orchestrator, trials, out=out, rounds=config.rounds)
    except HarnessError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if sched is not None and config.stats:
        sched.stats.print_summary(out)

    # Verdicts are informational; a WRONG trial does not fail the run.
    return 0


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    # Parse env-file first so we can use it for argument defaults.
    env_parser = argparse.ArgumentParser(add_help=False)
    env_parser.add_argument("--env-file", default=DEFAULT_ENV_FILE)
    env_args, _ = env_parser.parse_known_args(argv)
    defaults = load_harness_config(env_args.env_file)

    parser = argparse.ArgumentParser(
        description="Bucket scheduler fairness trials",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--env-file",
        default=env_args.env_file,
        help=f"Path to env defaults file (default: {DEFAULT_ENV_FILE})",
    )
    parser.add_argument(
        "--base-iters",
        type=int,
        default=defaults.base_iters,
        help=f"Base iteration count (default: {defaults.base_iters})",
    )
    parser.add_argument(
        "--base-seconds",
        type=float,
        default=defaults.base_seconds,
        help="Calibrate the base iteration count to this many seconds of work",
    )
    parser.add_argument(
        "--calibration-iters",
        type=int,
        default=defaults.calibration_iters,
        help=f"Warm-up iterations per worker (default: {defaults.calibration_iters})",
    )
    parser.add_argument(
        "--settle-seconds",
        type=float,
        default=defaults.settle_seconds,
        help=f"Sleep between warm-up and workload (default: {defaults.settle_seconds})",
    )
    parser.add_argument(
        "--assigner",
        choices=list(ASSIGNER_NAMES),
        default=defaults.assigner,
        help=f"Bucket assignment mechanism (default: {defaults.assigner})",
    )
    parser.add_argument(
        "--syscall-nr",
        type=int,
        default=defaults.syscall_nr,
        help="set_bucket syscall number for the syscall assigner",
    )
    parser.add_argument(
        "--cgroup-root",
        default=defaults.cgroup_root,
        help=f"Parent cgroup of the bucket groups (default: {defaults.cgroup_root})",
    )
    parser.add_argument(
        "--cgroup-prefix",
        default=defaults.cgroup_prefix,
        help=f"Bucket group name prefix (default: {defaults.cgroup_prefix})",
    )
    parser.add_argument(
        "--cpu",
        type=int,
        default=defaults.cpu,
        help="Pin every worker to this CPU",
    )
    parser.add_argument(
        "--rounds",
        type=int,
        default=defaults.rounds,
        help=f"Repeat the trial sequence (default: {defaults.rounds})",
    )
    parser.add_argument(
        "--simulate",
        action=argparse.BooleanOptionalAction,
        default=defaults.simulate,
        help=f"Use the simulated scheduler (default: {'on' if defaults.simulate else 'off'})",
    )
    parser.add_argument(
        "--sim-quantum",
        type=int,
        default=defaults.sim_quantum,
        help=f"Simulated quantum in iterations (default: {defaults.sim_quantum})",
    )
    parser.add_argument(
        "--sim-policy",
        choices=list(SIM_POLICIES),
        default=defaults.sim_policy,
        help=f"Simulated scheduling policy (default: {defaults.sim_policy})",
    )
    parser.add_argument(
        "--stats",
        action=argparse.BooleanOptionalAction,
        default=defaults.stats,
        help=f"Print simulated CPU accounting (default: {'on' if defaults.stats else 'off'})",
    )

    args = parser.parse_args(argv)

    if args.base_iters <= 0:
        parser.error("--base-iters must be > 0")
    if args.base_seconds is not None and args.base_seconds <= 0:
        parser.error("--base-seconds must be > 0")
    if args.calibration_iters < 0:
        parser.error("--calibration-iters must be >= 0")
    if args.settle_seconds < 0:
        parser.error("--settle-seconds must be >= 0")
    if args.rounds <= 0:
        parser.error("--rounds must be > 0")
    if args.sim_quantum <= 0:
        parser.error("--sim-quantum must be > 0")
    if args.cpu is not None and args.cpu < 0:
        parser.error("--cpu must be >= 0")
    if not args.simulate and args.assigner == ASSIGNER_SYSCALL and args.syscall_nr is None:
        parser.error("--assigner syscall requires --syscall-nr (or SET_BUCKET_SYSCALL)")

    config = replace(
        defaults,
        env_file=args.env_file,
        base_iters=args.base_iters,
        base_seconds=args.base_seconds,
        calibration_iters=args.calibration_iters,
        settle_seconds=args.settle_seconds,
        assigner=args.assigner,
        syscall_nr=args.syscall_nr,
        cgroup_root=args.cgroup_root,
        cgroup_prefix=args.cgroup_prefix,
        cpu=args.cpu,
        rounds=args.rounds,
        simulate=args.simulate,
        sim_quantum=args.sim_quantum,
        sim_policy=args.sim_policy,
        stats=args.stats,
    )
    return run_harness(config)


if __name__ == "__main__":
    raise SystemExit(main())
