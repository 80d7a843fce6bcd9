"""Configuration loading for the trial driver."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    ASSIGNER_NAMES,
    ASSIGNER_NONE,
    DEFAULT_BASE_NUM_ITERS,
    DEFAULT_CALIBRATION_ITERS,
    DEFAULT_CGROUP_PREFIX,
    DEFAULT_CGROUP_ROOT,
    DEFAULT_SETTLE_SECONDS,
    DEFAULT_SIM_QUANTUM_ITERS,
    SIM_POLICIES,
    SIM_POLICY_BUCKET,
)

DEFAULT_ENV_FILE = ".env"
_TRUE_VALUES = {"1", "true", "yes", "on", "y"}
_FALSE_VALUES = {"0", "false", "no", "off", "n"}


@dataclass(frozen=True, slots=True)
class HarnessConfig:
    """Everything the driver needs to build and run the trial sequence."""

    base_iters: int = DEFAULT_BASE_NUM_ITERS
    base_seconds: float | None = None
    calibration_iters: int = DEFAULT_CALIBRATION_ITERS
    settle_seconds: float = DEFAULT_SETTLE_SECONDS
    assigner: str = ASSIGNER_NONE
    syscall_nr: int | None = None
    cgroup_root: str = DEFAULT_CGROUP_ROOT
    cgroup_prefix: str = DEFAULT_CGROUP_PREFIX
    cpu: int | None = None
    rounds: int = 1
    simulate: bool = False
    sim_quantum: int = DEFAULT_SIM_QUANTUM_ITERS
    sim_policy: str = SIM_POLICY_BUCKET
    stats: bool = False
    env_file: str = DEFAULT_ENV_FILE


def load_harness_config(env_file: str = DEFAULT_ENV_FILE) -> HarnessConfig:
    """Load config from an env file; bad values warn and fall back."""

    env = parse_env_file(env_file)

    assigner = env.get("BUCKET_ASSIGNER", ASSIGNER_NONE).strip().lower() or ASSIGNER_NONE
    if assigner not in ASSIGNER_NAMES:
        _warn(f"BUCKET_ASSIGNER={assigner!r} is unknown. Using {ASSIGNER_NONE!r}.")
        assigner = ASSIGNER_NONE

    sim_policy = env.get("SIM_POLICY", SIM_POLICY_BUCKET).strip().lower() or SIM_POLICY_BUCKET
    if sim_policy not in SIM_POLICIES:
        _warn(f"SIM_POLICY={sim_policy!r} is unknown. Using {SIM_POLICY_BUCKET!r}.")
        sim_policy = SIM_POLICY_BUCKET

    return HarnessConfig(
        base_iters=_env_int(env, "BASE_NUM_ITERS", DEFAULT_BASE_NUM_ITERS, minimum=1),
        base_seconds=_env_opt_float(env, "BASE_SECONDS", minimum=1e-6),
        calibration_iters=_env_int(
            env, "CALIBRATION_ITERS", DEFAULT_CALIBRATION_ITERS, minimum=0
        ),
        settle_seconds=_env_float(
            env, "SETTLE_SECONDS", DEFAULT_SETTLE_SECONDS, minimum=0.0
        ),
        assigner=assigner,
        syscall_nr=_env_opt_int(env, "SET_BUCKET_SYSCALL", minimum=0),
        cgroup_root=env.get("CGROUP_ROOT", "").strip() or DEFAULT_CGROUP_ROOT,
        cgroup_prefix=env.get("CGROUP_PREFIX", "").strip() or DEFAULT_CGROUP_PREFIX,
        cpu=_env_opt_int(env, "PIN_CPU", minimum=0),
        rounds=_env_int(env, "ROUNDS", 1, minimum=1),
        simulate=_env_bool(env, "SIMULATE", default=False),
        sim_quantum=_env_int(
            env, "SIM_QUANTUM_ITERS", DEFAULT_SIM_QUANTUM_ITERS, minimum=1
        ),
        sim_policy=sim_policy,
        stats=_env_bool(env, "STATS", default=False),
        env_file=env_file,
    )


def parse_env_file(path: str) -> dict[str, str]:
    """Read simple KEY=VALUE lines; a missing file is an empty config."""
    env_path = Path(path)
    if not env_path.exists():
        return {}

    env: dict[str, str] = {}
    for lineno, line in enumerate(env_path.read_text(encoding="utf-8").splitlines(), start=1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        if text.startswith("export "):
            text = text[7:].strip()
        if "=" not in text:
            _warn(f"Ignoring invalid env line {lineno} in {path!r}: {line!r}")
            continue

        key, value = text.split("=", 1)
        key = key.strip()
        value = value.strip()

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]

        if not key:
            _warn(f"Ignoring empty key on env line {lineno} in {path!r}")
            continue
        env[key] = value

    return env


def _warn(msg: str) -> None:
    print(f"Warning: {msg}", file=sys.stderr)


def _env_int(env: dict[str, str], key: str, default: int, minimum: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        parsed = int(raw)
    except ValueError:
        _warn(f"{key} must be an integer, got {raw!r}. Using {default}.")
        return default
    if parsed < minimum:
        _warn(f"{key} must be >= {minimum}, got {parsed}. Using {default}.")
        return default
    return parsed


def _env_opt_int(env: dict[str, str], key: str, minimum: int) -> int | None:
    raw = env.get(key)
    if raw is None or raw == "":
        return None
    try:
        parsed = int(raw, 0)
    except ValueError:
        _warn(f"{key} must be an integer, got {raw!r}. Ignoring it.")
        return None
    if parsed < minimum:
        _warn(f"{key} must be >= {minimum}, got {parsed}. Ignoring it.")
        return None
    return parsed


def _env_float(env: dict[str, str], key: str, default: float, minimum: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        parsed = float(raw)
    except ValueError:
        _warn(f"{key} must be a number, got {raw!r}. Using {default}.")
        return default
    if parsed < minimum:
        _warn(f"{key} must be >= {minimum}, got {parsed}. Using {default}.")
        return default
    return parsed


def _env_opt_float(env: dict[str, str], key: str, minimum: float) -> float | None:
    raw = env.get(key)
    if raw is None or raw == "":
        return None
    try:
        parsed = float(raw)
    except ValueError:
        _warn(f"{key} must be a number, got {raw!r}. Ignoring it.")
        return None
    if parsed < minimum:
        _warn(f"{key} must be >= {minimum}, got {parsed}. Ignoring it.")
        return None
    return parsed


def _env_bool(env: dict[str, str], key: str, default: bool) -> bool:
    raw = env.get(key)
    if raw is None or raw == "":
        return default

    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    _warn(
        f"{key} must be one of {sorted(_TRUE_VALUES | _FALSE_VALUES)}, got {raw!r}. "
        f"Using {default}."
    )
    return default
